"""Structural diff application for JSON-like values.

Applies deltas in the jsondiffpatch format to plain Python JSON values
(``dict`` / ``list`` / scalars).  The delta vocabulary::

    [new]               value added
    [old, new]          value replaced
    [old, 0, 0]         value deleted
    [unidiff, 0, 2]     string patched with a diff-match-patch patch text
    ["", dest, 3]       array item moved (only under an ``_N`` key)
    {...}               nested object delta
    {"_t": "a", ...}    array delta; ``N`` keys address the new array,
                        ``_N`` keys address the original array

``patch`` mutates containers in place and returns the (possibly replaced)
root value.  Callers that need the input untouched clone it first; the
delta engine in :mod:`services.delta` does exactly that.
"""

from __future__ import annotations

from typing import Any

from diff_match_patch import diff_match_patch

from errors import DeltaApplyError

ARRAY_MARKER = "a"
DELETED = 0
TEXT_DIFF = 2
ARRAY_MOVE = 3

# Sentinel for "no value" (deleted key / absent key)
_MISSING = object()

_dmp = diff_match_patch()


def patch(value: Any, delta: Any) -> Any:
    """Apply *delta* to *value* and return the patched value.

    Raises:
        DeltaApplyError: the delta is malformed or does not fit *value*.
    """
    result = _patch_value(value, delta, [])
    if result is _MISSING:
        raise DeltaApplyError("cannot delete the document root")
    return result


def _is_magic(value: Any, number: int) -> bool:
    # JSON ``false`` decodes to ``False`` which compares equal to 0
    return isinstance(value, int) and not isinstance(value, bool) and value == number


def _patch_value(left: Any, delta: Any, path: list[str | int]) -> Any:
    if isinstance(delta, list):
        return _patch_leaf(left, delta, path)
    if isinstance(delta, dict):
        marker = delta.get("_t")
        if marker is None:
            return _patch_object(left, delta, path)
        if marker == ARRAY_MARKER:
            return _patch_array(left, delta, path)
        raise DeltaApplyError(f"unknown container marker {marker!r}", path)
    raise DeltaApplyError(f"unsupported delta type {type(delta).__name__}", path)


def _patch_leaf(left: Any, delta: list, path: list[str | int]) -> Any:
    if len(delta) == 1:
        return delta[0]
    if len(delta) == 2:
        return delta[1]
    if len(delta) == 3:
        if _is_magic(delta[2], DELETED):
            return _MISSING
        if _is_magic(delta[2], TEXT_DIFF):
            return _patch_text(left, delta[0], path)
        if _is_magic(delta[2], ARRAY_MOVE):
            raise DeltaApplyError("array move outside of an array delta", path)
    raise DeltaApplyError(f"invalid delta {delta!r}", path)


def _patch_text(left: Any, patch_text: Any, path: list[str | int]) -> str:
    if left is _MISSING or not isinstance(left, str):
        raise DeltaApplyError("text diff applied to a non-string value", path)
    if not isinstance(patch_text, str):
        raise DeltaApplyError("text diff payload is not a string", path)
    try:
        patches = _dmp.patch_fromText(patch_text)
    except ValueError as exc:
        raise DeltaApplyError(f"invalid text diff: {exc}", path) from exc
    text, results = _dmp.patch_apply(patches, left)
    if not all(results):
        raise DeltaApplyError("text patch failed", path)
    return text


def _patch_object(left: Any, delta: dict, path: list[str | int]) -> dict:
    if not isinstance(left, dict):
        raise DeltaApplyError(
            f"object delta applied to {_type_name(left)}", path
        )
    for key, child_delta in delta.items():
        result = _patch_value(left.get(key, _MISSING), child_delta, [*path, key])
        if result is _MISSING:
            left.pop(key, None)
        else:
            left[key] = result
    return left


def _patch_array(left: Any, delta: dict, path: list[str | int]) -> list:
    if not isinstance(left, list):
        raise DeltaApplyError(f"array delta applied to {_type_name(left)}", path)

    to_remove: list[tuple[int, list]] = []
    to_insert: list[tuple[int, Any]] = []
    to_modify: list[tuple[int, Any]] = []

    for key, child_delta in delta.items():
        if key == "_t":
            continue
        if key.startswith("_"):
            index = _parse_index(key[1:], [*path, key])
            if not (
                isinstance(child_delta, list)
                and len(child_delta) == 3
                and (_is_magic(child_delta[2], DELETED) or _is_magic(child_delta[2], ARRAY_MOVE))
            ):
                raise DeltaApplyError(
                    "only removal or move can be applied at original array indices",
                    [*path, key],
                )
            to_remove.append((index, child_delta))
        else:
            index = _parse_index(key, [*path, key])
            if isinstance(child_delta, list) and len(child_delta) == 1:
                to_insert.append((index, child_delta[0]))
            else:
                to_modify.append((index, child_delta))

    # Removals run from the highest original index down so earlier
    # indices stay valid; moved items are re-inserted afterwards.
    for index, child_delta in sorted(to_remove, key=lambda item: item[0], reverse=True):
        if index >= len(left):
            raise DeltaApplyError("removal index out of range", [*path, f"_{index}"])
        removed = left.pop(index)
        if _is_magic(child_delta[2], ARRAY_MOVE):
            destination = child_delta[1]
            if not isinstance(destination, int) or isinstance(destination, bool) or destination < 0:
                raise DeltaApplyError("invalid move destination", [*path, f"_{index}"])
            to_insert.append((destination, removed))

    for index, item in sorted(to_insert, key=lambda item: item[0]):
        if index > len(left):
            raise DeltaApplyError("insert index out of range", [*path, index])
        left.insert(index, item)

    for index, child_delta in to_modify:
        if index >= len(left):
            raise DeltaApplyError("modify index out of range", [*path, index])
        result = _patch_value(left[index], child_delta, [*path, index])
        if result is _MISSING:
            raise DeltaApplyError(
                "deletion must address an original array index", [*path, index]
            )
        left[index] = result

    return left


def _parse_index(raw: str, path: list[str | int]) -> int:
    if not raw.isdecimal():
        raise DeltaApplyError(f"invalid array index {raw!r}", path)
    return int(raw)


def _type_name(value: Any) -> str:
    return "missing value" if value is _MISSING else type(value).__name__
