"""Delta engine — fold one stream delta into a document snapshot.

Two delta shapes arrive on the stream:

- string append ``[[*path, text], 9, 9]``: concatenate ``text`` onto the
  string leaf at ``path``.  Only the containers along the path are copied,
  everything else is shared with the previous snapshot.
- structural diff (jsondiffpatch format): applied to a deep copy by
  :mod:`services.json_delta`.

``apply_delta`` never mutates the snapshot it receives.  When a delta does
not apply, the very same snapshot object is returned, so ``is`` comparison
tells the caller whether anything changed.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from errors import DeltaApplyError
from models.stream_events import MessageBinaryFormat
from services import json_delta

logger = logging.getLogger(__name__)

# Reserved tag in positions 1 and 2 of a string-append delta
STRING_APPEND_MARKER = 9

# Deepest string-append path accepted; longer paths are ignored
MAX_APPEND_PATH_DEPTH = 256


def _is_marker(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and value == STRING_APPEND_MARKER
    )


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def is_string_append_delta(delta: Any) -> bool:
    """Return True if *delta* uses the compact string-append format."""
    return (
        isinstance(delta, list)
        and len(delta) == 3
        and _is_marker(delta[1])
        and _is_marker(delta[2])
        and isinstance(delta[0], list)
        and len(delta[0]) >= 1
    )


def apply_delta(snapshot: MessageBinaryFormat, delta: Any) -> MessageBinaryFormat:
    """Apply a single stream delta and return the new snapshot."""
    if is_string_append_delta(delta):
        return apply_string_append(snapshot, delta)
    return apply_structural_delta(snapshot, delta)


# ── String append ────────────────────────────────────────────


def apply_string_append(snapshot: MessageBinaryFormat, delta: list) -> MessageBinaryFormat:
    """Append the delta's text to the string leaf addressed by its path.

    An empty path, a non-string text, a path segment that is not a
    non-negative integer, a path deeper than
    ``MAX_APPEND_PATH_DEPTH`` or a target that is not a string all leave
    the snapshot untouched.
    """
    *path, value = delta[0]
    if not path:
        return snapshot
    if not isinstance(value, str):
        logger.debug("Ignoring string-append delta with non-string value %r", value)
        return snapshot
    if not all(_is_index(segment) for segment in path):
        logger.debug("Ignoring string-append delta with invalid path %r", path)
        return snapshot
    if len(path) > MAX_APPEND_PATH_DEPTH:
        logger.debug("Ignoring string-append delta with path depth %d", len(path))
        return snapshot
    return _append_at(snapshot, path, value)


def _append_at(root: Any, path: list[int], value: str) -> Any:
    # Walk down recording each (container, index); rebuild bottom-up
    chain: list[tuple[list | dict, int]] = []
    node = root
    synthesized = False
    for index in path[:-1]:
        if not isinstance(node, (list, dict)):
            return root
        child = _get_child(node, index)
        if child is None:
            # Absent intermediate nodes are synthesized as empty lists
            child = []
            synthesized = True
        chain.append((node, index))
        node = child

    if not isinstance(node, (list, dict)):
        return root

    current = _get_child(node, path[-1])
    if isinstance(current, str):
        updated = _with_child(node, path[-1], current + value)
    elif synthesized:
        updated = node
    else:
        return root

    for parent, index in reversed(chain):
        updated = _with_child(parent, index, updated)
    return updated


def _get_child(node: list | dict, index: int) -> Any:
    if isinstance(node, list):
        return node[index] if index < len(node) else None
    return node.get(str(index))


def _with_child(node: list | dict, index: int, value: Any) -> list | dict:
    """Copy *node* with *value* stored at *index*."""
    if isinstance(node, dict):
        return {**node, str(index): value}
    cloned = list(node)
    if index < len(cloned):
        cloned[index] = value
    else:
        cloned.extend([None] * (index - len(cloned)))
        cloned.append(value)
    return cloned


# ── Structural diff ──────────────────────────────────────────


def apply_structural_delta(snapshot: MessageBinaryFormat, delta: Any) -> MessageBinaryFormat:
    """Apply a jsondiffpatch delta to a copy of *snapshot*.

    On any failure the original snapshot is returned unchanged.
    """
    try:
        return json_delta.patch(copy.deepcopy(snapshot), delta)
    except DeltaApplyError as exc:
        logger.warning("Error applying structural delta: %s", exc)
        return snapshot
    except Exception:
        logger.exception("Unexpected error applying structural delta")
        return snapshot
