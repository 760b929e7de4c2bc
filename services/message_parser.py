"""Message projector — document snapshot → typed element tree.

Turns the generic ``[kind, payload]`` snapshot reconstructed by the stream
framer into :mod:`models.message_elements` for rendering.  Keys are a pure
function of structural position (``{message_id}-{node}-{item}`` and
``...-child-{n}`` for nested tags), so re-projecting a growing snapshot
keeps the keys of every node that was already there.

Malformed nodes never raise: they are dropped from the output, as are
tags nested more than ``MAX_ELEMENT_DEPTH`` levels deep.
"""

from __future__ import annotations

import logging
from typing import Any

from config.settings import get_settings
from models.message_elements import (
    CODE_BLOCK_TAG,
    CONTENT_PART_TAG,
    TEXT_TAG,
    CodeBlockData,
    CodeBlockElement,
    ComponentElement,
    ContentPartData,
    ContentPartElement,
    HtmlData,
    HtmlElement,
    MessageElement,
    ParsedMessage,
    TextElement,
)

logger = logging.getLogger(__name__)

CONTAINER_KIND = 0

# Tags nested deeper than this inside a container are dropped
MAX_ELEMENT_DEPTH = 64


def parse_message(content: Any, message_id: str | None = None) -> ParsedMessage:
    """Project a document snapshot into a :class:`ParsedMessage`.

    Args:
        content: The snapshot — a list of ``[kind, payload]`` nodes.
        message_id: Key prefix; defaults to ``Settings.default_message_id``.
    """
    if message_id is None:
        message_id = get_settings().default_message_id

    if not isinstance(content, list):
        logger.warning(
            "Message content must be a list of nodes, got %s", type(content).__name__
        )
        return ParsedMessage(elements=[])

    elements: list[MessageElement] = []
    for index, node in enumerate(content):
        if not isinstance(node, list) or not node:
            logger.debug("Skipping malformed node at index %d", index)
            continue
        kind = node[0]
        if not _is_container_kind(kind):
            continue
        payload = node[1] if len(node) > 1 else None
        element = _process_container(payload, f"{message_id}-{index}")
        if element is not None:
            elements.append(element)

    return ParsedMessage(elements=elements)


def _is_container_kind(kind: Any) -> bool:
    return isinstance(kind, int) and not isinstance(kind, bool) and kind == CONTAINER_KIND


def _is_content_part(item: Any) -> bool:
    return isinstance(item, list) and bool(item) and item[0] == CONTENT_PART_TAG


def _process_container(items: Any, key_prefix: str) -> ComponentElement | None:
    if not isinstance(items, list):
        return None

    content_part_indices = [i for i, item in enumerate(items) if _is_content_part(item)]
    last_content_part = content_part_indices[-1] if content_part_indices else None

    children = []
    for index, item in enumerate(items):
        element = _process_element(item, f"{key_prefix}-{index}", index == last_content_part)
        if element is not None:
            children.append(element)

    return ComponentElement(key=key_prefix, children=children or None)


def _process_element(
    value: Any, key: str, is_last_content_part: bool, depth: int = 0
) -> MessageElement | None:
    if isinstance(value, str):
        return TextElement(key=key, data=value)

    if not isinstance(value, list) or not value:
        return None
    if depth > MAX_ELEMENT_DEPTH:
        logger.debug("Dropping element nested deeper than %d: %s", MAX_ELEMENT_DEPTH, key)
        return None

    tag_name = value[0]
    props = value[1] if len(value) > 1 else None
    children = value[2:]
    if not tag_name or not isinstance(tag_name, str):
        return None
    props_dict = props if isinstance(props, dict) else None

    if tag_name == CONTENT_PART_TAG:
        return ContentPartElement(
            key=key,
            data=ContentPartData(
                part=props_dict.get("part") if props_dict else None,
                is_last_content_part=is_last_content_part,
            ),
        )

    if tag_name == CODE_BLOCK_TAG:
        language = props_dict.get("lang") if props_dict else None
        return CodeBlockElement(
            key=key,
            data=CodeBlockData(
                language=language if isinstance(language, str) else None,
                code=_first_text(children),
            ),
        )

    if tag_name == TEXT_TAG:
        return TextElement(key=key, data=_first_text(children))

    processed = []
    for child_index, child in enumerate(children):
        element = _process_element(
            child, f"{key}-child-{child_index}", is_last_content_part, depth + 1
        )
        if element is not None:
            processed.append(element)

    return HtmlElement(
        key=key,
        data=HtmlData(tag_name=tag_name, props=props_dict),
        children=processed or None,
    )


def _first_text(children: list[Any]) -> str:
    first = children[0] if children else None
    return first if isinstance(first, str) else ""
