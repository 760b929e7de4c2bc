"""Typed element tree produced by the message projector.

A projection is a list of elements, each discriminated by ``type``:

- ``text``:         a run of text (``data`` is the string)
- ``html``:         a generic tag with props and children
- ``component``:    the wrapper around one container node (``data`` is
                    always ``"elements"``)
- ``content-part``: an annotated assistant content part
- ``code-block``:   a fenced code block

``children`` is omitted (``None``) rather than an empty list.  Serialize
with ``model_dump(by_alias=True, exclude_none=True)`` for the UI.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import Field

from models.base import CamelModel

CONTENT_PART_TAG = "AssistantMessageContentPart"
CODE_BLOCK_TAG = "Codeblock"
TEXT_TAG = "text"
COMPONENT_DATA = "elements"


class ElementType(str, Enum):
    """Discriminator values of :data:`MessageElement`."""

    TEXT = "text"
    HTML = "html"
    COMPONENT = "component"
    CONTENT_PART = "content-part"
    CODE_BLOCK = "code-block"


# ── Element payloads ─────────────────────────────────────────


class HtmlData(CamelModel):
    tag_name: str
    props: dict[str, Any] | None = None


class ContentPartData(CamelModel):
    part: Any = None
    # Only the last content part of a container gets True; the UI uses it
    # to place the streaming cursor.
    is_last_content_part: bool = False


class CodeBlockData(CamelModel):
    language: str | None = None
    code: str = ""


# ── Elements ─────────────────────────────────────────────────


class TextElement(CamelModel):
    type: Literal["text"] = "text"
    key: str
    data: str


class HtmlElement(CamelModel):
    type: Literal["html"] = "html"
    key: str
    data: HtmlData
    children: list[MessageElement] | None = None


class ComponentElement(CamelModel):
    type: Literal["component"] = "component"
    key: str
    data: str = COMPONENT_DATA
    children: list[MessageElement] | None = None


class ContentPartElement(CamelModel):
    type: Literal["content-part"] = "content-part"
    key: str
    data: ContentPartData


class CodeBlockElement(CamelModel):
    type: Literal["code-block"] = "code-block"
    key: str
    data: CodeBlockData


MessageElement = Annotated[
    Union[TextElement, HtmlElement, ComponentElement, ContentPartElement, CodeBlockElement],
    Field(discriminator="type"),
]

HtmlElement.model_rebuild()
ComponentElement.model_rebuild()


class ParsedMessage(CamelModel):
    """Result of projecting one document snapshot."""

    elements: list[MessageElement] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return self.to_camel_dict(exclude_none=True)
