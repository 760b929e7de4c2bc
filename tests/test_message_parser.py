"""Tests for services/message_parser.py — snapshot → typed element tree."""

from __future__ import annotations

import logging

from models.message_elements import (
    CodeBlockElement,
    ComponentElement,
    ContentPartElement,
    ElementType,
    HtmlElement,
    ParsedMessage,
    TextElement,
)
from services.message_parser import MAX_ELEMENT_DEPTH, parse_message


def _keys(elements) -> list[str]:
    """Flatten an element tree into its keys, depth-first."""
    keys = []
    for element in elements:
        keys.append(element.key)
        keys.extend(_keys(getattr(element, "children", None) or []))
    return keys


# ── Top level ────────────────────────────────────────────────


class TestTopLevel:
    def test_projection_example(self):
        snapshot = [[0, ["hello", ["AssistantMessageContentPart", {"part": {"type": "x"}}]]]]
        result = parse_message(snapshot, "m")

        assert len(result.elements) == 1
        component = result.elements[0]
        assert isinstance(component, ComponentElement)
        assert component.key == "m-0"
        assert component.data == "elements"

        text, part = component.children
        assert isinstance(text, TextElement)
        assert (text.key, text.data) == ("m-0-0", "hello")
        assert isinstance(part, ContentPartElement)
        assert part.key == "m-0-1"
        assert part.data.part == {"type": "x"}
        assert part.data.is_last_content_part is True

    def test_non_list_content(self, caplog):
        with caplog.at_level(logging.WARNING, logger="services.message_parser"):
            result = parse_message({"not": "a list"}, "m")
        assert result.elements == []
        assert "must be a list" in caplog.text

    def test_non_container_kinds_dropped(self):
        result = parse_message([[1, {"meta": True}], [0, ["a"]], [2, ["b"]]], "m")
        assert [e.key for e in result.elements] == ["m-1"]

    def test_false_is_not_container_kind(self):
        assert parse_message([[False, ["a"]]], "m").elements == []

    def test_malformed_nodes_dropped(self):
        result = parse_message(["loose", [], [0], [0, "not a list"], [0, []]], "m")
        assert [e.key for e in result.elements] == ["m-4"]
        assert result.elements[0].children is None

    def test_default_message_id(self):
        result = parse_message([[0, ["a"]]])
        assert result.elements[0].key == "message-0"

    def test_empty_snapshot(self):
        assert parse_message([], "m") == ParsedMessage(elements=[])


# ── Element kinds ────────────────────────────────────────────


class TestElementKinds:
    def test_code_block(self):
        result = parse_message([[0, [["Codeblock", {"lang": "ts"}, "let x = 1", "ignored"]]]], "m")
        block = result.elements[0].children[0]
        assert isinstance(block, CodeBlockElement)
        assert block.type == ElementType.CODE_BLOCK.value
        assert block.data.language == "ts"
        assert block.data.code == "let x = 1"

    def test_code_block_without_code(self):
        block = parse_message([[0, [["Codeblock", {}]]]], "m").elements[0].children[0]
        assert block.data.code == ""
        assert block.data.language is None

    def test_text_tag(self):
        element = parse_message([[0, [["text", {}, "inline"]]]], "m").elements[0].children[0]
        assert isinstance(element, TextElement)
        assert element.data == "inline"

    def test_text_tag_without_child(self):
        element = parse_message([[0, [["text", None]]]], "m").elements[0].children[0]
        assert element.data == ""

    def test_content_part_is_leaf(self):
        snapshot = [[0, [["AssistantMessageContentPart", {"part": {"type": "task"}}, "child"]]]]
        element = parse_message(snapshot, "m").elements[0].children[0]
        assert isinstance(element, ContentPartElement)
        assert not hasattr(element, "children")

    def test_content_part_without_props(self):
        element = parse_message([[0, [["AssistantMessageContentPart"]]]], "m").elements[0].children[0]
        assert element.data.part is None

    def test_generic_tag_with_children(self):
        snapshot = [[0, [["p", {"class": "lead"}, "Hi ", ["strong", {}, "there"], 42]]]]
        element = parse_message(snapshot, "m").elements[0].children[0]
        assert isinstance(element, HtmlElement)
        assert element.key == "m-0-0"
        assert element.data.tag_name == "p"
        assert element.data.props == {"class": "lead"}
        assert [c.key for c in element.children] == ["m-0-0-child-0", "m-0-0-child-1"]
        strong = element.children[1]
        assert strong.data.tag_name == "strong"
        assert strong.children[0].key == "m-0-0-child-1-child-0"

    def test_generic_tag_without_children(self):
        element = parse_message([[0, [["br", {}]]]], "m").elements[0].children[0]
        assert element.children is None

    def test_invalid_tags_dropped(self):
        snapshot = [[0, [["", {}], [None, {}], [5, {}], 7, None, {"a": 1}, "kept"]]]
        children = parse_message(snapshot, "m").elements[0].children
        assert [(c.key, c.data) for c in children] == [("m-0-6", "kept")]

    def test_deep_nesting_is_truncated(self):
        deep = "leaf"
        for _ in range(3000):
            deep = ["div", {}, deep]

        node = parse_message([[0, [deep]]], "m").elements[0].children[0]
        depth = 0
        while node.children:
            node = node.children[0]
            depth += 1
        assert depth == MAX_ELEMENT_DEPTH
        assert node.data.tag_name == "div"


# ── Content-part flag ────────────────────────────────────────


class TestLastContentPart:
    def test_only_last_part_flagged(self):
        def part(n):
            return ["AssistantMessageContentPart", {"part": {"n": n}}]

        snapshot = [[0, [part(1), "between", part(2), part(3)]]]
        children = parse_message(snapshot, "m").elements[0].children
        flags = [c.data.is_last_content_part for c in children if isinstance(c, ContentPartElement)]
        assert flags == [False, False, True]

    def test_flag_scoped_per_container(self):
        part = ["AssistantMessageContentPart", {"part": {}}]
        snapshot = [[0, [part, part]], [0, [part]]]
        first, second = parse_message(snapshot, "m").elements
        assert [c.data.is_last_content_part for c in first.children] == [False, True]
        assert second.children[0].data.is_last_content_part is True

    def test_nested_html_inherits_flag(self):
        snapshot = [[0, [["div", {}, ["AssistantMessageContentPart", {"part": {}}]]]]]
        div = parse_message(snapshot, "m").elements[0].children[0]
        # The div is not itself a content part, so it passes False down
        assert div.children[0].data.is_last_content_part is False


# ── Key stability ────────────────────────────────────────────


class TestKeyStability:
    def test_same_snapshot_same_keys(self):
        snapshot = [[0, ["a", ["p", {}, "b", ["em", {}, "c"]]]]]
        assert parse_message(snapshot, "m") == parse_message(snapshot, "m")

    def test_growing_snapshot_keeps_keys(self):
        before = [[0, ["a", ["p", {}, "b"]]]]
        after = [
            [0, ["a", ["p", {}, "b", ["em", {}, "c"]], ["Codeblock", {"lang": "py"}, "x"]]],
            [0, ["next"]],
        ]
        old_keys = _keys(parse_message(before, "m").elements)
        new_keys = _keys(parse_message(after, "m").elements)
        assert set(old_keys) <= set(new_keys)
        assert new_keys[: len(old_keys)] == old_keys


# ── Serialization ────────────────────────────────────────────


def test_to_dict_camel_case_and_omits_empty_children():
    snapshot = [[0, [["AssistantMessageContentPart", {"part": {"type": "x"}}], ["br", {}]]]]
    data = parse_message(snapshot, "m").to_dict()
    assert data == {
        "elements": [
            {
                "type": "component",
                "key": "m-0",
                "data": "elements",
                "children": [
                    {
                        "type": "content-part",
                        "key": "m-0-0",
                        "data": {"part": {"type": "x"}, "isLastContentPart": True},
                    },
                    {
                        "type": "html",
                        "key": "m-0-1",
                        "data": {"tagName": "br", "props": {}},
                    },
                ],
            }
        ]
    }
