"""Parse JSON-with-comments text into an immutable JsonNode tree.

Template files allow comments, so a strict json.loads() is not enough; the
tree-sitter JSON grammar accepts comments, keeps byte spans for every node and
recovers from syntax errors, which lets the linter still report on a partially
broken file.
"""

import bisect
import json
import re
from functools import lru_cache

from tree_sitter import Node, Parser
from tree_sitter_language_pack import get_parser

from template_lint.models.json_node import JsonNode, JsonPath, NodeType, ParseError, adopt

_VALUE_TYPES = {"object", "array", "string", "number", "true", "false", "null"}

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_RESERVED = {"true", "false", "null"}


@lru_cache(maxsize=1)
def _json_parser() -> Parser:
    return get_parser("json")


class _Source:
    """Source text plus the byte -> character offset mapping."""

    def __init__(self, text: str):
        self.text = text
        self.data = text.encode("utf-8")
        self._char_starts: list[int] | None = None
        if len(self.data) != len(text):
            starts = []
            pos = 0
            for ch in text:
                starts.append(pos)
                pos += len(ch.encode("utf-8"))
            starts.append(pos)
            self._char_starts = starts

    def char_offset(self, byte_offset: int) -> int:
        if self._char_starts is None:
            return byte_offset
        return bisect.bisect_left(self._char_starts, byte_offset)

    def span(self, node: Node) -> tuple[int, int]:
        start = self.char_offset(node.start_byte)
        return start, self.char_offset(node.end_byte) - start

    def raw(self, node: Node) -> str:
        return self.data[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def parse_tree(text: str, errors: list[ParseError] | None = None) -> JsonNode | None:
    """Parse text into a JsonNode tree.

    Returns None if the text has no json value (empty, whitespace or only comments).
    Syntax problems are appended to `errors` if it's specified; the returned tree is
    whatever could be recovered.
    """
    source = _Source(text)
    tree = _json_parser().parse(source.data)
    root = tree.root_node

    values = [child for child in root.named_children if child.type in _VALUE_TYPES]
    if errors is not None:
        _collect_errors(root, source, errors)
        for extra in values[1:]:
            offset, length = source.span(extra)
            errors.append(ParseError("End of file expected", offset, length))

    return _convert(values[0], source) if values else None


def _collect_errors(root: Node, source: _Source, errors: list[ParseError]) -> None:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR":
            offset, length = source.span(node)
            errors.append(ParseError("Syntax error", offset, length))
            continue
        if node.is_missing:
            offset, length = source.span(node)
            errors.append(ParseError(f"Missing '{node.type}'", offset, length))
            continue
        if node.has_error:
            stack.extend(reversed(node.children))
    errors.sort(key=lambda e: e.offset)


def _convert(node: Node, source: _Source) -> JsonNode | None:
    offset, length = source.span(node)
    match node.type:
        case "object":
            props = []
            for child in node.named_children:
                if child.type == "pair":
                    prop = _convert_pair(child, source)
                    if prop is not None:
                        props.append(prop)
            return adopt(JsonNode(NodeType.OBJECT, offset, length, children=tuple(props)))
        case "array":
            items = []
            for child in node.named_children:
                if child.type in _VALUE_TYPES:
                    item = _convert(child, source)
                    if item is not None:
                        items.append(item)
            return adopt(JsonNode(NodeType.ARRAY, offset, length, children=tuple(items)))
        case "string":
            return JsonNode(NodeType.STRING, offset, length, value=_decode_string(source.raw(node)))
        case "number":
            return JsonNode(NodeType.NUMBER, offset, length, value=_decode_number(source.raw(node)))
        case "true" | "false":
            return JsonNode(NodeType.BOOLEAN, offset, length, value=node.type == "true")
        case "null":
            return JsonNode(NodeType.NULL, offset, length, value=None)
    return None


def _convert_pair(pair: Node, source: _Source) -> JsonNode | None:
    key = pair.child_by_field_name("key")
    value = pair.child_by_field_name("value")
    if key is None or value is None or value.type not in _VALUE_TYPES:
        return None

    key_offset, key_length = source.span(key)
    if key.type == "string":
        key_node = JsonNode(NodeType.STRING, key_offset, key_length, value=_decode_string(source.raw(key)))
    else:
        # older grammars allow bare number keys
        key_node = JsonNode(NodeType.STRING, key_offset, key_length, value=source.raw(key))
    value_node = _convert(value, source)
    if value_node is None:
        return None

    offset, length = source.span(pair)
    return adopt(JsonNode(NodeType.PROPERTY, offset, length, children=(key_node, value_node)))


def _decode_string(raw: str) -> str:
    try:
        value = json.loads(raw, strict=False)
    except json.JSONDecodeError:
        value = None
    if isinstance(value, str):
        return value
    # broken escape sequence or unterminated string: keep the text between the quotes
    if raw.startswith('"'):
        raw = raw[1:]
    if raw.endswith('"'):
        raw = raw[:-1]
    return raw


def _decode_number(raw: str) -> int | float | None:
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, (int, float)) else None


def node_path(node: JsonNode) -> list[str | int]:
    """Get the json path from the root to the node.

    The key node and value node of a property both get the property name as the
    last segment; a property node itself has the path of its parent object.
    """
    path: list[str | int] = []
    current = node
    while current.parent is not None:
        parent = current.parent
        if parent.type is NodeType.PROPERTY:
            key = parent.key
            if key is not None:
                path.append(key.value)
        elif parent.type is NodeType.ARRAY:
            for i, child in enumerate(parent.children):
                if child is current:
                    path.append(i)
                    break
        current = parent
    path.reverse()
    return path


def json_path_to_string(path: JsonPath) -> str:
    """Format a json path like `externalFiles[0].file` or `tiles["30"]`."""
    parts: list[str] = []
    for segment in path:
        if isinstance(segment, int):
            parts.append(f"[{segment}]")
        elif _IDENTIFIER.match(segment) and segment not in _RESERVED:
            parts.append(f".{segment}" if parts else segment)
        else:
            parts.append(f"[{json.dumps(segment, ensure_ascii=False)}]")
    return "".join(parts)
