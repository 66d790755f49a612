"""Поиск узлов JSON-дерева по шаблону пути.

Шаблон — последовательность сегментов:
    "name"  — свойство объекта с таким именем
    3       — элемент массива по индексу
    "*"     — все элементы массива или значения всех свойств объекта

Пример:
    match_all(tree, ["pages", "*", "variables", "*", "name"])
"""

from typing import Callable, Iterator, Sequence, Union

from template_lint.models.json_node import JsonNode, JsonPath, NodeType

Roots = Union[JsonNode, Sequence[JsonNode], None]
# visitor, вернувший ровно False, отклоняет кандидата; обход при этом продолжается
Visitor = Callable[[JsonNode], object]


def iter_matches(roots: Roots, pattern: JsonPath) -> Iterator[JsonNode]:
    """Лениво отдавать узлы, подходящие под шаблон, в порядке обхода."""
    if roots is None:
        return
    if isinstance(roots, JsonNode):
        yield from _walk(roots, pattern, 0)
    else:
        for root in roots:
            yield from _walk(root, pattern, 0)


def _walk(node: JsonNode, pattern: JsonPath, index: int) -> Iterator[JsonNode]:
    if index >= len(pattern):
        yield node
        return

    segment = pattern[index]
    if segment == "*":
        if node.type is NodeType.ARRAY:
            for child in node.children:
                yield from _walk(child, pattern, index + 1)
        elif node.type is NodeType.OBJECT:
            for prop in node.children:
                value = prop.value_node
                if value is not None:
                    yield from _walk(value, pattern, index + 1)
    elif isinstance(segment, int):
        if node.type is NodeType.ARRAY and 0 <= segment < len(node.children):
            yield from _walk(node.children[segment], pattern, index + 1)
    elif node.type is NodeType.OBJECT:
        for prop in node.children:
            key = prop.key
            value = prop.value_node
            if key is not None and value is not None and key.value == segment:
                yield from _walk(value, pattern, index + 1)


def match_all(roots: Roots, pattern: JsonPath, visitor: Visitor | None = None) -> list[JsonNode]:
    """Все узлы под шаблоном; пустой шаблон на списке корней возвращает этот список."""
    return [node for node in iter_matches(roots, pattern) if visitor is None or visitor(node) is not False]


def match_first(roots: Roots, pattern: JsonPath, visitor: Visitor | None = None) -> JsonNode | None:
    """Первый узел под шаблоном, который visitor не отклонил.

    Обход останавливается на первом найденном узле.
    """
    for node in iter_matches(roots, pattern):
        if visitor is None or visitor(node) is not False:
            return node
    return None
