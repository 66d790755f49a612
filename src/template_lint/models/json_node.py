"""Модель разобранного JSON/JSONC дерева.

Каждый документ шаблона (template-info.json, variables.json, ui.json ...)
разбирается в дерево JsonNode. Узлы неизменяемые: дерево строится один раз
на каждый проход линтера и потом только читается.

Пример: {"name": "x"} превращается в

    object
      └─ property
           ├─ string "name"   (ключ)
           └─ string "x"      (значение)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence, Union

# Сегмент пути: имя свойства, индекс в массиве или "*"
JsonPathSegment = Union[str, int]
JsonPath = Sequence[JsonPathSegment]


class NodeType(str, Enum):
    """Закрытый набор типов узлов."""

    OBJECT = "object"
    ARRAY = "array"
    PROPERTY = "property"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"


_PRIMITIVE_TYPES = {NodeType.STRING, NodeType.NUMBER, NodeType.BOOLEAN, NodeType.NULL}


@dataclass(frozen=True, eq=False)
class JsonNode:
    """Узел дерева.

    offset/length — позиция в исходном тексте (в символах), из неё
    строятся диапазоны диагностик.

    eq=False — узлы сравниваются по identity: два одинаковых по содержимому
    узла это всё равно два разных места в файле.
    """

    type: NodeType
    offset: int
    length: int
    value: Any = None
    children: tuple["JsonNode", ...] = ()
    # обратная ссылка, выставляется один раз при сборке дерева
    parent: "JsonNode | None" = field(default=None, repr=False)

    @property
    def is_primitive(self) -> bool:
        return self.type in _PRIMITIVE_TYPES

    @property
    def key(self) -> "JsonNode | None":
        """Для property-узла — узел с именем свойства."""
        if self.type is NodeType.PROPERTY and self.children:
            return self.children[0]
        return None

    @property
    def value_node(self) -> "JsonNode | None":
        """Для property-узла — узел со значением свойства."""
        if self.type is NodeType.PROPERTY and len(self.children) > 1:
            return self.children[1]
        return None

    def to_value(self) -> Any:
        """Превратить поддерево в обычные python-значения (dict/list/str/...)."""
        match self.type:
            case NodeType.OBJECT:
                result = {}
                for prop in self.children:
                    key, value = prop.key, prop.value_node
                    if key is not None and value is not None:
                        result[key.value] = value.to_value()
                return result
            case NodeType.ARRAY:
                return [child.to_value() for child in self.children]
            case NodeType.PROPERTY:
                value = self.value_node
                return value.to_value() if value is not None else None
            case NodeType.STRING | NodeType.NUMBER | NodeType.BOOLEAN | NodeType.NULL:
                return self.value


def adopt(parent: JsonNode) -> JsonNode:
    """Проставить parent у детей только что созданного узла."""
    for child in parent.children:
        object.__setattr__(child, "parent", parent)
    return parent


@dataclass(frozen=True)
class ParseError:
    """Синтаксическая ошибка, найденная парсером."""

    message: str
    offset: int
    length: int
