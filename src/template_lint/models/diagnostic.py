"""Модели диагностик.

Severity и RelatedNode используются самим движком линтера.
Position/Range/RelatedInformation/Diagnostic — итоговый вид диагностики,
который выдаёт файловый линтер и который печатает CLI.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from template_lint.models.json_node import JsonNode


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"
    HINT = "hint"

    @property
    def rank(self) -> int:
        """Чем меньше — тем серьёзнее (error=0, hint=3)."""
        return _SEVERITY_RANKS[self]

    def at_least(self, other: "Severity") -> bool:
        """True если self не менее серьёзна чем other."""
        return self.rank <= other.rank


_SEVERITY_RANKS = {
    Severity.ERROR: 0,
    Severity.WARNING: 1,
    Severity.INFORMATION: 2,
    Severity.HINT: 3,
}


@dataclass(frozen=True)
class RelatedNode:
    """Ссылка диагностики на другое место (возможно в другом документе)."""

    doc: Any
    node: JsonNode | None
    message: str


# ─── Итоговая диагностика ────────────────────────────────

class Position(BaseModel):
    """Позиция в файле, line и character считаются с нуля."""

    line: int
    character: int


class Range(BaseModel):
    start: Position
    end: Position

    @classmethod
    def empty(cls) -> "Range":
        return cls(start=Position(line=0, character=0), end=Position(line=0, character=0))


class RelatedInformation(BaseModel):
    uri: str
    range: Range
    message: str


class Diagnostic(BaseModel):
    """Одна найденная проблема.

    Пример в JSON-выводе:
        {
            "uri": "templates/app/template-info.json",
            "range": {"start": {"line": 1, "character": 2}, "end": {...}},
            "message": "Duplicate usage of path ui.json",
            "severity": "warning",
            "code": "tmpl-8",
            "source": "adx-template",
            "relatedInformation": [...]
        }
    """

    uri: str
    range: Range
    message: str
    severity: Severity
    code: str | None = None
    source: str
    args: dict[str, Any] | None = None
    related_information: list[RelatedInformation] = Field(default_factory=list, alias="relatedInformation")

    model_config = {"populate_by_name": True}
