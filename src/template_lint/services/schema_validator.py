"""Валидация файлов шаблона по JSON Schema.

SchemaValidator подключается к линтеру через on_parsed_manifest и
пишет свои диагностики в тот же linter.diagnostics:
    - template-info.json — по template-info.schema.json
    - файлы-определения (variables.json, ui.json, ...) — по своим схемам
    - файлы ассетов (дашборды, рецепты, ...) — по base.schema.json,
      это в основном проверка типа корневого значения

Синтаксические ошибки JSON добавляет сам линтер, в том числе без схем.
"""

import asyncio
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema

from template_lint.constants import JSON_SCHEMA_SOURCE_ID
from template_lint.models.diagnostic import Severity
from template_lint.models.json_node import JsonNode, JsonPath
from template_lint.services.matcher import match_all, match_first

logger = logging.getLogger(__name__)

_SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"

# схема -> поле template-info.json с путём к файлу
DEFINITION_SCHEMAS: tuple[tuple[str, JsonPath], ...] = (
    ("auto-install", ("autoInstallDefinition",)),
    ("folder", ("folderDefinition",)),
    ("ui", ("uiDefinition",)),
    ("layout", ("layoutDefinition",)),
    ("readiness", ("readinessDefinition",)),
    ("rules", ("ruleDefinition",)),
    ("variables", ("variableDefinition",)),
)

ASSET_FILE_PATTERNS: tuple[JsonPath, ...] = (
    ("dashboards", "*", "file"),
    ("components", "*", "file"),
    ("lenses", "*", "file"),
    ("eltDataflows", "*", "file"),
    ("storedQueries", "*", "file"),
    ("extendedTypes", "*", "*", "file"),
    ("recipes", "*", "file"),
    ("externalFiles", "*", "schema"),
    ("externalFiles", "*", "userXmd"),
    ("datasetFiles", "*", "userXmd"),
    ("datasetFiles", "*", "conversionMetadata"),
)


@lru_cache(maxsize=None)
def load_schema(name: str) -> dict:
    """Загрузить схему из пакета по имени (template-info, ui, ...)."""
    return json.loads((_SCHEMAS_DIR / f"{name}.schema.json").read_text(encoding="utf-8"))


@lru_cache(maxsize=None)
def _validator(name: str) -> jsonschema.Draft7Validator:
    return jsonschema.Draft7Validator(load_schema(name))


def validate_json(value: Any, schema_name: str) -> list[jsonschema.ValidationError]:
    """Ошибки схемы, отсортированные по пути (пустой список если всё валидно)."""
    errors = _validator(schema_name).iter_errors(value)
    return sorted(errors, key=lambda e: [str(p) for p in e.absolute_path])


def format_schema_error(error: jsonschema.ValidationError) -> str:
    path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
    return f"{path}: {error.message}"


class SchemaValidator:
    """Наблюдатель on_parsed_manifest: (doc, tree, linter) -> корутина."""

    async def __call__(self, doc: Any, tree: JsonNode | None, linter: Any) -> None:
        validated: set = set()
        self._validate(linter, doc, tree, "template-info", validated)
        if tree is None:
            return

        targets: list[tuple[str, JsonPath | JsonNode]] = list(DEFINITION_SCHEMAS)
        targets.extend(("rules", node) for node in match_all(tree, ["rules", "*", "file"]))
        for pattern in ASSET_FILE_PATTERNS:
            targets.extend(("base", node) for node in match_all(tree, pattern))

        entries = await asyncio.gather(*(linter.load_rel_path(tree, target) for _, target in targets))
        for (schema_name, _), entry in zip(targets, entries):
            if entry.doc is not None:
                self._validate(linter, entry.doc, entry.json, schema_name, validated)

    def _validate(self, linter: Any, doc: Any, tree: JsonNode | None, schema_name: str, validated: set) -> None:
        # один и тот же файл может быть указан в нескольких полях
        if doc in validated:
            return
        validated.add(doc)

        if tree is None:
            return
        for error in validate_json(tree.to_value(), schema_name):
            logger.debug("%s: %s", getattr(doc, "location", doc), format_schema_error(error))
            node = match_first(tree, list(error.absolute_path)) or tree
            linter.add_diagnostic(doc, error.message, str(error.validator), node, severity=Severity.WARNING,
                                  source=JSON_SCHEMA_SOURCE_ID)
