"""Движок семантического линтера шаблонов.

TemplateLinter читает template-info.json, по относительным путям из него
подгружает связанные файлы (variables.json, ui.json, layout.json, ...) и
проверяет то, чего не может проверить JSON Schema: ссылки между файлами,
дубликаты имён, типы переменных, регулярные выражения в excludes и
правила для конкретного templateType.

Работа с файлами и формат диагностик вынесены в абстрактные методы;
конкретные реализации — FileTemplateLinter (файловая система) и
InMemoryLinter в тестах.

Каждый вызов lint() — полный проход с нуля, состояние прошлого прохода
сбрасывается.
"""

import asyncio
import inspect
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Iterator, Protocol, Sequence

from template_lint.constants import (
    ALL_REL_FILE_PATTERNS,
    ASSET_ATTR_PATHS,
    CSV_REL_FILE_PATTERNS,
    DEFINITION_FILE_PATTERNS,
    JSON_REL_FILE_PATTERNS,
    JSON_SOURCE_ID,
    LAYOUT_ITEM_PATTERNS,
    LINTER_MAX_EXTERNAL_FILE_SIZE,
    LINTER_SOURCE_ID,
    TEMPLATE_INFO_FILENAME,
    ErrorCode,
)
from template_lint.models.diagnostic import RelatedNode, Severity
from template_lint.models.json_node import JsonNode, JsonPath, NodeType, ParseError
from template_lint.services.fuzzy import fuzzy_searcher
from template_lint.services.json_parser import parse_tree
from template_lint.services.matcher import Roots, match_all, match_first
from template_lint.services.validators import is_valid_relpath, is_valid_variable_name

logger = logging.getLogger(__name__)

_VALID_REGEX_OPTIONS = re.compile(r"^[gimsuy]+$")
_DUPLICATE_REGEX_OPTION = re.compile(r"(.).*\1")
# g, u и y на компиляцию не влияют
_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}

_TILES_VARIANTS = ("CheckboxTiles", "CenteredCheckboxTiles")
_UNSUPPORTED_PAGE_VARIABLE_TYPES = ("ObjectType", "DateTimeType")


class LintInProgressError(RuntimeError):
    """lint() вызван повторно, пока предыдущий проход ещё не закончился."""


class TemplateDocument(Protocol):
    """Документ шаблона: location плюс текст (get_text может быть корутиной)."""

    location: Any

    def get_text(self) -> str | Awaitable[str]: ...


@dataclass(frozen=True)
class JsonCacheEntry:
    """Результат загрузки одного относительного пути за проход.

    location задан если путь валидный, doc — если файл удалось открыть,
    json — если в файле есть json-значение, error — если файл открылся,
    но прочитать его не получилось.
    """

    location: Any = None
    doc: Any = None
    json: JsonNode | None = None
    errors: tuple[ParseError, ...] = ()
    # файл открылся, но текст прочитать не удалось
    error: str | None = None


@dataclass(frozen=True)
class VariableType:
    """Тип переменной из variables.json; для ArrayType — тип элементов и is_array=True."""

    type: str
    is_array: bool = False
    definition: JsonNode | None = None


ManifestObserver = Callable[[Any, JsonNode | None, "TemplateLinter"], Any]
UniqueMessage = str | Callable[[str, Any, JsonNode], str]


def find_primitive_value(tree: Roots, *pattern: str | int) -> tuple[Any, JsonNode | None]:
    """Значение первого узла по шаблону, если это примитив; и сам узел."""
    node = match_first(tree, pattern)
    if node is not None and node.is_primitive:
        return node.value, node
    return None, node


def find_array_value(tree: Roots, *pattern: str | int) -> tuple[tuple[JsonNode, ...] | None, JsonNode | None]:
    node = match_first(tree, pattern)
    if node is not None and node.type is NodeType.ARRAY:
        return node.children, node
    return None, node


def array_length(tree: Roots, *pattern: str | int) -> tuple[int, JsonNode | None]:
    """Длина массива по шаблону, -1 если узла нет или это не массив."""
    items, node = find_array_value(tree, *pattern)
    return (len(items) if items is not None else -1), node


def _template_type(tree: JsonNode) -> tuple[str | None, JsonNode | None]:
    """templateType в нижнем регистре ('app' если не задан); None если задан не строкой."""
    value, node = find_primitive_value(tree, "templateType")
    if node is None:
        return "app", None
    if isinstance(value, str) and value:
        return value.lower(), node
    return None, node


def _property_node(node: JsonNode | None) -> JsonNode | None:
    """Для значения свойства вернуть весь property-узел ("name": value)."""
    if node is not None and node.parent is not None and node.parent.type is NodeType.PROPERTY:
        return node.parent
    return node


def _enum_text(node: JsonNode) -> str | None:
    if node.type is NodeType.STRING:
        return node.value
    if node.type is NodeType.NUMBER and node.value is not None:
        value = node.value
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value)
    return None


async def _document_text(doc: TemplateDocument) -> str:
    text = doc.get_text()
    if inspect.isawaitable(text):
        text = await text
    return text


class TemplateLinter(ABC):
    """Базовый линтер шаблона.

    Пример использования (через конкретную реализацию):
        linter = FileTemplateLinter(Path("templates/app/template-info.json"))
        await linter.lint()
        for doc, diagnostics in linter.diagnostics.items():
            ...
    """

    def __init__(self, manifest_doc: TemplateDocument, dir: Any = None,
                 max_external_file_size: int = LINTER_MAX_EXTERNAL_FILE_SIZE):
        self.manifest_doc = manifest_doc
        self.dir = dir if dir is not None else self.parent_of(manifest_doc.location)
        self.max_external_file_size = max_external_file_size
        # диагностики последнего прохода по документам, в порядке добавления
        self.diagnostics: dict[Any, list[Any]] = {}
        # синтаксические ошибки template-info.json последнего прохода
        self.manifest_errors: list[ParseError] = []
        self._observers: list[ManifestObserver] = []
        # relpath -> задача загрузки; одна на путь за проход
        self._json_cache: dict[str, asyncio.Future] = {}
        # документы, синтаксические ошибки которых уже добавлены за проход
        self._syntax_reported: set = set()
        self._linting = False

    # ─── Адаптер: реализуется в наследниках ──────────────────

    @abstractmethod
    def parent_of(self, location: Any) -> Any:
        """Родительская папка location."""

    @abstractmethod
    def base_name_of(self, location: Any) -> str:
        """Имя файла или папки."""

    @abstractmethod
    def join_relative(self, dir: Any, relpath: str) -> Any:
        """location для relpath внутри dir."""

    @abstractmethod
    async def is_file(self, location: Any) -> bool | None:
        """True — файл, False — есть, но не файл, None — не существует."""

    @abstractmethod
    async def file_size(self, location: Any) -> int | None:
        """Размер файла в байтах, None если файла нет."""

    @abstractmethod
    async def open(self, location: Any) -> TemplateDocument:
        """Открыть документ; должен бросать исключение, если это невозможно."""

    @abstractmethod
    def create_diagnostic(self, doc: Any, message: str, code: str, node: JsonNode | None, severity: Severity,
                          args: dict[str, Any] | None, related_information: list[RelatedNode] | None,
                          source: str) -> Any:
        """Собрать диагностику в формате конкретной реализации."""

    # ─── Публичный API ───────────────────────────────────────

    def reset(self) -> None:
        self.diagnostics.clear()
        self.manifest_errors = []
        self._json_cache.clear()
        self._syntax_reported.clear()

    def on_parsed_manifest(self, callback: ManifestObserver) -> None:
        """Зарегистрировать callback(doc, tree, linter), который вызывается после разбора
        template-info.json и до проверок. Может вернуть awaitable — lint() его дождётся."""
        if callback not in self._observers:
            self._observers.append(callback)

    def add_diagnostic(self, doc: Any, message: str, code: ErrorCode | str | None, node: JsonNode | None = None, *,
                       severity: Severity = Severity.WARNING, args: dict[str, Any] | None = None,
                       related_information: list[RelatedNode] | None = None,
                       source: str = LINTER_SOURCE_ID) -> Any:
        if isinstance(code, ErrorCode):
            code = code.value
        diagnostic = self.create_diagnostic(doc, message, code, node, severity, args, related_information, source)
        self.diagnostics.setdefault(doc, []).append(diagnostic)
        return diagnostic

    async def lint(self) -> "TemplateLinter":
        if self._linting:
            raise LintInProgressError("lint() is already running for this template")
        self._linting = True
        try:
            self.reset()
            try:
                text = await _document_text(self.manifest_doc)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Unable to read %s: %s", self.manifest_doc.location, e)
                self.add_diagnostic(self.manifest_doc, f"Unable to read file: {e}", ErrorCode.TMPL_UNREADABLE_FILE,
                                    severity=Severity.ERROR)
                return self
            errors: list[ParseError] = []
            tree = parse_tree(text, errors)
            self.manifest_errors = errors
            self.add_syntax_errors(self.manifest_doc, errors)
            await self._fire_on_parsed_manifest(tree)

            if tree is None:
                # пустой файл или только пробелы/комментарии
                self.add_diagnostic(self.manifest_doc, "File does not contain template json", ErrorCode.TMPL_EMPTY_FILE,
                                    severity=Severity.ERROR)
            else:
                await asyncio.gather(
                    self._lint_template_info(tree),
                    self._lint_auto_install(tree),
                    self._lint_variables(tree),
                    self._lint_ui(tree),
                    self._lint_layout(tree),
                    self._lint_readiness(tree),
                    self._lint_rules(tree),
                )
        finally:
            self._linting = False
        return self

    def add_syntax_errors(self, doc: Any, errors: Sequence[ParseError]) -> None:
        """Синтаксические ошибки документа, не больше одного раза за проход."""
        key = getattr(doc, "location", doc)
        if not errors or key in self._syntax_reported:
            return
        self._syntax_reported.add(key)
        for error in errors:
            # узел-заглушка, только чтобы передать позицию ошибки
            span = JsonNode(NodeType.NULL, error.offset, error.length)
            self.add_diagnostic(doc, error.message, None, span, severity=Severity.ERROR, source=JSON_SOURCE_ID)

    async def _fire_on_parsed_manifest(self, tree: JsonNode | None) -> None:
        pending = []
        for callback in list(self._observers):
            result = callback(self.manifest_doc, tree, self)
            if inspect.isawaitable(result):
                pending.append(result)
        if pending:
            await asyncio.gather(*pending)

    # ─── Загрузка связанных файлов ───────────────────────────

    async def load_rel_path(self, tree: JsonNode, pattern_or_node: JsonPath | JsonNode) -> JsonCacheEntry:
        """Открыть и разобрать файл по относительному пути из поля template-info.json.

        Результат кэшируется по строке пути на время прохода. Ошибки открытия
        и чтения здесь не репортятся, это делает проверка относительных путей;
        синтаксические ошибки добавляются сразу.
        """
        if isinstance(pattern_or_node, JsonNode):
            node = pattern_or_node
        else:
            node = match_first(tree, pattern_or_node)
        relpath = node.value if node is not None and node.type is NodeType.STRING else None
        if not is_valid_relpath(relpath):
            return JsonCacheEntry()

        task = self._json_cache.get(relpath)
        if task is None:
            task = asyncio.ensure_future(self._load_json(relpath))
            self._json_cache[relpath] = task
        return await task

    async def _load_json(self, relpath: str) -> JsonCacheEntry:
        location = self.join_relative(self.dir, relpath)
        try:
            doc = await self.open(location)
        except Exception as e:
            # отсутствие файла репортит _lint_rel_file_path
            logger.debug("Unable to open %s: %s", relpath, e)
            return JsonCacheEntry(location=location)
        try:
            text = await _document_text(doc)
        except Exception as e:
            logger.debug("Unable to read %s: %s", relpath, e)
            return JsonCacheEntry(location=location, doc=doc, error=str(e))
        errors: list[ParseError] = []
        json = parse_tree(text, errors)
        self.add_syntax_errors(doc, errors)
        return JsonCacheEntry(location=location, doc=doc, json=json, errors=tuple(errors))

    async def load_variable_types(self, tree: JsonNode) -> dict[str, VariableType] | None:
        """Загрузить variableDefinition: имя переменной -> VariableType.

        None если variableDefinition не задан, не читается или пустой.
        """
        entry = await self.load_rel_path(tree, ["variableDefinition"])
        variables = entry.json
        if variables is None or variables.type is not NodeType.OBJECT or not variables.children:
            return None

        types: dict[str, VariableType] = {}
        for prop in variables.children:
            key, definition = prop.key, prop.value_node
            if key is None or key.type is not NodeType.STRING or not key.value:
                continue
            var_type, _ = find_primitive_value(definition, "variableType", "type")
            if isinstance(var_type, str) and var_type.lower() == "arraytype":
                items_type, _ = find_primitive_value(definition, "variableType", "itemsType", "type")
                types[key.value] = VariableType(
                    items_type if isinstance(items_type, str) and items_type else "StringType", True, definition
                )
            else:
                types[key.value] = VariableType(
                    var_type if isinstance(var_type, str) and var_type else "StringType", False, definition
                )
        return types

    # ─── Дубликаты ───────────────────────────────────────────

    def lint_unique_values(self, sources: Sequence[tuple[Any, Roots]],
                           patterns: JsonPath | Sequence[JsonPath], message: UniqueMessage, code: ErrorCode, *,
                           related_message: UniqueMessage | None = "Other usage",
                           compute_value: Callable[[JsonNode, Any], str | None] | None = None,
                           severity: Severity = Severity.WARNING) -> None:
        """Найти повторяющиеся значения по шаблонам в (doc, tree) источниках.

        На каждое вхождение повторяющегося значения — одна диагностика, со ссылками
        на все остальные вхождения (если related_message не None).
        """
        if patterns and isinstance(patterns[0], (list, tuple)):
            paths = list(patterns)
        else:
            paths = [patterns]
        if compute_value is None:
            compute_value = _string_value

        values: dict[str, list[tuple[Any, JsonNode]]] = {}
        for doc, tree in sources:
            for path in paths:
                for node in match_all(tree, path):
                    value = compute_value(node, doc)
                    if value:
                        values.setdefault(value, []).append((doc, node))

        for value, matches in values.items():
            if len(matches) < 2:
                continue
            for doc, node in matches:
                related = None
                if related_message is not None:
                    related = [
                        RelatedNode(other_doc, other_node, _message(related_message, value, other_doc, other_node))
                        for other_doc, other_node in matches
                        if other_node is not node
                    ]
                self.add_diagnostic(doc, _message(message, value, doc, node), code, node,
                                    severity=severity, related_information=related)

    # ─── template-info.json ──────────────────────────────────

    async def _lint_template_info(self, tree: JsonNode) -> None:
        doc = self.manifest_doc
        self._lint_asset_version(doc, tree)
        self._lint_name(doc, tree)
        self._lint_rules_and_rule_definition(doc, tree)
        self._lint_icons(doc, tree)
        self._lint_layout_definition(doc, tree)

        source = [(doc, tree)]
        # два поля не должны указывать на один файл-определение
        self.lint_unique_values(source, DEFINITION_FILE_PATTERNS, lambda relpath, *_: f"Duplicate usage of path {relpath}",
                                ErrorCode.TMPL_DUPLICATE_REL_PATH)

        for asset_type, paths in _UNIQUE_NAME_PATHS:
            self.lint_unique_values(source, paths, lambda name, *_, t=asset_type: f"Duplicate {t} name '{name}'",
                                    ErrorCode.TMPL_DUPLICATE_NAME)
        for asset_type, path in _UNIQUE_LABEL_PATHS:
            self.lint_unique_values(source, path, lambda label, *_, t=asset_type: f"Duplicate {t} label '{label}'",
                                    ErrorCode.TMPL_DUPLICATE_LABEL)

        await asyncio.gather(
            *(self._lint_rel_file_path(doc, tree, pattern) for pattern in ALL_REL_FILE_PATTERNS),
            self._lint_external_file_sizes(doc, tree),
            self._lint_template_info_by_type(doc, tree),
            self._lint_auto_install_definition(doc, tree),
        )

    async def _lint_rel_file_path(self, doc: Any, tree: JsonNode, pattern: JsonPath) -> None:
        checks = []
        for node in match_all(tree, pattern):
            # не строку отловит JSON Schema
            if node.type is not NodeType.STRING:
                continue
            relpath = node.value or ""
            if not relpath or relpath.startswith("/") or relpath.startswith("../"):
                self.add_diagnostic(doc, "Value should be a path relative to this file",
                                    ErrorCode.TMPL_INVALID_REL_PATH, node)
            elif "/../" in relpath or relpath.endswith("/.."):
                self.add_diagnostic(doc, "Path should not contain '..' parts", ErrorCode.TMPL_INVALID_REL_PATH, node)
            elif relpath == TEMPLATE_INFO_FILENAME:
                self.add_diagnostic(doc, f"Path cannot be '{TEMPLATE_INFO_FILENAME}'",
                                    ErrorCode.TMPL_INVALID_REL_PATH, node)
            else:
                checks.append(self._check_rel_file(doc, tree, node, relpath, pattern in JSON_REL_FILE_PATTERNS))
        await asyncio.gather(*checks)

    async def _check_rel_file(self, doc: Any, tree: JsonNode, node: JsonNode, relpath: str, is_json: bool) -> None:
        location = self.join_relative(self.parent_of(doc.location), relpath)
        try:
            is_file = await self.is_file(location)
        except Exception:
            logger.warning("Unable to check path %s", relpath, exc_info=True)
            self.add_diagnostic(doc, "Unable to check specified path", ErrorCode.TMPL_REL_PATH_UNREADABLE, node,
                                args={"relPath": relpath})
            return
        if is_file is None:
            self.add_diagnostic(doc, "Specified file does not exist in workspace", ErrorCode.TMPL_REL_PATH_NOT_EXIST,
                                node, args={"relPath": relpath})
        elif not is_file:
            self.add_diagnostic(doc, "Specified path is not a file", ErrorCode.TMPL_REL_PATH_NOT_FILE, node)
        elif is_json:
            entry = await self.load_rel_path(tree, node)
            if entry.error is not None:
                self.add_diagnostic(doc, f"Unable to read specified file: {entry.error}",
                                    ErrorCode.TMPL_REL_PATH_UNREADABLE, node, args={"relPath": relpath})

    async def _lint_external_file_sizes(self, doc: Any, tree: JsonNode) -> None:
        nodes = [
            node for pattern in CSV_REL_FILE_PATTERNS for node in match_all(tree, pattern)
            if node.type is NodeType.STRING and is_valid_relpath(node.value)
        ]
        sizes = await asyncio.gather(
            *(self._external_file_size(doc, node.value) for node in nodes)
        )
        for node, size in zip(nodes, sizes):
            if size is not None and size > self.max_external_file_size:
                self.add_diagnostic(
                    doc,
                    f"File is larger than the maximum supported size of {self.max_external_file_size} bytes",
                    ErrorCode.TMPL_EXTERNAL_FILE_TOO_BIG,
                    node,
                    args={"relPath": node.value, "size": size, "maxSize": self.max_external_file_size},
                )

    async def _external_file_size(self, doc: Any, relpath: str) -> int | None:
        location = self.join_relative(self.parent_of(doc.location), relpath)
        try:
            return await self.file_size(location)
        except Exception as e:
            logger.debug("Unable to get size of %s: %s", relpath, e)
            return None

    def _lint_asset_version(self, doc: Any, tree: JsonNode) -> None:
        # рецептам нужен assetVersion >= 47.0; отсутствие или не число ловит JSON Schema
        asset_version, node = find_primitive_value(tree, "assetVersion")
        if node is None or isinstance(asset_version, bool) or not isinstance(asset_version, (int, float)):
            return
        if asset_version < 47.0:
            count, recipes = array_length(tree, "recipes")
            if count > 0:
                self.add_diagnostic(doc, "Recipes require an assetVersion of at least 47.0",
                                    ErrorCode.TMPL_RECIPES_MIN_ASSET_VERSION, node,
                                    related_information=[RelatedNode(doc, recipes, "Recipes array")])

    def _lint_name(self, doc: Any, tree: JsonNode) -> None:
        name, node = find_primitive_value(tree, "name")
        if isinstance(name, str) and name:
            dirname = self.base_name_of(self.parent_of(doc.location))
            if name != dirname:
                self.add_diagnostic(doc, f"Template name must match the template folder name '{dirname}'",
                                    ErrorCode.TMPL_NAME_MATCH_FOLDER_NAME, node)

    def _lint_rules_and_rule_definition(self, doc: Any, tree: JsonNode) -> None:
        # с ruleDefinition и rules одновременно шаблон не задеплоится
        rule_definition = match_first(tree, ["ruleDefinition"])
        if rule_definition is not None and rule_definition.type is NodeType.STRING:
            count, _ = array_length(tree, "rules")
            if count > 0:
                self.add_diagnostic(
                    doc,
                    "Template is combining deprecated 'ruleDefinition' and 'rules'. "
                    "Please consolidate 'ruleDefinition' into 'rules'",
                    ErrorCode.TMPL_RULES_AND_RULE_DEFINITION,
                    _property_node(rule_definition),
                    severity=Severity.ERROR,
                )

    def _lint_icons(self, doc: Any, tree: JsonNode) -> None:
        for old, new, code in (
            ("assetIcon", "appBadge", ErrorCode.TMPL_ASSETICON_AND_APPBADGE),
            ("templateIcon", "templateBadge", ErrorCode.TMPL_TEMPLATEICON_AND_TEMPLATEBADGE),
        ):
            old_node = match_first(tree, [old])
            if old_node is not None and match_first(tree, ["icons", new]) is not None:
                self.add_diagnostic(doc, f"Template is combining deprecated '{old}' and 'icons.{new}'", code,
                                    _property_node(old_node))

    def _lint_layout_definition(self, doc: Any, tree: JsonNode) -> None:
        layout = match_first(tree, ["layoutDefinition"])
        if layout is None:
            return
        template_type, _ = _template_type(tree)
        if template_type != "data":
            self.add_diagnostic(doc, "layoutDefinition is only supported in data templates",
                                ErrorCode.TMPL_LAYOUT_UNSUPPORTED, _property_node(layout))

    async def _lint_template_info_by_type(self, doc: Any, tree: JsonNode) -> None:
        template_type, node = _template_type(tree)
        # templateType не строкой ловит схема, здесь не проверяем
        match template_type:
            case "app" | "embeddedapp":
                await self._lint_app_template_info(doc, tree, template_type, node)
            case "dashboard":
                self._lint_dashboard_template_info(doc, tree, node)
            case "data":
                self._lint_data_template_info(doc, tree, node)

    def _count_assets(self, doc: Any, tree: JsonNode,
                      fields: Iterable[tuple[str, str]]) -> tuple[int, list[RelatedNode]]:
        """Сумма длин непустых массивов и ссылки на каждое найденное поле-массив."""
        total = 0
        related = []
        for field, name in fields:
            count, node = array_length(tree, field)
            if count > 0:
                total += count
            if node is not None and node.parent is not None:
                related.append(RelatedNode(doc, node.parent, f"Empty {name} array"))
        return total, related

    async def _lint_app_template_info(self, doc: Any, tree: JsonNode, template_type: str,
                                      template_type_node: JsonNode | None) -> None:
        count, related = self._count_assets(doc, tree, (
            ("dashboards", "dashboards"),
            ("eltDataflows", "dataflows"),
            ("externalFiles", "externalFiles"),
            ("lenses", "lenses"),
            ("recipes", "recipes"),
        ))
        if count <= 0:
            self.add_diagnostic(
                doc,
                "App templates must have at least 1 dashboard, dataflow, externalFile, lens, or recipe specified",
                ErrorCode.TMPL_APP_MISSING_OBJECTS,
                _property_node(template_type_node),
                related_information=related or None,
            )

        if template_type != "embeddedapp":
            return

        # у embeddedapp не должно быть страниц в ui.json
        ui_def = match_first(tree, ["uiDefinition"])
        if ui_def is not None:
            entry = await self.load_rel_path(tree, ui_def)
            if entry.json is not None and array_length(entry.json, "pages")[0] >= 1:
                self.add_diagnostic(doc, "Templates of type embeddedapp cannot use a uiDefinition file with pages",
                                    ErrorCode.TMPL_EMBEDDED_APP_WITH_UI, _property_node(ui_def))

        # и должен быть хотя бы один share в folder.json
        has_share = False
        folder_location = None
        folder_def = match_first(tree, ["folderDefinition"])
        if folder_def is not None:
            entry = await self.load_rel_path(tree, folder_def)
            folder_location = entry.location
            has_share = entry.json is not None and array_length(entry.json, "shares")[0] >= 1
        if not has_share:
            self.add_diagnostic(
                doc,
                "Templates of type embeddedapp must have at least 1 share definition in the folderDefinition file",
                ErrorCode.TMPL_EMBEDDED_APP_NO_SHARES,
                _property_node(folder_def) or _property_node(template_type_node),
                args={"folderDefinitionUri": folder_location},
            )

    def _lint_dashboard_template_info(self, doc: Any, tree: JsonNode, template_type_node: JsonNode | None) -> None:
        count, dashboards = array_length(tree, "dashboards")
        if count != 1:
            self.add_diagnostic(doc, "Dashboard templates must have exactly 1 dashboard specified",
                                ErrorCode.TMPL_DASH_ONE_DASHBOARD,
                                dashboards or _property_node(template_type_node))

    def _lint_data_template_info(self, doc: Any, tree: JsonNode, template_type_node: JsonNode | None) -> None:
        count, related = self._count_assets(doc, tree, (
            ("datasetFiles", "datasets"),
            ("externalFiles", "externalFiles"),
            ("recipes", "recipes"),
        ))
        if count <= 0:
            self.add_diagnostic(doc, "Data templates must have at least 1 dataset, externalFile, or recipe specified",
                                ErrorCode.TMPL_DATA_MISSING_OBJECTS, _property_node(template_type_node),
                                related_information=related or None)

        for path in ASSET_ATTR_PATHS:
            if path[0] in ("datasetFiles", "externalFiles", "recipes"):
                continue
            count, node = array_length(tree, *path)
            if count > 0:
                self.add_diagnostic(doc, "Data templates only support datasets, external files, and recipes",
                                    ErrorCode.TMPL_DATA_UNSUPPORTED_OBJECT, _property_node(node))

        count, node = array_length(tree, "templateDependencies")
        if count > 0:
            self.add_diagnostic(doc, "Data templates do not support dependencies",
                                ErrorCode.TMPL_DATA_UNSUPPORTED_OBJECT, _property_node(node))

    async def _lint_auto_install_definition(self, doc: Any, tree: JsonNode) -> None:
        auto_install, auto_install_node = find_primitive_value(tree, "autoInstallDefinition")
        if auto_install_node is None or not isinstance(auto_install, str):
            return

        template_type, template_type_node = _template_type(tree)
        if template_type_node is not None and template_type not in ("app", "embeddedapp"):
            self.add_diagnostic(doc, "Only 'app' and 'embeddedapp' templates can use an 'autoInstallDefinition'",
                                ErrorCode.TMPL_NON_APP_WITH_AUTO_INSTALL, _property_node(auto_install_node),
                                related_information=[
                                    RelatedNode(doc, template_type_node, '"templateType" specification')
                                ])
            return

        # для автоустановки в folder.json обязателен name
        entry = await self.load_rel_path(tree, ["folderDefinition"])
        name = None
        if entry.json is not None:
            name, _ = find_primitive_value(entry.json, "name")
        if not (isinstance(name, str) and name):
            related = [RelatedNode(entry.doc, None, "folderDefinition file")] if entry.doc is not None else None
            self.add_diagnostic(doc, "'name' is required in folderDefinition file when using autoInstallDefinition",
                                ErrorCode.TMPL_AUTO_INSTALL_MISSING_FOLDER_NAME, _property_node(auto_install_node),
                                related_information=related)

    # ─── Проверки имён переменных ────────────────────────────

    def _lint_variable_reference(self, doc: Any, name_node: JsonNode, name: str,
                                 variable_types: dict[str, VariableType], search: Callable[[str], list[str]],
                                 code: ErrorCode) -> VariableType | None:
        """Проверить, что переменная name объявлена; иначе диагностика с подсказкой."""
        variable = variable_types.get(name)
        if variable is None:
            message = f"Cannot find variable '{name}'"
            args: dict[str, Any] = {"name": name}
            match = next(iter(search(name)), None)
            if match:
                args["match"] = match
                message += f", did you mean '{match}'?"
            self.add_diagnostic(doc, message, code, name_node, args=args)
        return variable

    # ─── auto-install.json ───────────────────────────────────

    async def _lint_auto_install(self, tree: JsonNode) -> None:
        entry = await self.load_rel_path(tree, ["autoInstallDefinition"])
        if entry.doc is None or entry.json is None:
            return
        values = match_first(entry.json, ["configuration", "appConfiguration", "values"])
        if values is None or not values.children:
            return

        variable_types = await self.load_variable_types(tree) or {}
        search = fuzzy_searcher(_valid_variable_names(variable_types))
        for prop in values.children:
            key = prop.key
            if key is not None and key.type is NodeType.STRING and isinstance(key.value, str):
                self._lint_variable_reference(entry.doc, key, key.value, variable_types, search,
                                              ErrorCode.AUTO_INSTALL_UNKNOWN_VARIABLE)

    # ─── variables.json ──────────────────────────────────────

    async def _lint_variables(self, tree: JsonNode) -> None:
        entry = await self.load_rel_path(tree, ["variableDefinition"])
        if entry.doc is not None and entry.json is not None:
            self._lint_variables_excludes(entry.doc, entry.json)

    def _lint_variables_excludes(self, doc: Any, tree: JsonNode) -> None:
        """excludes может содержать любые строки и не больше одного '/regex/[options]'."""
        for excludes in match_all(tree, ["*", "excludes"]):
            if excludes.type is not NodeType.ARRAY or not excludes.children:
                continue
            regexes = []
            for exclude in excludes.children:
                if exclude.type is NodeType.STRING and exclude.value and exclude.value.startswith("/"):
                    regexes.append(exclude)
                    self._lint_regex_exclude(doc, exclude)

            if len(regexes) > 1:
                parent = excludes.parent
                node = parent.key if parent is not None and parent.type is NodeType.PROPERTY else excludes
                self.add_diagnostic(doc, "Multiple regular expression excludes found, only the first will be used",
                                    ErrorCode.VARS_MULTIPLE_REGEXES, node,
                                    related_information=[
                                        RelatedNode(doc, regex, "Regular expression exclude") for regex in regexes
                                    ])

    def _lint_regex_exclude(self, doc: Any, node: JsonNode) -> None:
        text: str = node.value
        if len(text) == 1:
            self.add_diagnostic(doc, "Missing closing / for regular expression", ErrorCode.VARS_REGEX_MISSING_SLASH,
                                node)
            return

        last = text.rfind("/")
        options = None
        if last < 1:
            self.add_diagnostic(doc, "Missing closing / for regular expression", ErrorCode.VARS_REGEX_MISSING_SLASH,
                                node)
            # всё равно проверяем текст выражения
            pattern = text[1:]
        else:
            pattern = text[1:last]
            options = text[last + 1:] or None

        if options:
            if not _VALID_REGEX_OPTIONS.match(options):
                self.add_diagnostic(doc, "Invalid regular expression options", ErrorCode.VARS_INVALID_REGEX_OPTIONS,
                                    node)
                options = None
            elif _DUPLICATE_REGEX_OPTION.search(options):
                self.add_diagnostic(doc, "Duplicate option in regular expression options",
                                    ErrorCode.VARS_INVALID_REGEX_OPTIONS, node)
                options = None

        flags = 0
        for option in options or "":
            flags |= _REGEX_FLAGS.get(option, 0)
        try:
            re.compile(pattern, flags)
        except re.error as e:
            message = "Invalid regular expression"
            error_message = str(e)
            if error_message:
                if error_message.lower().startswith(message.lower()):
                    message = error_message
                else:
                    message += ": " + error_message
            self.add_diagnostic(doc, message, ErrorCode.VARS_INVALID_REGEX, node)

    # ─── ui.json ─────────────────────────────────────────────

    async def _lint_ui(self, tree: JsonNode) -> None:
        entry = await self.load_rel_path(tree, ["uiDefinition"])
        if entry.doc is None or entry.json is None:
            return
        self._lint_ui_pages(tree, entry.doc, entry.json)
        await self._lint_ui_variables(tree, entry.doc, entry.json)

    def _lint_ui_pages(self, tree: JsonNode, doc: Any, ui: JsonNode) -> None:
        pages = match_first(ui, ["pages"])
        if pages is None or pages.type is not NodeType.ARRAY:
            return
        template_type, _ = _template_type(tree)
        for page in pages.children:
            vf_page = match_first(page, ["vfPage"])
            if vf_page is None:
                variables = match_first(page, ["variables"])
                if variables is None:
                    self.add_diagnostic(doc, "Either variables or vfPage must be specified",
                                        ErrorCode.UI_PAGE_MISSING_VARIABLES, page)
                elif variables.type is NodeType.ARRAY and not variables.children:
                    self.add_diagnostic(doc, "At least 1 variable or vfPage must be specified",
                                        ErrorCode.UI_PAGE_EMPTY_VARIABLES, variables)
            elif template_type == "data":
                # на имя свойства "vfPage"
                self.add_diagnostic(doc, "vfPage is unsupported for data templates",
                                    ErrorCode.UI_PAGE_VFPAGE_UNSUPPORTED, vf_page.parent.key or vf_page)

    async def _lint_ui_variables(self, tree: JsonNode, doc: Any, ui: JsonNode) -> None:
        variable_types = await self.load_variable_types(tree) or {}
        pages = match_first(ui, ["pages"])
        if pages is None or pages.type is not NodeType.ARRAY or not pages.children:
            return

        search = fuzzy_searcher(_valid_variable_names(variable_types))
        template_type, _ = _template_type(tree)
        for name_node in match_all(list(pages.children), ["variables", "*", "name"]):
            if name_node.type is not NodeType.STRING or not name_node.value:
                continue
            name = name_node.value
            variable = self._lint_variable_reference(doc, name_node, name, variable_types, search,
                                                     ErrorCode.UI_PAGE_UNKNOWN_VARIABLE)
            if variable is None:
                continue
            if variable.type in _UNSUPPORTED_PAGE_VARIABLE_TYPES:
                self.add_diagnostic(doc, f"{variable.type} variable '{name}' is not supported in ui pages",
                                    ErrorCode.UI_PAGE_UNSUPPORTED_VARIABLE, name_node)
            elif variable.type == "DatasetAnyFieldType" and template_type != "data":
                self.add_diagnostic(doc,
                                    f"{variable.type} variable '{name}' is only supported in ui pages in data templates",
                                    ErrorCode.UI_PAGE_UNSUPPORTED_VARIABLE, name_node)

    # ─── layout.json ─────────────────────────────────────────

    async def _lint_layout(self, tree: JsonNode) -> None:
        entry = await self.load_rel_path(tree, ["layoutDefinition"])
        if entry.doc is None or entry.json is None:
            return
        self._lint_layout_navigation(entry.doc, entry.json)
        await self._lint_layout_variables(tree, entry.doc, entry.json)

    def _lint_layout_navigation(self, doc: Any, layout: JsonNode) -> None:
        message = "navigation has no effect unless a navigationPanel is defined as part of the layout."
        has_panel = False
        for page in match_all(layout, ["pages", "*"]):
            navigation = match_first(page, ["navigation"])
            panel = match_first(page, ["layout", "navigationPanel"])
            has_panel = has_panel or panel is not None
            if navigation is not None and panel is None:
                self.add_diagnostic(doc, message, ErrorCode.LAYOUT_PAGE_UNNECESSARY_NAVIGATION_OBJECT, navigation)

        app_navigation = match_first(layout, ["appDetails", "navigation"])
        if app_navigation is not None and not has_panel:
            self.add_diagnostic(doc, message, ErrorCode.LAYOUT_PAGE_UNNECESSARY_NAVIGATION_OBJECT, app_navigation)

    async def _lint_layout_variables(self, tree: JsonNode, doc: Any, layout: JsonNode) -> None:
        items = [item for pattern in LAYOUT_ITEM_PATTERNS for item in match_all(layout, pattern)]
        if not items:
            return

        variable_types = await self.load_variable_types(tree) or {}
        variables_doc = (await self.load_rel_path(tree, ["variableDefinition"])).doc
        search = fuzzy_searcher(_valid_variable_names(variable_types))
        for item in items:
            item_type, _ = find_primitive_value(item, "type")
            name, name_node = find_primitive_value(item, "name")
            if item_type != "Variable" or not isinstance(name, str) or not name:
                continue
            variable = self._lint_variable_reference(doc, name_node, name, variable_types, search,
                                                     ErrorCode.LAYOUT_PAGE_UNKNOWN_VARIABLE)
            if variable is None:
                continue
            if variable.type in _UNSUPPORTED_PAGE_VARIABLE_TYPES:
                self.add_diagnostic(doc, f"{variable.type} variable '{name}' is not supported in layout pages",
                                    ErrorCode.LAYOUT_PAGE_UNSUPPORTED_VARIABLE, name_node)
            else:
                self._lint_layout_tiles(doc, item, name, name_node, variable, variables_doc)

    def _lint_layout_tiles(self, doc: Any, item: JsonNode, name: str, name_node: JsonNode,
                           variable: VariableType, variables_doc: Any) -> None:
        variant, variant_node = find_primitive_value(item, "variant")
        if variant not in _TILES_VARIANTS:
            return

        if variable.is_array or variable.type not in ("StringType", "NumberType"):
            self.add_diagnostic(
                doc,
                f"{variant} variant requires a non-array StringType or NumberType variable",
                ErrorCode.LAYOUT_INVALID_TILES_VARIABLE_TYPE,
                name_node,
                related_information=[RelatedNode(doc, variant_node, "Variant")],
            )
            return

        enums = match_first(variable.definition, ["variableType", "enums"])
        if enums is None or enums.type is not NodeType.ARRAY or not enums.children:
            related = None
            if enums is not None and variables_doc is not None:
                related = [RelatedNode(variables_doc, enums, "Empty enums")]
            self.add_diagnostic(doc, f"{variant} variant requires a variable with a non-empty enums",
                                ErrorCode.LAYOUT_TILES_EMPTY_ENUMS_VARAIBLE, name_node,
                                related_information=related)
            return

        tiles = match_first(item, ["tiles"])
        if tiles is None or tiles.type is not NodeType.OBJECT:
            return
        enum_values = [text for text in map(_enum_text, enums.children) if text is not None]
        search = fuzzy_searcher(enum_values)
        for prop in tiles.children:
            key = prop.key
            if key is None or key.value in enum_values:
                continue
            message = f"'{key.value}' is not a valid enum value for variable '{name}'"
            args: dict[str, Any] = {"name": key.value}
            match = next(iter(search(key.value)), None)
            if match:
                args["match"] = match
                message += f", did you mean '{match}'?"
            related = [RelatedNode(variables_doc, enums, "Variable enums")] if variables_doc is not None else None
            self.add_diagnostic(doc, message, ErrorCode.LAYOUT_INVALID_TILE_NAME, key, args=args,
                                related_information=related)

    # ─── readiness.json ──────────────────────────────────────

    async def _lint_readiness(self, tree: JsonNode) -> None:
        entry = await self.load_rel_path(tree, ["readinessDefinition"])
        if entry.doc is None or entry.json is None:
            return
        self._lint_readiness_apex_callout(tree, entry.doc, entry.json)

        values = match_first(entry.json, ["values"])
        if values is None or values.type is not NodeType.OBJECT or not values.children:
            return
        variable_types = await self.load_variable_types(tree) or {}
        search = fuzzy_searcher(_valid_variable_names(variable_types))
        for prop in values.children:
            key = prop.key
            if key is not None and key.type is NodeType.STRING and isinstance(key.value, str):
                self._lint_variable_reference(entry.doc, key, key.value, variable_types, search,
                                              ErrorCode.READINESS_UNKNOWN_VARIABLE)

    def _lint_readiness_apex_callout(self, tree: JsonNode, doc: Any, readiness: JsonNode) -> None:
        if match_first(tree, ["apexCallback"]) is not None:
            return
        for definition in match_all(readiness, ["definition", "*"]):
            definition_type, type_node = find_primitive_value(definition, "type")
            if definition_type == "ApexCallout":
                self.add_diagnostic(doc, "ApexCallout readiness definitions require an apexCallback in the template",
                                    ErrorCode.READINESS_NO_APEX_CALLBACK, type_node)

    # ─── rules ───────────────────────────────────────────────

    async def _lint_rules(self, tree: JsonNode) -> None:
        # файлы правил делятся по rules[*].type: appToTemplate отдельно от остальных
        template_to_app: list[JsonNode] = []
        app_to_template: list[JsonNode] = []
        for rule in match_all(tree, ["rules", "*"]):
            file = match_first(rule, ["file"])
            if file is None or file.type is not NodeType.STRING:
                continue
            rule_type = match_first(rule, ["type"])
            if rule_type is not None and rule_type.value == "appToTemplate":
                app_to_template.append(file)
            else:
                template_to_app.append(file)
        rule_definition = match_first(tree, ["ruleDefinition"])
        if rule_definition is not None and rule_definition.type is NodeType.STRING:
            template_to_app.append(rule_definition)

        template_to_app_sources, app_to_template_sources = await asyncio.gather(
            self._load_rules_files(tree, template_to_app),
            self._load_rules_files(tree, app_to_template),
        )
        self._lint_rules_files(template_to_app_sources)
        self._lint_rules_files(app_to_template_sources)

    async def _load_rules_files(self, tree: JsonNode, nodes: list[JsonNode]) -> list[tuple[Any, JsonNode]]:
        entries = await asyncio.gather(*(self.load_rel_path(tree, node) for node in nodes))
        return [(entry.doc, entry.json) for entry in entries if entry.doc is not None and entry.json is not None]

    def _lint_rules_files(self, sources: list[tuple[Any, JsonNode]]) -> None:
        self.lint_unique_values(sources, ["constants", "*", "name"], lambda name, *_: f"Duplicate constant '{name}'",
                                ErrorCode.RULES_DUPLICATE_CONSTANT)
        self.lint_unique_values(sources, ["rules", "*", "name"], lambda name, *_: f"Duplicate rule name '{name}'",
                                ErrorCode.RULES_DUPLICATE_RULE_NAME, severity=Severity.HINT)
        self.lint_unique_values(sources, ["macros", "*", "definitions", "*", "name"],
                                lambda name, *_: f"Duplicate macro '{name}'", ErrorCode.RULES_DUPLICATE_MACRO,
                                compute_value=_macro_qualified_name)
        for doc, rules in sources:
            self._lint_noop_macros(doc, rules)

    def _lint_noop_macros(self, doc: Any, rules: JsonNode) -> None:
        for definition in match_all(rules, ["macros", "*", "definitions", "*"]):
            if match_first(definition, ["returns"]) is not None:
                continue
            count, actions = array_length(definition, "actions")
            # actions не массивом отловит JSON Schema
            if actions is None or count == 0:
                self.add_diagnostic(doc, "Macro should have a 'return' or at least one action",
                                    ErrorCode.RULES_NOOP_MACRO, actions or definition,
                                    severity=Severity.INFORMATION)


# dashboards, components и lenses хранятся вместе, имена должны быть уникальны между ними
_UNIQUE_NAME_PATHS: tuple[tuple[str, JsonPath | tuple[JsonPath, ...]], ...] = (
    ("dashboard, component, or lens", (
        ("dashboards", "*", "name"),
        ("components", "*", "name"),
        ("lenses", "*", "name"),
    )),
    ("dataflow", ("eltDataflows", "*", "name")),
    ("recipe", ("recipes", "*", "name")),
    ("dataset", ("datasetFiles", "*", "name")),
    ("external file", ("externalFiles", "*", "name")),
    ("storedQuery", ("storedQueries", "*", "name")),
    ("discoveryStory", ("extendedTypes", "discoveryStories", "*", "name")),
    ("prediction", ("extendedTypes", "predictiveScoring", "*", "name")),
    ("image file", ("imageFiles", "*", "name")),
)

_UNIQUE_LABEL_PATHS: tuple[tuple[str, JsonPath], ...] = (
    ("dashboard", ("dashboards", "*", "label")),
    ("components", ("components", "*", "label")),
    ("lens", ("lenses", "*", "label")),
    ("dataflow", ("eltDataflows", "*", "label")),
    ("recipe", ("recipes", "*", "label")),
    ("dataset", ("datasetFiles", "*", "label")),
    ("storedQuery", ("storedQueries", "*", "label")),
    ("discoveryStory", ("extendedTypes", "discoveryStories", "*", "label")),
    ("prediction", ("extendedTypes", "predictiveScoring", "*", "label")),
)


def _string_value(node: JsonNode, doc: Any) -> str | None:
    return node.value if node.type is NodeType.STRING and isinstance(node.value, str) else None


def _message(message: UniqueMessage, value: str, doc: Any, node: JsonNode) -> str:
    return message if isinstance(message, str) else message(value, doc, node)


def _macro_qualified_name(node: JsonNode, doc: Any) -> str | None:
    """namespace:name для имени макроса."""
    if node.type is not NodeType.STRING or not isinstance(node.value, str) or not node.value:
        return None
    # "name": <name> -> definition {} -> definitions [] -> "definitions": [] -> macro {}
    macro = node
    for _ in range(5):
        macro = macro.parent
        if macro is None:
            return None
    namespace, _ = find_primitive_value(macro, "namespace")
    if isinstance(namespace, str) and namespace:
        return f"{namespace}:{node.value}"
    return None


def _valid_variable_names(variable_types: dict[str, VariableType]) -> Iterator[str]:
    """Лениво: имена перебираются только если понадобилась подсказка."""
    return (name for name in variable_types if is_valid_variable_name(name))
