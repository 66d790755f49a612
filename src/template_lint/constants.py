"""Константы линтера: идентификаторы источников, пути в template-info.json, коды ошибок."""

from enum import Enum

from template_lint.models.json_node import JsonPath

# Diagnostic source id for errors from the template linter
LINTER_SOURCE_ID = "adx-template"
# Diagnostic source id for json syntax issues
JSON_SOURCE_ID = "json"
# Diagnostic source id for json schema issues
JSON_SCHEMA_SOURCE_ID = "json-schema"
# The maximum supported size of CSV external files (in bytes)
LINTER_MAX_EXTERNAL_FILE_SIZE = 10_000_000

TEMPLATE_INFO_FILENAME = "template-info.json"

# ─── Пути в template-info.json ───────────────────────────

# Атрибуты с ассетами, которыми управляет шаблон
ASSET_ATTR_PATHS: tuple[JsonPath, ...] = (
    ("dashboards",),
    ("components",),
    ("lenses",),
    ("dataTransforms",),
    ("eltDataflows",),
    ("storedQueries",),
    ("extendedTypes", "discoveryStories"),
    ("extendedTypes", "predictiveScoring"),
    ("recipes",),
    ("externalFiles",),
    ("datasetFiles",),
    ("imageFiles",),
)

# Относительные пути к файлам-определениям; один файл не должен использоваться дважды
DEFINITION_FILE_PATTERNS: tuple[JsonPath, ...] = (
    ("variableDefinition",),
    ("uiDefinition",),
    ("layoutDefinition",),
    ("readinessDefinition",),
    ("folderDefinition",),
    ("autoInstallDefinition",),
    ("ruleDefinition",),
    ("rules", "*", "file"),
    ("dashboards", "*", "file"),
    ("components", "*", "file"),
    ("lenses", "*", "file"),
    ("eltDataflows", "*", "file"),
    ("dataTransforms", "*", "file"),
    ("storedQueries", "*", "file"),
    ("extendedTypes", "*", "*", "file"),
    ("recipes", "*", "file"),
)

JSON_REL_FILE_PATTERNS: tuple[JsonPath, ...] = DEFINITION_FILE_PATTERNS + (
    ("externalFiles", "*", "schema"),
    ("externalFiles", "*", "userXmd"),
    ("datasetFiles", "*", "userXmd"),
)
HTML_REL_FILE_PATTERNS: tuple[JsonPath, ...] = (("releaseInfo", "notesFile"),)
IMAGE_REL_FILE_PATTERNS: tuple[JsonPath, ...] = (("imageFiles", "*", "file"),)
CSV_REL_FILE_PATTERNS: tuple[JsonPath, ...] = (("externalFiles", "*", "file"),)

ALL_REL_FILE_PATTERNS: tuple[JsonPath, ...] = (
    JSON_REL_FILE_PATTERNS + HTML_REL_FILE_PATTERNS + IMAGE_REL_FILE_PATTERNS + CSV_REL_FILE_PATTERNS
)

# Элементы страниц в layout.json (в том числе вложенные в GroupBox)
LAYOUT_ITEM_PATTERNS: tuple[JsonPath, ...] = (
    ("pages", "*", "layout", "center", "items", "*"),
    ("pages", "*", "layout", "right", "items", "*"),
    ("pages", "*", "layout", "left", "items", "*"),
    ("pages", "*", "layout", "center", "items", "*", "items", "*"),
    ("pages", "*", "layout", "right", "items", "*", "items", "*"),
    ("pages", "*", "layout", "left", "items", "*", "items", "*"),
)


class ErrorCode(str, Enum):
    """Коды диагностик линтера.

    Значения должны быть уникальными: повторное значение в Enum молча
    становится алиасом, это ловит тест test_constants.
    """

    # template-info.json
    TMPL_NAME_MATCH_FOLDER_NAME = "tmpl-1"
    TMPL_RULES_AND_RULE_DEFINITION = "tmpl-2"
    TMPL_APP_MISSING_OBJECTS = "tmpl-3"
    TMPL_DASH_ONE_DASHBOARD = "tmpl-4"
    TMPL_INVALID_REL_PATH = "tmpl-5"
    TMPL_REL_PATH_NOT_EXIST = "tmpl-6"
    TMPL_REL_PATH_NOT_FILE = "tmpl-7"
    TMPL_DUPLICATE_REL_PATH = "tmpl-8"
    TMPL_ASSETICON_AND_APPBADGE = "tmpl-9"
    TMPL_TEMPLATEICON_AND_TEMPLATEBADGE = "tmpl-10"
    TMPL_EMBEDDED_APP_WITH_UI = "tmpl-11"
    TMPL_EMBEDDED_APP_NO_SHARES = "tmpl-12"
    TMPL_NON_APP_WITH_AUTO_INSTALL = "tmpl-13"
    TMPL_AUTO_INSTALL_MISSING_FOLDER_NAME = "tmpl-14"
    TMPL_DUPLICATE_NAME = "tmpl-15"
    TMPL_DUPLICATE_LABEL = "tmpl-16"
    TMPL_EMPTY_FILE = "tmpl-17"
    TMPL_DATA_MISSING_OBJECTS = "tmpl-18"
    TMPL_DATA_UNSUPPORTED_OBJECT = "tmpl-19"
    TMPL_RECIPES_MIN_ASSET_VERSION = "tmpl-20"
    TMPL_LAYOUT_UNSUPPORTED = "tmpl-21"
    TMPL_EXTERNAL_FILE_TOO_BIG = "tmpl-22"
    TMPL_REL_PATH_UNREADABLE = "tmpl-23"
    TMPL_UNREADABLE_FILE = "tmpl-24"

    # auto-install.json
    AUTO_INSTALL_UNKNOWN_VARIABLE = "auto-1"

    # variables.json
    VARS_REGEX_MISSING_SLASH = "vars-1"
    VARS_INVALID_REGEX_OPTIONS = "vars-2"
    VARS_INVALID_REGEX = "vars-3"
    VARS_MULTIPLE_REGEXES = "vars-4"

    # ui.json
    UI_PAGE_MISSING_VARIABLES = "ui-1"
    UI_PAGE_EMPTY_VARIABLES = "ui-2"
    UI_PAGE_UNKNOWN_VARIABLE = "ui-3"
    UI_PAGE_UNSUPPORTED_VARIABLE = "ui-4"
    UI_PAGE_VFPAGE_UNSUPPORTED = "ui-5"

    # layout.json
    LAYOUT_PAGE_UNKNOWN_VARIABLE = "lay-1"
    LAYOUT_PAGE_UNSUPPORTED_VARIABLE = "lay-2"
    LAYOUT_INVALID_TILES_VARIABLE_TYPE = "lay-3"
    LAYOUT_TILES_EMPTY_ENUMS_VARAIBLE = "lay-4"
    LAYOUT_INVALID_TILE_NAME = "lay-5"
    LAYOUT_PAGE_UNNECESSARY_NAVIGATION_OBJECT = "lay-6"

    # readiness.json
    READINESS_NO_APEX_CALLBACK = "read-1"
    READINESS_UNKNOWN_VARIABLE = "read-2"

    # rules
    RULES_DUPLICATE_CONSTANT = "rules-1"
    RULES_DUPLICATE_RULE_NAME = "rules-2"
    RULES_DUPLICATE_MACRO = "rules-3"
    RULES_NOOP_MACRO = "rules-4"
