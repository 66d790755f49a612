"""Модель YAML-конфига линтера.

Описывает, какие ключи допустимы в файле, передаваемом через --config.
Неверные типы и незнакомые значения severity pydantic отклоняет
ещё при загрузке.
"""

from pydantic import BaseModel, Field

from template_lint.constants import LINTER_MAX_EXTERNAL_FILE_SIZE
from template_lint.models.diagnostic import Severity


class LintConfig(BaseModel):
    """Корневая модель конфига.

    Пример конфига:
        validateSchemas: true
        ignore:
          - tmpl-1
          - rules-4
        minSeverity: information
        failOn: warning
        maxExternalFileSize: 5000000
    """

    # проверять ли файлы шаблона по JSON Schema
    validate_schemas: bool = Field(default=True, alias="validateSchemas")
    # коды диагностик, которые нужно скрыть
    ignore: list[str] = Field(default_factory=list)
    # диагностики менее серьёзные чем это значение не показываются
    min_severity: Severity = Field(default=Severity.HINT, alias="minSeverity")
    # с какого уровня CLI завершается с ошибкой
    fail_on: Severity = Field(default=Severity.ERROR, alias="failOn")
    max_external_file_size: int = Field(default=LINTER_MAX_EXTERNAL_FILE_SIZE, alias="maxExternalFileSize", gt=0)

    model_config = {"populate_by_name": True}
