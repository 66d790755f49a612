from pathlib import Path

import yaml

from template_lint.models.config import LintConfig


def load_lint_config(path: Path) -> LintConfig:
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    # пустой файл: конфиг по умолчанию
    return LintConfig.model_validate(raw or {})
