import re

_VARIABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]+$")


def is_valid_relpath(relpath: str | None) -> bool:
    """Проверить, что строка — относительный путь, не выходящий из папки шаблона."""
    if relpath is None:
        return False
    stripped = relpath.strip()
    return (
        len(stripped) > 0
        and not relpath.startswith("/")
        and not relpath.startswith("../")
        and "/../" not in relpath
        and not relpath.endswith("/..")
    )


def is_valid_variable_name(name: str | None) -> bool:
    # имя из одного символа под этот шаблон не подходит
    return name is not None and _VARIABLE_NAME.match(name) is not None
