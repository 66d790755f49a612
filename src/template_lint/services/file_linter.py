"""Линтер шаблонов на файловой системе.

Пример:
    diagnostics = asyncio.run(lint_templates([Path("templates")], LintConfig()))
"""

import asyncio
import bisect
import logging
import stat
from pathlib import Path
from typing import Any

from template_lint.constants import LINTER_SOURCE_ID, TEMPLATE_INFO_FILENAME
from template_lint.models.config import LintConfig
from template_lint.models.diagnostic import Diagnostic, Position, Range, RelatedInformation, RelatedNode, Severity
from template_lint.models.json_node import JsonNode, NodeType
from template_lint.services.linter import TemplateLinter
from template_lint.services.schema_validator import SchemaValidator

logger = logging.getLogger(__name__)


class FileDocument:
    """Файл шаблона. Текст читается один раз и кэшируется."""

    def __init__(self, path: Path):
        self.location = path
        self._text: str | None = None
        self._line_starts: list[int] | None = None

    def __repr__(self) -> str:
        return f"FileDocument({str(self.location)!r})"

    async def get_text(self) -> str:
        if self._text is None:
            self._text = await asyncio.to_thread(self.location.read_text, encoding="utf-8")
            self._line_starts = None
        return self._text

    def invalidate(self) -> None:
        """Забыть прочитанный текст, следующий get_text() перечитает файл."""
        self._text = None
        self._line_starts = None

    def position_at(self, offset: int) -> Position:
        text = self._text or ""
        if self._line_starts is None:
            self._line_starts = [0] + [i + 1 for i, ch in enumerate(text) if ch == "\n"]
        offset = max(0, min(offset, len(text)))
        line = bisect.bisect_right(self._line_starts, offset) - 1
        return Position(line=line, character=offset - self._line_starts[line])


class FileTemplateLinter(TemplateLinter):
    """TemplateLinter поверх pathlib; диагностики — pydantic-модели Diagnostic."""

    def __init__(self, manifest_path: Path, dir: Path | None = None, config: LintConfig | None = None):
        self.config = config or LintConfig()
        self._documents: dict[Path, FileDocument] = {}
        super().__init__(FileDocument(Path(manifest_path)), dir, self.config.max_external_file_size)
        if self.config.validate_schemas:
            self.on_parsed_manifest(SchemaValidator())

    def reset(self) -> None:
        super().reset()
        self._documents.clear()
        self.manifest_doc.invalidate()

    def parent_of(self, location: Path) -> Path:
        return location.parent

    def base_name_of(self, location: Path) -> str:
        return location.name

    def join_relative(self, dir: Path, relpath: str) -> Path:
        return dir / relpath

    async def is_file(self, location: Path) -> bool | None:
        st = await self._stat(location)
        return stat.S_ISREG(st.st_mode) if st is not None else None

    async def file_size(self, location: Path) -> int | None:
        st = await self._stat(location)
        return st.st_size if st is not None else None

    async def _stat(self, location: Path):
        try:
            return await asyncio.to_thread(location.stat)
        except (FileNotFoundError, NotADirectoryError):
            return None

    async def open(self, location: Path) -> FileDocument:
        doc = self._documents.get(location)
        if doc is None:
            if not await self.is_file(location):
                raise FileNotFoundError(f"Unable to open {location} as a file")
            doc = FileDocument(location)
            self._documents[location] = doc
        return doc

    def create_diagnostic(self, doc: FileDocument, message: str, code: str | None, node: JsonNode | None,
                          severity: Severity, args: dict[str, Any] | None,
                          related_information: list[RelatedNode] | None,
                          source: str = LINTER_SOURCE_ID) -> Diagnostic:
        related = [
            RelatedInformation(uri=str(r.doc.location), range=_node_range(r.doc, r.node), message=r.message)
            for r in related_information or []
        ]
        related.sort(key=lambda r: r.range.start.line)
        return Diagnostic(
            uri=str(doc.location),
            # у строковых узлов offset/length включают кавычки
            range=_node_range(doc, node, strip_quotes=True),
            message=message,
            severity=severity,
            code=code,
            source=source,
            args=_plain_args(args),
            related_information=related,
        )


def _node_range(doc: FileDocument, node: JsonNode | None, strip_quotes: bool = False) -> Range:
    if node is None:
        return Range.empty()
    trim = 1 if strip_quotes and node.type is NodeType.STRING and node.length >= 2 else 0
    return Range(
        start=doc.position_at(node.offset + trim),
        end=doc.position_at(node.offset + node.length - trim),
    )


def _plain_args(args: dict[str, Any] | None) -> dict[str, Any] | None:
    if not args:
        return None
    return {key: str(value) if isinstance(value, Path) else value for key, value in args.items() if value is not None}


def find_template_info_files(paths: list[Path]) -> list[Path]:
    """Папки раскрываются во все template-info.json внутри них."""
    result = []
    for p in paths:
        if p.is_dir():
            result.extend(sorted(p.rglob(TEMPLATE_INFO_FILENAME)))
        else:
            result.append(p)
    return result


def filter_diagnostics(diagnostics: list[Diagnostic], config: LintConfig) -> list[Diagnostic]:
    ignored = set(config.ignore)
    kept = [
        d for d in diagnostics
        if d.code not in ignored and d.severity.at_least(config.min_severity)
    ]
    kept.sort(key=lambda d: (d.uri, d.range.start.line, d.range.start.character))
    return kept


async def lint_template(path: Path, config: LintConfig | None = None) -> list[Diagnostic]:
    """Проверить один шаблон по пути к его template-info.json."""
    config = config or LintConfig()
    linter = FileTemplateLinter(path, config=config)
    await linter.lint()
    diagnostics = [d for doc_diagnostics in linter.diagnostics.values() for d in doc_diagnostics]
    logger.debug("%s: %d diagnostics", path, len(diagnostics))
    return filter_diagnostics(diagnostics, config)


async def lint_templates(paths: list[Path], config: LintConfig | None = None) -> list[Diagnostic]:
    """Проверить все шаблоны; папки раскрываются через find_template_info_files."""
    config = config or LintConfig()
    results = await asyncio.gather(*(lint_template(p, config) for p in find_template_info_files(paths)))
    diagnostics = [d for result in results for d in result]
    return filter_diagnostics(diagnostics, config)
