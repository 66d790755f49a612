import asyncio
import json
import logging
from pathlib import Path

import click
import yaml
from pydantic import ValidationError

from template_lint.constants import TEMPLATE_INFO_FILENAME, ErrorCode
from template_lint.models.config import LintConfig
from template_lint.models.diagnostic import Diagnostic
from template_lint.services.config_loader import load_lint_config
from template_lint.services.file_linter import find_template_info_files, lint_templates


class AliasedGroup(click.Group):
    _aliases = {"l": "lint", "c": "codes"}

    def get_command(self, ctx, cmd_name):
        return super().get_command(ctx, self._aliases.get(cmd_name, cmd_name))


@click.group(cls=AliasedGroup)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging")
def cli(verbose):
    """Semantic linter for analytics templates."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command("lint")
@click.option("--config", "-c", "config_path", default=None, type=click.Path(exists=True, path_type=Path), help="Path to YAML lint config file")
@click.option("--format", "-f", "output_format", type=click.Choice(["text", "json"]), default="text", help="Output format")
@click.option("--no-schemas", is_flag=True, default=False, help="Skip JSON Schema validation of template files")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path, file_okay=True, dir_okay=True))
def lint(config_path, output_format, no_schemas, paths):
    """Lint templates: template-info.json files or directories containing them."""
    config = _load_config(config_path) if config_path else LintConfig()
    if no_schemas:
        config = config.model_copy(update={"validate_schemas": False})

    manifests = find_template_info_files(list(paths))
    if not manifests:
        raise click.ClickException(f"No {TEMPLATE_INFO_FILENAME} found in: {', '.join(str(p) for p in paths)}")

    try:
        diagnostics = asyncio.run(lint_templates(manifests, config))
    except click.ClickException:
        raise
    except Exception as e:
        raise click.ClickException(str(e))

    if output_format == "json":
        data = [d.model_dump(mode="json", by_alias=True, exclude_none=True) for d in diagnostics]
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        for d in diagnostics:
            click.echo(_format_diagnostic(d))
        if not diagnostics:
            click.echo(f"No problems found in {len(manifests)} template(s).")

    failed = [d for d in diagnostics if d.severity.at_least(config.fail_on)]
    if failed:
        raise click.ClickException(f"{len(failed)} problem(s) at or above '{config.fail_on.value}' severity")


@cli.command("codes")
def codes():
    """List all diagnostic codes."""
    for code in ErrorCode:
        click.echo(f"{code.value}\t{code.name}")


def _format_diagnostic(d: Diagnostic) -> str:
    start = d.range.start
    code = f" [{d.code}]" if d.code else ""
    lines = [f"{d.uri}:{start.line + 1}:{start.character + 1}: {d.severity.value}{code} {d.message}"]
    for related in d.related_information:
        pos = related.range.start
        lines.append(f"    {related.uri}:{pos.line + 1}:{pos.character + 1}: {related.message}")
    return "\n".join(lines)


def _load_config(config_path: Path) -> LintConfig:
    try:
        return load_lint_config(config_path)
    except yaml.YAMLError as e:
        raise click.ClickException(f"Invalid YAML in config file {config_path}: {e}")
    except ValidationError as e:
        problems = "; ".join(_describe_error(err) for err in e.errors())
        raise click.ClickException(f"Config validation error in {config_path}: {problems}")


def _describe_error(err) -> str:
    location = ".".join(str(part) for part in err["loc"])
    return f"{location}: {err['msg']}" if location else err["msg"]
