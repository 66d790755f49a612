import json
from pathlib import Path

from click.testing import CliRunner

from template_lint.cli import cli
from template_lint.constants import ErrorCode

FIXTURES = Path(__file__).parent / "fixtures"
TEMPLATES = FIXTURES / "templates"
SALES_APP = TEMPLATES / "sales_app"
BROKEN_APP = TEMPLATES / "broken_app"


def test_lint_help():
    """Проверяем что команда lint показывает справку."""
    runner = CliRunner()
    result = runner.invoke(cli, ["lint", "--help"])
    assert result.exit_code == 0
    assert "--config" in result.output
    assert "--no-schemas" in result.output


def test_lint_clean_template():
    runner = CliRunner()
    result = runner.invoke(cli, ["lint", str(SALES_APP)])
    assert result.exit_code == 0, result.output
    assert "No problems found in 1 template(s)." in result.output


def test_lint_alias():
    runner = CliRunner()
    result = runner.invoke(cli, ["l", str(SALES_APP / "template-info.json")])
    assert result.exit_code == 0, result.output


def test_lint_broken_template_fails():
    """В broken_app есть синтаксическая ошибка — это error, CLI падает."""
    runner = CliRunner()
    result = runner.invoke(cli, ["lint", str(BROKEN_APP)])
    assert result.exit_code == 1
    assert f"warning [{ErrorCode.TMPL_NAME_MATCH_FOLDER_NAME.value}]" in result.output
    assert "template-info.json:2:12:" in result.output
    assert "problem(s) at or above 'error' severity" in result.output


def test_lint_without_schemas():
    """Без схем остаются проверки линтера и синтаксические ошибки JSON."""
    runner = CliRunner()
    result = runner.invoke(cli, ["lint", "--no-schemas", str(BROKEN_APP)])
    assert result.exit_code == 1
    assert f"{BROKEN_APP / 'ui.json'}:" in result.output
    assert ErrorCode.TMPL_REL_PATH_NOT_EXIST.value in result.output
    assert "required" not in result.output


def test_lint_json_format(tmp_path):
    template = tmp_path / "json_app"
    template.mkdir()
    (template / "template-info.json").write_text(
        json.dumps({"name": "wrong_name", "dashboards": [{"name": "d", "file": "missing.json"}]}, indent=2),
        encoding="utf-8",
    )
    runner = CliRunner()
    result = runner.invoke(cli, ["lint", "-f", "json", "--no-schemas", str(template)])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    codes = {d["code"] for d in data}
    assert ErrorCode.TMPL_NAME_MATCH_FOLDER_NAME.value in codes
    name = next(d for d in data if d["code"] == ErrorCode.TMPL_NAME_MATCH_FOLDER_NAME.value)
    assert name["range"]["start"] == {"line": 1, "character": 11}
    assert name["source"] == "adx-template"
    assert "args" not in name


def test_lint_json_format_clean():
    runner = CliRunner()
    result = runner.invoke(cli, ["lint", "--format", "json", str(SALES_APP)])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == []


def test_lint_with_config():
    runner = CliRunner()
    result = runner.invoke(cli, [
        "lint", "-c", str(FIXTURES / "configs" / "lint.yaml"), "--no-schemas", str(BROKEN_APP),
    ])
    # ui.json с синтаксической ошибкой всё равно валит проверку
    assert result.exit_code == 1
    assert ErrorCode.TMPL_NAME_MATCH_FOLDER_NAME.value not in result.output
    assert ErrorCode.TMPL_REL_PATH_NOT_EXIST.value in result.output


def test_lint_fail_on_warning(tmp_path):
    config = tmp_path / "strict.yaml"
    config.write_text("failOn: warning\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["lint", "-c", str(config), "--no-schemas", str(BROKEN_APP)])
    assert result.exit_code == 1
    assert "problem(s) at or above 'warning' severity" in result.output


def test_lint_invalid_config():
    runner = CliRunner()
    result = runner.invoke(cli, ["lint", "-c", str(FIXTURES / "configs" / "invalid.yaml"), str(SALES_APP)])
    assert result.exit_code == 1
    assert "Config validation error" in result.output


def test_lint_invalid_yaml(tmp_path):
    config = tmp_path / "bad.yaml"
    config.write_text("ignore: [unclosed\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["lint", "-c", str(config), str(SALES_APP)])
    assert result.exit_code == 1
    assert "Invalid YAML" in result.output


def test_lint_no_templates(tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, ["lint", str(tmp_path)])
    assert result.exit_code == 1
    assert "No template-info.json found" in result.output


def test_lint_missing_path():
    runner = CliRunner()
    result = runner.invoke(cli, ["lint", "no/such/dir"])
    assert result.exit_code == 2


def test_codes():
    runner = CliRunner()
    result = runner.invoke(cli, ["codes"])
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert len(lines) == len(ErrorCode)
    assert "tmpl-1\tTMPL_NAME_MATCH_FOLDER_NAME" in lines


def test_codes_alias():
    runner = CliRunner()
    result = runner.invoke(cli, ["c"])
    assert result.exit_code == 0
    assert "rules-4\tRULES_NOOP_MACRO" in result.output
