"""Тесты проверок variables.json: регулярные выражения в excludes."""

import pytest

from linter_harness import InMemoryLinter, by_jsonpath, diagnostics_of, doc, run_lint
from template_lint.constants import ErrorCode


def _lint_excludes(*excludes):
    manifest = doc("template-info.json", {"variableDefinition": "variables.json"})
    variables = doc("variables.json", {"var1": {"excludes": list(excludes), "variableType": {"type": "StringType"}}})
    linter = run_lint(InMemoryLinter(manifest, variables))
    return linter, variables


class TestRegexExcludes:

    @pytest.mark.parametrize("exclude", ["plain", "/abc/", "/^a.*$/i", "/abc/gimsuy", "/a\\/b/"])
    def test_valid(self, exclude):
        linter, variables = _lint_excludes(exclude)
        assert diagnostics_of(linter, variables) == []

    def test_only_slash(self):
        linter, variables = _lint_excludes("/")
        [d] = diagnostics_of(linter, variables)
        assert d.code == ErrorCode.VARS_REGEX_MISSING_SLASH.value
        assert d.jsonpath == "var1.excludes[0]"

    def test_missing_closing_slash(self):
        linter, variables = _lint_excludes("/abc")
        [d] = diagnostics_of(linter, variables)
        assert d.code == ErrorCode.VARS_REGEX_MISSING_SLASH.value
        assert d.message == "Missing closing / for regular expression"

    def test_missing_closing_slash_and_invalid_regex(self):
        # выражение без закрывающего слэша всё равно проверяется
        linter, variables = _lint_excludes("/(abc")
        codes = sorted(d.code for d in diagnostics_of(linter, variables))
        assert codes == [ErrorCode.VARS_REGEX_MISSING_SLASH.value, ErrorCode.VARS_INVALID_REGEX.value]

    def test_invalid_options(self):
        linter, variables = _lint_excludes("/abc/x")
        [d] = diagnostics_of(linter, variables)
        assert d.code == ErrorCode.VARS_INVALID_REGEX_OPTIONS.value
        assert d.message == "Invalid regular expression options"

    def test_duplicate_options(self):
        linter, variables = _lint_excludes("/abc/gig")
        [d] = diagnostics_of(linter, variables)
        assert d.code == ErrorCode.VARS_INVALID_REGEX_OPTIONS.value
        assert d.message == "Duplicate option in regular expression options"

    def test_invalid_regex(self):
        linter, variables = _lint_excludes("/[/")
        [d] = diagnostics_of(linter, variables)
        assert d.code == ErrorCode.VARS_INVALID_REGEX.value
        assert d.message.startswith("Invalid regular expression")

    def test_multiple_regexes(self):
        linter, variables = _lint_excludes("/a/", "plain", "/b/")
        [d] = diagnostics_of(linter, variables, ErrorCode.VARS_MULTIPLE_REGEXES.value)
        # на имени свойства excludes
        assert d.jsonpath == "var1.excludes"
        assert [r.node.value for r in d.related_information] == ["/a/", "/b/"]

    def test_each_variable_checked(self):
        manifest = doc("template-info.json", {"variableDefinition": "variables.json"})
        variables = doc("variables.json", {
            "var1": {"excludes": ["/"]},
            "var2": {"excludes": ["ok", "/("]},
            "var3": {"excludes": "not-an-array"},
        })
        linter = run_lint(InMemoryLinter(manifest, variables))
        diagnostics = by_jsonpath(diagnostics_of(linter, variables))
        assert [d.jsonpath for d in diagnostics] == ["var1.excludes[0]", "var2.excludes[1]", "var2.excludes[1]"]

    def test_unreadable_variables_file_skipped(self):
        manifest = doc("template-info.json", {"variableDefinition": "variables.json"})
        variables = doc("variables.json", "")
        linter = run_lint(InMemoryLinter(manifest, variables))
        assert diagnostics_of(linter, variables) == []

    @pytest.mark.parametrize("exclude", ["/abc/xx", "/abc/q"])
    def test_bad_options_variants(self, exclude):
        linter, variables = _lint_excludes(exclude)
        assert [d.code for d in diagnostics_of(linter, variables)] == [ErrorCode.VARS_INVALID_REGEX_OPTIONS.value]

    def test_two_regexes_single_extra_diagnostic(self):
        linter, variables = _lint_excludes("/a/", "/b/")
        diagnostics = diagnostics_of(linter, variables)
        assert len(diagnostics) == 1
        assert len(diagnostics[0].related_information) == 2
