"""Tests for ui.json checks."""

import pytest

from linter_harness import InMemoryLinter, by_jsonpath, codes_of, diagnostics_of, doc, run_lint
from template_lint.constants import ErrorCode

VARIABLES = {
    "stringVar": {"variableType": {"type": "StringType"}},
    "objectVar": {"variableType": {"type": "ObjectType"}},
    "dateTimeVar": {"variableType": {"type": "DateTimeType"}},
    "anyFieldVar": {"variableType": {"type": "DatasetAnyFieldType"}},
    "arrayOfObjects": {"variableType": {"type": "ArrayType", "itemsType": {"type": "ObjectType"}}},
}


def _lint_ui(ui, template_type=None, variables=VARIABLES):
    info = {"uiDefinition": "ui.json", "variableDefinition": "variables.json"}
    if template_type:
        info["templateType"] = template_type
    manifest = doc("template-info.json", info)
    ui_doc = doc("ui.json", ui)
    linter = run_lint(InMemoryLinter(manifest, ui_doc, doc("variables.json", variables)))
    return linter, ui_doc


class TestUiPages:

    def test_missing_variables(self):
        linter, ui = _lint_ui({"pages": [{"title": "page"}]})
        [d] = diagnostics_of(linter, ui)
        assert d.code == ErrorCode.UI_PAGE_MISSING_VARIABLES.value
        assert d.jsonpath == "pages[0]"

    def test_empty_variables(self):
        linter, ui = _lint_ui({"pages": [{"title": "page", "variables": []}]})
        [d] = diagnostics_of(linter, ui)
        assert d.code == ErrorCode.UI_PAGE_EMPTY_VARIABLES.value
        assert d.jsonpath == "pages[0].variables"

    def test_vf_page_in_app(self):
        linter, ui = _lint_ui({"pages": [{"title": "page", "vfPage": {"name": "p", "namespace": "ns"}}]})
        assert diagnostics_of(linter, ui) == []

    def test_vf_page_in_data_template(self):
        linter, ui = _lint_ui({"pages": [{"title": "page", "vfPage": {"name": "p", "namespace": "ns"}}]},
                              template_type="data")
        [d] = diagnostics_of(linter, ui)
        assert d.code == ErrorCode.UI_PAGE_VFPAGE_UNSUPPORTED.value
        assert d.jsonpath == "pages[0].vfPage"

    def test_pages_not_array(self):
        linter, ui = _lint_ui({"pages": {"title": "page"}})
        assert diagnostics_of(linter, ui) == []


class TestUiVariables:

    def test_unknown_variable(self):
        linter, ui = _lint_ui({"pages": [{"title": "p", "variables": [{"name": "stringVr"}, {"name": "zzz"}]}]})
        diagnostics = by_jsonpath(diagnostics_of(linter, ui))
        assert [d.code for d in diagnostics] == [ErrorCode.UI_PAGE_UNKNOWN_VARIABLE.value] * 2
        assert [d.jsonpath for d in diagnostics] == ["pages[0].variables[0].name", "pages[0].variables[1].name"]
        assert diagnostics[0].args == {"name": "stringVr", "match": "stringVar"}
        assert diagnostics[1].args == {"name": "zzz"}

    @pytest.mark.parametrize("name", ["objectVar", "dateTimeVar", "arrayOfObjects"])
    def test_unsupported_type(self, name):
        linter, ui = _lint_ui({"pages": [{"title": "p", "variables": [{"name": name}]}]})
        [d] = diagnostics_of(linter, ui)
        assert d.code == ErrorCode.UI_PAGE_UNSUPPORTED_VARIABLE.value
        assert d.message.endswith(f"variable '{name}' is not supported in ui pages")

    def test_any_field_only_in_data_templates(self):
        ui = {"pages": [{"title": "p", "variables": [{"name": "anyFieldVar"}]}]}
        linter, ui_doc = _lint_ui(ui)
        [d] = diagnostics_of(linter, ui_doc)
        assert d.code == ErrorCode.UI_PAGE_UNSUPPORTED_VARIABLE.value
        assert "only supported in ui pages in data templates" in d.message

        linter, ui_doc = _lint_ui(ui, template_type="data")
        assert diagnostics_of(linter, ui_doc) == []

    def test_known_variables(self):
        linter, ui = _lint_ui({"pages": [{"title": "p", "variables": [{"name": "stringVar"}]}]})
        assert diagnostics_of(linter, ui) == []

    def test_without_variables_file(self):
        manifest = doc("template-info.json", {"uiDefinition": "ui.json"})
        ui = doc("ui.json", {"pages": [{"title": "p", "variables": [{"name": "stringVar"}]}]})
        linter = run_lint(InMemoryLinter(manifest, ui))
        assert codes_of(linter, ui) == [ErrorCode.UI_PAGE_UNKNOWN_VARIABLE.value]
