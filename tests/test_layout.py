"""Тесты проверок layout.json."""

from linter_harness import InMemoryLinter, by_jsonpath, diagnostics_of, doc, run_lint
from template_lint.constants import ErrorCode

VARIABLES = {
    "string": {"variableType": {"type": "StringType"}},
    "number": {"variableType": {"type": "NumberType"}},
    "stringEmptyEnums": {"variableType": {"type": "StringType", "enums": []}},
    "numberEmptyEnums": {"variableType": {"type": "NumberType", "enums": []}},
    "stringArray": {"variableType": {"type": "ArrayType", "itemsType": {"type": "StringType"}}},
    "sobject": {"variableType": {"type": "SobjectType"}},
    "stringEnums": {"variableType": {"type": "StringType", "enums": ["a", "b", "c"]}},
    "numberEnums": {"variableType": {"type": "NumberType", "enums": [1, 2, 3]}},
    "object": {"variableType": {"type": "ObjectType"}},
    "groupFoo": {"variableType": {"type": "StringType"}},
    "groupBar": {"variableType": {"type": "StringType"}},
}


def _page(*items, **extra):
    page = {"title": "page", "layout": {"type": "SingleColumn", "center": {"items": list(items)}}}
    page.update(extra)
    return page


def _variable(name, **extra):
    item = {"type": "Variable", "name": name}
    item.update(extra)
    return item


def _lint_layout(layout):
    manifest = doc("template-info.json", {
        "templateType": "data",
        "layoutDefinition": "layout.json",
        "variableDefinition": "variables.json",
    })
    layout_doc = doc("layout.json", layout)
    variables_doc = doc("variables.json", VARIABLES)
    linter = run_lint(InMemoryLinter(manifest, layout_doc, variables_doc))
    return linter, layout_doc, variables_doc


class TestLayoutVariables:

    def test_unknown_variables(self):
        layout = {"pages": [
            _page(_variable("groupFo"), {"type": "Text", "text": "hello"}),
            {
                "title": "two",
                "layout": {
                    "type": "TwoColumn",
                    "left": {"items": [_variable("string")]},
                    "right": {"items": [{"type": "GroupBox", "items": [_variable("bar"), _variable("zzz")]}]},
                },
            },
        ]}
        linter, layout_doc, _ = _lint_layout(layout)
        diagnostics = by_jsonpath(diagnostics_of(linter, layout_doc))
        assert [d.code for d in diagnostics] == [ErrorCode.LAYOUT_PAGE_UNKNOWN_VARIABLE.value] * 3
        assert [d.jsonpath for d in diagnostics] == [
            "pages[0].layout.center.items[0].name",
            "pages[1].layout.right.items[0].items[0].name",
            "pages[1].layout.right.items[0].items[1].name",
        ]
        assert [d.args for d in diagnostics] == [
            {"name": "groupFo", "match": "groupFoo"},
            {"name": "bar", "match": "groupBar"},
            {"name": "zzz"},
        ]

    def test_unsupported_variable(self):
        linter, layout_doc, _ = _lint_layout({"pages": [_page(_variable("object"))]})
        [d] = diagnostics_of(linter, layout_doc)
        assert d.code == ErrorCode.LAYOUT_PAGE_UNSUPPORTED_VARIABLE.value
        assert d.message == "ObjectType variable 'object' is not supported in layout pages"

    def test_non_variable_items_ignored(self):
        linter, layout_doc, _ = _lint_layout({"pages": [_page({"type": "Text", "name": "notAVariable"})]})
        assert diagnostics_of(linter, layout_doc) == []


class TestLayoutTiles:

    def test_tiles(self):
        items = [
            _variable("string", variant="CheckboxTiles"),
            _variable("number", variant="CenteredCheckboxTiles"),
            _variable("stringEmptyEnums", variant="CheckboxTiles"),
            _variable("numberEmptyEnums", variant="CheckboxTiles"),
            _variable("stringArray", variant="CheckboxTiles"),
            _variable("sobject", variant="CheckboxTiles"),
            _variable("stringEnums", variant="CheckboxTiles", tiles={"a": {}, "C": {}}),
            _variable("numberEnums", variant="CheckboxTiles", tiles={"1": {}, "30": {}}),
            # без variant плитки не проверяются
            _variable("sobject"),
        ]
        linter, layout_doc, variables_doc = _lint_layout({"pages": [_page(*items)]})
        diagnostics = diagnostics_of(linter, layout_doc)
        assert len(diagnostics) == 8

        by_path = {d.jsonpath: d for d in diagnostics}
        prefix = "pages[0].layout.center.items"

        for index in (0, 1):
            d = by_path[f"{prefix}[{index}].name"]
            assert d.code == ErrorCode.LAYOUT_TILES_EMPTY_ENUMS_VARAIBLE.value
            assert d.related_information == []

        for index in (2, 3):
            d = by_path[f"{prefix}[{index}].name"]
            assert d.code == ErrorCode.LAYOUT_TILES_EMPTY_ENUMS_VARAIBLE.value
            [related] = d.related_information
            assert related.doc is variables_doc

        for index in (4, 5):
            d = by_path[f"{prefix}[{index}].name"]
            assert d.code == ErrorCode.LAYOUT_INVALID_TILES_VARIABLE_TYPE.value
            [related] = d.related_information
            assert related.doc is layout_doc
            assert related.node.value == "CheckboxTiles"

        d = by_path[f"{prefix}[6].tiles.C"]
        assert d.code == ErrorCode.LAYOUT_INVALID_TILE_NAME.value
        assert d.args == {"name": "C", "match": "c"}
        assert d.message == "'C' is not a valid enum value for variable 'stringEnums', did you mean 'c'?"

        d = by_path[f'{prefix}[7].tiles["30"]']
        assert d.code == ErrorCode.LAYOUT_INVALID_TILE_NAME.value
        assert d.args == {"name": "30", "match": "3"}
        assert d.related_information[0].doc is variables_doc


class TestLayoutNavigation:

    def test_navigation_without_panel(self):
        layout = {
            "pages": [_page(navigation={"label": "one"}), _page()],
            "appDetails": {"navigation": {"label": "app"}},
        }
        linter, layout_doc, _ = _lint_layout(layout)
        diagnostics = by_jsonpath(diagnostics_of(linter, layout_doc))
        assert [d.code for d in diagnostics] == [ErrorCode.LAYOUT_PAGE_UNNECESSARY_NAVIGATION_OBJECT.value] * 2
        assert [d.jsonpath for d in diagnostics] == ["appDetails.navigation", "pages[0].navigation"]

    def test_navigation_with_panel(self):
        with_panel = _page(navigation={"label": "one"})
        with_panel["layout"]["navigationPanel"] = {"title": "Steps"}
        layout = {
            "pages": [with_panel, _page(navigation={"label": "two"})],
            "appDetails": {"navigation": {"label": "app"}},
        }
        linter, layout_doc, _ = _lint_layout(layout)
        [d] = diagnostics_of(linter, layout_doc)
        # панель есть только на первой странице
        assert d.jsonpath == "pages[1].navigation"
