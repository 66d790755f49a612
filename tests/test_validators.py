"""Тесты для проверок относительных путей и имён переменных."""

import pytest

from template_lint.services.validators import is_valid_relpath, is_valid_variable_name


class TestIsValidRelpath:

    @pytest.mark.parametrize("relpath", ["ui.json", "a/b.json", "a/b/c.csv", "..hidden", "./x.json"])
    def test_valid(self, relpath):
        assert is_valid_relpath(relpath)

    @pytest.mark.parametrize("relpath", [None, "", "   ", "/abs.json", "../up.json", "a/../b.json", "a/..", "a/b/.."])
    def test_invalid(self, relpath):
        assert not is_valid_relpath(relpath)

    def test_bare_dotdot_not_special(self):
        # ".." без слэша отдельно не проверяется
        assert is_valid_relpath("..")


class TestIsValidVariableName:

    @pytest.mark.parametrize("name", ["ab", "_x", "Var_1", "varname1"])
    def test_valid(self, name):
        assert is_valid_variable_name(name)

    @pytest.mark.parametrize("name", [None, "", "1abc", "has space", "dash-name", "é1"])
    def test_invalid(self, name):
        assert not is_valid_variable_name(name)

    def test_single_character_is_invalid(self):
        assert not is_valid_variable_name("a")
