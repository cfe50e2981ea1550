"""Tests for strict SQL template rendering."""

import pytest

from bqpipe.core.template import build_render_context, find_placeholders, render
from bqpipe.exceptions import RenderError, UndefinedVariableError


class TestRender:
    def test_substitutes_placeholder(self):
        assert render("SELECT {{ env }}", {"env": "prod"}) == "SELECT prod"

    def test_whitespace_inside_braces_is_optional(self):
        sql = "SELECT '{{env}}', '{{  env  }}'"
        assert render(sql, {"env": "dev"}) == "SELECT 'dev', 'dev'"

    def test_leading_dot_is_accepted(self):
        sql = "SELECT * FROM `{{ .project_id }}.{{ .dataset }}.t`"
        context = {"project_id": "p", "dataset": "d"}
        assert render(sql, context) == "SELECT * FROM `p.d.t`"

    def test_text_without_placeholders_is_unchanged(self):
        sql = "SELECT 1 -- { not a placeholder }"
        assert render(sql, {}) == sql

    def test_repeated_placeholder(self):
        sql = "{{ a }} + {{ a }}"
        assert render(sql, {"a": "1"}) == "1 + 1"

    def test_values_are_not_re_rendered(self):
        assert render("{{ a }}", {"a": "{{ b }}"}) == "{{ b }}"

    def test_undefined_variable_fails(self):
        with pytest.raises(UndefinedVariableError) as exc_info:
            render("SELECT {{ missing }}", {"env": "prod"}, path="sql/a.sql")

        error = exc_info.value
        assert error.name == "missing"
        assert error.path == "sql/a.sql"
        assert "missing" in str(error)
        assert "sql/a.sql" in str(error)

    def test_undefined_variable_lists_every_missing_name(self):
        with pytest.raises(UndefinedVariableError) as exc_info:
            render("{{ b }} {{ known }} {{ a }} {{ b }}", {"known": "x"})

        assert exc_info.value.missing == ["b", "a"]

    def test_undefined_variable_is_a_render_error(self):
        with pytest.raises(RenderError):
            render("{{ nope }}", {})

    def test_empty_value_is_allowed(self):
        assert render("SELECT 1{{ suffix }}", {"suffix": ""}) == "SELECT 1"

    def test_control_flow_is_rejected(self):
        with pytest.raises(RenderError) as exc_info:
            render("{{ if .flag }}SELECT 1{{ end }}", {"flag": "x"}, path="a.sql")

        assert not isinstance(exc_info.value, UndefinedVariableError)
        assert "unsupported" in str(exc_info.value)

    def test_unterminated_placeholder_is_rejected(self):
        with pytest.raises(RenderError) as exc_info:
            render("SELECT 1\nFROM {{ table", {"table": "t"}, path="a.sql")

        assert "unterminated" in str(exc_info.value)
        assert "line 2" in str(exc_info.value)


class TestFindPlaceholders:
    def test_returns_names_in_order(self):
        assert find_placeholders("{{ b }} {{ .a }} {{b}}") == ["b", "a", "b"]

    def test_no_placeholders(self):
        assert find_placeholders("SELECT 1") == []


class TestBuildRenderContext:
    def test_copies_user_variables(self):
        variables = {"env": "prod"}
        context = build_render_context(variables)

        context["env"] = "changed"
        assert variables == {"env": "prod"}

    def test_injected_values_shadow_user_variables(self):
        context = build_render_context(
            {"dataset": "user_ds", "project_id": "user_proj", "env": "prod"},
            dataset="auto_ds",
            project_id="proj1",
        )

        assert context == {"dataset": "auto_ds", "project_id": "proj1", "env": "prod"}

    def test_empty_values_are_not_injected(self):
        context = build_render_context({"dataset": "user_ds"}, dataset="", project_id="")

        assert context == {"dataset": "user_ds"}

    def test_project_id_placeholder_uses_injected_value(self):
        context = build_render_context(
            {"project_id": "ignored"}, dataset="", project_id="proj1"
        )

        assert render("SELECT '{{ project_id }}'", context) == "SELECT 'proj1'"
