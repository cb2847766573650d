"""Tests for RuleForge CLI commands."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from ruleforge.cli import cli
from ruleforge.loader import CallableRegistry


RULES_YAML = """
mixins:
  basic:
    required: true
    filters: [trim]
fields:
  login:
    mixin: basic
    min_length: 5
  email:
    email: true
"""


@pytest.fixture(autouse=True)
def clear_callable_registry():
    """Clear callable registry before and after each test."""
    CallableRegistry.clear()
    yield
    CallableRegistry.clear()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def rules_dir(tmp_path) -> Path:
    rules = tmp_path / "rules"
    rules.mkdir()
    (rules / "account.yaml").write_text(RULES_YAML)
    return rules


# =============================================================================
# check
# =============================================================================


class TestCheck:
    def test_valid_configuration(self, runner, rules_dir):
        result = runner.invoke(cli, ["check", str(rules_dir)])
        assert result.exit_code == 0
        assert "Loaded 2 field(s)" in result.output
        assert "login" in result.output
        assert "email" in result.output
        assert "Configuration is valid." in result.output

    def test_schema_errors(self, runner, tmp_path):
        (tmp_path / "broken.yaml").write_text("feilds:\n  login:\n    required: true\n")
        result = runner.invoke(cli, ["check", str(tmp_path)])
        assert result.exit_code == 1
        assert "1 schema error(s) found" in result.output
        assert "feilds" in result.output

    def test_unknown_mixin_fails_semantic_check(self, runner, tmp_path):
        (tmp_path / "rules.yaml").write_text("fields:\n  login:\n    mixin: ghost\n")
        result = runner.invoke(cli, ["check", str(tmp_path)])
        assert result.exit_code == 1
        assert "Semantic validation failed" in result.output
        assert "unknown mixin ghost" in result.output

    def test_warnings_pass_unless_strict(self, runner, rules_dir):
        (rules_dir / "empty.yaml").write_text("")
        result = runner.invoke(cli, ["check", str(rules_dir)])
        assert result.exit_code == 0
        assert "1 warning(s) found." in result.output

        result = runner.invoke(cli, ["check", "--strict", str(rules_dir)])
        assert result.exit_code == 1

    def test_module_registers_callables(self, runner, tmp_path, monkeypatch):
        (tmp_path / "rf_cli_callables.py").write_text(
            "from ruleforge.loader import register_callable\n"
            "\n"
            "@register_callable('has_digit')\n"
            "def has_digit(context, field, params):\n"
            "    return any(c.isdigit() for c in params.get(field.name) or '')\n"
        )
        monkeypatch.syspath_prepend(str(tmp_path))
        rules = tmp_path / "rules"
        rules.mkdir()
        (rules / "rules.yaml").write_text(
            "fields:\n  password:\n    validation: '@has_digit'\n"
        )
        result = runner.invoke(cli, ["check", "-m", "rf_cli_callables", str(rules)])
        assert result.exit_code == 0
        assert "Configuration is valid." in result.output

    def test_unimportable_module(self, runner, rules_dir):
        result = runner.invoke(cli, ["check", "-m", "no_such_module_here", str(rules_dir)])
        assert result.exit_code == 1
        assert "Cannot import no_such_module_here" in result.output

    def test_missing_path(self, runner, tmp_path):
        result = runner.invoke(cli, ["check", str(tmp_path / "nope")])
        assert result.exit_code == 2


# =============================================================================
# validate
# =============================================================================


class TestValidate:
    def test_valid_params(self, runner, rules_dir):
        result = runner.invoke(
            cli, ["validate", str(rules_dir), "-p", "login= admin ", "-p", "email=a@b.io"]
        )
        assert result.exit_code == 0
        assert result.output.strip() == "valid"

    def test_invalid_params(self, runner, rules_dir):
        result = runner.invoke(cli, ["validate", str(rules_dir), "-p", "login=ad"])
        assert result.exit_code == 1
        assert "login must be 5 or more characters" in result.output

    def test_selected_fields(self, runner, rules_dir):
        result = runner.invoke(
            cli, ["validate", str(rules_dir), "-f", "email", "-p", "email=a@b.io"]
        )
        assert result.exit_code == 0

    def test_json_output(self, runner, rules_dir):
        result = runner.invoke(cli, ["validate", str(rules_dir), "--json"])
        assert result.exit_code == 1
        payload = json.loads(result.output)
        assert payload["valid"] is False
        assert payload["errors"] == ["login is required"]
        assert payload["fields"] == {"login": ["login is required"]}

    def test_unknown_field(self, runner, rules_dir):
        result = runner.invoke(cli, ["validate", str(rules_dir), "-f", "ghost"])
        assert result.exit_code == 1
        assert "Data validation field ghost does not exist" in result.output

    def test_malformed_param(self, runner, rules_dir):
        result = runner.invoke(cli, ["validate", str(rules_dir), "-p", "login"])
        assert result.exit_code == 2
        assert "expected key=value" in result.output


# =============================================================================
# directives
# =============================================================================


class TestDirectives:
    def test_lists_core_directives(self, runner):
        result = runner.invoke(cli, ["directives"])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0].startswith("NAME")
        names = [line.split()[0] for line in lines[1:]]
        assert "min_length" in names
        assert "validation" in names
        assert names == sorted(names)

    def test_log_level_option(self, runner):
        result = runner.invoke(cli, ["--log-level", "debug", "directives"])
        assert result.exit_code == 0

    def test_rejects_unknown_log_level(self, runner):
        result = runner.invoke(cli, ["--log-level", "loud", "directives"])
        assert result.exit_code == 2
