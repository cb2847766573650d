"""
Tests for ruleforge.schema

Covers:
  - _stringify_keys()            PyYAML non-string keys → strings
  - validate_config_file()       single-file validation (valid + invalid)
  - validate_config_dir()        directory walk, strict mode
"""
from __future__ import annotations

from pathlib import Path

import yaml

from ruleforge.schema import (
    ConfigIssue,
    _stringify_keys,
    validate_config_dir,
    validate_config_file,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _write_yaml(path: Path, data: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(data))
    return path


def _write_raw(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


VALID_CONFIG = {
    "options": {"ignoreUnknown": False, "filtering": "pre"},
    "messages": {"required": "%s is needed"},
    "mixins": {"basic": {"required": True, "filters": ["trim", "strip"]}},
    "fields": {
        "login": {"mixin": "basic", "min_length": 5, "max_length": 255},
        "user.email": {"email": True, "alias": ["mail"]},
        "code": {"pattern": {"regex": "^[A-Z]{3}$"}},
        "password": {"mixin": "basic", "validation": "@strong_password"},
    },
    "directives": {"even": {"validator": "@even", "message": "%s must be even"}},
    "profiles": {"signup": "@signup"},
    "methods": {"create_user": {"input": ["login"], "using": "@create_user"}},
}


# ---------------------------------------------------------------------------
# _stringify_keys
# ---------------------------------------------------------------------------


class TestStringifyKeys:
    def test_booleans_become_yaml_words(self):
        assert _stringify_keys({True: 1, False: 2}) == {"on": 1, "off": 2}

    def test_numbers_become_strings(self):
        assert _stringify_keys({1: {2: "x"}}) == {"1": {"2": "x"}}

    def test_lists_are_walked(self):
        assert _stringify_keys([{3: "a"}, "b"]) == [{"3": "a"}, "b"]


# ---------------------------------------------------------------------------
# ConfigIssue
# ---------------------------------------------------------------------------


class TestConfigIssue:
    def test_str_with_path(self):
        issue = ConfigIssue(file=Path("rules.yaml"), message="bad", path="fields/login")
        assert str(issue) == "[ERROR] rules.yaml at fields/login: bad"

    def test_str_without_path(self):
        issue = ConfigIssue(file=Path("rules.yaml"), message="empty", severity="warning")
        assert str(issue) == "[WARNING] rules.yaml: empty"


# ---------------------------------------------------------------------------
# validate_config_file
# ---------------------------------------------------------------------------


class TestValidateConfigFile:
    def test_valid_config(self, tmp_path):
        path = _write_yaml(tmp_path / "rules.yaml", VALID_CONFIG)
        assert validate_config_file(path) == []

    def test_unknown_section(self, tmp_path):
        path = _write_yaml(tmp_path / "rules.yaml", {"feilds": {"login": {}}})
        issues = validate_config_file(path)
        assert len(issues) == 1
        assert "feilds" in issues[0].message
        assert issues[0].path == ""

    def test_wrong_directive_type(self, tmp_path):
        path = _write_yaml(
            tmp_path / "rules.yaml", {"fields": {"login": {"min_length": "five"}}}
        )
        issues = validate_config_file(path)
        assert [i.path for i in issues] == ["fields/login/min_length"]

    def test_method_requires_using(self, tmp_path):
        path = _write_yaml(
            tmp_path / "rules.yaml", {"methods": {"create_user": {"input": ["login"]}}}
        )
        issues = validate_config_file(path)
        assert len(issues) == 1
        assert "using" in issues[0].message

    def test_callables_must_be_references(self, tmp_path):
        path = _write_yaml(tmp_path / "rules.yaml", {"profiles": {"signup": "signup"}})
        issues = validate_config_file(path)
        assert [i.path for i in issues] == ["profiles/signup"]

    def test_custom_directives_are_allowed_on_fields(self, tmp_path):
        path = _write_yaml(tmp_path / "rules.yaml", {"fields": {"count": {"even": True}}})
        assert validate_config_file(path) == []

    def test_yaml_parse_error(self, tmp_path):
        path = _write_raw(tmp_path / "rules.yaml", "fields: [unclosed\n")
        issues = validate_config_file(path)
        assert len(issues) == 1
        assert "YAML parse error" in issues[0].message

    def test_empty_file_is_a_warning(self, tmp_path):
        path = _write_raw(tmp_path / "rules.yaml", "")
        issues = validate_config_file(path)
        assert len(issues) == 1
        assert issues[0].severity == "warning"

    def test_numeric_field_names_are_reported(self, tmp_path):
        path = _write_raw(tmp_path / "rules.yaml", "fields:\n  1:\n    required: true\n")
        issues = validate_config_file(path)
        assert issues
        assert all(i.severity == "error" for i in issues)


# ---------------------------------------------------------------------------
# validate_config_dir
# ---------------------------------------------------------------------------


class TestValidateConfigDir:
    def test_valid_directory(self, tmp_path):
        _write_yaml(tmp_path / "rules" / "a.yaml", {"fields": {"login": {"required": True}}})
        _write_yaml(tmp_path / "rules" / "nested" / "b.yml", {"mixins": {"basic": {}}})
        assert validate_config_dir(tmp_path / "rules") == []

    def test_collects_issues_across_files(self, tmp_path):
        _write_yaml(tmp_path / "a.yaml", {"fields": {"login": {"required": "yes"}}})
        _write_yaml(tmp_path / "b.yaml", {"bogus": {}})
        issues = validate_config_dir(tmp_path)
        assert sorted(i.file.name for i in issues) == ["a.yaml", "b.yaml"]

    def test_missing_directory(self, tmp_path):
        issues = validate_config_dir(tmp_path / "nope")
        assert len(issues) == 1
        assert "does not exist" in issues[0].message

    def test_no_yaml_files(self, tmp_path):
        issues = validate_config_dir(tmp_path)
        assert [i.severity for i in issues] == ["warning"]

    def test_strict_escalates_warnings(self, tmp_path):
        _write_raw(tmp_path / "empty.yaml", "")
        issues = validate_config_dir(tmp_path, strict=True)
        assert [i.severity for i in issues] == ["error"]
