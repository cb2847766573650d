"""
schema.py: JSON Schema checks for RuleForge YAML configuration files.

Catches structural mistakes (misspelled sections, wrong value types,
malformed names) before a configuration is built.

Usage:
    from ruleforge.schema import validate_config_dir, validate_config_file

    issues = validate_config_dir(Path("rules"))
    for issue in issues:
        print(issue)

PyYAML quirk: bare keys such as ``on:``, ``yes:`` or ``1:`` load as
booleans or integers. Keys are turned back into strings before validation
so the schema's name patterns report them instead of crashing.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from ruleforge.loader import find_yaml_files

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Public data types
# ---------------------------------------------------------------------------

_SCHEMAS_DIR = Path(__file__).parent / "schemas"

CONFIG_SCHEMA = "config.schema.json"

# Names PyYAML 1.1 reads as booleans
_BOOLEAN_KEYS = {True: "on", False: "off"}


@dataclass
class ConfigIssue:
    """A single finding for a configuration YAML file."""

    file: Path
    message: str
    path: str = ""          # location within the document, e.g. "fields/login/min_length"
    severity: str = "error" # "error" | "warning"

    def __str__(self) -> str:
        loc = f" at {self.path}" if self.path else ""
        return f"[{self.severity.upper()}] {self.file}{loc}: {self.message}"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


@lru_cache(maxsize=None)
def _load_schema(name: str) -> dict[str, Any]:
    schema_path = _SCHEMAS_DIR / name
    with schema_path.open() as fh:
        return json.load(fh)


def _stringify_keys(obj: Any) -> Any:
    """Recursively turn non-string mapping keys into strings."""
    if isinstance(obj, dict):
        result: dict[str, Any] = {}
        for k, v in obj.items():
            if isinstance(k, bool):
                new_key = _BOOLEAN_KEYS[k]
            else:
                new_key = k if isinstance(k, str) else str(k)
            result[new_key] = _stringify_keys(v)
        return result
    if isinstance(obj, list):
        return [_stringify_keys(item) for item in obj]
    return obj


def _json_path(error: ValidationError) -> str:
    """Location of a schema error as ``fields/login/min_length``."""
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_config_file(
    yaml_path: Path,
    *,
    validator: Draft202012Validator | None = None,
) -> list[ConfigIssue]:
    """
    Validate a single configuration file against the configuration schema.

    Args:
        yaml_path: Path to the YAML file to validate.
        validator: Pre-built validator.  Built automatically if omitted.

    Returns:
        A list of :class:`ConfigIssue` objects (empty on success).
    """
    # 1. Parse YAML
    try:
        with yaml_path.open() as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        return [ConfigIssue(file=yaml_path, message=f"YAML parse error: {exc}")]

    if raw is None:
        return [
            ConfigIssue(
                file=yaml_path,
                message="File is empty or contains only whitespace",
                severity="warning",
            )
        ]

    # 2. Turn bool/int keys back into strings
    doc = _stringify_keys(raw)

    # 3. Collect validation errors
    if validator is None:
        validator = Draft202012Validator(_load_schema(CONFIG_SCHEMA))

    issues = [
        ConfigIssue(file=yaml_path, message=error.message, path=_json_path(error))
        for error in sorted(validator.iter_errors(doc), key=lambda e: list(map(str, e.path)))
    ]
    logger.debug("Checked %s: %d issue(s)", yaml_path, len(issues))
    return issues


def validate_config_dir(
    config_path: Path,
    *,
    strict: bool = False,
) -> list[ConfigIssue]:
    """
    Validate every YAML file under *config_path* (or the file itself).

    Args:
        config_path: A configuration file, or a directory searched recursively.
        strict:      If ``True``, warnings are escalated to errors.

    Returns:
        A flat list of :class:`ConfigIssue` objects across all files.
        An empty list means every file passed.
    """
    if not config_path.exists():
        return [
            ConfigIssue(
                file=config_path,
                message=f"Configuration path does not exist: {config_path}",
            )
        ]

    # Build the validator once, shared across all file validations
    try:
        validator = Draft202012Validator(_load_schema(CONFIG_SCHEMA))
    except (FileNotFoundError, json.JSONDecodeError) as exc:
        return [
            ConfigIssue(
                file=_SCHEMAS_DIR,
                message=f"Failed to load JSON Schema file: {exc}",
            )
        ]

    yaml_files = find_yaml_files(config_path)
    if not yaml_files:
        return [
            ConfigIssue(
                file=config_path,
                message="No YAML configuration files found",
                severity="warning" if not strict else "error",
            )
        ]

    all_issues: list[ConfigIssue] = []
    for yaml_file in yaml_files:
        file_issues = validate_config_file(yaml_file, validator=validator)
        if strict:
            for issue in file_issues:
                if issue.severity == "warning":
                    issue.severity = "error"
        all_issues.extend(file_issues)

    return all_issues
