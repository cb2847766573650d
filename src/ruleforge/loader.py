"""Load validation configurations from YAML files.

A configuration document looks like:

    options:
      ignoreUnknown: false
      filtering: pre
    messages:
      required: "%s is needed"
    mixins:
      basic:
        required: true
        filters: [trim, strip]
    fields:
      login:
        mixin: basic
        min_length: 5
      code:
        pattern: {regex: "^[A-Z]{3}$"}
      password:
        mixin: basic
        validation: "@strong_password"
    profiles:
      signup: "@signup"
    methods:
      create_user:
        input: [login, password]
        using: "@create_user"

Strings of the form ``"@name"`` refer to callables registered in the
CallableRegistry (validation and default values, filter entries, profile
procedures, method routines and the parts of custom directives).
"""

import logging
import re
from collections.abc import Callable
from dataclasses import asdict
from pathlib import Path
from typing import Any

import yaml

from ruleforge.configuration import ClassConfiguration
from ruleforge.exceptions import ConfigurationError
from ruleforge.types import EngineOptions

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "@"

# Directive values that may be "@name" references
_CALLABLE_DIRECTIVES = ("validation", "default")


class CallableRegistry:
    """Registry of callables that YAML documents refer to by name.

    Callables must be explicitly registered before a document that uses
    them is loaded.

    Example:
        @register_callable("strong_password")
        def strong_password(context, field, params):
            ...
    """

    _callables: dict[str, Callable[..., Any]] = {}

    @classmethod
    def register(cls, name: str, fn: Callable[..., Any]) -> None:
        """Register a callable by name.

        Idempotent - re-registering the same name is a no-op.
        """
        if name in cls._callables:
            return
        cls._callables[name] = fn

    @classmethod
    def get(cls, name: str) -> Callable[..., Any]:
        """Get a registered callable by name.

        Raises:
            ConfigurationError: If the callable is not registered
        """
        if name not in cls._callables:
            raise ConfigurationError(
                f"Callable {name} is not registered. "
                "Callables must be registered before configurations are loaded."
            )
        return cls._callables[name]

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._callables

    @classmethod
    def list_registered(cls) -> list[str]:
        return sorted(cls._callables.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._callables.clear()


def register_callable(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator registering a function in the CallableRegistry."""

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        CallableRegistry.register(name, fn)
        return fn

    return decorator


def is_reference(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(REFERENCE_PREFIX) and len(value) > 1


def resolve_reference(value: Any) -> Any:
    """Resolve an ``"@name"`` string to its callable; other values pass through."""
    if is_reference(value):
        return CallableRegistry.get(value[len(REFERENCE_PREFIX):])
    return value


def find_yaml_files(path: Path) -> list[Path]:
    """A single file, or every ``*.yaml`` / ``*.yml`` file under a directory."""
    if path.is_file():
        return [path]
    return sorted(
        p for p in path.rglob("*") if p.suffix in (".yaml", ".yml") and p.is_file()
    )


class ConfigurationLoader:
    """Builds a ClassConfiguration from one YAML file or a directory of them.

    Names (mixins, fields, profiles, methods, directives, filters) must be
    unique across all files.
    """

    SECTIONS = ("directives", "filters", "mixins", "fields", "profiles", "methods")

    def __init__(self, path: Path):
        self.path = Path(path)
        self.documents: dict[Path, dict[str, Any]] = {}
        self._origins: dict[tuple[str, str], Path] = {}

    def load(self, **options: Any) -> ClassConfiguration:
        """Load every document and build the configuration.

        Keyword options override the ``options`` sections of the documents.
        """
        self._read_documents()

        merged_options: dict[str, Any] = {}
        for document in self.documents.values():
            merged_options.update(document.get("options") or {})
        engine = asdict(EngineOptions.from_dict(merged_options))
        engine.update(options)

        configuration = ClassConfiguration(**engine)

        for document in self.documents.values():
            for name, template in (document.get("messages") or {}).items():
                configuration.message(name, template)
            for name, descriptor in (document.get("directives") or {}).items():
                configuration.directives.register(name, self._resolve_directive(descriptor))
            for name, fn in (document.get("filters") or {}).items():
                configuration.filter(name, self._require_callable(fn, f"filter {name}"))

        for document in self.documents.values():
            for name, directives in (document.get("mixins") or {}).items():
                configuration.mixin(name, **self._resolve_directives(directives))

        for document in self.documents.values():
            for name, directives in (document.get("fields") or {}).items():
                configuration.field(str(name), **self._resolve_directives(directives))

        for document in self.documents.values():
            for name, procedure in (document.get("profiles") or {}).items():
                configuration.profile(
                    name, self._require_callable(procedure, f"profile {name}")
                )
            for name, spec in (document.get("methods") or {}).items():
                configuration.method(
                    name,
                    input=spec.get("input", []),
                    using=self._require_callable(spec.get("using"), f"method {name}"),
                    output=spec.get("output"),
                )

        logger.debug(
            "Loaded %d field(s) and %d mixin(s) from %s",
            len(configuration.fields),
            len(configuration.mixins),
            self.path,
        )
        return configuration

    def list_fields(self) -> list[str]:
        return sorted(
            name for (section, name) in self._origins if section == "fields"
        )

    # =========================================================================
    # Reading
    # =========================================================================

    def _read_documents(self) -> None:
        if not self.path.exists():
            raise ConfigurationError(f"Configuration path not found: {self.path}")

        self.documents.clear()
        self._origins.clear()
        for yaml_file in find_yaml_files(self.path):
            with open(yaml_file) as f:
                data = yaml.safe_load(f)
            if not data:
                continue
            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"{yaml_file}: a configuration document must be a mapping"
                )
            self._claim_names(yaml_file, data)
            self.documents[yaml_file] = data

    def _claim_names(self, yaml_file: Path, data: dict[str, Any]) -> None:
        for section in self.SECTIONS:
            for name in data.get(section) or {}:
                key = (section, str(name))
                if key in self._origins:
                    raise ConfigurationError(
                        f"Duplicate {section[:-1]} {name} defined in "
                        f"{self._origins[key]} and {yaml_file}"
                    )
                self._origins[key] = yaml_file

    # =========================================================================
    # Resolution
    # =========================================================================

    def _resolve_directives(self, directives: dict[str, Any] | None) -> dict[str, Any]:
        resolved: dict[str, Any] = {}
        for key, value in (directives or {}).items():
            if key in _CALLABLE_DIRECTIVES:
                value = resolve_reference(value)
            elif key == "filters":
                value = [resolve_reference(v) for v in _as_list(value)]
            elif key == "pattern" and isinstance(value, dict) and "regex" in value:
                value = re.compile(value["regex"])
            resolved[key] = value
        return resolved

    def _resolve_directive(self, descriptor: dict[str, Any] | None) -> dict[str, Any]:
        resolved = dict(descriptor or {})
        for key in ("validator", "decode"):
            if key in resolved:
                resolved[key] = resolve_reference(resolved[key])
        if "hooks" in resolved:
            resolved["hooks"] = {
                event: resolve_reference(fn) for event, fn in resolved["hooks"].items()
            }
        return resolved

    def _require_callable(self, value: Any, owner: str) -> Callable[..., Any]:
        fn = resolve_reference(value)
        if not callable(fn):
            raise ConfigurationError(
                f"The {owner} must reference a registered callable (\"@name\")"
            )
        return fn


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    return list(value) if isinstance(value, (list, tuple)) else [value]


def load_configuration(path: Path | str, **options: Any) -> ClassConfiguration:
    """Shortcut for ``ConfigurationLoader(path).load(**options)``."""
    return ConfigurationLoader(Path(path)).load(**options)
