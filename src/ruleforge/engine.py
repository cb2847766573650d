"""Validation engine for RuleForge.

A ValidationContext owns the runtime state of one configuration: its copy
of the fields and mixins, the parameter store, the class-level errors and
the queue of fields to validate. Each ``validate`` call:

1. Normalizes: flattens nested params, resets field state, checks that
   every directive is known, merges mixins and mixin fields, checks
   aliases and fires ``normalize`` hooks
2. Selects the target fields (explicit names, regex patterns, queued
   names, or every field with a parameter)
3. Applies ``+name`` / ``-name`` toggles
4. Expands list parameters into ``name:N`` clones
5. Applies ``pre`` filters
6. Validates each target: ``before_validation`` hooks, value resolution,
   required check, directive validators in dependency order,
   ``after_validation`` hooks
7. Folds clone errors into their origin field and reaps the clones
8. Applies ``post`` filters when the run produced no errors

Validation failures are recorded, never raised. Configuration mistakes
raise immediately unless ``ignore_unknown`` downgrades them.
"""

import copy
import logging
import re
from typing import Any, Callable, Mapping

from ruleforge.configuration import ClassConfiguration, MethodSpec
from ruleforge.directives.registry import Directive, render_message
from ruleforge.exceptions import (
    CircularMixinFieldError,
    OutputValidationError,
    UnknownDirectiveError,
    UnknownFieldError,
    UnknownFilterError,
    UnknownMethodError,
    UnknownMixinError,
    UnknownNameError,
    UnknownProfileError,
)
from ruleforge.fields import Field, split_clone_name
from ruleforge.filters import Filter, apply_filter
from ruleforge.merge import check_aliases, merge_field_into_field, merge_mixin_into_field
from ruleforge.params import Params
from ruleforge.types import EngineOptions, ErrorList, Event, FilterPhase

logger = logging.getLogger(__name__)


def is_empty(value: Any) -> bool:
    """None, the empty string and the empty list count as no value."""
    return value is None or value == "" or (isinstance(value, list) and not value)


class ValidationContext:
    """Runtime validation state for one configuration.

    Create through ``ClassConfiguration.new()``. Declared fields are also
    reachable as attributes (``context.login``), with non-word characters
    of the name replaced by underscores (``context.user_email``).
    """

    # Instance attributes fields may not shadow
    INSTANCE_ATTRIBUTES = (
        "configuration",
        "options",
        "directives",
        "filters",
        "messages",
        "profiles",
        "methods",
        "mixins",
        "fields",
        "params",
        "class_errors",
        "_accessors",
        "_declared",
        "_queued",
        "_stash",
        "_depth",
    )

    def __init__(
        self,
        configuration: ClassConfiguration,
        params: Mapping[str, Any] | None = None,
        options: EngineOptions | None = None,
    ):
        self.configuration = configuration
        self.options = options or configuration.options
        self.directives = configuration.directives
        self.filters = configuration.filters.copy()
        self.messages = dict(configuration.messages)
        self.profiles = dict(configuration.profiles)
        self.methods = dict(configuration.methods)
        self.mixins = {name: m.copy() for name, m in configuration.mixins.items()}
        self.fields = {name: f.copy() for name, f in configuration.fields.items()}
        self.params = Params(params)
        self.class_errors = ErrorList()
        self._accessors = {f.accessor: name for name, f in self.fields.items()}
        # Directive bags as declared; normalize composes from these every time
        self._declared = {
            name: copy.deepcopy(f.directives) for name, f in self.fields.items()
        }
        self._queued: list[str] = []
        self._stash: dict[str, Any] = {}
        self._depth = 0

    def __getattr__(self, name: str) -> Field:
        accessors = self.__dict__.get("_accessors", {})
        if name in accessors:
            return self.__dict__["fields"][accessors[name]]
        raise AttributeError(
            f"{type(self).__name__!r} object has no attribute {name!r}"
        )

    # =========================================================================
    # Fields
    # =========================================================================

    def field(self, name: str) -> Field:
        """Get a field by name.

        Raises:
            UnknownFieldError: If the field is not declared
        """
        if name not in self.fields:
            raise UnknownFieldError(f"Data validation field {name} does not exist")
        return self.fields[name]

    def label_for(self, name: str) -> str:
        return self.fields[name].label if name in self.fields else name

    def clone_field(self, source: str, name: str, **overrides: Any) -> Field:
        """Create field ``name`` at runtime from the directives of ``source``."""
        clone = self.field(source).clone(name, **self.configuration._decode(overrides))
        self.fields[name] = clone
        self._declared[name] = copy.deepcopy(clone.directives)
        if clone.origin and split_clone_name(name) is None:
            # A named clone is a regular field from now on
            clone.origin = None
            self._accessors[clone.accessor] = name
        logger.debug("Cloned field %s into %s", source, name)
        return clone

    # =========================================================================
    # Parameters
    # =========================================================================

    def param(self, name: str, *value: Any) -> Any:
        """Get a parameter, or set it when a value is given."""
        if value:
            self.params.add(name, value[0])
        return self.params.get(name)

    def get_params(self, *names: str) -> list[Any]:
        if not names:
            return [v for _, v in self.params.items()]
        return [self.params.get(name) for name in names]

    def get_params_hash(self) -> dict[str, Any]:
        """The parameters rebuilt as a nested structure."""
        return self.params.unflatten()

    def set_params_hash(self, tree: Mapping[str, Any]) -> "ValidationContext":
        """Replace the parameters with a flattened copy of a nested tree."""
        self.params = Params.from_nested(tree)
        return self

    # =========================================================================
    # Queue and stash
    # =========================================================================

    def queue(self, *names: str) -> "ValidationContext":
        """Add names to validate on the next ``validate`` call."""
        self._queued.extend(names)
        return self

    def clear_queue(self) -> list[Any]:
        """Empty the queue, returning the parameter values of its names."""
        names = [name.lstrip("+-") for name in self._queued]
        self._queued = []
        return [self.params.get(name) for name in names]

    def stash(self, *args: Any, **kwargs: Any) -> Any:
        """Scratch storage shared by profiles, methods and validators.

        ``stash()`` returns the whole stash, ``stash(key)`` one value,
        ``stash(key, value)`` or ``stash(key=value, ...)`` stores values.
        """
        if len(args) == 1 and not kwargs:
            if isinstance(args[0], Mapping):
                self._stash.update(args[0])
                return self._stash
            return self._stash.get(args[0])
        if len(args) == 2:
            self._stash[args[0]] = args[1]
        elif args:
            raise TypeError("stash() takes a key, a key and a value, or keywords")
        self._stash.update(kwargs)
        return self._stash

    # =========================================================================
    # Errors
    # =========================================================================

    def fail(
        self,
        field: Field,
        directive: str,
        *args: Any,
        template: str | None = None,
    ) -> bool:
        """Record a directive failure on ``field``. Always returns False.

        Message precedence: the field's ``error``, the field's
        ``messages[directive]``, the configuration's ``messages[directive]``,
        then ``template`` or the directive's own message.
        """
        message = field.get("error")
        if message is None:
            message = (field.get("messages") or {}).get(directive)
        if message is None:
            message = self.messages.get(directive)
        if message is None:
            message = template
        if message is None and self.directives.is_registered(directive):
            message = self.directives.get(directive).message
        field.errors.add(render_message(message or "%s is invalid", field.label, *args))
        return False

    def pitch_error(
        self, message: str, error: type[UnknownNameError] = UnknownFieldError
    ) -> None:
        """Raise an unknown-name error, or downgrade it per ``ignore_unknown``."""
        if not self.options.ignore_unknown:
            raise error(message)
        logger.warning("Ignoring unknown name: %s", message)
        if self.options.report_unknown:
            self.class_errors.add(message)

    def set_errors(self, *messages: str) -> int:
        """Add class-level errors. Returns the class-level error count."""
        return self.class_errors.add(*messages)

    def errors(self) -> list[str]:
        """Class-level errors, then each field's errors in declaration order."""
        collected = self.class_errors.list()
        for field in self.fields.values():
            collected.extend(field.errors.list())
        return collected

    def errors_to_string(
        self,
        delimiter: str = ", ",
        transformer: Callable[[str], str] | None = None,
    ) -> str:
        messages = self.errors()
        if transformer is not None:
            messages = [transformer(m) for m in messages]
        return delimiter.join(messages)

    def error_count(self) -> int:
        return len(self.errors())

    def error_fields(self, *names: str) -> dict[str, list[str]]:
        """Map of field name to errors, for fields that have errors."""
        names = names or tuple(self.fields)
        return {
            name: self.fields[name].errors.list()
            for name in names
            if name in self.fields and self.fields[name].errors
        }

    def get_errors(self, *names: str) -> list[str]:
        """Errors of the named fields, or the class-level errors."""
        if not names:
            return self.class_errors.list()
        collected: list[str] = []
        for name in names:
            collected.extend(self.field(name).errors.list())
        return collected

    def reset_errors(self) -> "ValidationContext":
        self.class_errors.clear()
        for field in self.fields.values():
            field.errors.clear()
        return self

    def reset_fields(self) -> "ValidationContext":
        """Clear the runtime state of every field, errors included."""
        for field in self.fields.values():
            field.reset()
        return self

    def reset(self) -> "ValidationContext":
        self._queued = []
        self.reset_fields()
        self.class_errors.clear()
        return self

    # =========================================================================
    # Normalization
    # =========================================================================

    def normalize(self) -> "ValidationContext":
        """Bring fields and parameters back to a pristine, checked state.

        Calling it twice without parameter changes yields the same state.
        """
        if self.params.has_nested():
            self.params.replace(self.params.flatten())

        errors_kept = self._depth > 0
        for field in self.fields.values():
            kept = field.errors.list()
            if field.name in self._declared:
                field.directives = copy.deepcopy(self._declared[field.name])
            field.reset()
            if errors_kept:
                field.errors.extend(kept)
        if not errors_kept:
            self.class_errors.clear()

        for mixin in self.mixins.values():
            self._check_directives(mixin.name, mixin.directives, "mixin")
        for field in self.fields.values():
            self._check_directives(field.name, field.directives, "field")

        for field in self.fields.values():
            for name in field.get("mixin") or []:
                if name in self.mixins:
                    merge_mixin_into_field(field, self.mixins[name], self.directives)
                else:
                    self.pitch_error(
                        f"The field {field.name} references the unknown mixin {name}",
                        UnknownMixinError,
                    )

        composed: set[str] = set()
        for field in list(self.fields.values()):
            self._merge_mixin_field(field, composed, [])

        check_aliases(self.fields.values())

        for field in self.fields.values():
            if field.get("filters") is None:
                field.set("filters", [])
            if "filtering" not in field:
                field.set("filtering", self.options.filtering)
            self._fire(Event.NORMALIZE, field)

        return self

    def _check_directives(self, owner: str, directives: dict[str, Any], kind: str) -> None:
        for key in list(directives):
            if not self.directives.is_registered(key):
                self.pitch_error(
                    f"The {kind} {owner} uses the unknown directive {key}",
                    UnknownDirectiveError,
                )
                continue
            directive = self.directives.get(key)
            applicable = directive.mixin if kind == "mixin" else directive.field
            if not applicable:
                self.pitch_error(
                    f"The directive {key} is not supported on the {kind} {owner}",
                    UnknownDirectiveError,
                )

    def _merge_mixin_field(self, field: Field, composed: set[str], chain: list[str]) -> None:
        """Merge ``field``'s mixin_field source into it, composing the source first."""
        if field.name in composed:
            return
        chain = [*chain, field.name]
        source = field.get("mixin_field")
        if source in chain:
            raise CircularMixinFieldError([*chain, source])
        if source is not None:
            if source in self.fields:
                self._merge_mixin_field(self.fields[source], composed, chain)
                merge_field_into_field(
                    field, self.fields[source], self.directives, self.mixins
                )
            else:
                self.pitch_error(
                    f"The field {field.name} references the unknown field {source}",
                    UnknownMixinError,
                )
        composed.add(field.name)

    def _fire(self, event: Event, field: Field) -> None:
        """Run the ``event`` hooks of the directives present on ``field``."""
        order = self.directives.resolve_dependencies(event, list(field.directives))
        param = self.params.get(field.name)
        for name in order:
            directive: Directive = self.directives.get(name)
            directive.hooks[event](directive, self, field, param)

    # =========================================================================
    # Filtering
    # =========================================================================

    def resolve_filter(self, name: str) -> Filter | None:
        """Look up a named filter; unknown names go through ``pitch_error``."""
        if self.filters.is_registered(name):
            return self.filters.get(name)
        self.pitch_error(f"Filter {name} is not supported", UnknownFilterError)
        return None

    def apply_filters(self, phase: FilterPhase | str = FilterPhase.PRE) -> "ValidationContext":
        """Filter the parameters of every field whose filtering is ``phase``."""
        phase = FilterPhase(phase).value
        for name, field in self.fields.items():
            if field.get("filtering") != phase or not self.params.has(name):
                continue
            value = self.params.get(name)
            for entry in field.get("filters") or []:
                fn = entry if callable(entry) else self.resolve_filter(entry)
                if fn is not None:
                    value = apply_filter(fn, value)
            self.params.add(name, value)
        return self

    # =========================================================================
    # Validation
    # =========================================================================

    def validate(self, *names: Any) -> bool:
        """Validate the named fields (or discover them from the parameters).

        Names may be field names, ``+name`` / ``-name`` toggles, compiled
        regex patterns, or a leading ``{param_name: field_name}`` mapping.
        Returns True when no class-level or field-level error was recorded.
        """
        with self._call():
            return self._validate(list(names))

    def _validate(self, names: list[Any]) -> bool:
        self.normalize()

        targets = self._select_targets(names)
        clones, expanded = self._expand_arrays(targets)
        try:
            if targets is None:
                targets = self._discover_targets()
            else:
                targets = self._substitute_clones(targets, clones)
            logger.debug("Validating fields: %s", ", ".join(targets))

            self.apply_filters(FilterPhase.PRE)

            for name in targets:
                if name not in self.fields:
                    self.pitch_error(f"Data validation field {name} does not exist")
                    continue
                self._validate_field(self.fields[name])
        finally:
            # Clones live for one call, even when it raises
            self._reap_clones(expanded)

        valid = self.error_count() == 0
        if valid:
            self.apply_filters(FilterPhase.POST)
        return valid

    def _select_targets(self, names: list[Any]) -> list[str] | None:
        """Explicit targets with toggles applied, or None for discovery."""
        targets: list[str] = []
        if names and isinstance(names[0], Mapping):
            for param_name, field_name in names.pop(0).items():
                if self.params.has(param_name):
                    self.params.add(field_name, self.params.delete(param_name))
                targets.append(field_name)

        for name in names:
            if isinstance(name, re.Pattern):
                targets.extend(n for n in sorted(self.fields) if name.search(n))
            else:
                targets.append(name)
        targets.extend(self._queued)

        resolved = []
        for name in targets:
            if name[:1] in ("+", "-") and len(name) > 1:
                toggle, name = name[0], name[1:]
                if name in self.fields:
                    self.fields[name].toggle = toggle
            if name not in resolved:
                resolved.append(name)

        for field in list(self.fields.values()):
            for alias in field.aliases:
                if self.params.has(alias):
                    self.params.add(field.name, self.params.delete(alias))
                    if resolved and field.name not in resolved:
                        resolved.append(field.name)

        return resolved or None

    def _expand_arrays(self, targets: list[str] | None) -> tuple[dict[str, list[str]], dict[str, int]]:
        """Create ``name:N`` clones for array-shaped parameters.

        Returns the clone names per origin field, and the list parameters
        that were split into indexed keys (origin name -> length).
        """
        expanded: dict[str, int] = {}
        for key, value in self.params.items():
            field = self.fields.get(key)
            if isinstance(value, list) and value and field and field.get("multiples"):
                self.params.delete(key)
                for index, item in enumerate(value):
                    self.params.add(f"{key}:{index}", item)
                expanded[key] = len(value)

        clones: dict[str, list[str]] = {}
        for key in self.params.keys():
            split = split_clone_name(key)
            if split is None or key in self.fields:
                continue
            origin, index = split
            if origin not in self.fields or self.fields[origin].is_clone:
                continue
            base = self.fields[origin]
            clone = base.clone(key, label=f"{base.label} #{index + 1}")
            self.fields[key] = clone
            clones.setdefault(origin, []).append(key)
            logger.debug("Created clone %s of %s", key, origin)

        for names in clones.values():
            names.sort(key=lambda n: split_clone_name(n)[1])
        return clones, expanded

    def _substitute_clones(self, targets: list[str], clones: dict[str, list[str]]) -> list[str]:
        substituted: list[str] = []
        for name in targets:
            substituted.extend(clones.get(name, [name]))
        return substituted

    def _discover_targets(self) -> list[str]:
        """Every field with a parameter, or every field when there are none."""
        if not self.params:
            if not self.fields:
                self.pitch_error(
                    "No parameters were submitted and no fields are registered"
                )
            return [name for name, f in self.fields.items() if not f.is_clone]

        targets: list[str] = []
        for key in self.params.keys():
            if key in self.fields:
                if key not in targets:
                    targets.append(key)
            else:
                self.pitch_error(f"Data validation field {key} does not exist")
        return targets

    def _validate_field(self, field: Field) -> None:
        self._fire(Event.BEFORE_VALIDATION, field)

        if self.params.has(field.name):
            field.value = self.params.get(field.name)
        value = field.value

        if is_empty(value):
            if field.required:
                self.fail(field, "required")
        elif isinstance(value, list) and not field.get("multiples"):
            self.fail(field, "multiples")
        else:
            order = self.directives.resolve_dependencies(
                Event.VALIDATE, list(field.directives)
            )
            for name in order:
                directive = self.directives.get(name)
                directive.validator(field.get(name), value, field, self)

        self._fire(Event.AFTER_VALIDATION, field)

    def _reap_clones(self, expanded: dict[str, int]) -> None:
        for name in [n for n, f in self.fields.items() if f.is_clone]:
            clone = self.fields.pop(name)
            self._declared.pop(name, None)
            if clone.origin in self.fields:
                self.fields[clone.origin].errors.extend(clone.errors)
            logger.debug("Reaped clone %s", name)

        for origin, length in expanded.items():
            values = [self.params.delete(f"{origin}:{i}") for i in range(length)]
            self.params.add(origin, values)

    # =========================================================================
    # Profiles and methods
    # =========================================================================

    def validate_profile(self, name: str, *args: Any, **kwargs: Any) -> bool:
        """Run the named profile with this context and the given arguments.

        Raises:
            UnknownProfileError: If the profile is not registered
        """
        if name not in self.profiles:
            raise UnknownProfileError(f"Validation profile {name} does not exist")
        with self._call():
            self.normalize()
            return bool(self.profiles[name](self, *args, **kwargs))

    def validate_method(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """Validate input, run the method, then validate its output.

        Returns None when the input is invalid, otherwise the result of the
        method's routine.

        Raises:
            UnknownMethodError: If the method is not registered
            OutputValidationError: If the output fails validation
        """
        if name not in self.methods:
            raise UnknownMethodError(f"Method {name} does not exist")
        spec: MethodSpec = self.methods[name]

        with self._call():
            if not self._check(spec.input):
                if self.options.report_failure:
                    self.class_errors.add(f"Method {name} failed to validate its input")
                return None

            result = spec.using(self, *args, **kwargs)

            if spec.output is not None and not self._check(spec.output):
                raise OutputValidationError(name, self.errors_to_string())
            return result

    def _check(self, target: list[str] | str) -> bool:
        if isinstance(target, str):
            return self.validate_profile(target)
        return self.validate(*target)

    def _call(self) -> "_CallScope":
        return _CallScope(self)

    def __repr__(self) -> str:
        return f"ValidationContext(fields={list(self.fields)!r}, params={self.params!r})"


class _CallScope:
    """Tracks nesting of validate calls.

    The outermost call starts from a clean error state; nested calls (a
    profile validating fields of its own context) append to it.
    """

    def __init__(self, context: ValidationContext):
        self.context = context

    def __enter__(self) -> ValidationContext:
        if self.context._depth == 0:
            self.context.reset_errors()
        self.context._depth += 1
        return self.context

    def __exit__(self, *exc_info: Any) -> None:
        self.context._depth -= 1
