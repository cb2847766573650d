"""Build-time configuration for RuleForge.

A ClassConfiguration collects directives, mixins, fields, filters,
profiles, methods and message templates once. Every call to ``new()``
produces an independent ValidationContext holding its own copies.

Example:
    config = ClassConfiguration()
    config.mixin("basic", required=True, filters=["trim", "strip"])
    config.field("login", mixin="basic", min_length=5, max_length=255)
    config.field("password", mixin="basic", min_length=5, min_symbols=1)

    context = config.new({"login": "admin", "password": "s3cret!"})
    context.validate()
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from ruleforge.directives import DirectiveRegistry, register_core_directives
from ruleforge.exceptions import NameCollisionError, UnknownFieldError
from ruleforge.fields import Field, Mixin, accessor_name
from ruleforge.filters import FilterRegistry
from ruleforge.merge import check_aliases
from ruleforge.types import EngineOptions

if TYPE_CHECKING:
    from ruleforge.engine import ValidationContext

logger = logging.getLogger(__name__)

Profile = Callable[..., Any]


@dataclass
class MethodSpec:
    """A self-validating method.

    Attributes:
        name: Method name
        input: Field names (toggles allowed) or a profile name validated
            before ``using`` runs
        using: The routine, called as ``using(context, *args, **kwargs)``
        output: Field names or a profile name validated after ``using``
    """

    name: str
    input: list[str] | str
    using: Callable[..., Any]
    output: list[str] | str | None = None


def reserved_names() -> set[str]:
    """Attribute names of ValidationContext that fields may not shadow."""
    from ruleforge.engine import ValidationContext

    names = {name for name in dir(ValidationContext) if not name.startswith("__")}
    return names | set(ValidationContext.INSTANCE_ATTRIBUTES)


class ClassConfiguration:
    """Declared once, shared by every context created from it."""

    def __init__(
        self,
        ignore_unknown: bool = False,
        report_unknown: bool = False,
        filtering: str | None = "pre",
        report_failure: bool = False,
    ):
        self.options = EngineOptions(
            ignore_unknown=ignore_unknown,
            report_unknown=report_unknown,
            filtering=filtering,
            report_failure=report_failure,
        )
        self.directives = register_core_directives(DirectiveRegistry())
        self.filters = FilterRegistry()
        self.mixins: dict[str, Mixin] = {}
        self.fields: dict[str, Field] = {}
        self.profiles: dict[str, Profile] = {}
        self.methods: dict[str, MethodSpec] = {}
        self.messages: dict[str, str] = {}
        self._accessors: dict[str, str] = {}

    # =========================================================================
    # Declarations
    # =========================================================================

    def directive(self, name: str, **descriptor: Any):
        """Register a custom directive.

        Without a ``validator`` entry this returns a decorator that registers
        the decorated function as the validator.
        """
        if "validator" in descriptor:
            self.directives.register(name, descriptor)
            return self

        def decorator(fn):
            self.directives.register(name, {**descriptor, "validator": fn})
            return fn

        return decorator

    def mixin(self, name: str, **directives: Any) -> "ClassConfiguration":
        self.mixins[name] = Mixin(name, self._decode(directives))
        return self

    def field(self, name: str, **directives: Any) -> "ClassConfiguration":
        """Declare a field.

        Raises:
            MalformedFieldNameError: The name is not a valid field name
            NameCollisionError: The field's accessor is already taken
            DuplicateAliasError, AliasShadowsFieldError: Alias clashes
        """
        declared = Field(name, self._decode(directives))
        check_aliases([*(f for n, f in self.fields.items() if n != name), declared])
        self._claim(declared.accessor, f"field {name}")
        self.fields[name] = declared
        return self

    def profile(self, name: str, procedure: Profile | None = None):
        """Register a validation profile, directly or as a decorator."""
        if procedure is None:

            def decorator(fn):
                self.profile(name, fn)
                return fn

            return decorator

        self._check_reserved(name, "profile")
        self.profiles[name] = procedure
        return self

    def method(
        self,
        name: str,
        input: list[str] | str,
        using: Callable[..., Any] | None = None,
        output: list[str] | str | None = None,
    ):
        """Register a self-validating method, directly or as a decorator."""
        if using is None:

            def decorator(fn):
                self.method(name, input=input, using=fn, output=output)
                return fn

            return decorator

        self._check_reserved(name, "method")
        self.methods[name] = MethodSpec(name, input, using, output)
        return self

    def filter(self, name: str, fn: Callable[[Any], Any] | None = None):
        """Register a custom filter, directly or as a decorator."""
        if fn is None:

            def decorator(f):
                self.filters.register(name, f)
                return f

            return decorator

        self.filters.register(name, fn)
        return self

    def message(self, directive: str, template: str) -> "ClassConfiguration":
        """Set the configuration-wide error template for a directive."""
        self.messages[directive] = template
        return self

    def default(self, field: str, value: Any) -> "ClassConfiguration":
        """Set the default of a declared field."""
        if field not in self.fields:
            raise UnknownFieldError(f"Data validation field {field} does not exist")
        self.fields[field].set("default", value)
        return self

    # =========================================================================
    # Contexts
    # =========================================================================

    def new(self, params: dict[str, Any] | None = None, **options: Any) -> "ValidationContext":
        """Create a validation context, optionally overriding engine options."""
        from ruleforge.engine import ValidationContext

        return ValidationContext(self, params, self.options.merged(**options))

    # =========================================================================
    # Internals
    # =========================================================================

    def _decode(self, directives: dict[str, Any]) -> dict[str, Any]:
        """Decode directive values once; unknown names are kept for normalize."""
        decoded = {}
        for key, value in directives.items():
            if self.directives.is_registered(key):
                value = self.directives.get(key).decode_value(value)
            decoded[key] = value
        return decoded

    def _check_reserved(self, name: str, kind: str) -> None:
        if accessor_name(name) in reserved_names():
            raise NameCollisionError(
                f"The {kind} {name} collides with an existing context attribute"
            )

    def _claim(self, accessor: str, owner: str) -> None:
        if accessor in reserved_names():
            raise NameCollisionError(
                f"The {owner} collides with an existing context attribute {accessor}"
            )
        if self._accessors.get(accessor, owner) != owner:
            raise NameCollisionError(
                f"The {owner} collides with the accessor of {self._accessors[accessor]}"
            )
        self._accessors[accessor] = owner
