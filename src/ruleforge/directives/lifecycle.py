"""Lifecycle directives.

These shape a field rather than check its value: naming and labelling,
composition (mixin, mixin_field), parameter handling (alias, readonly,
default, filters, filtering, multiples) and message overrides. Only
``required`` (handled by the engine) and ``validation`` take part in
checking a value.
"""

from typing import TYPE_CHECKING, Any

from ruleforge.directives.registry import Directive
from ruleforge.exceptions import ConfigurationError, flatten_message
from ruleforge.types import Event, FilterPhase

if TYPE_CHECKING:
    from ruleforge.engine import ValidationContext
    from ruleforge.fields import Field


# =============================================================================
# Decoders
# =============================================================================


def _decode_flat_text(value: Any) -> Any:
    return flatten_message(value) if isinstance(value, str) else value


def _decode_filtering(value: Any) -> str | None:
    if value is None or value is False:
        return None
    try:
        return FilterPhase(str(value).lower()).value
    except ValueError:
        raise ConfigurationError(
            f"Filtering must be one of pre, post or None, not {value!r}"
        ) from None


def _decode_messages(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        raise ConfigurationError("The messages directive expects a mapping")
    return {str(k): flatten_message(v) for k, v in value.items()}


def _decode_callable(value: Any) -> Any:
    if not callable(value):
        raise ConfigurationError("The validation directive expects a callable")
    return value


# =============================================================================
# Hooks
# =============================================================================


def _check_filters(
    directive: Directive, context: "ValidationContext", field: "Field", param: Any
) -> None:
    for name in field.get("filters") or []:
        if not callable(name):
            context.resolve_filter(name)


def _discard_readonly(
    directive: Directive, context: "ValidationContext", field: "Field", param: Any
) -> None:
    if not field.get("readonly"):
        return
    # Aliases included; they are only mapped onto the field name later
    for name in [field.name, *field.aliases]:
        if context.params.has(name):
            context.params.delete(name)


def _apply_default(
    directive: Directive, context: "ValidationContext", field: "Field", param: Any
) -> None:
    """Resolve the field's default when no parameter was supplied.

    Runs after readonly has discarded parameters, so a readonly field always
    resolves to its default.
    """
    if "default" not in field or context.params.has(field.name):
        return
    default = field.get("default")
    field.value = default() if callable(default) else default


# =============================================================================
# Validators
# =============================================================================


def validate_custom(
    directive: Any, value: Any, field: "Field", context: "ValidationContext"
) -> bool:
    """Run a field's ``validation`` callable with (context, field, params).

    A falsy result that recorded no error of its own is reported with the
    directive's message.
    """
    before = field.errors.count() + context.class_errors.count()
    if directive(context, field, context.params):
        return True
    if field.errors.count() + context.class_errors.count() == before:
        context.fail(field, "validation")
    return False


# =============================================================================
# Descriptors
# =============================================================================

# Validate-phase directives the custom ``validation`` callable runs after
CONSTRAINT_DIRECTIVES = [
    "between",
    "creditcard",
    "date",
    "decimal",
    "depends_on",
    "email",
    "hostname",
    "length",
    "matches",
    "max_alpha",
    "max_digits",
    "max_length",
    "max_sum",
    "max_symbols",
    "min_alpha",
    "min_digits",
    "min_length",
    "min_sum",
    "min_symbols",
    "options",
    "pattern",
    "ssn",
    "state",
    "telephone",
    "time",
    "uuid",
    "zipcode",
]


def lifecycle_directives() -> list[Directive]:
    return [
        Directive(
            name="alias",
            multi=True,
            description="alternate parameter names",
        ),
        Directive(
            name="default",
            mixin=True,
            hooks={Event.NORMALIZE: _apply_default},
            dependencies={Event.NORMALIZE: ["filters", "readonly", "filtering"]},
            description="literal or zero-argument callable",
        ),
        Directive(
            name="error",
            decode=_decode_flat_text,
            description="overriding error message",
        ),
        Directive(
            name="filtering",
            mixin=True,
            decode=_decode_filtering,
            description="pre, post or None",
        ),
        Directive(
            name="filters",
            mixin=True,
            multi=True,
            hooks={Event.NORMALIZE: _check_filters},
            description="filter names or callables",
        ),
        Directive(name="help", decode=_decode_flat_text, description="help text"),
        Directive(name="label", decode=_decode_flat_text, description="display label"),
        Directive(
            name="messages",
            mixin=True,
            decode=_decode_messages,
            description="per-directive error templates",
        ),
        Directive(name="mixin", multi=True, description="mixin names"),
        Directive(name="mixin_field", description="source field name"),
        Directive(
            name="multiples",
            decode=bool,
            message="%s does not support multiple values",
            description="allow list values",
        ),
        Directive(name="name", description="stamped automatically"),
        Directive(
            name="readonly",
            decode=bool,
            hooks={Event.NORMALIZE: _discard_readonly},
            description="parameter discarded during normalize",
        ),
        Directive(
            name="required",
            mixin=True,
            decode=bool,
            message="%s is required",
            description="value must be present",
        ),
        Directive(
            name="validation",
            validator=validate_custom,
            decode=_decode_callable,
            message="%s did not pass validation",
            dependencies={Event.VALIDATE: list(CONSTRAINT_DIRECTIVES)},
            description="callable (context, field, params) -> bool",
        ),
    ]
