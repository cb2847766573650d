"""Constraint directives: lengths, character classes, sums, choices and
cross-field checks.

Every validator receives ``(directive_value, value, field, context)``,
records at most one error on the field through ``context.fail`` and
returns whether the value passed. Text checks operate on ``str(value)``.
"""

import re
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from ruleforge.directives.registry import Directive
from ruleforge.exceptions import ConfigurationError

if TYPE_CHECKING:
    from ruleforge.engine import ValidationContext
    from ruleforge.fields import Field

ALPHA = re.compile(r"[A-Za-z]")
DIGIT = re.compile(r"[0-9]")
SYMBOL = re.compile(r"[^0-9A-Za-z]")

_RANGE_SPLIT = re.compile(r"\s*\D+\s*")
_OPTION_SPLIT = re.compile(r"\s*,\s*")


def _plural(count: Any, singular: str, plural: str) -> str:
    return plural if int(count) > 1 else singular


def join_names(names: list[str], conjunction: str) -> str:
    """Join names as ``a, b and c``."""
    if len(names) < 2:
        return "".join(names)
    return f"{', '.join(names[:-1])} {conjunction} {names[-1]}"


def _to_number(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# =============================================================================
# Decoders
# =============================================================================


def _decode_count(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Expected a whole number, got {value!r}") from None


def _decode_number(value: Any) -> float:
    number = _to_number(value)
    if number is None:
        raise ConfigurationError(f"Expected a number, got {value!r}")
    return int(number) if number.is_integer() else number


def decode_range(value: Any) -> tuple[int, int]:
    """Decode ``"18-95"``, ``[18, 95]`` or ``["18-95"]`` into (min, max)."""
    if isinstance(value, (list, tuple)) and len(value) > 1:
        bounds = list(value[:2])
    else:
        text = str(value[0] if isinstance(value, (list, tuple)) and value else value)
        bounds = [b for b in _RANGE_SPLIT.split(text.strip()) if b]
    if len(bounds) != 2:
        raise ConfigurationError(f"Expected a range such as 18-95, got {value!r}")
    low, high = (_decode_count(b) for b in bounds)
    return low, high


def _decode_options(value: Any) -> list[str]:
    if isinstance(value, str):
        return [o for o in _OPTION_SPLIT.split(value.strip()) if o]
    if isinstance(value, (list, tuple)):
        return [str(o) for o in value]
    raise ConfigurationError(f"Expected a list of options, got {value!r}")


@lru_cache(maxsize=256)
def mask_to_regex(mask: str) -> re.Pattern:
    """Convert a mask (``#`` digit, ``X`` letter) into an anchored regex."""
    parts = []
    for char in mask:
        if char == "#":
            parts.append(r"\d")
        elif char == "X":
            parts.append("[a-zA-Z]")
        elif char == " ":
            parts.append(" ")
        else:
            parts.append(re.escape(char))
    return re.compile("^" + "".join(parts) + "$")


def _decode_pattern(value: Any) -> re.Pattern | str:
    if isinstance(value, (re.Pattern, str)):
        return value
    raise ConfigurationError(f"Expected a mask or compiled pattern, got {value!r}")


# =============================================================================
# Length and character class validators
# =============================================================================


def validate_length(directive, value, field, context) -> bool:
    if len(str(value)) == directive:
        return True
    noun = _plural(directive, "character", "characters")
    return context.fail(
        field, "length", directive, template=f"%s must contain exactly %s {noun}"
    )


def validate_min_length(directive, value, field, context) -> bool:
    if len(str(value)) >= directive:
        return True
    return context.fail(field, "min_length", directive)


def validate_max_length(directive, value, field, context) -> bool:
    if len(str(value)) <= directive:
        return True
    return context.fail(field, "max_length", directive)


def validate_between(directive, value, field, context) -> bool:
    low, high = directive
    if low <= len(str(value)) <= high:
        return True
    return context.fail(field, "between", f"{low}-{high}")


def validate_min_alpha(directive, value, field, context) -> bool:
    if len(ALPHA.findall(str(value))) >= directive:
        return True
    noun = _plural(directive, "character", "characters")
    return context.fail(
        field,
        "min_alpha",
        directive,
        template=f"%s must contain at-least %s alphabetic {noun}",
    )


def validate_max_alpha(directive, value, field, context) -> bool:
    if len(ALPHA.findall(str(value))) <= directive:
        return True
    return context.fail(field, "max_alpha", directive)


def validate_min_digits(directive, value, field, context) -> bool:
    if len(DIGIT.findall(str(value))) >= directive:
        return True
    return context.fail(field, "min_digits", directive)


def validate_max_digits(directive, value, field, context) -> bool:
    if len(DIGIT.findall(str(value))) <= directive:
        return True
    return context.fail(field, "max_digits", directive)


def validate_min_symbols(directive, value, field, context) -> bool:
    if len(SYMBOL.findall(str(value))) >= directive:
        return True
    noun = _plural(directive, "symbol", "symbols")
    return context.fail(
        field, "min_symbols", directive, template=f"%s must contain at-least %s {noun}"
    )


def validate_max_symbols(directive, value, field, context) -> bool:
    if len(SYMBOL.findall(str(value))) <= directive:
        return True
    return context.fail(field, "max_symbols", directive)


# =============================================================================
# Numeric validators
# =============================================================================


def validate_min_sum(directive, value, field, context) -> bool:
    number = _to_number(value)
    if number is not None and number >= directive:
        return True
    return context.fail(field, "min_sum", directive)


def validate_max_sum(directive, value, field, context) -> bool:
    number = _to_number(value)
    if number is not None and number <= directive:
        return True
    return context.fail(field, "max_sum", directive)


# =============================================================================
# Choice, pattern and cross-field validators
# =============================================================================


def validate_options(directive, value, field, context) -> bool:
    if str(value) in directive:
        return True
    return context.fail(field, "options", join_names(list(directive), "or"))


def validate_pattern(directive, value, field, context) -> bool:
    if isinstance(directive, re.Pattern):
        regex, text = directive, directive.pattern
    else:
        regex, text = mask_to_regex(directive), directive
    if regex.search(str(value)):
        return True
    return context.fail(field, "pattern", text)


def validate_matches(
    directive: list[str], value: Any, field: "Field", context: "ValidationContext"
) -> bool:
    """Value must equal the parameter of every named field."""
    mismatched = []
    for name in directive:
        other = context.params.get(name)
        if str(value) != ("" if other is None else str(other)):
            mismatched.append(context.label_for(name))
    if not mismatched:
        return True
    return context.fail(field, "matches", join_names(mismatched, "and"))


def validate_depends_on(
    directive: list[str], value: Any, field: "Field", context: "ValidationContext"
) -> bool:
    """Every named field must have a non-empty parameter."""
    blanks = [context.label_for(name) for name in directive if not context.param(name)]
    if not blanks:
        return True
    noun = "values" if len(blanks) > 1 else "a value"
    return context.fail(
        field,
        "depends_on",
        ", ".join(blanks),
        template=f"%s requires %s to have {noun}",
    )


# =============================================================================
# Descriptors
# =============================================================================


def constraint_directives() -> list[Directive]:
    def constraint(name, validator, message, decode=None, multi=False):
        return Directive(
            name=name,
            validator=validator,
            mixin=True,
            field=True,
            multi=multi,
            message=message,
            decode=decode,
        )

    return [
        constraint(
            "between",
            validate_between,
            "%s must contain between %s characters",
            decode_range,
        ),
        constraint(
            "depends_on",
            validate_depends_on,
            "%s requires %s to have a value",
            multi=True,
        ),
        constraint(
            "length",
            validate_length,
            "%s must contain exactly %s character(s)",
            _decode_count,
        ),
        constraint("matches", validate_matches, "%s does not match %s", multi=True),
        constraint(
            "max_alpha",
            validate_max_alpha,
            "%s must contain %s or less alphabetic characters",
            _decode_count,
        ),
        constraint(
            "max_digits",
            validate_max_digits,
            "%s must contain %s or less digits",
            _decode_count,
        ),
        constraint(
            "max_length",
            validate_max_length,
            "%s must be %s or less characters",
            _decode_count,
        ),
        constraint(
            "max_sum", validate_max_sum, "%s can't be greater than %s", _decode_number
        ),
        constraint(
            "max_symbols",
            validate_max_symbols,
            "%s must not contain more than %s special characters",
            _decode_count,
        ),
        constraint(
            "min_alpha",
            validate_min_alpha,
            "%s must contain at-least %s alphabetic character(s)",
            _decode_count,
        ),
        constraint(
            "min_digits",
            validate_min_digits,
            "%s must not contain less than %s digits",
            _decode_count,
        ),
        constraint(
            "min_length",
            validate_min_length,
            "%s must be %s or more characters",
            _decode_count,
        ),
        constraint(
            "min_sum", validate_min_sum, "%s can't be less than %s", _decode_number
        ),
        constraint(
            "min_symbols",
            validate_min_symbols,
            "%s must contain at-least %s symbol(s)",
            _decode_count,
        ),
        constraint(
            "options", validate_options, "%s must be either %s", _decode_options
        ),
        constraint(
            "pattern",
            validate_pattern,
            "%s does not match the pattern %s",
            _decode_pattern,
        ),
    ]
