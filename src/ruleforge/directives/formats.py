"""Format directives: email, hostname, dates, times, identifiers and the
like. Each checks ``str(value)`` against a known shape.
"""

import re
from datetime import date
from typing import Any

from ruleforge.directives.registry import Directive
from ruleforge.exceptions import ConfigurationError


# =============================================================================
# Format Patterns
# =============================================================================

EMAIL_PATTERN = re.compile(
    r"^[a-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[a-z0-9!#$%&'*+/=?^_`{|}~-]+)*"
    r"@(?:[-_a-z0-9][-_a-z0-9]*\.)*(?:[a-z0-9][-a-z0-9]{0,62})"
    r"\.(?:(?:[a-z]{2}\.)?[a-z]{2,4}|museum|travel)$",
    re.IGNORECASE,
)

HOSTNAME_PATTERN = re.compile(
    r"^(?:[-_a-z0-9][-_a-z0-9]*\.)*(?:[a-z0-9][-a-z0-9]{0,62})"
    r"\.(?:(?:[a-z]{2}\.)?[a-z]{2,4}|museum|travel)$",
    re.IGNORECASE,
)

SSN_PATTERN = re.compile(r"^(?!000)[0-9]{3}-[0-9]{2}-[0-9]{4}$")

TELEPHONE_PATTERN = re.compile(
    r"^(?:\+?1)?[-. ]?\(?[2-9][0-8][0-9]\)?[-. ]?[2-9][0-9]{2}[-. ]?[0-9]{4}$"
)

# 12 hour with am/pm, or 24 hour; optional minutes and seconds
TIME_PATTERN = re.compile(
    r"^(?:(?:0?[1-9]|1[012])(?::[0-5]\d){0,2} ?(?:[AP]M|[ap]m))$"
    r"|^(?:[01]\d|2[0-3])(?::[0-5]\d){0,2}$"
)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

ZIPCODE_PATTERN = re.compile(r"^[0-9]{5}(?:-[0-9]{4})?$")

CREDITCARD_PATTERNS: dict[str, re.Pattern] = {
    "amex": re.compile(r"^3[47]\d{13}$"),
    "bankcard": re.compile(r"^56(?:10\d\d|022[1-5])\d{10}$"),
    "diners": re.compile(r"^(?:3(?:0[0-5]|[68]\d)\d{11}|5[1-5]\d{14})$"),
    "disc": re.compile(r"^(?:6011|650\d)\d{12}$"),
    "electron": re.compile(r"^(?:417500|4917\d{2}|4913\d{2})\d{10}$"),
    "enroute": re.compile(r"^2(?:014|149)\d{11}$"),
    "jcb": re.compile(r"^(?:3\d{4}|2100|1800)\d{11}$"),
    "maestro": re.compile(r"^(?:5020|6\d{3})\d{12}$"),
    "mastercard": re.compile(r"^5[1-5]\d{14}$"),
    "solo": re.compile(r"^(?:6334[5-9][0-9]|6767[0-9]{2})\d{10}(?:\d{2,3})?$"),
    "switch": re.compile(
        r"^(?:49(?:03(?:0[2-9]|3[5-9])|11(?:0[1-2]|7[4-9]|8[1-2])|36[0-9]{2})"
        r"\d{10}(?:\d{2,3})?|564182\d{10}(?:\d{2,3})?"
        r"|6(?:3(?:33[0-4][0-9])|759[0-9]{2})\d{10}(?:\d{2,3})?)$"
    ),
    "visa": re.compile(r"^4\d{12}(?:\d{3})?$"),
    "voyager": re.compile(r"^8699[0-9]{11}$"),
    "any": re.compile(
        r"^(?:4[0-9]{12}(?:[0-9]{3})?|5[1-5][0-9]{14}|6011[0-9]{12}"
        r"|3(?:0[0-5]|[68][0-9])[0-9]{11}|3[47][0-9]{13})$"
    ),
}

STATE_ABBREVIATION_PATTERN = re.compile(
    r"^(?:A[LKSZRAEP]|C[AOT]|D[EC]|F[LM]|G[AU]|HI|I[ADLN]|K[SY]|LA"
    r"|M[ADEHINOPST]|N[CDEHJMVY]|O[HKR]|P[ARW]|RI|S[CD]|T[NX]|UT|V[AIT]|W[AIVY])$",
    re.IGNORECASE,
)

STATE_NAMES = (
    "Alabama", "Alaska", "Arizona", "Arkansas", "California", "Colorado",
    "Connecticut", "Delaware", "Florida", "Georgia", "Hawaii", "Idaho",
    "Illinois", "Indiana", "Iowa", "Kansas", "Kentucky", "Louisiana", "Maine",
    "Maryland", "Massachusetts", "Michigan", "Minnesota", "Mississippi",
    "Missouri", "Montana", "Nebraska", "Nevada", "New Hampshire", "New Jersey",
    "New Mexico", "New York", "North Carolina", "North Dakota", "Ohio",
    "Oklahoma", "Oregon", "Pennsylvania", "Rhode Island", "South Carolina",
    "South Dakota", "Tennessee", "Texas", "Utah", "Vermont", "Virginia",
    "Washington", "West Virginia", "Wisconsin", "Wyoming",
    "District of Columbia", "Puerto Rico", "Guam", "American Samoa",
    "U.S. Virgin Islands", "Northern Mariana Islands",
)

_STATE_NAMES_LOWER = {name.lower() for name in STATE_NAMES}


# =============================================================================
# Dates
# =============================================================================

MONTHS = {
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5,
    "june": 6, "july": 7, "august": 8, "september": 9, "october": 10,
    "november": 11, "december": 12,
}
_MONTH_LOOKUP = {
    **MONTHS,
    **{name[:3]: number for name, number in MONTHS.items()},
    "sept": 9,
}

_SEP = r"([/\-. ])"
_NUMERIC_DATE = {
    "dmy": re.compile(rf"^(?P<d>\d{{1,2}}){_SEP}(?P<m>\d{{1,2}})\2(?P<y>\d{{4}}|\d{{2}})$"),
    "mdy": re.compile(rf"^(?P<m>\d{{1,2}}){_SEP}(?P<d>\d{{1,2}})\2(?P<y>\d{{4}}|\d{{2}})$"),
    "ymd": re.compile(rf"^(?P<y>\d{{4}}|\d{{2}}){_SEP}(?P<m>\d{{1,2}})\2(?P<d>\d{{1,2}})$"),
}
_NAMED_DATE = {
    "dMy": re.compile(r"^(?P<d>\d{1,2}) (?P<m>[A-Za-z]+) (?P<y>\d{4})$"),
    "Mdy": re.compile(r"^(?P<m>[A-Za-z]+) (?P<d>\d{1,2}),? (?P<y>\d{4})$"),
    "My": re.compile(r"^(?P<m>[A-Za-z]+)[ /](?P<y>\d{4})$"),
    "my": re.compile(r"^(?P<m>0[1-9]|1[0-2])[-/. ](?P<y>(?:19|2\d)\d{2})$"),
}

DATE_FORMATS = ("dmy", "mdy", "ymd", "dMy", "Mdy", "My", "my")


def _year(text: str) -> int:
    year = int(text)
    return 2000 + year if len(text) == 2 else year


def _month(text: str) -> int | None:
    if text.isdigit():
        return int(text)
    return _MONTH_LOOKUP.get(text.lower())


def matches_date(value: str, fmt: str) -> bool:
    """True when ``value`` is a real calendar date written in ``fmt``."""
    pattern = _NUMERIC_DATE.get(fmt) or _NAMED_DATE[fmt]
    match = pattern.match(value)
    if match is None:
        return False
    parts = match.groupdict()
    month = _month(parts["m"])
    if month is None:
        return False
    try:
        year = _year(parts["y"])
        if not 1600 <= year <= 9999:
            return False
        date(year, month, int(parts.get("d") or 1))
    except ValueError:
        return False
    return True


# =============================================================================
# Decoders
# =============================================================================


def _choices(value: Any, known: Any, everything: list[str], label: str) -> list[str]:
    """Decode ``True``, a name, or a list of names into a list of choices."""
    if value is True or value == 1 or value == "1":
        return list(everything)
    names = list(value) if isinstance(value, (list, tuple)) else [str(value)]
    unknown = [n for n in names if n not in known]
    if unknown:
        raise ConfigurationError(f"Unknown {label} type(s): {', '.join(unknown)}")
    return names


def _decode_creditcard(value: Any) -> list[str]:
    return _choices(value, CREDITCARD_PATTERNS, ["any"], "credit card")


def _decode_date(value: Any) -> list[str]:
    return _choices(value, DATE_FORMATS, list(DATE_FORMATS), "date")


def _decode_state(value: Any) -> list[str]:
    return _choices(value, ("abbr", "long"), ["abbr", "long"], "state")


def _decode_places(value: Any) -> int:
    if value is True:
        return 0
    try:
        places = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Expected decimal places, got {value!r}") from None
    if places < 0:
        raise ConfigurationError(f"Expected decimal places, got {value!r}")
    return places


def decimal_pattern(places: int) -> re.Pattern:
    """0: any number of places, 1: a fractional part, n: exactly n places."""
    sign = "[+-]?"
    exponent = r"(?:[eE][+-]?[0-9]+)?"
    if places == 0:
        number = r"(?:[0-9]+|[0-9]*\.[0-9]+)"
    elif places == 1:
        number = r"[0-9]*\.[0-9]+"
    else:
        number = rf"[0-9]*\.[0-9]{{{places}}}"
    return re.compile(f"^{sign}{number}{exponent}$")


# =============================================================================
# Validators
# =============================================================================


def _check(name: str, pattern: re.Pattern):
    def validator(directive, value, field, context) -> bool:
        if not directive or pattern.match(str(value)):
            return True
        return context.fail(field, name)

    validator.__name__ = f"validate_{name}"
    return validator


def validate_creditcard(directive, value, field, context) -> bool:
    text = str(value)
    if any(CREDITCARD_PATTERNS[kind].match(text) for kind in directive):
        return True
    return context.fail(field, "creditcard")


def validate_date(directive, value, field, context) -> bool:
    text = str(value)
    if any(matches_date(text, fmt) for fmt in directive):
        return True
    return context.fail(field, "date")


def validate_decimal(directive, value, field, context) -> bool:
    if decimal_pattern(directive).match(str(value)):
        return True
    return context.fail(field, "decimal")


def validate_state(directive, value, field, context) -> bool:
    text = str(value)
    if "abbr" in directive and STATE_ABBREVIATION_PATTERN.match(text):
        return True
    if "long" in directive and text.lower() in _STATE_NAMES_LOWER:
        return True
    return context.fail(field, "state")


# =============================================================================
# Descriptors
# =============================================================================


def format_directives() -> list[Directive]:
    def fmt(name, validator, message, decode=None):
        return Directive(
            name=name,
            validator=validator,
            mixin=True,
            field=True,
            message=message,
            decode=decode,
        )

    return [
        fmt(
            "creditcard",
            validate_creditcard,
            "%s requires a valid credit card number",
            _decode_creditcard,
        ),
        fmt("date", validate_date, "%s requires a valid date", _decode_date),
        fmt(
            "decimal",
            validate_decimal,
            "%s requires a valid decimal number",
            _decode_places,
        ),
        fmt(
            "email",
            _check("email", EMAIL_PATTERN),
            "%s requires a valid email address",
        ),
        fmt(
            "hostname",
            _check("hostname", HOSTNAME_PATTERN),
            "%s requires a valid hostname",
        ),
        fmt(
            "ssn",
            _check("ssn", SSN_PATTERN),
            "%s is not a valid social security number",
        ),
        fmt("state", validate_state, "%s is not a valid state", _decode_state),
        fmt(
            "telephone",
            _check("telephone", TELEPHONE_PATTERN),
            "%s is not a valid telephone number",
        ),
        fmt("time", _check("time", TIME_PATTERN), "%s requires a valid time"),
        fmt("uuid", _check("uuid", UUID_PATTERN), "%s is not a valid UUID"),
        fmt(
            "zipcode",
            _check("zipcode", ZIPCODE_PATTERN),
            "%s is not a valid postal code",
        ),
    ]
