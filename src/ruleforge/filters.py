"""Parameter filters.

A filter is a single-argument callable that rewrites a parameter value
(``trim``, ``lowercase``...). Fields name the filters to apply in their
``filters`` directive; list values are filtered element by element.
"""

import logging
import re
from typing import Any, Callable, Iterator

from ruleforge.exceptions import UnknownFilterError

logger = logging.getLogger(__name__)

Filter = Callable[[Any], Any]

_WHITESPACE = re.compile(r"\s+")
_SENTENCE_START = re.compile(r"\.\s+([a-z])")


# =============================================================================
# Core Filters
# =============================================================================


def alpha(value: str) -> str:
    return re.sub(r"[^A-Za-z]", "", value)


def alphanumeric(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9]", "", value)


def capitalize(value: str) -> str:
    """Upper-case the first character and the first letter of each sentence."""
    value = value[:1].upper() + value[1:]
    return _SENTENCE_START.sub(lambda m: ". " + m.group(1).upper(), value)


def decimal(value: str) -> str:
    return re.sub(r"[^0-9.,]", "", value)


def lowercase(value: str) -> str:
    return value.lower()


def numeric(value: str) -> str:
    return re.sub(r"\D", "", value)


def strip(value: str) -> str:
    """Collapse whitespace runs to one space and trim both ends."""
    return _WHITESPACE.sub(" ", value).strip()


def titlecase(value: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in value.lower().split(" "))


def trim(value: str) -> str:
    return value.strip()


def uppercase(value: str) -> str:
    return value.upper()


CORE_FILTERS: dict[str, Filter] = {
    "alpha": alpha,
    "alphanumeric": alphanumeric,
    "capitalize": capitalize,
    "decimal": decimal,
    "lowercase": lowercase,
    "numeric": numeric,
    "strip": strip,
    "titlecase": titlecase,
    "trim": trim,
    "uppercase": uppercase,
}


# =============================================================================
# Registry
# =============================================================================


class FilterRegistry:
    """Named filters available to fields.

    Idempotent - re-registering the same name is a no-op.
    """

    def __init__(self, filters: dict[str, Filter] | None = None):
        self._filters: dict[str, Filter] = dict(CORE_FILTERS if filters is None else filters)

    def register(self, name: str, fn: Filter) -> None:
        if name in self._filters:
            logger.debug("Filter %s already registered, ignoring", name)
            return
        self._filters[name] = fn

    def get(self, name: str) -> Filter:
        """Get a registered filter by name.

        Raises:
            UnknownFilterError: If the filter is not registered
        """
        if name not in self._filters:
            raise UnknownFilterError(f"Filter {name} is not supported")
        return self._filters[name]

    def is_registered(self, name: str) -> bool:
        return name in self._filters

    def list_registered(self) -> list[str]:
        return sorted(self._filters)

    def copy(self) -> "FilterRegistry":
        return FilterRegistry(self._filters)

    def __contains__(self, name: object) -> bool:
        return name in self._filters

    def __iter__(self) -> Iterator[str]:
        return iter(self.list_registered())


def apply_filter(fn: Filter, value: Any) -> Any:
    """Apply ``fn`` to a value, or to each element of a list value.

    Only strings are filtered; other scalars pass through untouched.
    """
    if isinstance(value, list):
        return [apply_filter(fn, item) for item in value]
    if not isinstance(value, str):
        return value
    return fn(value)
