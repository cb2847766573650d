"""Core types shared across RuleForge.

- Event / FilterPhase: lifecycle phases directives subscribe to
- ErrorList: ordered, duplicate-suppressing error collection
- EngineOptions: switches governing unknown-name and failure handling
"""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Callable, Iterable, Iterator


class Event(Enum):
    """Lifecycle events a directive may subscribe hooks to.

    NORMALIZE: runs on every field while the context is being reset
    BEFORE_VALIDATION: runs on each targeted field before its value is checked
    VALIDATE: runs each directive validator present on the field
    AFTER_VALIDATION: runs on each targeted field after its validators
    """

    NORMALIZE = "normalize"
    BEFORE_VALIDATION = "before_validation"
    VALIDATE = "validate"
    AFTER_VALIDATION = "after_validation"


class FilterPhase(Enum):
    """When a field's filters are applied relative to validation."""

    PRE = "pre"
    POST = "post"


class ErrorList:
    """An ordered sequence of unique error messages.

    Inserting a message that is already present (exact string equality)
    is silently ignored.
    """

    def __init__(self, messages: Iterable[str] | None = None):
        self._messages: list[str] = []
        if messages:
            self.add(*messages)

    def add(self, *messages: str) -> int:
        """Append messages, skipping duplicates. Returns the new count."""
        for message in messages:
            if message is None:
                continue
            message = str(message)
            if message not in self._messages:
                self._messages.append(message)
        return len(self._messages)

    def extend(self, messages: Iterable[str]) -> int:
        return self.add(*messages)

    def clear(self) -> None:
        self._messages.clear()

    def count(self) -> int:
        return len(self._messages)

    def list(self) -> list[str]:
        return list(self._messages)

    def to_string(
        self,
        delimiter: str = ", ",
        transformer: Callable[[str], str] | None = None,
    ) -> str:
        messages = self._messages
        if transformer is not None:
            messages = [transformer(m) for m in messages]
        return delimiter.join(messages)

    def __contains__(self, message: object) -> bool:
        return message in self._messages

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._messages))

    def __len__(self) -> int:
        return len(self._messages)

    def __bool__(self) -> bool:
        return bool(self._messages)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorList):
            return self._messages == other._messages
        if isinstance(other, list):
            return self._messages == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"ErrorList({self._messages!r})"


@dataclass
class EngineOptions:
    """Switches controlling how the engine treats unknown names and failures.

    Attributes:
        ignore_unknown: Downgrade unknown field/directive/mixin/filter errors
            instead of raising them
        report_unknown: When ignoring unknowns, record them as class-level
            error strings instead of skipping silently
        filtering: Default filtering phase for fields ("pre", "post" or None
            to disable filtering unless a field declares its own)
        report_failure: Record a class-level error when a self-validating
            method fails to validate its input
    """

    ignore_unknown: bool = False
    report_unknown: bool = False
    filtering: str | None = "pre"
    report_failure: bool = False

    def merged(self, **overrides: Any) -> "EngineOptions":
        """Return a copy with the given overrides applied."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(
                f"Unknown engine option(s): {', '.join(sorted(unknown))}"
            )
        return replace(self, **overrides)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EngineOptions":
        """Create EngineOptions from YAML/JSON dict (camelCase or snake_case)."""
        return cls(
            ignore_unknown=bool(data.get("ignoreUnknown", data.get("ignore_unknown", False))),
            report_unknown=bool(data.get("reportUnknown", data.get("report_unknown", False))),
            filtering=data.get("filtering", "pre"),
            report_failure=bool(data.get("reportFailure", data.get("report_failure", False))),
        )
