"""Field and mixin records.

A field is a named bag of directives plus the runtime state of the current
validation call (value, errors, toggle). A mixin is a named bag of
directives that fields pull in; mixins are never validated directly.
"""

import copy
import re
from dataclasses import dataclass, field
from typing import Any, Iterator

from ruleforge.exceptions import MalformedFieldNameError
from ruleforge.types import ErrorList

FIELD_NAME_PATTERN = re.compile(r"^[A-Za-z_][\w.]*(?::\d+)?$")
CLONE_NAME_PATTERN = re.compile(r"^(?P<origin>.+):(?P<index>\d+)$")

_NON_WORD = re.compile(r"\W")


def accessor_name(name: str) -> str:
    """Attribute name a field is reachable under on a context."""
    return _NON_WORD.sub("_", name)


def split_clone_name(name: str) -> tuple[str, int] | None:
    """Return (origin, index) for ``name:N`` or None for a plain name."""
    match = CLONE_NAME_PATTERN.match(name)
    if match is None:
        return None
    return match.group("origin"), int(match.group("index"))


@dataclass
class Mixin:
    """A reusable directive template."""

    name: str
    directives: dict[str, Any] = field(default_factory=dict)

    def copy(self) -> "Mixin":
        return Mixin(self.name, copy.deepcopy(self.directives))

    def __contains__(self, directive: object) -> bool:
        return directive in self.directives

    def __iter__(self) -> Iterator[str]:
        return iter(list(self.directives))


@dataclass
class Field:
    """A field specification and its per-call state.

    Attributes:
        name: Field name (``user.email``) or clone name (``phone:1``)
        directives: Directive name -> declared (decoded) value
        value: Value resolved during the current validation call
        errors: Errors recorded for this field during the current call
        toggle: ``"+"`` forces required, ``"-"`` forces optional
        origin: For clones, the name of the field they were cloned from
    """

    name: str
    directives: dict[str, Any] = field(default_factory=dict)
    value: Any = None
    errors: ErrorList = field(default_factory=ErrorList)
    toggle: str | None = None
    origin: str | None = None

    def __post_init__(self):
        if not FIELD_NAME_PATTERN.match(self.name):
            raise MalformedFieldNameError(
                f"Field name {self.name!r} is not a valid field name"
            )
        self.directives["name"] = self.name

    # -------------------------------------------------------------------------
    # Directive access
    # -------------------------------------------------------------------------

    def get(self, directive: str, default: Any = None) -> Any:
        return self.directives.get(directive, default)

    def set(self, directive: str, value: Any) -> None:
        self.directives[directive] = value

    def has(self, directive: str) -> bool:
        return self.directives.get(directive) is not None

    def __contains__(self, directive: object) -> bool:
        return directive in self.directives

    def __getitem__(self, directive: str) -> Any:
        return self.directives[directive]

    @property
    def label(self) -> str:
        return self.directives.get("label") or self.name

    @property
    def required(self) -> bool:
        """Effective required flag, honoring the toggle of the current call."""
        if self.toggle == "+":
            return True
        if self.toggle == "-":
            return False
        return bool(self.directives.get("required"))

    @property
    def aliases(self) -> list[str]:
        alias = self.directives.get("alias")
        if alias is None:
            return []
        return list(alias) if isinstance(alias, (list, tuple)) else [alias]

    @property
    def accessor(self) -> str:
        return accessor_name(self.name)

    @property
    def is_clone(self) -> bool:
        return self.origin is not None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        """Clear per-call runtime state."""
        self.value = None
        self.toggle = None
        self.errors.clear()
        self.directives["name"] = self.name

    def copy(self) -> "Field":
        """Deep copy of the directive bag with fresh runtime state."""
        return Field(
            name=self.name,
            directives=copy.deepcopy(self.directives),
            origin=self.origin,
        )

    def clone(self, name: str, **overrides: Any) -> "Field":
        """Create a field named ``name`` from this field's directives."""
        directives = copy.deepcopy(self.directives)
        directives.update(overrides)
        clone = Field(name=name, directives=directives, origin=self.name)
        clone.toggle = self.toggle
        return clone
