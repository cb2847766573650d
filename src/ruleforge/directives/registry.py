"""Directive registry for RuleForge.

Provides registration and lookup for directives, the named rules a field
or mixin may carry (``required``, ``min_length``, ``pattern``...). Each
registry also answers, per lifecycle event, which of its directives are
subscribed and in what order they must run.
"""

import logging
from dataclasses import dataclass, replace
from dataclasses import field as dataclass_field
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, Mapping

from ruleforge.exceptions import MissingDescriptorError, UnknownDirectiveError
from ruleforge.resolver import resolve_order
from ruleforge.types import Event

if TYPE_CHECKING:
    from ruleforge.engine import ValidationContext
    from ruleforge.fields import Field

logger = logging.getLogger(__name__)

Validator = Callable[[Any, Any, "Field", "ValidationContext"], bool]
Hook = Callable[["Directive", "ValidationContext", "Field", Any], None]


def render_message(template: str, *args: Any) -> str:
    """Substitute each ``%s`` in ``template`` with the next argument.

    Placeholders without a matching argument are left as they are, so a
    custom template may use fewer or more slots than the directive offers.
    """
    parts = template.split("%s")
    rendered = [parts[0]]
    for index, part in enumerate(parts[1:]):
        rendered.append(str(args[index]) if index < len(args) else "%s")
        rendered.append(part)
    return "".join(rendered)


def _event_key(event: Event | str) -> Event:
    return event if isinstance(event, Event) else Event(event)


@dataclass
class Directive:
    """Descriptor of a single directive.

    Attributes:
        name: Unique directive name
        validator: ``(directive_value, param_value, field, context) -> bool``,
            records errors on the field as a side effect. A directive with a
            validator is subscribed to the VALIDATE event.
        mixin: Whether mixins may carry this directive
        field: Whether fields may carry this directive
        multi: Repeated application merges into a de-duplicated list
        message: Default error template; the first ``%s`` is the field label
        dependencies: Event -> directive names that must run first
        hooks: Event -> ``(directive, context, field, param)`` callable
        decode: Normalizes the declared value once when a field is built
    """

    name: str
    validator: Validator | None = None
    mixin: bool = False
    field: bool = True
    multi: bool = False
    message: str = ""
    dependencies: dict[Event, list[str]] = dataclass_field(default_factory=dict)
    hooks: dict[Event, Hook] = dataclass_field(default_factory=dict)
    decode: Callable[[Any], Any] | None = None
    description: str = ""

    def __post_init__(self):
        self.dependencies = {
            _event_key(k): list(v) for k, v in self.dependencies.items()
        }
        self.hooks = {_event_key(k): v for k, v in self.hooks.items()}

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "Directive":
        """Create a Directive from a mapping of descriptor entries."""
        validator = data.get("validator")
        if not callable(validator):
            raise MissingDescriptorError(
                f"Directive {name} must declare a callable validator"
            )
        return cls(
            name=name,
            validator=validator,
            mixin=bool(data.get("mixin", False)),
            field=bool(data.get("field", True)),
            multi=bool(data.get("multi", False)),
            message=data.get("message", ""),
            dependencies=dict(data.get("dependencies") or {}),
            hooks=dict(data.get("hooks") or {}),
            decode=data.get("decode"),
            description=data.get("description", ""),
        )

    def subscribes_to(self, event: Event | str) -> bool:
        event = _event_key(event)
        if event is Event.VALIDATE:
            return self.validator is not None
        return event in self.hooks

    def depends_on(self, event: Event | str) -> list[str]:
        return list(self.dependencies.get(_event_key(event), []))

    def decode_value(self, value: Any) -> Any:
        """Normalize a declared value; ``multi`` directives become lists."""
        if self.decode is not None:
            value = self.decode(value)
        if self.multi:
            if value is None:
                return []
            if isinstance(value, (list, tuple)):
                return list(dict.fromkeys(value)) if _hashable(value) else list(value)
            return [value]
        return value


def _hashable(values: Iterable[Any]) -> bool:
    try:
        for value in values:
            hash(value)
    except TypeError:
        return False
    return True


class DirectiveRegistry:
    """Registry of directives, one per configuration.

    First registration wins: re-registering a name is a no-op.

    Example:
        registry = DirectiveRegistry()
        registry.register("even", {
            "validator": check_even,
            "message": "%s must be even",
        })
        registry.resolve_dependencies("validate", ["required", "even"])
    """

    def __init__(self):
        self._directives: dict[str, Directive] = {}
        self._order_cache: dict[tuple[Event, tuple[str, ...] | None], list[str]] = {}

    def register(
        self, name: str, descriptor: Directive | Mapping[str, Any]
    ) -> None:
        """Register a directive by name.

        Args:
            name: Unique directive name
            descriptor: A Directive, or a mapping of descriptor entries which
                must include a callable ``validator``

        Raises:
            MissingDescriptorError: A mapping descriptor lacks a validator
        """
        if name in self._directives:
            logger.debug("Directive %s already registered, ignoring", name)
            return
        if isinstance(descriptor, Directive):
            directive = descriptor
            if directive.name != name:
                directive = replace(directive, name=name)
        else:
            directive = Directive.from_dict(name, descriptor)
        self._directives[name] = directive
        self._order_cache.clear()

    def get(self, name: str) -> Directive:
        """Get a registered directive by name.

        Raises:
            UnknownDirectiveError: If the directive is not registered
        """
        if name not in self._directives:
            raise UnknownDirectiveError(f"Directive {name} is not supported")
        return self._directives[name]

    def is_registered(self, name: str) -> bool:
        return name in self._directives

    def list_registered(self) -> list[str]:
        """List all registered directive names."""
        return sorted(self._directives)

    def subscribers(self, event: Event | str) -> list[Directive]:
        """Directives subscribed to ``event``, in registration order."""
        return [d for d in self._directives.values() if d.subscribes_to(event)]

    def resolve_dependencies(
        self, event: Event | str, present: Iterable[str] | None = None
    ) -> list[str]:
        """Order the subscribers of ``event`` that are in ``present``.

        Raises:
            DirectCircularDependencyError, InvalidDependencyError,
            IndirectCircularDependencyError
        """
        event = _event_key(event)
        key = (event, tuple(present) if present is not None else None)
        if key in self._order_cache:
            return list(self._order_cache[key])

        graph = {d.name: d.depends_on(event) for d in self.subscribers(event)}
        order = resolve_order(event.value, graph, key[1], self._directives)
        self._order_cache[key] = order
        return list(order)

    def copy(self) -> "DirectiveRegistry":
        clone = DirectiveRegistry()
        clone._directives = dict(self._directives)
        return clone

    def clear(self) -> None:
        """Clear all registrations. Primarily for testing."""
        self._directives.clear()
        self._order_cache.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._directives

    def __iter__(self) -> Iterator[Directive]:
        return iter(list(self._directives.values()))

    def __len__(self) -> int:
        return len(self._directives)
