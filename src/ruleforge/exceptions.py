"""Exception hierarchy for RuleForge.

Validation failures are never raised; they are recorded as strings on the
context and its fields. The exceptions below signal programmer mistakes
(configuration errors), illegal parameter shapes, and broken method
post-conditions.
"""

import re

_WHITESPACE = re.compile(r"\s+")


def flatten_message(message: str) -> str:
    """Collapse internal newlines and whitespace runs into single spaces."""
    return _WHITESPACE.sub(" ", str(message)).strip()


class RuleForgeError(Exception):
    """Base class for all RuleForge exceptions.

    Messages are flattened to a single line so they read cleanly in logs
    and CLI output regardless of how they were composed.
    """

    def __init__(self, message: str = ""):
        self.message = flatten_message(message)
        super().__init__(self.message)


class MalformedParameterError(RuleForgeError):
    """A parameter value has a shape the store cannot hold."""


class OutputValidationError(RuleForgeError):
    """A self-validating method produced output that failed validation.

    Always fatal: it signals a defect in the wrapped routine, not bad input.
    """

    def __init__(self, method: str, errors: str):
        self.method = method
        self.errors = errors
        super().__init__(
            f"Method {method} failed to validate its output: {errors}"
        )


# =============================================================================
# Configuration errors
# =============================================================================


class ConfigurationError(RuleForgeError):
    """A configuration mistake. Raised immediately (fail fast)."""


class UnknownNameError(ConfigurationError):
    """Something referenced by name is not registered.

    Only this family can be downgraded by ``ignore_unknown``.
    """


class UnknownDirectiveError(UnknownNameError):
    """A field or mixin uses a directive that is not registered."""


class UnknownFieldError(UnknownNameError):
    """A field was requested (or a parameter supplied) that is not declared."""


class UnknownMixinError(UnknownNameError):
    """A field references a mixin or mixin_field that does not exist."""


class UnknownFilterError(UnknownNameError):
    """A field references a filter that is not registered."""


class UnknownProfileError(ConfigurationError):
    """A profile was requested that is not registered."""


class UnknownMethodError(ConfigurationError):
    """A self-validating method was requested that is not registered."""


class DuplicateAliasError(ConfigurationError):
    """Two fields declare the same alias."""


class AliasShadowsFieldError(ConfigurationError):
    """An alias equals the name of an existing field."""


class NameCollisionError(ConfigurationError):
    """A declared name collides with an existing accessor or attribute."""


class CircularMixinFieldError(ConfigurationError):
    """Fields inherit from each other through a ``mixin_field`` cycle."""

    def __init__(self, chain: list[str]):
        self.chain = list(chain)
        super().__init__(
            f"Circular mixin_field chain: {' -> '.join(self.chain)}"
        )


class MalformedFieldNameError(ConfigurationError):
    """A field name is not a legal identifier path or clone name."""


class MissingDescriptorError(ConfigurationError):
    """A descriptor is missing a required entry (e.g. a validator)."""


class DependencyError(ConfigurationError):
    """Base class for directive dependency resolution failures."""

    def __init__(self, event: str, directive: str, message: str):
        self.event = event
        self.directive = directive
        super().__init__(message)


class DirectCircularDependencyError(DependencyError):
    """A directive depends on itself."""

    def __init__(self, event: str, directive: str):
        super().__init__(
            event,
            directive,
            f"Direct circular dependency on event {event}: "
            f"{directive} -> {directive}",
        )


class IndirectCircularDependencyError(DependencyError):
    """Directives depend on each other through a longer cycle."""

    def __init__(self, event: str, directives: list[str]):
        self.cycle = list(directives)
        super().__init__(
            event,
            directives[0] if directives else "",
            f"Indirect circular dependency on event {event}: "
            f"{', '.join(directives)}",
        )


class InvalidDependencyError(DependencyError):
    """A directive depends on a name that is not a registered directive."""

    def __init__(self, event: str, directive: str, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            event,
            directive,
            f"Invalid dependency on event {event}: "
            f"{directive} -> {', '.join(missing)}",
        )
