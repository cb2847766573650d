"""Directive registry and the core directive set."""

from ruleforge.directives.constraints import constraint_directives
from ruleforge.directives.formats import format_directives
from ruleforge.directives.lifecycle import lifecycle_directives
from ruleforge.directives.registry import Directive, DirectiveRegistry, render_message


def core_directives() -> list[Directive]:
    """Every directive shipped with RuleForge, sorted by name."""
    directives = lifecycle_directives() + constraint_directives() + format_directives()
    return sorted(directives, key=lambda d: d.name)


def register_core_directives(registry: DirectiveRegistry) -> DirectiveRegistry:
    """Register the core directives. Safe to call more than once."""
    for directive in core_directives():
        registry.register(directive.name, directive)
    return registry


__all__ = [
    "Directive",
    "DirectiveRegistry",
    "core_directives",
    "register_core_directives",
    "render_message",
]
