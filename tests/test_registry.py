"""Tests for the directive registry."""

import pytest

from ruleforge.directives import DirectiveRegistry, core_directives, register_core_directives
from ruleforge.directives.registry import Directive, render_message
from ruleforge.exceptions import (
    DirectCircularDependencyError,
    IndirectCircularDependencyError,
    InvalidDependencyError,
    MissingDescriptorError,
    UnknownDirectiveError,
)
from ruleforge.types import Event


def check_even(directive, value, field, context):
    return int(value) % 2 == 0


def check_odd(directive, value, field, context):
    return int(value) % 2 == 1


@pytest.fixture
def registry():
    return DirectiveRegistry()


# =============================================================================
# Messages
# =============================================================================


class TestRenderMessage:
    def test_substitutes_in_order(self):
        assert render_message("%s must be %s or more", "login", 5) == "login must be 5 or more"

    def test_missing_arguments_leave_placeholders(self):
        assert render_message("%s between %s", "age") == "age between %s"

    def test_extra_arguments_are_ignored(self):
        assert render_message("%s is required", "login", "unused") == "login is required"


# =============================================================================
# Directive
# =============================================================================


class TestDirective:
    def test_from_dict(self):
        directive = Directive.from_dict(
            "even",
            {
                "validator": check_even,
                "message": "%s must be even",
                "dependencies": {"validate": ["odd"]},
            },
        )
        assert directive.name == "even"
        assert directive.field is True
        assert directive.mixin is False
        assert directive.depends_on(Event.VALIDATE) == ["odd"]
        assert directive.depends_on("normalize") == []

    def test_from_dict_requires_a_callable_validator(self):
        with pytest.raises(MissingDescriptorError):
            Directive.from_dict("even", {"message": "%s must be even"})
        with pytest.raises(MissingDescriptorError):
            Directive.from_dict("even", {"validator": "not callable"})

    def test_subscriptions(self):
        hooked = Directive("hooked", hooks={"normalize": lambda *args: None})
        assert hooked.subscribes_to(Event.NORMALIZE)
        assert not hooked.subscribes_to(Event.VALIDATE)

        checked = Directive("checked", validator=check_even)
        assert checked.subscribes_to("validate")
        assert not checked.subscribes_to("before_validation")

    def test_multi_values_decode_to_unique_lists(self):
        directive = Directive("tags", multi=True)
        assert directive.decode_value("a") == ["a"]
        assert directive.decode_value(["a", "b", "a"]) == ["a", "b"]
        assert directive.decode_value(None) == []

    def test_decode_runs_before_list_conversion(self):
        directive = Directive("upper", multi=True, decode=lambda v: v.upper())
        assert directive.decode_value("abc") == ["ABC"]


# =============================================================================
# Registry
# =============================================================================


class TestDirectiveRegistry:
    def test_register_and_get(self, registry):
        registry.register("even", {"validator": check_even})
        assert registry.is_registered("even")
        assert "even" in registry
        assert registry.get("even").validator is check_even

    def test_first_registration_wins(self, registry):
        registry.register("parity", {"validator": check_even})
        registry.register("parity", {"validator": check_odd})
        assert registry.get("parity").validator is check_even

    def test_register_directive_under_another_name(self, registry):
        registry.register("even_number", Directive("even", validator=check_even))
        assert registry.get("even_number").name == "even_number"

    def test_missing_validator(self, registry):
        with pytest.raises(MissingDescriptorError):
            registry.register("broken", {"message": "%s is broken"})
        assert not registry.is_registered("broken")

    def test_unknown_directive(self, registry):
        with pytest.raises(UnknownDirectiveError, match="Directive ghost is not supported"):
            registry.get("ghost")

    def test_list_registered_is_sorted(self, registry):
        registry.register("odd", {"validator": check_odd})
        registry.register("even", {"validator": check_even})
        assert registry.list_registered() == ["even", "odd"]
        assert [d.name for d in registry] == ["odd", "even"]
        assert len(registry) == 2

    def test_subscribers(self, registry):
        registry.register("even", {"validator": check_even})
        registry.register("hooked", Directive("hooked", hooks={"normalize": print}))
        assert [d.name for d in registry.subscribers(Event.VALIDATE)] == ["even"]
        assert [d.name for d in registry.subscribers(Event.NORMALIZE)] == ["hooked"]

    def test_copy_is_independent(self, registry):
        registry.register("even", {"validator": check_even})
        clone = registry.copy()
        clone.register("odd", {"validator": check_odd})
        assert clone.is_registered("even")
        assert not registry.is_registered("odd")

    def test_clear(self, registry):
        registry.register("even", {"validator": check_even})
        registry.clear()
        assert registry.list_registered() == []


class TestResolveDependencies:
    def test_orders_present_directives(self, registry):
        registry.register("a", {"validator": check_even})
        registry.register("b", {"validator": check_even, "dependencies": {"validate": ["a"]}})
        assert registry.resolve_dependencies("validate", ["b", "a"]) == ["a", "b"]

    def test_non_subscribers_are_excluded(self, registry):
        registry.register("a", {"validator": check_even})
        registry.register("hooked", Directive("hooked", hooks={"normalize": print}))
        assert registry.resolve_dependencies(Event.VALIDATE, ["hooked", "a"]) == ["a"]

    def test_registration_invalidates_the_cache(self, registry):
        registry.register("a", {"validator": check_even})
        assert registry.resolve_dependencies("validate", ["a", "b"]) == ["a"]
        registry.register("b", {"validator": check_even})
        assert registry.resolve_dependencies("validate", ["a", "b"]) == ["a", "b"]

    def test_direct_cycle(self, registry):
        registry.register("c", {"validator": check_even, "dependencies": {"validate": ["c"]}})
        with pytest.raises(DirectCircularDependencyError):
            registry.resolve_dependencies("validate", ["c"])

    def test_indirect_cycle(self, registry):
        registry.register("d", {"validator": check_even, "dependencies": {"validate": ["e"]}})
        registry.register("e", {"validator": check_even, "dependencies": {"validate": ["d"]}})
        with pytest.raises(IndirectCircularDependencyError):
            registry.resolve_dependencies("validate", ["d", "e"])

    def test_unregistered_dependency(self, registry):
        registry.register("a", {"validator": check_even, "dependencies": {"validate": ["ghost"]}})
        with pytest.raises(InvalidDependencyError):
            registry.resolve_dependencies("validate", ["a"])


# =============================================================================
# Core directives
# =============================================================================


class TestCoreDirectives:
    def test_core_set_resolves_without_errors(self):
        registry = register_core_directives(DirectiveRegistry())
        for event in Event:
            registry.resolve_dependencies(event)

    def test_custom_validation_runs_after_constraints(self):
        registry = register_core_directives(DirectiveRegistry())
        order = registry.resolve_dependencies(
            "validate", ["validation", "min_length", "pattern"]
        )
        assert order[-1] == "validation"

    def test_default_normalizes_after_readonly_and_filters(self):
        registry = register_core_directives(DirectiveRegistry())
        order = registry.resolve_dependencies(
            "normalize", ["default", "readonly", "filters"]
        )
        assert order == ["readonly", "filters", "default"]

    def test_names_are_unique_and_sorted(self):
        names = [d.name for d in core_directives()]
        assert names == sorted(set(names))
        assert {"required", "min_length", "email", "validation"} <= set(names)

    def test_register_core_directives_is_idempotent(self):
        registry = register_core_directives(DirectiveRegistry())
        count = len(registry)
        register_core_directives(registry)
        assert len(registry) == count
