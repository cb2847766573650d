"""Tests for the RuleForge exception hierarchy."""

import pytest

from ruleforge.exceptions import (
    CircularMixinFieldError,
    ConfigurationError,
    DirectCircularDependencyError,
    MalformedParameterError,
    OutputValidationError,
    RuleForgeError,
    UnknownDirectiveError,
    UnknownFieldError,
    UnknownFilterError,
    UnknownMixinError,
    UnknownNameError,
    UnknownProfileError,
)


class TestMessages:
    def test_messages_are_flattened(self):
        error = ConfigurationError("The field login\n    is   broken ")
        assert str(error) == "The field login is broken"
        assert error.message == "The field login is broken"

    def test_output_validation_error(self):
        error = OutputValidationError("assign", "user_id is required")
        assert error.method == "assign"
        assert str(error) == "Method assign failed to validate its output: user_id is required"

    def test_circular_mixin_field_error(self):
        error = CircularMixinFieldError(["a", "b", "a"])
        assert str(error) == "Circular mixin_field chain: a -> b -> a"

    def test_dependency_error_carries_context(self):
        error = DirectCircularDependencyError("validate", "even")
        assert error.event == "validate"
        assert error.directive == "even"


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [UnknownDirectiveError, UnknownFieldError, UnknownMixinError, UnknownFilterError],
    )
    def test_unknown_name_family(self, error):
        assert issubclass(error, UnknownNameError)
        assert issubclass(error, ConfigurationError)

    def test_unknown_profile_is_not_downgradable(self):
        assert not issubclass(UnknownProfileError, UnknownNameError)

    def test_everything_is_a_ruleforge_error(self):
        assert issubclass(MalformedParameterError, RuleForgeError)
        assert issubclass(CircularMixinFieldError, ConfigurationError)
        assert issubclass(OutputValidationError, RuleForgeError)
