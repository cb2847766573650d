"""Tests for parameter filters."""

import pytest

from ruleforge.configuration import ClassConfiguration
from ruleforge.exceptions import UnknownFilterError
from ruleforge.filters import CORE_FILTERS, FilterRegistry, apply_filter


# =============================================================================
# Core filters
# =============================================================================


class TestCoreFilters:
    @pytest.mark.parametrize(
        "name, value, expected",
        [
            ("alpha", "a1-b2", "ab"),
            ("alphanumeric", "a1-b2 !", "a1b2"),
            ("capitalize", "hello there. general kenobi", "Hello there. General kenobi"),
            ("decimal", "$1,234.50", "1,234.50"),
            ("lowercase", "HeLLo", "hello"),
            ("numeric", "(555) 123-4567", "5551234567"),
            ("strip", "  too   many  spaces ", "too many spaces"),
            ("titlecase", "the QUICK fox", "The Quick Fox"),
            ("trim", "  padded  ", "padded"),
            ("uppercase", "shout", "SHOUT"),
        ],
    )
    def test_filter(self, name, value, expected):
        assert CORE_FILTERS[name](value) == expected

    def test_apply_filter_maps_over_lists(self):
        assert apply_filter(str.upper, ["a", "b"]) == ["A", "B"]

    def test_apply_filter_skips_non_strings(self):
        assert apply_filter(str.upper, 42) == 42
        assert apply_filter(str.upper, None) is None


class TestFilterRegistry:
    def test_core_filters_are_registered(self):
        registry = FilterRegistry()
        assert registry.list_registered() == sorted(CORE_FILTERS)

    def test_register_is_idempotent(self):
        registry = FilterRegistry()
        registry.register("trim", str.upper)
        assert registry.get("trim") is CORE_FILTERS["trim"]

    def test_unknown_filter(self):
        with pytest.raises(UnknownFilterError, match="Filter nope is not supported"):
            FilterRegistry().get("nope")

    def test_copy_is_independent(self):
        registry = FilterRegistry()
        clone = registry.copy()
        clone.register("reverse", lambda v: v[::-1])
        assert "reverse" in clone
        assert "reverse" not in registry


# =============================================================================
# Filtering during validation
# =============================================================================


class TestFiltering:
    def test_pre_filters_run_before_validation(self):
        config = ClassConfiguration()
        config.field("login", filters=["trim", "lowercase"], length=5)
        context = config.new({"login": "  ADMIN  "})
        assert context.validate()
        assert context.params.get("login") == "admin"
        assert context.login.value == "admin"

    def test_callable_filters(self):
        config = ClassConfiguration()
        config.field("code", filters=[lambda v: v.replace("-", "")], length=4)
        context = config.new({"code": "12-34"})
        assert context.validate()
        assert context.param("code") == "1234"

    def test_custom_named_filter(self):
        config = ClassConfiguration()

        @config.filter("reverse")
        def reverse(value):
            return value[::-1]

        config.field("word", filters="reverse")
        context = config.new({"word": "abc"})
        context.validate()
        assert context.param("word") == "cba"

    def test_post_filters_run_only_when_valid(self):
        config = ClassConfiguration()
        config.field("nickname", filters=["uppercase"], filtering="post", min_length=3)

        context = config.new({"nickname": "ann"})
        assert context.validate()
        assert context.param("nickname") == "ANN"

        context = config.new({"nickname": "al"})
        assert not context.validate()
        assert context.param("nickname") == "al"

    def test_filtering_disabled_by_option(self):
        config = ClassConfiguration(filtering=None)
        config.field("login", filters=["trim"])
        context = config.new({"login": " admin "})
        context.validate()
        assert context.param("login") == " admin "

    def test_field_filtering_overrides_option(self):
        config = ClassConfiguration(filtering=None)
        config.field("login", filters=["trim"], filtering="pre")
        context = config.new({"login": " admin "})
        context.validate()
        assert context.param("login") == "admin"

    def test_list_values_are_filtered_per_element(self):
        config = ClassConfiguration()
        config.field("tags", filters=["trim"], multiples=True)
        context = config.new({"tags": [" a ", " b"]})
        assert context.validate()
        assert context.param("tags") == ["a", "b"]

    def test_apply_filters_directly(self):
        config = ClassConfiguration()
        config.field("login", filters=["uppercase"])
        context = config.new({"login": "admin"})
        context.normalize().apply_filters("pre")
        assert context.param("login") == "ADMIN"

    def test_unknown_filter_is_reported(self):
        config = ClassConfiguration()
        config.field("login", filters=["nope"])
        with pytest.raises(UnknownFilterError):
            config.new({"login": "admin"}).validate()

    def test_unknown_filter_can_be_ignored(self):
        config = ClassConfiguration(ignore_unknown=True, report_unknown=True)
        config.field("login", filters=["nope"])
        context = config.new({"login": "admin"})
        assert not context.validate()
        assert context.errors() == ["Filter nope is not supported"]
