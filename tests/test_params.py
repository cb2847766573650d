"""Tests for the parameter store and flatten/unflatten."""

import pytest

from ruleforge.exceptions import MalformedParameterError
from ruleforge.params import Params, flatten, is_nested, unflatten


# =============================================================================
# flatten / unflatten
# =============================================================================


class TestFlatten:
    def test_nested_maps_use_dots(self):
        assert flatten({"user": {"name": "ann", "address": {"city": "Oslo"}}}) == {
            "user.name": "ann",
            "user.address.city": "Oslo",
        }

    def test_arrays_use_indexes(self):
        assert flatten({"phone": ["111", "222"]}) == {"phone:0": "111", "phone:1": "222"}

    def test_mixed_structure(self):
        tree = {"user": {"phones": [{"number": "1"}, {"number": "2"}]}}
        assert flatten(tree) == {
            "user.phones:0.number": "1",
            "user.phones:1.number": "2",
        }

    def test_empty_containers_are_kept(self):
        assert flatten({"tags": [], "meta": {}}) == {"tags": [], "meta": {}}

    def test_scalars_pass_through(self):
        assert flatten({"age": 42, "name": None}) == {"age": 42, "name": None}


class TestUnflatten:
    def test_rebuilds_maps_and_lists(self):
        flat = {"user.phones:0": "1", "user.phones:1": "2", "user.name": "ann"}
        assert unflatten(flat) == {"user": {"phones": ["1", "2"], "name": "ann"}}

    def test_non_numeric_colon_token_is_a_key(self):
        assert unflatten({"a:b": "x"}) == {"a": {"b": "x"}}

    @pytest.mark.parametrize(
        "tree",
        [
            {"login": "admin"},
            {"user": {"address": {"city": "Oslo", "zip": "0150"}}},
            {"phones": ["1", "2", "3"]},
            {"orders": [{"id": "1", "lines": [{"sku": "a"}, {"sku": "b"}]}]},
            {"matrix": [["1", "2"], ["3"]]},
            {"empty": [], "blank": {}, "nested": {"list": []}},
        ],
    )
    def test_round_trip(self, tree):
        assert unflatten(flatten(tree)) == tree


class TestIsNested:
    def test_detects_nesting(self):
        assert is_nested({"a": "1"})
        assert is_nested([{"a": "1"}])
        assert not is_nested(["1", "2"])
        assert not is_nested("x")
        assert not is_nested({})


# =============================================================================
# Params
# =============================================================================


class TestParams:
    def test_add_and_get(self):
        params = Params()
        params.add("login", "admin")
        assert params.get("login") == "admin"
        assert params.has("login")
        assert "login" in params
        assert params.get("missing", "x") == "x"

    def test_add_mapping(self):
        params = Params({"login": "admin", "tags": ("a", "b")})
        assert params.to_dict() == {"login": "admin", "tags": ["a", "b"]}

    def test_one_level_of_nesting_is_flattened(self):
        params = Params()
        params.add("user", {"email": "a@b.io", "phones": ["1", "2"]})
        assert params.keys() == ["user.email", "user.phones"]
        assert params.get("user.phones") == ["1", "2"]

    def test_deeper_nesting_is_rejected(self):
        with pytest.raises(MalformedParameterError):
            Params().add("user", {"address": {"city": "Oslo"}})

    def test_list_of_containers_is_rejected(self):
        with pytest.raises(MalformedParameterError):
            Params().add("phones", [{"number": "1"}])

    def test_delete_returns_value(self):
        params = Params({"a": "1"})
        assert params.delete("a") == "1"
        assert params.delete("a") is None
        assert len(params) == 0
        assert not params

    def test_clear(self):
        params = Params({"a": "1", "b": "2"})
        params.clear()
        assert params.keys() == []

    def test_from_nested(self):
        params = Params.from_nested({"user": {"address": {"city": "Oslo"}}})
        assert params.get("user.address.city") == "Oslo"
        assert params.unflatten() == {"user": {"address": {"city": "Oslo"}}}

    def test_iteration_and_item_access(self):
        params = Params({"a": "1", "b": "2"})
        params["c"] = "3"
        assert list(params) == ["a", "b", "c"]
        assert params["c"] == "3"
        assert params.items() == [("a", "1"), ("b", "2"), ("c", "3")]

    def test_replace(self):
        params = Params({"a": "1"})
        params.replace({"b": "2"})
        assert params.to_dict() == {"b": "2"}
        assert not params.has_nested()
