"""Tests for capability input validation and default filling."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from agentloop.exceptions import CapabilityValidationError, UnknownCapabilityError
from agentloop.toolkit import ParamSpec, ParamType, check_input, validate_input
from agentloop.toolkit.validation import TYPE_PREDICATES, apply_defaults

from tests.conftest import make_capability

json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.floats(allow_nan=False) | st.text(max_size=10),
    lambda children: st.lists(children, max_size=3)
    | st.dictionaries(st.text(max_size=5), children, max_size=3),
    max_leaves=8,
)


# ===========================================================================
# Type predicates
# ===========================================================================


class TestTypePredicates:
    """Each ParamType's predicate."""

    @pytest.mark.parametrize("value,expected", [
        ("abc", True),
        ("", True),
        (3, False),
        (None, False),
    ])
    def test_string(self, value, expected):
        assert TYPE_PREDICATES[ParamType.STRING](value) is expected

    @pytest.mark.parametrize("value,expected", [
        ("one", True),
        (["a", "b"], True),
        ([], True),
        (["a", 1], False),
        (5, False),
    ])
    def test_text_collection(self, value, expected):
        assert TYPE_PREDICATES[ParamType.TEXT_COLLECTION](value) is expected

    @pytest.mark.parametrize("value,expected", [
        (1, True),
        (1.5, True),
        (True, False),
        ("1", False),
    ])
    def test_number(self, value, expected):
        assert TYPE_PREDICATES[ParamType.NUMBER](value) is expected

    @pytest.mark.parametrize("value,expected", [
        (3, True),
        (3.0, False),
        (False, False),
        ("3", False),
    ])
    def test_integer(self, value, expected):
        assert TYPE_PREDICATES[ParamType.INTEGER](value) is expected

    def test_boolean(self):
        assert TYPE_PREDICATES[ParamType.BOOLEAN](True)
        assert not TYPE_PREDICATES[ParamType.BOOLEAN](1)

    def test_list_and_any(self):
        assert TYPE_PREDICATES[ParamType.LIST]([1, "x"])
        assert not TYPE_PREDICATES[ParamType.LIST]("x")
        assert TYPE_PREDICATES[ParamType.ANY](object())

    def test_every_type_has_a_predicate(self):
        assert set(TYPE_PREDICATES) == set(ParamType)


# ===========================================================================
# validate_input
# ===========================================================================


class TestValidateInput:
    """Collecting every schema violation."""

    def _defn(self):
        return make_capability("write_file", {
            "filepath": ParamSpec(ParamType.STRING, required=True),
            "content": ParamSpec(ParamType.STRING, required=True),
            "mode": ParamSpec(ParamType.STRING),
        })

    def test_valid_input(self):
        assert validate_input(self._defn(), {"filepath": "a.txt", "content": "x"}) == []

    def test_missing_required(self):
        issues = validate_input(self._defn(), {"filepath": "a.txt"})
        assert [(i.parameter, i.kind) for i in issues] == [("content", "missing")]

    def test_none_counts_as_missing(self):
        issues = validate_input(self._defn(), {"filepath": "a.txt", "content": None})
        assert issues[0].kind == "missing"

    def test_collects_all_issues(self):
        issues = validate_input(self._defn(), {"filepath": 42, "mode": 1})
        kinds = {(i.parameter, i.kind) for i in issues}
        assert kinds == {("filepath", "type"), ("content", "missing"), ("mode", "type")}

    def test_type_message_names_expected_and_actual(self):
        issues = validate_input(self._defn(), {"filepath": 42, "content": "x"})
        assert issues[0].message == "parameter 'filepath' must be string, got int"

    def test_undeclared_parameters_ignored(self):
        assert validate_input(
            self._defn(), {"filepath": "a", "content": "b", "extra": object()}
        ) == []

    def test_integer_rejects_string_digits(self):
        defn = make_capability("count_lines", {"count": ParamSpec(ParamType.INTEGER, required=True)})
        issues = validate_input(defn, {"count": "5"})
        assert len(issues) == 1
        assert issues[0].kind == "type"

    @given(st.dictionaries(st.sampled_from(["filepath", "content", "mode", "other"]), json_values))
    @settings(max_examples=200)
    def test_total_over_arbitrary_input(self, data):
        """Validation never raises; it returns a (possibly empty) list."""
        issues = validate_input(self._defn(), data)
        assert isinstance(issues, list)
        assert all(i.parameter in ("filepath", "content", "mode") for i in issues)


# ===========================================================================
# check_input
# ===========================================================================


class TestCheckInput:
    """Registry-level resolution plus validation."""

    def test_returns_definition(self, registry):
        defn = check_input(registry, "list_files", {})
        assert defn.name == "list_files"

    def test_unknown_action(self, registry):
        with pytest.raises(UnknownCapabilityError):
            check_input(registry, "delete_everything", {})

    def test_invalid_input_raises_with_issues(self, registry):
        with pytest.raises(CapabilityValidationError) as exc_info:
            check_input(registry, "write_file", {"filepath": 1})
        err = exc_info.value
        assert err.action == "write_file"
        assert len(err.issues) == 2


# ===========================================================================
# apply_defaults
# ===========================================================================


class TestApplyDefaults:
    """Argument filtering before a handler call."""

    def test_fills_default(self, registry):
        assert apply_defaults(registry.get("list_files"), {}) == {"directory": "."}

    def test_given_value_wins(self, registry):
        assert apply_defaults(registry.get("list_files"), {"directory": "src"}) == {
            "directory": "src"
        }

    def test_drops_undeclared(self, registry):
        args = apply_defaults(
            registry.get("write_file"), {"filepath": "a", "content": "b", "force": True}
        )
        assert args == {"filepath": "a", "content": "b"}

    def test_none_default_left_out(self):
        defn = make_capability("x", {"opt": ParamSpec(ParamType.STRING)})
        assert apply_defaults(defn, {}) == {}
