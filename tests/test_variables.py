"""Tests for the shared variable store."""

import pytest

from inkspire import Identifier, UndefinedVariableError, VariableStore
from inkspire.variables import format_number


def test_store_accepts_identifiers_and_strings() -> None:
    store = VariableStore({"ns:gold": 3})

    store[Identifier("ns", "oil")] = 2

    assert store[Identifier("ns", "gold")] == 3
    assert store["ns:oil"] == 2
    assert len(store) == 2
    assert "ns:gold" in store
    assert "ns:missing" not in store
    assert "not-an-identifier" not in store
    assert 42 not in store


def test_values_are_stored_as_floats() -> None:
    store = VariableStore()
    store["ns:x"] = 3

    assert isinstance(store["ns:x"], float)


def test_missing_variable_raises_undefined_error() -> None:
    store = VariableStore()

    with pytest.raises(UndefinedVariableError) as excinfo:
        store["ns:gold"]

    assert isinstance(excinfo.value, KeyError)
    assert str(excinfo.value) == "Variable ns:gold used before assignment."


@pytest.mark.parametrize("value", [True, "3", None])
def test_non_numeric_values_are_rejected(value: object) -> None:
    store = VariableStore()

    with pytest.raises(TypeError):
        store["ns:x"] = value  # type: ignore[assignment]


def test_snapshot_orders_by_identifier() -> None:
    store = VariableStore({"b:x": 1, "a:y": 2})

    assert list(store.snapshot()) == ["a:y", "b:x"]


@pytest.mark.parametrize(
    ("value", "expected"), [(3.0, "3"), (2.5, "2.5"), (-1.0, "-1"), (0.0, "0")]
)
def test_format_number(value: float, expected: str) -> None:
    assert format_number(value) == expected
