"""Numeric variable storage shared by every adventure of a session."""

from __future__ import annotations

from typing import Dict, Iterator, Mapping, MutableMapping

from .errors import UndefinedVariableError
from .identifiers import Identifier


def _coerce_key(key: Identifier | str) -> Identifier:
    if isinstance(key, Identifier):
        return key
    return Identifier.from_string(key)


def format_number(value: float) -> str:
    """Render ``value`` the way narration expects, without a trailing ``.0``."""

    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class VariableStore(MutableMapping[Identifier, float]):
    """Mapping from identifiers to numbers.

    Entries appear on first assignment and are never removed implicitly.
    Reading a missing entry raises :class:`UndefinedVariableError` rather than
    falling back to a default, so typos in adventures surface immediately.
    Keys may be given as :class:`Identifier` instances or canonical
    ``namespace:name`` strings.
    """

    def __init__(self, initial: Mapping[Identifier | str, float] | None = None) -> None:
        self._values: Dict[Identifier, float] = {}
        if initial:
            for key, value in initial.items():
                self[key] = value

    def __getitem__(self, key: Identifier | str) -> float:
        identifier = _coerce_key(key)
        try:
            return self._values[identifier]
        except KeyError:
            raise UndefinedVariableError(str(identifier)) from None

    def __setitem__(self, key: Identifier | str, value: float) -> None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"variables hold numbers, got {type(value)!r}")
        self._values[_coerce_key(key)] = float(value)

    def __delitem__(self, key: Identifier | str) -> None:
        del self._values[_coerce_key(key)]

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (Identifier, str)):
            return False
        try:
            return _coerce_key(key) in self._values
        except ValueError:
            return False

    def __iter__(self) -> Iterator[Identifier]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def snapshot(self) -> dict[str, float]:
        """Return a plain ``{"namespace:name": value}`` copy for debugging."""

        return {str(key): value for key, value in sorted(self._values.items())}

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"VariableStore({self.snapshot()!r})"


__all__ = ["VariableStore", "format_number"]
