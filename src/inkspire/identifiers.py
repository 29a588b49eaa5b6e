"""Namespaced identifiers used for variables and scenes."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from .errors import DiagnosticContext, MalformedIdentifierError

SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
IDENTIFIER_PATTERN = re.compile(r"^([A-Za-z0-9_]+):([A-Za-z0-9_]+)$")


@dataclass(frozen=True)
class Identifier:
    """A ``namespace:name`` pair.

    Instances compare, hash and order by their canonical string form, so they
    can be used directly as keys of the variable store and scene registry.
    """

    namespace: str
    name: str

    def __post_init__(self) -> None:
        for field_name in ("namespace", "name"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not SEGMENT_PATTERN.match(value):
                raise MalformedIdentifierError(
                    "identifier",
                    f"Malformed identifier {field_name}: {value!r}",
                    context=DiagnosticContext(identifier=str(value)),
                )

    def __str__(self) -> str:
        return f"{self.namespace}:{self.name}"

    def __lt__(self, other: "Identifier") -> bool:
        if not isinstance(other, Identifier):
            return NotImplemented
        return str(self) < str(other)

    @classmethod
    def from_string(cls, text: str) -> "Identifier":
        """Split a canonical ``namespace:name`` string on its first colon."""

        if not isinstance(text, str) or ":" not in text:
            raise MalformedIdentifierError(
                "identifier",
                f"Malformed identifier: {text}",
                context=DiagnosticContext(identifier=str(text)),
            )
        namespace, name = text.split(":", 1)
        return cls(namespace, name)


def parse_identifier(
    raw: str,
    default_namespace: str,
    context: DiagnosticContext | None = None,
) -> Identifier:
    """Resolve ``raw`` against ``default_namespace``.

    ``"x"`` becomes ``default_namespace:x`` while ``"a:x"`` is kept verbatim.
    Anything with more than one colon is rejected.
    """

    ctx = context or DiagnosticContext()
    ctx.identifier = raw
    if not isinstance(raw, str):
        ctx.fail(
            "identifier",
            f"Identifier must be a string, got {type(raw).__name__}.",
            error_type=MalformedIdentifierError,
        )

    parts = raw.split(":")
    if len(parts) > 2:
        ctx.fail(
            "identifier",
            f"Malformed identifier {raw}.",
            error_type=MalformedIdentifierError,
        )
    namespace, name = parts if len(parts) == 2 else (default_namespace, parts[0])
    if not SEGMENT_PATTERN.match(namespace) or not SEGMENT_PATTERN.match(name):
        ctx.fail(
            "identifier",
            f"Malformed identifier {raw}.",
            error_type=MalformedIdentifierError,
        )
    return Identifier(namespace, name)


def is_valid_identifier(candidate: Any) -> bool:
    """Return ``True`` when ``candidate`` is a canonical ``namespace:name``."""

    return isinstance(candidate, str) and IDENTIFIER_PATTERN.match(candidate) is not None


def identifier_namespace(identifier: str) -> str:
    return Identifier.from_string(identifier).namespace


def identifier_name(identifier: str) -> str:
    return Identifier.from_string(identifier).name


__all__ = [
    "IDENTIFIER_PATTERN",
    "Identifier",
    "identifier_name",
    "identifier_namespace",
    "is_valid_identifier",
    "parse_identifier",
]
