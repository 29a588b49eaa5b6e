"""Error taxonomy and the diagnostic channel shared by every compiler."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import NoReturn

LOCATIONS: tuple[str, ...] = ("identifier", "option", "scene", "adventure")
"""Diagnostic locations ordered from the innermost to the outermost."""


@dataclass
class DiagnosticContext:
    """Track where the document compiler currently is.

    The loader updates the fields as it descends into an adventure, one of
    its scenes and one of that scene's options. Errors raised through
    :meth:`fail` capture a frozen copy so diagnostics stay accurate after the
    context moves on.
    """

    adventure: str = ""
    scene: str = ""
    option: str = ""
    identifier: str = ""

    def snapshot(self) -> "DiagnosticContext":
        return replace(self)

    def innermost(self) -> str:
        """Return the deepest document location currently being compiled."""

        if self.option:
            return "option"
        if self.scene:
            return "scene"
        return "adventure"

    def fail(
        self,
        location: str,
        message: str,
        *,
        error_type: type["ParseError"] | None = None,
    ) -> NoReturn:
        """Raise a :class:`ParseError` tagged with ``location``."""

        exc_type = error_type or ParseError
        raise exc_type(location, message, context=self.snapshot())


class InkspireError(Exception):
    """Base class for every error raised by the adventure runtime."""


class ParseError(InkspireError, ValueError):
    """Raised when a document or DSL fragment cannot be compiled."""

    def __init__(
        self,
        location: str,
        message: str,
        *,
        context: DiagnosticContext | None = None,
    ) -> None:
        if location not in LOCATIONS:
            raise ValueError(f"unknown diagnostic location: {location!r}")
        super().__init__(message)
        self.location = location
        self.message = message
        self.context = context or DiagnosticContext()

    def __str__(self) -> str:
        tags = [
            f"{name}={getattr(self.context, name)}"
            for name in reversed(LOCATIONS)
            if getattr(self.context, name)
        ]
        suffix = f" ({', '.join(tags)})" if tags else ""
        return f"{self.message}{suffix}"


class MalformedIdentifierError(ParseError):
    """Raised for identifiers that are not ``name`` or ``namespace:name``."""


class ExpressionSyntaxError(ParseError):
    """Raised when an action, condition or text template is malformed."""


class DocumentError(ParseError):
    """Raised for invalid adventure, scene or option records."""


class LinkError(ParseError):
    """Raised when a scene reference cannot be resolved after loading."""


class EvaluationError(InkspireError, RuntimeError):
    """Raised when a compiled expression fails while being evaluated."""


class UndefinedVariableError(EvaluationError, KeyError):
    """Raised when a variable is read before it was ever assigned."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Variable {identifier} used before assignment.")
        self.identifier = identifier

    def __str__(self) -> str:
        # KeyError would otherwise wrap the message in quotes.
        return str(self.args[0])


class TraversalError(InkspireError, RuntimeError):
    """Raised when the turn loop reaches a state it cannot continue from."""


def format_diagnostic(error: ParseError) -> str:
    """Render ``error`` as a multi-line report for the console.

    The first line names the failing location; the following lines walk
    outwards from that location to the enclosing adventure.
    """

    lines = [f"ParserError in {error.location}: {error.message}"]
    start = LOCATIONS.index(error.location)
    for name in LOCATIONS[start:]:
        value = getattr(error.context, name) or "unknown"
        lines.append(f"{name.capitalize()}: {value}")
    return "\n".join(lines)


__all__ = [
    "DiagnosticContext",
    "DocumentError",
    "EvaluationError",
    "ExpressionSyntaxError",
    "InkspireError",
    "LinkError",
    "MalformedIdentifierError",
    "ParseError",
    "TraversalError",
    "UndefinedVariableError",
    "format_diagnostic",
]
