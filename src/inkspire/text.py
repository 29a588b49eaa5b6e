"""Lazy text templates with variable interpolation and inline conditionals.

Two markers are recognised inside narration strings:

* ``${gold}`` interpolates the current value of a variable.
* ``?{gold>=10?You feel rich.|Your purse is light.}`` renders the first
  branch when the condition holds and the optional second branch otherwise.

Markers nest, so either branch of an inline conditional may contain further
markers. Templates are compiled once and rendered on every display so they
always reflect the current variable store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

from .conditions import Conditional
from .errors import DiagnosticContext, ExpressionSyntaxError
from .identifiers import Identifier, parse_identifier
from .variables import VariableStore, format_number

VARIABLE_MARKER = "${"
CONDITIONAL_MARKER = "?{"


@dataclass(frozen=True)
class LiteralFragment:
    text: str

    def render(self) -> str:
        return self.text


@dataclass(frozen=True)
class VariableFragment:
    identifier: Identifier
    variables: VariableStore
    placeholder: str | None = None

    def render(self) -> str:
        if self.placeholder is not None and self.identifier not in self.variables:
            return self.placeholder
        return format_number(self.variables[self.identifier])


@dataclass(frozen=True)
class ConditionalFragment:
    condition: Conditional
    when_true: "Text"
    when_false: "Text | None" = None

    def render(self) -> str:
        if self.condition.evaluate():
            return self.when_true.render()
        if self.when_false is not None:
            return self.when_false.render()
        return ""


Fragment = Union[LiteralFragment, VariableFragment, ConditionalFragment]


def _closing_brace(source: str, open_index: int) -> int | None:
    """Return the index of the ``}`` matching the ``{`` at ``open_index``."""

    depth = 0
    for index in range(open_index, len(source)):
        char = source[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def _split_top_level(body: str, separator: str) -> Tuple[str, str | None]:
    """Split ``body`` on the first ``separator`` that is not inside a marker."""

    depth = 0
    for index, char in enumerate(body):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == separator and depth == 0:
            return body[:index], body[index + 1 :]
    return body, None


def scan_template(source: str, context: DiagnosticContext) -> List[Tuple[str, str]]:
    """Split ``source`` into ``(kind, body)`` pairs.

    ``kind`` is ``"literal"``, ``"variable"`` or ``"conditional"``; marker
    bodies exclude the surrounding ``${``/``?{`` and ``}``.
    """

    parts: List[Tuple[str, str]] = []
    literal: List[str] = []
    index = 0
    while index < len(source):
        if source.startswith((VARIABLE_MARKER, CONDITIONAL_MARKER), index):
            closing = _closing_brace(source, index + 1)
            if closing is None:
                context.fail(
                    context.innermost(),
                    f"Unterminated text marker in: {source}",
                    error_type=ExpressionSyntaxError,
                )
            if literal:
                parts.append(("literal", "".join(literal)))
                literal = []
            kind = "variable" if source[index] == "$" else "conditional"
            parts.append((kind, source[index + 2 : closing]))
            index = closing + 1
        else:
            literal.append(source[index])
            index += 1
    if literal:
        parts.append(("literal", "".join(literal)))
    return parts


class Text:
    """A compiled template bound to a :class:`VariableStore`."""

    def __init__(
        self,
        source: str,
        variables: VariableStore,
        default_namespace: str,
        context: DiagnosticContext | None = None,
        *,
        undefined_placeholder: str | None = None,
    ) -> None:
        ctx = context or DiagnosticContext()
        if not isinstance(source, str):
            ctx.fail(
                ctx.innermost(),
                f"Text must be a string, got {type(source).__name__}.",
                error_type=ExpressionSyntaxError,
            )
        self.source = source
        self.variables = variables
        self.fragments: Tuple[Fragment, ...] = tuple(
            self._compile(kind, body, default_namespace, ctx, undefined_placeholder)
            for kind, body in scan_template(source, ctx)
        )

    def _compile(
        self,
        kind: str,
        body: str,
        default_namespace: str,
        context: DiagnosticContext,
        placeholder: str | None,
    ) -> Fragment:
        if kind == "literal":
            return LiteralFragment(body)
        if kind == "variable":
            identifier = parse_identifier(body.strip(), default_namespace, context)
            return VariableFragment(identifier, self.variables, placeholder)

        condition, branches = _split_top_level(body, "?")
        if branches is None:
            context.fail(
                context.innermost(),
                f"Inline conditional is missing '?': {body}",
                error_type=ExpressionSyntaxError,
            )
        first, second = _split_top_level(branches, "|")
        return ConditionalFragment(
            Conditional(condition, self.variables, default_namespace, context),
            Text(
                first,
                self.variables,
                default_namespace,
                context,
                undefined_placeholder=placeholder,
            ),
            None
            if second is None
            else Text(
                second,
                self.variables,
                default_namespace,
                context,
                undefined_placeholder=placeholder,
            ),
        )

    def render(self) -> str:
        """Render the template against the current variable values."""

        return "".join(fragment.render() for fragment in self.fragments)

    evaluate = render

    @property
    def is_static(self) -> bool:
        """``True`` when the template contains no markers."""

        return all(isinstance(fragment, LiteralFragment) for fragment in self.fragments)

    @property
    def is_empty(self) -> bool:
        return not self.fragments

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f"Text({self.source!r})"


def render_all(texts: Sequence[Text]) -> List[str]:
    """Render ``texts`` in order, dropping paragraphs that come out empty."""

    return [rendered for rendered in (text.render() for text in texts) if rendered]


__all__ = [
    "ConditionalFragment",
    "Fragment",
    "LiteralFragment",
    "Text",
    "VariableFragment",
    "render_all",
    "scan_template",
]
