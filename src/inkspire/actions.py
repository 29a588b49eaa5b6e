"""Compiled arithmetic assignments such as ``gold += 3 * level``."""

from __future__ import annotations

import re
from typing import Iterable, List, Mapping

from .errors import DiagnosticContext, ExpressionSyntaxError
from .expressions import (
    BINARY_FUNCTIONS,
    OperatorSpec,
    Program,
    build_tree,
    compile_program,
    to_postfix,
    tokenize,
)
from .identifiers import Identifier, parse_identifier
from .variables import VariableStore

ASSIGNMENT_OPERATORS = ("+=", "-=", "*=", "/=", "=")
ACTION_PATTERN = re.compile(
    r"^(.*?)(" + "|".join(map(re.escape, ASSIGNMENT_OPERATORS)) + r")(.*)$"
)
SEPARATOR_PATTERN = re.compile(r"[,;]")
WHITESPACE_PATTERN = re.compile(r"\s+")
ARITHMETIC_TOKEN_PATTERN = re.compile(
    r"(?P<number>\d+(?:\.\d+)?)"
    r"|(?P<identifier>[A-Za-z_][A-Za-z0-9_:]*)"
    r"|(?P<operator>[-+*/%])"
    r"|(?P<lparen>\()"
    r"|(?P<rparen>\))"
)

ARITHMETIC_OPERATORS: Mapping[str, OperatorSpec] = {
    "+": OperatorSpec("+", 1),
    "-": OperatorSpec("-", 1),
    "*": OperatorSpec("*", 2),
    "/": OperatorSpec("/", 2),
    "%": OperatorSpec("%", 2),
}
SIGN_OPERATORS: Mapping[str, OperatorSpec] = {
    "-": OperatorSpec("-", 3, arity=1, right_associative=True),
    "+": OperatorSpec("+", 3, arity=1, right_associative=True),
}

COMPOUND_OPERATORS: Mapping[str, str] = {"+=": "+", "-=": "-", "*=": "*", "/=": "/"}


def compile_arithmetic(
    expression: str,
    default_namespace: str,
    context: DiagnosticContext | None = None,
) -> Program:
    """Compile an arithmetic expression into a reusable :class:`Program`."""

    ctx = context or DiagnosticContext()
    location = ctx.innermost()
    source = WHITESPACE_PATTERN.sub("", expression)
    if not source:
        ctx.fail(
            location,
            f"Invalid expression: {expression!r}",
            error_type=ExpressionSyntaxError,
        )
    tokens = tokenize(source, ARITHMETIC_TOKEN_PATTERN, context=ctx, location=location)
    postfix = to_postfix(
        tokens,
        ARITHMETIC_OPERATORS,
        prefix_operators=SIGN_OPERATORS,
        source=source,
        context=ctx,
        location=location,
    )
    tree = build_tree(
        postfix, default_namespace, source=source, context=ctx, location=location
    )
    return compile_program(tree, source)


class Action:
    """A single compiled assignment bound to a :class:`VariableStore`."""

    def __init__(
        self,
        action: str,
        variables: VariableStore,
        default_namespace: str,
        context: DiagnosticContext | None = None,
    ) -> None:
        ctx = context or DiagnosticContext()
        source = WHITESPACE_PATTERN.sub("", action)
        match = ACTION_PATTERN.match(source)
        if match is None or not match.group(1) or not match.group(3):
            ctx.fail(
                ctx.innermost(),
                f"Malformed action: {action}",
                error_type=ExpressionSyntaxError,
            )

        self.source = source
        self.variables = variables
        self.target: Identifier = parse_identifier(match.group(1), default_namespace, ctx)
        self.operator: str = match.group(2)
        self.program = compile_arithmetic(match.group(3), default_namespace, ctx)

    def evaluate(self) -> float:
        """Run the expression and apply the assignment, returning the new value."""

        value = float(self.program.run(self.variables))  # type: ignore[arg-type]
        if self.operator == "=":
            result = value
        else:
            apply = BINARY_FUNCTIONS[COMPOUND_OPERATORS[self.operator]]
            result = float(apply(self.variables[self.target], value))  # type: ignore[arg-type]
        self.variables[self.target] = result
        return result

    def __repr__(self) -> str:
        return f"Action({self.source!r})"


def split_actions(actions: str | Iterable[str] | None) -> List[str]:
    """Split separator-delimited action text into individual statements."""

    if not actions:
        return []
    chunks = [actions] if isinstance(actions, str) else list(actions)
    statements: List[str] = []
    for chunk in chunks:
        for piece in SEPARATOR_PATTERN.split(chunk):
            stripped = WHITESPACE_PATTERN.sub("", piece)
            if stripped:
                statements.append(stripped)
    return statements


def parse_actions(
    actions: str | Iterable[str] | None,
    variables: VariableStore,
    default_namespace: str,
    context: DiagnosticContext | None = None,
) -> List[Action]:
    """Compile every statement of ``actions`` in order."""

    return [
        Action(statement, variables, default_namespace, context)
        for statement in split_actions(actions)
    ]


def run_actions(actions: Iterable[Action]) -> None:
    for action in actions:
        action.evaluate()


__all__ = [
    "ASSIGNMENT_OPERATORS",
    "Action",
    "compile_arithmetic",
    "parse_actions",
    "run_actions",
    "split_actions",
]
