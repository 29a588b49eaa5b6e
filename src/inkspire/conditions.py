"""Compiled boolean conditions used to gate options and inline text."""

from __future__ import annotations

import re
from typing import Mapping

from .errors import DiagnosticContext, ExpressionSyntaxError
from .expressions import (
    BinaryNode,
    Node,
    NumberNode,
    OperatorSpec,
    Program,
    UnaryNode,
    VariableNode,
    build_tree,
    compile_program,
    to_postfix,
    tokenize,
)
from .variables import VariableStore

WHITESPACE_PATTERN = re.compile(r"\s+")
_NUMBER = r"-?\d+(?:\.\d+)?"
_VARIABLE = r"[A-Za-z_][A-Za-z0-9_:]*"
RANGE_PATTERN = re.compile(
    rf"(?P<variable>{_VARIABLE})=(?P<low>{_NUMBER})?\.\.(?P<high>{_NUMBER})?"
)
CONDITION_TOKEN_PATTERN = re.compile(
    rf"(?P<number>{_NUMBER})"
    rf"|(?P<identifier>{_VARIABLE})"
    r"|(?P<operator>>=|<=|==|!=|&&|\|\||=|<|>|!)"
    r"|(?P<lparen>\()"
    r"|(?P<rparen>\))"
)

COMPARISON_OPERATORS = frozenset({"==", "=", "!=", "<", "<=", ">", ">="})

CONDITION_OPERATORS: Mapping[str, OperatorSpec] = {
    "||": OperatorSpec("||", 1),
    "&&": OperatorSpec("&&", 2),
    **{symbol: OperatorSpec(symbol, 3) for symbol in COMPARISON_OPERATORS},
}
NEGATION_OPERATORS: Mapping[str, OperatorSpec] = {
    "!": OperatorSpec("!", 4, arity=1, right_associative=True),
}


def expand_ranges(
    condition: str,
    context: DiagnosticContext | None = None,
) -> str:
    """Rewrite ``x=lo..hi`` style ranges into explicit comparisons.

    ``x=lo..`` and ``x=..hi`` are open ranges. Whitespace must already have
    been removed. A ``..`` that is not part of a ``variable=`` range is
    rejected.
    """

    ctx = context or DiagnosticContext()

    def _replace(match: re.Match[str]) -> str:
        variable = match.group("variable")
        low = match.group("low")
        high = match.group("high")
        if low is None and high is None:
            ctx.fail(
                ctx.innermost(),
                f"Range for {variable} needs at least one bound: {condition}",
                error_type=ExpressionSyntaxError,
            )
        clauses = []
        if low is not None:
            clauses.append(f"{variable}>={low}")
        if high is not None:
            clauses.append(f"{variable}<={high}")
        return "(" + "&&".join(clauses) + ")"

    expanded = RANGE_PATTERN.sub(_replace, condition)
    if ".." in expanded:
        ctx.fail(
            ctx.innermost(),
            f"Invalid range syntax: {condition}",
            error_type=ExpressionSyntaxError,
        )
    return expanded


def _check_operands(node: Node, source: str, context: DiagnosticContext) -> str:
    """Return ``"number"`` or ``"boolean"`` for ``node`` and validate operands."""

    if isinstance(node, (NumberNode, VariableNode)):
        return "number"
    if isinstance(node, UnaryNode):
        _check_operands(node.operand, source, context)
        return "boolean"

    assert isinstance(node, BinaryNode)
    left = _check_operands(node.left, source, context)
    right = _check_operands(node.right, source, context)
    if node.operator in COMPARISON_OPERATORS and "boolean" in (left, right):
        context.fail(
            context.innermost(),
            f"Invalid operands for comparison {node.operator!r}: {source}",
            error_type=ExpressionSyntaxError,
        )
    return "boolean"


def compile_condition(
    condition: str,
    default_namespace: str,
    context: DiagnosticContext | None = None,
) -> Program:
    """Compile ``condition`` into a short-circuiting :class:`Program`."""

    ctx = context or DiagnosticContext()
    location = ctx.innermost()
    if not isinstance(condition, str):
        ctx.fail(
            location,
            f"Malformed conditional: {condition!r}",
            error_type=ExpressionSyntaxError,
        )
    source = expand_ranges(WHITESPACE_PATTERN.sub("", condition), ctx)
    if not source:
        ctx.fail(
            location,
            f"Malformed conditional: {condition!r}",
            error_type=ExpressionSyntaxError,
        )

    tokens = tokenize(source, CONDITION_TOKEN_PATTERN, context=ctx, location=location)
    postfix = to_postfix(
        tokens,
        CONDITION_OPERATORS,
        prefix_operators=NEGATION_OPERATORS,
        source=condition,
        context=ctx,
        location=location,
    )
    tree = build_tree(
        postfix, default_namespace, source=condition, context=ctx, location=location
    )
    _check_operands(tree, condition, ctx)
    return compile_program(tree, condition)


class Conditional:
    """A compiled condition bound to a :class:`VariableStore`."""

    def __init__(
        self,
        condition: str,
        variables: VariableStore,
        default_namespace: str,
        context: DiagnosticContext | None = None,
    ) -> None:
        self.source = condition
        self.variables = variables
        self.program = compile_condition(condition, default_namespace, context)

    def evaluate(self) -> bool:
        return bool(self.program.run(self.variables))

    def __repr__(self) -> str:
        return f"Conditional({self.source!r})"


__all__ = ["Conditional", "compile_condition", "expand_ranges"]
