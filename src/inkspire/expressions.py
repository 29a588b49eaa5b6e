"""Shared machinery for the action and condition compilers.

Both mini-languages follow the same pipeline:

1. a regular-expression tokenizer produces :class:`Token` objects,
2. :func:`to_postfix` runs the shunting-yard algorithm,
3. :func:`build_tree` folds the postfix sequence into a small tagged-variant
   AST (:class:`NumberNode`, :class:`VariableNode`, :class:`UnaryNode`,
   :class:`BinaryNode`),
4. :func:`compile_program` flattens the tree into a :class:`Program` of stack
   instructions, and
5. :func:`execute` interprets a program against a :class:`VariableStore`.

Keeping the tree between steps 3 and 4 lets the condition compiler type-check
operands and place the jumps that implement short-circuit evaluation.
"""

from __future__ import annotations

import operator
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Mapping, Sequence, Union

from .errors import DiagnosticContext, EvaluationError, ExpressionSyntaxError
from .identifiers import Identifier, parse_identifier
from .variables import VariableStore


class TokenKind(str, Enum):
    NUMBER = "number"
    IDENTIFIER = "identifier"
    OPERATOR = "operator"
    LPAREN = "("
    RPAREN = ")"


_GROUP_KINDS: Mapping[str, TokenKind] = {
    "number": TokenKind.NUMBER,
    "identifier": TokenKind.IDENTIFIER,
    "operator": TokenKind.OPERATOR,
    "lparen": TokenKind.LPAREN,
    "rparen": TokenKind.RPAREN,
}


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str


@dataclass(frozen=True)
class OperatorSpec:
    """Precedence table entry used by :func:`to_postfix`."""

    symbol: str
    precedence: int
    arity: int = 2
    right_associative: bool = False


def tokenize(
    source: str,
    pattern: re.Pattern[str],
    *,
    context: DiagnosticContext,
    location: str,
) -> List[Token]:
    """Split ``source`` with ``pattern``.

    ``pattern`` must define the named groups ``number``, ``identifier``,
    ``operator``, ``lparen`` and ``rparen``. Characters not covered by any
    group are reported as a syntax error instead of being skipped.
    """

    tokens: List[Token] = []
    position = 0
    while position < len(source):
        match = pattern.match(source, position)
        if match is None or match.end() == position:
            context.fail(
                location,
                f"Unexpected character {source[position]!r} in expression: {source}",
                error_type=ExpressionSyntaxError,
            )
        tokens.append(Token(_GROUP_KINDS[match.lastgroup or ""], match.group()))
        position = match.end()
    return tokens


def to_postfix(
    tokens: Sequence[Token],
    binary_operators: Mapping[str, OperatorSpec],
    *,
    prefix_operators: Mapping[str, OperatorSpec],
    source: str,
    context: DiagnosticContext,
    location: str,
) -> List[Token | OperatorSpec]:
    """Convert infix ``tokens`` to postfix order with the shunting-yard algorithm.

    Operand tokens pass straight through. A token listed in
    ``prefix_operators`` is treated as a prefix operator whenever an operand is
    expected (start of input, after another operator or after ``(``).
    Binary operators pop stacked operators of higher precedence, or of equal
    precedence when left-associative.
    """

    output: List[Token | OperatorSpec] = []
    stack: List[Token | OperatorSpec] = []
    expect_operand = True

    for token in tokens:
        if token.kind in (TokenKind.NUMBER, TokenKind.IDENTIFIER):
            output.append(token)
            expect_operand = False
        elif token.kind is TokenKind.LPAREN:
            stack.append(token)
            expect_operand = True
        elif token.kind is TokenKind.RPAREN:
            while stack and not isinstance(stack[-1], Token):
                output.append(stack.pop())
            if not stack:
                context.fail(
                    location,
                    f"Mismatched parentheses: {source}",
                    error_type=ExpressionSyntaxError,
                )
            stack.pop()
            expect_operand = False
        elif expect_operand and token.text in prefix_operators:
            stack.append(prefix_operators[token.text])
        elif token.text in binary_operators:
            incoming = binary_operators[token.text]
            while stack and isinstance(stack[-1], OperatorSpec):
                top = stack[-1]
                if top.precedence > incoming.precedence or (
                    top.precedence == incoming.precedence
                    and not incoming.right_associative
                ):
                    output.append(stack.pop())
                else:
                    break
            stack.append(incoming)
            expect_operand = True
        else:
            context.fail(
                location,
                f"Unexpected operator {token.text!r} in expression: {source}",
                error_type=ExpressionSyntaxError,
            )

    while stack:
        entry = stack.pop()
        if isinstance(entry, Token):
            context.fail(
                location,
                f"Mismatched parentheses: {source}",
                error_type=ExpressionSyntaxError,
            )
        output.append(entry)
    return output


@dataclass(frozen=True)
class NumberNode:
    value: float


@dataclass(frozen=True)
class VariableNode:
    identifier: Identifier


@dataclass(frozen=True)
class UnaryNode:
    operator: str
    operand: "Node"


@dataclass(frozen=True)
class BinaryNode:
    operator: str
    left: "Node"
    right: "Node"


Node = Union[NumberNode, VariableNode, UnaryNode, BinaryNode]


def build_tree(
    postfix: Iterable[Token | OperatorSpec],
    default_namespace: str,
    *,
    source: str,
    context: DiagnosticContext,
    location: str,
) -> Node:
    """Fold a postfix sequence into a single expression tree."""

    stack: List[Node] = []
    for entry in postfix:
        if isinstance(entry, OperatorSpec):
            if len(stack) < entry.arity:
                context.fail(
                    location,
                    f"Operator {entry.symbol!r} is missing an operand: {source}",
                    error_type=ExpressionSyntaxError,
                )
            if entry.arity == 1:
                stack.append(UnaryNode(entry.symbol, stack.pop()))
            else:
                right = stack.pop()
                left = stack.pop()
                stack.append(BinaryNode(entry.symbol, left, right))
        elif entry.kind is TokenKind.NUMBER:
            stack.append(NumberNode(float(entry.text)))
        else:
            stack.append(
                VariableNode(parse_identifier(entry.text, default_namespace, context))
            )

    if not stack:
        context.fail(
            location,
            f"Empty expression: {source}",
            error_type=ExpressionSyntaxError,
        )
    if len(stack) > 1:
        context.fail(
            location,
            f"Expression has operands without an operator: {source}",
            error_type=ExpressionSyntaxError,
        )
    return stack[0]


class Opcode(str, Enum):
    PUSH = "push"
    LOAD = "load"
    UNARY = "unary"
    BINARY = "binary"
    TRUTH = "truth"
    JUMP_IF_FALSE_OR_POP = "jump_if_false_or_pop"
    JUMP_IF_TRUE_OR_POP = "jump_if_true_or_pop"


@dataclass(frozen=True)
class Instruction:
    opcode: Opcode
    argument: object = None


def _divide(left: float, right: float) -> float:
    if right == 0:
        raise EvaluationError("Division by zero.")
    return left / right


def _modulo(left: float, right: float) -> float:
    if right == 0:
        raise EvaluationError("Modulo by zero.")
    return left % right


BINARY_FUNCTIONS: Mapping[str, Callable[[float, float], object]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": _divide,
    "%": _modulo,
    "==": operator.eq,
    "=": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

UNARY_FUNCTIONS: Mapping[str, Callable[[object], object]] = {
    "-": operator.neg,
    "+": operator.pos,
    "!": operator.not_,
}

SHORT_CIRCUIT_JUMPS: Mapping[str, Opcode] = {
    "&&": Opcode.JUMP_IF_FALSE_OR_POP,
    "||": Opcode.JUMP_IF_TRUE_OR_POP,
}


@dataclass(frozen=True)
class Program:
    """A compiled, reusable instruction sequence."""

    source: str
    instructions: tuple[Instruction, ...]

    def run(self, variables: VariableStore) -> object:
        return execute(self, variables)


def compile_program(tree: Node, source: str) -> Program:
    """Flatten ``tree`` into stack instructions.

    ``a && b`` becomes ``<a> TRUTH JUMP_IF_FALSE_OR_POP(end) <b> TRUTH`` so the
    right operand only runs when it can change the result; ``||`` mirrors it.
    """

    instructions: List[Instruction] = []

    def emit(node: Node) -> None:
        if isinstance(node, NumberNode):
            instructions.append(Instruction(Opcode.PUSH, node.value))
        elif isinstance(node, VariableNode):
            instructions.append(Instruction(Opcode.LOAD, node.identifier))
        elif isinstance(node, UnaryNode):
            emit(node.operand)
            instructions.append(Instruction(Opcode.UNARY, node.operator))
        elif node.operator in SHORT_CIRCUIT_JUMPS:
            emit(node.left)
            instructions.append(Instruction(Opcode.TRUTH))
            jump_index = len(instructions)
            instructions.append(Instruction(SHORT_CIRCUIT_JUMPS[node.operator]))
            emit(node.right)
            instructions.append(Instruction(Opcode.TRUTH))
            instructions[jump_index] = Instruction(
                SHORT_CIRCUIT_JUMPS[node.operator], len(instructions)
            )
        else:
            emit(node.left)
            emit(node.right)
            instructions.append(Instruction(Opcode.BINARY, node.operator))

    emit(tree)
    return Program(source=source, instructions=tuple(instructions))


def execute(program: Program, variables: VariableStore) -> object:
    """Interpret ``program`` with an operand stack and return the final value."""

    stack: List[object] = []
    instructions = program.instructions
    counter = 0
    while counter < len(instructions):
        instruction = instructions[counter]
        counter += 1
        opcode = instruction.opcode
        if opcode is Opcode.PUSH:
            stack.append(instruction.argument)
        elif opcode is Opcode.LOAD:
            stack.append(variables[instruction.argument])  # type: ignore[index]
        elif opcode is Opcode.UNARY:
            stack.append(UNARY_FUNCTIONS[instruction.argument](stack.pop()))  # type: ignore[index]
        elif opcode is Opcode.BINARY:
            right = stack.pop()
            left = stack.pop()
            stack.append(BINARY_FUNCTIONS[instruction.argument](left, right))  # type: ignore[index,arg-type]
        elif opcode is Opcode.TRUTH:
            stack.append(bool(stack.pop()))
        elif opcode is Opcode.JUMP_IF_FALSE_OR_POP:
            if not stack[-1]:
                counter = instruction.argument  # type: ignore[assignment]
            else:
                stack.pop()
        elif opcode is Opcode.JUMP_IF_TRUE_OR_POP:
            if stack[-1]:
                counter = instruction.argument  # type: ignore[assignment]
            else:
                stack.pop()

    if len(stack) != 1:
        raise EvaluationError(
            f"Expression left {len(stack)} values on the stack: {program.source}"
        )
    return stack[0]


__all__ = [
    "BinaryNode",
    "Instruction",
    "Node",
    "NumberNode",
    "Opcode",
    "OperatorSpec",
    "Program",
    "Token",
    "TokenKind",
    "UnaryNode",
    "VariableNode",
    "build_tree",
    "compile_program",
    "execute",
    "to_postfix",
    "tokenize",
]
