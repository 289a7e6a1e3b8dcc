"""Restricted boolean expression evaluator for condition steps.

Expressions reference context variables as ``{{name}}``. Each token is
replaced by the JSON encoding of the variable (``null`` when missing) and the
resulting text is parsed with a small recursive-descent parser into an AST
that is walked directly. Nothing is ever handed to ``eval``.

Grammar::

    expression := or_expr
    or_expr    := and_expr (("||" | "or") and_expr)*
    and_expr   := not_expr (("&&" | "and") not_expr)*
    not_expr   := "not" not_expr | comparison
    comparison := additive (COMPARATOR additive)*
    additive   := unary (("+" | "-") unary)*
    unary      := ("-" | "!") unary | primary
    primary    := NUMBER | STRING | "true" | "false" | "null"
                | "(" expression ")" | list | object
    list       := "[" [expression ("," expression)*] "]"
    object     := "{" [STRING ":" expression ("," STRING ":" expression)*] "}"

``COMPARATOR`` is one of ``== === != !== = < <= > >= contains startsWith
endsWith in``.

The symbol ``!`` binds tighter than any comparison, while the word ``not``
negates a whole comparison: ``!0 > 3`` is false and ``not 0 > 3`` is true.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from .context import TEMPLATE_TOKEN

logger = logging.getLogger(__name__)

MAX_EXPRESSION_LENGTH = 10_000
MAX_NESTING_DEPTH = 64

_NUMBER = re.compile(r"\d+(?:\.\d+)?(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?")
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_OPERATORS = (
    "===",
    "!==",
    "==",
    "!=",
    "<=",
    ">=",
    "&&",
    "||",
    "<",
    ">",
    "=",
    "!",
    "+",
    "-",
    "(",
    ")",
    "[",
    "]",
    "{",
    "}",
    ",",
    ":",
)
_KEYWORDS = {
    "true",
    "false",
    "null",
    "and",
    "or",
    "not",
    "contains",
    "startswith",
    "endswith",
    "in",
}
_COMPARATORS = {"==", "===", "!=", "!==", "=", "<", "<=", ">", ">=", "contains", "startswith", "endswith", "in"}


class ConditionError(Exception):
    """Raised for unsafe, malformed or unevaluable expressions."""


@dataclass(frozen=True)
class Token:
    type: str  # NUMBER, STRING, OP, KEYWORD, EOF
    value: Any
    position: int


# ----------------------------------------------------------------------
# AST
@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class ListLiteral:
    items: Tuple[Any, ...]


@dataclass(frozen=True)
class ObjectLiteral:
    entries: Tuple[Tuple[str, Any], ...]


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: Any


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: Any
    right: Any


# ----------------------------------------------------------------------
# Substitution
def substitute_variables(expression: str, variables: Optional[Mapping[str, Any]]) -> str:
    """Replace ``{{name}}`` with the JSON-encoded value of ``name``."""
    variables = variables or {}

    def _replace(match: re.Match) -> str:
        value = variables.get(match.group(1))
        if value is None:
            return "null"
        return json.dumps(value, default=str)

    return TEMPLATE_TOKEN.sub(_replace, expression)


# ----------------------------------------------------------------------
# Lexer
def _read_string(text: str, start: int) -> Tuple[str, int]:
    quote = text[start]
    index = start + 1
    chars: List[str] = []
    while index < len(text):
        char = text[index]
        if char == "\\":
            if index + 1 >= len(text):
                break
            if quote == '"':
                # Defer escape handling to the JSON decoder below.
                chars.append(text[index : index + 2])
            else:
                nxt = text[index + 1]
                chars.append({"n": "\n", "t": "\t"}.get(nxt, nxt))
            index += 2
            continue
        if char == quote:
            raw = "".join(chars)
            if quote == '"':
                try:
                    return json.loads(f'"{raw}"'), index + 1
                except json.JSONDecodeError as exc:
                    raise ConditionError(f"Invalid string literal at {start}") from exc
            return raw, index + 1
        chars.append(char)
        index += 1
    raise ConditionError(f"Unterminated string literal at {start}")


def tokenize(text: str) -> List[Token]:
    """Split ``text`` into tokens, rejecting anything outside the grammar."""
    tokens: List[Token] = []
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if char.isspace():
            index += 1
            continue
        if char in ('"', "'"):
            value, index_after = _read_string(text, index)
            tokens.append(Token("STRING", value, index))
            index = index_after
            continue
        number = _NUMBER.match(text, index)
        if number:
            raw = number.group(0)
            value = float(raw) if any(c in raw for c in ".eE") else int(raw)
            tokens.append(Token("NUMBER", value, index))
            index = number.end()
            continue
        identifier = _IDENTIFIER.match(text, index)
        if identifier:
            word = identifier.group(0)
            lowered = word.lower()
            if lowered not in _KEYWORDS:
                raise ConditionError(f"Unsupported identifier {word!r} at {index}")
            tokens.append(Token("KEYWORD", lowered, index))
            index = identifier.end()
            continue
        for op in _OPERATORS:
            if text.startswith(op, index):
                tokens.append(Token("OP", op, index))
                index += len(op)
                break
        else:
            raise ConditionError(f"Unsafe character {char!r} at {index}")
    tokens.append(Token("EOF", None, length))
    return tokens


# ----------------------------------------------------------------------
# Parser
class Parser:
    """Recursive-descent parser producing the AST above."""

    def __init__(self, tokens: List[Token]) -> None:
        self.tokens = tokens
        self.pos = 0
        self.depth = 0

    def peek(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def match(self, *values: str) -> Optional[Token]:
        token = self.peek()
        if token.type in ("OP", "KEYWORD") and token.value in values:
            return self.advance()
        return None

    def expect(self, value: str) -> Token:
        token = self.match(value)
        if token is None:
            found = self.peek()
            raise ConditionError(f"Expected {value!r} at {found.position}, found {found.value!r}")
        return token

    def parse(self) -> Any:
        node = self.parse_expression()
        if self.peek().type != "EOF":
            token = self.peek()
            raise ConditionError(f"Unexpected token {token.value!r} at {token.position}")
        return node

    def parse_expression(self) -> Any:
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            raise ConditionError("Expression nested too deeply")
        try:
            return self.parse_or()
        finally:
            self.depth -= 1

    def parse_or(self) -> Any:
        node = self.parse_and()
        while self.match("||", "or"):
            node = BinaryOp("or", node, self.parse_and())
        return node

    def parse_and(self) -> Any:
        node = self.parse_not()
        while self.match("&&", "and"):
            node = BinaryOp("and", node, self.parse_not())
        return node

    def parse_not(self) -> Any:
        if self.match("not"):
            self.depth += 1
            if self.depth > MAX_NESTING_DEPTH:
                raise ConditionError("Expression nested too deeply")
            try:
                return UnaryOp("not", self.parse_not())
            finally:
                self.depth -= 1
        return self.parse_comparison()

    def parse_comparison(self) -> Any:
        node = self.parse_additive()
        while True:
            token = self.peek()
            if token.type in ("OP", "KEYWORD") and token.value in _COMPARATORS:
                self.advance()
                node = BinaryOp(token.value, node, self.parse_additive())
                continue
            return node

    def parse_additive(self) -> Any:
        node = self.parse_unary()
        while True:
            token = self.match("+", "-")
            if token is None:
                return node
            node = BinaryOp(token.value, node, self.parse_unary())

    def parse_unary(self) -> Any:
        token = self.match("-", "!")
        if token is not None:
            self.depth += 1
            if self.depth > MAX_NESTING_DEPTH:
                raise ConditionError("Expression nested too deeply")
            try:
                op = "neg" if token.value == "-" else "not"
                return UnaryOp(op, self.parse_unary())
            finally:
                self.depth -= 1
        return self.parse_primary()

    def parse_primary(self) -> Any:
        token = self.advance()
        if token.type in ("NUMBER", "STRING"):
            return Literal(token.value)
        if token.type == "KEYWORD" and token.value in ("true", "false", "null"):
            return Literal({"true": True, "false": False, "null": None}[token.value])
        if token.type == "OP" and token.value == "(":
            node = self.parse_expression()
            self.expect(")")
            return node
        if token.type == "OP" and token.value == "[":
            return self.parse_list()
        if token.type == "OP" and token.value == "{":
            return self.parse_object()
        raise ConditionError(f"Unexpected token {token.value!r} at {token.position}")

    def parse_list(self) -> ListLiteral:
        items: List[Any] = []
        if not self.match("]"):
            while True:
                items.append(self.parse_expression())
                if self.match("]"):
                    break
                self.expect(",")
        return ListLiteral(tuple(items))

    def parse_object(self) -> ObjectLiteral:
        entries: List[Tuple[str, Any]] = []
        if not self.match("}"):
            while True:
                key = self.advance()
                if key.type != "STRING":
                    raise ConditionError(f"Object keys must be strings at {key.position}")
                self.expect(":")
                entries.append((key.value, self.parse_expression()))
                if self.match("}"):
                    break
                self.expect(",")
        return ObjectLiteral(tuple(entries))


def parse(text: str) -> Any:
    if len(text) > MAX_EXPRESSION_LENGTH:
        raise ConditionError("Expression too long")
    return Parser(tokenize(text)).parse()


# ----------------------------------------------------------------------
# Evaluation
def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _truthy(value: Any) -> bool:
    return bool(value)


def _equals(left: Any, right: Any) -> bool:
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if _is_number(left) and _is_number(right):
        return left == right
    if type(left) is not type(right) and not (left is None or right is None):
        return False
    return left == right


def _order(op: str, left: Any, right: Any) -> bool:
    comparable = (_is_number(left) and _is_number(right)) or (
        isinstance(left, str) and isinstance(right, str)
    )
    if not comparable:
        return False
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    return left >= right


def _contains(container: Any, item: Any) -> bool:
    if isinstance(container, str):
        return isinstance(item, str) and item in container
    if isinstance(container, list):
        return any(_equals(element, item) for element in container)
    if isinstance(container, dict):
        return isinstance(item, str) and item in container
    return False


def evaluate_node(node: Any) -> Any:
    """Walk ``node`` and return its value."""
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, ListLiteral):
        return [evaluate_node(item) for item in node.items]
    if isinstance(node, ObjectLiteral):
        return {key: evaluate_node(value) for key, value in node.entries}
    if isinstance(node, UnaryOp):
        operand = evaluate_node(node.operand)
        if node.op == "not":
            return not _truthy(operand)
        if not _is_number(operand):
            raise ConditionError("Negation requires a number")
        return -operand
    if isinstance(node, BinaryOp):
        op = node.op
        if op == "and":
            left = evaluate_node(node.left)
            return evaluate_node(node.right) if _truthy(left) else left
        if op == "or":
            left = evaluate_node(node.left)
            return left if _truthy(left) else evaluate_node(node.right)
        left = evaluate_node(node.left)
        right = evaluate_node(node.right)
        if op in ("==", "===", "="):
            return _equals(left, right)
        if op in ("!=", "!=="):
            return not _equals(left, right)
        if op in ("<", "<=", ">", ">="):
            return _order(op, left, right)
        if op == "contains":
            return _contains(left, right)
        if op == "in":
            return _contains(right, left)
        if op == "startswith":
            return isinstance(left, str) and isinstance(right, str) and left.startswith(right)
        if op == "endswith":
            return isinstance(left, str) and isinstance(right, str) and left.endswith(right)
        if op == "+":
            if _is_number(left) and _is_number(right):
                return left + right
            if isinstance(left, str) and isinstance(right, str):
                return left + right
            raise ConditionError("'+' requires two numbers or two strings")
        if op == "-":
            if _is_number(left) and _is_number(right):
                return left - right
            raise ConditionError("'-' requires two numbers")
    raise ConditionError(f"Unsupported node {node!r}")


def evaluate(expression: Any, variables: Optional[Mapping[str, Any]] = None) -> bool:
    """Evaluate ``expression`` against ``variables``.

    Never raises: unsafe input or any evaluation error yields ``False``.
    """
    if not isinstance(expression, str) or not expression.strip():
        return False
    try:
        processed = substitute_variables(expression, variables)
        return _truthy(evaluate_node(parse(processed)))
    except ConditionError as exc:
        logger.warning(f"Condition {expression!r} evaluated to false: {exc}")
        return False
    except (RecursionError, IndexError, TypeError, ValueError, OverflowError) as exc:
        logger.warning(f"Condition {expression!r} failed to evaluate: {exc}")
        return False
