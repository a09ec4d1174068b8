"""
Arithmetic expression evaluation for KPI formulas.

Formulas reach this module after their references have been replaced by
numbers, so only numeric literals, + - * / and parentheses are accepted.
Anything else, including a leading or bracketed unary minus, makes the whole
expression fail and evaluate_expression returns None.
"""

from __future__ import annotations

import math
import re
from typing import Optional, Union

Token = Union[float, str]

_OPERATORS = {"+": 1, "-": 1, "*": 2, "/": 2}
_WHITESPACE = re.compile(r"\s+")


def _tokenize(expr: str) -> Optional[list[Token]]:
    tokens: list[Token] = []
    number = ""
    for char in _WHITESPACE.sub("", expr):
        if char.isdigit() or char == ".":
            number += char
            continue
        if char in _OPERATORS or char in "()":
            if number:
                tokens.append(float(number))
                number = ""
            tokens.append(char)
            continue
        return None
    if number:
        tokens.append(float(number))
    return tokens


def _to_postfix(tokens: list[Token]) -> Optional[list[Token]]:
    """Shunting-yard conversion; left-associative operators."""
    output: list[Token] = []
    stack: list[str] = []
    for token in tokens:
        if isinstance(token, float):
            output.append(token)
        elif token == "(":
            stack.append(token)
        elif token == ")":
            while stack and stack[-1] != "(":
                output.append(stack.pop())
            if not stack:
                return None
            stack.pop()
        else:
            while stack and stack[-1] in _OPERATORS and _OPERATORS[stack[-1]] >= _OPERATORS[token]:
                output.append(stack.pop())
            stack.append(token)
    while stack:
        op = stack.pop()
        if op == "(":
            return None
        output.append(op)
    return output


def _apply(op: str, left: float, right: float) -> Optional[float]:
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if right == 0:
        return None
    return left / right


def is_well_formed(expr: str) -> bool:
    """Syntax-only check: tokens, parentheses and operator arity."""
    try:
        tokens = _tokenize(expr or "")
    except ValueError:
        return False
    postfix = _to_postfix(tokens) if tokens is not None else None
    if postfix is None:
        return False
    depth = 0
    for token in postfix:
        depth += 1 if isinstance(token, float) else -1
        if depth < 1:
            return False
    return depth == 1


def evaluate_expression(expr: str) -> Optional[float]:
    """
    Evaluate a numeric arithmetic expression.

    Returns None for malformed input (unknown characters, unbalanced
    parentheses, dangling operators), division by zero, or a non-finite result.
    Never raises.
    """
    try:
        tokens = _tokenize(expr or "")
    except ValueError:
        # literals such as "1.2.3" or "."
        return None
    if tokens is None:
        return None

    postfix = _to_postfix(tokens)
    if postfix is None:
        return None

    stack: list[float] = []
    for token in postfix:
        if isinstance(token, float):
            stack.append(token)
            continue
        if len(stack) < 2:
            return None
        right = stack.pop()
        left = stack.pop()
        result = _apply(token, left, right)
        if result is None:
            return None
        stack.append(result)

    if len(stack) != 1 or not math.isfinite(stack[0]):
        return None
    return stack[0]
