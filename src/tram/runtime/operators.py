"""
Operator semantics for tram values.

Errors raised here carry no position; the interpreter fills in the span
of the expression being evaluated.
"""

import math
import operator
from typing import Callable, Dict

from .values import (
    Value, ValueKind,
    int_val, float_val, bool_val, string_val, values_equal,
)
from ..errors import error_type_mismatch, error_division_by_zero, error_domain
from ..tokens import TokenType, operator_symbol

# Ints stay well below the size Python can still render as decimal text
MAX_INT_BITS = 12_000


def _operand_error(op: TokenType, left: Value, right: Value):
    return error_type_mismatch(
        f"unsupported operand types for {operator_symbol(op)}: "
        f"'{left.type_name}' and '{right.type_name}'"
    )


def _both_int(left: Value, right: Value) -> bool:
    return left.kind == ValueKind.INT and right.kind == ValueKind.INT


def checked_int(n: int) -> Value:
    """Wrap an int result, refusing one past MAX_INT_BITS."""
    if n.bit_length() > MAX_INT_BITS:
        raise error_domain(f"integer result is too large (more than {MAX_INT_BITS} bits)")
    return int_val(n)


def _numeric(op: TokenType, fn: Callable) -> Callable[[Value, Value], Value]:
    """Build an int-preserving arithmetic operator."""
    def apply(left: Value, right: Value) -> Value:
        if not (left.is_number() and right.is_number()):
            raise _operand_error(op, left, right)
        if _both_int(left, right):
            return checked_int(fn(left.data, right.data))
        return float_val(fn(float(left.data), float(right.data)))
    return apply


def add(left: Value, right: Value) -> Value:
    """Numeric addition, or concatenation of two strings."""
    if left.kind == ValueKind.STRING and right.kind == ValueKind.STRING:
        return string_val(left.data + right.data)
    return _add_numbers(left, right)


_add_numbers = _numeric(TokenType.PLUS, operator.add)
subtract = _numeric(TokenType.MINUS, operator.sub)
multiply = _numeric(TokenType.STAR, operator.mul)


def divide(left: Value, right: Value) -> Value:
    """True division; always produces a float."""
    if not (left.is_number() and right.is_number()):
        raise _operand_error(TokenType.SLASH, left, right)
    if right.data == 0:
        raise error_division_by_zero()
    return float_val(left.data / right.data)


def _truncated_mod(a: int, b: int) -> int:
    remainder = abs(a) % abs(b)
    return remainder if a >= 0 else -remainder


def modulo(left: Value, right: Value) -> Value:
    """Remainder with the sign of the dividend (truncating division)."""
    if not (left.is_number() and right.is_number()):
        raise _operand_error(TokenType.PERCENT, left, right)
    if right.data == 0:
        raise error_division_by_zero()
    if _both_int(left, right):
        return int_val(_truncated_mod(left.data, right.data))
    return float_val(math.fmod(left.data, right.data))


def power(left: Value, right: Value) -> Value:
    """
    Exponentiation.

    int ** non-negative int stays exact; everything else is computed as a
    float. 0 ** negative is a division by zero. A result that is not a
    real number or does not fit its kind is a domain error; for ints the
    limit is MAX_INT_BITS.
    """
    if not (left.is_number() and right.is_number()):
        raise _operand_error(TokenType.DOUBLE_STAR, left, right)
    if _both_int(left, right) and right.data >= 0:
        base_bits = abs(left.data).bit_length() - 1
        if base_bits > 0 and right.data * base_bits > MAX_INT_BITS:
            # Refuse before computing; 10 ** 10 ** 10 would never finish
            raise error_domain(f"integer result is too large (more than {MAX_INT_BITS} bits)")
        return checked_int(left.data ** right.data)
    if left.data == 0 and right.data < 0:
        raise error_division_by_zero()
    try:
        return float_val(math.pow(left.data, right.data))
    except ValueError:
        raise error_domain(f"{left} ** {right} is not a real number")
    except OverflowError:
        raise error_domain(f"{left} ** {right} is too large")


def _ordering(op: TokenType, fn: Callable) -> Callable[[Value, Value], Value]:
    """Build a comparison defined for number/number and string/string."""
    def apply(left: Value, right: Value) -> Value:
        comparable = (
            (left.is_number() and right.is_number())
            or (left.kind == ValueKind.STRING and right.kind == ValueKind.STRING)
        )
        if not comparable:
            raise error_type_mismatch(
                f"cannot compare '{left.type_name}' and '{right.type_name}' "
                f"with {operator_symbol(op)}"
            )
        return bool_val(fn(left.data, right.data))
    return apply


def equal(left: Value, right: Value) -> Value:
    return bool_val(values_equal(left, right))


def not_equal(left: Value, right: Value) -> Value:
    return bool_val(not values_equal(left, right))


BINARY_OPERATORS: Dict[TokenType, Callable[[Value, Value], Value]] = {
    TokenType.PLUS: add,
    TokenType.MINUS: subtract,
    TokenType.STAR: multiply,
    TokenType.SLASH: divide,
    TokenType.PERCENT: modulo,
    TokenType.DOUBLE_STAR: power,
    TokenType.EQ: equal,
    TokenType.NE: not_equal,
    TokenType.LT: _ordering(TokenType.LT, operator.lt),
    TokenType.LE: _ordering(TokenType.LE, operator.le),
    TokenType.GT: _ordering(TokenType.GT, operator.gt),
    TokenType.GE: _ordering(TokenType.GE, operator.ge),
}


def binary_operation(op: TokenType, left: Value, right: Value) -> Value:
    """Apply a binary (non short-circuit) operator."""
    try:
        return BINARY_OPERATORS[op](left, right)
    except OverflowError:
        raise error_domain(f"result of {operator_symbol(op)} is too large")


def unary_operation(op: TokenType, operand: Value) -> Value:
    """Apply unary minus or logical not."""
    if op == TokenType.NOT:
        return bool_val(not operand.is_truthy())
    if operand.kind == ValueKind.INT:
        return int_val(-operand.data)
    if operand.kind == ValueKind.FLOAT:
        return float_val(-operand.data)
    raise error_type_mismatch(f"bad operand type for unary -: '{operand.type_name}'")
