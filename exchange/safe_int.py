"""Checked integer wrapper for reserve and share arithmetic.

Reserves, shares and swap amounts are unbounded Python ints, but every value
the pool stores must fit a uint256 and can never go negative. SafeInt keeps
that contract at each arithmetic step:
- Subtraction underflow raises InsufficientReservesError
- Division by zero raises DivisionByZeroError
- uint256 range is checked on exit with to_uint256()

Usage pattern:
    from exchange.safe_int import S

    def share_of(amount: int, reserve: int, supply: int) -> int:
        return (S(amount) * S(reserve) // S(supply)).to_uint256()
"""

from __future__ import annotations

from exchange.constants import UINT256_MAX
from exchange.errors import (
    DivisionByZeroError,
    InsufficientReservesError,
    InvalidInputError,
    Uint256OverflowError,
)


class SafeInt:
    """Integer with checked arithmetic.

    Attributes:
        value: The underlying integer value (read-only)
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        """Wrap an integer or copy another SafeInt.

        Raises:
            TypeError: If value is not an int or SafeInt (bools are rejected)
        """
        if isinstance(value, SafeInt):
            self._value = value._value
        elif isinstance(value, int) and not isinstance(value, bool):
            self._value = value
        else:
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")

    @property
    def value(self) -> int:
        """The underlying integer value."""
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __hash__(self) -> int:
        return hash(self._value)

    def __add__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value + _extract_value(other))

    def __radd__(self, other: int) -> SafeInt:
        return SafeInt(other + self._value)

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        """Subtract other from self.

        Raises:
            InsufficientReservesError: If the result would be negative
        """
        other_val = _extract_value(other)
        result = self._value - other_val
        if result < 0:
            raise InsufficientReservesError(f"Underflow: {self._value} - {other_val} = {result}")
        return SafeInt(result)

    def __rsub__(self, other: int) -> SafeInt:
        result = other - self._value
        if result < 0:
            raise InsufficientReservesError(f"Underflow: {other} - {self._value} = {result}")
        return SafeInt(result)

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value * _extract_value(other))

    def __rmul__(self, other: int) -> SafeInt:
        return SafeInt(other * self._value)

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        """Integer division, truncating (operands are non-negative).

        Raises:
            DivisionByZeroError: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZeroError(f"Division by zero: {self._value} // 0")
        return SafeInt(self._value // other_val)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeInt):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _extract_value(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _extract_value(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _extract_value(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _extract_value(other)

    def __int__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        return self._value != 0

    def ceiling_div(self, other: SafeInt | int) -> SafeInt:
        """Ceiling division (rounds up).

        Raises:
            DivisionByZeroError: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZeroError(f"Ceiling division by zero: {self._value}")
        return SafeInt((self._value + other_val - 1) // other_val)

    def to_uint256(self) -> int:
        """Convert to int, validating uint256 bounds.

        Raises:
            Uint256OverflowError: If value is negative or exceeds 2^256-1
        """
        if self._value < 0:
            raise Uint256OverflowError(f"Negative value cannot be uint256: {self._value}")
        if self._value > UINT256_MAX:
            raise Uint256OverflowError(f"Value exceeds uint256 max: {self._value}")
        return self._value


def _extract_value(x: SafeInt | int) -> int:
    if isinstance(x, SafeInt):
        return x._value
    return x


def require_amount(name: str, value: int, *, positive: bool = True) -> int:
    """Validate a caller-supplied amount.

    Args:
        name: Parameter name used in the error reason
        value: Amount to validate
        positive: If True, zero is rejected as well as negatives

    Returns:
        The validated amount

    Raises:
        InvalidInputError: If value is not an int, is out of range, or is zero
            when a positive amount is required
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidInputError(f"{name} must be an int, got {type(value).__name__}")
    S(value).to_uint256()
    if positive and value == 0:
        raise InvalidInputError(f"{name} must be positive")
    return value


# Convenience alias for concise code
S = SafeInt
