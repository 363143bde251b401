"""Registers: the typed value cells through which operators pass tuples."""

from __future__ import annotations

import enum
from typing import Union

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_UINT64_MASK = 2**64 - 1

Value = Union[int, str]


class RegisterType(enum.Enum):
    """The kind of value a register holds."""

    INT64 = "int64"
    CHAR16 = "char16"


def _check_value(value: object) -> Value:
    if isinstance(value, bool):
        raise TypeError("a register holds an integer or a string, not a bool")
    if isinstance(value, int):
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise OverflowError(f"{value} does not fit into a signed 64-bit integer")
        return value
    if isinstance(value, str):
        return value
    raise TypeError(f"a register holds an integer or a string, not {type(value).__name__}")


class Register:
    """A mutable cell holding either a 64-bit integer or a string.

    A fresh register holds the integer 0. Registers compare equal when they
    hold the same type and value; ordering is only defined between registers
    of the same type.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Value = 0) -> None:
        self._value: Value = _check_value(value)

    @classmethod
    def from_int(cls, value: int) -> Register:
        """A register holding the given integer."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"expected an integer, got {type(value).__name__}")
        return cls(value)

    @classmethod
    def from_string(cls, value: str) -> Register:
        """A register holding the given string."""
        if not isinstance(value, str):
            raise TypeError(f"expected a string, got {type(value).__name__}")
        return cls(value)

    @property
    def type(self) -> RegisterType:
        """The type of the held value."""
        return RegisterType.INT64 if isinstance(self._value, int) else RegisterType.CHAR16

    def as_int(self) -> int:
        """The held integer; TypeError if the register holds a string."""
        if not isinstance(self._value, int):
            raise TypeError("register does not hold an integer")
        return self._value

    def as_string(self) -> str:
        """The held string; TypeError if the register holds an integer."""
        if not isinstance(self._value, str):
            raise TypeError("register does not hold a string")
        return self._value

    def get_hash(self) -> int:
        """An unsigned 64-bit hash, equal for equal registers."""
        return hash((self.type, self._value)) & _UINT64_MASK

    def assign(self, other: Register) -> None:
        """Overwrite this register's contents with those of another."""
        if not isinstance(other, Register):
            raise TypeError(f"cannot assign {type(other).__name__} to a register")
        self._value = other._value

    def __copy__(self) -> Register:
        return Register(self._value)

    def __hash__(self) -> int:
        return self.get_hash()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Register):
            return NotImplemented
        return type(self._value) is type(other._value) and self._value == other._value

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def _same_type(self, other: Register) -> None:
        if self.type is not other.type:
            raise TypeError(
                f"cannot order a {self.type.name} register against a {other.type.name} register"
            )

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Register):
            return NotImplemented
        self._same_type(other)
        return self._value < other._value  # type: ignore[operator]

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Register):
            return NotImplemented
        self._same_type(other)
        return self._value <= other._value  # type: ignore[operator]

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Register):
            return NotImplemented
        self._same_type(other)
        return self._value > other._value  # type: ignore[operator]

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Register):
            return NotImplemented
        self._same_type(other)
        return self._value >= other._value  # type: ignore[operator]

    def __str__(self) -> str:
        return str(self._value)

    def __repr__(self) -> str:
        return f"Register({self._value!r})"