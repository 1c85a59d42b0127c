"""Arbitrary-precision integer engines consumed by :mod:`exactfrac.fraction`."""
from __future__ import annotations

import abc
import math
import re
from typing import Optional

import numpy as np

INT64_MIN = int(np.iinfo(np.int64).min)
INT64_MAX = int(np.iinfo(np.int64).max)
INT32_MIN = int(np.iinfo(np.int32).min)
INT32_MAX = int(np.iinfo(np.int32).max)

_DIGITS = re.compile(r"\A[+-]?[0-9a-zA-Z]+\Z")
_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
# Decimal text is converted in chunks well under the interpreter's
# int/str digit limit (sys.set_int_max_str_digits).
_CHUNK_DIGITS = 1000


class IntegerEngine(abc.ABC):
    """Contract for the signed integer arithmetic a :class:`Fraction` is built on.

    Values handed out by an engine are treated as opaque.  Every operation
    returns a new value; ``retain`` and ``release`` bracket the lifetime of a
    value held inside a fraction.
    """

    # ------------------------------------------------------------------
    # Literals and lifetime
    @abc.abstractmethod
    def zero(self):
        ...

    @abc.abstractmethod
    def one(self):
        ...

    def retain(self, value):
        return value

    def release(self, value) -> None:
        return None

    # ------------------------------------------------------------------
    # Arithmetic
    @abc.abstractmethod
    def add(self, a, b):
        ...

    @abc.abstractmethod
    def sub(self, a, b):
        ...

    @abc.abstractmethod
    def mul(self, a, b):
        ...

    @abc.abstractmethod
    def div(self, a, b):
        """Floor division, rounding toward negative infinity."""

    @abc.abstractmethod
    def gcd(self, a, b):
        """Greatest common divisor of the magnitudes, or ``None`` on failure."""

    @abc.abstractmethod
    def negate(self, value):
        ...

    @abc.abstractmethod
    def abs(self, value):
        ...

    @abc.abstractmethod
    def compare(self, a, b) -> int:
        ...

    # ------------------------------------------------------------------
    # Predicates
    def _compare_literal(self, value, literal) -> int:
        try:
            return self.compare(value, literal)
        finally:
            self.release(literal)

    def is_zero(self, value) -> bool:
        return self._compare_literal(value, self.zero()) == 0

    def is_negative(self, value) -> bool:
        return self._compare_literal(value, self.zero()) < 0

    def is_one(self, value) -> bool:
        return self._compare_literal(value, self.one()) == 0

    # ------------------------------------------------------------------
    # Conversions
    @abc.abstractmethod
    def from_int64(self, value: int):
        ...

    @abc.abstractmethod
    def to_int64(self, value) -> Optional[int]:
        ...

    @abc.abstractmethod
    def to_int32(self, value) -> Optional[int]:
        ...

    @abc.abstractmethod
    def to_double(self, value) -> float:
        ...

    @abc.abstractmethod
    def from_string(self, text: str, base: int = 10):
        """Parse *text* in *base*, returning ``None`` when it is malformed."""

    @abc.abstractmethod
    def to_string(self, value, base: int = 10) -> str:
        ...


class BigIntEngine(IntegerEngine):
    """Default engine backed by Python's unbounded :class:`int`."""

    def zero(self) -> int:
        return 0

    def one(self) -> int:
        return 1

    def add(self, a: int, b: int) -> int:
        return a + b

    def sub(self, a: int, b: int) -> int:
        return a - b

    def mul(self, a: int, b: int) -> int:
        return a * b

    def div(self, a: int, b: int) -> int:
        if b == 0:
            raise ZeroDivisionError("integer division by zero")
        return a // b

    def gcd(self, a: int, b: int) -> Optional[int]:
        result = math.gcd(a, b)
        return result if result > 0 else None

    def negate(self, value: int) -> int:
        return -value

    def abs(self, value: int) -> int:
        return abs(value)

    def compare(self, a: int, b: int) -> int:
        return (a > b) - (a < b)

    def is_zero(self, value: int) -> bool:
        return value == 0

    def is_negative(self, value: int) -> bool:
        return value < 0

    def is_one(self, value: int) -> bool:
        return value == 1

    def from_int64(self, value: int) -> int:
        return int(value)

    def to_int64(self, value: int) -> Optional[int]:
        if INT64_MIN <= value <= INT64_MAX:
            return int(value)
        return None

    def to_int32(self, value: int) -> Optional[int]:
        if INT32_MIN <= value <= INT32_MAX:
            return int(value)
        return None

    def to_double(self, value: int) -> float:
        try:
            return float(value)
        except OverflowError:
            return math.copysign(math.inf, value)

    def from_string(self, text: str, base: int = 10) -> Optional[int]:
        """Parse *text* of any length; ``int(text)`` alone stops at the digit limit."""
        if not isinstance(text, str) or not _DIGITS.match(text) or not 2 <= base <= 36:
            return None
        negative = text[0] == "-"
        digits = text.lstrip("+-")
        value = 0
        try:
            for start in range(0, len(digits), _CHUNK_DIGITS):
                chunk = digits[start:start + _CHUNK_DIGITS]
                value = value * base ** len(chunk) + int(chunk, base)
        except ValueError:
            return None
        return -value if negative else value

    def to_string(self, value: int, base: int = 10) -> str:
        if not 2 <= base <= 36:
            raise ValueError("base must be between 2 and 36")
        if value == 0:
            return "0"
        magnitude = abs(value)
        if base == 10:
            scale = 10**_CHUNK_DIGITS
            chunks = []
            while magnitude:
                magnitude, chunk = divmod(magnitude, scale)
                chunks.append(chunk)
            head = str(chunks.pop())
            text = head + "".join(f"{chunk:0{_CHUNK_DIGITS}d}" for chunk in reversed(chunks))
        else:
            digits = []
            while magnitude:
                magnitude, remainder = divmod(magnitude, base)
                digits.append(_ALPHABET[remainder])
            text = "".join(reversed(digits))
        return "-" + text if value < 0 else text


class Int64Engine(BigIntEngine):
    """Fixed-width engine that refuses results outside the signed 64-bit range.

    Useful for small-number tests and for callers that must stay
    interchangeable with native ``int64`` arithmetic.
    """

    @staticmethod
    def _checked(value: int) -> int:
        if not INT64_MIN <= value <= INT64_MAX:
            raise OverflowError(f"{value} overflows a signed 64-bit integer")
        return value

    def from_int64(self, value: int) -> int:
        return self._checked(int(value))

    def add(self, a: int, b: int) -> int:
        return self._checked(a + b)

    def sub(self, a: int, b: int) -> int:
        return self._checked(a - b)

    def mul(self, a: int, b: int) -> int:
        return self._checked(a * b)

    def div(self, a: int, b: int) -> int:
        return self._checked(super().div(a, b))

    def negate(self, value: int) -> int:
        return self._checked(-value)

    def abs(self, value: int) -> int:
        return self._checked(abs(value))

    def from_string(self, text: str, base: int = 10) -> Optional[int]:
        value = super().from_string(text, base)
        if value is None or not INT64_MIN <= value <= INT64_MAX:
            return None
        return value


_default_engine: IntegerEngine = BigIntEngine()


def get_default_engine() -> IntegerEngine:
    """Return the engine used when a constructor is not given one."""
    return _default_engine


def set_default_engine(engine: IntegerEngine) -> IntegerEngine:
    """Install *engine* as the process-wide default and return the previous one."""
    global _default_engine
    if not isinstance(engine, IntegerEngine):
        raise TypeError(f"engine must be an IntegerEngine, got {type(engine)!r}")
    previous = _default_engine
    _default_engine = engine
    return previous


__all__ = [
    "IntegerEngine",
    "BigIntEngine",
    "Int64Engine",
    "get_default_engine",
    "set_default_engine",
    "INT64_MIN",
    "INT64_MAX",
    "INT32_MIN",
    "INT32_MAX",
]
