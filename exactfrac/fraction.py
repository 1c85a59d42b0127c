"""Exact rational numbers in lowest terms with NumPy interoperability."""
from __future__ import annotations

import fractions
import functools
import logging
import math
import numbers
import operator
import threading
from typing import Any, Optional, Union

import numpy as np

from .integers import INT64_MAX, BigIntEngine, IntegerEngine, get_default_engine

logger = logging.getLogger(__name__)

NumberLike = Union["Fraction", fractions.Fraction, numbers.Real, str]

DEFAULT_MAX_DENOMINATOR = 10**6
CONVERGENCE_TOLERANCE = 1e-15
RECIPROCAL_LIMIT = 1e15

_HASH_MASK = 0xFFFFFFFFFFFFFFFF
_REFCOUNT_LOCK = threading.Lock()


class ReleasedFractionError(RuntimeError):
    """A fraction was used after its last reference was released."""


def _ensure_int(value: Any, *, name: str) -> int:
    """Convert *value* to ``int`` when it represents an integer."""
    if value is None:
        raise TypeError(f"{name} cannot be None")
    if isinstance(value, (numbers.Integral, np.integer)):
        return int(value)
    raise TypeError(f"{name} must be an integer, got {type(value)!r}")


def _string_hash(text: str) -> int:
    value = 0
    for byte in text.encode("ascii"):
        value = (value * 33 + byte) & _HASH_MASK
    return value


class _Scratch:
    """Hands intermediate engine values and fractions back when the block exits.

    Values passed through :meth:`result` are released only if the block
    raises; otherwise the caller keeps them.
    """

    def __init__(self, engine: IntegerEngine) -> None:
        self._engine = engine
        self._cleanup = []
        self._on_error = []

    def __enter__(self) -> "_Scratch":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        pending = self._cleanup + (self._on_error if exc_type is not None else [])
        self._cleanup, self._on_error = [], []
        for release in reversed(pending):
            release()
        return False

    def __call__(self, value: Any) -> Any:
        self._cleanup.append(functools.partial(self._engine.release, value))
        return value

    def result(self, value: Any) -> Any:
        self._on_error.append(functools.partial(self._engine.release, value))
        return value

    def fraction(self, value: "Fraction") -> "Fraction":
        self._cleanup.append(value.release)
        return value

    def operand(self, owner: "Fraction", value: Any, *, exact: bool = False) -> "Fraction":
        """Coerce *value* onto *owner*'s engine; a converted copy is released on exit."""
        result = owner._coerce(value, exact=exact)
        if result is not value:
            self._cleanup.append(result.release)
        return result


class Fraction:
    """Immutable rational number kept in lowest terms with a positive denominator.

    The numerator and denominator are values of an :class:`IntegerEngine`;
    every result is rebuilt through the same normalization step, so inputs
    are never assumed to stay reduced after arithmetic.
    """

    __slots__ = ("_numerator", "_denominator", "_engine", "_refcount")
    __array_priority__ = 1000.0  # Prefer Fraction semantics in NumPy expressions.

    def __init__(
        self,
        numerator: Union[int, numbers.Integral] = 0,
        denominator: Union[int, numbers.Integral] = 1,
        *,
        engine: Optional[IntegerEngine] = None,
    ) -> None:
        num = _ensure_int(numerator, name="numerator")
        den = _ensure_int(denominator, name="denominator")
        if den == 0:
            raise ZeroDivisionError("denominator must be non-zero")
        if engine is None:
            engine = get_default_engine()
        with _Scratch(engine) as s:
            self._setup(engine, s.result(engine.from_int64(num)), s.result(engine.from_int64(den)))

    # ------------------------------------------------------------------
    # Normalization
    def _setup(self, engine: IntegerEngine, num: Any, den: Any) -> None:
        self._engine = engine
        self._numerator = num
        self._denominator = den
        self._refcount = 1
        self._normalize_sign()
        self._reduce()

    def _normalize_sign(self) -> None:
        engine = self._engine
        if engine.is_negative(self._denominator):
            num = engine.negate(self._numerator)
            den = engine.negate(self._denominator)
            engine.release(self._numerator)
            engine.release(self._denominator)
            self._numerator, self._denominator = num, den

    def _reduce(self) -> None:
        engine = self._engine
        gcd = engine.gcd(self._numerator, self._denominator)
        if gcd is None:
            logger.warning(
                "gcd failed for %s/%s; leaving fraction unreduced",
                engine.to_string(self._numerator, 10),
                engine.to_string(self._denominator, 10),
            )
            return
        if engine.is_one(gcd):
            engine.release(gcd)
            return
        # gcd divides both exactly, so floor division is exact here.
        num = engine.div(self._numerator, gcd)
        den = engine.div(self._denominator, gcd)
        engine.release(self._numerator)
        engine.release(self._denominator)
        engine.release(gcd)
        self._numerator, self._denominator = num, den

    @classmethod
    def _from_owned(cls, engine: IntegerEngine, num: Any, den: Any) -> "Fraction":
        # Takes ownership of num/den without retaining them.
        result = cls.__new__(cls)
        result._setup(engine, num, den)
        return result

    def _adopt(self, num: Any, den: Any) -> "Fraction":
        return type(self)._from_owned(self._engine, num, den)

    def _live(self) -> IntegerEngine:
        if self._refcount == 0:
            raise ReleasedFractionError("fraction used after its final release")
        return self._engine

    # ------------------------------------------------------------------
    # Constructors
    @classmethod
    def from_integers(
        cls,
        numerator: int,
        denominator: int,
        *,
        engine: Optional[IntegerEngine] = None,
    ) -> "Fraction":
        """Return ``numerator/denominator`` in lowest terms."""
        return cls(numerator, denominator, engine=engine)

    @classmethod
    def from_integer(
        cls, value: int, *, engine: Optional[IntegerEngine] = None
    ) -> "Fraction":
        return cls(value, 1, engine=engine)

    @classmethod
    def from_integer_engine_values(
        cls,
        numerator: Any,
        denominator: Any,
        *,
        engine: Optional[IntegerEngine] = None,
    ) -> "Fraction":
        """Build a fraction from existing engine values.

        The fraction retains its own references; the caller keeps ownership of
        *numerator* and *denominator*.
        """
        if numerator is None or denominator is None:
            raise TypeError("numerator and denominator cannot be None")
        if engine is None:
            engine = get_default_engine()
        if engine.is_zero(denominator):
            raise ZeroDivisionError("denominator must be non-zero")
        return cls._from_owned(engine, engine.retain(numerator), engine.retain(denominator))

    @classmethod
    def from_double(
        cls,
        value: float,
        max_denominator: int = 0,
        *,
        engine: Optional[IntegerEngine] = None,
    ) -> Optional["Fraction"]:
        """Approximate *value* by continued fractions.

        The result has a denominator no larger than *max_denominator*
        (unbounded when it is ``<= 0``).  This is an approximation: an
        arbitrary double is only reproduced within ``CONVERGENCE_TOLERANCE``
        and the denominator bound, not bit for bit.  Returns ``None`` for NaN
        or infinite input.
        """
        value = float(value)
        if math.isnan(value) or math.isinf(value):
            logger.debug("from_double: rejecting non-finite input %r", value)
            return None
        if max_denominator <= 0:
            max_denominator = INT64_MAX

        negative = value < 0
        if negative:
            value = -value

        h0, h1 = 0, 1
        k0, k1 = 1, 0
        x = value
        tolerance = CONVERGENCE_TOLERANCE * max(value, 1.0)
        reason = "denominator bound"
        while k1 <= max_denominator:
            a = math.floor(x)
            h2 = a * h1 + h0
            k2 = a * k1 + k0
            if k2 > max_denominator:
                reason = "denominator bound"
                break
            h0, h1 = h1, h2
            k0, k1 = k1, k2

            if abs(value - h1 / k1) < tolerance:
                reason = "converged"
                break
            remainder = x - a
            if remainder == 0:
                reason = "exhausted"
                break
            x = 1.0 / remainder
            if x > RECIPROCAL_LIMIT:
                reason = "reciprocal limit"
                break

        logger.debug("from_double(%r): stopped on %s at %d/%d", value, reason, h1, k1)
        return cls.from_integers(-h1 if negative else h1, k1, engine=engine)

    @classmethod
    def from_string(
        cls, text: str, *, engine: Optional[IntegerEngine] = None
    ) -> Optional["Fraction"]:
        """Parse ``"num"`` or ``"num/den"`` in base 10.

        :meth:`to_string` always emits ``-?digits(/digits)?``.  The parser is
        more lenient: either half may carry a leading ``+`` or ``-``, so
        ``"+5"`` is 5 and ``"3/-4"`` is ``-3/4`` after normalization.
        Whitespace is not accepted.

        Returns ``None`` when either half is malformed.  A zero denominator is
        a caller error and raises :class:`ZeroDivisionError`.
        """
        if text is None:
            raise TypeError("text cannot be None")
        if engine is None:
            engine = get_default_engine()

        num_text, slash, den_text = text.partition("/")
        num = engine.from_string(num_text, 10)
        if num is None:
            logger.debug("from_string: malformed numerator in %r", text)
            return None
        if not slash:
            return cls._from_owned(engine, num, engine.one())

        den = engine.from_string(den_text, 10)
        if den is None:
            engine.release(num)
            logger.debug("from_string: malformed denominator in %r", text)
            return None
        if engine.is_zero(den):
            engine.release(num)
            engine.release(den)
            raise ZeroDivisionError(f"zero denominator in {text!r}")
        return cls._from_owned(engine, num, den)

    @classmethod
    def from_fraction(
        cls, value: fractions.Fraction, *, engine: Optional[IntegerEngine] = None
    ) -> "Fraction":
        """Create a :class:`Fraction` from :class:`fractions.Fraction`."""
        return cls(value.numerator, value.denominator, engine=engine)

    @classmethod
    def rationalize(
        cls, value: NumberLike, *, engine: Optional[IntegerEngine] = None
    ) -> "Fraction":
        """Coerce a numeric-like value into :class:`Fraction`."""
        if isinstance(value, Fraction):
            value._live()
            return value
        if isinstance(value, fractions.Fraction):
            return cls.from_fraction(value, engine=engine)
        if isinstance(value, (numbers.Integral, np.integer)):
            return cls(int(value), 1, engine=engine)
        if isinstance(value, np.generic):
            return cls.rationalize(value.item(), engine=engine)
        if isinstance(value, str):
            result = cls.from_string(value.strip(), engine=engine)
            if result is None:
                raise ValueError(f"invalid literal for Fraction: {value!r}")
            return result
        if isinstance(value, numbers.Real):
            result = cls.from_double(float(value), DEFAULT_MAX_DENOMINATOR, engine=engine)
            if result is None:
                raise ValueError("cannot convert NaN or infinity to Fraction")
            return result
        raise TypeError(f"Cannot convert {type(value)!r} to Fraction")

    # ------------------------------------------------------------------
    # Lifetime
    @property
    def reference_count(self) -> int:
        return self._refcount

    @property
    def engine(self) -> IntegerEngine:
        return self._engine

    def copy(self) -> "Fraction":
        """Return a new, independently counted fraction with the same value."""
        engine = self._live()
        return type(self).from_integer_engine_values(
            self._numerator, self._denominator, engine=engine
        )

    def retain(self) -> "Fraction":
        with _REFCOUNT_LOCK:
            self._live()
            self._refcount += 1
        return self

    def release(self) -> None:
        """Drop one reference; the last release hands the components back to the engine."""
        with _REFCOUNT_LOCK:
            engine = self._live()
            self._refcount -= 1
            if self._refcount:
                return None
            num, den = self._numerator, self._denominator
            self._numerator = self._denominator = None
        engine.release(num)
        engine.release(den)
        return None

    # ------------------------------------------------------------------
    # Components
    @property
    def numerator(self) -> Any:
        return self._live().retain(self._numerator)

    @property
    def denominator(self) -> Any:
        return self._live().retain(self._denominator)

    def as_fraction(self) -> fractions.Fraction:
        """Return a :class:`fractions.Fraction` with the same value."""
        engine = self._live()
        return fractions.Fraction(
            _as_int(engine, self._numerator), _as_int(engine, self._denominator)
        )

    def limit_denominator(self, max_denominator: int = DEFAULT_MAX_DENOMINATOR) -> "Fraction":
        """Return the closest fraction whose denominator is at most *max_denominator*."""
        if max_denominator < 1:
            raise ValueError("max_denominator must be >= 1")
        limited = self.as_fraction().limit_denominator(max_denominator)
        return type(self)(limited.numerator, limited.denominator, engine=self._engine)

    # ------------------------------------------------------------------
    # Coercion
    def _coerce(self, value: Any, *, exact: bool = False) -> "Fraction":
        """Return *value* as a fraction on this fraction's engine.

        Floats are approximated with ``DEFAULT_MAX_DENOMINATOR`` for
        arithmetic; with *exact* they convert to their exact binary value,
        which keeps comparisons consistent with ``hash``.  A fraction on a
        different engine is rebuilt on this one from its decimal form.
        """
        engine = self._live()
        if value is None:
            raise TypeError("operand cannot be None")
        if isinstance(value, Fraction):
            other_engine = value._live()
            if other_engine is engine:
                return value
            result = type(self).from_string(value.to_string(), engine=engine)
            if result is None:
                raise OverflowError(f"{value} does not fit in {type(engine).__name__}")
            return result
        if isinstance(value, (numbers.Integral, np.integer)):
            return self._adopt(engine.from_int64(int(value)), engine.one())
        if isinstance(value, fractions.Fraction):
            return type(self).from_fraction(value, engine=engine)
        if isinstance(value, np.generic):
            return self._coerce(value.item(), exact=exact)
        if isinstance(value, numbers.Real):
            value = float(value)
            if not math.isfinite(value):
                raise ValueError("cannot convert NaN or infinity to Fraction")
            if exact:
                return type(self).from_fraction(fractions.Fraction(value), engine=engine)
            return type(self).from_double(value, DEFAULT_MAX_DENOMINATOR, engine=engine)
        raise TypeError(f"Cannot interpret {type(value)!r} as Fraction")

    def _coerce_power(self, value: Any) -> int:
        if isinstance(value, (numbers.Integral, np.integer)):
            return int(value)
        if isinstance(value, Fraction):
            if not value.is_integer():
                raise ValueError("Exponent must be an integer")
            return _as_int(value._engine, value._numerator)
        if isinstance(value, np.generic):
            return self._coerce_power(value.item())
        if isinstance(value, numbers.Real):
            if not float(value).is_integer():
                raise ValueError("Exponent must be an integer")
            return int(value)
        raise TypeError("Unsupported exponent type")

    # ------------------------------------------------------------------
    # Arithmetic
    def add(self, other: Any) -> "Fraction":
        e = self._live()
        with _Scratch(e) as s:
            b = s.operand(self, other)
            num = s.result(e.add(
                s(e.mul(self._numerator, b._denominator)), s(e.mul(b._numerator, self._denominator))
            ))
            den = s.result(e.mul(self._denominator, b._denominator))
            return self._adopt(num, den)

    def sub(self, other: Any) -> "Fraction":
        e = self._live()
        with _Scratch(e) as s:
            b = s.operand(self, other)
            num = s.result(e.sub(
                s(e.mul(self._numerator, b._denominator)), s(e.mul(b._numerator, self._denominator))
            ))
            den = s.result(e.mul(self._denominator, b._denominator))
            return self._adopt(num, den)

    def mul(self, other: Any) -> "Fraction":
        e = self._live()
        with _Scratch(e) as s:
            b = s.operand(self, other)
            num = s.result(e.mul(self._numerator, b._numerator))
            den = s.result(e.mul(self._denominator, b._denominator))
            return self._adopt(num, den)

    def div(self, other: Any) -> "Fraction":
        e = self._live()
        with _Scratch(e) as s:
            b = s.operand(self, other)
            if e.is_zero(b._numerator):
                raise ZeroDivisionError("division by zero")
            num = s.result(e.mul(self._numerator, b._denominator))
            den = s.result(e.mul(self._denominator, b._numerator))
            return self._adopt(num, den)

    def negate(self) -> "Fraction":
        e = self._live()
        with _Scratch(e) as s:
            num = s.result(e.negate(self._numerator))
            return self._adopt(num, s.result(e.retain(self._denominator)))

    def abs(self) -> "Fraction":
        e = self._live()
        with _Scratch(e) as s:
            num = s.result(e.abs(self._numerator))
            return self._adopt(num, s.result(e.retain(self._denominator)))

    def reciprocal(self) -> "Fraction":
        e = self._live()
        if e.is_zero(self._numerator):
            raise ZeroDivisionError("reciprocal of zero")
        return self._adopt(e.retain(self._denominator), e.retain(self._numerator))

    def pow(self, exponent: int) -> "Fraction":
        """Raise to an integer power by repeated squaring.

        ``x ** 0`` is one for every base, zero included.
        """
        e = self._live()
        exponent = _ensure_int(exponent, name="exponent")
        if exponent == 0:
            return self._adopt(e.one(), e.one())
        if exponent == 1:
            return self.copy()
        if e.is_zero(self._numerator):
            if exponent < 0:
                raise ZeroDivisionError("0 cannot be raised to a negative power")
            return self._adopt(e.zero(), e.one())
        if exponent < 0:
            with _Scratch(e) as s:
                return s.fraction(self.reciprocal()).pow(-exponent)

        result = self._adopt(e.one(), e.one())
        base = self.copy()
        try:
            while exponent > 0:
                if exponent & 1:
                    result, previous = result.mul(base), result
                    previous.release()
                exponent >>= 1
                if exponent > 0:
                    base, previous = base.mul(base), base
                    previous.release()
        except Exception:
            result.release()
            raise
        finally:
            base.release()
        return result

    # ------------------------------------------------------------------
    # Comparison
    def compare(self, other: Any) -> int:
        """Three-way comparison by cross-multiplication; denominators are positive.

        Floats compare by their exact binary value, like :mod:`fractions`.
        """
        e = self._live()
        with _Scratch(e) as s:
            b = s.operand(self, other, exact=True)
            return e.compare(
                s(e.mul(self._numerator, b._denominator)), s(e.mul(b._numerator, self._denominator))
            )

    def eq(self, other: Any) -> bool:
        return self.compare(other) == 0

    def ne(self, other: Any) -> bool:
        return self.compare(other) != 0

    def lt(self, other: Any) -> bool:
        return self.compare(other) < 0

    def le(self, other: Any) -> bool:
        return self.compare(other) <= 0

    def gt(self, other: Any) -> bool:
        return self.compare(other) > 0

    def ge(self, other: Any) -> bool:
        return self.compare(other) >= 0

    # ------------------------------------------------------------------
    # Predicates
    def is_zero(self) -> bool:
        return self._live().is_zero(self._numerator)

    def is_one(self) -> bool:
        e = self._live()
        return e.is_one(self._numerator) and e.is_one(self._denominator)

    def is_negative(self) -> bool:
        return self._live().is_negative(self._numerator)

    def is_positive(self) -> bool:
        e = self._live()
        return not e.is_zero(self._numerator) and not e.is_negative(self._numerator)

    def is_integer(self) -> bool:
        return self._live().is_one(self._denominator)

    # ------------------------------------------------------------------
    # Rounding
    def floor(self) -> "Fraction":
        if self.is_integer():
            return self.copy()
        e = self._engine
        with _Scratch(e) as s:
            quotient = s.result(e.div(self._numerator, self._denominator))
            return self._adopt(quotient, s.result(e.one()))

    def ceil(self) -> "Fraction":
        if self.is_integer():
            return self.copy()
        e = self._engine
        with _Scratch(e) as s:
            num = s.result(e.add(s(e.div(self._numerator, self._denominator)), s(e.one())))
            return self._adopt(num, s.result(e.one()))

    def whole_part(self) -> Any:
        """Integer part truncated toward zero, as an engine value owned by the caller."""
        e = self._live()
        quotient = e.div(self._numerator, self._denominator)
        if e.is_negative(self._numerator) and not e.is_one(self._denominator):
            with _Scratch(e) as s:
                return e.add(s(quotient), s(e.one()))
        return quotient

    def trunc(self) -> "Fraction":
        if self.is_integer():
            return self.copy()
        e = self._engine
        with _Scratch(e) as s:
            whole = s.result(self.whole_part())
            return self._adopt(whole, s.result(e.one()))

    def fractional_part(self) -> "Fraction":
        """Return ``self - whole_part()``; carries the sign of ``self``."""
        e = self._live()
        if self.is_integer():
            return self._adopt(e.zero(), e.one())
        with _Scratch(e) as s:
            return self.sub(s.fraction(self.trunc()))

    def round(self) -> "Fraction":
        """Round to the nearest integer, ties to even."""
        if self.is_integer():
            return self.copy()
        e = self._engine
        with _Scratch(e) as s:
            half = s.fraction(self._adopt(e.one(), e.from_int64(2)))
            magnitude = s.fraction(s.fraction(self.fractional_part()).abs())
            if magnitude.eq(half):
                whole = s(self.whole_part())
                if self._is_even(whole):
                    rounded = s.result(e.retain(whole))
                else:
                    step = e.sub if self.is_negative() else e.add
                    rounded = s.result(step(whole, s(e.one())))
                return self._adopt(rounded, s.result(e.one()))
            signed_half = s.fraction(half.negate() if self.is_negative() else half.copy())
            return s.fraction(self.add(signed_half)).trunc()

    def _is_even(self, value: Any) -> bool:
        e = self._engine
        with _Scratch(e) as s:
            two = s(e.from_int64(2))
            return e.compare(s(e.mul(s(e.div(value, two)), two)), value) == 0

    def sign(self) -> int:
        if self.is_zero():
            return 0
        return -1 if self.is_negative() else 1

    def min(self, other: Any) -> "Fraction":
        with _Scratch(self._live()) as s:
            b = s.operand(self, other, exact=True)
            return self.copy() if self.lt(b) else b.copy()

    def max(self, other: Any) -> "Fraction":
        with _Scratch(self._live()) as s:
            b = s.operand(self, other, exact=True)
            return self.copy() if self.gt(b) else b.copy()

    # ------------------------------------------------------------------
    # Conversion and inspection
    def to_double(self) -> float:
        """Numerator over denominator in floating point; not exact for large operands."""
        e = self._live()
        return e.to_double(self._numerator) / e.to_double(self._denominator)

    def to_int64(self) -> Optional[int]:
        """Return the value as an ``int`` in signed 64-bit range, else ``None``."""
        if not self.is_integer():
            return None
        return self._engine.to_int64(self._numerator)

    def to_string(self) -> str:
        e = self._live()
        num = e.to_string(self._numerator, 10)
        if e.is_one(self._denominator):
            return num
        return f"{num}/{e.to_string(self._denominator, 10)}"

    def fits_int32(self) -> bool:
        return self.is_integer() and self._engine.to_int32(self._numerator) is not None

    def fits_int64(self) -> bool:
        return self.to_int64() is not None

    def fits_double(self) -> bool:
        """Whether the value survives a float round trip through :meth:`from_double`.

        Uses a denominator bound of ``DEFAULT_MAX_DENOMINATOR``, so some exactly
        representable values with larger denominators report ``False``.
        """
        value = self.to_double()
        if not math.isfinite(value):
            return False
        converted = type(self).from_double(value, DEFAULT_MAX_DENOMINATOR, engine=self._engine)
        if converted is None:
            return False
        with _Scratch(self._engine) as s:
            return self.eq(s.fraction(converted))

    def hash(self) -> int:
        """Unsigned 64-bit hash of the reduced decimal form."""
        e = self._live()
        h1 = _string_hash(e.to_string(self._numerator, 10))
        h2 = _string_hash(e.to_string(self._denominator, 10))
        return (h1 ^ (h2 << 1)) & _HASH_MASK

    # ------------------------------------------------------------------
    # Numeric protocol
    def __float__(self) -> float:
        return self.to_double()

    def __int__(self) -> int:
        e = self._live()
        with _Scratch(e) as s:
            return _as_int(e, s(self.whole_part()))

    def __bool__(self) -> bool:
        return not self.is_zero()

    def __trunc__(self) -> int:
        return int(self)

    def _integral(self, rounded: "Fraction") -> int:
        with _Scratch(self._engine) as s:
            return _as_int(self._engine, s.fraction(rounded)._numerator)

    def __floor__(self) -> int:
        return self._integral(self.floor())

    def __ceil__(self) -> int:
        return self._integral(self.ceil())

    def __round__(self, ndigits: Optional[int] = None) -> Any:
        if ndigits is None:
            return self._integral(self.round())
        e = self._live()
        with _Scratch(e) as s:
            ten = s.fraction(self._adopt(e.from_int64(10), e.one()))
            scale = s.fraction(ten.pow(ndigits))
            rounded = s.fraction(s.fraction(self.mul(scale)).round())
            return rounded.div(scale)

    # ------------------------------------------------------------------
    # Representation
    def __repr__(self) -> str:
        e = self._live()
        return (
            f"Fraction({e.to_string(self._numerator, 10)}, "
            f"{e.to_string(self._denominator, 10)})"
        )

    def __str__(self) -> str:
        return self.to_string()

    def __format__(self, format_spec: str) -> str:
        if format_spec in ("", "r", "R"):
            return str(self)
        try:
            return format(float(self), format_spec)
        except (ValueError, TypeError):
            return format(str(self), format_spec)

    # ------------------------------------------------------------------
    # Operators
    def _binary_operation(self, other: Any, op, *, reflected: bool = False):
        if isinstance(other, (np.ndarray, list, tuple)):
            def func(item):
                with _Scratch(self._engine) as s:
                    operand = s.operand(self, item)
                    if reflected:
                        return op(operand, self)
                    return op(self, operand)

            if isinstance(other, np.ndarray):
                return np.vectorize(func, otypes=[object])(other)
            return np.array([func(item) for item in other], dtype=object)
        with _Scratch(self._live()) as s:
            try:
                other_frac = s.operand(self, other)
            except TypeError:
                return NotImplemented
            if reflected:
                return op(other_frac, self)
            return op(self, other_frac)

    def __add__(self, other: Any) -> Any:
        return self._binary_operation(other, Fraction.add)

    def __radd__(self, other: Any) -> Any:
        return self._binary_operation(other, Fraction.add, reflected=True)

    def __sub__(self, other: Any) -> Any:
        return self._binary_operation(other, Fraction.sub)

    def __rsub__(self, other: Any) -> Any:
        return self._binary_operation(other, Fraction.sub, reflected=True)

    def __mul__(self, other: Any) -> Any:
        return self._binary_operation(other, Fraction.mul)

    def __rmul__(self, other: Any) -> Any:
        return self._binary_operation(other, Fraction.mul, reflected=True)

    def __truediv__(self, other: Any) -> Any:
        return self._binary_operation(other, Fraction.div)

    def __rtruediv__(self, other: Any) -> Any:
        return self._binary_operation(other, Fraction.div, reflected=True)

    def __pow__(self, exponent: Any) -> Any:
        if isinstance(exponent, np.ndarray):
            vectorised = np.vectorize(lambda x: self.__pow__(x), otypes=[object])
            return vectorised(exponent)
        return self.pow(self._coerce_power(exponent))

    def __neg__(self) -> "Fraction":
        return self.negate()

    def __pos__(self) -> "Fraction":
        self._live()
        return self

    def __abs__(self) -> "Fraction":
        return self.abs()

    def _compare_operation(self, other: Any, op) -> Any:
        if isinstance(other, (float, np.floating)) and not math.isfinite(other):
            self._live()
            if math.isnan(other):
                return False
            # Every fraction lies strictly between -inf and +inf.
            return op(-1 if other > 0 else 1, 0)
        with _Scratch(self._live()) as s:
            try:
                other_frac = s.operand(self, other, exact=True)
            except TypeError:
                return NotImplemented
            return op(self.compare(other_frac), 0)

    def __eq__(self, other: Any) -> Any:
        # Reduced form is canonical, so same-engine equality is structural.
        if isinstance(other, Fraction) and other._live() is self._live():
            e = self._engine
            return (
                e.compare(self._numerator, other._numerator) == 0
                and e.compare(self._denominator, other._denominator) == 0
            )
        return self._compare_operation(other, operator.eq)

    def __lt__(self, other: Any) -> Any:
        return self._compare_operation(other, operator.lt)

    def __le__(self, other: Any) -> Any:
        return self._compare_operation(other, operator.le)

    def __gt__(self, other: Any) -> Any:
        return self._compare_operation(other, operator.gt)

    def __ge__(self, other: Any) -> Any:
        return self._compare_operation(other, operator.ge)

    def __hash__(self) -> int:
        # Agrees with int and fractions.Fraction for equal values.
        return hash(self.as_fraction())

    # ------------------------------------------------------------------
    # NumPy interoperability
    _UFUNC_DISPATCH = {
        np.add: operator.add,
        np.subtract: operator.sub,
        np.multiply: operator.mul,
        np.divide: operator.truediv,
        np.true_divide: operator.truediv,
        np.negative: operator.neg,
        np.positive: operator.pos,
        np.absolute: operator.abs,
        np.power: operator.pow,
        np.floor: lambda a: a.floor(),
        np.ceil: lambda a: a.ceil(),
        np.trunc: lambda a: a.trunc(),
        np.rint: lambda a: a.round(),
        np.sign: lambda a: a.sign(),
    }

    def __array_ufunc__(self, ufunc, method, *inputs, **kwargs):
        if method != "__call__":
            return NotImplemented
        if kwargs.get("out") is not None:
            raise NotImplementedError("`out` argument is not supported for Fraction ufuncs")
        op = self._UFUNC_DISPATCH.get(ufunc)
        if op is None:
            return NotImplemented

        with _Scratch(self._live()) as s:
            coerced = []
            has_array = False
            for value in inputs:
                if isinstance(value, np.ndarray):
                    vectorised = np.vectorize(lambda item: s.operand(self, item), otypes=[object])
                    coerced.append(vectorised(value))
                    has_array = True
                else:
                    coerced.append(s.operand(self, value))
            if has_array:
                vectorised = np.vectorize(lambda *args: op(*args), otypes=[object])
                return vectorised(*coerced)
            return op(*coerced)


_DECIMAL = BigIntEngine()


def _as_int(engine: IntegerEngine, value: Any) -> int:
    if isinstance(value, int):
        return value
    # Parsed in chunks; int() on a long decimal string hits the digit limit.
    return _DECIMAL.from_string(engine.to_string(value, 10), 10)


# ----------------------------------------------------------------------
# Module-level surface
def from_integers(
    numerator: int, denominator: int, *, engine: Optional[IntegerEngine] = None
) -> Fraction:
    return Fraction.from_integers(numerator, denominator, engine=engine)


def from_integer_engine_values(
    numerator: Any, denominator: Any, *, engine: Optional[IntegerEngine] = None
) -> Fraction:
    return Fraction.from_integer_engine_values(numerator, denominator, engine=engine)


def from_integer(value: int, *, engine: Optional[IntegerEngine] = None) -> Fraction:
    return Fraction.from_integer(value, engine=engine)


def from_double(
    value: float, max_denominator: int = 0, *, engine: Optional[IntegerEngine] = None
) -> Optional[Fraction]:
    return Fraction.from_double(value, max_denominator, engine=engine)


def from_string(text: str, *, engine: Optional[IntegerEngine] = None) -> Optional[Fraction]:
    return Fraction.from_string(text, engine=engine)


def copy(value: Fraction) -> Fraction:
    if value is None:
        raise TypeError("fraction cannot be None")
    return value.copy()


def retain(value: Fraction) -> Fraction:
    if value is None:
        raise TypeError("fraction cannot be None")
    return value.retain()


def release(value: Optional[Fraction]) -> None:
    """Release *value* and return ``None`` so callers can clear their handle.

    ``handle = release(handle)``; releasing ``None`` does nothing.
    """
    if value is not None:
        value.release()
    return None


def zero(*, engine: Optional[IntegerEngine] = None) -> Fraction:
    return Fraction(0, 1, engine=engine)


def one(*, engine: Optional[IntegerEngine] = None) -> Fraction:
    return Fraction(1, 1, engine=engine)


def neg_one(*, engine: Optional[IntegerEngine] = None) -> Fraction:
    return Fraction(-1, 1, engine=engine)


def compare(a: Fraction, b: Fraction) -> int:
    if a is None or b is None:
        raise TypeError("operands cannot be None")
    return a.compare(b)


def minimum(a: Fraction, b: Fraction) -> Fraction:
    if a is None:
        raise TypeError("operands cannot be None")
    return a.min(b)


def maximum(a: Fraction, b: Fraction) -> Fraction:
    if a is None:
        raise TypeError("operands cannot be None")
    return a.max(b)


def rationalize(value: NumberLike, *, engine: Optional[IntegerEngine] = None) -> Fraction:
    """Public helper to convert *value* into :class:`Fraction`."""

    return Fraction.rationalize(value, engine=engine)


def as_fraction_array(
    values: Any,
    *,
    engine: Optional[IntegerEngine] = None,
    copy: bool = True,
) -> np.ndarray:
    """Return a ``numpy.ndarray`` of :class:`Fraction` values.

    ``values`` can be any iterable containing numeric-like entries or an existing
    NumPy array. When ``copy`` is ``False`` and ``values`` is already an object
    array holding only :class:`Fraction` entries, that array is returned as is.
    """

    if isinstance(values, np.ndarray):
        array = values.copy() if copy else values
        if array.dtype != object:
            array = array.astype(object, copy=False)
        if all(isinstance(item, Fraction) for item in array.flat):
            return array
        vectorised = np.vectorize(
            lambda item: Fraction.rationalize(item, engine=engine),
            otypes=[object],
        )
        return vectorised(array)

    if isinstance(values, (list, tuple)):
        coerced = [Fraction.rationalize(item, engine=engine) for item in values]
        array = np.empty(len(coerced), dtype=object)
        array[:] = coerced
        return array

    return as_fraction_array(list(values), engine=engine, copy=copy)


def zeros(length: int, *, engine: Optional[IntegerEngine] = None) -> np.ndarray:
    """Return a one-dimensional array of length ``length`` filled with zeros."""

    if length < 0:
        raise ValueError("length must be non-negative")
    return as_fraction_array([zero(engine=engine) for _ in range(length)])


def zeros_like(
    values: Any,
    *,
    engine: Optional[IntegerEngine] = None,
) -> np.ndarray:
    """Return a zero-filled array that matches the shape of ``values``."""

    array = as_fraction_array(values, engine=engine)
    result = np.empty(array.shape, dtype=object)
    for index in np.ndindex(array.shape):
        result[index] = zero(engine=engine)
    return result


__all__ = [
    "Fraction",
    "ReleasedFractionError",
    "DEFAULT_MAX_DENOMINATOR",
    "CONVERGENCE_TOLERANCE",
    "RECIPROCAL_LIMIT",
    "from_integers",
    "from_integer_engine_values",
    "from_integer",
    "from_double",
    "from_string",
    "copy",
    "retain",
    "release",
    "zero",
    "one",
    "neg_one",
    "compare",
    "minimum",
    "maximum",
    "rationalize",
    "as_fraction_array",
    "zeros",
    "zeros_like",
]
