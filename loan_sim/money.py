"""Fixed-point currency and interest rate types.

Money is stored as an integer number of minor units (cents) so that the
simulation never accumulates floating point drift. Only multiplication by a
non-integer factor rounds, and it always rounds to the nearest minor unit with
halves going away from zero. Rates keep full ``Decimal`` precision.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext, localcontext
from typing import Union

CURRENCY_SCALE = 100

# Upper bound of the signed 64-bit minor unit counter used by the schedule totals.
MONEY_MAX = 2 ** 63 - 1

Number = Union[Decimal, int, float, str]


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() gives the shortest repr, so 123.45 stays 123.45 rather than
        # 123.4500000000000028421709...
        return Decimal(str(value))
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid numeric value: {value!r}") from exc


@dataclass(frozen=True, order=True)
class Money:
    """An amount of money counted in minor currency units.

    Comparison operators (``==``, ``<``, ``<=`` ...) compare the minor unit
    counts. Arithmetic is available both as operators and as the named
    methods ``add``, ``sub``, ``mul`` and ``div``.
    """

    minor: int = 0

    @classmethod
    def from_major(cls, amount: Number) -> "Money":
        """Build a value from a major unit amount, e.g. ``Money.from_major("12.34")``."""
        value = _to_decimal(amount)
        if not value.is_finite():
            raise ValueError(f"Money amount must be finite; got {amount!r}")
        try:
            scaled = (value * CURRENCY_SCALE).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        except InvalidOperation as exc:
            raise ValueError(f"Money amount out of range: {amount!r}") from exc
        return cls(int(scaled))

    def to_major(self) -> Decimal:
        return Decimal(self.minor).scaleb(-2)

    def add(self, other: "Money") -> "Money":
        return Money(self.minor + other.minor)

    def sub(self, other: "Money") -> "Money":
        return Money(self.minor - other.minor)

    def mul(self, factor: Number) -> "Money":
        """Multiply by ``factor`` and round to the nearest minor unit.

        The product is computed exactly whatever its size. Raises ``ValueError``
        for a non-finite factor.
        """
        value = _to_decimal(factor)
        if not value.is_finite():
            raise ValueError(f"Money factor must be finite; got {factor!r}")
        digits = len(str(abs(self.minor))) + len(value.as_tuple().digits) + max(value.adjusted(), 0) + 2
        with localcontext() as ctx:
            ctx.prec = max(getcontext().prec, digits)
            product = Decimal(self.minor) * value
            return Money(int(product.quantize(Decimal(1), rounding=ROUND_HALF_UP)))

    def div(self, divisor: int) -> "Money":
        """Integer division truncating toward zero. Dividing by zero yields zero."""
        if divisor == 0:
            return ZERO
        quotient = abs(self.minor) // abs(divisor)
        if (self.minor < 0) != (divisor < 0):
            quotient = -quotient
        return Money(quotient)

    __add__ = add
    __sub__ = sub

    def __neg__(self) -> "Money":
        return Money(-self.minor)

    def is_zero(self) -> bool:
        return self.minor == 0

    def is_positive(self) -> bool:
        return self.minor > 0

    def __str__(self) -> str:
        sign = "-" if self.minor < 0 else ""
        major, minor = divmod(abs(self.minor), CURRENCY_SCALE)
        return f"{sign}{major}.{minor:02d}"


ZERO = Money(0)
ONE_MINOR_UNIT = Money(1)


@dataclass(frozen=True)
class Rate:
    """Annual interest rate expressed as a fraction (``0.05`` is 5 %)."""

    value: Decimal

    @property
    def monthly(self) -> Decimal:
        return self.value / 12

    def is_zero(self) -> bool:
        return self.value == 0

    def is_valid(self, upper_bound: Decimal | None = None) -> bool:
        """Return True when the rate is finite, non-negative and within ``upper_bound``."""
        if not isinstance(self.value, Decimal) or not self.value.is_finite():
            return False
        if self.value < 0:
            return False
        return upper_bound is None or self.value <= upper_bound


def create_rate(value: Number) -> Rate:
    """Wrap ``value`` in a :class:`Rate` without validating it.

    NaN and infinities are preserved so that the engine can reject them with a
    proper error instead of failing during conversion.
    """
    return Rate(_to_decimal(value))
