# Exact rational numbers
#
# Every coefficient and every numeric power in the engine is a Rational.
# Values are immutable: arithmetic always returns a new Rational, stored
# in lowest terms with the sign carried by the numerator.

from __future__ import annotations

import math
import re

from dataclasses       import dataclass
from decimal           import Decimal, localcontext
from fractions         import Fraction
from functools         import total_ordering
from typing            import Union
from typing_extensions import TypeAlias

from canonalg.exceptions import CancellationError, DivisionByZero, ParseError


#
# Constants
#

CONVERSION_EPSILON = 1e-20   # Default stopping tolerance for float conversion
MAX_CONTINUED_TERMS = 64
MAX_DIGITS = 100_000          # Largest exact result, in decimal digits
LOG10_2 = math.log10(2)

integer_re = r'[0-9]+'
decimal_re = r'(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][-+]?[0-9]+)?'
rational_re = rf'([-+]?)({decimal_re})(?:/([0-9]+))?'


@total_ordering
@dataclass(frozen=True, eq=False)
class Rational:
    "An exact fraction numerator/denominator in lowest terms."
    numerator: int = 0
    denominator: int = 1

    def __post_init__(self) -> None:
        n, d = self.numerator, self.denominator
        if d == 0:
            raise DivisionByZero(f'Rational {int_text(n)}/0 has a zero denominator')
        if d < 0:
            n, d = -n, -d
        g = math.gcd(n, d)
        if g > 1:
            n, d = n // g, d // g
        object.__setattr__(self, 'numerator', n)
        object.__setattr__(self, 'denominator', d)

    #
    # Construction
    #

    @classmethod
    def from_value(cls, x: RationalLike, epsilon: float = CONVERSION_EPSILON) -> Rational:
        if isinstance(x, Rational):
            return x
        if isinstance(x, bool):
            return cls(int(x))
        if isinstance(x, int):
            return cls(x)
        if isinstance(x, Fraction):
            return cls(x.numerator, x.denominator)
        if isinstance(x, Decimal):
            return cls.from_decimal(x)
        if isinstance(x, float):
            return cls.from_float(x, epsilon)
        if isinstance(x, str):
            return cls.from_string(x)
        raise TypeError(f'Cannot convert {x!r} to a Rational')

    @classmethod
    def from_decimal(cls, d: Decimal) -> Rational:
        "Exact conversion of a finite Decimal."
        if not d.is_finite():
            raise ParseError(f'Cannot convert {d} to a Rational')
        if d:
            check_digits(abs(d.adjusted()), f'The number {d}')
        n, q = d.as_integer_ratio()
        return cls(n, q)

    @classmethod
    def from_string(cls, s: str) -> Rational:
        """Parses integers, decimals, scientific notation, and a/b.

        Terminating decimals convert exactly, so "0.1" is 1/10.

        """
        m = re.fullmatch(rational_re, s.strip().replace('_', ''))
        if not m:
            raise ParseError(f'Could not parse "{s}" as a number')
        sign, body, denom = m.groups()
        value = cls.from_decimal(Decimal(body))
        if sign == '-':
            value = value.negate()
        if denom:
            value = value.divide(cls.from_decimal(Decimal(denom)))
        return value

    @classmethod
    def from_float(cls, x: float, epsilon: float = CONVERSION_EPSILON,
                   max_terms: int = MAX_CONTINUED_TERMS) -> Rational:
        """Converts a float by continued-fraction approximation.

        Terms are accumulated until the convergent reproduces `x` to within
        `epsilon`, or the remaining fractional part vanishes.

        """
        if not math.isfinite(x):
            raise ParseError(f'Cannot convert {x} to a Rational')
        if x.is_integer():
            return cls(int(x))

        sign = -1 if x < 0 else 1
        target = abs(x)
        h0, h1 = 0, 1   # numerators of the last two convergents
        k0, k1 = 1, 0   # denominators
        remainder = Fraction(target)
        for _ in range(max_terms):
            a = math.floor(remainder)
            h0, h1 = h1, a * h1 + h0
            k0, k1 = k1, a * k1 + k0
            if abs(h1 / k1 - target) <= epsilon:
                break
            frac = remainder - a
            if frac == 0:
                break
            remainder = 1 / frac
        return cls(sign * h1, k1)

    #
    # Predicates
    #

    def is_integer(self) -> bool:
        return self.denominator == 1

    def is_zero(self) -> bool:
        return self.numerator == 0

    def is_one(self) -> bool:
        return self.numerator == 1 and self.denominator == 1

    def is_negative(self) -> bool:
        return self.numerator < 0

    def is_positive(self) -> bool:
        return self.numerator > 0

    def is_even(self) -> bool:
        return self.denominator == 1 and self.numerator % 2 == 0

    def is_odd(self) -> bool:
        return self.denominator == 1 and self.numerator % 2 == 1

    @property
    def sign(self) -> int:
        return (self.numerator > 0) - (self.numerator < 0)

    #
    # Arithmetic (value-returning)
    #

    def add(self, other: Rational) -> Rational:
        return Rational(self.numerator * other.denominator + other.numerator * self.denominator,
                        self.denominator * other.denominator)

    def subtract(self, other: Rational) -> Rational:
        return Rational(self.numerator * other.denominator - other.numerator * self.denominator,
                        self.denominator * other.denominator)

    def multiply(self, other: Rational) -> Rational:
        return Rational(self.numerator * other.numerator, self.denominator * other.denominator)

    def divide(self, other: Rational) -> Rational:
        if other.numerator == 0:
            raise DivisionByZero(f'Division of {self} by zero')
        return Rational(self.numerator * other.denominator, self.denominator * other.numerator)

    def negate(self) -> Rational:
        return Rational(-self.numerator, self.denominator)

    def invert(self) -> Rational:
        if self.numerator == 0:
            raise DivisionByZero('Cannot invert zero')
        return Rational(self.denominator, self.numerator)

    def abs(self) -> Rational:
        return Rational(abs(self.numerator), self.denominator)

    def pow(self, exponent: int) -> Rational:
        "Exact integer power."
        size = max(abs(self.numerator).bit_length(), self.denominator.bit_length()) - 1
        check_digits(size * abs(exponent) * LOG10_2, 'An integer power')
        if exponent >= 0:
            return Rational(self.numerator ** exponent, self.denominator ** exponent)
        if self.numerator == 0:
            raise DivisionByZero(f'Zero raised to the negative power {exponent}')
        return Rational(self.denominator ** -exponent, self.numerator ** -exponent)

    def floor(self) -> int:
        return self.numerator // self.denominator

    def ceil(self) -> int:
        return -((-self.numerator) // self.denominator)

    def trunc(self) -> int:
        q = abs(self.numerator) // self.denominator
        return q if self.numerator >= 0 else -q

    def whole_and_part(self) -> tuple[int, Rational]:
        "Splits into an integer (truncated toward zero) and a proper fraction of the same sign."
        whole = self.trunc()
        return (whole, self.subtract(Rational(whole)))

    def mod(self, other: Rational) -> Rational:
        "Remainder of truncated division; the sign follows the dividend."
        if other.numerator == 0:
            raise DivisionByZero(f'Modulo of {self} by zero')
        return self.subtract(other.multiply(Rational(self.divide(other).trunc())))

    #
    # Conversion
    #

    def to_decimal(self, precision: int = 21) -> Decimal:
        with localcontext() as ctx:
            ctx.prec = precision
            return Decimal(self.numerator) / Decimal(self.denominator)

    def to_fraction(self) -> Fraction:
        return Fraction(self.numerator, self.denominator)

    def __float__(self) -> float:
        return self.numerator / self.denominator

    def __int__(self) -> int:
        return self.trunc()

    def __str__(self) -> str:
        if self.denominator == 1:
            return int_text(self.numerator)
        return f'{int_text(self.numerator)}/{int_text(self.denominator)}'

    def __repr__(self) -> str:
        return f'Rational({int_text(self.numerator)}, {int_text(self.denominator)})'

    #
    # Operators and Comparison
    #

    def __eq__(self, other) -> bool:
        if isinstance(other, Rational):
            return self.numerator == other.numerator and self.denominator == other.denominator
        if isinstance(other, (int, Fraction)):
            return self.to_fraction() == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.to_fraction())

    def __lt__(self, other) -> bool:
        if isinstance(other, int):
            other = Rational(other)
        if not isinstance(other, Rational):
            return NotImplemented
        return self.numerator * other.denominator < other.numerator * self.denominator

    def __add__(self, other):
        return self.add(as_rational(other))

    __radd__ = __add__

    def __sub__(self, other):
        return self.subtract(as_rational(other))

    def __rsub__(self, other):
        return as_rational(other).subtract(self)

    def __mul__(self, other):
        return self.multiply(as_rational(other))

    __rmul__ = __mul__

    def __truediv__(self, other):
        return self.divide(as_rational(other))

    def __rtruediv__(self, other):
        return as_rational(other).divide(self)

    def __neg__(self):
        return self.negate()

    def __abs__(self):
        return self.abs()

    def __bool__(self) -> bool:
        return self.numerator != 0


RationalLike: TypeAlias = Union[Rational, int, Fraction, Decimal, float, str]

ZERO = Rational(0)
ONE = Rational(1)
MINUS_ONE = Rational(-1)
HALF = Rational(1, 2)

def as_rational(x: RationalLike) -> Rational:
    return Rational.from_value(x)


#
# Size Limits
#

def int_text(n: int) -> str:
    "Decimal digits of an integer of any size."
    if n.bit_length() < 10_000:
        return str(n)
    return format(Decimal(n), 'f')

def check_digits(digits: float, what: str) -> None:
    "Refuses to build an exact number with more than MAX_DIGITS digits."
    if digits > MAX_DIGITS:
        raise CancellationError(f'{what} would have about {digits:.3g} digits, over the limit of {MAX_DIGITS}')
