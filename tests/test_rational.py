from __future__ import annotations

from decimal           import Decimal
from fractions         import Fraction

import pytest

from canonalg.exceptions import DivisionByZero, ParseError
from canonalg.rational   import Rational, ONE, ZERO, HALF


def test_normalization():
    assert Rational(2, 4) == Rational(1, 2)
    assert Rational(1, -2).numerator == -1
    assert Rational(1, -2).denominator == 2
    assert Rational(0, 7) == ZERO
    assert str(Rational(6, 3)) == '2'
    assert str(Rational(-3, 6)) == '-1/2'

def test_zero_denominator():
    with pytest.raises(DivisionByZero):
        Rational(1, 0)
    with pytest.raises(DivisionByZero):
        ONE.divide(ZERO)
    with pytest.raises(DivisionByZero):
        ZERO.invert()

@pytest.mark.parametrize('text, expected', [
    ('3', Rational(3)),
    ('0.1', Rational(1, 10)),
    ('-3/4', Rational(-3, 4)),
    ('1e3', Rational(1000)),
    ('2.5e-1', Rational(1, 4)),
    ('.5', HALF),
])
def test_from_string(text, expected):
    assert Rational.from_string(text) == expected

def test_from_string_rejects_garbage():
    with pytest.raises(ParseError):
        Rational.from_string('3x')

def test_from_other_types():
    assert Rational.from_value(0.5) == HALF
    assert Rational.from_value(1 / 3) == Rational(1, 3)
    assert Rational.from_value(Decimal('0.125')) == Rational(1, 8)
    assert Rational.from_value(Fraction(3, 9)) == Rational(1, 3)
    assert Rational.from_value(True) == ONE

@pytest.mark.parametrize('a', [Rational(3), Rational(-7, 3), Rational(5, 11), Rational(10**30 + 1, 7)])
@pytest.mark.parametrize('b', [Rational(2), Rational(-1, 9), Rational(13, 4)])
def test_division_is_exact(a, b):
    assert a.divide(b).multiply(b) == a
    assert (a / b) * b == a

def test_arithmetic():
    assert Rational(1, 2) + Rational(1, 3) == Rational(5, 6)
    assert Rational(1, 2) - 1 == Rational(-1, 2)
    assert 2 * Rational(3, 4) == Rational(3, 2)
    assert Rational(2, 3).pow(-2) == Rational(9, 4)
    assert Rational(-2).pow(3) == Rational(-8)
    assert -Rational(1, 5) == Rational(-1, 5)
    assert abs(Rational(-1, 5)) == Rational(1, 5)

def test_rounding():
    q = Rational(-7, 2)
    assert q.floor() == -4
    assert q.ceil() == -3
    assert q.trunc() == -3
    assert q.whole_and_part() == (-3, Rational(-1, 2))

def test_mod_follows_the_dividend():
    assert Rational(7).mod(Rational(3)) == Rational(1)
    assert Rational(-7).mod(Rational(3)) == Rational(-1)
    assert Rational(7, 2).mod(Rational(1)) == HALF

def test_predicates_and_ordering():
    assert Rational(4).is_even() and Rational(3).is_odd()
    assert not Rational(3, 2).is_integer()
    assert Rational(-1, 3).sign == -1
    assert Rational(1, 3) < Rational(1, 2)
    assert sorted([Rational(1), Rational(-2), HALF]) == [Rational(-2), HALF, Rational(1)]

def test_conversions():
    assert Rational(1, 4).to_decimal() == Decimal('0.25')
    assert float(Rational(1, 8)) == 0.125
    assert int(Rational(-7, 2)) == -3
    assert Rational(3, 4).to_fraction() == Fraction(3, 4)
