from __future__ import annotations

import pytest

from canonalg.exceptions import AlgebraTypeError, DivisionByZero
from canonalg.operators  import BracketKind
from canonalg.rational   import Rational
from canonalg.session    import Session
from canonalg.symbol     import (Collection, Group, as_symbol, function, invert, negate,
                                 number, variable)


@pytest.fixture
def session():
    return Session()


def test_group_order():
    assert Group.N < Group.P < Group.S < Group.EX < Group.FN < Group.PL < Group.CB < Group.CP
    assert Group.CB.label == 'Product'

def test_clone_is_deep(session):
    s = session.parse('2*(x+y)*sin(z)')
    before = s.text()
    c = s.clone()
    for child in c.children():
        child.multiplier = Rational(99)
    assert s.text() == before == '2*sin(z)*(x+y)'

def test_equality(session):
    assert session.parse('x+1') == session.parse('1+x')
    assert session.parse('x') != session.parse('y')
    assert number(3) == 3
    assert number(Rational(1, 2)) == Rational(1, 2)
    assert len({session.parse('x*y'), session.parse('y*x')}) == 1

def test_predicates(session):
    assert number(4).is_integer()
    assert not number(Rational(1, 2)).is_integer()
    assert session.parse('2*pi').is_constant()
    assert not session.parse('x+1').is_constant()
    assert session.parse('3+2i').is_imaginary()
    assert session.parse('Infinity').is_infinity()
    assert session.parse('x+y').is_composite()
    assert session.parse('x^2').is_linear() is False

def test_variables(session):
    s = session.parse('x*y + sin(z)^w')
    assert s.variables() == ['w', 'x', 'y', 'z']
    assert s.contains('z')
    assert not s.contains('v')

def test_numerator_and_denominator(session):
    s = session.parse('2x/(3y)')
    assert s.numerator().text() == '2*x'
    assert s.denominator().text() == '3*y'
    assert number(Rational(3, 4)).denominator() == 4

def test_substitution(session):
    s = session.parse('x^2 + 1')
    assert s.sub('x', number(3)) == 10
    assert s.sub('x', session.parse('y+1')).text() == '(y+1)^2+1'
    assert function('sin', [variable('x')]).sub('x', number(0)) == 0

def test_arithmetic_dunders():
    x = variable('x')
    assert (x + x).text() == '2*x'
    assert (2 * x - x).text() == 'x'
    assert (x / 2).text() == 'x/2'
    assert (x ** 2).text() == 'x^2'
    assert (-x).text() == '-x'
    assert (1 - x).text() == '-x+1'
    assert negate(number(3)) == -3

def test_invert(session):
    assert invert(variable('x')).text() == '1/x'
    assert invert(number(Rational(2, 3))) == Rational(3, 2)
    assert invert(session.parse('x^2/3')).text() == '3/x^2'
    assert invert(session.parse('(x+y)/2')).text() == '2/(x+y)'
    with pytest.raises(DivisionByZero):
        invert(number(0))

def test_convert():
    x = variable('x', Rational(2))
    cb = x.clone().convert(Group.CB)
    assert cb.group is Group.CB
    assert cb.length == 1
    ex = number(2).convert(Group.EX)
    assert ex.previous_group is Group.N
    assert ex.convert(Group.N) == 2
    with pytest.raises(AlgebraTypeError):
        variable('x').convert(Group.FN)

def test_each_and_children(session):
    s = session.parse('x+y+1')
    keys = [key for key, _ in s.each()]
    assert sorted(keys) == ['#', 'x', 'y']
    assert len(s.children()) == 3

def test_as_symbol():
    assert as_symbol(5) == 5
    with pytest.raises(AlgebraTypeError):
        as_symbol('x')

def test_collection():
    c = Collection(BracketKind.SET, [number(1), number(1), variable('x')])
    assert len(c) == 2
    assert c.text() == '{1, x}'
    assert c[1] == variable('x')
