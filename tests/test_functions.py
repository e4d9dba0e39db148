from __future__ import annotations

from decimal             import Decimal

import pytest

from canonalg.exceptions import AlgebraTypeError, DivisionByZero, UndefinedError
from canonalg.functions  import BUILTINS, FunctionRegistry
from canonalg.session    import Session
from canonalg.symbol     import Group, number


@pytest.fixture
def session():
    return Session()

@pytest.fixture
def numeric():
    return Session(PARSE2NUMBER=True)

def show(session: Session, expression: str) -> str:
    return session.text(session.parse(expression))


@pytest.mark.parametrize('expression, expected', [
    ('sqrt(12)', '2*sqrt(3)'),
    ('sqrt(1/4)', '1/2'),
    ('cbrt(27)', '3'),
    ('nthroot(16, 4)', '2'),
    ('abs(-3/2)', '3/2'),
    ('abs(-2x)', '2*abs(x)'),
    ('abs(x^2)', 'x^2'),
    ('exp(x)', 'e^x'),
    ('log(1)', '0'),
    ('log(e)', '1'),
    ('log(e^x)', 'x'),
    ('log(x)', 'log(x)'),
    ('log10(1000)', '3'),
    ('log2(1/8)', '-3'),
    ('sin(0)', '0'),
    ('sin(pi)', '0'),
    ('sin(pi/6)', '1/2'),
    ('cos(pi)', '-1'),
    ('cos(pi/3)', '1/2'),
    ('sin(pi/4)', 'sqrt(2)/2'),
    ('tan(pi/4)', '1'),
    ('sin(-x)', '-sin(x)'),
    ('cos(-x)', 'cos(x)'),
    ('sec(0)', '1'),
    ('asin(1)', 'pi/2'),
    ('acos(1)', '0'),
    ('atan(1)', 'pi/4'),
    ('sinh(0)', '0'),
    ('cosh(0)', '1'),
    ('factorial(4)', '24'),
    ('fact(0)', '1'),
    ('dfactorial(6)', '48'),
    ('mod(-7, 3)', '-1'),
    ('floor(-7/2)', '-4'),
    ('ceil(7/2)', '4'),
    ('trunc(-7/2)', '-3'),
    ('round(5/2)', '3'),
    ('sign(-5)', '-1'),
    ('min(3, 1, 2)', '1'),
    ('max(3, 1, 2)', '3'),
    ('min(x, 1)', 'min(x,1)'),
    ('foo(x, 2)', 'foo(x,2)'),
])
def test_exact_values(session, expression, expected):
    assert show(session, expression) == expected

@pytest.mark.parametrize('expression', ['log(0)', 'log10(0)', 'tan(pi/2)', 'csc(0)', 'factorial(-1)'])
def test_undefined(session, expression):
    with pytest.raises(UndefinedError):
        session.parse(expression)

def test_mod_by_zero(session):
    with pytest.raises(DivisionByZero):
        session.parse('mod(3, 0)')

def test_arity(session):
    with pytest.raises(AlgebraTypeError):
        session.parse('sin(1, 2)')
    with pytest.raises(AlgebraTypeError):
        session.parse('atan2(1)')

@pytest.mark.parametrize('expression, value', [
    ('sin(1)', 0.8414709848078965),
    ('cos(2)', -0.4161468365471424),
    ('exp(1)', 2.718281828459045),
    ('log(10)', 2.302585092994046),
    ('sqrt(2)', 1.4142135623730951),
    ('atan2(1, 1)', 0.7853981633974483),
    ('3.5!', 11.631728396567448),
])
def test_numeric_values(numeric, expression, value):
    result = numeric.parse(expression)
    assert result.group is Group.N
    assert float(result.multiplier) == pytest.approx(value, rel=1e-12)

def test_numeric_snapping(numeric):
    assert numeric.parse('cos(pi/2)') == 0
    assert numeric.parse('sin(pi)') == 0

def test_numeric_imaginary(numeric):
    assert numeric.text(numeric.parse('(-4)^(1/2)')) == '2*i'

@pytest.mark.parametrize('precision', [21, 30])
def test_numeric_imaginary_uses_precision(precision):
    session = Session(PARSE2NUMBER=True, PRECISION=precision)
    result = session.parse('(-2)^(1/2)')
    assert result.group is Group.S and result.value == 'i'
    root2 = Decimal('1.4142135623730950488016887242097')
    assert abs(result.multiplier.to_decimal(precision) - root2) < Decimal(10) ** (3 - precision)

def test_registry_is_copied_per_session():
    registry = BUILTINS.copy()
    assert isinstance(registry, FunctionRegistry)
    registry.register('double', lambda x: x * 2)
    assert 'double' in registry
    assert 'double' not in BUILTINS
    assert registry.call('double', [number(4)]) == 8

def test_session_functions(session):
    session.functions.register('twice', lambda x: x * 2)
    assert show(session, 'twice(y)') == '2*y'
    assert 'twice' not in Session().functions
