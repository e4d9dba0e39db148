from __future__ import annotations

import pytest

from canonalg.exceptions              import OperatorError
from canonalg.operators               import Fixity
from canonalg.parsing.shunting_yard   import Postfix, to_postfix
from canonalg.session                 import Session


@pytest.fixture
def session():
    return Session()


@pytest.mark.parametrize('expression, expected', [
    ('1+2*3', '1 2 3 * +'),
    ('(1+2)*3', '(1 2 +) 3 *'),
    ('1-2-3', '1 2 - 3 -'),
    ('2^3^2', '2 3 2 ^ ^'),
    ('-x^2', 'x 2 ^ -'),
    ('-x*y', 'x - y *'),
    ('2^-3*4', '2 3 - ^ 4 *'),
    ('3!', '3 !'),
    ('-3!', '3 ! -'),
    ('x^2!', 'x 2 ! ^'),
    ('5%3', '5 3 %'),
    ('50%', '50 %'),
    ('50%+1', '50 % 1 +'),
    ('sin(x)+1', '(x) sin 1 +'),
    ('f(a, b)', '(a b ,) f'),
    ('x = y + 1', 'x y 1 + ='),
    ('a < b + 1', 'a b 1 + <'),
    ('2x^2', '2 x 2 ^ *'),
])
def test_postfix_order(session, expression, expected):
    assert session.rpn(expression) == expected

def test_fixity_is_assigned(session):
    postfix = to_postfix(session.tokenize('-x%'))
    assert [t.raw for t in postfix] == ['x', '%', '-']
    assert postfix[1].fixity is Fixity.POSTFIX
    assert postfix[2].fixity is Fixity.PREFIX

def test_nested_scopes_are_reduced(session):
    postfix = to_postfix(session.tokenize('[1, 2+3]'))
    assert len(postfix) == 1
    assert isinstance(postfix[0], Postfix)
    assert str(postfix[0]) == '1 2 3 + ,'

@pytest.mark.parametrize('expression', ['!3', '*x', 'x+', 'x+*y', '(,x)', 'f(x,)'])
def test_operator_errors(session, expression):
    with pytest.raises(OperatorError):
        session.rpn(expression)

def test_empty_scopes(session):
    assert session.rpn('f()') == '() f'
    assert session.rpn('') == ''
