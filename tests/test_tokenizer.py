from __future__ import annotations

import pytest

from canonalg.exceptions              import OperatorError, ParityError, ParseError
from canonalg.operators               import BracketKind, Operator, OperatorAction, OperatorTable
from canonalg.parsing.tokenizer       import Scope, Token, TokenKind, Tokenizer
from canonalg.session                 import Session


def raw(scope: Scope) -> list:
    return [raw(item) if isinstance(item, Scope) else item.raw for item in scope]

def tokenizer(**kw) -> Tokenizer:
    return Tokenizer(OperatorTable(), functions=frozenset({'sin', 'cos', 'sqrt'}), **kw)


def test_simple_tokens():
    scope = tokenizer().tokenize('x + 2.5*y')
    assert raw(scope) == ['x', '+', '2.5', '*', 'y']
    assert [t.column for t in scope] == [1, 3, 5, 8, 9]
    assert scope[0].kind is TokenKind.OPERAND
    assert scope[1].kind is TokenKind.OPERATOR
    assert scope[2].is_number and not scope[0].is_number

def test_implicit_multiplication():
    scope = tokenizer().tokenize('2x')
    assert raw(scope) == ['2', '*', 'x']
    assert scope[1].implicit

    assert raw(tokenizer().tokenize('2(x+1)')) == ['2', '*', ['x', '+', '1']]
    assert raw(tokenizer().tokenize('(x)(y)')) == [['x'], '*', ['y']]
    assert raw(tokenizer().tokenize('x y')) == ['x', '*', 'y']

def test_function_calls():
    scope = tokenizer().tokenize('sin(x)')
    assert scope[0].kind is TokenKind.FUNCTION
    assert isinstance(scope[1], Scope) and scope[1].kind is BracketKind.PAREN

    scope = tokenizer().tokenize('f(x, y)')
    assert scope[0].kind is TokenKind.FUNCTION
    assert raw(scope[1]) == ['x', ',', 'y']

def test_space_before_a_known_function_argument():
    scope = tokenizer().tokenize('sin x')
    assert scope[0].kind is TokenKind.FUNCTION
    assert raw(scope) == ['sin', ['x']]

    scope = tokenizer().tokenize('y (x)')
    assert raw(scope) == ['y', '*', ['x']]

def test_operator_runs_are_chunked_greedily():
    assert raw(tokenizer().tokenize('x**-y')) == ['x', '**', '-', 'y']
    assert raw(tokenizer().tokenize('a<=b')) == ['a', '<=', 'b']
    assert raw(tokenizer().tokenize('5!!')) == ['5', '!!']

def test_unchunkable_operator_run():
    table = OperatorTable()
    table.set(Operator('~>', 3, OperatorAction.ADD))
    with pytest.raises(OperatorError):
        Tokenizer(table).tokenize('x~y')

def test_bracket_kinds():
    scope = tokenizer().tokenize('[1, {2}]')
    assert scope[0].kind is BracketKind.VECTOR
    assert scope[0][2].kind is BracketKind.SET

def test_only_parentheses_make_calls():
    scope = tokenizer().tokenize('x[1]')
    assert raw(scope) == ['x', '*', ['1']]
    assert scope[0].kind is TokenKind.OPERAND
    assert scope[2].kind is BracketKind.VECTOR

    scope = tokenizer().tokenize('sin{x}')
    assert scope[0].kind is TokenKind.OPERAND
    assert raw(scope) == ['sin', '*', ['x']]

    assert tokenizer().tokenize('f(1)')[0].kind is TokenKind.FUNCTION

@pytest.mark.parametrize('expression, column', [
    ('(1+2*', 6),
    ('x)', 2),
    ('(x]', 3),
    ('[(x]', 4),
])
def test_parity_errors(expression, column):
    with pytest.raises(ParityError) as info:
        tokenizer().tokenize(expression)
    assert info.value.column == column

def test_missing_close_cites_the_opening_bracket():
    with pytest.raises(ParityError, match='opened at column 1'):
        tokenizer().tokenize('(1+2*')

def test_unknown_character():
    with pytest.raises(ParseError) as info:
        tokenizer().tokenize('x $ y')
    assert info.value.column == 3

def test_single_letter_variables():
    scope = tokenizer(multicharacter=False).tokenize('abc')
    assert raw(scope) == ['a', '*', 'b', '*', 'c']

    scope = tokenizer(multicharacter=False, known_names=frozenset({'pi'})).tokenize('2pi')
    assert raw(scope) == ['2', '*', 'pi']

    scope = tokenizer(multicharacter=False).tokenize('sin(x1)')
    assert raw(scope) == ['sin', ['x1']]

def test_units_and_aliases():
    session = Session()
    session.register_unit('kg')
    scope = session.tokenize('3kg')
    assert scope[-1].kind is TokenKind.UNIT
    assert raw(session.tokenize('2∞')) == ['2', '*', 'Infinity']

def test_tokens_are_values():
    token = tokenizer().tokenize('x')[0]
    assert isinstance(token, Token)
    with pytest.raises(AttributeError):
        token.raw = 'y'   # type: ignore
