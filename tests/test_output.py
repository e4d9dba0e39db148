from __future__ import annotations

import pytest

from canonalg.env        import environment
from canonalg.exceptions import SettingsError
from canonalg.numeric    import (NumberFormat, as_number_format, format_number, show_mixed,
                                 show_recurring, show_scientific)
from canonalg.output     import RichExpression, base_text, in_panel, term_text
from canonalg.rational   import Rational
from canonalg.session    import Session
from canonalg.utils      import show


@pytest.fixture
def session():
    return Session()


@pytest.mark.parametrize('q, fmt, expected', [
    (Rational(7, 2), 'fractions', '7/2'),
    (Rational(7, 2), 'decimals', '3.5'),
    (Rational(7, 2), 'mixed', '3+1/2'),
    (Rational(-7, 2), 'mixed', '-3-1/2'),
    (Rational(1, 6), 'recurring', "0.1'6'"),
    (Rational(1, 3), 'recurring', "0.'3'"),
    (Rational(1, 8), 'recurring', '0.125'),
    (Rational(3, 2), 'scientific', '1.5'),
    (Rational(1, 400), 'scientific', '2.5e-3'),
    (Rational(5), 'decimals', '5'),
])
def test_number_formats(q, fmt, expected):
    assert format_number(q, as_number_format(fmt)) == expected

def test_number_format_names():
    assert as_number_format(None) is NumberFormat.FRACTIONS
    assert as_number_format(NumberFormat.MIXED) is NumberFormat.MIXED
    with pytest.raises(SettingsError):
        as_number_format('roman')

def test_formatting_helpers():
    assert show_mixed(Rational(1, 2)) == '1/2'
    assert show_scientific(Rational(0), 16) == '0'
    assert show_recurring(Rational(-1, 3), 16) == "-0.'3'"

def test_decimal_places(session):
    s = session.parse('2/3')
    assert session.text(s, 'decimals') == '0.6666666666666667'
    assert session.text(s, 'decimals', 4) == '0.6667'

def test_symbol_text_with_formats(session):
    s = session.parse('x/2 + 1/3')
    assert session.text(s) == 'x/2+1/3'
    assert session.text(s, 'decimals', 3) == '0.5*x+0.333'
    assert session.text(session.parse('7x/2'), 'mixed') == '(3+1/2)*x'

def test_term_and_base_text(session):
    s = session.parse('3*x^2')
    assert term_text(s) == 'x^2'
    assert base_text(s) == 'x'
    assert base_text(session.parse('2*(x+y)^3')) == 'x+y'

def test_display_helpers(session, capsys):
    environment.on_ascii_only()
    try:
        assert in_panel('x') == 'x'
        expression = RichExpression(session.parse('x+x'))
        assert str(expression) == '2*x'
        assert show(expression, print_it=False) == '2*x'
    finally:
        environment.off_ascii_only()
    assert show([session.parse('1/2')], print_it=False) == '[\n    1/2\n]'
