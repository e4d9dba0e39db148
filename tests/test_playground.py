from __future__ import annotations

import pytest

from canonalg.env        import environment
from canonalg.exceptions import SettingsError
from canonalg.numeric    import NumberFormat
from canonalg.playground import Playground, convert_option
from canonalg.session    import Session


@pytest.mark.parametrize('typed, value', [
    ('on', True),
    ('False', False),
    ('none', None),
    ('30', 30),
    ('1e-10', 1e-10),
    ('j', 'j'),
])
def test_convert_option(typed, value):
    assert convert_option(typed) == value

def test_commands():
    playground = Playground(Session())
    session = playground.session
    assert playground.command(':format mixed')
    assert playground.format is NumberFormat.MIXED
    assert playground.command(':set PRECISION 30')
    assert session.get('PRECISION') == 30
    with pytest.raises(SettingsError):
        playground.command(':set PRECISION zero')
    session.parse('y := 3')
    assert session.get_vars() == {'y': '3'}
    assert playground.command(':clear')
    assert session.get_vars() == {}
    assert not playground.command(':quit')

def test_loop(monkeypatch, capsys):
    lines = iter(['2x + 3x', 'y := 7/2', ':vars', '(', ':bogus', ':quit'])
    monkeypatch.setattr(environment.console, 'input', lambda prompt='': next(lines))
    environment.on_ascii_only()
    try:
        playground = Playground(Session())
        playground.run()
    finally:
        environment.off_ascii_only()
    assert playground.session.get_var('y') == playground.session.parse('7/2')
    out = capsys.readouterr().out
    assert '5*x' in out
    assert 'y = 7/2' in out
    assert 'ParityError' in out
    assert 'Unknown command :bogus' in out
