# output.py - rendering symbols as infix text, and rich terminal wrappers
#
# text() is the inverse of parsing: for the default fractions format,
# parsing the rendered text reproduces a structurally equal symbol. The
# same renderer, with the multiplier and/or power suppressed, produces
# the canonical keys used by the insertion engine.

from __future__ import annotations

from dataclasses       import dataclass
from typing            import Literal
from typing_extensions import Any

from rich              import box
from rich.markup       import escape
from rich.panel        import Panel

from canonalg.context    import current_settings
from canonalg.env        import environment
from canonalg.numeric    import (FormatLike, NumberFormat, as_number_format,
                                 format_number, is_compound_number_text)
from canonalg.rational   import Rational, ONE, ZERO, HALF, int_text
from canonalg.symbol     import CONST_HASH, Group, Symbol


@dataclass(frozen=True)
class Style:
    fmt: NumberFormat = NumberFormat.FRACTIONS
    digits: int = 16

CANONICAL = Style()


#
# Entry Points
#

def text(value, option: FormatLike | None = None, decimal_places: int | None = None) -> str:
    """Renders a symbol or collection in infix notation.

    Parameters:
    ----------
      value - a Symbol or Collection
      option ['fractions'] - number format: fractions, decimals,
          scientific, mixed, or recurring
      decimal_places [session default] - significant digits for the
          decimal based formats

    """
    digits = decimal_places if decimal_places is not None else current_settings().decimal_places
    style = Style(as_number_format(option), digits)
    return render_value(value, style)

def render_value(value, style: Style = CANONICAL) -> str:
    if isinstance(value, Symbol):
        return render(value, style)
    elements = getattr(value, 'elements', None)
    if elements is not None:
        inner = ', '.join(render_value(e, style) for e in elements)
        return f'{value.open}{inner}{value.close}'
    return str(value)

def term_text(s: Symbol) -> str:
    "Canonical text without the multiplier."
    return render(s, CANONICAL, multiplier=False)

def base_text(s: Symbol) -> str:
    "Canonical text without multiplier or power."
    return render(s, CANONICAL, multiplier=False, power=False)


#
# Renderer
#

def render(s: Symbol, style: Style = CANONICAL, *, multiplier=True, power=True) -> str:
    if s.group is Group.N:
        return format_number(s.multiplier, style.fmt, style.digits) if multiplier else CONST_HASH
    if not power:
        return _body(s, style)
    m = s.multiplier if multiplier else ONE
    factors = s.children() if s.group is Group.CB else [s]
    return _product(m, factors, style)

def degree(s: Symbol) -> Rational:
    "A sort weight: the total rational degree of a term."
    p = s.power if isinstance(s.power, Rational) else ZERO
    if s.group is Group.N or s.group is Group.EX:
        return ZERO
    if s.group is Group.PL:
        return max((degree(c) for c in s.children()), default=ZERO).multiply(p)
    if s.group is Group.CB:
        total = ZERO
        for c in s.children():
            total = total.add(degree(c))
        return total
    return p

def monomial(s: Symbol) -> list[tuple[str, Rational]]:
    "Variables with negated degrees, so that sorting puts higher powers of earlier variables first."
    if s.group is Group.S and isinstance(s.power, Rational):
        return [(s.value, s.power.negate())]
    if s.group is Group.CB:
        return sorted(pair for c in s.children() for pair in monomial(c))
    return []

def _sum_order(s: Symbol) -> tuple:
    return (s.group is Group.N, degree(s).negate(), monomial(s), term_text(s))

def _terms(children: list[Symbol]) -> list[Symbol]:
    "Children of a sum with nested PolyLike terms spread out."
    terms: list[Symbol] = []
    for child in children:
        if child.group is Group.PL and child.is_linear():
            terms.extend(c.with_multiplier(c.multiplier.multiply(child.multiplier)) for c in child.children())
        else:
            terms.append(child)
    return terms

def _factor_order(s: Symbol) -> tuple:
    return (int(s.group), base_text(s))

def _sum(children: list[Symbol], style: Style) -> str:
    parts: list[str] = []
    for child in sorted(_terms(children), key=_sum_order):
        t = render(child, style)
        if parts and not t.startswith('-'):
            parts.append('+')
        parts.append(t)
    return ''.join(parts)

def _body(s: Symbol, style: Style) -> str:
    group = s.group
    if group is Group.S or group is Group.P:
        return s.value
    if group is Group.FN:
        args = s.args or []
        return f'{s.value}({",".join(render(a, style) for a in args)})'
    if group is Group.EX:
        return render(s.base(), style)
    if group is Group.CB:
        return _product(ONE, s.children(), style)
    return _sum(s.children(), style)

def _exponent(p: Symbol, style: Style) -> str:
    t = render(p, style)
    simple_variable = p.group is Group.S and p.is_linear() and p.multiplier.is_one()
    simple_number = p.group is Group.N and p.multiplier.is_integer() and not p.multiplier.is_negative()
    return t if simple_variable or simple_number else f'({t})'

def _needs_parens(base: Symbol) -> bool:
    if base.group in (Group.PL, Group.CB, Group.CP):
        return True
    if base.group is Group.N:
        return base.multiplier.is_negative() or not base.multiplier.is_integer()
    if base.group is Group.P:
        return base.value.startswith('-')
    return not base.multiplier.is_one()

def _factor(f: Symbol, p, style: Style, bare: bool) -> str:
    if f.group is Group.EX:
        base = f.base()
        t = render(base, style)
        if _needs_parens(base):
            t = f'({t})'
        return f'{t}^{_exponent(f.power, style)}'

    body = _body(f, style)
    wrapped = f'({body})' if _needs_parens(f.base()) else body
    if p.is_one():
        return body if bare else wrapped
    if p == HALF:
        return f'sqrt({body})'
    if p.is_integer():
        return f'{wrapped}^{p}'
    return f'{wrapped}^({p})'

def _product(m: Rational, factors: list[Symbol], style: Style) -> str:
    negative = m.is_negative()
    m = m.abs()
    numerators: list[tuple[Symbol, Any]] = []
    denominators: list[tuple[Symbol, Any]] = []
    for f in sorted(factors, key=_factor_order):
        p = f.power
        if isinstance(p, Rational) and p.is_negative():
            denominators.append((f, p.negate()))
        else:
            numerators.append((f, p))

    if style.fmt is NumberFormat.FRACTIONS:
        coef_num, coef_den = int_text(m.numerator), int_text(m.denominator)
    else:
        coef_num, coef_den = format_number(m, style.fmt, style.digits), '1'
        if numerators and coef_num != '1' and is_compound_number_text(coef_num):
            coef_num = f'({coef_num})'

    bare = not negative and coef_num == '1' and coef_den == '1' and len(numerators) == 1 and not denominators
    num_parts = [_factor(f, p, style, bare) for f, p in numerators]
    if coef_num != '1' or not num_parts:
        num_parts.insert(0, coef_num)
    den_parts = [_factor(f, p, style, False) for f, p in denominators]
    if coef_den != '1':
        den_parts.insert(0, coef_den)

    result = '*'.join(num_parts)
    if den_parts:
        den = '*'.join(den_parts)
        result += f'/({den})' if len(den_parts) > 1 else f'/{den}'
    return '-' + result if negative else result


#
# Rendered Output
#

def in_panel(
        s: str,
        box=box.SQUARE,
        title: str | None = None,
        title_align: Literal['left', 'center', 'right'] = 'center',
) -> str | Panel:
    if environment.ascii_only:
        return s
    return Panel(s, expand=False, box=box, title=title, title_align=title_align)

@dataclass(frozen=True)
class RichExpression:
    "An expression with its rendering options, displayed in a panel at the REPL."
    this: Any
    option: FormatLike | None = None
    decimal_places: int | None = None

    def __str__(self) -> str:
        return text(self.this, self.option, self.decimal_places)

    def __repr__(self) -> str:
        return repr(self.this)

    def __canonalg_repr__(self):
        return in_panel(escape(str(self)))
