# Numeric literals, high precision constants, and number formatting
#
# Formatting options for text output:
#   fractions  - exact a/b (default)
#   decimals   - decimal expansion to a number of significant digits
#   scientific - mantissa and exponent, e.g., 1.25e-3
#   mixed      - whole part plus proper fraction, e.g., 3+1/2
#   recurring  - decimal with the repeating block quoted, e.g., 0.1'6'

from __future__  import annotations

import math

from decimal           import Decimal, localcontext, ROUND_HALF_EVEN
from enum              import Enum
from typing            import Literal, Union
from typing_extensions import TypeAlias

from canonalg.exceptions import SettingsError
from canonalg.rational   import Rational, int_text


#
# Literals
#

number_re = r'(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][-+]?[0-9]+)?'

MAX_RECURRING_DIGITS = 1000

class NumberFormat(Enum):
    FRACTIONS = 'fractions'
    DECIMALS = 'decimals'
    SCIENTIFIC = 'scientific'
    MIXED = 'mixed'
    RECURRING = 'recurring'

FormatLike: TypeAlias = Union[NumberFormat, Literal['fractions', 'decimals', 'scientific', 'mixed', 'recurring']]

def as_number_format(option: FormatLike | None) -> NumberFormat:
    if option is None:
        return NumberFormat.FRACTIONS
    if isinstance(option, NumberFormat):
        return option
    try:
        return NumberFormat(option)
    except ValueError:
        raise SettingsError(f'Unknown number format "{option}"')


#
# High Precision Constants
#

def decimal_pi(precision: int) -> Decimal:
    "Computes pi to `precision` significant digits."
    with localcontext() as ctx:
        ctx.prec = precision + 2
        three = Decimal(3)
        lasts, t, s, n, na, d, da = 0, three, 3, 1, 0, 0, 24
        while s != lasts:
            lasts = s
            n, na = n + na, na + 8
            d, da = d + da, da + 32
            t = (t * n) / d
            s += t
        ctx.prec = precision
        return +s

def decimal_e(precision: int) -> Decimal:
    "Computes e to `precision` significant digits."
    with localcontext() as ctx:
        ctx.prec = precision + 2
        value = Decimal(1).exp()
        ctx.prec = precision
        return +value

def decimal_round(d: Decimal, digits: int) -> Decimal:
    "Rounds to `digits` significant digits."
    with localcontext() as ctx:
        ctx.prec = max(digits, 1)
        ctx.rounding = ROUND_HALF_EVEN
        return +d

def snap(x, epsilon: float):
    "Replaces a float or Decimal within `epsilon` of an integer by that integer."
    nearest = round(x)
    if abs(x - nearest) < epsilon:
        return type(x)(nearest)
    return x

def decimal_cos(x: Decimal, precision: int) -> Decimal:
    "Cosine by its Taylor series, to `precision` significant digits."
    with localcontext() as ctx:
        ctx.prec = precision + 4
        i, last, total, fact, num, sign = 0, Decimal(0), Decimal(1), 1, Decimal(1), 1
        while total != last:
            last = total
            i += 2
            fact *= i * (i - 1)
            num *= x * x
            sign = -sign
            total += sign * num / fact
        ctx.prec = precision
        return +total

def decimal_sin(x: Decimal, precision: int) -> Decimal:
    "Sine by its Taylor series, to `precision` significant digits."
    with localcontext() as ctx:
        ctx.prec = precision + 4
        i, last, total, fact, num, sign = 1, Decimal(0), x, 1, x, 1
        while total != last:
            last = total
            i += 2
            fact *= i * (i - 1)
            num *= x * x
            sign = -sign
            total += sign * num / fact
        ctx.prec = precision
        return +total


#
# Formatting
#

def plain_decimal(d: Decimal) -> str:
    "Decimal string without exponent or trailing zeros."
    d = d.normalize()
    if d == d.to_integral_value():
        return int_text(int(d))
    text = format(d, 'f')
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return text

def show_decimal(q: Rational, digits: int) -> str:
    return plain_decimal(decimal_round(q.to_decimal(digits + 2), digits))

def show_scientific(q: Rational, digits: int) -> str:
    if q.is_zero():
        return '0'
    d = decimal_round(q.to_decimal(digits + 2), digits).normalize()
    sign, ds, exp = d.as_tuple()
    assert isinstance(exp, int)
    mantissa_digits = ''.join(map(str, ds)).rstrip('0') or '0'
    exponent = exp + len(ds) - 1
    mantissa = mantissa_digits[0]
    if len(mantissa_digits) > 1:
        mantissa += '.' + mantissa_digits[1:]
    prefix = '-' if sign else ''
    if exponent == 0:
        return prefix + mantissa
    return f'{prefix}{mantissa}e{exponent}'

def show_mixed(q: Rational) -> str:
    whole, part = q.whole_and_part()
    if whole == 0 or part.is_zero():
        return str(q)
    if whole < 0:
        return f'{int_text(whole)}-{part.abs()}'
    return f'{int_text(whole)}+{part}'

def show_recurring(q: Rational, digits: int) -> str:
    """Decimal expansion with the repeating block quoted, e.g., 1/6 as 0.1'6'.

    Falls back to a decimal expansion when the period is too long.

    """
    if q.is_integer():
        return int_text(q.numerator)
    sign = '-' if q.is_negative() else ''
    n, d = abs(q.numerator), q.denominator
    whole, remainder = divmod(n, d)
    seen: dict[int, int] = {}
    fraction_digits: list[str] = []
    while remainder and remainder not in seen:
        if len(fraction_digits) >= MAX_RECURRING_DIGITS:
            return show_decimal(q, digits)
        seen[remainder] = len(fraction_digits)
        remainder *= 10
        fraction_digits.append(str(remainder // d))
        remainder %= d
    if not remainder:
        return f'{sign}{int_text(whole)}.{"".join(fraction_digits)}'
    start = seen[remainder]
    fixed = ''.join(fraction_digits[:start])
    period = ''.join(fraction_digits[start:])
    return f"{sign}{int_text(whole)}.{fixed}'{period}'"

def format_number(q: Rational, fmt: NumberFormat = NumberFormat.FRACTIONS, digits: int = 16) -> str:
    "Renders a rational in the requested number format."
    if fmt is NumberFormat.FRACTIONS or q.is_integer():
        return str(q)
    if fmt is NumberFormat.DECIMALS:
        return show_decimal(q, digits)
    if fmt is NumberFormat.SCIENTIFIC:
        return show_scientific(q, digits)
    if fmt is NumberFormat.MIXED:
        return show_mixed(q)
    return show_recurring(q, digits)

def is_compound_number_text(text: str) -> bool:
    "Does a formatted number need parentheses when it is a factor?"
    return '/' in text or '+' in text or text[1:].count('-') > 0 or 'e' in text or "'" in text

def float_to_decimal(x: float) -> Decimal:
    "Shortest decimal that round-trips the float."
    if not math.isfinite(x):
        raise ValueError(f'Cannot represent {x} as a finite decimal')
    return Decimal(repr(x))
