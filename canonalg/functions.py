# Built-in functions dispatched by the evaluator
#
# Each handler receives Symbols and returns a Symbol. Exact special
# values are recognized first (sin(0), log(1), sqrt(8), ...). When
# parse2number is on and every argument is constant, the function is
# evaluated numerically. Otherwise the call stays a symbolic Function
# node.

from __future__ import annotations

import logging
import math

from dataclasses       import dataclass
from decimal           import Decimal, localcontext, ROUND_CEILING, ROUND_DOWN, ROUND_FLOOR, ROUND_HALF_UP
from typing            import Callable

from canonalg.algebra    import divide, multiply, pow, pow_number, to_decimal
from canonalg.context    import current_session, current_settings
from canonalg.exceptions import AlgebraTypeError, DivisionByZero, UndefinedError
from canonalg.numeric    import float_to_decimal, snap
from canonalg.rational   import Rational, ONE, HALF, check_digits, int_text
from canonalg.symbol     import Group, Symbol, function, negate, number, variable

logger = logging.getLogger(__name__)


#
# Registry
#

@dataclass(frozen=True)
class FunctionSpec:
    name: str
    handler: Callable[..., Symbol]
    min_args: int = 1
    max_args: int | None = 1

    def check_arity(self, count: int) -> None:
        if count < self.min_args or (self.max_args is not None and count > self.max_args):
            if self.max_args is None:
                expected = f'at least {self.min_args}'
            elif self.min_args == self.max_args:
                expected = str(self.min_args)
            else:
                expected = f'{self.min_args} to {self.max_args}'
            raise AlgebraTypeError(f'{self.name} expects {expected} argument(s), got {count}')

class FunctionRegistry:
    "Built-in function handlers keyed by name."
    def __init__(self, specs: dict[str, FunctionSpec] | None = None) -> None:
        self._specs: dict[str, FunctionSpec] = dict(specs or {})

    def copy(self) -> FunctionRegistry:
        return FunctionRegistry(self._specs)

    def __contains__(self, name: str) -> bool:
        return name in self._specs

    @property
    def names(self) -> frozenset[str]:
        return frozenset(self._specs)

    def register(self, name: str, handler: Callable[..., Symbol],
                 min_args: int = 1, max_args: int | None = 1) -> FunctionSpec:
        spec = FunctionSpec(name, handler, min_args, max_args)
        self._specs[name] = spec
        return spec

    def call(self, name: str, args: list) -> Symbol:
        spec = self._specs[name]
        spec.check_arity(len(args))
        for arg in args:
            if not isinstance(arg, Symbol):
                raise AlgebraTypeError(f'{name} expects symbolic arguments, got {type(arg).__name__}')
        return spec.handler(*args)

def call_builtin(name: str, args: list[Symbol]) -> Symbol:
    "Calls a registered function, or builds a symbolic call for an unknown name."
    session = current_session()
    registry = session.functions if session is not None else BUILTINS
    if name in registry:
        return registry.call(name, args)
    return function(name, args)


#
# Helpers
#

def constant_values(*args: Symbol) -> list[Decimal] | None:
    "Numeric argument values when parse2number is on and all arguments are constant."
    if not current_settings().parse2number:
        return None
    values = [to_decimal(a) for a in args]
    if any(v is None for v in values):
        return None
    return values  # type: ignore

def decimal_number(d: Decimal) -> Symbol:
    return number(Rational.from_decimal(+d))

def float_number(x: float) -> Symbol:
    logger.debug('numeric value %r computed in floating point', x)
    if not math.isfinite(x):
        raise UndefinedError(f'Numeric result {x} is not finite')
    return number(Rational.from_decimal(float_to_decimal(snap(x, current_settings().trig_epsilon))))

def pi_times(q: Rational) -> Symbol:
    return multiply(number(q), variable('pi'))

def is_named(s: Symbol, name: str) -> bool:
    return s.group is Group.S and s.value == name and s.is_linear() and s.multiplier.is_one()

def odd(name: str, x: Symbol, handler: Callable[[Symbol], Symbol]) -> Symbol:
    "f(-x) = -f(x)"
    if x.multiplier.is_negative():
        return negate(handler(negate(x)))
    return function(name, [x])

def even(name: str, x: Symbol, handler: Callable[[Symbol], Symbol]) -> Symbol:
    "f(-x) = f(x)"
    if x.multiplier.is_negative():
        return handler(negate(x))
    return function(name, [x])


#
# Roots, Powers, and Logarithms
#

def sqrt(x: Symbol) -> Symbol:
    return pow(x, number(HALF))

def cbrt(x: Symbol) -> Symbol:
    return pow(x, number(Rational(1, 3)))

def nthroot(x: Symbol, n: Symbol) -> Symbol:
    if n.is_zero():
        raise DivisionByZero('nthroot with a zero index')
    return pow(x, divide(number(1), n))

def abs_(x: Symbol) -> Symbol:
    if x.group is Group.N:
        return number(x.multiplier.abs())
    if x.group is Group.FN and x.value == 'abs' and x.is_linear():
        return x.with_multiplier(x.multiplier.abs())
    value = to_decimal(x)
    if value is not None:
        return x.clone() if value >= 0 else negate(x)
    m = x.multiplier.abs()
    core = x.with_multiplier(ONE)
    if isinstance(core.power, Rational) and core.power.is_even():
        return core.with_multiplier(m)
    return multiply(number(m), function('abs', [core]))

def exp(x: Symbol) -> Symbol:
    values = constant_values(x)
    if values is not None:
        with localcontext() as ctx:
            ctx.prec = current_settings().precision
            return decimal_number(values[0].exp())
    return pow(variable('e'), x)

def log(x: Symbol, base: Symbol | None = None) -> Symbol:
    if base is not None:
        if x.equals(base):
            return number(1)
        if base.is_one() or base.is_zero():
            raise UndefinedError(f'log with base {base.text()} is undefined')
        return divide(log(x), log(base))
    if x.is_zero():
        raise UndefinedError('log(0) is undefined')
    if x.is_one():
        return number(0)
    if is_named(x, 'e'):
        return number(1)
    if x.group is Group.S and x.value == 'e' and x.multiplier.is_one() and isinstance(x.power, Rational):
        return number(x.power)
    if x.group is Group.EX and x.previous_group is Group.S and x.value == 'e' and x.multiplier.is_one():
        assert isinstance(x.power, Symbol)
        return x.power.clone()
    values = constant_values(x)
    if values is not None:
        if values[0] <= 0:
            raise UndefinedError(f'log of a non-positive value {x.text()}')
        with localcontext() as ctx:
            ctx.prec = current_settings().precision
            return decimal_number(values[0].ln())
    return function('log', [x])

def _radix_exponent(n: int, radix: int) -> int | None:
    "k with n == radix**k, or None."
    k = 0
    while n > 1 and n % radix == 0:
        n //= radix
        k += 1
    return k if n == 1 else None

def _log_exact(name: str, x: Symbol, radix: int) -> Symbol:
    if x.is_zero():
        raise UndefinedError(f'{name}(0) is undefined')
    if x.is_one():
        return number(0)
    if x.group is Group.N and x.multiplier.is_positive():
        up = _radix_exponent(x.multiplier.numerator, radix)
        down = _radix_exponent(x.multiplier.denominator, radix)
        if up is not None and down is not None:
            return number(up - down)
    values = constant_values(x)
    if values is not None:
        if values[0] <= 0:
            raise UndefinedError(f'{name} of a non-positive value {x.text()}')
        with localcontext() as ctx:
            ctx.prec = current_settings().precision
            return decimal_number(values[0].ln() / Decimal(radix).ln())
    return function(name, [x])

def log10(x: Symbol) -> Symbol:
    return _log_exact('log10', x, 10)

def log2(x: Symbol) -> Symbol:
    return _log_exact('log2', x, 2)


#
# Trigonometric
#

def _sin_pi(q: Rational) -> Symbol | None:
    "Exact sin(q*pi) for q with denominator 1, 2, 3, 4, or 6."
    q = q.subtract(Rational((q.floor() // 2) * 2))
    sign = 1
    if q > Rational(1):
        q, sign = q.subtract(ONE), -1
    if q > HALF:
        q = ONE.subtract(q)
    table = {
        Rational(0): number(0),
        Rational(1, 6): number(HALF),
        Rational(1, 4): multiply(number(HALF), pow_number(Rational(2), HALF)),
        Rational(1, 3): multiply(number(HALF), pow_number(Rational(3), HALF)),
        HALF: number(1),
    }
    value = table.get(q)
    if value is None:
        return None
    return value if sign > 0 else negate(value)

def _pi_multiple(x: Symbol) -> Rational | None:
    if x.group is Group.S and x.value == 'pi' and x.is_linear():
        return x.multiplier
    return None

def sin(x: Symbol) -> Symbol:
    if x.is_zero():
        return number(0)
    q = _pi_multiple(x)
    if q is not None and (exact := _sin_pi(q)) is not None:
        return exact
    values = constant_values(x)
    if values is not None:
        return float_number(math.sin(float(values[0])))
    return odd('sin', x, sin)

def cos(x: Symbol) -> Symbol:
    if x.is_zero():
        return number(1)
    q = _pi_multiple(x)
    if q is not None and (exact := _sin_pi(q.add(HALF))) is not None:
        return exact
    values = constant_values(x)
    if values is not None:
        return float_number(math.cos(float(values[0])))
    return even('cos', x, cos)

def _ratio(name: str, num: Symbol, den: Symbol) -> Symbol:
    if den.is_zero():
        raise UndefinedError(f'{name} is undefined at this argument')
    return divide(num, den)

def tan(x: Symbol) -> Symbol:
    if x.is_zero():
        return number(0)
    q = _pi_multiple(x)
    if q is not None:
        s, c = _sin_pi(q), _sin_pi(q.add(HALF))
        if s is not None and c is not None:
            return _ratio('tan', s, c)
    values = constant_values(x)
    if values is not None:
        if abs(math.cos(float(values[0]))) < current_settings().trig_epsilon:
            raise UndefinedError('tan is undefined at odd multiples of pi/2')
        return float_number(math.tan(float(values[0])))
    return odd('tan', x, tan)

def sec(x: Symbol) -> Symbol:
    c = cos(x)
    if c.group is not Group.FN:
        return _ratio('sec', number(1), c)
    return even('sec', x, sec)

def csc(x: Symbol) -> Symbol:
    s = sin(x)
    if s.group is not Group.FN:
        return _ratio('csc', number(1), s)
    return odd('csc', x, csc)

def cot(x: Symbol) -> Symbol:
    s, c = sin(x), cos(x)
    if s.group is not Group.FN and c.group is not Group.FN:
        return _ratio('cot', c, s)
    return odd('cot', x, cot)

def asin(x: Symbol) -> Symbol:
    if x.is_zero():
        return number(0)
    if x.is_one():
        return pi_times(HALF)
    values = constant_values(x)
    if values is not None:
        if abs(values[0]) > 1:
            raise UndefinedError(f'asin is undefined for {x.text()}')
        return float_number(math.asin(float(values[0])))
    return odd('asin', x, asin)

def acos(x: Symbol) -> Symbol:
    if x.is_one():
        return number(0)
    if x.is_zero():
        return pi_times(HALF)
    values = constant_values(x)
    if values is not None:
        if abs(values[0]) > 1:
            raise UndefinedError(f'acos is undefined for {x.text()}')
        return float_number(math.acos(float(values[0])))
    if x.group is Group.N and x.multiplier == Rational(-1):
        return variable('pi')
    return function('acos', [x])

def atan(x: Symbol) -> Symbol:
    if x.is_zero():
        return number(0)
    if x.is_one():
        return pi_times(Rational(1, 4))
    values = constant_values(x)
    if values is not None:
        return float_number(math.atan(float(values[0])))
    return odd('atan', x, atan)

def atan2(y: Symbol, x: Symbol) -> Symbol:
    values = constant_values(y, x)
    if values is not None:
        return float_number(math.atan2(float(values[0]), float(values[1])))
    if y.is_zero() and x.group is Group.N and x.multiplier.is_positive():
        return number(0)
    return function('atan2', [y, x])

def sinh(x: Symbol) -> Symbol:
    if x.is_zero():
        return number(0)
    values = constant_values(x)
    if values is not None:
        return float_number(math.sinh(float(values[0])))
    return odd('sinh', x, sinh)

def cosh(x: Symbol) -> Symbol:
    if x.is_zero():
        return number(1)
    values = constant_values(x)
    if values is not None:
        return float_number(math.cosh(float(values[0])))
    return even('cosh', x, cosh)

def tanh(x: Symbol) -> Symbol:
    if x.is_zero():
        return number(0)
    values = constant_values(x)
    if values is not None:
        return float_number(math.tanh(float(values[0])))
    return odd('tanh', x, tanh)


#
# Integer Valued
#

def _factorial_digits(n: int) -> float:
    "Approximate decimal digits of n!."
    return math.lgamma(min(max(n, 0), 10**9) + 1) / math.log(10)

def factorial(x: Symbol) -> Symbol:
    if x.group is Group.N:
        q = x.multiplier
        if q.is_integer():
            if q.is_negative():
                raise UndefinedError(f'factorial of the negative integer {q}')
            check_digits(_factorial_digits(q.numerator), f'factorial({q})')
            return number(math.factorial(q.numerator))
        values = constant_values(x)
        if values is not None:
            return float_number(math.gamma(float(values[0]) + 1))
    return function('factorial', [x])

def dfactorial(x: Symbol) -> Symbol:
    if x.is_integer():
        n = x.multiplier.numerator
        if n < -1:
            raise UndefinedError(f'double factorial of {int_text(n)}')
        check_digits(_factorial_digits(n) / 2, f'dfactorial({int_text(n)})')
        product = 1
        while n > 1:
            product *= n
            n -= 2
        return number(product)
    return function('dfactorial', [x])

def mod(a: Symbol, b: Symbol) -> Symbol:
    if b.is_zero():
        raise DivisionByZero('Modulo by zero')
    if a.group is Group.N and b.group is Group.N:
        return number(a.multiplier.mod(b.multiplier))
    values = constant_values(a, b)
    if values is not None:
        with localcontext() as ctx:
            ctx.prec = current_settings().precision
            return decimal_number(values[0] % values[1])
    return function('mod', [a, b])

def percent(x: Symbol) -> Symbol:
    return divide(x, number(100))

def _integral(name: str, x: Symbol, rounding: str) -> Symbol:
    d = to_decimal(x)
    if d is None:
        return function(name, [x])
    return number(int(d.to_integral_value(rounding=rounding)))

def floor(x: Symbol) -> Symbol:
    if x.group is Group.N:
        return number(x.multiplier.floor())
    return _integral('floor', x, ROUND_FLOOR)

def ceil(x: Symbol) -> Symbol:
    if x.group is Group.N:
        return number(x.multiplier.ceil())
    return _integral('ceil', x, ROUND_CEILING)

def trunc(x: Symbol) -> Symbol:
    if x.group is Group.N:
        return number(x.multiplier.trunc())
    return _integral('trunc', x, ROUND_DOWN)

def round_(x: Symbol, places: Symbol | None = None) -> Symbol:
    digits = 0
    if places is not None:
        if not places.is_integer():
            raise AlgebraTypeError('round expects an integer number of decimal places')
        digits = places.multiplier.numerator
    if x.group is Group.N:
        d = x.multiplier.to_decimal(len(str(x.multiplier)) + digits + 2)
    else:
        d = to_decimal(x)
        if d is None:
            return function('round', [x] if places is None else [x, places])
    quantum = Decimal(1).scaleb(-digits)
    with localcontext() as ctx:
        ctx.prec = max(current_settings().precision, len(str(d)) + digits + 2)
        return decimal_number(d.quantize(quantum, rounding=ROUND_HALF_UP))

def sign(x: Symbol) -> Symbol:
    if x.group is Group.N:
        return number(x.multiplier.sign)
    d = to_decimal(x)
    if d is not None:
        return number((d > 0) - (d < 0))
    return function('sign', [x])

def _extreme(name: str, args: tuple[Symbol, ...], pick) -> Symbol:
    values = [to_decimal(a) for a in args]
    if any(v is None for v in values):
        return function(name, list(args))
    index = pick(range(len(args)), key=lambda k: values[k])
    return args[index].clone()

def min_(*args: Symbol) -> Symbol:
    return _extreme('min', args, min)

def max_(*args: Symbol) -> Symbol:
    return _extreme('max', args, max)


#
# Default Registry
#

BUILTINS = FunctionRegistry()
for _name, _handler, _min, _max in [
        ('sqrt', sqrt, 1, 1),
        ('cbrt', cbrt, 1, 1),
        ('nthroot', nthroot, 2, 2),
        ('abs', abs_, 1, 1),
        ('exp', exp, 1, 1),
        ('log', log, 1, 2),
        ('log10', log10, 1, 1),
        ('log2', log2, 1, 1),
        ('sin', sin, 1, 1),
        ('cos', cos, 1, 1),
        ('tan', tan, 1, 1),
        ('sec', sec, 1, 1),
        ('csc', csc, 1, 1),
        ('cot', cot, 1, 1),
        ('asin', asin, 1, 1),
        ('acos', acos, 1, 1),
        ('atan', atan, 1, 1),
        ('atan2', atan2, 2, 2),
        ('sinh', sinh, 1, 1),
        ('cosh', cosh, 1, 1),
        ('tanh', tanh, 1, 1),
        ('factorial', factorial, 1, 1),
        ('fact', factorial, 1, 1),
        ('dfactorial', dfactorial, 1, 1),
        ('mod', mod, 2, 2),
        ('floor', floor, 1, 1),
        ('ceil', ceil, 1, 1),
        ('round', round_, 1, 2),
        ('trunc', trunc, 1, 1),
        ('sign', sign, 1, 1),
        ('min', min_, 1, None),
        ('max', max_, 1, None),
]:
    BUILTINS.register(_name, _handler, _min, _max)
