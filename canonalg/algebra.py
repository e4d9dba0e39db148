# The insertion engine and the operator algebra
#
# add/multiply/pow decide case by case how two symbols combine. When a
# result is a composite, children are merged through insert(): a child
# whose key collides with an existing child is combined with it by
# re-entering the algebra, and the combined result is re-inserted under
# its own key. All public functions leave their arguments untouched.

from __future__ import annotations

from decimal           import Decimal, localcontext
from enum              import Enum, auto

from canonalg.context    import check_deadline, current_settings
from canonalg.exceptions import AlgebraTypeError, DivisionByZero, UndefinedError
from canonalg.numeric    import decimal_cos, decimal_e, decimal_pi, decimal_sin, snap
from canonalg.rational   import Rational, ONE, MINUS_ONE
from canonalg.symbol     import (CONST_HASH, Group, Symbol, function, infinity,
                                 invert, negate, number, power_key, radical, shell,
                                 update_hash, variable)

__all__ = ['add', 'subtract', 'multiply', 'divide', 'pow', 'expand',
           'key_for_group', 'insert', 'attach', 'combine', 'pow_number',
           'substitute', 'to_decimal']

#
# Constants
#

TRIAL_DIVISION_LIMIT = 1000   # Largest trial factor when extracting perfect powers from radicals
FACTORIAL_NAMES = ('factorial', 'fact')
FAMILY = (Group.P, Group.S, Group.EX, Group.FN)   # groups that merge into a PolyLike by base


#
# Keys
#

def key_for_group(child: Symbol, parent: Group) -> str:
    """The slot of `child` inside a composite of group `parent`.

    Two children with the same key are merged on insertion: in a sum
    they are added, in a product multiplied, and in a PolyLike (keyed by
    power) their multipliers are summed.

    """
    from canonalg.output import base_text, term_text

    group = child.group
    if group is Group.N:
        return CONST_HASH
    if parent is Group.PL:
        return power_key(child.power)
    if group in (Group.P, Group.S):
        return child.value
    if parent is Group.CP:
        if group is Group.PL and child.is_linear():
            return child.value
        if group in (Group.PL, Group.CB, Group.CP):
            return term_text(child)
    return base_text(child)

def radical_base(s: Symbol) -> Rational:
    "The integer base of a P symbol."
    return Rational.from_string(s.value)

def same_term(a: Symbol, b: Symbol) -> bool:
    "Do the symbols differ at most in their multipliers?"
    from canonalg.output import term_text
    return a.group is b.group and term_text(a) == term_text(b)

def same_base(a: Symbol, b: Symbol) -> bool:
    "Are both symbols powers of one base?"
    if a.group is Group.N or b.group is Group.N:
        return False
    return key_for_group(a, Group.CB) == key_for_group(b, Group.CB)


#
# Insertion Engine
#

class Action(Enum):
    ATTACH = auto()    # insert into a sum or PolyLike
    COMBINE = auto()   # insert into a product

def attach(parent: Symbol, child: Symbol) -> None:
    insert(parent, child, Action.ATTACH)

def combine(parent: Symbol, child: Symbol) -> None:
    insert(parent, child, Action.COMBINE)

def insert(parent: Symbol, child: Symbol, action: Action) -> None:
    """Merges `child` into the composite `parent` in place.

    `parent` must be a fresh shell or clone owned by the caller; finish
    with finalize() to restore the canonical invariants.

    """
    check_deadline()
    assert parent.symbols is not None
    child = child.clone()

    if action is Action.COMBINE:
        parent.multiplier = parent.multiplier.multiply(child.multiplier)
        child.multiplier = ONE
        if child.group is Group.N:
            return
        if child.group is Group.CB and child.is_linear():
            for grandchild in child.children():
                insert(parent, grandchild, action)
            return
        if child.group is Group.P and not child.value.startswith('-'):
            for key, other in parent.each():
                if (other.group is Group.P and other.power == child.power and
                   not other.value.startswith('-') and other.value != child.value):
                    del parent.symbols[key]
                    merged = pow_number(radical_base(other).multiply(radical_base(child)), child.power)
                    insert(parent, merged, action)
                    return
        if _is_factorial(child):
            for key, other in parent.each():
                ratio = factorial_ratio(other, child)
                if ratio is not None:
                    del parent.symbols[key]
                    insert(parent, ratio, action)
                    return
        key = key_for_group(child, Group.CB)
        existing = parent.symbols.get(key)
        if existing is None:
            parent.symbols[key] = child
            return
        del parent.symbols[key]
        insert(parent, multiply(existing, child), action)
        return

    if child.is_zero():
        return
    flattens = child.is_linear() and (
        (parent.group is Group.CP and child.group is Group.CP) or
        (parent.group is Group.PL and child.group is Group.PL and child.value == parent.value)
    )
    if flattens:
        for grandchild in child.children():
            grandchild.multiplier = grandchild.multiplier.multiply(child.multiplier)
            insert(parent, grandchild, action)
        return
    key = key_for_group(child, parent.group)
    existing = parent.symbols.get(key)
    if existing is None:
        parent.symbols[key] = child
        return
    del parent.symbols[key]
    merged = add(existing, child)
    if not merged.is_zero():
        insert(parent, merged, action)

def finalize(parent: Symbol) -> Symbol:
    """Restores the invariants of a composite after insertion.

    An empty composite becomes a number (0 for sums, the multiplier for
    products) and a single child is unwrapped with the multiplier
    transferred.

    """
    if parent.group is Group.CB and parent.multiplier.is_zero():
        return number(0)
    if parent.length == 0:
        return number(parent.multiplier if parent.group is Group.CB else 0)
    if parent.length == 1 and parent.is_linear():
        only = parent.children()[0]
        only.multiplier = only.multiplier.multiply(parent.multiplier)
        return only
    update_hash(parent)
    return parent

def _distributed(s: Symbol) -> Symbol:
    "A clone of a linear sum with its multiplier pushed into the terms."
    c = s.clone()
    if not c.multiplier.is_one():
        for child in c.children():
            child.multiplier = child.multiplier.multiply(c.multiplier)
        c.multiplier = ONE
    return c


#
# Addition
#

def add(a: Symbol, b: Symbol) -> Symbol:
    "The canonical sum a + b."
    check_deadline()
    if a.is_zero():
        return b.clone()
    if b.is_zero():
        return a.clone()
    if a.is_infinity() or b.is_infinity():
        return _add_infinity(a, b)
    if a.group is Group.N and b.group is Group.N:
        return number(a.multiplier.add(b.multiplier))
    if same_term(a, b):
        m = a.multiplier.add(b.multiplier)
        if m.is_zero():
            return number(0)
        return a.with_multiplier(m)

    if a.group < b.group:
        a, b = b, a
    if b.group is Group.CP and b.is_linear() and not (a.group is Group.CP and a.is_linear()):
        a, b = b, a

    if a.group is Group.CP and a.is_linear():
        receiver = _distributed(a)
        attach(receiver, b)
        return finalize(receiver)

    if a.group is Group.PL and a.is_linear() and _joins_polylike(a, b):
        receiver = _distributed(a)
        attach(receiver, b)
        return finalize(receiver)

    if a.group in FAMILY and b.group in FAMILY and key_for_group(a, Group.CP) == key_for_group(b, Group.CP):
        pl = shell(Group.PL, ONE, key_for_group(a, Group.CP))
        attach(pl, a)
        attach(pl, b)
        return finalize(pl)

    cp = shell(Group.CP)
    attach(cp, a)
    attach(cp, b)
    return finalize(cp)

def _joins_polylike(pl: Symbol, b: Symbol) -> bool:
    if b.group is Group.PL:
        return b.is_linear() and b.value == pl.value
    return b.group in FAMILY and key_for_group(b, Group.CP) == pl.value

def _add_infinity(a: Symbol, b: Symbol) -> Symbol:
    if a.is_infinity() and b.is_infinity():
        if a.multiplier.sign != b.multiplier.sign:
            raise UndefinedError('Infinity-Infinity is undefined')
        return a.clone()
    return (a if a.is_infinity() else b).clone()

def subtract(a: Symbol, b: Symbol) -> Symbol:
    "The canonical difference a - b."
    return add(a, negate(b))


#
# Multiplication
#

def multiply(a: Symbol, b: Symbol) -> Symbol:
    "The canonical product a * b."
    check_deadline()
    if a.is_infinity() or b.is_infinity():
        if a.is_zero() or b.is_zero():
            raise UndefinedError('0*Infinity is undefined')
        other = b if a.is_infinity() else a
        if other.group is Group.N or other.is_infinity():
            return infinity(a.multiplier.sign * b.multiplier.sign)
    if a.is_zero() or b.is_zero():
        return number(0)
    if a.group is Group.N and b.group is Group.N:
        return number(a.multiplier.multiply(b.multiplier))
    if a.group is Group.N:
        return b.with_multiplier(b.multiplier.multiply(a.multiplier))
    if b.group is Group.N:
        return a.with_multiplier(a.multiplier.multiply(b.multiplier))

    if a.group < b.group:
        a, b = b, a
    m = a.multiplier.multiply(b.multiplier)
    a1 = a.with_multiplier(ONE)
    b1 = b.with_multiplier(ONE)

    if a1.group is Group.CB:
        combine(a1, b1)
        a1.multiplier = a1.multiplier.multiply(m)
        return finalize(a1)

    if same_base(a1, b1):
        return _scale(_merge_powers(a1, b1), m)

    if (a1.group is Group.P and b1.group is Group.P and a1.power == b1.power and
       not a1.value.startswith('-') and not b1.value.startswith('-')):
        return _scale(pow_number(radical_base(a1).multiply(radical_base(b1)), a1.power), m)

    ratio = factorial_ratio(a1, b1)
    if ratio is not None:
        return _scale(ratio, m)

    cb = shell(Group.CB)
    combine(cb, a1)
    combine(cb, b1)
    cb.multiplier = cb.multiplier.multiply(m)
    return finalize(cb)

def _scale(s: Symbol, m: Rational) -> Symbol:
    if m.is_one():
        return s
    return multiply(number(m), s)

def _power_base(s: Symbol) -> Symbol:
    if s.group is Group.P:
        return number(Rational.from_string(s.value))
    return s.base()

def _power_symbol(p) -> Symbol:
    return p.clone() if isinstance(p, Symbol) else number(p)

def _merge_powers(a: Symbol, b: Symbol) -> Symbol:
    "a^p * b^q for a shared base, with unit multipliers."
    base = _power_base(a if a.group is Group.EX or b.group is not Group.EX else b)
    if isinstance(a.power, Rational) and isinstance(b.power, Rational):
        p = a.power.add(b.power)
        if p.is_zero():
            return number(1)
        return pow(base, number(p))
    return pow(base, add(_power_symbol(a.power), _power_symbol(b.power)))

def _is_factorial(s: Symbol) -> bool:
    return (s.group is Group.FN and s.value in FACTORIAL_NAMES and
            isinstance(s.power, Rational) and s.power.abs().is_one())

def factorial_ratio(a: Symbol, b: Symbol) -> Symbol | None:
    """Simplifies factorial(x+k)/factorial(x) into (x+1)*...*(x+k) for small k.

    Returns None unless one operand is a factorial and the other its
    reciprocal with an argument differing by an integer no larger than
    the factorial expansion limit.

    """
    if not (_is_factorial(a) and _is_factorial(b)):
        return None
    if a.power == b.power or not (a.multiplier.is_one() and b.multiplier.is_one()):
        return None
    top, bottom = (a, b) if a.power.is_positive() else (b, a)
    assert top.args is not None and bottom.args is not None
    diff = subtract(top.args[0], bottom.args[0])
    if not diff.is_integer():
        return None
    k = diff.multiplier.numerator
    if abs(k) > current_settings().factorial_expansion_limit:
        return None
    low = bottom.args[0] if k >= 0 else top.args[0]
    product = number(1)
    for j in range(1, abs(k) + 1):
        product = multiply(product, add(low, number(j)))
    return product if k >= 0 else pow(product, number(-1))

#
# Division
#

def divide(a: Symbol, b: Symbol) -> Symbol:
    "The canonical quotient a / b."
    check_deadline()
    if b.is_zero():
        raise DivisionByZero('Division by zero')
    if a.is_infinity() and b.is_infinity():
        raise UndefinedError('Infinity/Infinity is undefined')
    if b.is_infinity() and a.group is Group.N:
        return number(0)
    return multiply(a, invert(b))


#
# Powers
#

def pow(a: Symbol, b: Symbol) -> Symbol:
    "The canonical power a ^ b."
    check_deadline()
    if b.group is not Group.N:
        return _pow_symbolic(a, b)

    p = b.multiplier
    if a.group is Group.N:
        return pow_number(a.multiplier, p)
    if a.is_infinity():
        if p.is_zero():
            raise UndefinedError('Infinity^0 is undefined')
        if p.is_negative():
            return number(0)
        return infinity(-1 if a.multiplier.is_negative() and p.is_odd() else 1)
    if p.is_zero():
        return number(1)
    if p.is_one():
        return a.clone()

    coefficient = pow_number(a.multiplier, p)
    return multiply(coefficient, _pow_core(a.with_multiplier(ONE), p))

def _pow_core(core: Symbol, p: Rational) -> Symbol:
    group = core.group
    if group is Group.CB:
        result = number(1)
        for child in core.children():
            result = multiply(result, pow(child, number(p)))
        return result
    if group is Group.P:
        assert isinstance(core.power, Rational)
        return pow_number(Rational.from_string(core.value), core.power.multiply(p))
    if group is Group.EX:
        assert isinstance(core.power, Symbol)
        return pow(core.base(), multiply(core.power, number(p)))

    old = core.power
    assert isinstance(old, Rational)
    new = old.multiply(p)
    if new.is_zero():
        return number(1)
    if core.is_imaginary_unit(current_settings().imaginary) and new.is_integer():
        return imaginary_power(new.numerator)
    if old.is_even() and p.denominator % 2 == 0 and new.is_odd():
        absolute = function('abs', [core.base()])
        absolute.power = new
        return absolute
    result = core.clone()
    result.power = new
    return result

def _pow_symbolic(a: Symbol, b: Symbol) -> Symbol:
    "a ^ b for a non-numeric exponent b."
    if a.group is Group.N:
        q = a.multiplier
        if q.is_zero():
            return number(0)
        if q.is_one():
            return number(1)
        ex = number(q).convert(Group.EX)
        ex.power = b.clone()
        return ex

    coefficient = None if a.multiplier.is_one() else _pow_symbolic(number(a.multiplier), b)
    core = a.with_multiplier(ONE)
    if core.group is Group.EX:
        assert isinstance(core.power, Symbol)
        result = pow(core.base(), multiply(core.power, b))
    elif core.group is Group.P:
        assert isinstance(core.power, Rational)
        result = pow(_power_base(core), multiply(number(core.power), b))
    else:
        assert isinstance(core.power, Rational)
        exponent = b.clone() if core.power.is_one() else multiply(number(core.power), b)
        if exponent.group is Group.N:
            result = pow(core.base(), exponent)
        else:
            result = core.base().convert(Group.EX)
            result.power = exponent
    return result if coefficient is None else multiply(coefficient, result)

def imaginary_power(k: int) -> Symbol:
    "i^k reduced modulo 4."
    i = current_settings().imaginary
    return [number(1), variable(i), number(-1), variable(i, MINUS_ONE)][k % 4]


#
# Numeric Powers
#

def integer_root(n: int, k: int) -> int:
    "The floor of the k-th root of a non-negative integer."
    if n < 2:
        return n
    x = 1 << ((n.bit_length() + k - 1) // k)
    while True:
        y = ((k - 1) * x + n // x ** (k - 1)) // k
        if y >= x:
            return x
        x = y

def perfect_power(n: int) -> tuple[int, int]:
    "Writes n = c^e with e as large as possible."
    for e in range(n.bit_length(), 1, -1):
        check_deadline()
        c = integer_root(n, e)
        if c > 1 and c ** e == n:
            return (c, e)
    return (n, 1)

def extract_root(n: int, k: int) -> tuple[int, int]:
    "Writes n = f^k * rest, removing k-th powers of small factors."
    f, rest, d = 1, n, 2
    while d <= TRIAL_DIVISION_LIMIT and d ** k <= rest:
        dk = d ** k
        while rest % dk == 0:
            rest //= dk
            f *= d
        d += 1 if d == 2 else 2
    return (f, rest)

def pow_number(base: Rational, p: Rational) -> Symbol:
    """The exact power base^p of two rationals.

    Integer powers are computed exactly; other powers are reduced to a
    rational multiplier times a radical with a power in (0, 1), e.g.,
    12^(1/2) = 2*sqrt(12/4) and 8^(2/3) = 4. Negative bases give real
    roots for odd denominators and multiples of i for square roots.

    """
    if p.is_integer():
        if base.is_zero():
            if p.is_zero():
                raise UndefinedError('0^0 is undefined')
            if p.is_negative():
                raise DivisionByZero('Zero raised to a negative power')
            return number(0)
        return number(base.pow(p.numerator))
    if base.is_zero():
        if p.is_negative():
            raise DivisionByZero('Zero raised to a negative power')
        return number(0)
    if base.is_one():
        return number(1)
    if current_settings().parse2number:
        return numeric_power(base, p)

    if base.is_negative():
        magnitude = pow_number(base.negate(), p)
        if p.denominator % 2 == 1:
            return magnitude if p.numerator % 2 == 0 else negate(magnitude)
        if p.denominator == 2:
            return multiply(magnitude, imaginary_power(p.numerator))
        whole = p.floor()
        rest = p.subtract(Rational(whole))
        sign = number(-1 if whole % 2 else 1)
        return multiply(multiply(sign, radical(-1, rest)), magnitude)

    if not base.is_integer():
        return multiply(pow_number(Rational(base.numerator), p),
                        pow_number(Rational(base.denominator), p.negate()))

    n = base.numerator
    whole = p.floor()
    r = p.subtract(Rational(whole))
    coefficient = Rational(n).pow(whole)

    c, e = perfect_power(n)
    if e > 1:
        return multiply(number(coefficient), pow_number(Rational(c), r.multiply(Rational(e))))

    f, rest = extract_root(n, r.denominator)
    if f > 1:
        coefficient = coefficient.multiply(Rational(f ** r.numerator))
        return multiply(number(coefficient), pow_number(Rational(rest), r))
    return radical(n, r, coefficient)

def numeric_power(base: Rational, p: Rational) -> Symbol:
    "base^p evaluated to the session precision; complex for even roots of negatives."
    settings = current_settings()
    with localcontext() as ctx:
        ctx.prec = settings.precision
        exponent = Decimal(p.numerator) / Decimal(p.denominator)
        magnitude = base.abs().to_decimal(settings.precision) ** exponent
        if not base.is_negative():
            return number(Rational.from_decimal(+magnitude))
        if p.denominator % 2 == 1:
            signed = magnitude if p.numerator % 2 == 0 else -magnitude
            return number(Rational.from_decimal(+signed))
        turns = p.mod(Rational(2))
        angle = decimal_pi(settings.precision + 4) * Decimal(turns.numerator) / Decimal(turns.denominator)
        re = snap(+(magnitude * decimal_cos(angle, settings.precision)), settings.trig_epsilon)
        im = snap(+(magnitude * decimal_sin(angle, settings.precision)), settings.trig_epsilon)
    real_part = number(Rational.from_decimal(re))
    imaginary_part = number(Rational.from_decimal(im))
    return add(real_part, multiply(imaginary_part, variable(settings.imaginary)))


#
# Expansion
#

def _terms(s: Symbol) -> list[Symbol]:
    if s.group in (Group.CP, Group.PL) and s.is_linear():
        return [c.with_multiplier(c.multiplier.multiply(s.multiplier)) for c in s.children()]
    return [s]

def _distribute(a: Symbol, b: Symbol) -> Symbol:
    a_terms, b_terms = _terms(a), _terms(b)
    if len(a_terms) == 1 and len(b_terms) == 1:
        return multiply(a, b)
    total = number(0)
    for x in a_terms:
        for y in b_terms:
            total = add(total, multiply(x, y))
    return total

def expand(s: Symbol) -> Symbol:
    """Distributes products over sums and positive integer powers of sums.

    The result is a sum of products with no sum raised to a positive
    integer power.

    """
    check_deadline()
    group = s.group
    if group in (Group.N, Group.P, Group.S):
        return s.clone()
    if group is Group.FN:
        c = s.clone()
        c.args = [expand(arg) for arg in s.args or []]
        return c
    if group is Group.EX:
        c = s.clone()
        c.power = expand(s.power) if isinstance(s.power, Symbol) else s.power
        return c
    if group is Group.CB:
        result = number(s.multiplier)
        for child in s.children():
            result = _distribute(result, expand(child))
        return result

    total = number(0)
    for child in s.children():
        total = add(total, expand(child))
    p = s.power
    assert isinstance(p, Rational)
    if p.is_integer() and p.numerator > 1:
        result = total
        for _ in range(p.numerator - 1):
            result = _distribute(result, total)
    elif p.is_one():
        result = total
    else:
        result = pow(total, number(p))
    return _distribute(number(s.multiplier), result)


#
# Substitution
#

def substitute(s: Symbol, name: str, value: Symbol) -> Symbol:
    "Replaces the variable `name` by `value` and rebuilds the canonical form."
    from canonalg.functions import call_builtin

    check_deadline()
    group = s.group
    m = number(s.multiplier)
    if group in (Group.N, Group.P):
        return s.clone()
    if group is Group.S:
        if s.value != name:
            return s.clone()
        return multiply(m, pow(value, _power_symbol(s.power)))
    if group is Group.EX:
        base = substitute(s.base(), name, value)
        assert isinstance(s.power, Symbol)
        return multiply(m, pow(base, substitute(s.power, name, value)))
    if group is Group.FN:
        args = [substitute(arg, name, value) for arg in s.args or []]
        return multiply(m, pow(call_builtin(s.value, args), _power_symbol(s.power)))
    if group is Group.CB:
        result = m
        for child in s.children():
            result = multiply(result, substitute(child, name, value))
        return result

    total = number(0)
    for child in s.children():
        total = add(total, substitute(child, name, value))
    return multiply(m, pow(total, _power_symbol(s.power)))


#
# Numeric Values
#

def to_decimal(s: Symbol, precision: int | None = None) -> Decimal | None:
    """The numeric value of a constant symbol, or None if it has free variables.

    The named constants pi and e count as constants.

    """
    check_deadline()
    precision = precision or current_settings().precision
    with localcontext() as ctx:
        ctx.prec = precision
        m = s.multiplier.to_decimal(precision)
        group = s.group
        if group is Group.N:
            return m
        if group is Group.S:
            if s.value == 'pi':
                value = decimal_pi(precision)
            elif s.value == 'e':
                value = decimal_e(precision)
            else:
                return None
        elif group is Group.P:
            if s.value.startswith('-'):
                return None
            value = Decimal(s.value)
        elif group is Group.EX:
            base = to_decimal(s.base(), precision)
            assert isinstance(s.power, Symbol)
            exponent = to_decimal(s.power, precision)
            if base is None or exponent is None or (base < 0 and exponent != exponent.to_integral_value()):
                return None
            return m * base ** exponent
        elif group is Group.FN:
            if s.value != 'abs' or not s.args:
                return None
            inner = to_decimal(s.args[0], precision)
            if inner is None:
                return None
            value = abs(inner)
        elif group is Group.CB:
            value = Decimal(1)
            for child in s.children():
                factor = to_decimal(child, precision)
                if factor is None:
                    return None
                value *= factor
            return m * value
        else:
            value = Decimal(0)
            for child in s.children():
                term = to_decimal(child, precision)
                if term is None:
                    return None
                value += term

        p = s.power
        assert isinstance(p, Rational)
        if p.is_one():
            return m * value
        if value < 0 and not p.is_integer():
            return None
        if value == 0 and p.is_negative():
            raise DivisionByZero('Zero raised to a negative power')
        if p.is_integer():
            return m * value ** p.numerator
        return m * value ** (Decimal(p.numerator) / Decimal(p.denominator))

def from_decimal(d: Decimal) -> Symbol:
    return number(Rational.from_decimal(d))

def require_symbol(x, operation: str) -> Symbol:
    if not isinstance(x, Symbol):
        raise AlgebraTypeError(f'{operation} requires symbolic operands, got {type(x).__name__}')
    return x
