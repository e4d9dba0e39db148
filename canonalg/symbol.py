# The canonical expression node
#
# A Symbol is tagged by its group. Composite groups (PL, CB, CP) hold
# their children in a dict keyed by key_for_group(); the key decides
# which children collide and get merged by the insertion engine in
# canonalg.algebra. Every transformation returns a new Symbol; the
# in-place helpers here are only applied to fresh clones while a result
# is being built.

from __future__ import annotations

from collections.abc   import Iterator
from dataclasses       import dataclass, field
from enum              import IntEnum
from typing            import Union
from typing_extensions import Self

from rich.markup       import escape

from canonalg.exceptions import AlgebraTypeError, DivisionByZero
from canonalg.operators  import BracketKind, CLOSER_OF
from canonalg.rational   import Rational, ONE, MINUS_ONE, int_text


CONST_HASH = '#'
INFINITY = 'Infinity'


class Group(IntEnum):
    "Structural tags, ordered so that the larger group receives the smaller in the algebra."
    N = 1    # number
    P = 2    # integer base with a non-integer rational power
    S = 3    # variable
    EX = 4   # base with a symbolic power
    FN = 5   # function applied to arguments
    PL = 6   # terms sharing one base with differing powers
    CB = 7   # product
    CP = 8   # sum

    @property
    def label(self) -> str:
        return GROUP_LABELS[self]

GROUP_LABELS = {
    Group.N: 'Number',
    Group.P: 'Power',
    Group.S: 'Variable',
    Group.EX: 'Exponential',
    Group.FN: 'Function',
    Group.PL: 'PolyLike',
    Group.CB: 'Product',
    Group.CP: 'Sum',
}

COMPOSITES = (Group.PL, Group.CB, Group.CP)
BASE_KEYED = (Group.P, Group.S)

Power = Union[Rational, 'Symbol']


class Symbol:
    """A canonical algebraic expression.

    Every symbol is multiplier * structure^power. The structure depends
    on the group: a number (N) carries its value entirely in the
    multiplier; P holds an integer base in `value`; S holds a name; FN
    holds a function name and `args`; PL, CB and CP hold `symbols`; an
    EX is any of these raised to a Symbol power, with the original group
    kept in `previous_group`.

    """
    __slots__ = ('group', 'value', 'multiplier', 'power', 'symbols', 'args', 'previous_group')

    def __init__(
            self,
            group: Group,
            value: str = CONST_HASH,
            multiplier: Rational = ONE,
            power: Power = ONE
    ) -> None:
        self.group = group
        self.value = value
        self.multiplier = multiplier
        self.power: Power = power
        self.symbols: dict[str, Symbol] | None = {} if group in COMPOSITES else None
        self.args: list[Symbol] | None = None
        self.previous_group: Group | None = None

    #
    # Copying
    #

    def clone(self) -> Symbol:
        "A deep copy."
        c = Symbol.__new__(Symbol)
        c.group = self.group
        c.value = self.value
        c.multiplier = self.multiplier
        c.power = self.power.clone() if isinstance(self.power, Symbol) else self.power
        c.symbols = None if self.symbols is None else {k: s.clone() for k, s in self.symbols.items()}
        c.args = None if self.args is None else [a.clone() for a in self.args]
        c.previous_group = self.previous_group
        return c

    def with_multiplier(self, multiplier: Rational) -> Symbol:
        c = self.clone()
        c.multiplier = multiplier
        if c.group is Group.N:
            c.value = CONST_HASH
        return c

    #
    # Structure
    #

    @property
    def length(self) -> int:
        return len(self.symbols) if self.symbols is not None else 0

    def children(self) -> list[Symbol]:
        return list(self.symbols.values()) if self.symbols else []

    def each(self) -> Iterator[tuple[str, Symbol]]:
        "Iterates over (key, child) pairs of a composite."
        if self.symbols:
            yield from list(self.symbols.items())

    def base(self) -> Symbol:
        """The structure without multiplier or power.

        For an EX this restores the original group.

        """
        b = self.clone()
        b.multiplier = ONE
        b.power = ONE
        if b.group is Group.EX:
            assert b.previous_group is not None
            b.group = b.previous_group
            b.previous_group = None
            if b.group is Group.N:
                b.multiplier = Rational.from_string(self.value)
                b.value = CONST_HASH
        return b

    #
    # Predicates
    #

    def is_number(self) -> bool:
        return self.group is Group.N

    def is_zero(self) -> bool:
        return self.group is Group.N and self.multiplier.is_zero()

    def is_one(self) -> bool:
        return self.group is Group.N and self.multiplier.is_one()

    def is_integer(self) -> bool:
        return self.group is Group.N and self.multiplier.is_integer()

    def is_composite(self) -> bool:
        return self.group in COMPOSITES

    def is_linear(self) -> bool:
        return isinstance(self.power, Rational) and self.power.is_one()

    def is_infinity(self) -> bool:
        return self.group is Group.S and self.value == INFINITY and self.is_linear()

    def is_symbolic_power(self) -> bool:
        return isinstance(self.power, Symbol)

    def is_imaginary_unit(self, imaginary: str = 'i') -> bool:
        return self.group is Group.S and self.value == imaginary

    def is_imaginary(self, imaginary: str = 'i') -> bool:
        return self.contains(imaginary)

    def is_constant(self, constants: frozenset[str] | set[str] = frozenset(('pi', 'e'))) -> bool:
        "True if no free variables occur, counting the named constants as constant."
        return all(name in constants for name in self.variables())

    #
    # Variables
    #

    def variables(self) -> list[str]:
        "Sorted names of all variables in the symbol."
        names: set[str] = set()
        self._collect_variables(names)
        return sorted(names)

    def _collect_variables(self, names: set[str]) -> None:
        group = self.previous_group if self.group is Group.EX else self.group
        if group is Group.S:
            names.add(self.value)
        if self.args:
            for arg in self.args:
                arg._collect_variables(names)
        if self.symbols:
            for child in self.symbols.values():
                child._collect_variables(names)
        if isinstance(self.power, Symbol):
            self.power._collect_variables(names)

    def contains(self, name: str) -> bool:
        return name in self.variables()

    #
    # Comparison and Display
    #

    def text(self, option=None, decimal_places: int | None = None) -> str:
        from canonalg.output import text
        return text(self, option, decimal_places)

    def equals(self, other: Symbol) -> bool:
        "Structural equality: same group, same multiplier, and the same term."
        if not isinstance(other, Symbol):
            return False
        return (self.group is other.group and self.multiplier == other.multiplier and
                self.term_key() == other.term_key())

    def term_key(self) -> str:
        "Canonical text of the symbol without its multiplier."
        from canonalg.output import term_text
        return term_text(self)

    def __eq__(self, other) -> bool:
        if isinstance(other, Symbol):
            return self.equals(other)
        if isinstance(other, (int, Rational)):
            return self.group is Group.N and self.multiplier == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.group, self.multiplier, self.term_key()))

    def __str__(self) -> str:
        return self.text()

    def __repr__(self) -> str:
        return f'Symbol({self.group.label}, {self.text()!r})'

    def __canonalg_repr__(self) -> str:
        return escape(self.text())

    #
    # Arithmetic conveniences
    #

    def __add__(self, other):
        from canonalg.algebra import add
        return add(self, as_symbol(other))

    def __radd__(self, other):
        from canonalg.algebra import add
        return add(as_symbol(other), self)

    def __sub__(self, other):
        from canonalg.algebra import subtract
        return subtract(self, as_symbol(other))

    def __rsub__(self, other):
        from canonalg.algebra import subtract
        return subtract(as_symbol(other), self)

    def __mul__(self, other):
        from canonalg.algebra import multiply
        return multiply(self, as_symbol(other))

    def __rmul__(self, other):
        from canonalg.algebra import multiply
        return multiply(as_symbol(other), self)

    def __truediv__(self, other):
        from canonalg.algebra import divide
        return divide(self, as_symbol(other))

    def __rtruediv__(self, other):
        from canonalg.algebra import divide
        return divide(as_symbol(other), self)

    def __pow__(self, other):
        from canonalg.algebra import pow
        return pow(self, as_symbol(other))

    def __neg__(self):
        return negate(self)

    #
    # Structural helpers used during construction
    #

    def numerator(self) -> Symbol:
        "Factors with non-negative powers, times the multiplier's numerator."
        return _split_fraction(self)[0]

    def denominator(self) -> Symbol:
        "Factors with negative powers inverted, times the multiplier's denominator."
        return _split_fraction(self)[1]

    def sub(self, name: str, value: Symbol) -> Symbol:
        "Substitutes `value` for the variable `name`, re-canonicalizing the result."
        from canonalg.algebra import substitute
        return substitute(self, name, value)

    def convert(self, group: Group) -> Self:
        """Changes the group tag in place, keeping the structure consistent.

        Promoting to EX remembers the current group; demoting an EX
        restores it. Promoting to a composite wraps the current
        structure as the sole child of a fresh shell.

        """
        if group is self.group:
            return self
        if group is Group.EX:
            if self.group is Group.N:
                self.value = str(self.multiplier)
                self.multiplier = ONE
            self.previous_group = self.group
            self.group = Group.EX
            return self
        if self.group is Group.EX and group is self.previous_group:
            if group is Group.N:
                self.multiplier = self.multiplier.multiply(Rational.from_string(self.value))
                self.value = CONST_HASH
            self.group = group
            self.previous_group = None
            return self
        if group in (Group.CB, Group.CP):
            child = self.clone()
            child.multiplier = ONE
            self.group = group
            self.symbols = {}
            self.args = None
            self.previous_group = None
            self.power = ONE
            if child.group is not Group.N:
                from canonalg.algebra import key_for_group
                self.symbols[key_for_group(child, group)] = child
            update_hash(self)
            return self
        if group is Group.N:
            if not (isinstance(self.power, Rational) and self.power.is_zero()):
                raise AlgebraTypeError(f'Cannot convert {self!r} to a number')
            self.group = Group.N
            self.value = CONST_HASH
            self.power = ONE
            self.symbols = None
            self.args = None
            return self
        raise AlgebraTypeError(f'Cannot convert {self.group.label} to {group.label}')


#
# Constructors
#

def number(q: Rational | int | str) -> Symbol:
    return Symbol(Group.N, CONST_HASH, Rational.from_value(q))

def variable(name: str, multiplier: Rational = ONE, power: Power = ONE) -> Symbol:
    return Symbol(Group.S, name, multiplier, power)

def infinity(sign: int = 1) -> Symbol:
    return Symbol(Group.S, INFINITY, ONE if sign >= 0 else MINUS_ONE)

def function(name: str, args: list[Symbol], multiplier: Rational = ONE, power: Power = ONE) -> Symbol:
    fn = Symbol(Group.FN, name, multiplier, power)
    fn.args = [a.clone() for a in args]
    return fn

def radical(base: int, power: Rational, multiplier: Rational = ONE) -> Symbol:
    "A P symbol base^power; the caller guarantees the power is not an integer."
    return Symbol(Group.P, int_text(base), multiplier, power)

def shell(group: Group, multiplier: Rational = ONE, value: str = CONST_HASH) -> Symbol:
    "An empty composite of the given group."
    return Symbol(group, value, multiplier)

def as_symbol(x) -> Symbol:
    if isinstance(x, Symbol):
        return x
    if isinstance(x, (int, Rational)) and not isinstance(x, bool):
        return number(x)
    raise AlgebraTypeError(f'Expected a symbol, got {x!r}')

def negate(s: Symbol) -> Symbol:
    "The symbol times -1."
    c = s.clone()
    c.multiplier = c.multiplier.negate()
    return c

def invert(s: Symbol) -> Symbol:
    "The reciprocal 1/s."
    from canonalg.algebra import pow
    if s.is_zero():
        raise DivisionByZero('Cannot invert zero')
    return pow(s, number(MINUS_ONE))

def power_key(power: Power) -> str:
    if isinstance(power, Symbol):
        return power.text()
    return str(power)

def update_hash(s: Symbol) -> None:
    "Recomputes the cached structural value of a product or sum."
    if s.group in (Group.CB, Group.CP):
        from canonalg.output import base_text
        s.value = base_text(s)


#
# Numerator and Denominator
#

def _split_fraction(s: Symbol) -> tuple[Symbol, Symbol]:
    from canonalg.algebra import multiply, pow
    num = number(s.multiplier.numerator)
    den = number(s.multiplier.denominator)
    factors = s.children() if s.group is Group.CB else ([] if s.group is Group.N else [s.with_multiplier(ONE)])
    for factor in factors:
        if isinstance(factor.power, Rational) and factor.power.is_negative():
            den = multiply(den, pow(factor, number(MINUS_ONE)))
        else:
            num = multiply(num, factor)
    return (num, den)


#
# Containers
#

@dataclass
class Collection:
    """The elements of a vector, set, or parenthesized tuple literal.

    Collections are produced by the evaluator and handed to container
    libraries as is; the algebra does not operate on them.

    """
    kind: BracketKind
    elements: list[Symbol] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.kind is BracketKind.SET:
            unique: list[Symbol] = []
            for element in self.elements:
                if not any(element == seen for seen in unique):
                    unique.append(element)
            self.elements = unique

    @property
    def open(self) -> str:
        return self.kind.value

    @property
    def close(self) -> str:
        return CLOSER_OF[self.kind]

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self):
        return iter(self.elements)

    def __getitem__(self, index: int) -> Symbol:
        return self.elements[index]

    def text(self, option=None, decimal_places: int | None = None) -> str:
        from canonalg.output import text
        return text(self, option, decimal_places)

    def __str__(self) -> str:
        return self.text()

    def __canonalg_repr__(self) -> str:
        return escape(self.text())
