# Operator and bracket tables
#
# Each session owns an OperatorTable copy; the tokenizer chunks operator
# runs against it and the reducer reads precedence, associativity and
# the prefix/infix/postfix forms from the entries copied onto tokens.

from __future__ import annotations

from dataclasses       import dataclass, replace
from enum              import Enum, auto
from typing            import Callable

from canonalg.exceptions import OperatorError


class OperatorAction(Enum):
    ADD = auto()
    SUBTRACT = auto()
    MULTIPLY = auto()
    DIVIDE = auto()
    POWER = auto()
    MOD = auto()
    NEGATE = auto()
    POSITIVE = auto()
    FACTORIAL = auto()
    DOUBLE_FACTORIAL = auto()
    PERCENT = auto()
    ASSIGN = auto()
    EQ = auto()
    LT = auto()
    LTE = auto()
    GT = auto()
    GTE = auto()
    COMMA = auto()
    CUSTOM = auto()

class Fixity(Enum):
    PREFIX = auto()
    INFIX = auto()
    POSTFIX = auto()

class BracketKind(Enum):
    PAREN = '('
    VECTOR = '['
    SET = '{'

BRACKETS = {'(': BracketKind.PAREN, '[': BracketKind.VECTOR, '{': BracketKind.SET}
CLOSERS = {')': BracketKind.PAREN, ']': BracketKind.VECTOR, '}': BracketKind.SET}
CLOSER_OF = {kind: closer for closer, kind in CLOSERS.items()}

# Characters that never belong to an operator symbol
RESERVED_CHARS = set('()[]{}._ \t\n\r') | set('0123456789')


@dataclass(frozen=True)
class Operator:
    """An operator entry.

    An operator may have an infix form (`action`), a prefix form
    (`prefix_action`, bound at `unary_precedence`) and a postfix form
    (`postfix_action`). An overloaded operator has both an infix and a
    unary form, resolved by looking at the following token.

    """
    symbol: str
    precedence: int
    action: OperatorAction | None = None
    prefix_action: OperatorAction | None = None
    postfix_action: OperatorAction | None = None
    left_associative: bool = True
    overloaded: bool = False
    unary_precedence: int | None = None
    handler: Callable | None = None

    @property
    def infix(self) -> bool:
        return self.action is not None

    @property
    def prefix(self) -> bool:
        return self.prefix_action is not None

    @property
    def postfix(self) -> bool:
        return self.postfix_action is not None

    def action_for(self, fixity: Fixity) -> OperatorAction:
        action = {Fixity.PREFIX: self.prefix_action,
                  Fixity.INFIX: self.action,
                  Fixity.POSTFIX: self.postfix_action}[fixity]
        if action is None:
            raise OperatorError(f'Operator {self.symbol} has no {fixity.name.lower()} form')
        return action

    def precedence_for(self, fixity: Fixity) -> int:
        if fixity is Fixity.INFIX or self.unary_precedence is None:
            return self.precedence
        return self.unary_precedence


def default_operators() -> list[Operator]:
    A = OperatorAction
    return [
        Operator('^', 6, A.POWER, left_associative=False),
        Operator('**', 6, A.POWER, left_associative=False),
        Operator('!', 7, postfix_action=A.FACTORIAL),
        Operator('!!', 7, postfix_action=A.DOUBLE_FACTORIAL),
        Operator('%', 4, A.MOD, postfix_action=A.PERCENT, overloaded=True, unary_precedence=7),
        Operator('*', 4, A.MULTIPLY),
        Operator('/', 4, A.DIVIDE),
        Operator('+', 3, A.ADD, prefix_action=A.POSITIVE, unary_precedence=5),
        Operator('-', 3, A.SUBTRACT, prefix_action=A.NEGATE, unary_precedence=5),
        Operator('==', 2, A.EQ),
        Operator('<', 2, A.LT),
        Operator('<=', 2, A.LTE),
        Operator('>', 2, A.GT),
        Operator('>=', 2, A.GTE),
        Operator('=', 1, A.ASSIGN, left_associative=False),
        Operator(',', 0, A.COMMA),
    ]


class OperatorTable:
    "A mutable registry of operators keyed by symbol."
    def __init__(self, operators: list[Operator] | None = None) -> None:
        self._operators: dict[str, Operator] = {}
        for op in (default_operators() if operators is None else operators):
            self._operators[op.symbol] = op

    def copy(self) -> OperatorTable:
        return OperatorTable(list(self._operators.values()))

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._operators

    def __iter__(self):
        return iter(self._operators.values())

    def get(self, symbol: str) -> Operator:
        try:
            return self._operators[symbol]
        except KeyError:
            raise OperatorError(f'Unknown operator {symbol}')

    def set(self, operator: Operator) -> Operator:
        if not operator.symbol or any(c in RESERVED_CHARS or c.isalnum() for c in operator.symbol):
            raise OperatorError(f'Invalid operator symbol "{operator.symbol}"')
        if not (operator.infix or operator.prefix or operator.postfix):
            raise OperatorError(f'Operator {operator.symbol} needs at least one form')
        self._operators[operator.symbol] = operator
        return operator

    def alias(self, original: str, alias: str) -> Operator:
        return self.set(replace(self.get(original), symbol=alias))

    @property
    def characters(self) -> frozenset[str]:
        return frozenset(c for symbol in self._operators for c in symbol)

    def chunk(self, run: str, column: int = 1) -> list[tuple[int, Operator]]:
        """Splits an operator run into the longest registered symbols, left to right.

        Returns (column, operator) pairs. Raises OperatorError if some
        position starts no registered symbol.

        """
        longest = max(map(len, self._operators))
        chunks: list[tuple[int, Operator]] = []
        i = 0
        while i < len(run):
            for width in range(min(longest, len(run) - i), 0, -1):
                candidate = run[i:i + width]
                if candidate in self._operators:
                    chunks.append((column + i, self._operators[candidate]))
                    i += width
                    break
            else:
                raise OperatorError(f'Unrecognized operator "{run[i:]}"', column + i)
        return chunks
