# Postfix evaluation of reduced token streams
#
# The evaluator keeps a stack of (value, source name) entries. The name
# is set when the value came straight from an identifier, which is how
# assignment finds its target.

from __future__ import annotations

import logging

from dataclasses       import dataclass
from typing            import TYPE_CHECKING, Any, Callable, Union

from canonalg.algebra                 import (add, divide, from_decimal, multiply, pow,
                                              require_symbol, subtract, to_decimal)
from canonalg.context                 import check_deadline
from canonalg.exceptions              import AlgebraTypeError, UnexpectedTokenError
from canonalg.functions               import dfactorial, factorial, mod, percent
from canonalg.numeric                 import decimal_e, decimal_pi
from canonalg.operators               import BracketKind, Fixity, OperatorAction
from canonalg.parsing.shunting_yard   import Postfix
from canonalg.parsing.tokenizer       import Token, TokenKind
from canonalg.rational                import Rational
from canonalg.symbol                  import (INFINITY, Collection, Symbol, function, infinity,
                                              negate, number, variable)

if TYPE_CHECKING:
    from canonalg.session import Session

logger = logging.getLogger(__name__)


class Arguments(list):
    "Comma separated values collected for a function call or a tuple."

Value = Union[Symbol, Collection, Arguments]

@dataclass
class Entry:
    value: Value
    name: str | None = None


#
# Comparisons
#

ORDER_TESTS = {
    OperatorAction.LT: ('<', lambda sign: sign < 0),
    OperatorAction.LTE: ('<=', lambda sign: sign <= 0),
    OperatorAction.GT: ('>', lambda sign: sign > 0),
    OperatorAction.GTE: ('>=', lambda sign: sign >= 0),
}

def _order(a: Symbol, b: Symbol, operation: str) -> int:
    difference = to_decimal(subtract(a, b))
    if difference is None:
        raise AlgebraTypeError(f'Cannot decide {a} {operation} {b} for non-constant operands')
    return (difference > 0) - (difference < 0)

def compare(action: OperatorAction, a: Symbol, b: Symbol) -> Symbol:
    "Comparison results are the numbers 1 and 0."
    if action is OperatorAction.EQ:
        return number(int(subtract(a, b).is_zero()))
    if action not in ORDER_TESTS:
        raise AlgebraTypeError(f'{action.name} is not a comparison')
    operation, test = ORDER_TESTS[action]
    return number(int(test(_order(a, b, operation))))


#
# Evaluator
#

class Evaluator:
    """Evaluates postfix token streams against a session.

    Parameters:
    ----------
      session - supplies constants, variables, functions and settings
      substitutions - values for names in this evaluation only; they take
          precedence over session variables but not over constants

    """
    def __init__(self, session: Session, substitutions: dict[str, Symbol] | None = None) -> None:
        self.session = session
        self.substitutions = substitutions or {}

    def evaluate(self, postfix: Postfix) -> Value:
        values = self.evaluate_scope(postfix)
        if not values:
            return number(0)
        if len(values) > 1:
            return Collection(BracketKind.PAREN, [require_symbol(v, 'A tuple') for v in values])
        return values[0]

    def evaluate_scope(self, postfix: Postfix) -> list[Value]:
        "The comma separated values of one scope."
        stack: list[Entry] = []
        items = list(postfix)
        for i, item in enumerate(items):
            check_deadline()
            if isinstance(item, Postfix):
                following = items[i + 1] if i + 1 < len(items) else None
                if isinstance(following, Token) and following.kind is TokenKind.FUNCTION:
                    stack.append(Entry(Arguments(self.evaluate_scope(item))))
                else:
                    stack.append(Entry(self.bracketed(item)))
            elif item.kind is TokenKind.FUNCTION:
                args = stack.pop().value
                stack.append(Entry(self.call(item.raw, list(args))))
            elif item.kind is TokenKind.OPERATOR:
                self.apply(item, stack)
            else:
                stack.append(Entry(self.operand(item), item.raw))

        if not stack:
            return []
        if len(stack) > 1:
            column = postfix.column if postfix.column else None
            raise UnexpectedTokenError(f'Could not reduce the expression; {len(stack)} values remain', column)
        value = stack[0].value
        if isinstance(value, Arguments):
            return list(value)
        return [value]

    def bracketed(self, postfix: Postfix) -> Value:
        values = self.evaluate_scope(postfix)
        if postfix.kind is BracketKind.PAREN:
            if not values:
                raise UnexpectedTokenError('Empty parentheses', postfix.column)
            if len(values) == 1:
                return values[0]
        return Collection(postfix.kind, [require_symbol(v, 'A collection') for v in values])

    #
    # Operands
    #

    def operand(self, token: Token) -> Symbol:
        "Resolves a literal or name: constants, substitutions, variables, then a bare variable."
        name = token.raw
        if token.is_number:
            return number(Rational.from_string(name))
        session = self.session
        if name in session.constants:
            return session.constants[name].clone()
        if name in self.substitutions:
            return self.substitutions[name].clone()
        if name in session.variables:
            return session.variables[name].clone()
        if name == INFINITY:
            return infinity()
        if session.settings.parse2number and name in ('pi', 'e'):
            precision = session.settings.precision
            return from_decimal(decimal_pi(precision) if name == 'pi' else decimal_e(precision))
        return variable(name)

    #
    # Functions
    #

    def call(self, name: str, args: list[Value]) -> Symbol:
        session = self.session
        if name in session.user_functions:
            return session.call_function(name, [require_symbol(a, name) for a in args])
        if name in session.functions:
            return session.functions.call(name, args)
        return function(name, [require_symbol(a, name) for a in args])

    #
    # Operators
    #

    def apply(self, token: Token, stack: list[Entry]) -> None:
        op = token.operator
        fixity = token.fixity or Fixity.INFIX
        action = op.action_for(fixity)
        arity = 2 if fixity is Fixity.INFIX else 1
        if len(stack) < arity:
            raise UnexpectedTokenError(f'Operator {op.symbol} is missing an operand', token.column)

        if arity == 1:
            entry = stack.pop()
            stack.append(Entry(self.unary(token, action, entry.value)))
            return

        right = stack.pop()
        left = stack.pop()
        if action is OperatorAction.COMMA:
            values = Arguments(left.value) if isinstance(left.value, Arguments) else Arguments([left.value])
            values.append(right.value)
            stack.append(Entry(values))
        elif action is OperatorAction.ASSIGN:
            if left.name is None:
                raise AlgebraTypeError(f'Cannot assign to {left.value}')
            value = require_symbol(right.value, 'Assignment')
            self.session.set_var(left.name, value)
            logger.debug('assigned %s = %s', left.name, value)
            stack.append(Entry(value.clone()))
        else:
            a = require_symbol(left.value, f'Operator {op.symbol}')
            b = require_symbol(right.value, f'Operator {op.symbol}')
            stack.append(Entry(self.binary(token, action, a, b)))

    def unary(self, token: Token, action: OperatorAction, value: Any) -> Symbol:
        x = require_symbol(value, f'Operator {token.raw}')
        if action is OperatorAction.CUSTOM:
            return require_symbol(token.operator.handler(x), f'Operator {token.raw}')
        if action not in UNARY:
            raise AlgebraTypeError(f'{action.name} is not a unary operation')
        return UNARY[action](x)

    def binary(self, token: Token, action: OperatorAction, a: Symbol, b: Symbol) -> Symbol:
        if action is OperatorAction.CUSTOM:
            return require_symbol(token.operator.handler(a, b), f'Operator {token.raw}')
        if action in ORDER_TESTS or action is OperatorAction.EQ:
            return compare(action, a, b)
        if action not in BINARY:
            raise AlgebraTypeError(f'{action.name} is not a binary operation')
        return BINARY[action](a, b)


UNARY: dict[OperatorAction, Callable[[Symbol], Symbol]] = {
    OperatorAction.NEGATE: negate,
    OperatorAction.POSITIVE: lambda x: x,
    OperatorAction.FACTORIAL: factorial,
    OperatorAction.DOUBLE_FACTORIAL: dfactorial,
    OperatorAction.PERCENT: percent,
}

BINARY: dict[OperatorAction, Callable[[Symbol, Symbol], Symbol]] = {
    OperatorAction.ADD: add,
    OperatorAction.SUBTRACT: subtract,
    OperatorAction.MULTIPLY: multiply,
    OperatorAction.DIVIDE: divide,
    OperatorAction.POWER: pow,
    OperatorAction.MOD: mod,
}
