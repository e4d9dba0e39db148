# Shunting-yard reduction of a token tree to postfix order
#
# Each Scope is reduced on its own; nested scopes are reduced first and
# appear in the output as a single Postfix item. A Function token is
# emitted right after its argument scope.

from __future__ import annotations

import logging

from dataclasses       import replace
from typing            import Union

from canonalg.context                 import check_deadline
from canonalg.exceptions              import OperatorError
from canonalg.operators               import BracketKind, CLOSER_OF, Fixity
from canonalg.parsing.tokenizer       import Scope, Token, TokenKind

logger = logging.getLogger(__name__)


class Postfix(list):
    "The reduced content of one scope, operands before their operators."
    def __init__(self, items=(), kind: BracketKind = BracketKind.PAREN, column: int = 0) -> None:
        super().__init__(items)
        self.kind = kind
        self.column = column

    def __str__(self) -> str:
        return ' '.join(map(rpn_text, self))

PostfixItem = Union[Token, Postfix]

def rpn_text(item: PostfixItem) -> str:
    if isinstance(item, Postfix):
        return f'{item.kind.value}{item}{CLOSER_OF[item.kind]}'
    return item.raw


def starts_operand(item) -> bool:
    return isinstance(item, Scope) or (item is not None and item.kind is not TokenKind.OPERATOR)

def to_postfix(scope: Scope) -> Postfix:
    """Reduces a token tree to postfix order.

    Prefix operators wait on the operator stack at their unary
    precedence and are never popped by a later prefix operator. Postfix
    operators bind to the preceding operand and are emitted at once. An
    overloaded operator such as % is infix when an operand follows it
    and postfix otherwise.

    """
    check_deadline()
    output = Postfix(kind=scope.kind, column=scope.column)
    pending: list[Token] = []
    expect_operand = True
    items = list(scope)

    for i, item in enumerate(items):
        following = items[i + 1] if i + 1 < len(items) else None

        if isinstance(item, Scope):
            output.append(to_postfix(item))
            previous = items[i - 1] if i > 0 else None
            if isinstance(previous, Token) and previous.kind is TokenKind.FUNCTION:
                output.append(previous)
            expect_operand = False
            continue

        if item.kind is TokenKind.FUNCTION:
            if not isinstance(following, Scope):
                raise OperatorError(f'Function {item.raw} is missing its arguments', item.column)
            continue   # emitted after its argument scope

        if item.kind is not TokenKind.OPERATOR:
            output.append(item)
            expect_operand = False
            continue

        op = item.operator
        if expect_operand:
            if op.prefix:
                pending.append(replace(item, fixity=Fixity.PREFIX))
                continue
            if op.postfix and not op.infix:
                raise OperatorError(f'Postfix operator {op.symbol} has nothing to apply to', item.column)
            raise OperatorError(f'Operator {op.symbol} is missing its left operand', item.column)

        if op.overloaded and op.postfix:
            fixity = Fixity.INFIX if starts_operand(following) else Fixity.POSTFIX
        elif op.infix:
            fixity = Fixity.INFIX
        elif op.postfix:
            fixity = Fixity.POSTFIX
        else:
            raise OperatorError(f'Prefix operator {op.symbol} cannot follow an operand', item.column)

        token = replace(item, fixity=fixity)
        if fixity is Fixity.POSTFIX:
            output.append(token)
            continue

        while pending and _yields_to(pending[-1], token):
            output.append(pending.pop())
        pending.append(token)
        expect_operand = True

    if expect_operand and (items or pending):
        column = pending[-1].column if pending else scope.column
        raise OperatorError('Expression ends with a dangling operator', column)

    while pending:
        output.append(pending.pop())
    return output

def _yields_to(top: Token, incoming: Token) -> bool:
    "Should the stacked operator be emitted before the incoming one is pushed?"
    if top.precedence > incoming.precedence:
        return True
    return top.precedence == incoming.precedence and incoming.left_associative


def rpn(scope: Scope) -> str:
    "The postfix form of a token tree as text."
    reduced = to_postfix(scope)
    logger.debug('rpn: %s', reduced)
    return str(reduced)
