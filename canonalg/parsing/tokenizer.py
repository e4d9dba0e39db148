# Tokenizer: raw expression text to a tree of tokens
#
# Lexing is done with parsy; a second pass tracks bracket parity on an
# explicit stack, opens a nested Scope for every bracket, chunks
# operator runs against the session's operator table, and inserts the
# implicit multiplications.

from __future__ import annotations

import logging
import re

from collections.abc   import Container, Iterable
from dataclasses       import dataclass, replace
from enum              import Enum, auto

from parsy import (
    ParseError as ParsyError,
    alt,
    index,
    regex,
    seq,
)

from canonalg.context                 import check_deadline
from canonalg.exceptions              import ParityError, ParseError
from canonalg.numeric                 import number_re
from canonalg.operators               import (BRACKETS, CLOSERS, CLOSER_OF, BracketKind,
                                              Fixity, Operator, OperatorTable)
from canonalg.parsing.parsy_adjust    import parse_error_message, with_label

logger = logging.getLogger(__name__)

name_re = r'(?:[^\W\d]|∞|π)\w*'
NAME_ALIASES = {'∞': 'Infinity', 'π': 'pi'}


#
# Tokens
#

class TokenKind(Enum):
    OPERATOR = auto()
    OPERAND = auto()     # a variable or a literal
    FUNCTION = auto()
    UNIT = auto()

@dataclass(frozen=True)
class Token:
    """A lexical token; operator metadata is copied from the operator table.

    `fixity` is assigned by the reducer once the operator's position is
    known.

    """
    kind: TokenKind
    raw: str
    column: int
    operator: Operator | None = None
    fixity: Fixity | None = None
    implicit: bool = False

    @property
    def precedence(self) -> int | None:
        if self.operator is None:
            return None
        return self.operator.precedence_for(self.fixity or Fixity.INFIX)

    @property
    def left_associative(self) -> bool:
        if self.fixity is Fixity.PREFIX:
            return False
        return self.operator is not None and self.operator.left_associative

    @property
    def is_prefix(self) -> bool:
        return self.operator is not None and self.operator.prefix

    @property
    def is_postfix(self) -> bool:
        return self.operator is not None and self.operator.postfix

    @property
    def is_number(self) -> bool:
        return self.kind is TokenKind.OPERAND and re.fullmatch(number_re, self.raw) is not None

    def __str__(self) -> str:
        return self.raw

class Scope(list):
    "A bracketed sequence of tokens and nested scopes."
    def __init__(self, items: Iterable = (), kind: BracketKind = BracketKind.PAREN, column: int = 0) -> None:
        super().__init__(items)
        self.kind = kind
        self.column = column

    def __repr__(self) -> str:
        return f'{self.kind.value}{" ".join(map(repr_item, self))}{CLOSER_OF[self.kind]}'

def repr_item(item) -> str:
    return repr(item) if isinstance(item, Scope) else item.raw

def implicit_multiply(operators: OperatorTable, column: int) -> Token:
    return Token(TokenKind.OPERATOR, '*', column, operators.get('*'), implicit=True)


#
# Lexer
#

class Lex(Enum):
    NUMBER = auto()
    NAME = auto()
    OPERATORS = auto()
    OPEN = auto()
    CLOSE = auto()
    SPACE = auto()

def lexer(operator_chars: Iterable[str]):
    chars = ''.join(sorted(set(operator_chars)))
    lexeme = alt(
        with_label('a number', regex(number_re)).map(lambda s: (Lex.NUMBER, s)),
        with_label('a name', regex(name_re)).map(lambda s: (Lex.NAME, s)),
        with_label('an operator', regex(f'[{re.escape(chars)}]+')).map(lambda s: (Lex.OPERATORS, s)),
        with_label('a bracket', regex(r'[(\[{]')).map(lambda s: (Lex.OPEN, s)),
        with_label('a bracket', regex(r'[)\]}]')).map(lambda s: (Lex.CLOSE, s)),
        with_label('a space', regex(r'\s+')).map(lambda s: (Lex.SPACE, s)),
    )
    return seq(index, lexeme).combine(lambda i, lex: (lex[0], lex[1], i + 1)).many()


#
# Tokenizer
#

class Tokenizer:
    """Converts an expression string into a Scope tree.

    Parameters:
    ----------
      operators - the operator table used to chunk operator runs
      functions - names that are called when followed by a space and a literal
      units - names tagged as Unit tokens
      multicharacter [True] - if False, unknown multi-letter names are
          split into single-letter variables
      known_names - names never split when multicharacter is False

    """
    def __init__(
            self,
            operators: OperatorTable,
            functions: Container[str] = frozenset(),
            units: Container[str] = frozenset(),
            multicharacter: bool = True,
            known_names: Container[str] = frozenset()
    ) -> None:
        self.operators = operators
        self.functions = functions
        self.units = units
        self.multicharacter = multicharacter
        self.known_names = known_names
        self._lexer = lexer(operators.characters)

    def lex(self, expression: str) -> list[tuple[Lex, str, int]]:
        try:
            return self._lexer.parse(expression)
        except ParsyError as e:
            raise ParseError(parse_error_message(e), e.index + 1)

    def tokenize(self, expression: str) -> Scope:
        root = Scope(kind=BracketKind.PAREN, column=0)
        stack = [root]
        space = False
        for kind, text, column in self.lex(expression):
            check_deadline()
            scope = stack[-1]
            previous = scope[-1] if scope else None

            if kind is Lex.SPACE:
                space = True
                continue

            if kind is Lex.OPEN:
                if text == '(' and self._calls(previous, space):
                    scope[-1] = replace(previous, kind=TokenKind.FUNCTION)
                elif ends_operand(previous):
                    scope.append(implicit_multiply(self.operators, column))
                nested = Scope(kind=BRACKETS[text], column=column)
                scope.append(nested)
                stack.append(nested)

            elif kind is Lex.CLOSE:
                if len(stack) == 1:
                    raise ParityError(f'Unexpected closing bracket "{text}" at column {column}', column)
                opened = stack[-1]
                if opened.kind is not CLOSERS[text]:
                    raise ParityError(
                        f'Bracket "{opened.kind.value}" opened at column {opened.column} '
                        f'is closed by "{text}" at column {column}',
                        column
                    )
                stack.pop()

            elif kind is Lex.OPERATORS:
                for op_column, op in self.operators.chunk(text, column):
                    scope.append(Token(TokenKind.OPERATOR, op.symbol, op_column, op))

            else:
                tokens = self._operands(kind, text, column)
                if (space and isinstance(previous, Token) and previous.kind is TokenKind.OPERAND
                   and previous.raw in self.functions):
                    scope[-1] = replace(previous, kind=TokenKind.FUNCTION)
                    scope.append(Scope(tokens, kind=BracketKind.PAREN, column=column))
                else:
                    if ends_operand(previous):
                        scope.append(implicit_multiply(self.operators, column))
                    scope.extend(tokens)
            space = False

        if len(stack) > 1:
            opened = stack[-1]
            raise ParityError(
                f'Missing closing bracket "{CLOSER_OF[opened.kind]}" for "{opened.kind.value}" '
                f'opened at column {opened.column}',
                len(expression) + 1
            )
        logger.debug('tokens for %r: %r', expression, root)
        return root

    def _calls(self, previous, space: bool) -> bool:
        "Does an opening bracket after `previous` start a function call?"
        if not (isinstance(previous, Token) and previous.kind is TokenKind.OPERAND):
            return False
        if previous.is_number or previous.implicit:
            return False
        return not space or previous.raw in self.functions

    def _operands(self, kind: Lex, text: str, column: int) -> list[Token]:
        if kind is Lex.NUMBER:
            return [Token(TokenKind.OPERAND, text, column)]
        name = NAME_ALIASES.get(text, text)
        if name in self.units:
            return [Token(TokenKind.UNIT, name, column)]
        if (self.multicharacter or len(name) == 1 or name in self.functions
           or name in self.known_names):
            return [Token(TokenKind.OPERAND, name, column)]

        # Letters of an unknown name are separate variables; digits stay attached
        pieces = re.findall(r'[^\W\d_]\d*|_+\d*|\d+', name)
        tokens: list[Token] = []
        offset = 0
        for k, piece in enumerate(pieces):
            if tokens:
                tokens.append(implicit_multiply(self.operators, column + offset))
            tokens.append(Token(TokenKind.OPERAND, piece, column + offset, implicit=k > 0))
            offset += len(piece)
        return tokens


def ends_operand(item) -> bool:
    "Can an implicit multiplication follow this item?"
    if item is None:
        return False
    if isinstance(item, Scope):
        return True
    if item.kind in (TokenKind.OPERAND, TokenKind.UNIT):
        return True
    op = item.operator
    return item.kind is TokenKind.OPERATOR and op is not None and op.postfix and not op.infix
