from __future__ import annotations

class AlgebraException(Exception):
    "Base exception for errors raised while parsing or evaluating expressions."
    pass

#
# Syntax
#

class ParseError(AlgebraException):
    """An expression could not be parsed.

    When known, `column` is the 1-based character position at which
    the problem was detected in the input string.

    """
    def __init__(self, message: str = '', column: int | None = None) -> None:
        super().__init__(message)
        self.column = column

    def __str__(self) -> str:
        message = super().__str__()
        if self.column is not None and 'column' not in message:
            return f'{message} (at column {self.column})'
        return message

class ParityError(ParseError):
    "Brackets are unmatched or of mismatched type."
    pass

class OperatorError(ParseError):
    "An operator is unknown, misplaced, or missing an operand."
    pass

class UnexpectedTokenError(ParseError):
    "An expression did not reduce to a single value."
    pass

#
# Domain
#

class DomainError(AlgebraException):
    "An operation was applied outside its mathematical domain."
    pass

class UndefinedError(DomainError):
    "The result of an operation is undefined, e.g., 0^0 or Infinity-Infinity."
    pass

class DivisionByZero(UndefinedError):
    "Division by zero."
    pass

#
# Names, Types, and Resources
#

class InvalidVariableNameError(AlgebraException):
    "A variable or function name is malformed or reserved."
    pass

class AlgebraTypeError(AlgebraException):
    "An operation received the wrong number or kind of operands."
    pass

class SettingsError(AlgebraException):
    "An unknown option or an invalid option value."
    pass

class CancellationError(AlgebraException):
    """Evaluation exceeded its time budget.

    This is never reclassified: every handler that translates engine
    errors must re-raise it unchanged.

    """
    pass
