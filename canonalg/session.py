# Sessions: the entry points for parsing and evaluation
#
# A Session owns every piece of mutable engine state: settings, the
# operator table, the function registry, constants, variables, user
# functions and units. The session is made active for the duration of
# each top-level call so the operator algebra can read its settings.

from __future__ import annotations

import logging
import re

from dataclasses       import dataclass
from typing            import Any, Callable

from canonalg.algebra                 import expand as expand_symbol
from canonalg.context                 import activate, set_default_session
from canonalg.env                     import Settings
from canonalg.evaluator               import Evaluator
from canonalg.exceptions              import (AlgebraException, AlgebraTypeError, CancellationError,
                                              InvalidVariableNameError, ParseError)
from canonalg.functions               import BUILTINS
from canonalg.operators               import Operator, OperatorAction, OperatorTable
from canonalg.output                  import text as render_text
from canonalg.parsing.shunting_yard   import rpn as postfix_text, to_postfix
from canonalg.parsing.tokenizer       import Scope, Tokenizer
from canonalg.rational                import Rational
from canonalg.symbol                  import INFINITY, Collection, Symbol, as_symbol, number

logger = logging.getLogger(__name__)

name_re = r'[^\W\d]\w*'
function_definition_re = re.compile(rf'\s*({name_re})\s*\(([^()]*)\)\s*:=?(.*)', re.DOTALL)
variable_definition_re = re.compile(rf'\s*({name_re})\s*:=?(.*)', re.DOTALL)

BUILTIN_NAMES = frozenset(('pi', 'e', INFINITY))
DELETE = 'delete'


@dataclass(frozen=True)
class UserFunction:
    name: str
    params: tuple[str, ...]
    body: str

    def __str__(self) -> str:
        return f'{self.name}({", ".join(self.params)}):={self.body}'


class Session:
    """An independent parsing and evaluation context.

    Parameters:
    ----------
      settings [None] - Settings to copy; defaults are used when omitted
      **options - option overrides by field name or upper-case alias,
          e.g., Session(PARSE2NUMBER=True)

    """
    def __init__(self, settings: Settings | None = None, **options: Any) -> None:
        self.settings = settings.copy() if settings is not None else Settings()
        for option, value in options.items():
            self.settings.set(option, value)
        self.operators = OperatorTable()
        self.functions = BUILTINS.copy()
        self.constants: dict[str, Symbol] = {}
        self.variables: dict[str, Symbol] = {}
        self.user_functions: dict[str, UserFunction] = {}
        self.units: set[str] = set()

    #
    # Parsing
    #

    def parse(self, expression: str, substitutions: dict[str, Any] | None = None) -> Symbol | Collection:
        """Parses an expression into its canonical form.

        Algebra errors propagate unchanged; anything else is reported as
        a ParseError chained to the original exception.

        """
        with activate(self):
            try:
                return self._parse(expression, substitutions)
            except CancellationError:
                raise
            except AlgebraException:
                raise
            except RecursionError as e:
                raise ParseError(f'Expression is nested too deeply: {expression}') from e
            except Exception as e:
                raise ParseError(str(e)) from e

    def _parse(self, expression: str, substitutions: dict[str, Any] | None):
        if not isinstance(expression, str):
            return as_symbol(expression).clone()
        if not expression.strip():
            return as_symbol(0)
        if ':' in expression:
            return self._define(expression)
        return self._evaluate(expression, self._substitutions(substitutions))

    def _define(self, expression: str) -> Symbol | Collection:
        match = function_definition_re.fullmatch(expression)
        if match:
            name, params, body = match.groups()
            fn = self.set_function(name, [p.strip() for p in params.split(',') if p.strip()], body)
            return self._evaluate(fn.body, {})
        match = variable_definition_re.fullmatch(expression)
        if match:
            name, body = match.groups()
            value = self._evaluate(body, {})
            self.set_var(name, value)
            return value
        raise ParseError(f'Malformed definition "{expression}"', expression.index(':') + 1)

    def _substitutions(self, substitutions: dict[str, Any] | None) -> dict[str, Symbol]:
        values: dict[str, Symbol] = {}
        for name, value in (substitutions or {}).items():
            values[name] = self._value(value)
        return values

    def _value(self, value: Any) -> Symbol:
        if isinstance(value, str):
            result = self._evaluate(value, {})
            if not isinstance(result, Symbol):
                raise AlgebraTypeError(f'Expected a symbolic value, got {result}')
            return result
        if isinstance(value, float):
            return number(Rational.from_float(value, self.settings.conversion_epsilon))
        return as_symbol(value).clone()

    def _evaluate(self, expression: str, substitutions: dict[str, Symbol]):
        postfix = to_postfix(self.tokenizer().tokenize(expression))
        logger.debug('postfix for %r: %s', expression, postfix)
        return Evaluator(self, substitutions).evaluate(postfix)

    def tokenizer(self) -> Tokenizer:
        return Tokenizer(
            self.operators,
            functions=self.functions.names | self.user_functions.keys(),
            units=self.units,
            multicharacter=self.settings.use_multicharacter_vars,
            known_names=self.known_names()
        )

    def tokenize(self, expression: str) -> Scope:
        with activate(self):
            return self.tokenizer().tokenize(expression)

    def rpn(self, expression: str) -> str:
        "The postfix form of an expression as text."
        with activate(self):
            return postfix_text(self.tokenizer().tokenize(expression))

    def evaluate(self, expression: str, substitutions: dict[str, Any] | None = None) -> Symbol | Collection:
        "Parses with numeric evaluation of functions and constants."
        saved = self.settings
        self.settings = saved.copy(parse2number=True)
        try:
            return self.parse(expression, substitutions)
        finally:
            self.settings = saved

    def expand(self, expression: str | Symbol) -> Symbol:
        "Distributes products over sums and expands integer powers of sums."
        value = self.parse(expression)
        if not isinstance(value, Symbol):
            raise AlgebraTypeError(f'Cannot expand {value}')
        with activate(self):
            return expand_symbol(value)

    def text(self, value: Any, option: str = 'fractions', decimal_places: int | None = None) -> str:
        if isinstance(value, str):
            value = self.parse(value)
        with activate(self):
            return render_text(value, option, decimal_places)

    #
    # Variables and Constants
    #

    def set_var(self, name: str, value: Any) -> None:
        if isinstance(value, str) and value == DELETE:
            self.variables.pop(name, None)
            return
        self.validate_name(name)
        with activate(self):
            self.variables[name] = self._value(value)
        logger.debug('set variable %s = %s', name, self.variables[name])

    def get_var(self, name: str) -> Symbol | None:
        value = self.variables.get(name)
        return value.clone() if value is not None else None

    def get_vars(self, option: str = 'fractions') -> dict[str, str]:
        return {name: self.text(value, option) for name, value in self.variables.items()}

    def clear_vars(self) -> None:
        self.variables.clear()

    def set_constant(self, name: str, value: Any) -> None:
        if isinstance(value, str) and value == DELETE:
            self.constants.pop(name, None)
            return
        self.validate_name(name)
        with activate(self):
            constant = self._value(value)
        if not constant.is_number():
            raise AlgebraTypeError(f'Constant {name} must be a number, got {constant}')
        self.constants[name] = constant

    def get_constant(self, name: str) -> Symbol | None:
        value = self.constants.get(name)
        return value.clone() if value is not None else None

    def clear_constants(self) -> None:
        self.constants.clear()

    #
    # User Functions
    #

    def set_function(self, name: str, params: list[str] | None = None, body: str | None = None) -> UserFunction:
        """Defines a function whose calls evaluate `body` with its parameters bound.

        Accepts either the parts, set_function('f', ['x'], 'x^2'), or a
        single definition, set_function('f(x):=x^2').

        """
        if params is None and body is None:
            match = function_definition_re.fullmatch(name)
            if not match:
                raise ParseError(f'Malformed function definition "{name}"')
            name, parameters, body = match.groups()
            params = [p.strip() for p in parameters.split(',') if p.strip()]
        if name in self.functions:
            raise InvalidVariableNameError(f'{name} is a built-in function')
        if not re.fullmatch(name_re, name):
            raise InvalidVariableNameError(f'Invalid function name "{name}"')
        for param in params or []:
            self.validate_name(param)
        fn = UserFunction(name, tuple(params or ()), (body or '').strip())
        self.user_functions[name] = fn
        logger.debug('defined %s', fn)
        return fn

    def call_function(self, name: str, args: list[Symbol]) -> Symbol:
        fn = self.user_functions[name]
        if len(args) != len(fn.params):
            raise AlgebraTypeError(f'{name} expects {len(fn.params)} argument(s), got {len(args)}')
        result = self._evaluate(fn.body, dict(zip(fn.params, args)))
        if not isinstance(result, Symbol):
            raise AlgebraTypeError(f'{name} must return a symbolic value')
        return result

    def clear_functions(self) -> None:
        self.user_functions.clear()

    #
    # Operators and Units
    #

    def set_operator(
            self,
            symbol: str,
            precedence: int,
            handler: Callable,
            *,
            fixity: str = 'infix',
            left_associative: bool = True
    ) -> Operator:
        """Registers an operator evaluated by `handler`.

        Infix handlers take two Symbols; prefix and postfix handlers take one.

        """
        A = OperatorAction
        actions = {
            'infix': dict(action=A.CUSTOM),
            'prefix': dict(prefix_action=A.CUSTOM, unary_precedence=precedence),
            'postfix': dict(postfix_action=A.CUSTOM, unary_precedence=precedence),
        }
        if fixity not in actions:
            raise AlgebraTypeError(f'Unknown operator fixity "{fixity}"')
        operator = Operator(symbol, precedence, left_associative=left_associative,
                            handler=handler, **actions[fixity])
        return self.operators.set(operator)

    def alias_operator(self, original: str, alias: str) -> Operator:
        return self.operators.alias(original, alias)

    def get_operator(self, symbol: str) -> Operator:
        return self.operators.get(symbol)

    def register_unit(self, name: str) -> None:
        self.validate_name(name)
        self.units.add(name)

    #
    # Names and Settings
    #

    def known_names(self) -> frozenset[str]:
        "Multi-letter names never split into single-letter variables."
        return frozenset(BUILTIN_NAMES | self.constants.keys() | self.variables.keys()
                         | self.user_functions.keys() | self.units)

    def reserved(self) -> frozenset[str]:
        "Names that cannot be used for variables."
        return self.functions.names | BUILTIN_NAMES | {self.settings.imaginary}

    def validate_name(self, name: str) -> None:
        if not isinstance(name, str) or not re.fullmatch(name_re, name):
            raise InvalidVariableNameError(f'Invalid variable name "{name}"')
        if name in self.reserved():
            raise InvalidVariableNameError(f'"{name}" is a reserved name')

    def set(self, option: str, value: Any) -> None:
        self.settings.set(option, value)

    def get(self, option: str) -> Any:
        return self.settings.get(option)


#
# Default Session
#

default_session = Session()
set_default_session(default_session)

def parse(expression: str, substitutions: dict[str, Any] | None = None):
    return default_session.parse(expression, substitutions)

def evaluate(expression: str, substitutions: dict[str, Any] | None = None):
    return default_session.evaluate(expression, substitutions)

def expand(expression: str | Symbol) -> Symbol:
    return default_session.expand(expression)

def text(value: Any, option: str = 'fractions', decimal_places: int | None = None) -> str:
    return default_session.text(value, option, decimal_places)

def rpn(expression: str) -> str:
    return default_session.rpn(expression)

def tokenize(expression: str) -> Scope:
    return default_session.tokenize(expression)
