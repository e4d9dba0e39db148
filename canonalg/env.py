#
# Engine settings and a singleton environment for interactive display.
#
# Settings are owned by a session and read by the engine through the
# active context (see canonalg.context). The display environment
# controls how results print in an interactive session; it is
# primarily for interactive use and not thread safe.
#
from __future__ import annotations

from dataclasses  import dataclass, fields, replace
from typing       import Any

from rich.console import Console
from rich.theme   import Theme

from canonalg.exceptions import SettingsError


#
# Engine Settings
#

# Upper-case option names accepted in addition to the field names
OPTION_ALIASES = {
    'PARSE2NUMBER': 'parse2number',
    'PRECISION': 'precision',
    'TIMEOUT': 'timeout',
    'USE_MULTICHARACTER_VARS': 'use_multicharacter_vars',
    'IMAGINARY': 'imaginary',
    'DEFAULT_DECP': 'decimal_places',
    'TRIG_EPSILON': 'trig_epsilon',
    'CONVERSION_EPSILON': 'conversion_epsilon',
    'FACTORIAL_EXPANSION_LIMIT': 'factorial_expansion_limit',
}

@dataclass
class Settings:
    """Options consumed by the parser and the operator algebra.

    Parameters:
    ----------
      parse2number [False] - reduce functions, constants and irrational
          powers to numbers instead of keeping them symbolic
      precision [21] - decimal digits used for numeric evaluation and
          rational-to-decimal conversion
      timeout [800] - cooperative time budget in milliseconds for one
          top-level parse; None or a negative value disables it
      use_multicharacter_vars [True] - if False, adjacent letters are
          separate single-letter variables
      imaginary ['i'] - name of the imaginary unit
      decimal_places [16] - default significant digits for decimal output
      trig_epsilon [1e-14] - numeric trigonometric results this close to
          an integer are snapped to that integer
      conversion_epsilon [1e-20] - stopping tolerance for continued-fraction
          conversion of floats
      factorial_expansion_limit [20] - largest argument difference for
          which a ratio of factorials is expanded into a product

    """
    parse2number: bool = False
    precision: int = 21
    timeout: int | None = 800
    use_multicharacter_vars: bool = True
    imaginary: str = 'i'
    decimal_places: int = 16
    trig_epsilon: float = 1e-14
    conversion_epsilon: float = 1e-20
    factorial_expansion_limit: int = 20

    @staticmethod
    def field_name(option: str) -> str:
        name = OPTION_ALIASES.get(option, option)
        if name not in {f.name for f in fields(Settings)}:
            raise SettingsError(f'Unknown option "{option}"')
        return name

    def get(self, option: str) -> Any:
        return getattr(self, self.field_name(option))

    def set(self, option: str, value: Any) -> None:
        name = self.field_name(option)
        current = getattr(self, name)
        if name == 'timeout':
            if value is not None and not isinstance(value, int):
                raise SettingsError(f'Option {option} requires an integer or None, got {value!r}')
        elif isinstance(current, bool):
            if not isinstance(value, bool):
                raise SettingsError(f'Option {option} requires a boolean, got {value!r}')
        elif isinstance(current, int):
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise SettingsError(f'Option {option} requires a positive integer, got {value!r}')
        elif isinstance(current, float):
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise SettingsError(f'Option {option} requires a positive number, got {value!r}')
            value = float(value)
        elif isinstance(current, str):
            if not isinstance(value, str) or not value.isidentifier():
                raise SettingsError(f'Option {option} requires a name, got {value!r}')
        setattr(self, name, value)

    def copy(self, **overrides) -> Settings:
        return replace(self, **overrides)

    @classmethod
    def from_mapping(cls, options: dict[str, Any]) -> Settings:
        settings = cls()
        for option, value in options.items():
            settings.set(option, value)
        return settings


#
# Interactive Display
#

bright_theme = Theme({
    "repr.number": "#3333cc",
    "repr.str": "#330066",
    "algebra.prompt": "bold #009933",
    "algebra.error": "bold #990033",
    "algebra.result": "#000033",
})

dark_theme = Theme({
    "repr.number": "#cccc33",
    "repr.str": "#ccff99",
    "algebra.prompt": "bold #66ffcc",
    "algebra.error": "bold #ff66cc",
    "algebra.result": "#ffffcc",
})


@dataclass
class Environment:
    """Options governing interactive sessions, globally available.
    """
    ascii_only: bool = False
    dark_mode: bool = False
    console: Console = Console(highlight=True, theme=bright_theme)

    def on_ascii_only(self) -> None:
        "Require ASCII-only output, no rich text or panels."
        self.ascii_only = True

    def off_ascii_only(self) -> None:
        "Allow non-ascii and rich output"
        self.ascii_only = False

    def on_dark_mode(self) -> None:
        "Changes text color to suit dark colored terminals"
        self.dark_mode = True
        self.console.push_theme(dark_theme)

environment = Environment()
