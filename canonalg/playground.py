# Interactive read-eval-print loop
#
# Each line is parsed in one session and the canonical form is shown.
# Lines starting with a colon are commands; :help lists them.

from __future__ import annotations

import argparse
import logging

from rich.logging      import RichHandler
from rich.markup       import escape

from canonalg.env        import environment
from canonalg.exceptions import AlgebraException
from canonalg.numeric    import NumberFormat, as_number_format
from canonalg.output     import RichExpression
from canonalg.session    import Session
from canonalg.utils      import info_tags, show

logger = logging.getLogger(__name__)

HELP = """Enter an expression to see its canonical form, e.g., 2x + 3x or sqrt(8).
Definitions: y := 3, f(x) := x^2, or assignment z = 4.
Commands:
  :eval EXPR           evaluate numerically
  :expand EXPR         expand products and powers of sums
  :rpn EXPR            show the postfix form
  :format NAME         fractions, decimals, scientific, mixed, recurring
  :set OPTION VALUE    e.g., :set PRECISION 30
  :vars                list variables
  :functions           list built-in functions
  :clear               remove variables and user functions
  :help                show this message
  :quit                leave"""


class Playground:
    def __init__(self, session: Session | None = None) -> None:
        self.session = session or Session()
        self.format = NumberFormat.FRACTIONS

    def result(self, value) -> None:
        show(RichExpression(value, self.format.value))

    def error(self, message: str) -> None:
        environment.console.print(f'[algebra.error]{escape(message)}[/]')

    def command(self, line: str) -> bool:
        "Runs a colon command; returns False when the loop should stop."
        name, _, argument = line[1:].partition(' ')
        argument = argument.strip()
        session = self.session
        if name in ('quit', 'q', 'exit'):
            return False
        if name == 'help':
            environment.console.print(escape(HELP))
        elif name == 'eval':
            self.result(session.evaluate(argument))
        elif name == 'expand':
            self.result(session.expand(argument))
        elif name == 'rpn':
            environment.console.print(escape(session.rpn(argument)))
        elif name == 'format':
            self.format = as_number_format(argument)
        elif name == 'set':
            option, _, value = argument.partition(' ')
            session.set(option, convert_option(value.strip()))
        elif name == 'vars':
            for var, value in session.get_vars(self.format.value).items():
                environment.console.print(f'{var} = {escape(value)}')
        elif name == 'functions':
            environment.console.print(info_tags(list(session.functions.names)))
        elif name == 'clear':
            session.clear_vars()
            session.clear_functions()
        else:
            self.error(f'Unknown command :{name}; try :help')
        return True

    def run(self) -> None:
        console = environment.console
        console.print('canonalg playground; :help for commands, :quit to leave')
        while True:
            try:
                line = console.input('[algebra.prompt]> [/]').strip()
            except (EOFError, KeyboardInterrupt):
                break
            if not line:
                continue
            try:
                if line.startswith(':') and not line.startswith(':='):
                    if not self.command(line):
                        break
                else:
                    self.result(self.session.parse(line))
            except AlgebraException as e:
                logger.debug('error for %r', line, exc_info=True)
                self.error(f'{type(e).__name__}: {e}')

def convert_option(value: str):
    "Reads an option value typed at the prompt."
    lowered = value.lower()
    if lowered in ('true', 'on', 'yes'):
        return True
    if lowered in ('false', 'off', 'no'):
        return False
    if lowered == 'none':
        return None
    for kind in (int, float):
        try:
            return kind(value)
        except ValueError:
            pass
    return value

def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog='canonalg', description='Canonical symbolic algebra playground')
    parser.add_argument('--dark', action='store_true', help='colors for dark terminals')
    parser.add_argument('--ascii', action='store_true', help='plain text output without panels')
    parser.add_argument('--debug', action='store_true', help='log token streams and definitions')
    parser.add_argument('--numeric', action='store_true', help='start with PARSE2NUMBER on')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(message)s',
        handlers=[RichHandler(console=environment.console, show_path=False)]
    )
    if args.dark:
        environment.on_dark_mode()
    if args.ascii:
        environment.on_ascii_only()
    Playground(Session(PARSE2NUMBER=args.numeric)).run()


if __name__ == '__main__':
    main()
