from __future__ import annotations

from collections.abc   import Iterable

from parsy             import Parser, ParseError, Result


#
# Expected alternatives
#

def describe_alternatives(expected: Iterable[str]) -> str:
    "Reads a set of parser labels as English, e.g., either a name or a number."
    labels = sorted(expected)
    if not labels:
        return 'a valid character'
    if len(labels) == 1:
        return labels[0]
    if len(labels) == 2:
        return f'either {labels[0]} or {labels[1]}'
    return 'one of ' + ', '.join(labels[:-1]) + ', or ' + labels[-1]

def with_label(label: str, p: Parser) -> Parser:
    "Replaces the failure description of `p` by a single label."
    def labelled(stream, index) -> Result:
        result = p(stream, index)
        if result.status:
            return result
        return Result.failure(index, label)
    return Parser(labelled)


#
# Error context
#

def error_context(stream: str, index: int) -> str:
    "The text around `index` with a caret under the offending character."
    start = max(index - 5, 0)
    elided = '...' if start > 0 else ''
    window = elided + stream[start:min(index + 6, len(stream))]
    caret = ' ' * (5 + len(elided) + index - start) + '^'
    return f'    "{window}"\n{caret}'

def parse_error_message(e: ParseError) -> str:
    "A one-column message for a failed lex, pointing at the 1-based column."
    seen = e.stream[e.index] if e.index < len(e.stream) else 'the end'
    message = f'Expected {describe_alternatives(e.expected)} at column {e.index + 1}, saw "{seen}"'
    return message + '\n' + error_context(e.stream, e.index)
