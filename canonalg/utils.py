from __future__ import annotations

from typing_extensions import Any

from canonalg.env       import environment
from canonalg.protocols import Renderable, SupportsText


def show(x: Any, *, print_it=True, indent=0, render=True):
    "Shows symbols, collections, and nested containers of them in a presentable fashion."
    if render and isinstance(x, Renderable):
        out = x.__canonalg_repr__()
    elif isinstance(x, list):
        ind0 = (" " * indent)
        ind = ind0 + "  "
        sep = "\n" + ind
        init = "[\n" + ind
        final = "\n" + ind0 + "]"
        out = init + sep.join([show(xi, print_it=False, indent=indent + 2, render=False)
                               for xi in x]) + final
    elif isinstance(x, dict):
        out = str({k: show(v, print_it=False, render=False) for k, v in x.items()})
    elif isinstance(x, SupportsText):
        out = (" " * indent) + x.text()
    else:
        out = (" " * indent) + str(x)
    if print_it:
        environment.console.print(out)
        return
    return out


#
# Info tags
#

def info_tags(names: list[str], width: int = 72) -> str:
    "Wraps a list of names into comma separated lines no wider than `width`."
    lines: list[str] = []
    line = ''
    for name in sorted(names):
        candidate = f'{line}, {name}' if line else name
        if len(candidate) > width and line:
            lines.append(line + ',')
            line = name
        else:
            line = candidate
    if line:
        lines.append(line)
    return '\n'.join(lines)
