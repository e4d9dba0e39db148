from __future__ import annotations

from typing            import (
    Protocol,
    runtime_checkable
)


@runtime_checkable
class Renderable(Protocol):
    def __canonalg_repr__(self):
        ...

@runtime_checkable
class SupportsText(Protocol):
    def text(self, option=None, decimal_places: int | None = None) -> str:
        ...
