from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

INITIAL_MESSAGE = "press a button to start counting"
RESET_MESSAGE = "counter was reset"
NEGATIVE_VALUE_MESSAGE = "error: negative values are not allowed"


@dataclass(frozen=True, slots=True)
class CounterState:
    """Immutable snapshot of everything the counter screen displays.

    Instances compare field by field. `count` is kept non-negative by the view
    model; the record itself accepts any integer.
    """

    count: int
    message: str
    is_loading: bool = False

    @classmethod
    def initial(cls) -> CounterState:
        return cls(count=0, message=INITIAL_MESSAGE)

    def copy_with(self, **changes: Any) -> CounterState:
        """Return a new state with `changes` applied, e.g.
        `state.copy_with(is_loading=True)`."""
        return replace(self, **changes)
