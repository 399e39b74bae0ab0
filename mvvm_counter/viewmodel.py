"""
The counter view model.

`CounterViewModel` owns the current `CounterState` and is the only place it is
replaced. Each action publishes a loading state, waits for its simulated
delay, then publishes the result. Overlapping actions are not sequenced: the
last replacement wins.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Optional

from mvvm_counter.decorators import computed
from mvvm_counter.env import CounterDelays
from mvvm_counter.models import (
    NEGATIVE_VALUE_MESSAGE,
    RESET_MESSAGE,
    CounterState,
)
from mvvm_counter.reactive import Untrack
from mvvm_counter.state import StateNotifier

logger = logging.getLogger(__name__)


def message_for_count(count: int) -> str:
    """Status line shown after an increment. First matching rule wins."""
    if count == 0:
        return "count is zero"
    if count < 5:
        return f"count: {count} - still early!"
    if count < 10:
        return f"count: {count} - good pace!"
    if count < 20:
        return f"count: {count} - impressive!"
    if count == 50:
        return "🎉 reached 50! congratulations!"
    if count == 100:
        return "🏆 reached 100! excellent!"
    return f"count: {count} - keep it up!"


def custom_message(value: int) -> str:
    """Status line shown after `set_count`. First matching rule wins."""
    if value == 0:
        return "counter set to 0"
    if value == 42:
        return "42 - the answer to life, the universe, and everything!"
    if value == 100:
        return "100 - a perfect number!"
    if value > 1000:
        return f"{value} - that's a very large number!"
    return f"counter set to {value}"


def batch_message(count: int) -> str:
    return f"incremented by 10 at once! now: {count}"


@dataclass(frozen=True, slots=True)
class CounterActions:
    """The view model's actions, without any way to observe its state."""

    increment: Callable[[], Awaitable[None]]
    increment_batch: Callable[[], Awaitable[None]]
    reset: Callable[[], Awaitable[None]]
    set_count: Callable[[int], Awaitable[None]]


class CounterViewModel(StateNotifier[CounterState]):
    def __init__(self, delays: Optional[CounterDelays] = None):
        super().__init__(CounterState.initial())
        self.delays = delays if delays is not None else CounterDelays.from_env()

    # --- Projections ---
    @computed
    def count(self) -> int:
        return self.state.count

    @computed
    def message(self) -> str:
        return self.state.message

    @computed
    def is_loading(self) -> bool:
        return self.state.is_loading

    @property
    def actions(self) -> CounterActions:
        # Built untracked so that grabbing the actions from inside an effect
        # never subscribes it to the state.
        with Untrack():
            return CounterActions(
                increment=self.increment,
                increment_batch=self.increment_batch,
                reset=self.reset,
                set_count=self.set_count,
            )

    # --- Actions ---
    async def increment(self) -> None:
        self._start_loading()
        await self._pause(self.delays.increment_ms)

        new_count = self.read().count + 1
        logger.debug(f"increment -> {new_count}")
        self.state = CounterState(
            count=new_count,
            message=message_for_count(new_count),
            is_loading=False,
        )

    async def increment_batch(self) -> None:
        self._start_loading()
        await self._pause(self.delays.batch_ms)

        new_count = self.read().count + 10
        logger.debug(f"increment_batch -> {new_count}")
        self.state = CounterState(
            count=new_count,
            message=batch_message(new_count),
            is_loading=False,
        )

    async def reset(self) -> None:
        self._start_loading()
        await self._pause(self.delays.reset_ms)

        logger.debug("reset")
        self.state = CounterState.initial().copy_with(message=RESET_MESSAGE)

    async def set_count(self, value: int) -> None:
        if value < 0:
            # Reported through the message only: count and loading stay as
            # they are and no delay is simulated.
            logger.info(f"Rejected negative counter value {value}")
            self.state = self.read().copy_with(message=NEGATIVE_VALUE_MESSAGE)
            return

        self._start_loading()
        await self._pause(self.delays.set_count_ms)

        logger.debug(f"set_count -> {value}")
        self.state = CounterState(
            count=value,
            message=custom_message(value),
            is_loading=False,
        )

    # --- Internal helpers ---
    def _start_loading(self) -> None:
        self.state = self.read().copy_with(is_loading=True)

    async def _pause(self, ms: float) -> None:
        await asyncio.sleep(self.delays.seconds(ms))
