"""
Terminal view for the counter.

The view only talks to the core through a `ProviderScope`: it watches the
count, message and loading projections from an effect that re-renders the
panel, and drives the view model through the read-once actions handle. Text
typed by the user is parsed here; the core only ever receives integers.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from rich.console import Console, Group
from rich.panel import Panel
from rich.spinner import Spinner
from rich.text import Text

from mvvm_counter.errors import CounterError, InvalidNumberError, UnknownCommandError
from mvvm_counter.providers import (
    ProviderScope,
    counter_actions_provider,
    counter_loading_provider,
    counter_message_provider,
    counter_value_provider,
)
from mvvm_counter.reactive import Effect

logger = logging.getLogger(__name__)

INVALID_NUMBER_MESSAGE = "please enter a valid number"
BUSY_MESSAGE = "still processing, please wait"
LOADING_LABEL = "processing..."
SET_HINT = "hint: try 42 or 100!"

HELP_TEXT = """\
commands:
  +, inc      increment by 1
  b, batch    increment by 10
  r, reset    reset the counter
  s N, set N  set the counter to N (an integer >= 0)
  h, help     show this help
  q, quit     leave"""

_INTEGER = re.compile(r"[+-]?\d+")


def parse_count(text: str) -> int:
    """Parse user input for `set`. Anything but a plain integer is rejected."""
    stripped = text.strip()
    if not _INTEGER.fullmatch(stripped):
        raise InvalidNumberError(text)
    try:
        return int(stripped)
    except ValueError:
        # More digits than the interpreter converts (sys.set_int_max_str_digits)
        raise InvalidNumberError(text) from None


def count_color(count: int) -> str:
    if count == 0:
        return "grey50"
    if count < 10:
        return "blue"
    if count < 50:
        return "green"
    if count < 100:
        return "dark_orange"
    return "red"


def render_counter(count: int, message: str, is_loading: bool) -> Panel:
    if is_loading:
        display = Spinner("dots", text=Text(LOADING_LABEL, style="italic"))
    else:
        display = Text(str(count), style=f"bold {count_color(count)}")
    return Panel(
        Group(display, Text(message)),
        title="counter",
        expand=False,
    )


class CounterView:
    def __init__(self, scope: ProviderScope, console: Optional[Console] = None):
        self.scope = scope
        self.console = console or Console()
        self.actions = scope.read(counter_actions_provider)
        self.renders = 0
        self._effect: Optional[Effect] = None

    @property
    def mounted(self) -> bool:
        return self._effect is not None

    def mount(self):
        if self._effect is not None:
            return
        self._effect = Effect(self.render, name="CounterView.render", immediate=True)

    def unmount(self):
        if self._effect is not None:
            self._effect.dispose()
            self._effect = None

    def render(self):
        count = self.scope.watch(counter_value_provider)
        message = self.scope.watch(counter_message_provider)
        is_loading = self.scope.watch(counter_loading_provider)
        self.renders += 1
        self.console.print(render_counter(count, message, is_loading))

    def print_help(self):
        self.console.print(HELP_TEXT, highlight=False)

    async def dispatch(self, command: str) -> bool:
        """Run one command. Returns False when the user asked to quit.

        Raises `InvalidNumberError` / `UnknownCommandError` for bad input.
        """
        parts = command.split()
        if not parts:
            return True
        name, args = parts[0].lower(), parts[1:]

        if name in ("q", "quit", "exit"):
            return False
        if name in ("h", "help", "?"):
            self.print_help()
            return True

        # Only concurrent callers get here; the interactive loop awaits each command
        if self.scope.read(counter_loading_provider):
            self.console.print(f"[yellow]{BUSY_MESSAGE}[/yellow]")
            return True

        if name in ("+", "inc", "increment"):
            await self.actions.increment()
        elif name in ("b", "batch", "+10"):
            await self.actions.increment_batch()
        elif name in ("r", "reset"):
            await self.actions.reset()
        elif name in ("s", "set"):
            if len(args) != 1:
                raise InvalidNumberError(" ".join(args))
            await self.actions.set_count(parse_count(args[0]))
        else:
            raise UnknownCommandError(name)
        return True

    async def handle(self, command: str) -> bool:
        """Like `dispatch`, but reports bad input on the console."""
        try:
            return await self.dispatch(command)
        except InvalidNumberError:
            self.console.print(f"[red]{INVALID_NUMBER_MESSAGE}[/red] ({SET_HINT})")
        except CounterError as e:
            logger.debug(f"Rejected command {command!r}: {e}")
            self.console.print(f"[red]{e}[/red]")
            self.print_help()
        return True
