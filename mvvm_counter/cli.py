"""
Command-line interface for the MVVM counter.

This module provides an interactive session and a scripted mode that runs a
list of commands and prints the final state.
"""
# typer relies on function calls used as default values
# pyright: reportCallInDefaultInitializer=false

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from mvvm_counter.env import CounterDelays, env, validate_log_level
from mvvm_counter.errors import CounterError
from mvvm_counter.providers import (
    ProviderScope,
    counter_view_model_provider,
)
from mvvm_counter.reactive import flush_effects
from mvvm_counter.view import CounterView
from mvvm_counter.viewmodel import CounterViewModel

cli = typer.Typer(
    name="mvvm-counter",
    help="MVVM counter - a reactive view model driven from the terminal",
    no_args_is_help=True,
)


def configure_logging(level: Optional[str]) -> None:
    level = validate_log_level(level) if level else env.log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )


def build_scope(delay_scale: Optional[float]) -> ProviderScope:
    if delay_scale is None:
        delays = CounterDelays.from_env()
    else:
        delays = CounterDelays(scale=delay_scale)
    return ProviderScope(
        overrides={counter_view_model_provider: CounterViewModel(delays)}
    )


async def _interactive(console: Console, delay_scale: Optional[float]) -> None:
    with build_scope(delay_scale) as scope:
        view = CounterView(scope, console)
        view.print_help()
        view.mount()
        try:
            while True:
                try:
                    line = await asyncio.to_thread(console.input, "> ")
                except EOFError:
                    break
                # Awaiting each command before reading the next line keeps input
                # blocked while an action runs, like the disabled buttons
                if not await view.handle(line):
                    break
        finally:
            flush_effects()
            view.unmount()


async def _execute(
    commands: list[str], delay_scale: Optional[float], watch: bool
) -> None:
    console = Console()
    with build_scope(delay_scale) as scope:
        view = CounterView(scope, console)
        if watch:
            view.mount()
        try:
            for command in commands:
                await view.dispatch(command)
        finally:
            flush_effects()
            view.unmount()
        state = scope.get(counter_view_model_provider).read()
        typer.echo(f"count: {state.count}")
        typer.echo(f"message: {state.message}")


DelayScaleOption = typer.Option(
    None,
    "--delay-scale",
    min=0.0,
    help="Multiplier for the simulated delays (0 = instant)",
)
LogLevelOption = typer.Option(None, "--log-level", help="Logging level")


@cli.command("run")
def run(
    delay_scale: Optional[float] = DelayScaleOption,
    log_level: Optional[str] = LogLevelOption,
):
    """Start an interactive counter session."""
    try:
        configure_logging(log_level)
        asyncio.run(_interactive(Console(), delay_scale))
    except CounterError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)


@cli.command("exec")
def exec_commands(
    commands: list[str] = typer.Argument(
        ..., help="Commands to run in order, e.g. + b 'set 42' r"
    ),
    delay_scale: Optional[float] = DelayScaleOption,
    log_level: Optional[str] = LogLevelOption,
    watch: bool = typer.Option(
        False, "--watch", help="Render the counter after every change"
    ),
):
    """Run commands against a fresh counter and print the final state."""
    try:
        configure_logging(log_level)
        asyncio.run(_execute(commands, delay_scale, watch))
    except CounterError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)


def main():
    """Main CLI entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        typer.echo("\n👋 Bye!")
        raise typer.Exit(0)


if __name__ == "__main__":
    main()
