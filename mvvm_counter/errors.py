"""
Exceptions raised by the counter package.

The view model itself never raises for bad counter values: a negative value
passed to `set_count` is reported through the state's message. These errors
cover configuration, presentation-layer parsing and misuse of a disposed
container.
"""


class CounterError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(CounterError, ValueError):
    """Invalid configuration value (environment variable or option)."""


class InvalidNumberError(CounterError, ValueError):
    """Text entered for a counter value is not an integer."""

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"not a valid number: {text!r}")


class UnknownCommandError(CounterError, ValueError):
    def __init__(self, command: str):
        self.command = command
        super().__init__(f"unknown command: {command!r}")


class StateError(CounterError, RuntimeError):
    """A state container was used after being disposed."""
