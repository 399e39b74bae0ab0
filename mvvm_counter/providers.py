"""
Provider wiring between the view model and its consumers.

A `Provider` is a recipe; a `ProviderScope` creates each provider's value once
and hands it out. Reactive values (`Signal` / `Computed`) are unwrapped:
`watch()` reads them inside the current tracking scope, `read()` reads them
without registering a dependency.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Generic, Optional, TypeVar

from mvvm_counter.models import CounterState
from mvvm_counter.reactive import Computed, Signal, Subscription, Untrack
from mvvm_counter.viewmodel import CounterActions, CounterViewModel

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Provider(Generic[T]):
    def __init__(
        self, create: Callable[[ProviderScope], T], name: Optional[str] = None
    ):
        self.create = create
        self.name = name or getattr(create, "__name__", "provider")

    def __repr__(self) -> str:
        return f"Provider({self.name})"


class ProviderScope:
    """Owns the values created by providers.

    `overrides` replaces the value of a provider, typically to inject a
    view model with different delays. Overridden values belong to the scope
    like any other and are disposed with it.
    """

    def __init__(self, overrides: Optional[Mapping[Provider[Any], Any]] = None):
        self._values: dict[Provider[Any], Any] = {}
        self._order: list[Provider[Any]] = []
        self._creating: set[Provider[Any]] = set()
        for provider, value in (overrides or {}).items():
            self._values[provider] = value
            self._order.append(provider)

    def get(self, provider: Provider[T]) -> T:
        """The provider's value itself, created on first use."""
        if provider in self._values:
            return self._values[provider]
        if provider in self._creating:
            raise RuntimeError(f"Circular dependency while creating {provider!r}")

        self._creating.add(provider)
        try:
            # Creating a value must not subscribe whoever asked for it
            with Untrack():
                value = provider.create(self)
        finally:
            self._creating.discard(provider)
        logger.debug(f"Created {provider!r}")
        self._values[provider] = value
        self._order.append(provider)
        return value

    def watch(self, provider: Provider[Any]) -> Any:
        value = self.get(provider)
        if isinstance(value, (Signal, Computed)):
            return value.read()
        return value

    def read(self, provider: Provider[Any]) -> Any:
        with Untrack():
            return self.watch(provider)

    def listen(
        self, provider: Provider[Any], callback: Callable[[Any], None]
    ) -> Subscription:
        value = self.get(provider)
        if not isinstance(value, (Signal, Computed)):
            raise TypeError(f"{provider!r} does not provide an observable value")
        return value.subscribe(callback)

    def dispose(self):
        for provider in reversed(self._order):
            value = self._values[provider]
            dispose = getattr(value, "dispose", None)
            if callable(dispose):
                dispose()
        self._values.clear()
        self._order.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, exc_traceback):
        self.dispose()


counter_view_model_provider: Provider[CounterViewModel] = Provider(
    lambda scope: CounterViewModel(), name="counter_view_model"
)

counter_state_provider: Provider[Computed[CounterState]] = Provider(
    lambda scope: scope.get(counter_view_model_provider).select(
        lambda state: state, name="counter_state"
    ),
    name="counter_state",
)

# Narrow slices: watching one of these only reacts to that field changing.
counter_value_provider: Provider[Computed[int]] = Provider(
    lambda scope: scope.get(counter_view_model_provider).projection("count"),
    name="counter_value",
)

counter_message_provider: Provider[Computed[str]] = Provider(
    lambda scope: scope.get(counter_view_model_provider).projection("message"),
    name="counter_message",
)

counter_loading_provider: Provider[Computed[bool]] = Provider(
    lambda scope: scope.get(counter_view_model_provider).projection("is_loading"),
    name="counter_loading",
)

# Read-once access to the actions; never makes the reader an observer.
counter_actions_provider: Provider[CounterActions] = Provider(
    lambda scope: scope.get(counter_view_model_provider).actions,
    name="counter_actions",
)
