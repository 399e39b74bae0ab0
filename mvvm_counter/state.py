"""
State containers for view models.

A `StateNotifier` owns exactly one immutable value. The value is never mutated
in place: assigning `notifier.state` publishes a replacement, and every
observer is told about every replacement. Projections of the current value are
declared with `@computed` methods, which become `ComputedProperty` descriptors
giving each instance its own memoized `Computed`.
"""

import logging
import operator
from typing import Any, Callable, Generic, Never, Optional, TypeVar

from mvvm_counter.errors import StateError
from mvvm_counter.reactive import Computed, Signal, Subscription, Untrack


T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)


class ComputedProperty(Generic[T]):
    """
    Descriptor for projections declared on StateNotifier classes.
    """

    def __init__(self, name: str, fn: "Callable[[StateNotifier], T]"):
        self.name = name
        self.private_name = f"__computed_{name}"
        # The computed_template holds the original method
        self.fn = fn

    def get_computed(self, obj) -> Computed[T]:
        if not isinstance(obj, StateNotifier):
            raise ValueError(
                f"Computed property {self.name} defined on a non-StateNotifier class"
            )
        if not hasattr(obj, self.private_name):
            # Create the computed on first access for this instance
            bound_method = self.fn.__get__(obj, obj.__class__)
            new_computed = Computed(
                bound_method,
                name=f"{obj.__class__.__name__}.{self.name}",
            )
            setattr(obj, self.private_name, new_computed)
        return getattr(obj, self.private_name)

    def __get__(self, obj: Any, objtype: Any = None) -> T:
        if obj is None:
            return self  # type: ignore

        return self.get_computed(obj).read()

    def __set__(self, obj: Any, value: Any) -> Never:
        raise AttributeError(f"Cannot set computed property '{self.name}'")


class StateNotifier(Generic[T]):
    """
    Holds one immutable value and notifies observers on every replacement.

    ```python
    class CounterViewModel(StateNotifier[CounterState]):
        @computed
        def count(self):
            return self.state.count
    ```

    Replacements are compared by identity, so publishing a value equal to the
    current one still reaches observers. Projections compare by value and
    only forward real changes.
    """

    def __init__(self, initial: T, name: Optional[str] = None):
        self._name = name or self.__class__.__name__
        self._signal: Signal[T] = Signal(
            initial, name=f"{self._name}.state", equals=operator.is_
        )
        self._selectors: list[Computed[Any]] = []
        self._mounted = True

    @property
    def state(self) -> T:
        """The current value. Reading it inside an effect or computed
        registers a dependency."""
        return self._signal.read()

    @state.setter
    def state(self, value: T) -> None:
        self._ensure_mounted()
        logger.debug(f"{self._name}: {value!r}")
        self._signal.write(value)

    @property
    def mounted(self) -> bool:
        return self._mounted

    def read(self) -> T:
        """The current value, without registering a dependency."""
        with Untrack():
            return self._signal.read()

    def observe(
        self, callback: Callable[[T], None], fire_immediately: bool = False
    ) -> Subscription:
        """Call `callback` with each new value. Returns a handle that stops
        the notifications when called."""
        self._ensure_mounted()
        sub = self._signal.subscribe(callback)
        if fire_immediately:
            callback(self._signal.value)
        return sub

    def select(self, fn: Callable[[T], R], name: Optional[str] = None) -> Computed[R]:
        computed = Computed(
            lambda: fn(self.state), name=name or f"{self._name}.select"
        )
        self._selectors.append(computed)
        return computed

    def projection(self, name: str) -> Computed[Any]:
        """Return the `Computed` behind the `@computed` member `name`."""
        prop = getattr(self.__class__, name, None)
        if not isinstance(prop, ComputedProperty):
            raise AttributeError(
                f"'{self.__class__.__name__}' has no projection named '{name}'"
            )
        return prop.get_computed(self)

    def computeds(self):
        """Iterate over the instance's projections, including base classes."""
        seen: set[str] = set()
        for cls in self.__class__.__mro__:
            if cls is StateNotifier:
                break
            for name, comp_prop in cls.__dict__.items():
                if name in seen:
                    continue
                if isinstance(comp_prop, ComputedProperty):
                    seen.add(name)
                    yield comp_prop.get_computed(self)

    def dispose(self):
        if not self._mounted:
            return
        self._mounted = False
        for computed in self.computeds():
            computed.dispose()
        for computed in self._selectors:
            computed.dispose()
        self._selectors.clear()
        self._signal.dispose()

    def _ensure_mounted(self):
        if not self._mounted:
            raise StateError(f"{self._name} was used after being disposed")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} state={self._signal.value!r}>"
