import asyncio
import logging
import operator
from contextvars import ContextVar
from typing import (
    Any,
    Callable,
    Generic,
    TypeVar,
    Optional,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)

# NOTE: globals at the bottom of the file


# Used to track dependencies and effects created within a certain function or
# context.
class Scope:
    def __init__(self):
        # Use lists to preserve insertion order
        self.deps: list[Signal | Computed] = []
        self.effects: list[Effect] = []

    def register_effect(self, effect: "Effect"):
        if effect not in self.effects:
            self.effects.append(effect)

    def register_dep(self, value: "Signal | Computed"):
        if value not in self.deps:
            self.deps.append(value)

    def __enter__(self):
        self._prev = SCOPE.get()
        SCOPE.set(self)
        return self

    def __exit__(self, exc_type, exc_value, exc_traceback):
        SCOPE.set(self._prev)
        self._prev = None


class Untrack(Scope): ...


Listener = Callable[[Any], None]


class Subscription:
    """Handle returned by `subscribe()`. Calling it (or `dispose()`) detaches
    the listener; doing so more than once is harmless."""

    def __init__(self, callback: Listener, registry: "list[Subscription]"):
        self.callback = callback
        self.active = True
        self._registry = registry

    def dispose(self):
        if not self.active:
            return
        self.active = False
        if self in self._registry:
            self._registry.remove(self)

    def __call__(self):
        self.dispose()


def _notify(subscriptions: list[Subscription], value: Any, name: Optional[str]):
    # Iterate over a copy: listeners may unsubscribe (or subscribe others)
    # while we are notifying.
    for sub in subscriptions.copy():
        if not sub.active:
            continue
        try:
            sub.callback(value)
        except Exception:
            logger.exception(f"Error in subscriber of {name or 'anonymous'}")


class Signal(Generic[T]):
    def __init__(
        self,
        value: T,
        name: Optional[str] = None,
        equals: Callable[[T, T], bool] = operator.eq,
    ):
        self.value = value
        self.name = name
        self.equals = equals
        self.obs: list[Computed | Effect] = []
        self.subscriptions: list[Subscription] = []
        self.last_change = -1
        self._pending: list[T] = []
        self._notifying = False

    def read(self) -> T:
        if scope := SCOPE.get():
            scope.register_dep(self)
        return self.value

    def __call__(self) -> T:
        return self.read()

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        sub = Subscription(callback, self.subscriptions)
        self.subscriptions.append(sub)
        return sub

    def write(self, value: T):
        if self.equals(self.value, value):
            return
        increment_epoch()
        self.value = value
        self.last_change = epoch()
        self._pending.append(value)
        # A listener writing back into this signal gets its value queued, so
        # that every listener sees the writes in the order they happened.
        if self._notifying:
            return
        self._notifying = True
        try:
            while self._pending:
                current = self._pending.pop(0)
                _notify(self.subscriptions, current, self.name)
                for obs in self.obs.copy():
                    obs._push_change()
        finally:
            self._notifying = False

    def dispose(self):
        for sub in self.subscriptions.copy():
            sub.dispose()


class Computed(Generic[T]):
    def __init__(self, fn: Callable[..., T], name: Optional[str] = None):
        self.fn = fn
        self.value: T = None  # type: ignore
        self.name = name
        self.dirty = False
        self.on_stack = False
        self.last_change: int = -1
        self.deps: list[Signal | Computed] = []
        self.obs: list[Computed | Effect] = []
        self.subscriptions: list[Subscription] = []

    def read(self) -> T:
        if self.on_stack:
            raise RuntimeError("Circular dependency detected")

        if scope := SCOPE.get():
            scope.register_dep(self)

        self._recompute_if_necessary()
        return self.value

    def __call__(self) -> T:
        return self.read()

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        # Evaluate once so the dependencies that will push changes here are
        # known before the first write happens.
        with Untrack():
            self._recompute_if_necessary()
        sub = Subscription(callback, self.subscriptions)
        self.subscriptions.append(sub)
        return sub

    def _push_change(self):
        previous = self.last_change
        if not self.dirty:
            self.dirty = True
            for obs in self.obs.copy():
                obs._push_change()

        # Subscribed computeds are evaluated eagerly and only forward actual
        # value changes.
        if self.subscriptions:
            with Untrack():
                self._recompute_if_necessary()
            if self.last_change != previous:
                _notify(self.subscriptions, self.value, self.name)

    def _recompute(self):
        prev_value = self.value
        prev_deps = set(self.deps)
        first_run = self.last_change < 0
        with Scope() as scope:
            if self.on_stack:
                raise RuntimeError("Circular dependency detected")
            self.on_stack = True
            execution_epoch = epoch()
            try:
                self.value = self.fn()
            finally:
                self.on_stack = False
            if epoch() != execution_epoch:
                raise RuntimeError(
                    f"Detected write to a signal in computed {self.name}. Computeds should be read-only."
                )
            self.dirty = False
            if first_run or prev_value != self.value:
                self.last_change = execution_epoch

            if len(scope.effects) > 0:
                raise RuntimeError(
                    "An effect was created within a computed variable's function. "
                    "This behavior is not allowed, computed variables should be pure calculations."
                )

        self.deps = scope.deps
        new_deps = set(self.deps)
        add_deps = new_deps - prev_deps
        remove_deps = prev_deps - new_deps
        for dep in add_deps:
            dep.obs.append(self)
        for dep in remove_deps:
            dep.obs.remove(self)

    def _recompute_if_necessary(self):
        if self.last_change < 0:
            self._recompute()
            return
        if not self.dirty:
            return

        for dep in self.deps:
            if isinstance(dep, Computed):
                dep._recompute_if_necessary()
            if dep.last_change > self.last_change:
                self._recompute()
                return

        self.dirty = False

    def dispose(self):
        for sub in self.subscriptions.copy():
            sub.dispose()
        for dep in self.deps:
            if self in dep.obs:
                dep.obs.remove(self)
        self.deps = []
        self.dirty = False
        self.last_change = -1


EffectFnWithoutCleanup = Callable[[], None]
EffectCleanup = Callable[[], None]
EffectFnWithCleanup = Callable[[], EffectCleanup]
EffectFn = EffectFnWithCleanup | EffectFnWithoutCleanup


class Effect:
    def __init__(
        self, fn: EffectFn, name: Optional[str] = None, immediate=False, lazy=False
    ):
        self.fn: EffectFn = fn
        self.name: Optional[str] = name
        self.cleanup_fn: Optional[EffectCleanup] = None
        self.deps: list[Signal | Computed] = []
        # Used to detect the first run, but useful for testing/optimization
        self.runs: int = 0
        self.last_run: int = -1
        self.batch: Optional[Batch] = None

        if immediate and lazy:
            raise ValueError("An effect cannot be both immediate and lazy")

        if scope := SCOPE.get():
            scope.register_effect(self)

        # Will either run the effect now or add it to the current batch
        if immediate:
            self.run()
        elif not lazy:
            self.schedule()

    def dispose(self):
        if self.cleanup_fn:
            self.cleanup_fn()
            self.cleanup_fn = None
        for dep in self.deps:
            if self in dep.obs:
                dep.obs.remove(self)
        self.deps = []
        if self.batch and self in self.batch.effects:
            self.batch.effects.remove(self)
        self.batch = None

    def schedule(self):
        batch = BATCH.get()
        batch.register_effect(self)
        self.batch = batch

    def _push_change(self):
        self.schedule()

    def _should_run(self):
        return self.runs == 0 or self._deps_changed_since_last_run()

    def _deps_changed_since_last_run(self):
        for dep in self.deps:
            if dep.last_change > self.last_run:
                return True
            if isinstance(dep, Computed):
                dep._recompute_if_necessary()
                if dep.last_change > self.last_run:
                    return True
        return False

    def __call__(self):
        self.run()

    def run(self):
        # Don't track what happens in the cleanup
        with Untrack():
            if self.cleanup_fn:
                self.cleanup_fn()

        prev_deps = set(self.deps)
        execution_epoch = epoch()
        with Scope() as scope:
            # Clear batch *before* running as we may update a signal that causes
            # this effect to be rescheduled.
            self.batch = None
            self.cleanup_fn = self.fn()
            self.runs += 1
            self.last_run = execution_epoch

        self.deps = scope.deps
        new_deps = set(self.deps)
        add_deps = new_deps - prev_deps
        remove_deps = prev_deps - new_deps
        for dep in add_deps:
            dep.obs.append(self)
        for dep in remove_deps:
            dep.obs.remove(self)

        if self._deps_changed_since_last_run():
            self.schedule()


class Batch:
    def __init__(self) -> None:
        self.effects: list[Effect] = []

    def register_effect(self, effect: Effect):
        if effect not in self.effects:
            self.effects.append(effect)

    def flush(self):
        global_batch = BATCH.get()
        token = None
        if global_batch != self:
            token = BATCH.set(self)

        MAX_ITERS = 10000
        iters = 0

        try:
            while len(self.effects) > 0:
                if iters > MAX_ITERS:
                    raise RuntimeError(
                        f"The reactive system registered more than {MAX_ITERS} iterations. There is likely an update cycle in your application.\n"
                        "This is most often caused by an effect that writes to a signal it also reads."
                    )

                current_effects = self.effects
                self.effects = []

                for effect in current_effects:
                    if effect._should_run():
                        effect.run()

                iters += 1
        finally:
            if token:
                BATCH.reset(token)

    def __enter__(self):
        self._token = BATCH.set(self)
        return self

    def __exit__(self, exc_type, exc_value, exc_traceback):
        self.flush()
        # Reset AFTER flushing, as the batch needs to capture any signals or
        # effects triggered while flushing.
        BATCH.reset(self._token)


class GlobalBatch(Batch):
    def __init__(self) -> None:
        self.scheduled_on: Optional[asyncio.AbstractEventLoop] = None
        super().__init__()

    def register_effect(self, effect: Effect):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        # Without a running loop, effects wait for an explicit flush_effects()
        if loop is not None and self.scheduled_on is not loop:
            loop.call_soon_threadsafe(self.flush)
            self.scheduled_on = loop
        return super().register_effect(effect)

    def flush(self):
        try:
            super().flush()
        finally:
            self.scheduled_on = None


def flush_effects():
    BATCH.get().flush()


def batch():
    return Batch()


def untrack():
    return Untrack()


# --- Globals ---
class Epoch:
    current: int = 0


EPOCH = ContextVar("mvvm_counter_epoch", default=Epoch())
SCOPE: ContextVar[Optional[Scope]] = ContextVar("mvvm_counter_scope", default=None)
BATCH: ContextVar[Batch] = ContextVar("mvvm_counter_batch", default=GlobalBatch())


def epoch():
    return EPOCH.get().current


def increment_epoch():
    EPOCH.get().current += 1
