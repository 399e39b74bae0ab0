import pytest

from mvvm_counter.env import ENV_MVVM_COUNTER_DELAY_SCALE, ENV_MVVM_COUNTER_LOG_LEVEL, CounterDelays
from mvvm_counter.models import CounterState
from mvvm_counter.providers import ProviderScope, counter_view_model_provider
from mvvm_counter.reactive import flush_effects
from mvvm_counter.viewmodel import CounterViewModel


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):  # pyright: ignore[reportUnusedFunction]
    monkeypatch.delenv(ENV_MVVM_COUNTER_DELAY_SCALE, raising=False)
    monkeypatch.delenv(ENV_MVVM_COUNTER_LOG_LEVEL, raising=False)
    yield
    # Don't leak effects scheduled by one test into the next
    flush_effects()


@pytest.fixture
def fast_delays() -> CounterDelays:
    return CounterDelays(scale=0.01)


@pytest.fixture
def vm(fast_delays: CounterDelays):
    view_model = CounterViewModel(fast_delays)
    yield view_model
    view_model.dispose()


@pytest.fixture
def scope(vm: CounterViewModel):
    with ProviderScope(overrides={counter_view_model_provider: vm}) as s:
        yield s


@pytest.fixture
def recorder(vm: CounterViewModel):
    states: list[CounterState] = []
    vm.observe(states.append)
    return states
