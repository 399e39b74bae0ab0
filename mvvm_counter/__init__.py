from .reactive import (
    Batch,
    Computed,
    Effect,
    Signal,
    Subscription,
    Untrack,
    batch,
    flush_effects,
    untrack,
)
from .decorators import computed, effect
from .state import ComputedProperty, StateNotifier
from .models import CounterState
from .env import CounterDelays, env
from .errors import (
    ConfigError,
    CounterError,
    InvalidNumberError,
    StateError,
    UnknownCommandError,
)
from .viewmodel import (
    CounterActions,
    CounterViewModel,
    custom_message,
    message_for_count,
)
from .providers import (
    Provider,
    ProviderScope,
    counter_actions_provider,
    counter_loading_provider,
    counter_message_provider,
    counter_state_provider,
    counter_value_provider,
    counter_view_model_provider,
)
