"""
Environment configuration.

Every setting is read from `os.environ` on access so that tests and the CLI
can change it at runtime.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Optional

from mvvm_counter.errors import ConfigError

ENV_MVVM_COUNTER_DELAY_SCALE = "MVVM_COUNTER_DELAY_SCALE"
ENV_MVVM_COUNTER_LOG_LEVEL = "MVVM_COUNTER_LOG_LEVEL"

DEFAULT_LOG_LEVEL = "WARNING"


def validate_delay_scale(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Delay scale must be a number, got {value!r}")
    scale = float(value)
    if math.isnan(scale) or math.isinf(scale) or scale < 0:
        raise ConfigError(f"Delay scale must be a finite number >= 0, got {value!r}")
    return scale


def validate_log_level(value: str) -> str:
    level = value.strip().upper()
    if level not in logging.getLevelNamesMapping():
        raise ConfigError(f"Unknown log level {value!r}")
    return level


class CounterEnv:
    def _get(self, key: str) -> Optional[str]:
        return os.environ.get(key)

    def _set(self, key: str, value: Optional[str]) -> None:
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value

    @property
    def delay_scale(self) -> float:
        raw = self._get(ENV_MVVM_COUNTER_DELAY_SCALE)
        if raw is None or raw.strip() == "":
            return 1.0
        try:
            value = float(raw)
        except ValueError:
            raise ConfigError(
                f"{ENV_MVVM_COUNTER_DELAY_SCALE} must be a number, got {raw!r}"
            ) from None
        return validate_delay_scale(value)

    @delay_scale.setter
    def delay_scale(self, value: Optional[float]) -> None:
        if value is None:
            self._set(ENV_MVVM_COUNTER_DELAY_SCALE, None)
            return
        self._set(ENV_MVVM_COUNTER_DELAY_SCALE, str(validate_delay_scale(value)))

    @property
    def log_level(self) -> str:
        return validate_log_level(
            self._get(ENV_MVVM_COUNTER_LOG_LEVEL) or DEFAULT_LOG_LEVEL
        )

    @log_level.setter
    def log_level(self, value: Optional[str]) -> None:
        self._set(
            ENV_MVVM_COUNTER_LOG_LEVEL, validate_log_level(value) if value else None
        )


env = CounterEnv()


@dataclass(frozen=True, slots=True)
class CounterDelays:
    """Simulated latency of each action, in milliseconds.

    `scale` multiplies every delay; 0 makes the actions finish after a single
    pass through the event loop.
    """

    increment_ms: float = 300
    batch_ms: float = 500
    reset_ms: float = 200
    set_count_ms: float = 250
    scale: float = 1.0

    def __post_init__(self):
        validate_delay_scale(self.scale)

    def seconds(self, ms: float) -> float:
        return ms * self.scale / 1000.0

    @classmethod
    def from_env(cls) -> "CounterDelays":
        return cls(scale=env.delay_scale)
