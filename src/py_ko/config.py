"""Process configuration.

Tunables for the process handle, with defaults that suit most callers.
Values can also come from the environment, the way a child inherits
its parent's ``KEY=VALUE`` block:

- ``PY_KO_READY_INTERVAL``: seconds to sleep between readiness polls.
- ``PY_KO_READY_ATTEMPTS``: how many times to poll before giving up.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

ENV_READY_INTERVAL = "PY_KO_READY_INTERVAL"
ENV_READY_ATTEMPTS = "PY_KO_READY_ATTEMPTS"

DEFAULT_READY_INTERVAL = 0.001
DEFAULT_READY_ATTEMPTS = 100


class ConfigError(ValueError):
    """Raised when a configuration value is malformed or out of range."""


@dataclass(frozen=True)
class ProcessConfig:
    """Immutable settings shared by process handles.

    Attributes:
        ready_interval: Seconds slept between two readiness polls.
        ready_attempts: Maximum number of readiness polls.

    """

    ready_interval: float = DEFAULT_READY_INTERVAL
    ready_attempts: int = DEFAULT_READY_ATTEMPTS

    def __post_init__(self) -> None:
        """Reject values that would make the readiness loop meaningless."""
        if not math.isfinite(self.ready_interval) or self.ready_interval < 0:
            msg = f"ready_interval must be a finite number >= 0, got {self.ready_interval}"
            raise ConfigError(msg)
        if self.ready_attempts < 1:
            msg = f"ready_attempts must be >= 1, got {self.ready_attempts}"
            raise ConfigError(msg)

    @property
    def ready_timeout(self) -> float:
        """Return the longest time ``wait_ready()`` can block, in seconds."""
        return self.ready_interval * self.ready_attempts

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ProcessConfig:
        """Build a config from environment variables.

        Unset variables keep their defaults.

        Args:
            environ: Variables to read (defaults to ``os.environ``).

        Raises:
            ConfigError: If a variable cannot be parsed or is out of range.

        """
        env = os.environ if environ is None else environ
        interval = _parse(env, ENV_READY_INTERVAL, float, DEFAULT_READY_INTERVAL)
        attempts = int(_parse(env, ENV_READY_ATTEMPTS, int, DEFAULT_READY_ATTEMPTS))
        return cls(ready_interval=interval, ready_attempts=attempts)


def _parse(
    env: Mapping[str, str],
    key: str,
    kind: Callable[[str], float],
    default: float,
) -> float:
    """Parse one variable with *kind*, or return *default* when unset."""
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return kind(raw.strip())
    except ValueError as e:
        msg = f"{key}={raw!r} is not a valid {kind.__name__}"
        raise ConfigError(msg) from e
