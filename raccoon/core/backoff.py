"""Exponential reconnect backoff."""

from __future__ import annotations

from raccoon.config import BackoffConfig


class Backoff:
    """Delays grow by ``factor`` per failure up to ``maximum``, forever."""

    def __init__(self, config: BackoffConfig | None = None) -> None:
        self._config = config or BackoffConfig()
        self._attempt = 0

    @property
    def attempt(self) -> int:
        return self._attempt

    def next_delay(self) -> float:
        cfg = self._config
        # Stop growing the exponent once the cap is reached
        delay = min(cfg.initial * cfg.factor ** self._attempt, cfg.maximum)
        if delay < cfg.maximum:
            self._attempt += 1
        return delay

    def reset(self) -> None:
        self._attempt = 0
