"""Retry timing and the tunable limits used by OSS requests."""

from __future__ import annotations

import operator
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field


@dataclass(frozen=True)
class AttemptStrategy:
    """How long to keep trying, how long to wait between tries, and the fewest tries."""

    total: float = 0.0
    delay: float = 0.0
    min_attempts: int = 0
    clock: Callable[[], float] = field(default=time.monotonic, compare=False, repr=False)
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def start(self) -> Attempt:
        """Begin a fresh series of attempts."""
        return Attempt(self)


class Attempt:
    """A running series of attempts under a strategy."""

    def __init__(self, strategy: AttemptStrategy) -> None:
        self._strategy = strategy
        now = strategy.clock()
        self._last = now
        self._end = now + strategy.total
        self._force = True
        self._count = 0

    @property
    def count(self) -> int:
        """Number of attempts started so far."""
        return self._count

    def _next_sleep(self, now: float) -> float:
        return max(0.0, self._strategy.delay - (now - self._last))

    def next(self) -> bool:
        """Wait as needed and tell whether another attempt may be made."""
        strategy = self._strategy
        now = strategy.clock()
        sleep = self._next_sleep(now)
        if (
            not self._force
            and not now + sleep < self._end
            and strategy.min_attempts <= self._count
        ):
            return False
        self._force = False
        if sleep > 0 and self._count > 0:
            strategy.sleep(sleep)
            now = strategy.clock()
        self._count += 1
        self._last = now
        return True

    def has_next(self) -> bool:
        """Tell whether a further call to next would allow another attempt."""
        if self._force or self._strategy.min_attempts > self._count:
            return True
        now = self._strategy.clock()
        if now + self._next_sleep(now) < self._end:
            self._force = True
            return True
        return False

    def __iter__(self) -> Iterator[int]:
        while self.next():
            yield self._count


_DEFAULT_STRATEGY = AttemptStrategy(total=5.0, delay=0.2, min_attempts=5)
_DEFAULT_LIST_MAX = 1000


@dataclass
class _Settings:
    strategy: AttemptStrategy = _DEFAULT_STRATEGY
    list_parts_max: int = _DEFAULT_LIST_MAX
    list_multi_max: int = _DEFAULT_LIST_MAX


_settings = _Settings()


def set_attempt_strategy(strategy: AttemptStrategy | None) -> None:
    """Replace the retry strategy; None restores the original one."""
    _settings.strategy = _DEFAULT_STRATEGY if strategy is None else strategy


def get_attempt_strategy() -> AttemptStrategy:
    return _settings.strategy


def set_list_parts_max(n: int) -> None:
    """Set how many parts a single list-parts request asks for."""
    _settings.list_parts_max = operator.index(n)


def get_list_parts_max() -> int:
    return _settings.list_parts_max


def set_list_multi_max(n: int) -> None:
    """Set how many uploads a single list-uploads request asks for."""
    _settings.list_multi_max = operator.index(n)


def get_list_multi_max() -> int:
    return _settings.list_multi_max