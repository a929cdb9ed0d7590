from __future__ import annotations

import threading
import time
from typing import Callable, Protocol


class Counter(Protocol):
    """Shared counter whose increments must behave as if atomic."""

    def increment(self) -> None:  # pragma: no cover
        ...

    def read(self) -> int:  # pragma: no cover
        ...


CounterFactory = Callable[[], Counter]


class LockedCounter:
    """Lock-protected counter; never loses an increment."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> None:
        with self._lock:
            self._value += 1

    def read(self) -> int:
        with self._lock:
            return self._value


class UnsynchronizedCounter:
    """Deliberately racy counter.

    Each increment reads the value, yields the interpreter, then writes the
    incremented copy back, so concurrent increments overwrite one another.
    """

    def __init__(self) -> None:
        self._value = 0

    def increment(self) -> None:
        current = self._value
        time.sleep(0)
        self._value = current + 1

    def read(self) -> int:
        return self._value


COUNTER_KINDS: dict[str, CounterFactory] = {
    "locked": LockedCounter,
    "unsynchronized": UnsynchronizedCounter,
}

DEFAULT_COUNTER_KIND = "locked"


def counter_factory_for(kind: str) -> CounterFactory:
    try:
        return COUNTER_KINDS[kind]
    except KeyError:
        raise ValueError(
            f"Unknown counter kind {kind!r}; expected one of {', '.join(sorted(COUNTER_KINDS))}"
        ) from None


def create_counter(kind: str = DEFAULT_COUNTER_KIND) -> Counter:
    return counter_factory_for(kind)()


__all__ = [
    "COUNTER_KINDS",
    "DEFAULT_COUNTER_KIND",
    "Counter",
    "CounterFactory",
    "LockedCounter",
    "UnsynchronizedCounter",
    "counter_factory_for",
    "create_counter",
]
