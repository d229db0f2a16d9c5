"""Unbounded producers. Bound them with islice() or takewhile() before materializing."""

import numbers
from typing import Any, Iterable, List, Optional

from sources import EXHAUSTED, Source, source


class Count(Source):
    """start, start + step, start + 2*step, ... forever."""

    def __init__(self, start=0, step=1):
        super().__init__()
        for name, value in (("start", start), ("step", step)):
            if not isinstance(value, numbers.Number):
                raise TypeError(f"count() {name} must be a number, got {type(value).__name__}")
        self._next = start
        self._step = step

    def _pull(self):
        value = self._next
        self._next = value + self._step
        return value

    def __repr__(self):
        return f"count({self._next!r}, {self._step!r})"


class Cycle(Source):
    """Replays its input once while saving it, then replays the saved copy forever."""

    def __init__(self, iterable: Iterable[Any]):
        super().__init__()
        self._upstream = source(iterable)
        self._saved: List[Any] = []
        self._replaying = False
        self._index = 0

    def _pull(self):
        if not self._replaying:
            item = self._upstream.pull()
            if item is not EXHAUSTED:
                self._saved.append(item)
                return item
            # Empty input: stop instead of spinning over nothing
            if not self._saved:
                return EXHAUSTED
            self._replaying = True
        item = self._saved[self._index]
        self._index = (self._index + 1) % len(self._saved)
        return item


class Repeat(Source):
    """The same object ``times`` times, or forever when times is None."""

    def __init__(self, value: Any, times: Optional[int] = None):
        super().__init__()
        if times is not None and not isinstance(times, int):
            raise TypeError(f"repeat() times must be an integer or None, got {type(times).__name__}")
        self._value = value
        self._remaining = None if times is None else max(times, 0)

    def _pull(self):
        if self._remaining is None:
            return self._value
        if self._remaining == 0:
            return EXHAUSTED
        self._remaining -= 1
        return self._value

    def __repr__(self):
        if self._remaining is None:
            return f"repeat({self._value!r})"
        return f"repeat({self._value!r}, {self._remaining})"


def count(start=0, step=1) -> Count:
    return Count(start, step)


def cycle(iterable: Iterable[Any]) -> Cycle:
    return Cycle(iterable)


def repeat(value: Any, times: Optional[int] = None) -> Repeat:
    return Repeat(value, times)
