"""
Stateless combinators.

Each wraps one or more upstream sources and pulls them only as far as the
current request needs. None of them buffer more than a single element.
"""

from typing import Any, Callable, Iterable, Optional

from sources import EXHAUSTED, InvalidArgumentError, Source, ensure_callable, source


class Chain(Source):
    """Concatenates sources; the next one is opened only after the current one ends."""

    def __init__(self, iterables: Iterable[Iterable[Any]]):
        super().__init__()
        self._pending = source(iterables)
        self._current: Optional[Source] = None

    def _pull(self):
        while True:
            if self._current is None:
                nxt = self._pending.pull()
                if nxt is EXHAUSTED:
                    return EXHAUSTED
                self._current = source(nxt)
            item = self._current.pull()
            if item is not EXHAUSTED:
                return item
            self._current = None


class Compress(Source):
    def __init__(self, data: Iterable[Any], selectors: Iterable[Any]):
        super().__init__()
        self._data = source(data)
        self._selectors = source(selectors)

    def _pull(self):
        while True:
            item = self._data.pull()
            if item is EXHAUSTED:
                return EXHAUSTED
            selector = self._selectors.pull()
            if selector is EXHAUSTED:
                return EXHAUSTED
            if selector:
                return item


class ISlice(Source):
    """
    Lazy slice by sequential consumption.

    Skipped elements are still pulled and discarded. Once the next wanted
    index reaches ``stop`` the upstream is never pulled again, which is what
    makes it safe to bound an infinite source.
    """

    def __init__(self, iterable: Iterable[Any], start: int, stop: Optional[int], step: int):
        super().__init__()
        self._upstream = source(iterable)
        self._stop = stop
        self._step = step
        self._index = 0      # position of the next upstream element
        self._wanted = start  # position of the next element to emit

    def _pull(self):
        if self._stop is not None and self._wanted >= self._stop:
            return EXHAUSTED
        while self._index < self._wanted:
            if self._upstream.pull() is EXHAUSTED:
                return EXHAUSTED
            self._index += 1
        item = self._upstream.pull()
        if item is EXHAUSTED:
            return EXHAUSTED
        self._index += 1
        self._wanted += self._step
        return item


class TakeWhile(Source):
    def __init__(self, predicate: Callable[[Any], Any], iterable: Iterable[Any]):
        super().__init__()
        self._predicate = ensure_callable(predicate, "takewhile() predicate")
        self._upstream = source(iterable)

    def _pull(self):
        item = self._upstream.pull()
        if item is EXHAUSTED or not self._predicate(item):
            # The failing element is discarded; exhaustion latches so upstream stays untouched
            return EXHAUSTED
        return item


class DropWhile(Source):
    def __init__(self, predicate: Callable[[Any], Any], iterable: Iterable[Any]):
        super().__init__()
        self._predicate = ensure_callable(predicate, "dropwhile() predicate")
        self._upstream = source(iterable)
        self._dropping = True

    def _pull(self):
        if self._dropping:
            while True:
                item = self._upstream.pull()
                if item is EXHAUSTED:
                    return EXHAUSTED
                if not self._predicate(item):
                    self._dropping = False
                    return item
        return self._upstream.pull()


class Pairwise(Source):
    def __init__(self, iterable: Iterable[Any]):
        super().__init__()
        self._upstream = source(iterable)
        self._previous = EXHAUSTED

    def _pull(self):
        if self._previous is EXHAUSTED:
            self._previous = self._upstream.pull()
            if self._previous is EXHAUSTED:
                return EXHAUSTED
        item = self._upstream.pull()
        if item is EXHAUSTED:
            return EXHAUSTED
        pair = (self._previous, item)
        self._previous = item
        return pair


class StarMap(Source):
    def __init__(self, function: Callable[..., Any], iterable: Iterable[Iterable[Any]]):
        super().__init__()
        self._function = ensure_callable(function, "starmap() function")
        self._upstream = source(iterable)

    def _pull(self):
        args = self._upstream.pull()
        if args is EXHAUSTED:
            return EXHAUSTED
        return self._function(*args)


class FilterFalse(Source):
    def __init__(self, predicate: Optional[Callable[[Any], Any]], iterable: Iterable[Any]):
        super().__init__()
        self._predicate = bool if predicate is None else ensure_callable(predicate, "filterfalse() predicate")
        self._upstream = source(iterable)

    def _pull(self):
        while True:
            item = self._upstream.pull()
            if item is EXHAUSTED or not self._predicate(item):
                return item


def chain(*iterables: Iterable[Any]) -> Chain:
    return Chain(iterables)


def chain_from_iterable(iterables: Iterable[Iterable[Any]]) -> Chain:
    """Like chain(), but the inputs themselves come from a lazily pulled iterable."""
    return Chain(iterables)


chain.from_iterable = chain_from_iterable


def compress(data: Iterable[Any], selectors: Iterable[Any]) -> Compress:
    """Yield data[i] where selectors[i] is truthy; stop at the shorter input."""
    return Compress(data, selectors)


def _slice_index(value, name: str, allow_none: bool):
    if value is None and allow_none:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgumentError(
            f"islice() {name} must be None or an integer >= 0, got {value!r}"
        )
    return value


def islice(iterable: Iterable[Any], *args) -> ISlice:
    """islice(seq, stop) or islice(seq, start, stop[, step])."""
    if not 1 <= len(args) <= 3:
        raise TypeError(f"islice() expected 2 to 4 arguments, got {len(args) + 1}")
    if len(args) == 1:
        start, stop, step = None, args[0], None
    else:
        start, stop, step = (tuple(args) + (None,))[:3]
    start = _slice_index(0 if start is None else start, "start", allow_none=False)
    stop = _slice_index(stop, "stop", allow_none=True)
    if step is None:
        step = 1
    if isinstance(step, bool) or not isinstance(step, int) or step <= 0:
        raise InvalidArgumentError(f"islice() step must be a positive integer, got {step!r}")
    return ISlice(iterable, start, stop, step)


def takewhile(predicate: Callable[[Any], Any], iterable: Iterable[Any]) -> TakeWhile:
    return TakeWhile(predicate, iterable)


def dropwhile(predicate: Callable[[Any], Any], iterable: Iterable[Any]) -> DropWhile:
    return DropWhile(predicate, iterable)


def pairwise(iterable: Iterable[Any]) -> Pairwise:
    """(a0, a1), (a1, a2), ... ; nothing for fewer than two elements."""
    return Pairwise(iterable)


def starmap(function: Callable[..., Any], iterable: Iterable[Iterable[Any]]) -> StarMap:
    return StarMap(function, iterable)


def filterfalse(predicate: Optional[Callable[[Any], Any]], iterable: Iterable[Any]) -> FilterFalse:
    return FilterFalse(predicate, iterable)
