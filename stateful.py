"""
Stateful combinators: running folds, consecutive grouping, padded zipping and fan-out.

These hold state across pulls (an accumulator, a look-ahead element, per-source
exhaustion flags, a shared buffer) but still never pull further than the
current request needs.
"""

import logging
import operator
import weakref
from collections import deque
from typing import Any, Callable, Iterable, List, Optional, Tuple

from sources import (
    EXHAUSTED,
    InvalidArgumentError,
    Source,
    ensure_callable,
    source,
)

logger = logging.getLogger(__name__)


class Accumulate(Source):
    def __init__(self, iterable: Iterable[Any], function: Optional[Callable[[Any, Any], Any]] = None,
                 initial: Any = None):
        super().__init__()
        self._upstream = source(iterable)
        self._function = operator.add if function is None else ensure_callable(function, "accumulate() function")
        self._total = EXHAUSTED if initial is None else initial
        self._emit_initial = initial is not None

    def _pull(self):
        if self._emit_initial:
            self._emit_initial = False
            return self._total
        item = self._upstream.pull()
        if item is EXHAUSTED:
            return EXHAUSTED
        if self._total is EXHAUSTED:
            # No initial value: the first element seeds the fold as-is
            self._total = item
        else:
            self._total = self._function(self._total, item)
        return self._total


class GroupBy(Source):
    """
    Groups *consecutive* elements with equal keys into ``(key, members)`` pairs.

    A group is only emitted once an element with a different key (or the end)
    has been pulled, so members is always a complete tuple. Sort by the same
    key first to get one group per distinct key.
    """

    def __init__(self, iterable: Iterable[Any], key: Optional[Callable[[Any], Any]] = None):
        super().__init__()
        self._upstream = source(iterable)
        self._key = (lambda x: x) if key is None else ensure_callable(key, "groupby() key")
        self._lookahead = EXHAUSTED
        self._lookahead_key = None

    def _pull(self):
        if self._lookahead is EXHAUSTED:
            first = self._upstream.pull()
            if first is EXHAUSTED:
                return EXHAUSTED
            current_key = self._key(first)
        else:
            first, current_key = self._lookahead, self._lookahead_key
            self._lookahead = EXHAUSTED

        members = [first]
        while True:
            item = self._upstream.pull()
            if item is EXHAUSTED:
                break
            item_key = self._key(item)
            if item_key != current_key:
                self._lookahead, self._lookahead_key = item, item_key
                break
            members.append(item)
        return current_key, tuple(members)


class ZipLongest(Source):
    """Tuples across all sources until every one is exhausted, padding finished ones."""

    def __init__(self, iterables: Iterable[Iterable[Any]], fillvalue: Any = None):
        super().__init__()
        self._upstreams: List[Optional[Source]] = [source(it) for it in iterables]
        self._fillvalue = fillvalue
        self._active = len(self._upstreams)

    def _pull(self):
        if self._active == 0:
            return EXHAUSTED
        row = []
        for i, upstream in enumerate(self._upstreams):
            item = EXHAUSTED if upstream is None else upstream.pull()
            if item is EXHAUSTED:
                if upstream is not None:
                    # Finished sources are dropped so they are never pulled again
                    self._upstreams[i] = None
                    self._active -= 1
                item = self._fillvalue
            row.append(item)
        if self._active == 0:
            return EXHAUSTED
        return tuple(row)


class _TeeBuffer:
    """
    Shared queue behind a set of tee handles.

    Holds every element some live handle has not consumed yet. Elements seen
    by all live handles are dropped from the front; handles that have been
    garbage collected no longer hold the buffer back.
    """

    def __init__(self, upstream: Source):
        self._upstream = upstream
        self._items = deque()
        self._base = 0  # absolute position of self._items[0]
        self._handles = weakref.WeakSet()

    def register(self, handle: "TeeHandle") -> None:
        self._handles.add(handle)

    def get(self, position: int) -> Any:
        while position >= self._base + len(self._items):
            # The upstream is claimed by this buffer, so pull past the ownership check
            item = self._upstream._advance()
            if item is EXHAUSTED:
                return EXHAUSTED
            self._items.append(item)
        return self._items[position - self._base]

    def trim(self) -> None:
        positions = [handle.position for handle in self._handles]
        floor = min(positions) if positions else self._base + len(self._items)
        while self._items and self._base < floor:
            self._items.popleft()
            self._base += 1

    @property
    def buffered(self) -> int:
        return len(self._items)


class TeeHandle(Source):
    """One independent reader over a tee'd upstream."""

    def __init__(self, buffer: _TeeBuffer):
        super().__init__()
        self._buffer = buffer
        self.position = 0
        buffer.register(self)

    def _pull(self):
        item = self._buffer.get(self.position)
        if item is EXHAUSTED:
            return EXHAUSTED
        self.position += 1
        self._buffer.trim()
        return item


def accumulate(iterable: Iterable[Any], function: Optional[Callable[[Any, Any], Any]] = None,
               initial: Any = None) -> Accumulate:
    """Running fold; defaults to a running sum."""
    return Accumulate(iterable, function, initial)


def groupby(iterable: Iterable[Any], key: Optional[Callable[[Any], Any]] = None) -> GroupBy:
    return GroupBy(iterable, key)


def zip_longest(fillvalue: Any, *iterables: Iterable[Any]) -> ZipLongest:
    """
    Align ``iterables`` until every one is exhausted, padding finished ones with ``fillvalue``.

    The fill value comes first: ``zip_longest(0, [1, 2, 3], [1, 2])``.
    """
    return ZipLongest(iterables, fillvalue)


def tee(iterable: Iterable[Any], n: int = 2) -> Tuple[TeeHandle, ...]:
    """
    Split one upstream into ``n`` independent handles.

    Memory grows with the distance between the fastest and the slowest live
    handle. If ``iterable`` is a Source it is claimed, and pulling it directly
    afterwards raises ConsumedSourceError. A plain iterator cannot be guarded;
    advancing it behind the handles' back is undefined.
    """
    if isinstance(n, bool) or not isinstance(n, int):
        raise TypeError(f"tee() n must be an integer, got {type(n).__name__}")
    if n < 0:
        raise InvalidArgumentError(f"tee() n must be >= 0, got {n}")
    upstream = source(iterable)
    if n == 0:
        return ()
    buffer = _TeeBuffer(upstream)
    upstream.claim(buffer)
    logger.debug(f"tee: fanned {upstream!r} out to {n} handles")
    return tuple(TeeHandle(buffer) for _ in range(n))
