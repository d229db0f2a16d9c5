import functools
from typing import Any, Callable, Iterable, List, Optional

import combinatorics
import infinite
from combinators import (
    chain,
    compress,
    dropwhile,
    filterfalse,
    islice,
    pairwise,
    starmap,
    takewhile,
)
from materialize import to_collection
from sources import EXHAUSTED, InvalidArgumentError, Source, source
from stateful import accumulate, groupby


class Batch(Source):
    """Groups upstream elements into tuples of ``size``; the last one may be shorter."""

    def __init__(self, iterable: Iterable[Any], size: int):
        super().__init__()
        self._upstream = source(iterable)
        self._size = size

    def _pull(self):
        bucket = tuple(islice(self._upstream, self._size))
        return bucket if bucket else EXHAUSTED


_NO_INITIAL = object()


def _build_enumerate(it, start):
    return source(enumerate(it, start))


# op name -> builder(upstream, arg) returning the next stage
_STAGES = {
    "map": lambda it, fn: source(map(fn, it)),
    "filter": lambda it, pred: source(filter(pred, it)),
    "filterfalse": lambda it, pred: filterfalse(pred, it),
    "skip": lambda it, n: islice(it, n, None),
    "take": lambda it, n: islice(it, n),
    "slice": lambda it, bounds: islice(it, *bounds),
    "takewhile": lambda it, pred: takewhile(pred, it),
    "dropwhile": lambda it, pred: dropwhile(pred, it),
    "batch": lambda it, size: Batch(it, size),
    "pairwise": lambda it, _: pairwise(it),
    "accumulate": lambda it, args: accumulate(it, *args),
    "starmap": lambda it, fn: starmap(fn, it),
    "chain": lambda it, others: chain(it, *others),
    "compress": lambda it, selectors: compress(it, selectors),
    "groupby": lambda it, key: groupby(it, key),
    "enumerate": _build_enumerate,
}


class LazySequence:
    """
    A chainable recipe over the lazy engine. Stages are recorded and only
    turned into a pipeline of sources when you iterate.

    Each iteration builds a fresh pipeline, so a sequence over a list (or one
    of the constructors below) can be consumed repeatedly. A sequence over a
    one-shot iterator can only be consumed once.
    """
    def __init__(self, source=None, ops=None, factory: Optional[Callable[[], Iterable[Any]]] = None):
        self._source = source
        self._factory = factory         # zero-arg callable producing a fresh upstream
        self._ops = ops or []           # sequence of ("op_name", arg)

    # --------- constructors ----------
    @classmethod
    def counting(cls, start=0, step=1):
        infinite.Count(start, step)  # validate now, not on first pull
        return cls(factory=lambda: infinite.count(start, step))

    @classmethod
    def cycling(cls, iterable):
        """
        Cycle ``iterable`` without draining it up front.

        A re-iterable input (list, range, str, ...) gives a replayable sequence;
        a one-shot iterator can only be cycled through one pipeline.
        """
        if iter(iterable) is iterable:
            return cls(infinite.cycle(iterable))
        return cls(factory=lambda: infinite.cycle(iterable))

    @classmethod
    def repeating(cls, value, times=None):
        infinite.Repeat(value, times)
        return cls(factory=lambda: infinite.repeat(value, times))

    @classmethod
    def product(cls, *iterables, repeat=1, pool_limit=None):
        combinatorics.product(repeat=repeat)  # argument checks before any pool is drained
        pools = [combinatorics.capture_pool(it, "product", pool_limit) for it in iterables]
        return cls(factory=lambda: combinatorics.product(*pools, repeat=repeat))

    @classmethod
    def permutations(cls, iterable, r=None, pool_limit=None):
        combinatorics.permutations((), r)
        pool = combinatorics.capture_pool(iterable, "permutations", pool_limit)
        return cls(factory=lambda: combinatorics.permutations(pool, r))

    @classmethod
    def combinations(cls, iterable, r, pool_limit=None):
        combinatorics.combinations((), r)
        pool = combinatorics.capture_pool(iterable, "combinations", pool_limit)
        return cls(factory=lambda: combinatorics.combinations(pool, r))

    @classmethod
    def combinations_with_replacement(cls, iterable, r, pool_limit=None):
        combinatorics.combinations_with_replacement((), r)
        pool = combinatorics.capture_pool(iterable, "combinations_with_replacement", pool_limit)
        return cls(factory=lambda: combinatorics.combinations_with_replacement(pool, r))

    # --------- chainable operators (lazy) ----------
    def map(self, fn):
        return self._with_op(("map", fn))

    def filter(self, pred):
        return self._with_op(("filter", pred))

    def filterfalse(self, pred):
        return self._with_op(("filterfalse", pred))

    def skip(self, n):
        return self._with_op(("skip", max(int(n), 0)))

    def take(self, n):
        return self._with_op(("take", max(int(n), 0)))

    def slice(self, *bounds):
        islice([], *bounds)  # same argument checks as islice()
        return self._with_op(("slice", bounds))

    def takewhile(self, pred):
        return self._with_op(("takewhile", pred))

    def dropwhile(self, pred):
        return self._with_op(("dropwhile", pred))

    def batch(self, size):
        size = int(size)
        if size < 1:
            raise InvalidArgumentError("Batch size must be >= 1")
        return self._with_op(("batch", size))

    def chunk(self, size):
        """Alias for batch() - groups elements into chunks of specified size"""
        return self.batch(size)

    def page(self, page_number, page_size):
        """Get a specific page of results (1-indexed)"""
        if page_number < 1:
            raise InvalidArgumentError("Page number must be >= 1")
        offset = (page_number - 1) * page_size
        return self.skip(offset).take(page_size)

    def pairwise(self):
        return self._with_op(("pairwise", None))

    def accumulate(self, fn=None, initial=None):
        return self._with_op(("accumulate", (fn, initial)))

    def starmap(self, fn):
        return self._with_op(("starmap", fn))

    def chain(self, *others):
        return self._with_op(("chain", others))

    def compress(self, selectors):
        return self._with_op(("compress", selectors))

    def groupby(self, key=None):
        return self._with_op(("groupby", key))

    def enumerate(self, start=0):
        return self._with_op(("enumerate", start))

    # --------- forcing evaluation ----------
    def to_list(self) -> List[Any]:
        return to_collection(self, list)

    def to_collection(self, factory=list):
        return to_collection(self, factory)

    # --------- reducing operations (force evaluation) ----------
    def reduce(self, fn, initial=_NO_INITIAL):
        """Apply a function of two arguments cumulatively to items, from left to right"""
        if initial is not _NO_INITIAL:
            return functools.reduce(fn, self, initial)
        return functools.reduce(fn, self)

    def sum(self, start=0):
        total = start
        for item in self:
            total += item
        return total

    def count(self):
        """Number of elements; never returns for an unbounded sequence"""
        n = 0
        for _ in self:
            n += 1
        return n

    def min(self, default=None):
        try:
            return min(self)
        except ValueError:
            if default is not None:
                return default
            raise

    def max(self, default=None):
        try:
            return max(self)
        except ValueError:
            if default is not None:
                return default
            raise

    def first(self, default=None):
        for item in self:
            return item
        return default

    def last(self, default=None):
        last_item = default
        for item in self:
            last_item = item
        return last_item

    def any(self, pred=None):
        if pred is None:
            return any(self)
        return any(pred(x) for x in self)

    def all(self, pred=None):
        if pred is None:
            return all(self)
        return all(pred(x) for x in self)

    def find(self, pred):
        """Return the first element that satisfies the predicate, or None"""
        for item in self:
            if pred(item):
                return item
        return None

    # --------- iterator protocol ----------
    def __iter__(self):
        it = self._factory() if self._factory is not None else source(self._source)
        for op, arg in self._ops:
            try:
                build = _STAGES[op]
            except KeyError:
                raise ValueError(f"Unknown op: {op}") from None
            it = build(it, arg)
        return it

    def __repr__(self):
        stages = ", ".join(op for op, _ in self._ops)
        return f"LazySequence([{stages}])"

    # --------- helpers ----------
    def _with_op(self, op_tuple):
        return LazySequence(self._source, self._ops + [op_tuple], self._factory)
