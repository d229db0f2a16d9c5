"""
Combinatorial engine: product, permutations, combinations, combinations_with_replacement.

Every generator drains its inputs into fixed pools up front, then walks an
index vector through a deterministic successor step. Arguments are checked
before any pool is drained, and equal values in a pool are treated as
distinct by position.
"""

import logging
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from combinators import islice
from sources import EXHAUSTED, InvalidArgumentError, Source

logger = logging.getLogger(__name__)


class PoolLimitError(InvalidArgumentError):
    """Raised when an input holds more elements than the configured pool limit."""
    pass


def _check_r(r, name: str) -> int:
    if isinstance(r, bool) or not isinstance(r, int):
        raise TypeError(f"{name}() r must be an integer, got {type(r).__name__}")
    if r < 0:
        raise InvalidArgumentError(f"{name}() r must be non-negative, got {r}")
    return r


def capture_pool(iterable: Iterable[Any], name: str, pool_limit: Optional[int] = None) -> Tuple[Any, ...]:
    """Drain ``iterable`` into an immutable pool, optionally refusing oversized inputs."""
    if pool_limit is None:
        pool = tuple(iterable)
    else:
        pool = tuple(islice(iterable, pool_limit + 1))
        if len(pool) > pool_limit:
            raise PoolLimitError(f"{name}() input exceeds the pool limit of {pool_limit} elements")
    logger.debug(f"{name}: captured pool of {len(pool)} elements")
    return pool


class _IndexVectorSource(Source):
    """
    Shared driver for the index-vector algorithms.

    Subclasses provide the first vector (or None when there is nothing to
    enumerate) and a successor step that advances the vector in place and
    reports whether another arrangement exists.
    """

    def __init__(self):
        super().__init__()
        self._indices: Optional[List[int]] = None

    def _first(self) -> Optional[List[int]]:
        raise NotImplementedError

    def _successor(self) -> bool:
        raise NotImplementedError

    def _emit(self) -> Tuple[Any, ...]:
        raise NotImplementedError

    def _pull(self):
        if self._indices is None:
            self._indices = self._first()
            if self._indices is None:
                return EXHAUSTED
        elif not self._successor():
            return EXHAUSTED
        return self._emit()


class Product(_IndexVectorSource):
    """Odometer over the pools: rightmost position turns fastest, leftmost slowest."""

    def __init__(self, pools: Sequence[Tuple[Any, ...]]):
        super().__init__()
        self._pools = tuple(pools)

    def _first(self):
        if any(len(pool) == 0 for pool in self._pools):
            return None
        return [0] * len(self._pools)

    def _successor(self):
        indices = self._indices
        pos = len(indices) - 1
        while pos >= 0:
            indices[pos] += 1
            if indices[pos] < len(self._pools[pos]):
                return True
            indices[pos] = 0
            pos -= 1
        return False

    def _emit(self):
        return tuple(pool[i] for pool, i in zip(self._pools, self._indices))


class Permutations(_IndexVectorSource):
    """
    r-length arrangements via per-position cycle counters.

    ``cycles[i]`` counts how many more values position i may take before the
    suffix starting at i is rotated back into place and the position to its
    left advances instead. Output is lexicographic in pool order.
    """

    def __init__(self, pool: Tuple[Any, ...], r: int):
        super().__init__()
        self._pool = pool
        self._r = r
        n = len(pool)
        self._cycles = list(range(n, n - r, -1))

    def _first(self):
        if self._r > len(self._pool):
            return None
        return list(range(len(self._pool)))

    def _successor(self):
        indices, cycles, n = self._indices, self._cycles, len(self._pool)
        for i in reversed(range(self._r)):
            cycles[i] -= 1
            if cycles[i] == 0:
                indices[i:] = indices[i + 1:] + indices[i:i + 1]
                cycles[i] = n - i
            else:
                j = cycles[i]
                indices[i], indices[-j] = indices[-j], indices[i]
                return True
        return False

    def _emit(self):
        return tuple(self._pool[i] for i in self._indices[:self._r])


class Combinations(_IndexVectorSource):
    """Strictly increasing index vectors, position i bounded by i + n - r."""

    def __init__(self, pool: Tuple[Any, ...], r: int):
        super().__init__()
        self._pool = pool
        self._r = r

    def _first(self):
        if self._r > len(self._pool):
            return None
        return list(range(self._r))

    def _successor(self):
        indices, r, n = self._indices, self._r, len(self._pool)
        for i in reversed(range(r)):
            if indices[i] != i + n - r:
                break
        else:
            return False
        indices[i] += 1
        for j in range(i + 1, r):
            indices[j] = indices[j - 1] + 1
        return True

    def _emit(self):
        return tuple(self._pool[i] for i in self._indices)


class CombinationsWithReplacement(_IndexVectorSource):
    """Non-decreasing index vectors, every position bounded by n - 1."""

    def __init__(self, pool: Tuple[Any, ...], r: int):
        super().__init__()
        self._pool = pool
        self._r = r

    def _first(self):
        if not self._pool and self._r > 0:
            return None
        return [0] * self._r

    def _successor(self):
        indices, r, n = self._indices, self._r, len(self._pool)
        for i in reversed(range(r)):
            if indices[i] != n - 1:
                break
        else:
            return False
        indices[i:] = [indices[i] + 1] * (r - i)
        return True

    def _emit(self):
        return tuple(self._pool[i] for i in self._indices)


def product(*iterables: Iterable[Any], repeat: int = 1, pool_limit: Optional[int] = None) -> Product:
    """Cartesian product in nested-loop order. No inputs gives exactly one empty tuple."""
    if isinstance(repeat, bool) or not isinstance(repeat, int):
        raise TypeError(f"product() repeat must be an integer, got {type(repeat).__name__}")
    if repeat < 0:
        raise InvalidArgumentError(f"product() repeat must be non-negative, got {repeat}")
    pools = [capture_pool(it, "product", pool_limit) for it in iterables] * repeat
    return Product(pools)


def permutations(iterable: Iterable[Any], r: Optional[int] = None,
                 pool_limit: Optional[int] = None) -> Permutations:
    if r is not None:
        _check_r(r, "permutations")
    pool = capture_pool(iterable, "permutations", pool_limit)
    return Permutations(pool, len(pool) if r is None else r)


def combinations(iterable: Iterable[Any], r: int, pool_limit: Optional[int] = None) -> Combinations:
    _check_r(r, "combinations")
    return Combinations(capture_pool(iterable, "combinations", pool_limit), r)


def combinations_with_replacement(iterable: Iterable[Any], r: int,
                                  pool_limit: Optional[int] = None) -> CombinationsWithReplacement:
    _check_r(r, "combinations_with_replacement")
    return CombinationsWithReplacement(capture_pool(iterable, "combinations_with_replacement", pool_limit), r)
