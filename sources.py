"""
Sequence sources: the pull contract every lazy producer in this project builds on.

A source produces its next element on request, or reports that it is
exhausted. Exhaustion is latched, so pulling an exhausted source keeps
reporting the end without touching upstream again.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Iterator, TypeVar

T = TypeVar("T")


class _Exhausted:
    """Sentinel returned by a pull step when no element is available."""
    __slots__ = ()

    def __repr__(self):
        return "EXHAUSTED"

    def __bool__(self):
        return False


EXHAUSTED = _Exhausted()


class InvalidArgumentError(ValueError):
    """Raised when a combinator is constructed with arguments it cannot honor."""
    pass


class ConsumedSourceError(RuntimeError):
    """Raised when a source that was handed to a fan-out is pulled directly."""
    pass


class Source(ABC, Iterator[T]):
    """
    Single-pass, pull-based producer.

    Subclasses implement ``_pull()`` which returns the next element or
    ``EXHAUSTED``. Everything else (iterator protocol, latched exhaustion,
    ownership checks) lives here.
    """

    def __init__(self):
        self._exhausted = False
        self._owner = None

    @abstractmethod
    def _pull(self) -> Any:
        """Produce the next element, or return EXHAUSTED."""

    # --------- pull contract ----------
    def pull(self, default: Any = EXHAUSTED) -> Any:
        """Return the next element, or ``default`` once exhausted."""
        if self._owner is not None:
            raise ConsumedSourceError(
                f"{type(self).__name__} is owned by {self._owner!r} and cannot be pulled directly"
            )
        value = self._advance()
        return default if value is EXHAUSTED else value

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def claim(self, owner) -> None:
        """Hand this source to ``owner``; direct pulls fail from now on."""
        if self._owner is not None:
            raise ConsumedSourceError(
                f"{type(self).__name__} is already owned by {self._owner!r}"
            )
        self._owner = owner

    def _advance(self) -> Any:
        # Internal pull that bypasses the ownership check, used by the owner.
        if self._exhausted:
            return EXHAUSTED
        value = self._pull()
        if value is EXHAUSTED:
            self._exhausted = True
        return value

    # --------- iterator protocol ----------
    def __iter__(self):
        return self

    def __next__(self) -> T:
        value = self.pull()
        if value is EXHAUSTED:
            raise StopIteration
        return value

    def __repr__(self):
        state = "exhausted" if self._exhausted else "live"
        return f"<{type(self).__name__} {state}>"


class IterableSource(Source[T]):
    """Adapts a host iterable (list, dict, range, generator, ...) to the pull contract."""

    def __init__(self, iterable: Iterable[T]):
        super().__init__()
        self._iterator = iter(iterable)

    def _pull(self):
        return next(self._iterator, EXHAUSTED)


def source(iterable: Iterable[T]) -> Source[T]:
    """Wrap ``iterable`` as a Source. Sources are returned unchanged."""
    if isinstance(iterable, Source):
        return iterable
    try:
        return IterableSource(iterable)
    except TypeError:
        raise TypeError(f"'{type(iterable).__name__}' object is not iterable") from None


def ensure_callable(fn, role: str):
    """Fail fast when a predicate or transform is not callable."""
    if not callable(fn):
        raise TypeError(f"{role} must be callable, got {type(fn).__name__}")
    return fn
