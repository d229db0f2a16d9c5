"""Materializer: drain a source into a concrete, ordered collection."""

from typing import Any, Callable, Iterable, List

from combinators import islice
from sources import EXHAUSTED, source


def to_collection(iterable: Iterable[Any], factory: Callable[[List[Any]], Any] = list):
    """
    Pull until exhaustion and hand the elements, in pull order, to ``factory``.

    Duplicates are preserved. An infinite input never returns; bound it with
    islice() or takewhile() first.
    """
    upstream = source(iterable)
    items = []
    while True:
        item = upstream.pull()
        if item is EXHAUSTED:
            break
        items.append(item)
    if factory is list:
        return items
    return factory(items)


def to_list(iterable: Iterable[Any]) -> List[Any]:
    return to_collection(iterable, list)


def take(n: int, iterable: Iterable[Any]) -> List[Any]:
    """First ``n`` elements as a list; safe on infinite inputs."""
    return to_collection(islice(iterable, n), list)
