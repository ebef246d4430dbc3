import functools
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeAlias

Comparator: TypeAlias = Callable[[Any, Any], float]

NAV_ORDER_PATH = ("data", "navigation", "order")
CHAPTER_SEQUENCE_PATH = ("data", "chapter", "sequence")


def nested_value(item: Any, path: Iterable[str]) -> Any | None:
    """
    Follows `path` through `item`, using key lookup on mappings and attribute lookup on anything else. Returns None as
    soon as a step is missing instead of raising, so items without the field (or without the enclosing structure) are
    perfectly valid.
    """
    node = item
    for part in path:
        if node is None:
            return None

        if isinstance(node, Mapping):
            node = node.get(part)
        else:
            node = getattr(node, part, None)

    return node


def compare_by(*path: str, default=0) -> Comparator:
    """
    Builds a three-way comparator over the numeric field found at `path`. Missing values compare as `default`.
    The result is the plain difference of the two values, so it can be handed to `functools.cmp_to_key`.
    """

    def value_of(item):
        value = nested_value(item, path)
        return default if value is None else value

    def comparator(a, b):
        return value_of(a) - value_of(b)

    comparator.__name__ = "compare_by_" + "_".join(path)
    return comparator


by_nav_order: Comparator = compare_by(*NAV_ORDER_PATH)
by_nav_order.__name__ = "by_nav_order"

by_chapter_sequence: Comparator = compare_by(*CHAPTER_SEQUENCE_PATH)
by_chapter_sequence.__name__ = "by_chapter_sequence"


def sort_items(items: Iterable, comparator: Comparator, reverse: bool = False) -> list:
    # `sorted` is stable, items comparing equal keep the order they came in.
    return sorted(items, key=functools.cmp_to_key(comparator), reverse=reverse)
