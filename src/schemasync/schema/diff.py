"""
Set difference over name-keyed object mappings.
"""

from typing import Dict, Generic, Mapping, NamedTuple, TypeVar


K = TypeVar("K")
V = TypeVar("V")


class DictionaryDifference(NamedTuple, Generic[K, V]):
    """Three disjoint buckets produced by :func:`difference_from`."""

    modified: Dict[K, V]
    only_in_source: Dict[K, V]
    only_in_target: Dict[K, V]

    @property
    def is_empty(self) -> bool:
        return not (self.modified or self.only_in_source or self.only_in_target)


def difference_from(
    source: Mapping[K, V], target: Mapping[K, V]
) -> DictionaryDifference[K, V]:
    """
    Split two mappings into modified, only-in-source and only-in-target entries.

    Keys present on both sides with equal values are dropped. ``modified``
    carries the source value. Values are compared with ``==``.
    """
    modified: Dict[K, V] = {}
    only_in_source: Dict[K, V] = {}
    only_in_target: Dict[K, V] = {}

    for key, value in source.items():
        if key not in target:
            only_in_source[key] = value
        elif target[key] != value:
            modified[key] = value

    for key, value in target.items():
        if key not in source:
            only_in_target[key] = value

    return DictionaryDifference(modified, only_in_source, only_in_target)
