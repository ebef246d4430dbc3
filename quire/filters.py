import random
from collections.abc import Mapping, Sequence
from typing import Any, Protocol, TypeAlias

from quire.exceptions import EmptyCollection, InvalidArgument

Collection: TypeAlias = Sequence | Mapping


class RandomSource(Protocol):
    def randrange(self, stop: int) -> int: ...


def is_sequence(value: Any) -> bool:
    # Strings and bytes count as scalars.
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def random_index(sequence: Sequence, rng: RandomSource | None = None) -> int:
    """
    Returns an index chosen uniformly from `[0, len(sequence))`.

    :param sequence: Any non-string sequence.
    :param rng: Source of randomness, mostly useful for seeding in tests. Defaults to the `random` module.
    """
    if not is_sequence(sequence):
        raise InvalidArgument("random_index: sequence is not a sequence")

    if not sequence:
        raise EmptyCollection("random_index: cannot pick from an empty sequence")

    return (rng or random).randrange(len(sequence))


def random_key(mapping: Mapping, rng: RandomSource | None = None):
    """Returns one of the keys of `mapping`, enumerated in insertion order."""
    if not isinstance(mapping, Mapping):
        raise InvalidArgument("random_key: mapping is not a mapping")

    if not mapping:
        raise EmptyCollection("random_key: cannot pick from an empty mapping")

    keys = list(mapping.keys())
    return keys[random_index(keys, rng)]


def pick_from_sequence(sequence: Sequence, rng: RandomSource | None = None):
    return sequence[random_index(sequence, rng)]


def pick_from_mapping(mapping: Mapping, rng: RandomSource | None = None):
    return mapping[random_key(mapping, rng)]


def pick(collection: Collection, rng: RandomSource | None = None):
    """
    Returns one element of `collection` chosen uniformly at random. This is registered as the `pick` (and
    `random_pick`) template filter, where the shape of the value is only known at render time:

        {{ quotes | pick }}

    Sequences return one of their items, mappings return one of their values. The input is never modified.

    :raises InvalidArgument: `collection` is neither a sequence nor a mapping (this includes strings and None).
    :raises EmptyCollection: `collection` has no elements.
    """
    if is_sequence(collection):
        return pick_from_sequence(collection, rng)

    if isinstance(collection, Mapping):
        return pick_from_mapping(collection, rng)

    raise InvalidArgument(
        f"pick: collection is neither a sequence nor a mapping (got {type(collection).__name__})"
    )
