"""Id-indexed collection that keeps a stable enumeration order."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Generic, Iterable, Iterator, Mapping, Protocol, TypeVar


class Identified(Protocol):
    @property
    def id(self) -> int: ...


T = TypeVar("T", bound=Identified)


@dataclass(frozen=True)
class NormalizedCollection(Generic[T]):
    """Ordered ids paired with an ``id -> entity`` mapping.

    The collection is immutable: :meth:`set` hands back a new collection
    sharing the key order with the old one, so a reader holding a reference
    never sees a half-applied update.
    """

    keys: tuple[int, ...]
    entries: Mapping[int, T] = field(repr=False)

    def __post_init__(self) -> None:
        if len(set(self.keys)) != len(self.keys):
            raise ValueError("Keys must be unique.")
        if len(self.keys) != len(self.entries) or any(key not in self.entries for key in self.keys):
            raise ValueError("Every key must have exactly one matching entry.")
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self) -> Iterator[T]:
        return (self.entries[key] for key in self.keys)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self.entries

    def get(self, entity_id: int) -> T:
        """Return the entity stored under ``entity_id``."""
        return self.entries[entity_id]

    def set(self, entity_id: int, entity: T) -> NormalizedCollection[T]:
        """Return a new collection with one existing entry replaced."""
        if entity_id not in self.entries:
            raise KeyError(f"Unknown id {entity_id!r}; only existing entries can be updated.")
        if entity.id != entity_id:
            raise KeyError(f"Entity id {entity.id!r} does not match key {entity_id!r}.")
        entries = dict(self.entries)
        entries[entity_id] = entity
        return NormalizedCollection(self.keys, entries)

    def to_list(self) -> list[T]:
        """Return the entities in key order."""
        return list(self)


def normalize(items: Iterable[T]) -> NormalizedCollection[T]:
    """Index ``items`` by id, preserving their order."""
    keys: list[int] = []
    entries: dict[int, T] = {}
    for item in items:
        if item.id in entries:
            raise ValueError(f"Duplicate id {item.id!r}.")
        keys.append(item.id)
        entries[item.id] = item
    return NormalizedCollection(tuple(keys), entries)


def denormalize(collection: NormalizedCollection[T]) -> list[T]:
    return collection.to_list()
