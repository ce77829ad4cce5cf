"""Data anchor: the side table holding per-object reactive metadata.

Host objects never carry hidden attributes. Everything kvopath knows about an
object (computed field descriptors, caches, last-set values, dependency edges)
lives in a MetaRecord stored here, keyed by the object's identity.

Records are dropped by a weakref finalizer when their owner is collected.
Objects that cannot be weakly referenced are pinned by their record until
released explicitly.
"""

from __future__ import annotations

import itertools
import weakref
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from kvopath.descriptors import ComputedField
    from kvopath.observable import Edge


class MetaRecord:
    """Everything kvopath tracks for one host object."""

    __slots__ = (
        "guid",
        "descriptors",
        "cache",
        "last_set_cache",
        "values",
        "edges",
        "installed",
        "initialized",
        "_pinned",
        "_finalizer",
    )

    def __init__(self) -> None:
        self.guid = new_id()
        self.descriptors: dict[str, ComputedField] = {}
        self.cache: dict[str, object] = {}
        self.last_set_cache: dict[str, object] = {}
        self.values: dict[str, object] = {}
        self.edges: list[Edge] = []
        self.installed = False
        self.initialized = False
        self._pinned: object | None = None
        self._finalizer: weakref.finalize | None = None

    def __repr__(self) -> str:
        state = "initialized" if self.initialized else "uninitialized"
        return (
            f"MetaRecord(guid={self.guid}, fields={sorted(self.descriptors)}, "
            f"cached={sorted(self.cache)}, {state})"
        )


# object id -> record
records: dict[int, MetaRecord] = {}

_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)


def meta(obj: object, create: bool = False) -> MetaRecord | None:
    """Return the meta record for obj, creating it if asked.

    Creation is idempotent: later calls return the same record.
    """
    key = id(obj)
    record = records.get(key)
    if record is None and create:
        record = records[key] = MetaRecord()
        try:
            record._finalizer = weakref.finalize(obj, records.pop, key, None)
        except TypeError:
            # Not weakly referenceable; keep it alive so the id stays unique.
            record._pinned = obj
    return record


def release(obj: object) -> MetaRecord | None:
    """Drop obj's record. Returns the record that was removed, if any."""
    record = records.pop(id(obj), None)
    if record is not None:
        if record._finalizer is not None:
            record._finalizer.detach()
        record._pinned = None
    return record


def ref(obj: object) -> Callable[[], object | None]:
    """A weak reference to obj where possible, otherwise a strong one."""
    try:
        return weakref.ref(obj)
    except TypeError:
        return lambda: obj
