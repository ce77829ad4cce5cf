"""Computed properties: functions that behave like fields.

A Property wraps a function called as ``fn(obj, key)`` to read the field and
``fn(obj, key, value)`` to write it. Declared on an Observable subclass, it
is installed per instance as a ComputedField the first time the instance is
touched. At that point its flags are fixed:

- cacheable: reads are memoised per object until the field is set again,
  directly or through a dependency.
- idempotent: a set with the same value as the previous set is dropped, with
  no call and no notification.

Usage:

    class Box(Observable):
        width = 2
        height = 3

        @kvopath.property("width", "height", cacheable=True)
        def area(self, key):
            return self.width * self.height

All per-object state (caches, last-set values) lives in _anchor.
"""

from __future__ import annotations

import weakref
from typing import Callable, Iterator

from kvopath import _anchor
from kvopath.errors import NotCallableError

_UNSET = object()


def _stored_value(obj: object, key: str, value: object = _UNSET) -> object:
    """Function behind a function-less property(): keeps the value in meta."""
    values = _anchor.meta(obj, create=True).values
    if value is not _UNSET:
        values[key] = value
    return values.get(key)


class Property:
    """A declared computed field. Pure data until installed on an instance."""

    is_property = True

    def __init__(self, fn: Callable, dependent_keys: tuple[str, ...] = ()) -> None:
        if not callable(fn):
            raise NotCallableError(fn, "computed property function")
        self.fn = fn
        self.dependent_keys = tuple(dependent_keys)
        self.is_cacheable = False
        self.is_idempotent = False
        self.name: str | None = None

    def cacheable(self) -> Property:
        self.is_cacheable = True
        return self

    def idempotent(self) -> Property:
        self.is_idempotent = True
        return self

    # --- Python descriptor protocol: attribute access goes through get/set ---

    def __set_name__(self, owner: type, name: str) -> None:
        if self.name is not None and self.name != name:
            raise TypeError(
                f"{self!r} is already bound as {self.name!r}; declare a separate property for {name!r}"
            )
        self.name = name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        from kvopath.accessors import get

        return get(instance, self.name)

    def __set__(self, instance, value) -> None:
        from kvopath.accessors import set

        set(instance, self.name, value)

    def install(self, key: str) -> ComputedField:
        """Resolve flags into the accessors used for one field."""
        return ComputedField(
            key,
            _make_getter(key, self.fn, self.is_cacheable),
            _make_setter(key, self.fn, self.is_cacheable, self.is_idempotent),
            _make_recompute(key, self.fn, self.is_cacheable),
            self.dependent_keys,
        )

    def __repr__(self) -> str:
        flags = [f for f, on in (("cacheable", self.is_cacheable), ("idempotent", self.is_idempotent)) if on]
        name = getattr(self.fn, "__name__", repr(self.fn))
        return f"Property({name}, depends={list(self.dependent_keys)}, flags={flags})"


def property(
    fn: Callable | str | None = None,
    *dependent_keys: str,
    cacheable: bool = False,
    idempotent: bool = False,
):
    """Declare a computed property.

    Three forms:

        area = kvopath.property(compute_area, "width", "height").cacheable()

        @kvopath.property("width", "height", cacheable=True)
        def area(self, key): ...

        language = kvopath.property()   # stored, observable field
    """
    if isinstance(fn, str):
        keys = (fn, *dependent_keys)

        def decorate(func: Callable) -> Property:
            return property(func, *keys, cacheable=cacheable, idempotent=idempotent)

        return decorate

    prop = Property(_stored_value if fn is None else fn, dependent_keys)
    if cacheable:
        prop.cacheable()
    if idempotent:
        prop.idempotent()
    return prop


class ComputedField:
    """An installed Property: the accessors for one key on one class of host.

    ``set(obj, value, announce)`` returns ``(changed, published_value)``;
    changed is False when an idempotent set was suppressed. announce, if
    given, is called once the set is known to go ahead, before fn runs.
    """

    __slots__ = ("key", "get", "set", "recompute", "watching")

    def __init__(self, key, get, set, recompute, watching) -> None:
        self.key = key
        self.get = get
        self.set = set
        self.recompute = recompute
        self.watching = watching

    def __repr__(self) -> str:
        return f"ComputedField({self.key!r}, watching={list(self.watching)})"


def _make_getter(key: str, fn: Callable, cacheable: bool) -> Callable:
    if cacheable:
        def getter(obj):
            cache = _anchor.meta(obj, create=True).cache
            if key in cache:
                return cache[key]
            value = cache[key] = fn(obj, key)
            return value
    else:
        def getter(obj):
            return fn(obj, key)
    return getter


def _make_setter(key: str, fn: Callable, cacheable: bool, idempotent: bool) -> Callable:
    def setter(obj, value, announce=None):
        record = _anchor.meta(obj, create=True)
        last = record.last_set_cache
        if idempotent and key in last and (last[key] is value or last[key] == value):
            return False, value
        if announce is not None:
            announce()
        if cacheable:
            record.cache.pop(key, None)
        result = fn(obj, key, value)
        if idempotent:
            last[key] = value
        if cacheable:
            record.cache[key] = result
        return True, value
    return setter


def _make_recompute(key: str, fn: Callable, cacheable: bool) -> Callable:
    def recompute(obj):
        record = _anchor.meta(obj, create=True)
        if cacheable:
            record.cache.pop(key, None)
        result = fn(obj, key)
        if cacheable:
            record.cache[key] = result
        return result
    return recompute


# --- Declaration scanning ---

# class -> {key: Property}. A class is scanned once, on first use; properties
# assigned to it after that are not picked up.
_declared: weakref.WeakKeyDictionary[type, dict[str, Property]] = weakref.WeakKeyDictionary()


def declared_properties(cls: type) -> dict[str, Property]:
    """Every Property declared on cls or its bases, nearest definition wins.

    The result is a snapshot taken the first time cls is seen.
    """
    found = _declared.get(cls)
    if found is None:
        found = _declared[cls] = dict(_scan(cls))
    return found


def _scan(cls: type) -> Iterator[tuple[str, Property]]:
    seen = set()
    for klass in cls.__mro__:
        for key, value in vars(klass).items():
            if key in seen:
                continue
            seen.add(key)
            if isinstance(value, Property):
                yield key, value


def field_for(obj: object, key: object) -> ComputedField | None:
    """The installed ComputedField for key on obj, installing on first use."""
    record = _anchor.meta(obj)
    if record is None:
        if not declared_properties(type(obj)):
            return None
        record = _anchor.meta(obj, create=True)
    if not record.installed:
        install(obj, record)
    return record.descriptors.get(key)


def install(obj: object, record: _anchor.MetaRecord) -> None:
    """Install every declared Property of obj's class into its record."""
    for key, prop in declared_properties(type(obj)).items():
        record.descriptors[key] = prop.install(key)
    record.installed = True
