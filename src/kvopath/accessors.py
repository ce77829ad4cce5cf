"""get / set / get_path / set_path: resolving keys and paths against objects.

Each key on an object falls into one of three kinds:

- COMPUTED: a Property declared on the object's class. Reads and writes go
  through the installed ComputedField (with its cache/idempotence policy).
- PLAIN: a value that is simply there: a mapping item, a sequence element,
  or an attribute.
- UNDECLARED: neither. Reads and writes are handed to the object's
  ``unknown_property`` hook when it has one. A read with no hook yields
  MISSING; a write with no hook assigns directly.

Paths are tokenized before anything is read or written, so a malformed path
fails without side effects. A missing intermediate object ends the walk
quietly: get returns MISSING and set writes nothing.

After any write that was not suppressed, a subscribable parent publishes
``(key, value)`` so dependent properties and observers can react. Just before
a computed or plain write (one not handed to ``unknown_property``) it publishes
``key:before`` with no arguments.
"""

from __future__ import annotations

import enum
import re
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence

from kvopath.descriptors import ComputedField, field_for
from kvopath.errors import NotCallableError
from kvopath.path import is_path, tokenize


class _Missing:
    """The "no value" result of reading something that isn't there."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

# set() called without a value: recompute a computed field.
_RECOMPUTE = object()

_INTEGER = re.compile(r"[+-]?\d+\Z")

# Suffix of the event published just before a key changes.
BEFORE = ":before"


class FieldKind(enum.Enum):
    PLAIN = "plain"
    COMPUTED = "computed"
    UNDECLARED = "undeclared"


def classify(obj: object, key: object) -> FieldKind:
    """Which kind of field key is on obj right now."""
    if field_for(obj, key) is not None:
        return FieldKind.COMPUTED
    if _read_plain(obj, key) is not MISSING:
        return FieldKind.PLAIN
    return FieldKind.UNDECLARED


# --- Reading ---


def get(obj: object, key: object) -> object:
    """Read key on obj. Keys containing '.', '[' or ']' are treated as paths."""
    if is_path(key):
        return get_path(obj, key)
    return _get_key(obj, key)


def get_path(obj: object, path: object) -> object:
    """Read a property path, one key at a time.

        get_path({"options": ["espresso", "tea"]}, "options[0]")  # 'espresso'
    """
    tokens = tokenize(path) if isinstance(path, str) else [path]
    return walk(obj, tokens)


def walk(obj: object, tokens) -> object:
    """Fold already-tokenized keys over obj with single-key reads."""
    for token in tokens:
        obj = _get_key(obj, token)
    return obj


def _get_key(obj: object, key: object) -> object:
    if obj is None or obj is MISSING:
        return MISSING

    field = field_for(obj, key)
    if field is not None:
        return field.get(obj)

    value = _read_plain(obj, key)
    if value is MISSING:
        hook = _unknown_property_hook(obj)
        if hook is not None:
            return hook(key)
    return value


def _read_plain(obj: object, key: object) -> object:
    if isinstance(obj, Mapping):
        if key in obj:
            return obj[key]
        if isinstance(key, str) and _INTEGER.match(key) and int(key) in obj:
            return obj[int(key)]
        return MISSING

    if isinstance(obj, Sequence):
        index = _as_index(key)
        if index is not None:
            try:
                return obj[index]
            except IndexError:
                return MISSING

    if not isinstance(key, str):
        key = str(key)
    return getattr(obj, key, MISSING)


def _as_index(key: object) -> int | None:
    if isinstance(key, int) and not isinstance(key, bool):
        return key
    if isinstance(key, str) and _INTEGER.match(key):
        return int(key)
    return None


def _unknown_property_hook(obj: object):
    hook = getattr(obj, "unknown_property", None)
    if hook is not None and not callable(hook):
        raise NotCallableError(hook, "unknown_property")
    return hook


# --- Writing ---


def set(obj: object, key: object, value: object = _RECOMPUTE) -> object:
    """Write value to key on obj and notify. Returns obj.

    Called without a value on a computed field, the field is recomputed and
    its new value published; that is how dependency notifications work.
    Keys containing '.', '[' or ']' are treated as paths.
    """
    if is_path(key):
        return set_path(obj, key, value)
    _set_key(obj, key, value)
    return obj


def set_path(obj: object, path: object, value: object = _RECOMPUTE) -> object:
    """Walk all but the last key with get, then set the last one. Returns obj.

    The path is tokenized before anything is touched. If the walk hits a
    missing object nothing is written.
    """
    tokens = tokenize(path) if isinstance(path, str) else [path]
    parent = walk(obj, tokens[:-1])
    if parent is None or parent is MISSING:
        return obj
    _set_key(parent, tokens[-1], value)
    return obj


def before(key: object) -> str:
    """Name of the event published just before key changes."""
    return f"{key}{BEFORE}"


def will_change(obj: object, key: object) -> None:
    """Publish key's before-change event on obj, if obj is subscribable."""
    if getattr(obj, "is_subscribable", False):
        obj.publish(before(key))


def _set_key(obj: object, key: object, value: object) -> None:
    field = field_for(obj, key)
    if isinstance(field, ComputedField):
        if value is _RECOMPUTE:
            published = field.recompute(obj)
        else:
            changed, published = field.set(obj, value, lambda: will_change(obj, key))
            if not changed:
                return
    else:
        if value is _RECOMPUTE:
            value = None
        hook = None
        if _read_plain(obj, key) is MISSING:
            hook = _unknown_property_hook(obj)
        if hook is not None:
            hook(key, value)
        else:
            will_change(obj, key)
            _write_plain(obj, key, value)
        published = value

    if getattr(obj, "is_subscribable", False):
        obj.publish(key, published)


def _write_plain(obj: object, key: object, value: object) -> None:
    if isinstance(obj, MutableMapping):
        if key not in obj and isinstance(key, str) and _INTEGER.match(key) and int(key) in obj:
            key = int(key)
        obj[key] = value
        return

    if isinstance(obj, MutableSequence):
        index = _as_index(key)
        if index is not None:
            obj[index] = value
            return

    if not isinstance(key, str):
        key = str(key)
    setattr(obj, key, value)
