"""Observable: key-value observing on top of Subscribable.

An Observable host declares computed properties (see descriptors) whose
dependent keys name other fields, on itself or on objects reachable from it
by path. init_observable() wires each dependent key to a synchronous
subscription on the key's owner: when the key is set, the dependent property
is recomputed and republishes its own change, depth first, before the
original set returns.

    class Greeter(Observable):
        L10N = {"en": "Hello", "fr": "Bonjour"}
        language = kvopath.property()

        @kvopath.property("language", cacheable=True)
        def greeting(self, key):
            return self.L10N[self.language]

    greeter = Greeter().init_observable()
    greeter.language = "fr"
    greeter.greeting   # 'Bonjour'

A second subscription on the owner's ``key:before`` event relays the
announcement, so ``greeting:before`` is published before ``language`` is
written. Methods marked with observes() or observes_before() are subscribed
the same way.

Each subscription made here is recorded as an Edge in the host's meta record,
so the graph can be listed (dependency_edges), checked for cycles and torn
down (teardown_observable, destroy).
"""

from __future__ import annotations

import logging
from typing import Callable

from kvopath import _anchor, accessors
from kvopath.descriptors import install
from kvopath.errors import CyclicDependencyError
from kvopath.path import tokenize
from kvopath.subscribable import Subscribable

logger = logging.getLogger("kvopath.observable")

_OBSERVES_ATTR = "_kvopath_observes"
_OBSERVES_BEFORE_ATTR = "_kvopath_observes_before"


class Edge:
    """One dependency subscription: ``owner.event`` drives ``target.key``.

    key is None for observer methods, which react but never set anything.
    relay is the handler subscribed to ``event:before`` on behalf of a
    dependent property.
    """

    __slots__ = ("_owner", "event", "_target", "key", "handler", "relay")

    def __init__(
        self,
        owner,
        event: str,
        target,
        key: str | None,
        handler: Callable,
        relay: Callable | None = None,
    ) -> None:
        self._owner = _anchor.ref(owner)
        self.event = event
        self._target = _anchor.ref(target)
        self.key = key
        self.handler = handler
        self.relay = relay

    @property
    def owner(self):
        return self._owner()

    @property
    def target(self):
        return self._target()

    def __repr__(self) -> str:
        source = _label(self.owner, self.event)
        sink = _label(self.target, self.key) if self.key else repr(self.handler)
        return f"Edge({source} -> {sink})"


def observes(*keys: str):
    """Decorator: call this method whenever any of keys changes.

    The method receives ``(event, value)``. Keys may be paths to fields on
    other subscribable objects. Takes effect at init_observable().

        class Person(Observable):
            name = "nobody"

            @observes("name")
            def name_changed(self, event, value):
                print("now", value)
    """
    return _marker(_OBSERVES_ATTR, keys)


def observes_before(*keys: str):
    """Decorator: call this method just before any of keys changes.

    The method receives the ``key:before`` event name only; reading the key
    from inside it still gives the old value.

        @observes_before("name")
        def name_will_change(self, event):
            self.previous = self.name
    """
    return _marker(_OBSERVES_BEFORE_ATTR, keys)


def _marker(attr: str, keys: tuple[str, ...]):
    def decorate(fn):
        setattr(fn, attr, getattr(fn, attr, ()) + keys)
        return fn

    return decorate


def _declared_observers(cls: type, attr: str = _OBSERVES_ATTR) -> dict[str, tuple[str, ...]]:
    found = {}
    seen = set()
    for klass in cls.__mro__:
        for name, value in vars(klass).items():
            if name in seen:
                continue
            seen.add(name)
            keys = getattr(value, attr, None)
            if keys:
                found[name] = keys
    return found


def init_observable(obj, *, check_cycles: bool = True):
    """Activate dependency propagation on obj. Idempotent. Returns obj.

    Every dependent key is tokenized before any subscription is made, so a
    malformed key leaves obj untouched. With check_cycles, a dependency cycle
    through obj's properties raises CyclicDependencyError and the new edges
    are removed again.
    """
    record = _anchor.meta(obj, create=True)
    if record.initialized:
        return obj
    if not record.installed:
        install(obj, record)

    plan = []
    for key, field in record.descriptors.items():
        for dependent in field.watching:
            plan.append((dependent, tokenize(dependent), key, None, False))
    for name, keys in _declared_observers(type(obj)).items():
        for dependent in keys:
            plan.append((dependent, tokenize(dependent), None, name, False))
    for name, keys in _declared_observers(type(obj), _OBSERVES_BEFORE_ATTR).items():
        for dependent in keys:
            plan.append((dependent, tokenize(dependent), None, name, True))

    record.initialized = True
    created = []
    for dependent, tokens, key, method, before_change in plan:
        handler = _notifier(obj, key) if key is not None else _observer(obj, method)
        edge = _connect(obj, dependent, tokens, key, handler, before_change)
        if edge is not None:
            created.append(edge)

    if check_cycles:
        cycle = _find_cycle([edge for edge in created if edge.key is not None])
        if cycle:
            teardown_observable(obj)
            raise CyclicDependencyError(cycle)

    logger.debug("Initialized %s: %d dependency edges", _label(obj), len(created))
    return obj


def teardown_observable(obj):
    """Unsubscribe every edge init_observable made for obj. Returns obj.

    Declared properties stay installed; obj can be initialized again.
    """
    record = _anchor.meta(obj)
    if record is None:
        return obj
    for edge in record.edges:
        owner = edge.owner
        if owner is None:
            continue
        owner.unsubscribe(edge.event, edge.handler)
        if edge.relay is not None:
            owner.unsubscribe(accessors.before(edge.event), edge.relay)
    logger.debug("Tore down %s: %d dependency edges", _label(obj), len(record.edges))
    record.edges.clear()
    record.initialized = False
    return obj


def destroy(obj) -> None:
    """Tear down obj's edges and forget everything kvopath stored for it."""
    teardown_observable(obj)
    _anchor.release(obj)


def dependency_edges(obj) -> list[Edge]:
    record = _anchor.meta(obj)
    return list(record.edges) if record is not None else []


def _notifier(target, key: str) -> Callable:
    target_ref = _anchor.ref(target)

    def notify(event, *args):
        host = target_ref()
        if host is not None:
            accessors.set(host, key)

    return notify


def _relay(target, key: str) -> Callable:
    target_ref = _anchor.ref(target)

    def relay(event, *args):
        host = target_ref()
        if host is not None:
            accessors.will_change(host, key)

    return relay


def _observer(target, name: str) -> Callable:
    target_ref = _anchor.ref(target)

    def observe(event, *args):
        host = target_ref()
        if host is not None:
            getattr(host, name)(event, *args)

    return observe


def _connect(
    obj,
    dependent: str,
    tokens: list[str],
    key: str | None,
    handler: Callable,
    before_change: bool = False,
) -> Edge | None:
    owner = accessors.walk(obj, tokens[:-1])
    event = accessors.before(tokens[-1]) if before_change else tokens[-1]
    if not getattr(owner, "is_subscribable", False):
        logger.warning(
            "Skipping dependency %r of %s: owner %r is not subscribable",
            dependent, _label(obj, key), owner,
        )
        return None

    subscription = owner.subscribe(event, handler, synchronous=True)
    relay = None
    if key is not None:
        relay = _relay(obj, key)
        owner.subscribe(accessors.before(event), relay, synchronous=True)
    edge = subscription.edge = Edge(owner, event, obj, key, handler, relay)
    _anchor.meta(obj, create=True).edges.append(edge)
    return edge


def _find_cycle(edges: list[Edge]) -> list[str] | None:
    """Depth-first search from each edge's target property back to itself."""
    done = set()
    for edge in edges:
        target = edge.target
        if target is None:
            continue
        cycle = _visit(target, edge.key, [], done)
        if cycle:
            return cycle
    return None


def _visit(obj, key: str, path: list, done: set) -> list[str] | None:
    node = (id(obj), key)
    for index, (seen, _) in enumerate(path):
        if seen == node:
            return [label for _, label in path[index:]] + [_label(obj, key)]
    if node in done:
        return None

    path.append((node, _label(obj, key)))
    subscriptions = obj.subscriptions_for(key) if getattr(obj, "is_subscribable", False) else []
    for subscription in list(subscriptions):
        edge = subscription.edge
        if edge is None or edge.key is None:
            continue
        target = edge.target
        if target is None:
            continue
        cycle = _visit(target, edge.key, path, done)
        if cycle:
            return cycle
    path.pop()
    done.add(node)
    return None


def _label(obj, key: str | None = None) -> str:
    name = type(obj).__name__
    return f"{name}.{key}" if key is not None else name


class Observable(Subscribable):
    """Mixin for hosts of computed properties and observed keys.

    Call init_observable() once to turn on dependency propagation.
    """

    is_observable = True

    def init_observable(self, *, check_cycles: bool = True):
        return init_observable(self, check_cycles=check_cycles)

    def teardown_observable(self):
        return teardown_observable(self)

    def get(self, key):
        """Read a key or path on this object."""
        return accessors.get(self, key)

    def get_path(self, path):
        return accessors.get_path(self, path)

    def set(self, key, *value):
        """Write a key or path on this object and notify. Returns self."""
        accessors.set(self, key, *value)
        return self

    def set_path(self, path, *value):
        accessors.set_path(self, path, *value)
        return self

    def unknown_property(self, key, *value):
        """Called for keys that are neither plain nor computed.

        The default stores written values as attributes and reads as MISSING.
        """
        if value:
            setattr(self, str(key), value[0])
        return accessors.MISSING
