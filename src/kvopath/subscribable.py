"""Subscribable: a publish/subscribe mixin.

Handlers subscribe to named events on an object and are called with
``(event, *args)`` whenever the object publishes that event. Delivery is
deferred through the scheduler unless the subscription is synchronous.
A condition predicate can filter events per subscription.

    class Ship(Subscribable):
        pass

    ship = Ship()
    ship.subscribe("dock", lambda event, port: print(port), synchronous=True)
    ship.publish("dock", "Lisbon")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from kvopath import _scheduling
from kvopath.errors import NotCallableError

if TYPE_CHECKING:
    from kvopath.observable import Edge


def _always(*args) -> bool:
    return True


class Subscription:
    """One handler registered for one event on one object."""

    __slots__ = ("event", "handler", "synchronous", "condition", "edge")

    def __init__(
        self,
        event: str,
        handler: Callable,
        synchronous: bool = False,
        condition: Callable[..., bool] = _always,
    ) -> None:
        self.event = event
        self.handler = handler
        self.synchronous = synchronous
        self.condition = condition
        # Set when the subscription is a dependency edge created by init_observable.
        self.edge: Edge | None = None

    def __repr__(self) -> str:
        mode = "sync" if self.synchronous else "deferred"
        return f"Subscription({self.event!r}, {self.handler!r}, {mode})"


class Subscribable:
    """Mixin giving an object subscribe/unsubscribe/publish."""

    is_subscribable = True

    _subscriptions: dict[str, list[Subscription]] | None = None

    def subscribe(
        self,
        event: str,
        handler: Callable,
        *,
        synchronous: bool = False,
        condition: Callable[..., bool] | None = None,
    ) -> Subscription:
        """Call handler(event, *args) whenever event is published.

        Delivery is deferred to a later turn unless synchronous is true.
        condition(event, *args) can veto individual events.
        """
        if not callable(handler):
            raise NotCallableError(handler, "handler")
        if condition is None:
            condition = _always
        elif not callable(condition):
            raise NotCallableError(condition, "condition")

        if self._subscriptions is None:
            self._subscriptions = {}
        subscription = Subscription(event, handler, synchronous, condition)
        self._subscriptions.setdefault(event, []).append(subscription)
        return subscription

    def unsubscribe(self, event: str, handler: Callable) -> Subscribable:
        """Remove the first subscription of handler to event."""
        subscriptions = self.subscriptions_for(event)
        for index, subscription in enumerate(subscriptions):
            if subscription.handler == handler:
                del subscriptions[index]
                break
        return self

    def subscriptions_for(self, event: str) -> list[Subscription]:
        if self._subscriptions is None:
            return []
        return self._subscriptions.get(event, [])

    def publish(self, event: str, *args) -> Subscribable:
        """Deliver event to every subscription whose condition accepts it."""
        published = False
        for subscription in list(self.subscriptions_for(event)):
            if not _scheduling.invoke(subscription.condition, (event, *args)):
                continue
            if subscription.synchronous:
                _scheduling.invoke(subscription.handler, (event, *args))
            else:
                _scheduling.defer(subscription.handler, (event, *args))
            published = True

        if not published:
            self.unpublished_event(event, *args)
        return self

    def unpublished_event(self, event: str, *args) -> None:
        """Called when nothing accepted a published event. Override to handle."""
