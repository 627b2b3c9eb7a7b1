"""Change notifications for surfaces that read the note store.

Delivery is fire-and-forget: a failing listener is logged and skipped.
Hosts that only care whether anything changed (the widget generation
counter) see a burst of publishes as one refresh.
"""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]


class Subscription:
    def __init__(self, notifier: ChangeNotifier, listener: Listener) -> None:
        self._notifier = notifier
        self.listener = listener

    def cancel(self) -> None:
        self._notifier.unsubscribe(self)


class ChangeNotifier:
    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def subscribe(self, listener: Listener) -> Subscription:
        subscription = Subscription(self, listener)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, reason: str) -> None:
        for subscription in list(self._subscriptions):
            try:
                subscription.listener(reason)
            except Exception:
                logger.exception("Change listener failed for %r", reason)
