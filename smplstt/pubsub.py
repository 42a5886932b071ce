#!/usr/bin/env python3
"""local, in-process publish/subscribe"""

import contextlib
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

Subscriber = Callable[[Any], None]


class PubSub:
    """topic based notification bus

    Delivery is synchronous and best effort: a failing subscriber is
    logged and the rest still get the message.
    """

    def __init__(self):
        self.subscribers: defaultdict[str, list[Subscriber]] = defaultdict(list)

    def subscribe(self, topic: str, callback: Subscriber) -> Callable[[], None]:
        """register callback for topic; returns an unsubscribe function"""
        self.subscribers[topic].append(callback)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self.subscribers[topic].remove(callback)

        return unsubscribe

    def publish(self, topic: str, payload: Any = None) -> None:
        """deliver payload to everyone listening on topic"""
        logging.debug("publishing %s", topic)
        for callback in list(self.subscribers.get(topic, [])):
            try:
                callback(payload)
            except Exception:  # pylint: disable=broad-except
                logging.exception("subscriber for %s failed", topic)
