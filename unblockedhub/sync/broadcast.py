"""
In-process publish/subscribe channels.

Used as the cross-tab signal of the local store, and to fan change log entries out to the subscribers of one client.
A subscriber registered with a `receiver` id never gets messages published with the same `sender` id,
so a writer can opt out of hearing its own broadcasts.
"""

from dataclasses import dataclass
from itertools import count
from typing import Any, Callable, Optional

from unblockedhub.core.app_logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Message:
    topic: str
    payload: Any = None
    sender: Optional[str] = None


Handler = Callable[[Message], None]
Unsubscribe = Callable[[], None]


@dataclass
class _Subscriber:
    handler: Handler
    topic: Optional[str]
    receiver: Optional[str]

    def wants(self, message: Message) -> bool:
        if self.topic is not None and self.topic != message.topic:
            return False
        if self.receiver is not None and self.receiver == message.sender:
            return False
        return True


class BroadcastChannel:
    """A named channel. Delivery is synchronous, in subscription order."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: dict[int, _Subscriber] = {}
        self._tokens = count()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(
        self,
        handler: Handler,
        *,
        topic: Optional[str] = None,
        receiver: Optional[str] = None,
    ) -> Unsubscribe:
        """Register `handler`. The returned function removes it again."""
        token = next(self._tokens)
        self._subscribers[token] = _Subscriber(handler, topic, receiver)
        logger.debug("Subscribed to channel %r (token %d)", self.name, token)

        def unsubscribe() -> None:
            if self._subscribers.pop(token, None) is None:
                logger.debug(
                    "Subscription %d on channel %r was already removed", token, self.name
                )
                return
            logger.debug("Unsubscribed from channel %r (token %d)", self.name, token)

        return unsubscribe

    def publish(
        self, topic: str, payload: Any = None, *, sender: Optional[str] = None
    ) -> int:
        """Deliver a message to every interested subscriber and return how many got it."""
        message = Message(topic=topic, payload=payload, sender=sender)
        delivered = 0
        # Snapshot: handlers may (un)subscribe while we iterate
        for subscriber in list(self._subscribers.values()):
            if not subscriber.wants(message):
                continue
            try:
                subscriber.handler(message)
            except Exception:
                logger.exception(
                    "Subscriber on channel %r failed handling topic %r", self.name, topic
                )
            delivered += 1
        return delivered


class BroadcastHub:
    """Owns the channels of one process. Channels are created on first use."""

    def __init__(self) -> None:
        self._channels: dict[str, BroadcastChannel] = {}

    def channel(self, name: str) -> BroadcastChannel:
        if name not in self._channels:
            self._channels[name] = BroadcastChannel(name)
        return self._channels[name]

    def __contains__(self, name: str) -> bool:
        return name in self._channels


_DEFAULT_HUB = BroadcastHub()


def default_hub() -> BroadcastHub:
    """The hub shared by everything in this process that does not bring its own."""
    return _DEFAULT_HUB
