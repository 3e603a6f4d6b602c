"""Subscription bookkeeping."""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional

from ..protocol.frames import Frame


MessageCallback = Callable[[Frame], None]


@dataclass
class Subscription:
    """Handle returned by Client.subscribe()."""
    id: str
    destination: str
    callback: MessageCallback = field(repr=False)
    _unsubscribe: Callable[[str], None] = field(repr=False, compare=False)

    def unsubscribe(self):
        """Cancel this subscription."""
        self._unsubscribe(self.id)


class SubscriptionRegistry:
    """Maps subscription ids to their handles."""

    def __init__(self, counter: Iterator[int]):
        """
        Initialize registry.

        Args:
            counter: Shared source of sequence numbers for generated ids
        """
        self.counter = counter
        self.subscriptions: Dict[str, Subscription] = {}

    def next_id(self) -> str:
        """Mint a new subscription id."""
        return f"sub-{next(self.counter)}"

    def add(self, subscription: Subscription) -> Subscription:
        """
        Register a subscription, replacing any previous one with the same id.

        Args:
            subscription: Subscription to register

        Returns:
            The registered subscription
        """
        self.subscriptions[subscription.id] = subscription
        return subscription

    def get(self, subscription_id: Optional[str]) -> Optional[Subscription]:
        """Look up a subscription by id."""
        if subscription_id is None:
            return None
        return self.subscriptions.get(subscription_id)

    def remove(self, subscription_id: str) -> Optional[Subscription]:
        """Forget a subscription; unknown ids are ignored."""
        return self.subscriptions.pop(subscription_id, None)

    def clear(self):
        """Forget all subscriptions."""
        self.subscriptions.clear()

    def ids(self) -> List[str]:
        return list(self.subscriptions)

    def __contains__(self, subscription_id: str) -> bool:
        return subscription_id in self.subscriptions

    def __len__(self) -> int:
        return len(self.subscriptions)
