"""Per-connection session bookkeeping."""

from .subscriptions import Subscription, SubscriptionRegistry
from .transactions import Transaction, TransactionRegistry

__all__ = [
    "Subscription",
    "SubscriptionRegistry",
    "Transaction",
    "TransactionRegistry",
]
