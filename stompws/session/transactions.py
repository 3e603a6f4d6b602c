"""Transaction id bookkeeping."""

from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Set


@dataclass
class Transaction:
    """Handle returned by Client.begin()."""
    id: str
    _commit: Callable[[str], None] = field(repr=False, compare=False)
    _abort: Callable[[str], None] = field(repr=False, compare=False)

    def commit(self):
        """Commit this transaction."""
        self._commit(self.id)

    def abort(self):
        """Abort this transaction."""
        self._abort(self.id)


class TransactionRegistry:
    """
    Tracks transactions begun by this client.

    Transactions live on the server; only the ids are kept here so callers
    can see what is still open.
    """

    def __init__(self, counter: Iterator[int]):
        """
        Initialize registry.

        Args:
            counter: Shared source of sequence numbers for generated ids
        """
        self.counter = counter
        self.open: Set[str] = set()

    def resolve(self, transaction: Optional[str] = None) -> str:
        """
        Return the caller's id or mint a new one.

        Args:
            transaction: Caller supplied id, if any

        Returns:
            Transaction id
        """
        return transaction or f"tx-{next(self.counter)}"

    def begin(self, transaction: str):
        self.open.add(transaction)

    def end(self, transaction: str):
        """Forget a committed or aborted transaction; unknown ids are ignored."""
        self.open.discard(transaction)

    def clear(self):
        self.open.clear()

    def ids(self) -> List[str]:
        return sorted(self.open)

    def __contains__(self, transaction: str) -> bool:
        return transaction in self.open

    def __len__(self) -> int:
        return len(self.open)
