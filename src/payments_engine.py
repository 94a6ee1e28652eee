import logging
from abc import ABC, abstractmethod
from typing import List

from models import Transaction, TransactionResultSummary, ProcessingStats
from state_manager import StateManager
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)


class PaymentEngine(ABC):
    """
    Settles transactions one by one and keeps one account per client.
    Implementations must accept concurrent process() calls.
    """

    @abstractmethod
    def process(self, transaction: Transaction) -> None:
        """
        Apply a single transaction.

        Raises:
            TransactionError: the transaction could not be applied. State is
                left as it was before the call and the run should stop.
        """

    @abstractmethod
    def snapshot(self) -> List[TransactionResultSummary]:
        """Final account states, ordered by client id."""

    @property
    @abstractmethod
    def stats(self) -> ProcessingStats:
        """Counters of the transactions applied so far."""


class InMemoryPaymentEngine(PaymentEngine):
    """
    Payment engine backed by in-memory dictionaries.
    Each transaction is applied under its client's lock, so clients are
    settled independently while a client's events stay serialized.
    """

    def __init__(self):
        self._state = StateManager()
        self._processor = TransactionProcessor(self._state)
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process(self, transaction: Transaction) -> None:
        lock = self._state.get_client_lock(transaction.client_id)
        with lock:
            self._processor.process_transaction(transaction)
        self._stats.record_applied(transaction.transaction_type)

    def snapshot(self) -> List[TransactionResultSummary]:
        """Take only once every producer has finished submitting."""
        accounts = self._state.get_all_accounts()
        logger.debug(f"Taking snapshot of {len(accounts)} accounts")
        return [TransactionResultSummary.from_account(accounts[client_id]) for client_id in sorted(accounts.keys())]
