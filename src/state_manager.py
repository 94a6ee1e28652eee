import threading
from typing import Dict, List, Optional

from errors import DuplicateTransaction
from models import Transaction, TransactionRecord, ClientAccount


class StateManager:
    """
    Thread-safe state management with per-client locking.
    Stores client accounts and, per client, the deposits and withdrawals
    tracked for dispute lookups.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._records: Dict[int, Dict[int, TransactionRecord]] = {}

        # Global lock protects creation of new entries in _accounts, _records and _client_locks.
        # Everything inside a client's entries is guarded by that client's lock.
        self._global_lock = threading.Lock()
        self._client_locks: Dict[int, threading.Lock] = {}

    def get_client_lock(self, client_id: int) -> threading.Lock:
        """
        Get or create a lock for a specific client.
        Acquire it before reading or mutating any of that client's state.
        """
        with self._global_lock:
            if client_id not in self._client_locks:
                self._client_locks[client_id] = threading.Lock()
            return self._client_locks[client_id]

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        with self._global_lock:
            if client_id not in self._accounts:
                self._accounts[client_id] = ClientAccount(client_id=client_id)
                self._records[client_id] = {}
            return self._accounts[client_id]

    def track_transaction(self, transaction: Transaction) -> TransactionRecord:
        """Store a deposit or withdrawal for future dispute lookups."""
        records = self._client_records(transaction.client_id)
        if transaction.transaction_id in records:
            raise DuplicateTransaction(
                f"Transaction {transaction.transaction_id} already processed for client {transaction.client_id}",
                transaction,
            )
        record = TransactionRecord(transaction=transaction)
        records[transaction.transaction_id] = record
        return record

    def is_tracked(self, client_id: int, transaction_id: int) -> bool:
        return transaction_id in self._client_records(client_id)

    def get_record(self, client_id: int, transaction_id: int) -> Optional[TransactionRecord]:
        """Retrieve the tracked record for (client, transaction), if any."""
        return self._client_records(client_id).get(transaction_id)

    def get_client_records(self, client_id: int) -> List[TransactionRecord]:
        return list(self._client_records(client_id).values())

    def get_all_accounts(self) -> Dict[int, ClientAccount]:
        """Return all accounts (for final output)."""
        with self._global_lock:
            return dict(self._accounts)

    def _client_records(self, client_id: int) -> Dict[int, TransactionRecord]:
        with self._global_lock:
            return self._records.setdefault(client_id, {})
