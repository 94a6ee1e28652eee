import logging

from errors import (
    AccountLocked,
    BalanceInconsistency,
    BalanceOverflow,
    DuplicateTransaction,
    InsufficientFunds,
    InvalidTransactionState,
    UnknownTransaction,
)
from models import Transaction, TransactionType, TransactionRecord, ClientAccount, DisputeStatus
from state_manager import StateManager

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transactions against state.
    Raises a TransactionError subclass when a transaction cannot be applied;
    in that case neither the account nor the history has been touched.
    Caller is responsible for holding the client lock.
    """

    def __init__(self, state: StateManager):
        self._state = state

    def process_transaction(self, transaction: Transaction) -> None:
        account = self._state.get_or_create_account(transaction.client_id)

        try:
            match transaction.transaction_type:
                case TransactionType.DEPOSIT:
                    self._handle_deposit(account, transaction)
                case TransactionType.WITHDRAWAL:
                    self._handle_withdrawal(account, transaction)
                case TransactionType.DISPUTE:
                    self._handle_dispute(account, transaction)
                case TransactionType.RESOLVE:
                    self._handle_resolve(account, transaction)
                case TransactionType.CHARGEBACK:
                    self._handle_chargeback(account, transaction)
        except BalanceOverflow as e:
            raise BalanceOverflow(str(e), transaction) from e

    def _handle_deposit(self, account: ClientAccount, transaction: Transaction) -> None:
        self._check_not_locked(account, transaction)
        self._check_not_duplicate(transaction)

        account.credit(transaction.amount)
        self._state.track_transaction(transaction)
        logger.debug(f"Deposit tx {transaction.transaction_id}: credited {transaction.amount} to client {account.client_id}")

    def _handle_withdrawal(self, account: ClientAccount, transaction: Transaction) -> None:
        self._check_not_locked(account, transaction)
        self._check_not_duplicate(transaction)

        if account.available < transaction.amount:
            raise InsufficientFunds(
                f"Insufficient funds for withdrawal: available {account.available}, requested {transaction.amount}",
                transaction,
            )

        account.debit(transaction.amount)
        self._state.track_transaction(transaction)
        logger.debug(f"Withdrawal tx {transaction.transaction_id}: debited {transaction.amount} from client {account.client_id}")

    def _handle_dispute(self, account: ClientAccount, transaction: Transaction) -> None:
        record = self._find_record(transaction)

        if record.status != DisputeStatus.NORMAL:
            raise InvalidTransactionState(
                f"Transaction {transaction.transaction_id} cannot be disputed while {record.status.value}",
                transaction,
            )

        # Disputing a withdrawal whose funds are already gone lands here as well
        if account.available < record.amount:
            raise BalanceInconsistency(
                f"Attempt to dispute {record.amount} with only {account.available} available",
                transaction,
            )

        account.hold(record.amount)
        record.status = DisputeStatus.DISPUTED
        logger.debug(f"Dispute for tx {transaction.transaction_id}: holding {record.amount} for client {account.client_id}")

    def _handle_resolve(self, account: ClientAccount, transaction: Transaction) -> None:
        record = self._find_disputed_record(account, transaction)

        account.release_hold(record.amount)
        record.status = DisputeStatus.RESOLVED
        logger.debug(f"Resolve for tx {transaction.transaction_id}: released {record.amount} for client {account.client_id}")

    def _handle_chargeback(self, account: ClientAccount, transaction: Transaction) -> None:
        record = self._find_disputed_record(account, transaction)

        account.remove_held(record.amount)
        account.lock()
        record.status = DisputeStatus.CHARGED_BACK
        logger.info(f"Chargeback for tx {transaction.transaction_id}: removed {record.amount}, client {account.client_id} locked")

    def _check_not_locked(self, account: ClientAccount, transaction: Transaction) -> None:
        if account.locked:
            raise AccountLocked(
                f"Account {account.client_id} is locked, {transaction.transaction_type.value} rejected",
                transaction,
            )

    def _check_not_duplicate(self, transaction: Transaction) -> None:
        if self._state.is_tracked(transaction.client_id, transaction.transaction_id):
            raise DuplicateTransaction(
                f"Transaction {transaction.transaction_id} already processed for client {transaction.client_id}",
                transaction,
            )

    def _find_record(self, transaction: Transaction) -> TransactionRecord:
        record = self._state.get_record(transaction.client_id, transaction.transaction_id)
        if record is None:
            raise UnknownTransaction(
                f"{transaction.transaction_type.value.capitalize()} references tx {transaction.transaction_id} never processed for client {transaction.client_id}",
                transaction,
            )
        return record

    def _find_disputed_record(self, account: ClientAccount, transaction: Transaction) -> TransactionRecord:
        record = self._find_record(transaction)

        if record.status != DisputeStatus.DISPUTED:
            raise InvalidTransactionState(
                f"Cannot {transaction.transaction_type.value} tx {transaction.transaction_id} without an open dispute (status {record.status.value})",
                transaction,
            )

        if account.held < record.amount:
            raise BalanceInconsistency(
                f"Attempt to release {record.amount} with only {account.held} held",
                transaction,
            )
        return record
