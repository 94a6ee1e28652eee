from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from models import Transaction


class TransactionError(Exception):
    """Base class for every error that halts a settlement run."""

    def __init__(self, message: str, transaction: Optional["Transaction"] = None):
        super().__init__(message)
        self.transaction = transaction

    def __str__(self) -> str:
        message = super().__str__()
        if self.transaction is not None:
            return f"{message} [{self.transaction!r}]"
        return message


class MalformedTransaction(TransactionError):
    """Transaction fields do not match the shape required by its type."""


class ParseError(TransactionError):
    """Input record could not be decoded into a transaction."""


class DuplicateTransaction(TransactionError):
    """Transaction id already tracked for the client."""


class InvalidTransactionState(TransactionError):
    """Referenced transaction is not in the status the operation requires."""


class UnknownTransaction(InvalidTransactionState):
    """Referenced transaction was never tracked for the client."""


class InsufficientFunds(TransactionError):
    """Withdrawal exceeds the available balance."""


class BalanceInconsistency(TransactionError):
    """Moving funds between available and held would drive a balance negative."""


class AccountLocked(TransactionError):
    """Deposit or withdrawal on an account frozen by a chargeback."""


class BalanceOverflow(TransactionError):
    """Balance arithmetic would need more digits than the ledger keeps exactly."""
