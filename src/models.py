import threading
from dataclasses import dataclass
from decimal import (
    Context,
    Decimal,
    DecimalException,
    DivisionByZero,
    Inexact,
    InvalidOperation,
    Overflow,
    ROUND_HALF_EVEN,
)
from enum import Enum
from typing import Callable, Dict, Optional

from errors import BalanceOverflow, MalformedTransaction

OUTPUT_PRECISION = Decimal("0.0001")

# Bounds of a single amount: 96-bit magnitude, at most 28 fractional digits
MAX_AMOUNT = Decimal("79228162514264337593543950335")
MAX_SCALE = 28

# Balances must stay exact, so rounding is trapped instead of applied
LEDGER_PRECISION = 96
LEDGER_CONTEXT = Context(
    prec=LEDGER_PRECISION,
    rounding=ROUND_HALF_EVEN,
    traps=[InvalidOperation, DivisionByZero, Overflow, Inexact],
)
OUTPUT_CONTEXT = Context(
    prec=LEDGER_PRECISION,
    rounding=ROUND_HALF_EVEN,
    traps=[InvalidOperation, DivisionByZero, Overflow],
)


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class DisputeStatus(Enum):
    NORMAL = "normal"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __post_init__(self) -> None:
        if not isinstance(self.transaction_type, TransactionType):
            raise MalformedTransaction(f"unknown transaction type {self.transaction_type!r}")

        for name in ("client_id", "transaction_id"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise MalformedTransaction(f"{name} must be a non-negative integer, got {value!r}")

        if self.transaction_type.carries_amount:
            if self.amount is None:
                raise MalformedTransaction(
                    f"{self.transaction_type.value} tx {self.transaction_id}: amount is missing"
                )
            if not isinstance(self.amount, Decimal) or not self.amount.is_finite():
                raise MalformedTransaction(
                    f"{self.transaction_type.value} tx {self.transaction_id}: amount must be a finite Decimal, got {self.amount!r}"
                )
            if self.amount < 0:
                raise MalformedTransaction(
                    f"{self.transaction_type.value} tx {self.transaction_id}: negative amount {self.amount}"
                )
            if self.amount > MAX_AMOUNT:
                raise MalformedTransaction(
                    f"{self.transaction_type.value} tx {self.transaction_id}: amount {self.amount} exceeds {MAX_AMOUNT}"
                )
            if -self.amount.as_tuple().exponent > MAX_SCALE:
                raise MalformedTransaction(
                    f"{self.transaction_type.value} tx {self.transaction_id}: amount {self.amount} has more than {MAX_SCALE} decimal places"
                )
        elif self.amount is not None:
            raise MalformedTransaction(
                f"{self.transaction_type.value} tx {self.transaction_id}: unexpected amount {self.amount}"
            )

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class TransactionRecord:
    """A deposit or withdrawal kept in history so it can be disputed later."""

    transaction: Transaction
    status: DisputeStatus = DisputeStatus.NORMAL

    @property
    def amount(self) -> Decimal:
        return self.transaction.amount


@dataclass
class ClientAccount:
    """
    Balances of one client.
    Every mutator computes its new balances before assigning any of them, so
    a BalanceOverflow leaves the account untouched.
    """

    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return _exact(LEDGER_CONTEXT.add, self.available, self.held)

    def credit(self, amount: Decimal) -> None:
        self.available = _exact(LEDGER_CONTEXT.add, self.available, amount)

    def debit(self, amount: Decimal) -> None:
        self.available = _exact(LEDGER_CONTEXT.subtract, self.available, amount)

    def hold(self, amount: Decimal) -> None:
        available = _exact(LEDGER_CONTEXT.subtract, self.available, amount)
        held = _exact(LEDGER_CONTEXT.add, self.held, amount)
        self.available, self.held = available, held

    def release_hold(self, amount: Decimal) -> None:
        held = _exact(LEDGER_CONTEXT.subtract, self.held, amount)
        available = _exact(LEDGER_CONTEXT.add, self.available, amount)
        self.available, self.held = available, held

    def remove_held(self, amount: Decimal) -> None:
        self.held = _exact(LEDGER_CONTEXT.subtract, self.held, amount)

    def lock(self) -> None:
        self.locked = True


def _exact(operation: Callable[[Decimal, Decimal], Decimal], left: Decimal, right: Decimal) -> Decimal:
    try:
        return operation(left, right)
    except DecimalException as e:
        raise BalanceOverflow(f"{left} and {right} cannot be combined without losing precision") from e


@dataclass(frozen=True)
class TransactionResultSummary:
    """Read-only view of an account, rounded for output."""

    client: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool

    @classmethod
    def from_account(cls, account: ClientAccount) -> "TransactionResultSummary":
        available = _round_output(account.available)
        held = _round_output(account.held)
        return cls(
            client=account.client_id,
            available=available,
            held=held,
            total=OUTPUT_CONTEXT.add(available, held),
            locked=account.locked,
        )


def _round_output(value: Decimal) -> Decimal:
    return value.quantize(OUTPUT_PRECISION, context=OUTPUT_CONTEXT)


class ProcessingStats:
    """Thread-safe counters of applied transactions, by type."""

    def __init__(self):
        self._lock = threading.Lock()
        self._applied: Dict[TransactionType, int] = {}

    def record_applied(self, transaction_type: TransactionType) -> None:
        with self._lock:
            self._applied[transaction_type] = self._applied.get(transaction_type, 0) + 1

    @property
    def processed(self) -> int:
        with self._lock:
            return sum(self._applied.values())

    def applied(self, transaction_type: TransactionType) -> int:
        with self._lock:
            return self._applied.get(transaction_type, 0)
