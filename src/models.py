from collections import Counter
from dataclasses import dataclass, field
from decimal import MAX_PREC, Decimal, localcontext
from enum import Enum
from typing import Optional


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class DisputeState(Enum):
    NONE = "none"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"


@dataclass(frozen=True)
class Transaction:
    """One record from the input log."""

    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __post_init__(self):
        if self.transaction_type.carries_amount and self.amount is None:
            raise ValueError(f"{self.transaction_type.value} missing amount")
        if not self.transaction_type.carries_amount and self.amount is not None:
            raise ValueError(f"{self.transaction_type.value} does not take an amount")

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass(frozen=True)
class StoredTransaction:
    """
    An accepted deposit or withdrawal, kept for later dispute lookups.
    Deposits are stored with a positive amount, withdrawals with a negative one.
    """

    transaction_id: int
    client_id: int
    amount: Decimal

    @property
    def is_withdrawal(self) -> bool:
        return self.amount < 0


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        # Exact even when available and held are far apart in magnitude
        with localcontext() as ctx:
            ctx.prec = MAX_PREC
            return self.available + self.held

    def credit(self, amount: Decimal) -> None:
        self.available += amount

    def debit(self, amount: Decimal) -> None:
        self.available -= amount

    # Two-field moves compute both sides before assigning either
    def hold(self, amount: Decimal) -> None:
        available, held = self.available - amount, self.held + amount
        self.available, self.held = available, held

    def release_hold(self, amount: Decimal) -> None:
        available, held = self.available + amount, self.held - amount
        self.available, self.held = available, held

    def remove_held(self, amount: Decimal) -> None:
        self.held -= amount
        self.locked = True


@dataclass
class ProcessingStats:
    """Counters for one run. Failures are keyed by error class name."""

    processed: int = 0
    failed: int = 0
    failures_by_kind: Counter = field(default_factory=Counter)

    def record_success(self) -> None:
        self.processed += 1

    def record_failure(self, kind: str) -> None:
        self.failed += 1
        self.failures_by_kind[kind] += 1
