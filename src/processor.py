import functools
import logging
from decimal import Context, Decimal, DivisionByZero, Inexact, InvalidOperation, Overflow, localcontext
from typing import Tuple

from errors import (
    LEDGER_PRECISION,
    AccountLocked,
    AlreadyDisputed,
    AmountOverflow,
    ClientMismatch,
    DuplicateTx,
    InsufficientFunds,
    InsufficientHeld,
    InvalidAmount,
    NotDisputable,
    NotDisputed,
)
from models import ClientAccount, DisputeState, StoredTransaction, Transaction, TransactionType
from state import StateManager

logger = logging.getLogger(__name__)

# Ledger arithmetic must be exact; a result that would need rounding is rejected
EXACT_CONTEXT = Context(prec=LEDGER_PRECISION, traps=[Inexact, InvalidOperation, DivisionByZero, Overflow])


def exact_arithmetic(operation):
    """Run a ledger operation under EXACT_CONTEXT, turning a rounded result into AmountOverflow."""

    @functools.wraps(operation)
    def wrapper(self, client_id: int, transaction_id: int, *args):
        try:
            with localcontext(EXACT_CONTEXT):
                return operation(self, client_id, transaction_id, *args)
        except Inexact:
            raise AmountOverflow(client_id, transaction_id) from None

    return wrapper


class TransactionProcessor:
    """
    Applies records to the account and transaction stores.

    Every operation either succeeds completely or raises a LedgerError
    before touching any state.

    With strict_disputes the processor also follows each transaction's
    dispute state: only the owning client may dispute it, it cannot be
    disputed twice in a row, and resolve/chargeback require an open dispute.
    Without it, held/available bound checks are the only guard against
    out-of-sequence resolves and chargebacks.
    """

    def __init__(self, state: StateManager, strict_disputes: bool = False):
        self._state = state
        self._strict_disputes = strict_disputes

    def process_transaction(self, transaction: Transaction) -> None:
        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                self.deposit(transaction.client_id, transaction.transaction_id, transaction.amount)
            case TransactionType.WITHDRAWAL:
                self.withdrawal(transaction.client_id, transaction.transaction_id, transaction.amount)
            case TransactionType.DISPUTE:
                self.dispute(transaction.client_id, transaction.transaction_id)
            case TransactionType.RESOLVE:
                self.resolve(transaction.client_id, transaction.transaction_id)
            case TransactionType.CHARGEBACK:
                self.chargeback(transaction.client_id, transaction.transaction_id)

    @exact_arithmetic
    def deposit(self, client_id: int, transaction_id: int, amount: Decimal) -> None:
        self._check_new_transaction(client_id, transaction_id, amount)

        account = self._account_for_update(client_id)
        account.credit(amount)
        self._state.accounts.add(account)
        self._state.transactions.insert(StoredTransaction(transaction_id, client_id, amount))
        logger.debug(f"Deposit tx {transaction_id}: client {client_id} credited {amount}")

    @exact_arithmetic
    def withdrawal(self, client_id: int, transaction_id: int, amount: Decimal) -> None:
        self._check_new_transaction(client_id, transaction_id, amount)

        # A client seen for the first time has nothing to withdraw
        account = self._account_for_update(client_id)
        if amount > account.available:
            raise InsufficientFunds(client_id, amount, account.available)

        stored = StoredTransaction(transaction_id, client_id, -amount)
        account.debit(amount)
        self._state.accounts.add(account)
        self._state.transactions.insert(stored)
        logger.debug(f"Withdrawal tx {transaction_id}: client {client_id} debited {amount}")

    @exact_arithmetic
    def dispute(self, client_id: int, transaction_id: int) -> None:
        account, original = self._lookup(client_id, transaction_id)

        if self._strict_disputes and self._state.transactions.dispute_state(transaction_id) == DisputeState.DISPUTED:
            raise AlreadyDisputed(transaction_id)

        if account.available - original.amount < 0:
            raise InsufficientFunds(client_id, original.amount, account.available)

        account.hold(original.amount)
        self._state.transactions.set_dispute_state(transaction_id, DisputeState.DISPUTED)
        logger.debug(f"Dispute tx {transaction_id}: client {client_id} holding {original.amount}")

    @exact_arithmetic
    def resolve(self, client_id: int, transaction_id: int) -> None:
        account, original = self._lookup(client_id, transaction_id)
        self._check_open_dispute(transaction_id)

        if account.held - original.amount < 0:
            raise InsufficientHeld("release", client_id, original.amount, account.held)

        account.release_hold(original.amount)
        self._state.transactions.set_dispute_state(transaction_id, DisputeState.RESOLVED)
        logger.debug(f"Resolve tx {transaction_id}: client {client_id} released {original.amount}")

    @exact_arithmetic
    def chargeback(self, client_id: int, transaction_id: int) -> None:
        account, original = self._lookup(client_id, transaction_id)
        self._check_open_dispute(transaction_id)

        if account.held - original.amount < 0:
            raise InsufficientHeld("chargeback", client_id, original.amount, account.held)

        account.remove_held(original.amount)
        self._state.transactions.set_dispute_state(transaction_id, DisputeState.CHARGED_BACK)
        logger.info(f"Chargeback tx {transaction_id}: client {client_id} locked")

    def _check_new_transaction(self, client_id: int, transaction_id: int, amount: Decimal) -> None:
        if amount < 0:
            raise InvalidAmount(transaction_id, amount)

        if self._state.transactions.contains(transaction_id):
            raise DuplicateTx(transaction_id)

        if self._state.accounts.contains(client_id) and self._state.accounts.get(client_id).locked:
            raise AccountLocked(client_id)

    def _lookup(self, client_id: int, transaction_id: int) -> Tuple[ClientAccount, StoredTransaction]:
        """Find the client and the disputed transaction, rejecting anything that cannot be disputed."""
        account = self._state.accounts.get(client_id)
        original = self._state.transactions.get(transaction_id)

        if self._strict_disputes and original.client_id != client_id:
            raise ClientMismatch(transaction_id, original.client_id, client_id)

        if account.locked:
            raise AccountLocked(client_id)

        if original.is_withdrawal:
            raise NotDisputable(transaction_id)

        return account, original

    def _check_open_dispute(self, transaction_id: int) -> None:
        if self._strict_disputes and self._state.transactions.dispute_state(transaction_id) != DisputeState.DISPUTED:
            raise NotDisputed(transaction_id)

    def _account_for_update(self, client_id: int) -> ClientAccount:
        """Existing account, or a new one that is only stored once the operation succeeds."""
        if self._state.accounts.contains(client_id):
            return self._state.accounts.get(client_id)
        return ClientAccount(client_id=client_id)
