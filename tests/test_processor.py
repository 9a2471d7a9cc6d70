import sys
import os
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from errors import (
    AccountLocked,
    AlreadyDisputed,
    AmountOverflow,
    ClientMismatch,
    DuplicateTx,
    InsufficientFunds,
    InsufficientHeld,
    InvalidAmount,
    NoSuchClient,
    NoSuchTx,
    NotDisputable,
    NotDisputed,
)
from models import Transaction, TransactionType
from state import StateManager
from processor import TransactionProcessor


def assert_funds(state, client_id, available, held, locked=False):
    account = state.accounts.get(client_id)
    assert account.available == Decimal(available)
    assert account.held == Decimal(held)
    assert account.locked is locked


class TestTransactionProcessor:
    def setup_method(self):
        self.state = StateManager()
        self.processor = TransactionProcessor(self.state)

    def test_deposit(self):
        self.processor.deposit(1, 1, Decimal("100"))

        assert_funds(self.state, 1, "100", "0")
        assert self.state.accounts.get(1).total == Decimal("100")
        assert self.state.transactions.get(1).amount == Decimal("100")

    def test_deposit_withdraw(self):
        self.processor.deposit(1, 1, Decimal("100"))
        self.processor.deposit(1, 2, Decimal("20"))
        self.processor.deposit(1, 3, Decimal("3"))
        self.processor.withdrawal(1, 4, Decimal("100"))
        self.processor.withdrawal(1, 5, Decimal("20"))
        assert_funds(self.state, 1, "3", "0")

        with pytest.raises(InsufficientFunds):
            self.processor.withdrawal(1, 6, Decimal("444"))
        assert_funds(self.state, 1, "3", "0")
        assert not self.state.transactions.contains(6)

    def test_withdrawal_stored_negative(self):
        self.processor.deposit(1, 1, Decimal("100"))
        self.processor.withdrawal(1, 2, Decimal("60"))

        assert_funds(self.state, 1, "40", "0")
        assert self.state.transactions.get(2).amount == Decimal("-60")

    def test_withdrawal_unknown_client_creates_nothing(self):
        with pytest.raises(InsufficientFunds):
            self.processor.withdrawal(5, 1, Decimal("1"))
        assert not self.state.accounts.contains(5)
        assert not self.state.transactions.contains(1)

    def test_negative_amounts_rejected(self):
        with pytest.raises(InvalidAmount):
            self.processor.deposit(1, 1, Decimal("-1"))
        with pytest.raises(InvalidAmount):
            self.processor.withdrawal(1, 2, Decimal("-1"))
        assert not self.state.accounts.contains(1)
        assert len(self.state.transactions) == 0

    def test_zero_deposit_accepted(self):
        self.processor.deposit(1, 1, Decimal("0"))
        assert_funds(self.state, 1, "0", "0")
        assert self.state.transactions.contains(1)

    def test_duplicate_tx_ids(self):
        self.processor.deposit(1, 1, Decimal("100"))

        with pytest.raises(DuplicateTx):
            self.processor.deposit(2, 1, Decimal("20"))
        with pytest.raises(DuplicateTx):
            self.processor.withdrawal(1, 1, Decimal("20"))

        assert_funds(self.state, 1, "100", "0")
        assert not self.state.accounts.contains(2)

    def test_multiple_clients(self):
        self.processor.deposit(3, 30, Decimal("300"))
        self.processor.deposit(2, 20, Decimal("200"))
        self.processor.deposit(10, 1, Decimal("100"))
        self.processor.withdrawal(2, 21, Decimal("20"))
        self.processor.withdrawal(10, 2, Decimal("10"))
        self.processor.withdrawal(3, 3, Decimal("30"))

        assert_funds(self.state, 10, "90", "0")
        assert_funds(self.state, 2, "180", "0")
        assert_funds(self.state, 3, "270", "0")

    def test_dispute_resolve_chargeback(self):
        self.processor.deposit(1, 1, Decimal("100"))
        self.processor.deposit(1, 2, Decimal("50"))

        self.processor.dispute(1, 1)
        assert_funds(self.state, 1, "50", "100")

        self.processor.resolve(1, 1)
        assert_funds(self.state, 1, "150", "0")

        self.processor.dispute(1, 1)
        assert_funds(self.state, 1, "50", "100")

        self.processor.chargeback(1, 1)
        assert_funds(self.state, 1, "50", "0", locked=True)

    def test_cannot_dispute_withdrawals(self):
        self.processor.deposit(1, 1, Decimal("100"))
        self.processor.withdrawal(1, 2, Decimal("60"))

        with pytest.raises(NotDisputable):
            self.processor.dispute(1, 2)
        with pytest.raises(NotDisputable):
            self.processor.resolve(1, 2)
        with pytest.raises(NotDisputable):
            self.processor.chargeback(1, 2)

        assert_funds(self.state, 1, "40", "0")

    def test_dispute_unknown_client(self):
        with pytest.raises(NoSuchClient):
            self.processor.dispute(99, 1)
        assert not self.state.accounts.contains(99)

    def test_dispute_tx_not_found(self):
        self.processor.deposit(1, 1, Decimal("100"))
        with pytest.raises(NoSuchTx):
            self.processor.dispute(1, 99)
        assert_funds(self.state, 1, "100", "0")

    def test_dispute_would_overdraw(self):
        self.processor.deposit(1, 1, Decimal("100"))
        self.processor.withdrawal(1, 2, Decimal("30"))

        with pytest.raises(InsufficientFunds):
            self.processor.dispute(1, 1)
        assert_funds(self.state, 1, "70", "0")

    def test_resolve_not_disputed(self):
        self.processor.deposit(1, 1, Decimal("100"))

        with pytest.raises(InsufficientHeld):
            self.processor.resolve(1, 1)
        assert_funds(self.state, 1, "100", "0")

    def test_chargeback_not_disputed(self):
        self.processor.deposit(1, 1, Decimal("100"))

        with pytest.raises(InsufficientHeld):
            self.processor.chargeback(1, 1)
        assert_funds(self.state, 1, "100", "0")

    def test_held_shortfall_names_operation(self):
        self.processor.deposit(1, 1, Decimal("100"))

        with pytest.raises(InsufficientHeld, match="cannot release 100") as excinfo:
            self.processor.resolve(1, 1)
        assert excinfo.value.operation == "release"

        with pytest.raises(InsufficientHeld, match="cannot chargeback 100"):
            self.processor.chargeback(1, 1)

    def test_resolve_without_dispute_passes_bound_check(self):
        # Held funds from tx 2 cover the resolve of tx 1
        self.processor.deposit(1, 1, Decimal("100"))
        self.processor.deposit(1, 2, Decimal("100"))
        self.processor.dispute(1, 2)

        self.processor.resolve(1, 1)
        assert_funds(self.state, 1, "200", "0")

    def test_dispute_other_clients_tx(self):
        self.processor.deposit(1, 1, Decimal("100"))
        self.processor.deposit(2, 2, Decimal("150"))

        self.processor.dispute(2, 1)
        assert_funds(self.state, 1, "100", "0")
        assert_funds(self.state, 2, "50", "100")

    def test_locked_account_rejects_operations(self):
        self.processor.deposit(1, 1, Decimal("100"))
        self.processor.deposit(1, 2, Decimal("50"))
        self.processor.dispute(1, 1)
        self.processor.chargeback(1, 1)

        with pytest.raises(AccountLocked):
            self.processor.deposit(1, 3, Decimal("50"))
        with pytest.raises(AccountLocked):
            self.processor.withdrawal(1, 4, Decimal("10"))
        with pytest.raises(AccountLocked):
            self.processor.dispute(1, 2)

        assert_funds(self.state, 1, "50", "0", locked=True)
        assert not self.state.transactions.contains(3)

    def test_amount_beyond_precision_rejected(self):
        with pytest.raises(AmountOverflow):
            self.processor.deposit(1, 1, Decimal("1234567890123456789012345.6789"))

        assert not self.state.accounts.contains(1)
        assert not self.state.transactions.contains(1)

    def test_balance_beyond_precision_rejected(self):
        self.processor.deposit(1, 1, Decimal("9999999999999999999999999999"))

        with pytest.raises(AmountOverflow):
            self.processor.deposit(1, 2, Decimal("2"))

        assert_funds(self.state, 1, "9999999999999999999999999999", "0")
        assert not self.state.transactions.contains(2)

    def test_dispute_beyond_precision_leaves_balances(self):
        self.processor.deposit(1, 1, Decimal("0.0001"))
        self.processor.dispute(1, 1)
        self.processor.deposit(1, 2, Decimal("1E+27"))

        # held would become 1E+27 + 0.0001, which needs 32 digits
        with pytest.raises(AmountOverflow):
            self.processor.dispute(1, 2)

        assert_funds(self.state, 1, "1E+27", "0.0001")

    def test_process_transaction_dispatches(self):
        records = [
            Transaction(TransactionType.DEPOSIT, client_id=1, transaction_id=1, amount=Decimal("100")),
            Transaction(TransactionType.WITHDRAWAL, client_id=1, transaction_id=2, amount=Decimal("10")),
            Transaction(TransactionType.DISPUTE, client_id=1, transaction_id=1),
        ]
        for record in records[:2]:
            self.processor.process_transaction(record)
        assert_funds(self.state, 1, "90", "0")

        with pytest.raises(InsufficientFunds):
            self.processor.process_transaction(records[2])


class TestStrictDisputes:
    def setup_method(self):
        self.state = StateManager()
        self.processor = TransactionProcessor(self.state, strict_disputes=True)
        self.processor.deposit(1, 1, Decimal("100"))
        self.processor.deposit(1, 2, Decimal("100"))

    def test_full_cycle(self):
        self.processor.dispute(1, 1)
        self.processor.resolve(1, 1)
        self.processor.dispute(1, 1)
        self.processor.chargeback(1, 1)
        assert_funds(self.state, 1, "100", "0", locked=True)

    def test_double_dispute(self):
        self.processor.dispute(1, 1)
        with pytest.raises(AlreadyDisputed):
            self.processor.dispute(1, 1)
        assert_funds(self.state, 1, "100", "100")

    def test_resolve_requires_open_dispute(self):
        self.processor.dispute(1, 2)
        with pytest.raises(NotDisputed):
            self.processor.resolve(1, 1)
        assert_funds(self.state, 1, "100", "100")

    def test_double_resolve(self):
        self.processor.dispute(1, 1)
        self.processor.dispute(1, 2)
        self.processor.resolve(1, 1)
        with pytest.raises(NotDisputed):
            self.processor.resolve(1, 1)
        assert_funds(self.state, 1, "100", "100")

    def test_chargeback_after_resolve(self):
        self.processor.dispute(1, 1)
        self.processor.resolve(1, 1)
        with pytest.raises(NotDisputed):
            self.processor.chargeback(1, 1)
        assert_funds(self.state, 1, "200", "0")

    def test_client_mismatch(self):
        self.processor.deposit(2, 3, Decimal("500"))
        with pytest.raises(ClientMismatch):
            self.processor.dispute(2, 1)
        assert_funds(self.state, 2, "500", "0")
