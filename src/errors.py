from decimal import Decimal
from typing import Dict, Optional

LEDGER_PRECISION = 28


class LedgerError(Exception):
    """
    A record that cannot be applied to the ledger.
    Recoverable: the record has no effect and processing continues.
    """


class InvalidAmount(LedgerError):
    def __init__(self, transaction_id: int, amount: Decimal):
        super().__init__(f"tx {transaction_id}: negative amount {amount}")
        self.transaction_id = transaction_id
        self.amount = amount


class DuplicateTx(LedgerError):
    def __init__(self, transaction_id: int):
        super().__init__(f"duplicate transaction id {transaction_id}")
        self.transaction_id = transaction_id


class InsufficientFunds(LedgerError):
    def __init__(self, client_id: int, amount: Decimal, available: Decimal):
        super().__init__(f"client {client_id}: cannot take {amount}, only {available} available")
        self.client_id = client_id
        self.amount = amount
        self.available = available


class InsufficientHeld(LedgerError):
    def __init__(self, operation: str, client_id: int, amount: Decimal, held: Decimal):
        super().__init__(f"client {client_id}: cannot {operation} {amount}, only {held} held")
        self.operation = operation
        self.client_id = client_id
        self.amount = amount
        self.held = held


class NoSuchClient(LedgerError):
    def __init__(self, client_id: int):
        super().__init__(f"no such client {client_id}")
        self.client_id = client_id


class NoSuchTx(LedgerError):
    def __init__(self, transaction_id: int):
        super().__init__(f"no such tx {transaction_id}")
        self.transaction_id = transaction_id


class NotDisputable(LedgerError):
    def __init__(self, transaction_id: int):
        super().__init__(f"tx {transaction_id} is a withdrawal and cannot be disputed")
        self.transaction_id = transaction_id


class AccountLocked(LedgerError):
    def __init__(self, client_id: int):
        super().__init__(f"client {client_id} is locked")
        self.client_id = client_id


class ClientMismatch(LedgerError):
    def __init__(self, transaction_id: int, expected: int, got: int):
        super().__init__(f"tx {transaction_id} belongs to client {expected}, not {got}")
        self.transaction_id = transaction_id
        self.expected = expected
        self.got = got


class AlreadyDisputed(LedgerError):
    def __init__(self, transaction_id: int):
        super().__init__(f"tx {transaction_id} is already disputed")
        self.transaction_id = transaction_id


class NotDisputed(LedgerError):
    def __init__(self, transaction_id: int):
        super().__init__(f"tx {transaction_id} is not under dispute")
        self.transaction_id = transaction_id


class AmountOverflow(LedgerError):
    def __init__(self, client_id: int, transaction_id: int):
        super().__init__(
            f"client {client_id}, tx {transaction_id}: result does not fit in {LEDGER_PRECISION} significant digits"
        )
        self.client_id = client_id
        self.transaction_id = transaction_id


class RecordParseError(ValueError):
    """Input row that cannot be decoded into a Transaction. Fatal for the whole run."""

    def __init__(self, line: int, reason: str, row: Optional[Dict[str, str]] = None):
        message = f"line {line}: {reason}"
        if row is not None:
            message += f" in row {row}"
        super().__init__(message)
        self.line = line
        self.reason = reason
        self.row = row
