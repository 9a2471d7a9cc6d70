from typing import Dict

from errors import DuplicateTx, NoSuchClient, NoSuchTx
from models import ClientAccount, DisputeState, StoredTransaction


class AccountStore:
    """Client accounts by client id. Accounts are never removed."""

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}

    def get_or_create(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def add(self, account: ClientAccount) -> None:
        self._accounts[account.client_id] = account

    def get(self, client_id: int) -> ClientAccount:
        try:
            return self._accounts[client_id]
        except KeyError:
            raise NoSuchClient(client_id) from None

    def contains(self, client_id: int) -> bool:
        return client_id in self._accounts

    def all(self) -> Dict[int, ClientAccount]:
        """Return all accounts ordered by client id (for final output)."""
        return {client_id: self._accounts[client_id] for client_id in sorted(self._accounts)}

    def __len__(self) -> int:
        return len(self._accounts)


class TxStore:
    """
    Append-only store of accepted deposits and withdrawals.
    Dispute state is tracked alongside, the stored transactions never change.
    """

    def __init__(self):
        self._transactions: Dict[int, StoredTransaction] = {}
        self._dispute_states: Dict[int, DisputeState] = {}

    def insert(self, transaction: StoredTransaction) -> None:
        if transaction.transaction_id in self._transactions:
            raise DuplicateTx(transaction.transaction_id)
        self._transactions[transaction.transaction_id] = transaction

    def get(self, transaction_id: int) -> StoredTransaction:
        try:
            return self._transactions[transaction_id]
        except KeyError:
            raise NoSuchTx(transaction_id) from None

    def contains(self, transaction_id: int) -> bool:
        return transaction_id in self._transactions

    def dispute_state(self, transaction_id: int) -> DisputeState:
        return self._dispute_states.get(transaction_id, DisputeState.NONE)

    def set_dispute_state(self, transaction_id: int, state: DisputeState) -> None:
        self.get(transaction_id)
        self._dispute_states[transaction_id] = state

    def __len__(self) -> int:
        return len(self._transactions)


class StateManager:
    """
    Owns the account store and the transaction store for one run.
    Single writer: only the processor driving the run mutates it.
    """

    def __init__(self):
        self.accounts = AccountStore()
        self.transactions = TxStore()

    def get_all_accounts(self) -> Dict[int, ClientAccount]:
        return self.accounts.all()
