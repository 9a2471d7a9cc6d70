import logging
from typing import Dict, List, Optional, TextIO, Tuple

from config import LedgerSettings
from csv_io import read_records
from errors import LedgerError
from models import ClientAccount, ProcessingStats, Transaction
from processor import TransactionProcessor
from state import StateManager

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Drives one ledger run: decodes the input, applies records in order,
    and reports records the ledger rejects without stopping the run.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        settings = settings or LedgerSettings()
        self._state = StateManager()
        self._processor = TransactionProcessor(self._state, strict_disputes=settings.strict_disputes)
        self._stats = ProcessingStats()
        self._source = "<input>"

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """Process CSV file and return final account states."""
        self._source = filepath
        with open(filepath, "r", encoding="utf-8", newline="") as f:
            return self.process_stream(f)

    def process_stream(self, stream: TextIO) -> Dict[int, ClientAccount]:
        # Phase 1: decode everything; RecordParseError propagates and aborts the run
        logger.info(f"Reading records from {self._source}")
        records = read_records(stream)

        # Phase 2: apply in input order
        logger.info(f"Applying {len(records)} records")
        self.process_records(records)

        logger.info(
            f"Processed: {self._stats.processed}, "
            f"Failed: {self._stats.failed}"
        )
        return self._state.get_all_accounts()

    def process_records(self, records: List[Tuple[int, Transaction]]) -> None:
        for line, transaction in records:
            self.process_transaction(transaction, line)

    def process_transaction(self, transaction: Transaction, line: int = 0) -> bool:
        """Apply one record. Returns False if the ledger rejected it."""
        try:
            self._processor.process_transaction(transaction)
        except LedgerError as e:
            self._stats.record_failure(type(e).__name__)
            logger.warning(f"{self._source}:{line}: error processing {transaction}: {e}")
            return False

        self._stats.record_success()
        return True

    def get_all_accounts(self) -> Dict[int, ClientAccount]:
        return self._state.get_all_accounts()
