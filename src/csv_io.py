import csv
from decimal import Decimal, InvalidOperation, localcontext
from typing import Dict, Iterable, Iterator, List, Optional, TextIO, Tuple

from errors import RecordParseError
from models import ClientAccount, Transaction, TransactionType

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1

OUTPUT_HEADER = ["client", "available", "held", "total", "locked"]
FOUR_PLACES = Decimal("0.0001")


def iter_records(stream: TextIO) -> Iterator[Tuple[int, Transaction]]:
    """
    Decode CSV rows into Transactions, yielding (line number, transaction).
    Raises RecordParseError on the first row that cannot be decoded.
    """
    reader = csv.DictReader(stream, skipinitialspace=True)
    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except UnicodeDecodeError as e:
            raise RecordParseError(reader.line_num + 1, f"input is not valid UTF-8 ({e.reason})") from e
        except csv.Error as e:
            raise RecordParseError(reader.line_num, f"malformed CSV: {e}") from e
        yield reader.line_num, parse_row(row, reader.line_num)


def read_records(stream: TextIO) -> List[Tuple[int, Transaction]]:
    """Decode the whole input up front so a bad row aborts before anything is applied."""
    return list(iter_records(stream))


def parse_row(row: Dict[Optional[str], Optional[str]], line: int) -> Transaction:
    """Parse CSV row into Transaction."""
    # Extra unnamed fields land under the None key
    normalized = {k.strip().lower(): (v or "").strip() for k, v in row.items() if k is not None}

    transaction_type_str = _required(normalized, "type", line, row).lower()
    try:
        transaction_type = TransactionType(transaction_type_str)
    except ValueError:
        raise RecordParseError(line, f"unknown transaction type {transaction_type_str!r}", row) from None

    client_id = _parse_id(_required(normalized, "client", line, row), MAX_CLIENT_ID, "client", line, row)
    transaction_id = _parse_id(_required(normalized, "tx", line, row), MAX_TRANSACTION_ID, "tx", line, row)

    amount = None
    if transaction_type.carries_amount:
        amount_str = normalized.get("amount", "")
        if not amount_str:
            raise RecordParseError(line, f"{transaction_type.value} missing amount", row)
        amount = _parse_amount(amount_str, line, row)

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def _required(normalized: Dict[str, str], column: str, line: int, row) -> str:
    value = normalized.get(column, "")
    if not value:
        raise RecordParseError(line, f"missing {column!r}", row)
    return value


def _parse_id(value: str, maximum: int, column: str, line: int, row) -> int:
    # int() would also take signs, underscores and non-ASCII digits
    if not (value.isascii() and value.isdigit()):
        raise RecordParseError(line, f"{column} {value!r} is not an unsigned integer", row)
    parsed = int(value)
    if parsed > maximum:
        raise RecordParseError(line, f"{column} {parsed} out of range 0..{maximum}", row)
    return parsed


def _parse_amount(value: str, line: int, row) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise RecordParseError(line, f"amount {value!r} is not a decimal", row) from None
    if not amount.is_finite():
        raise RecordParseError(line, f"amount {value!r} is not a finite number", row)
    return amount


def format_amount(value: Decimal) -> str:
    """Render with at least 4 decimal places, keeping any extra digits (never rounds)."""
    digits, exponent = value.as_tuple()[1:]
    if exponent > -4:
        with localcontext() as ctx:
            ctx.prec = len(digits) + max(exponent, 0) + 4
            value = value.quantize(FOUR_PLACES)
    return f"{value:f}"


def write_accounts(accounts: Iterable[ClientAccount], stream: TextIO) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_HEADER)
    for account in accounts:
        writer.writerow([
            account.client_id,
            format_amount(account.available),
            format_amount(account.held),
            format_amount(account.total),
            str(account.locked).lower(),
        ])
