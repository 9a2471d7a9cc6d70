import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from config import get_settings
from csv_io import write_accounts
from engine import PaymentsEngine
from errors import RecordParseError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toy-ledger",
        description="Apply a CSV transaction log and print the final client balances.",
    )
    parser.add_argument("file", help="input CSV with columns type, client, tx, amount")
    parser.add_argument(
        "--strict-disputes",
        action="store_true",
        default=None,
        help="reject resolves and chargebacks of transactions that are not under dispute",
    )
    parser.add_argument("--log-level", default=None, help="logging level (default: WARNING)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = get_settings(strict_disputes=args.strict_disputes, log_level=args.log_level)
    except ValidationError as e:
        print(f"invalid settings: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    engine = PaymentsEngine(settings)
    try:
        accounts = engine.process_file(args.file)
    except OSError as e:
        print(f"{args.file}: could not open file: {e}", file=sys.stderr)
        return 1
    except RecordParseError as e:
        print(f"{args.file}: error parsing CSV record: {e}", file=sys.stderr)
        return 1

    write_accounts(accounts.values(), sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
