import csv
import logging
import sys
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterator, Optional, TextIO

from errors import ParseError
from models import Transaction, TransactionType, TransactionResultSummary

logger = logging.getLogger(__name__)

OUTPUT_FIELDS = ["client", "available", "held", "total", "locked"]


class Source(ABC):
    """Ordered stream of decoded transactions."""

    @abstractmethod
    def read(self) -> Iterator[Transaction]:
        pass


class Sink(ABC):
    """Destination for final account states."""

    @abstractmethod
    def write(self, summary: TransactionResultSummary) -> None:
        pass

    def flush(self) -> None:
        pass


class CSVTransactionReader(Source):
    """
    Reads `type, client, tx, amount` rows from a CSV file.
    Whitespace around headers and values is ignored and the amount column may
    be empty or missing for dispute, resolve and chargeback rows.
    """

    def __init__(self, filepath: str):
        self._filepath = filepath

    def read(self) -> Iterator[Transaction]:
        logger.debug(f"Reading transactions from {self._filepath}")
        with open(self._filepath, "r", newline="") as f:
            reader = csv.DictReader(f)
            try:
                for row in reader:
                    yield self._parse_csv_row(row, reader.line_num)
            except csv.Error as e:
                raise ParseError(f"Error parsing CSV file {self._filepath} at line {reader.line_num}: {e}") from e

    def _parse_csv_row(self, row: Dict[Optional[str], str], line_num: int) -> Transaction:
        """Parse CSV row into Transaction."""
        try:
            normalized = {k.strip(): (v or "").strip() for k, v in row.items() if k is not None}

            transaction_type_str = normalized["type"].lower()
            client_id = int(normalized["client"])
            transaction_id = int(normalized["tx"])

            amount = None
            amount_str = normalized.get("amount", "")
            if amount_str:
                amount = Decimal(amount_str)

            transaction_type = TransactionType(transaction_type_str)
        except (KeyError, ValueError, InvalidOperation) as e:
            raise ParseError(f"Failed to parse row at line {line_num} {row}: {e!r}") from e

        return Transaction(
            transaction_type=transaction_type,
            client_id=client_id,
            transaction_id=transaction_id,
            amount=amount,
        )


class CSVResultWriter(Sink):
    """Writes account summaries as CSV, header first, to a text stream."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream if stream is not None else sys.stdout
        self._writer = csv.writer(self._stream, lineterminator="\n")
        self._header_written = False

    def write(self, summary: TransactionResultSummary) -> None:
        if not self._header_written:
            self._writer.writerow(OUTPUT_FIELDS)
            self._header_written = True

        self._writer.writerow([
            summary.client,
            format_decimal(summary.available),
            format_decimal(summary.held),
            format_decimal(summary.total),
            str(summary.locked).lower(),
        ])

    def flush(self) -> None:
        self._stream.flush()


def format_decimal(value: Decimal) -> str:
    """Format decimal with exactly 4 decimal places."""
    return f"{value:.4f}"
