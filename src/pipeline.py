import logging
from typing import Optional, TextIO

from models import TransactionType
from payments_engine import PaymentEngine, InMemoryPaymentEngine
from transaction_io import Source, Sink, CSVTransactionReader, CSVResultWriter

logger = logging.getLogger(__name__)


class TransactionPipeline:
    """
    Feeds every transaction from a source into an engine, then writes the
    engine's snapshot to a sink.
    The first error stops the run: nothing after the failing record is
    processed and nothing is written.
    """

    def __init__(self, source: Source, engine: PaymentEngine, sink: Sink):
        self._source = source
        self._engine = engine
        self._sink = sink

    @classmethod
    def csv_pipeline(cls, filepath: str, output: Optional[TextIO] = None) -> "TransactionPipeline":
        """CSV file in, CSV on `output` (stdout by default) out."""
        return cls(
            source=CSVTransactionReader(filepath),
            engine=InMemoryPaymentEngine(),
            sink=CSVResultWriter(output),
        )

    def run(self) -> None:
        logger.info("Starting processing phase")
        for transaction in self._source.read():
            self._engine.process(transaction)
        logger.info("Processing phase complete")

        summaries = self._engine.snapshot()
        for summary in summaries:
            self._sink.write(summary)
        self._sink.flush()

        stats = self._engine.stats
        applied = ", ".join(f"{t.value}: {stats.applied(t)}" for t in TransactionType)
        logger.info(f"Processed: {stats.processed} ({applied}), accounts: {len(summaries)}")
