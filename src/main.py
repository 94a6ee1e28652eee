import logging
import os
import sys
from decimal import DecimalException

from errors import TransactionError
from pipeline import TransactionPipeline

LOG_LEVEL_ENV = "PAYMENTS_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    level_name = os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.getLevelName(DEFAULT_LOG_LEVEL)

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv=None) -> int:
    argv = sys.argv if argv is None else argv
    if len(argv) != 2:
        print("Usage: settle-accounts <input.csv>", file=sys.stderr)
        return 1

    configure_logging()

    filepath = argv[1]
    pipeline = TransactionPipeline.csv_pipeline(filepath)
    try:
        pipeline.run()
    except (TransactionError, DecimalException) as e:
        logger.error(f"Error running transaction pipeline: {e}")
        return 1
    except OSError as e:
        logger.error(f"Error reading {filepath}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
