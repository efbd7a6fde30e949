import os
import sys

from loguru import logger

DEBUG_MODE = os.getenv("DEBUG", "0") == "1"

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{function} - {message}"


def _stderr_sink(message: str) -> None:
    # resolve sys.stderr per message; click's test runner swaps it out
    sys.stderr.write(message)


def configure_logging(debug: bool = DEBUG_MODE) -> None:
    """Replace loguru's default sink with a single stderr sink."""
    logger.remove()
    logger.add(_stderr_sink, level="DEBUG" if debug else "INFO", format=LOG_FORMAT)
