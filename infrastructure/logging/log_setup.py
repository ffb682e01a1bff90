import sys

from loguru import logger


def configure_logging(level: str = "INFO", sink=None) -> None:
    logger.remove()
    logger.add(sink or sys.stderr, level=level)
