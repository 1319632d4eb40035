import logging
import sys
from typing import Optional

DEFAULT_LOG_FORMAT = "%(asctime)s %(name)s - %(levelname)s - %(message)s"


class _BelowLevelFilter(logging.Filter):
    """Pass records strictly below ``threshold``."""

    def __init__(self, threshold: int) -> None:
        super().__init__()
        self.threshold = threshold

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.threshold


def configure_split_stream_logging(
    *,
    level: int = logging.INFO,
    stderr_level: int = logging.WARNING,
    formatter: Optional[logging.Formatter] = None,
    logger_name: Optional[str] = None,
) -> logging.Logger:
    """Send records below ``stderr_level`` to stdout and the rest to stderr.

    Skipped index records and fetch warnings therefore stay visible on stderr
    even when a manifest is being written to stdout. ``logger_name=None``
    configures the root logger; existing handlers are replaced.
    """
    target = logging.getLogger(logger_name)
    for handler in list(target.handlers):
        target.removeHandler(handler)
    target.setLevel(level)

    formatter = formatter or logging.Formatter(DEFAULT_LOG_FORMAT)
    stderr_level = max(stderr_level, logging.DEBUG)

    low = logging.StreamHandler(stream=sys.stdout)
    low.addFilter(_BelowLevelFilter(stderr_level))
    high = logging.StreamHandler(stream=sys.stderr)
    high.setLevel(stderr_level)

    for handler in (low, high):
        handler.setFormatter(formatter)
        target.addHandler(handler)
    return target


def level_from_name(name: Optional[str], default: int = logging.INFO) -> int:
    """Translate a level name such as ``"debug"`` into a logging constant."""
    if not name:
        return default
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else default
