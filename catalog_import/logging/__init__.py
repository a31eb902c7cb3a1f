"""Console logging setup and the JSON Lines import error log."""

from .error_log import ErrorLogBuffer
from .init import get_logger, log_summary, reset_logging, setup_logging

__all__ = [
    "ErrorLogBuffer",
    "get_logger",
    "log_summary",
    "reset_logging",
    "setup_logging",
]
