"""Loguru logger configuration with rotation and structured logging."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from config.settings import settings


# Define log directory
LOG_DIR = Path("logs")

_configured = False


def setup_logging(
    log_level: Optional[str] = None,
    enable_console: bool = True,
    enable_file: bool = True,
) -> None:
    """
    Replace loguru's default sink with the application sinks.

    Safe to call more than once; only the first call installs sinks.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Defaults to settings.LOG_LEVEL
        enable_console: Enable console output
        enable_file: Enable rotating file output under ``logs/``
    """
    global _configured
    if _configured:
        return

    level = log_level or settings.LOG_LEVEL

    logger.remove()
    # Records logged without a bound module still render the module column
    logger.configure(extra={"module": "app"})

    # Console handler with color formatting
    if enable_console:
        logger.add(
            sys.stdout,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{extra[module]: <10}</cyan> | "
                "<level>{message}</level>"
            ),
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=settings.DEBUG,
        )

    if enable_file:
        LOG_DIR.mkdir(exist_ok=True)

        # Main log with rotation
        logger.add(
            LOG_DIR / "digit_predictor.log",
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{extra[module]: <10} | "
                "{message} | "
                "{extra}"
            ),
            level=level,
            rotation="50 MB",
            retention="14 days",
            compression="zip",
            backtrace=True,
            diagnose=False,
        )

        # Error-only log file
        logger.add(
            LOG_DIR / "errors.log",
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{extra[module]: <10} | "
                "{message} | "
                "{exception}"
            ),
            level="ERROR",
            rotation="20 MB",
            retention="60 days",
            compression="zip",
            backtrace=True,
            diagnose=False,
        )

    _configured = True


def get_logger(module_name: Optional[str] = None):
    """
    Get a logger bound to a module name.

    Args:
        module_name: Name shown in the module column of every sink

    Returns:
        Bound loguru logger

    Examples:
        >>> log = get_logger("stream")
        >>> log.info("Subscribed", symbol="R_75")
    """
    if module_name:
        return logger.bind(module=module_name)
    return logger


# Pre-configured loggers for different modules
def get_stream_logger():
    """Get logger for the tick feed client."""
    return get_logger("stream")


def get_predictor_logger():
    """Get logger for the prediction engine."""
    return get_logger("predictor")


def get_tracker_logger():
    """Get logger for settlement and the stats ledger."""
    return get_logger("tracker")


def get_api_logger():
    """Get logger for API modules."""
    return get_logger("api")
