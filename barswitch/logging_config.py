"""
Logging configuration for barswitch.

Quiet by default: only warnings (mostly repaired inconsistencies) reach
stderr. Debug mode and the per-store operations log are opt-in.
"""

import logging
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path


def configure_quiet_mode(quiet: bool = True):
    """
    Configure logging to suppress verbose output.

    Args:
        quiet: If True, only warnings and errors are shown. If False, INFO too.
    """
    level = logging.WARNING if quiet else logging.INFO
    if quiet:
        # Suppress Python warnings (including deprecation warnings)
        warnings.filterwarnings("ignore")
    logging.getLogger("barswitch").setLevel(level)
    # FastMCP and its transport are chatty at INFO
    logging.getLogger("mcp").setLevel(logging.WARNING)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    # Re-enable warnings
    warnings.filterwarnings("default")

    # Configure root logger for debug output
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger("barswitch").setLevel(logging.DEBUG)


def configure_ops_log(store_path):
    """Configure a persistent operations log for a barswitch store.

    Writes to {store_path}/barswitch-ops.log using a rotating file handler
    (1MB max, 3 backups). Always active regardless of --verbose.
    Returns the handler so it can be removed on close().
    """
    log_path = Path(store_path) / "barswitch-ops.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    pkg_logger = logging.getLogger("barswitch")
    pkg_logger.addHandler(handler)
    # Ensure the package logger allows INFO through even in quiet mode
    if pkg_logger.level == logging.NOTSET or pkg_logger.level > logging.INFO:
        pkg_logger.setLevel(logging.INFO)

    return handler
