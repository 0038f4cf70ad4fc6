"""Logging configuration for gren.

The TUI owns the terminal, so records only ever go to a log file.
"""
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Optional

LOG_FILE = "gren.log"
FILE_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every request at DEBUG
NOISY_LOGGERS = ("git", "github", "urllib3")

_log_path: Optional[Path] = None


def log_dir() -> Path:
    """Platform directory for gren's log file."""
    fallback = Path(tempfile.gettempdir()) / "gren" / "logs"
    try:
        home = Path.home()
    except RuntimeError:
        return fallback

    if sys.platform == "darwin":
        return home / "Library" / "Logs" / "gren"
    if sys.platform.startswith("linux"):
        state_home = os.environ.get("XDG_STATE_HOME") or str(home / ".local" / "state")
        return Path(state_home) / "gren" / "logs"
    return fallback


def setup_logging(verbose: bool = False, debug: bool = False, directory: Optional[Path] = None) -> Optional[Path]:
    """
    Configure logging for the application.

    Args:
        verbose: If True, log INFO level messages
        debug: If True, log DEBUG level messages, including git and GitHub internals
        directory: Where to put the log file (default: ``log_dir()``)

    Returns:
        Path of the log file, or None if it could not be opened
    """
    global _log_path

    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    path = Path(directory or log_dir()) / LOG_FILE
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="w")  # Overwrite each run
    except OSError:
        # Logging is optional; gren still runs without it
        root_logger.addHandler(logging.NullHandler())
        _log_path = None
        return None

    file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(file_handler)
    _log_path = path
    get_logger(__name__).info("gren started")
    return path


def get_log_path() -> Optional[Path]:
    """The file configured by the last ``setup_logging`` call."""
    return _log_path


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the specified module.

    ``gren.services.git.worktrees`` logs as ``services.git.worktrees``, which
    keeps it clear of GitPython's own ``git`` loggers.
    """
    if name.startswith("gren."):
        name = name[len("gren."):]
    return logging.getLogger(name)
