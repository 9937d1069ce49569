"""Session logging for the songbook.

Everything goes to a single file under the cache directory so the
Textual display is never written over. The file is rotated when a new
session starts rather than while the player is animating.
"""

import logging
from pathlib import Path

from family_songbook import __version__

LOG_FILE_NAME = "songbook.log"
LOGGER_NAMESPACE = "songbook"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


def _backup_path(log_file: Path, index: int) -> Path:
    return log_file.with_name(f"{log_file.name}.{index}")


def rotate_session_log(log_file: Path, max_bytes: int = MAX_LOG_BYTES, backup_count: int = LOG_BACKUPS) -> bool:
    """Move an oversized log aside before a session starts.

    songbook.log becomes songbook.log.1, .1 becomes .2 and so on; the
    backup numbered backup_count is dropped.

    Args:
        log_file: Path to the session log
        max_bytes: Size at which the log is rotated
        backup_count: Number of backups to keep

    Returns:
        True if the log was rotated
    """
    if not log_file.exists() or log_file.stat().st_size < max_bytes:
        return False

    _backup_path(log_file, backup_count).unlink(missing_ok=True)
    for index in range(backup_count - 1, 0, -1):
        backup = _backup_path(log_file, index)
        if backup.exists():
            backup.rename(_backup_path(log_file, index + 1))

    log_file.rename(_backup_path(log_file, 1))
    return True


def setup_logging(log_dir: Path, level: str = "DEBUG") -> logging.Logger:
    """Start a session log in log_dir.

    Args:
        log_dir: Directory for the session log
        level: Name of the lowest level written to the file

    Returns:
        The songbook namespace logger
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME
    rotated = rotate_session_log(log_file)

    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(level.upper())
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)

    logger.info("=" * 80)
    logger.info(f"Family Songbook {__version__} session started")
    if rotated:
        logger.info(f"Previous log moved to {_backup_path(log_file, 1).name}")
    logger.info("=" * 80)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the songbook namespace, e.g. get_logger(__name__)."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")
