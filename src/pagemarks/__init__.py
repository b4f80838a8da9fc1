"""pagemarks - resilient highlights for mutable HTML pages.

Captures a selected span of text as a serializable anchor, re-locates it
after the page changed, and marks it with a removable highlight element.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

__version__ = "0.1.0"

_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
_HANDLER_NAME = "pagemarks"


def _setup_logging(log_dir: Path | None = None, console_level: str = "INFO") -> None:
    """Send DEBUG and up to a per-process rotating file, *console_level* to stderr.

    Handlers installed by an earlier call are replaced, not duplicated.
    """
    log_dir = log_dir or Path("logs")
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"pagemarks.{os.getpid()}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in [h for h in root_logger.handlers if h.name == _HANDLER_NAME]:
        root_logger.removeHandler(handler)
        handler.close()

    # 10MB per file, keep 5 backups
    file_handler = RotatingFileHandler(
        log_file, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level.upper())
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    for handler in (file_handler, console_handler):
        handler.name = _HANDLER_NAME
        root_logger.addHandler(handler)

    logging.getLogger(__name__).debug("Logging to %s", log_file.absolute())
