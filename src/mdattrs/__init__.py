"""mdattrs - attribute annotations for rendered Markdown.

Authors write ``{.class #id key=value flag}`` after the text they decorate.
``mdattrs.tree`` applies these annotations to a rendered element tree;
``mdattrs.live`` mirrors them as decorations over a buffer being edited.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mdattrs.config import LoggingConfig

__version__ = "0.1.0"

_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure console logging and, with ``log_dir`` set, a rotating file."""
    if config is None:
        from mdattrs.config import get_settings  # noqa: PLC0415

        config = get_settings().logging

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Console handler - level from config
    console_handler = logging.StreamHandler()
    console_handler.setLevel(config.level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    root_logger.addHandler(console_handler)

    if config.log_dir is None:
        return

    config.log_dir.mkdir(parents=True, exist_ok=True)
    log_file = config.log_dir / f"mdattrs.{os.getpid()}.log"

    # File handler - detailed logging with rotation
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )
    root_logger.addHandler(file_handler)

    logging.info("Logging configured. Log file: %s", log_file.absolute())
