"""
Log setup for the signing pipeline.
"""

import logging
import os
from logging.handlers import TimedRotatingFileHandler
from typing import Optional

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_log_rotation(log_dir: str = ".run", filename: str = "hlsign.log",
                       level: Optional[int] = None) -> TimedRotatingFileHandler:
    """Attach a daily rotating file handler (keep 7 days) to the root logger."""
    os.makedirs(log_dir, exist_ok=True)

    handler = TimedRotatingFileHandler(
        filename=os.path.join(log_dir, filename),
        when="midnight",
        interval=1,
        backupCount=7,
        encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    if level is not None:
        root_logger.setLevel(level)

    logger.info("Log rotation configured (daily, keep 7 days)")
    return handler
