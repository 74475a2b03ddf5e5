"""
日志配置：级别取自环境变量 PYDIO_LOG_LEVEL（默认 WARNING）。
"""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "PYDIO_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str | None = None) -> None:
    """配置根 logger；显式传入的 level 优先于环境变量。"""
    level_name = (level or os.getenv(LOG_LEVEL_ENV, "WARNING")).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.WARNING), format=LOG_FORMAT)
