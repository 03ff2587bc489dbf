"""Единая настройка логов приложения."""
import logging
from typing import Optional

from bakery.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        format=LOG_FORMAT,
        level=(level or settings.log_level).upper(),
    )
    # SQL-эхо не нужно даже при DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
