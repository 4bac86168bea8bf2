import logging
from logging.handlers import RotatingFileHandler
import os

from app.core.config import settings


def setup_logging() -> logging.Logger:
    logger = logging.getLogger("app")
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return logger

    os.makedirs(settings.LOG_DIR, exist_ok=True)

    console_handler = logging.StreamHandler()
    if settings.DEBUG:
        console_handler.setLevel(logging.DEBUG)
    else:
        console_handler.setLevel(settings.LOG_LEVEL.upper())
    console_handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))

    file_handler = RotatingFileHandler(
        os.path.join(settings.LOG_DIR, "app.log"), maxBytes=10_000_000, backupCount=5
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(
        logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )

    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

    return logger
