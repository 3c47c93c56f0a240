# skillconnect/core/logging.py
import logging
import os
from logging.handlers import RotatingFileHandler

from skillconnect.core.config import settings

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"

_configured = False


def setup_logging() -> None:
    global _configured
    if _configured:
        return

    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL.upper())
    formatter = logging.Formatter(LOG_FORMAT)

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    root.addHandler(stream)

    if settings.LOG_DIR:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        handler = RotatingFileHandler(
            os.path.join(settings.LOG_DIR, "skillconnect.log"),
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)

    _configured = True
