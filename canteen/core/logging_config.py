# canteen/core/logging_config.py
import logging

from canteen.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = None):
    root = logging.getLogger()
    if not any(getattr(h, "_canteen", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._canteen = True
        root.addHandler(handler)
    root.setLevel((level or settings.LOG_LEVEL).upper())
