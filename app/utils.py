"""
Shared helpers: logging setup.
"""
import logging

from app.core import config


LOG_FORMAT = "%(levelname)s : %(asctime)s | %(name)s | %(message)s"

_root = logging.getLogger("app")
if not _root.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    _root.addHandler(_handler)
    _root.setLevel(config.LOG_LEVEL)


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger that writes through the shared "app" handler.

    Modules outside the app package (scripts, server.py) get a child of
    "app" so their records use the same format and level.
    """
    if name != "app" and not name.startswith("app."):
        name = f"app.{name}"
    return logging.getLogger(name)
