import logging
import os

BACKEND_ENV = "STRIDEGRAD_BACKEND"
LOG_LEVEL_ENV = "STRIDEGRAD_LOG_LEVEL"

_ROOT_LOGGER = "stridegrad"


def default_backend_name():
    # Backend picked at import time; "numpy" unless overridden.
    return os.getenv(BACKEND_ENV, "numpy").strip().lower()


def log_level():
    level_name = os.getenv(LOG_LEVEL_ENV, "WARNING").upper()
    return getattr(logging, level_name, logging.WARNING)


def _make_handler():
    # Silent unless STRIDEGRAD_LOG_LEVEL asks for console output; the
    # application owns handler configuration otherwise.
    if os.getenv(LOG_LEVEL_ENV) is None:
        return logging.NullHandler()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(asctime)s][%(levelname)s][%(name)s] %(message)s"))
    return handler


def get_logger(name=None):
    """Return the package logger, or a child of it for ``name``."""
    root = logging.getLogger(_ROOT_LOGGER)
    if not root.handlers:
        root.addHandler(_make_handler())
        if os.getenv(LOG_LEVEL_ENV) is not None:
            root.setLevel(log_level())
    if not name or name == _ROOT_LOGGER:
        return root
    if name.startswith(_ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return root.getChild(name)
