"""
Logging setup - one stream handler on the root logger.
"""

import logging
import threading

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_configured = False
_handler: logging.Handler | None = None
_lock = threading.Lock()


def configure_logging(level: str = "INFO") -> None:
    """Install the stream handler once; later calls only change the level."""
    global _configured, _handler
    root = logging.getLogger()
    with _lock:
        if not _configured:
            _handler = logging.StreamHandler()
            _handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(_handler)
            _configured = True
    root.setLevel(level)


def reset_logging() -> None:
    """Remove the installed handler. Tests only."""
    global _configured, _handler
    with _lock:
        if _handler is not None:
            logging.getLogger().removeHandler(_handler)
        _handler = None
        _configured = False
