"""
Logging setup for the layout core and the session service.

Every module logs through `logging.getLogger(__name__)`, so configuring the
`multilink` namespace here covers the core, the server and the MCP tools.
"""
import logging
import sys
from typing import Optional

LOGGER_NAME = "multilink"
LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

# Marks handlers installed here, so a reload replaces only ours
_HANDLER_TAG = "_multilink_handler"


def resolve_level(level: int | str) -> int:
    """Turn a level name ("debug", "INFO") or number into a logging level; unknown names give INFO."""
    if isinstance(level, int):
        return level
    value = getattr(logging, level.strip().upper(), None)
    return value if isinstance(value, int) else logging.INFO


def _tagged(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_TAG, True)
    return handler


def setup_logging(level: int | str = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the `multilink` logger: a stdout handler plus an optional file.

    Safe to call repeatedly (uvicorn reloads, tests); handlers added by
    other code are left in place.
    """
    resolved = resolve_level(level)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolved)

    for handler in [h for h in logger.handlers if getattr(h, _HANDLER_TAG, False)]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S")
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(_tagged(handler))

    logger.debug("Logging configured at %s", logging.getLevelName(resolved))
    return logger
