from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILENAME = "app_log.txt"

_HANDLER_MARKER = "_orderdesk_handler"


def configure_logging(level: str = "DEBUG", log_dir: Path | None = None) -> None:
    """Send application logs to the console and, optionally, a daily file.

    Calling this again replaces the handlers it installed earlier, so repeated
    app factories in one process do not duplicate output.
    """

    root = logging.getLogger("orderdesk")
    root.setLevel(getattr(logging, level.upper(), logging.DEBUG))

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            TimedRotatingFileHandler(log_dir / LOG_FILENAME, when="midnight", encoding="utf-8")
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_MARKER, True)
        root.addHandler(handler)

    root.info("Logging system initialized.")
