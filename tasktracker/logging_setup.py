import logging
import sys
from pathlib import Path
from typing import Optional, Union

from .config import LOG_FILE, LOG_LEVEL

FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATEFMT = "%Y-%m-%d %H:%M:%S"

_configured = False


class _ConsoleNoiseFilter(logging.Filter):
    """Keep tasktracker and server logs, drop chatty third-party records below WARNING."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith("tasktracker") or name.startswith("uvicorn"):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(
    *,
    level: Union[int, str] = LOG_LEVEL,
    log_file: Optional[Union[str, Path]] = LOG_FILE,
) -> None:
    """Configure the root logger once: console handler plus an optional file handler.

    Repeated calls are no-ops so the application can call this from its
    startup hook without stacking handlers.
    """
    global _configured
    if _configured:
        return

    root = logging.getLogger()
    root.setLevel(level)

    fmt = logging.Formatter(fmt=FORMAT, datefmt=DATEFMT)

    ch = logging.StreamHandler(sys.stderr)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path), encoding="utf-8")
        fh.setFormatter(fmt)
        root.addHandler(fh)

    logging.captureWarnings(True)
    _configured = True
