import logging
import sys
from pathlib import Path
from typing import Optional

from .config import LOG_FILE, LOG_LEVEL


class _ThirdPartyNoiseFilter(logging.Filter):
    """Keep taskboard logs, let other libraries through only at WARNING and above."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("taskboard"):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure root logging once at startup.

    Console output goes to stderr; a file handler is added when ``log_file``
    (or the ``LOG_FILE`` setting) is given.
    """
    level_name = (level or LOG_LEVEL).upper()
    log_file = log_file or LOG_FILE

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    # Remove pre-existing handlers so reloads don't duplicate output.
    for handler in list(root.handlers):
        root.removeHandler(handler)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(fmt)
    console.addFilter(_ThirdPartyNoiseFilter())
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(path), encoding="utf-8")
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)

    logging.captureWarnings(True)
