# src/prepmate/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "prepmate.log"

# HTTP stack under the LLM client; one INFO line per request otherwise.
_CHATTY_LIBRARIES = ("httpx", "httpcore", "openai")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the task prompt readable.

    Every mutation writes the whole task list, so `prepmate.storage` and
    `prepmate.tasks.task_store` debug lines would scroll past each command;
    they only reach the console at WARNING and above (a corrupt snapshot,
    a failed write). Other prepmate loggers pass through. Everything else
    (the OpenAI SDK, httpx, captured `warnings`) needs ERROR.
    """

    quiet_prefixes = ("prepmate.storage.", "prepmate.tasks.task_store")

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith("prepmate."):
            return record.levelno >= logging.ERROR
        if name.startswith(self.quiet_prefixes):
            return record.levelno >= logging.WARNING
        return True


def setup_logging(
    *,
    log_dir: str | Path = ".local/prepmate",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Route logs to stderr (filtered) and to `<log_dir>/prepmate.log` (everything).

    Replaces existing root handlers, so calling it twice does not duplicate
    output. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    to_file = logging.FileHandler(str(log_file), encoding="utf-8")
    to_file.setLevel(file_level)
    to_file.setFormatter(fmt)
    root.addHandler(to_file)

    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
    return log_file
