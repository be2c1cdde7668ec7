"""CLI logging setup: colored terminal output mirrored into a per-run log file."""

import logging
import sys
from datetime import datetime
from pathlib import Path

from hostdeploy.redact import SecretRedactingFilter

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

_COLORS = {
    "DEBUG": "\033[0;34m",
    "INFO": "\033[0;34m",
    "SUCCESS": "\033[0;32m",
    "WARNING": "\033[1;33m",
    "ERROR": "\033[0;31m",
    "CRITICAL": "\033[0;31m",
}
_RESET = "\033[0m"


class _ConsoleFormatter(logging.Formatter):
    """Terminal formatter: ``[LEVEL] message``, level colored on a TTY."""

    def __init__(self, color: bool):
        super().__init__("[%(levelname)s] %(message)s")
        self.color = color

    def format(self, record):
        text = super().format(record)
        if not self.color:
            return text
        prefix = f"[{record.levelname}]"
        color = _COLORS.get(record.levelname, "")
        return text.replace(prefix, f"{color}{prefix}{_RESET}", 1)


def log_file_name(started: datetime | None = None) -> str:
    """Run log file name keyed by the run start time."""
    started = started or datetime.now()
    return f"deploy_{started.strftime('%Y%m%d_%H%M%S')}.log"


def setup_cli_logging(log_dir: str | Path = ".", started: datetime | None = None) -> Path:
    """Configure the root logger for one run.

    Everything printed to the terminal is also appended to
    ``{log_dir}/deploy_<timestamp>.log`` as ``<timestamp> [<LEVEL>] <message>``.

    Returns:
        Path to the log file.
    """
    log_dir = Path(log_dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / log_file_name(started)

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    redactor = SecretRedactingFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(_ConsoleFormatter(color=sys.stdout.isatty()))
    console_handler.addFilter(redactor)
    root.addHandler(console_handler)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    file_handler.addFilter(redactor)
    root.addHandler(file_handler)

    return log_file


def log_success(logger: logging.Logger, message: str) -> None:
    logger.log(SUCCESS, message)
