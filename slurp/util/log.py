"""Logging setup and result-line rendering.

Every terminal probe result is logged through log_result(), which attaches
the classification, link and origin to the record. The console formatter
paints those fields (label by outcome, origin in yellow) when stdout is a
terminal; the file handler always gets plain text.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional

import colorama
from colorama import Fore, Style

from slurp.util.types import Classification

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LABEL_COLOURS = {
    Classification.PUBLIC: Fore.GREEN,
    Classification.FORBIDDEN: Fore.RED,
    Classification.NOT_FOUND: Fore.RED,
    Classification.RATE_LIMITED: Fore.RED,
    Classification.GAVE_UP: Fore.MAGENTA,
    Classification.UNKNOWN: Fore.BLUE,
}

_ANSI = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")


def render_result(classification: Classification, link: str,
                  origin: Optional[str] = None, note: Optional[str] = None,
                  colour: bool = False) -> str:
    """Build one result line, e.g. 'PUBLIC http://x (http://acme.com)'."""
    label = classification.value
    if colour:
        label = f"{Style.BRIGHT}{LABEL_COLOURS[classification]}{label}{Style.RESET_ALL}"
    line = f"{label} {link}"
    if origin:
        shown = f"{Fore.YELLOW}{origin}{Style.RESET_ALL}" if colour else origin
        line += f" ({shown})"
    if note:
        line += f" {note}"
    return line


def log_result(logger: logging.Logger, level: int, classification: Classification,
               link: str, origin: Optional[str] = None, note: Optional[str] = None):
    """Log a result line; the plain text is the record's message."""
    logger.log(
        level,
        render_result(classification, link, origin, note),
        extra={'result': (classification, link, origin, note)},
    )


class ResultFormatter(logging.Formatter):
    """Colours result records for a terminal, or strips colour for files."""

    def __init__(self, colour: bool = False):
        super().__init__(LOG_FORMAT, datefmt=DATE_FORMAT)
        self.colour = colour

    def format(self, record: logging.LogRecord) -> str:
        result = getattr(record, 'result', None)
        if self.colour and result is not None:
            record = logging.makeLogRecord(record.__dict__)
            record.msg = render_result(*result, colour=True)
            record.args = None
        formatted = super().format(record)
        if not self.colour:
            formatted = _ANSI.sub("", formatted)
        return formatted


def setup_logging(log_file: Optional[str] = None, level: int = logging.INFO,
                  colour: Optional[bool] = None):
    """Configure the root logger for one run.

    Console output goes to stdout; colour defaults to on only when stdout is
    a terminal. An optional log file receives the same records uncoloured.
    """
    if colour is None:
        colour = sys.stdout.isatty()
    if colour:
        colorama.just_fix_windows_console()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ResultFormatter(colour=colour))
    root_logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(ResultFormatter(colour=False))
        root_logger.addHandler(file_handler)

    # Library chatter (connection pool, suffix list cache lock)
    for name in ('aiohttp', 'asyncio', 'filelock', 'tldextract'):
        logging.getLogger(name).setLevel(logging.WARNING)
