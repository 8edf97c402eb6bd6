"""
xbridge Logging
===============

Process-wide logging for the verification engine. Records flow through the
standard `logging` module; the console side is rendered by `rich` with
highlighting tuned for what this engine prints most: 32-byte transfer
hashes, bytes4 chain identifiers and endpoint URLs.

Settings come from `.env` (see `constants.LOGGER_DEFAULTS`).

Usage:
    >>> from xbridge.logger import get_logger
    >>> log = get_logger(__name__)
    >>> log.info("resolving %s", "0x" + "ab" * 32)
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_DATE_FORMAT,
    LOG_FILE,
    LOG_FORMAT,
    LOG_LEVEL,
    LOG_MAX_FILE_SIZE,
)

# Third-party loggers that log every request at INFO
NOISY_LIBRARIES = ("httpx", "httpcore", "hpack")

BRIDGE_THEME = Theme({
    "xbridge.hash":      "cyan",
    "xbridge.chain_id":  "bold magenta",
    "xbridge.url":       "underline cyan",
    "xbridge.ledger":    "bold blue",
    "xbridge.level_debug":    "dim",
    "xbridge.level_info":     "bold green",
    "xbridge.level_warning":  "bold yellow",
    "xbridge.level_error":    "bold red",
    "xbridge.level_critical": "bold white on red",
    "xbridge.stamp":     "bright_black",
})


def _level_number(level) -> int:
    if isinstance(level, int):
        return level
    number = logging.getLevelName(str(level).strip().upper())
    return number if isinstance(number, int) else logging.INFO


class BridgeHighlighter(RegexHighlighter):
    """Colours hashes, chain ids, URLs and ledger keys in console lines."""

    base_style = "xbridge."
    highlights = [
        r"(?P<hash>\b0x[0-9a-fA-F]{64}\b)",
        r"(?P<chain_id>\b0x[0-9a-fA-F]{8}\b)",
        r"(?P<url>\bhttps?://[^\s'\"]+)",
        r"ledger[= ](?P<ledger>[\w.-]+)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_critical>\bCRITICAL\b)",
        r"(?P<stamp>^.*? UTC)",
    ]


class ScrubbingFormatter(logging.Formatter):
    """
    Formatter that removes terminal escape sequences and control bytes.

    Error bodies and Cosmos denoms returned by remote ledgers are interpolated
    into log messages, so nothing they contain may reach the terminal raw.
    Tabs and newlines survive.
    """

    _UNSAFE = re.compile(
        r"\x1b\[[0-?]*[ -/]*[@-~]"   # CSI sequences
        r"|\x1b[@-Z\\-_]"            # two-byte escapes
        r"|[\x00-\x08\x0b-\x1f\x7f]"  # control bytes, incl. CR
    )

    converter = time.gmtime

    @classmethod
    def scrub(cls, text: str) -> str:
        return cls._UNSAFE.sub("", text) if text else text

    def format(self, record: logging.LogRecord) -> str:
        return self.scrub(super().format(record))


def _checked_format(fmt) -> str:
    """Return `fmt` if it renders a record cleanly, else the default format."""
    fallback = str(LOG_FORMAT.default())
    fmt = str(fmt or "")
    if not fmt:
        return fallback
    sample = logging.LogRecord("xbridge", logging.INFO, "", 0, "sample", (), None)
    try:
        rendered = logging.Formatter(fmt).format(sample)
    except (ValueError, KeyError, TypeError) as exc:
        print(f"xbridge.logger: bad LOG_FORMAT ({exc}), using default", file=sys.stderr)
        return fallback
    if "%(" in rendered:
        print("xbridge.logger: LOG_FORMAT left placeholders unformatted, using default", file=sys.stderr)
        return fallback
    return fmt


def _checked_datefmt(datefmt) -> str:
    """Return `datefmt` if it contains a strftime directive, else the default."""
    fallback = str(LOG_DATE_FORMAT.default())
    datefmt = str(datefmt or "")
    if not re.search(r"%[A-Za-z]", datefmt):
        if datefmt:
            print("xbridge.logger: bad LOG_DATE_FORMAT, using default", file=sys.stderr)
        return fallback
    return datefmt


class LogManager:
    """
    Owns the root logger configuration for the whole process.

    There is one instance; `configure` is idempotent and only the first call
    installs handlers. `set_level` may be called later, e.g. once the TOML
    configuration has been read.
    """

    _instance: Optional["LogManager"] = None
    _guard = threading.Lock()

    def __new__(cls) -> "LogManager":
        with cls._guard:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._configured = False
                instance._handlers = []
                cls._instance = instance
        return cls._instance

    @property
    def is_configured(self) -> bool:
        return self._configured

    def _console_handler(self, formatter: logging.Formatter) -> logging.Handler:
        if not LOG_CONSOLE_HIGHLIGHTING:
            handler = logging.StreamHandler(sys.stderr)
        else:
            handler = RichHandler(
                console=Console(theme=BRIDGE_THEME, stderr=True, highlight=False),
                highlighter=BridgeHighlighter(),
                show_time=False,
                show_level=False,
                show_path=False,
                markup=False,
                rich_tracebacks=True,
                keywords=[],
            )
        handler.setFormatter(formatter)
        return handler

    @staticmethod
    def _file_handler(path: Path, formatter: logging.Formatter) -> logging.Handler:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=LOG_MAX_FILE_SIZE,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setFormatter(formatter)
        return handler

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
    ) -> None:
        """
        Install handlers on the root logger.

        Args:
            log_level: level name; defaults to `LOG_LEVEL` from `.env`.
            log_file: rotating log file; defaults to `LOG_FILE`, and no file
                is written when neither is set.
            console_output: attach the console handler.
        """
        with self._guard:
            if self._configured:
                return

            formatter = ScrubbingFormatter(
                fmt=_checked_format(LOG_FORMAT),
                datefmt=_checked_datefmt(LOG_DATE_FORMAT) + " UTC",
            )
            handlers: List[logging.Handler] = []
            if console_output:
                handlers.append(self._console_handler(formatter))
            if log_file is None and str(LOG_FILE):
                log_file = Path(str(LOG_FILE))
            if log_file is not None:
                handlers.append(self._file_handler(Path(log_file), formatter))

            root = logging.getLogger()
            root.handlers.clear()
            for handler in handlers:
                root.addHandler(handler)
            self._handlers = handlers

            for name in NOISY_LIBRARIES:
                logging.getLogger(name).setLevel(logging.WARNING)

            self._configured = True

        self.set_level(log_level or str(LOG_LEVEL))

    def set_level(self, log_level) -> None:
        """Apply `log_level` to the root logger and every installed handler."""
        level = _level_number(log_level)
        logging.getLogger().setLevel(level)
        for handler in self._handlers:
            handler.setLevel(level)

    def get_logger(self, name: str) -> logging.Logger:
        if not self._configured:
            self.configure()
        return logging.getLogger(name)


_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """Return the logger for `name`, configuring logging on first use."""
    return _manager.get_logger(name)


def set_log_level(log_level) -> None:
    """Change the process log level after start-up."""
    _manager.set_level(log_level)


_manager.configure()
