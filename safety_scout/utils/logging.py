"""Logging setup for Safety Scout.

Package loggers write to stderr through Rich so they never interleave with
the report printed on stdout. Records carry sizes, counts and timings only;
prompts, replies and images are not logged. Anything shaped like a Gemini
API key is masked before a handler sees it.

Example:
    >>> setup_logging(level="DEBUG", log_file=Path("scout.log"))
    >>> with LogContext("Safety analysis", logger=logger):
    ...     analyzer.analyze(request)
"""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_NAME = "safety_scout"

# SDK and transport loggers that are chatty at INFO
THIRD_PARTY_LOGGERS = (
    "google_genai",
    "google.auth",
    "httpx",
    "httpcore",
    "urllib3",
    "PIL",
)

FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_stderr = Console(stderr=True)


class KeyRedactionFilter(logging.Filter):
    """Mask Gemini API keys in log messages and arguments."""

    REDACTED = "[REDACTED]"
    PATTERNS = (
        re.compile(r"\bAIza[0-9A-Za-z_\-]{20,}"),
        re.compile(
            r"((?:api[_-]?key|key)\s*[=:]\s*)[\"']?[0-9A-Za-z_\-]{16,}[\"']?",
            re.IGNORECASE,
        ),
    )

    def filter(self, record: logging.LogRecord) -> bool:
        # Format first so a key split between msg and args is still caught
        if record.args or isinstance(record.msg, str):
            record.msg = self.redact(record.getMessage())
            record.args = ()
        return True

    def redact(self, text: str) -> str:
        text = self.PATTERNS[0].sub(self.REDACTED, text)
        return self.PATTERNS[1].sub(lambda m: m.group(1) + self.REDACTED, text)


def setup_logging(level: str = "WARNING", log_file: Path | None = None) -> None:
    """Configure the ``safety_scout`` logger.

    Calling it again replaces the previous handlers, so the CLI can apply
    ``--verbose`` after reading the configured level.

    Args:
        level: Level name; unknown names fall back to WARNING.
        log_file: Also append plain-text records to this file.
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    package_logger = logging.getLogger(PACKAGE_NAME)
    package_logger.setLevel(numeric_level)
    package_logger.propagate = False

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    redaction = KeyRedactionFilter()

    console_handler = RichHandler(
        console=_stderr,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    console_handler.addFilter(redaction)
    package_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        file_handler.addFilter(redaction)
        package_logger.addHandler(file_handler)

    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    package_logger.debug(f"Logging at {logging.getLevelName(numeric_level)}, file={log_file}")


class LogContext:
    """Time a block and log its start and outcome.

    A failure is logged by exception type only, since messages from the
    SDK can quote the request, and the exception is re-raised.
    """

    def __init__(
        self,
        message: str,
        level: int = logging.INFO,
        logger: logging.Logger | None = None,
    ) -> None:
        self.message = message
        self.level = level
        self.logger = logger or logging.getLogger(PACKAGE_NAME)
        self.elapsed: float = 0.0
        self._started: float = 0.0

    def __enter__(self) -> "LogContext":
        self._started = time.perf_counter()
        self.logger.log(self.level, f"{self.message}...")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.elapsed = time.perf_counter() - self._started
        if exc_type is None:
            self.logger.log(self.level, f"{self.message} completed in {self.elapsed:.2f}s")
        else:
            self.logger.error(
                f"{self.message} failed after {self.elapsed:.2f}s: {exc_type.__name__}"
            )
