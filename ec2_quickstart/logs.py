# /*
# Copyright 2026 The ec2-quickstart Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Terminal and log-file handlers for the deployment log."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ec2_quickstart import console, logger
from ec2_quickstart.constants import LOG_DATE_FORMAT, LOG_FILE_PATTERN, LOG_FORMAT

LEVEL_STYLES = {
    logging.DEBUG: ("DEBUG", "blue"),
    logging.INFO: ("INFO", "green"),
    logging.WARNING: ("WARN", "yellow"),
    logging.ERROR: ("ERROR", "red"),
    logging.CRITICAL: ("ERROR", "bold red"),
}


class ConsoleLevelHandler(logging.Handler):
    """Print records to a rich console with a colored ``[LEVEL]`` prefix.

    Records logged with ``extra={"console": False}`` only reach the log file.
    """

    def __init__(self, target: Console, level: int = logging.INFO) -> None:
        super().__init__(level)
        self._console = target

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "console", True):
            return False
        return super().filter(record)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            label, style = LEVEL_STYLES.get(record.levelno, ("INFO", "green"))
            self._console.print(
                Text.assemble((f"[{label}]", style), " ", record.getMessage()),
                highlight=False,
            )
        except Exception:
            self.handleError(record)


def default_log_path(now: datetime | None = None) -> Path:
    """Build the timestamped log file path in the working directory.

    Args:
        now: Timestamp to format, or None for the current time.

    Returns:
        Relative path such as ``deployment-20260101-120000.log``.
    """
    return Path((now or datetime.now()).strftime(LOG_FILE_PATTERN))


def configure_logging(log_file: Path | None, verbose: bool = False) -> None:
    """Attach the console and file handlers to the package logger.

    Args:
        log_file: File that captures every record at DEBUG and above, or None.
        verbose: Whether DEBUG records are also shown on the terminal.
    """
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(ConsoleLevelHandler(console, logging.DEBUG if verbose else logging.INFO))

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(file_handler)


def section(title: str) -> None:
    """Print a step banner and record it in the log file."""
    console.print(Panel.fit(title, style="bold blue"))
    logger.info(title, extra={"console": False})


def log_command_output(line: str) -> None:
    """``sh`` output callback that forwards each line to DEBUG."""
    line = line.rstrip()
    if line:
        logger.debug(line)
