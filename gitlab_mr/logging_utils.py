# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Logging setup for gitlab-mr"""

import logging
import sys
from typing import Optional, TextIO

from .colors import CYAN, GREEN, RED, YELLOW, paint

LOGGER_NAME = "gitlab-mr"
PREFIX = "[gitlab-mr]"

LEVEL_COLORS = {
    logging.WARNING: YELLOW,
    logging.ERROR: RED,
    logging.CRITICAL: RED,
}


class CliFormatter(logging.Formatter):
    """Prefixes every line and colours it by level"""

    def __init__(self, color: bool = True):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info and record.levelno >= logging.ERROR:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        if not self.color:
            return f"{PREFIX} {message}"
        color = GREEN if getattr(record, "success", False) else LEVEL_COLORS.get(record.levelno)
        if color:
            message = paint(message, color)
        return f"{paint(PREFIX, CYAN)} {message}"


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def setup_logging(verbose: bool = False, stream: Optional[TextIO] = None) -> logging.Logger:
    logger = get_logger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    stream = stream or sys.stderr
    for handler in list(logger.handlers):
        if getattr(handler, "_gitlab_mr", False):
            logger.removeHandler(handler)
    handler = logging.StreamHandler(stream)
    handler._gitlab_mr = True
    isatty = getattr(stream, "isatty", None)
    handler.setFormatter(CliFormatter(color=bool(isatty and isatty())))
    logger.addHandler(handler)
    return logger


def success(message: str):
    get_logger().info(message, extra={"success": True})
