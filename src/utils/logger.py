"""
Logging configuration

Every handler masks OAuth tokens, so a bearer header or a token form body
that ends up in a message never reaches stdout or the log file.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional

from config.settings import settings

LOGS_DIR = Path(__file__).parent.parent.parent / "logs"
LOG_FILE = "quickbooks_connector.log"

REDACTED = "[redacted]"
TOKEN_PATTERNS = (
    re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"""((?:access|refresh)_?token["']?\s*[:=]\s*["']?)[^"'\s,&}]+""", re.IGNORECASE),
)


def redact_tokens(text: str) -> str:
    for pattern in TOKEN_PATTERNS:
        text = pattern.sub(lambda match: match.group(1) + REDACTED, text)
    return text


class RedactTokensFilter(logging.Filter):
    def filter(self, record):
        message = record.getMessage()
        redacted = redact_tokens(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger instance

    Args:
        name: Logger name (usually __name__)
        level: Logging level, defaults to the configured log level

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(getattr(logging, (level or settings.log_level).upper(), logging.INFO))

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        redaction = RedactTokensFilter()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(redaction)
        logger.addHandler(console_handler)

        LOGS_DIR.mkdir(exist_ok=True)
        file_handler = logging.FileHandler(LOGS_DIR / LOG_FILE)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(redaction)
        logger.addHandler(file_handler)

        # Prevent duplicate logs
        logger.propagate = False

    return logger
