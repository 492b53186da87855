"""Unified logging setup for webserve processes."""
from __future__ import annotations

import json
import logging
import sys

from .env_adapter import get_bool

DEFAULT_FORMAT = '%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s'
# Message-only console format for interactive sessions
MINIMAL_CONSOLE_FORMAT = '%(message)s'

SUPPRESSED_LOGGERS = ['urllib3', 'prometheus_client']


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'ts': record.created,
            'level': record.levelname,
            'logger': record.name,
            'thread': record.threadName,
            'msg': record.getMessage(),
        }
        if record.exc_info:
            payload['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(level: str = 'INFO', log_file: str | None = None, fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    """Configure root logging.

    Console handler uses the minimal message-only format unless
    WEBSERVE_VERBOSE_CONSOLE=1 or an explicit ``fmt`` is passed. With
    WEBSERVE_JSON_LOGS=1 console records are emitted as JSON lines.
    The file handler (if any) always uses the full DEFAULT_FORMAT.

    Safe to call repeatedly: existing root handlers are removed first.
    """
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(log_level)
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.close()

    if fmt != DEFAULT_FORMAT:
        console_fmt = fmt
    elif get_bool('WEBSERVE_VERBOSE_CONSOLE'):
        console_fmt = DEFAULT_FORMAT
    else:
        console_fmt = MINIMAL_CONSOLE_FORMAT

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    if get_bool('WEBSERVE_JSON_LOGS'):
        console.setFormatter(JsonFormatter())
    else:
        console.setFormatter(logging.Formatter(console_fmt))
    root.addHandler(console)

    if log_file:
        fh = logging.FileHandler(log_file, encoding='utf-8')
        fh.setLevel(log_level)
        fh.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        root.addHandler(fh)

    for name in SUPPRESSED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


__all__ = ['setup_logging', 'JsonFormatter', 'DEFAULT_FORMAT', 'MINIMAL_CONSOLE_FORMAT']
