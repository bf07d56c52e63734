"""Central logging setup for the project."""
from __future__ import annotations
import logging
import re
import sys
from typing import TextIO

_KEY_PARAM = re.compile(r"([?&]key=)[^&\s'\"]+")


def redact(text: str) -> str:
    """Mask the value of any ``key=`` query parameter in ``text``."""
    return _KEY_PARAM.sub(r"\1***", text)


class RedactKeyFilter(logging.Filter):
    """Strip API keys from log records (httpx logs full request URLs)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: redact(v) if isinstance(v, str) else v for k, v in record.args.items()}
            else:
                record.args = tuple(
                    redact(str(a)) if isinstance(a, str) or hasattr(a, "query") else a
                    for a in record.args
                )
        return True


def setup_logging(level: int | str = logging.INFO, stream: TextIO | None = None) -> None:
    """
    Configure root logger with sane defaults and key redaction.

    Args:
        level: Logging level, numeric or name (e.g. "DEBUG").
        stream: Output stream; stdout when omitted.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    handler = logging.StreamHandler(stream or sys.stdout)
    fmt = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
    handler.setFormatter(logging.Formatter(fmt))
    handler.addFilter(RedactKeyFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
