import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

# attributes every LogRecord has; anything else was passed through `extra=`
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}

# chatty third party loggers, never below WARNING
NOISY_LOGGERS = ("urllib3", "yt_dlp", "ytmusicapi", "mpv")


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
        return value
    except TypeError:
        return repr(value)


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: _jsonable(v) for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


def _timestamp(record: logging.LogRecord) -> str:
    dt = datetime.fromtimestamp(record.created, timezone.utc)
    return dt.strftime("%H:%M:%S.") + f"{int(record.msecs):03d}Z"


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
            "thread": record.threadName,
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        for key, value in record_extras(record).items():
            entry.setdefault(key, value)
        return json.dumps(entry, ensure_ascii=False)


class HumanReadableConsoleFormatter(logging.Formatter):
    """`[ts] LEVEL logger.func:line | message key=value ...` plus the traceback, if any."""

    def format(self, record: logging.LogRecord) -> str:
        extras = " ".join(f"{k}={v!r}" for k, v in record_extras(record).items())
        out = (
            f"[{_timestamp(record)}] {record.levelname:<8} "
            f"{record.name}.{record.funcName}:{record.lineno} | {record.getMessage()}"
        )
        if extras:
            out += " " + extras
        if record.exc_info:
            out += "\n" + self.formatException(record.exc_info)
        return out


def install_json_logging(level=logging.INFO, json_output: bool = False, stream: Optional[TextIO] = None):
    """Replace the root stream handlers with a single console handler."""
    root = logging.getLogger()
    for h in list(root.handlers):
        if isinstance(h, logging.StreamHandler):
            root.removeHandler(h)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter() if json_output else HumanReadableConsoleFormatter())
    root.addHandler(handler)
    root.setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
