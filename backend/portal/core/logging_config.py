"""
Timetable Portal - Centralized Logging Configuration

Production writes one JSON object per line; development writes plain text.
Both carry the request id, the acting user and the academic level being
served, taken from context variables set by the request middleware.

Structured events (http, db, sync, auth, error) pass their fields as
`<group>_<name>` extras. The JSON formatter nests them under the group key:

    {"message": "Sync resync (seq 4)", "event_type": "sync",
     "sync": {"event": "resync", "level": "100 ICT", "sequence": 4,
              "table": "timetable"}, ...}
"""

import logging
import sys
import json
import traceback
import uuid
from datetime import datetime
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional
from contextvars import ContextVar

from portal.core.config import settings


request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')
level_var: ContextVar[str] = ContextVar('level', default='')

EVENT_GROUPS = ("http", "db", "sync", "auth", "error")

# Attributes every LogRecord has; anything else on a record came from `extra`
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

# Set by ContextualFormatter itself
_TEXT_ATTRS = {"request_id", "user_id", "academic_level", "sync_tag"}


def get_request_id() -> str:
    return request_id_var.get() or ''


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_user_id() -> str:
    return user_id_var.get() or ''


def set_user_id(user_id: str) -> None:
    user_id_var.set(user_id)


def get_level() -> str:
    """Academic level of the identity the current request acts for"""
    return level_var.get() or ''


def set_level(level: str) -> None:
    level_var.set(level)


def generate_request_id() -> str:
    return str(uuid.uuid4())[:8]


def request_context() -> Dict[str, str]:
    """Non-empty context variables, keyed as they appear in log output"""
    context = {
        "request_id": get_request_id(),
        "user_id": get_user_id(),
        "academic_level": get_level(),
    }
    return {key: value for key, value in context.items() if value}


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields passed through `extra=`"""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and key not in _TEXT_ATTRS and not key.startswith('_')
    }


def group_extras(extras: Dict[str, Any]) -> Dict[str, Any]:
    """
    Nest `<group>_<name>` keys under their group; other keys stay flat.
    Empty values inside a group are dropped.
    """
    grouped: Dict[str, Any] = {}
    for key, value in extras.items():
        group, _, name = key.partition("_")
        if group in EVENT_GROUPS and name:
            if value is not None:
                grouped.setdefault(group, {})[name] = value
        else:
            grouped[key] = value
    return grouped


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation"""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        log_data.update(request_context())

        if record.exc_info and record.exc_info[0]:
            exc_type, exc_value, _ = record.exc_info
            log_data["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        for key, value in group_extras(record_extras(record)).items():
            # Reserved keys always describe the record itself
            log_data.setdefault(key, value)

        return json.dumps(log_data, default=str)


class ContextualFormatter(logging.Formatter):
    """
    Plain-text formatter for development.

    Fills `%(request_id)s`, `%(user_id)s`, `%(academic_level)s` (with '-'
    when unset) and `%(sync_tag)s`, which reads ` {seq=4 table=timetable}`
    for sync records and is empty otherwise.
    """

    def format(self, record: logging.LogRecord) -> str:
        context = request_context()
        record.request_id = context.get("request_id", '-')
        record.user_id = context.get("user_id", '-')
        record.academic_level = context.get("academic_level", '-')
        record.sync_tag = self._sync_tag(record)
        return super().format(record)

    @staticmethod
    def _sync_tag(record: logging.LogRecord) -> str:
        parts = []
        sequence = getattr(record, "sync_sequence", None)
        if sequence is not None:
            parts.append(f"seq={sequence}")
        table = getattr(record, "sync_table", None)
        if table:
            parts.append(f"table={table}")
        return f" {{{' '.join(parts)}}}" if parts else ""


class PortalLogger(logging.Logger):
    """Logger with one helper per structured event type"""

    def log_request(self, method: str, path: str, status_code: int,
                    duration_ms: float, **kwargs) -> None:
        self.info(
            f"HTTP {method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={
                "event_type": "http_request",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": duration_ms,
                **kwargs
            }
        )

    def log_db_query(self, operation: str, table: str, duration_ms: float,
                     rows_affected: int = 0, status: Optional[int] = None,
                     **kwargs) -> None:
        """Directory store round trip; `status` is the REST response code"""
        self.debug(
            f"DB {operation} {table} -> {rows_affected} rows ({duration_ms:.2f}ms)",
            extra={
                "event_type": "db_query",
                "db_operation": operation,
                "db_table": table,
                "db_status": status,
                "db_rows": rows_affected,
                "duration_ms": duration_ms,
                **kwargs
            }
        )

    def log_auth_event(self, event: str, success: bool, user_email: str = None,
                       reason: str = None, **kwargs) -> None:
        outcome = "success" if success else "failed"
        detail = "".join(f" - {part}" for part in (user_email, reason) if part)
        self.log(
            logging.INFO if success else logging.WARNING,
            f"Auth {event}: {outcome}{detail}",
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "auth_email": user_email,
                "auth_reason": reason,
                **kwargs
            }
        )

    def log_sync_event(self, event: str, level: str = None, sequence: int = None,
                       table: str = None, **kwargs) -> None:
        """
        Live-sync lifecycle event for one student view.

        `sequence` is the fetch sequence number the event belongs to and
        `table` the watched table that triggered it, when there is one.
        """
        where = f" [level={level}]" if level else ""
        seq = f" (seq {sequence})" if sequence is not None else ""
        self.info(
            f"Sync {event}{where}{seq}",
            extra={
                "event_type": "sync",
                "sync_event": event,
                "sync_level": level,
                "sync_sequence": sequence,
                "sync_table": table,
                **kwargs
            }
        )

    def log_error_with_context(self, error: Exception, context: str = None,
                               **kwargs) -> None:
        self.error(
            f"Error in {context}: {type(error).__name__}: {error}",
            exc_info=True,
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "error_message": str(error),
                "error_context": context,
                **kwargs
            }
        )


TEXT_FORMAT = (
    "%(asctime)s | %(levelname)-8s | "
    "[%(request_id)s] [%(user_id)s] [%(academic_level)s] | "
    "%(funcName)s:%(lineno)d | %(message)s%(sync_tag)s"
)
CONSOLE_TEXT_FORMAT = "%(levelname)-8s | %(message)s%(sync_tag)s"


def _file_handler(path: str, formatter: logging.Formatter, backups: int) -> logging.Handler:
    log_file = Path(path)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=backups)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> PortalLogger:
    """JSON output in production, plain text everywhere else"""
    logging.setLoggerClass(PortalLogger)

    logger = logging.getLogger("portal")
    logger.__class__ = PortalLogger
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.handlers.clear()

    json_logging = settings.ENVIRONMENT == "production"
    if json_logging:
        console_formatter = file_formatter = JSONFormatter()
        backups = 10
    else:
        console_formatter = ContextualFormatter(CONSOLE_TEXT_FORMAT)
        file_formatter = ContextualFormatter(TEXT_FORMAT)
        backups = 5

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if settings.LOG_FILE:
        logger.addHandler(_file_handler(settings.LOG_FILE, file_formatter, backups))

    for noisy in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.info(
        "Logging initialized",
        extra={
            "environment": settings.ENVIRONMENT,
            "log_level": settings.LOG_LEVEL,
            "json_logging": json_logging,
        }
    )
    return logger


logger: PortalLogger = setup_logging()


__all__ = [
    'logger',
    'setup_logging',
    'request_context',
    'get_request_id',
    'set_request_id',
    'get_user_id',
    'set_user_id',
    'get_level',
    'set_level',
    'generate_request_id',
    'JSONFormatter',
    'ContextualFormatter',
    'PortalLogger',
]
