import json
import logging
import os
from datetime import datetime, timezone

SERVICE_NAME = "timebill"

# lifted from extra={...} to the top level of the payload
CONTEXT_FIELDS = ("tenant_id", "user_id", "actor_id", "time_entry_id", "request_id")

_STANDARD_ATTRS = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename", "module",
    "exc_info", "exc_text", "stack_info", "lineno", "funcName", "created", "msecs",
    "relativeCreated", "thread", "threadName", "processName", "process", "taskName",
    "message", "asctime",
})


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}
        for field in CONTEXT_FIELDS:
            if field in extras:
                payload[field] = extras.pop(field)
        if extras:
            payload["extra"] = extras

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        if record.stack_info:
            payload["stack_info"] = record.stack_info

        return json.dumps(payload, default=str)


def configure_logging() -> None:
    """
    Install the JSON formatter on the root handlers.

    LOG_LEVEL sets the application level; SQL_LOG_LEVEL (default WARNING)
    controls SQLAlchemy engine chatter separately.
    """
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(message)s",
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.setFormatter(JsonFormatter())

    sql_level = os.getenv("SQL_LOG_LEVEL", "WARNING").upper()
    logging.getLogger("sqlalchemy.engine").setLevel(getattr(logging, sql_level, logging.WARNING))
