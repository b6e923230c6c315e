import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from novelhub.core.config import settings

# Money and catalog identifiers carried by service log calls via extra=
LEDGER_FIELDS = ("novel_id", "module_id", "chapter_id", "rental_id", "user_id", "admin_id")
AMOUNT_FIELDS = ("amount", "price", "budget", "balance", "delta")
PASS_FIELDS = ("unlocked", "switched", "attempt", "error")


class JsonFormatter(logging.Formatter):
    """One JSON object per line: level, logger, event name and the known extra fields."""

    fields = LEDGER_FIELDS + AMOUNT_FIELDS + PASS_FIELDS

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        payload.update(
            (field, getattr(record, field))
            for field in self.fields
            if getattr(record, field, None) is not None
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> None:
    formatter = JsonFormatter()
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(
            RotatingFileHandler(
                settings.log_file,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())
    root.handlers = handlers
    # SQL echo only when explicitly asked for
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.log_sql else logging.WARNING
    )
