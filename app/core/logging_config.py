"""Logging configuration.

Provides structured, rotating logs with optional JSON output. Binds lightweight contextvars
(request_id/user_id/ip) to every record for correlation across middleware and services.
Security-relevant events (integrity failures) and ledger degradations carry an `event`
field so they can be filtered downstream.
"""

import logging
import logging.handlers
import sys
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from contextvars import ContextVar

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_ctx: ContextVar[Optional[str]] = ContextVar("user_id", default=None)
ip_ctx: ContextVar[Optional[str]] = ContextVar("ip_address", default=None)

_PLAIN_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
_EXTRA_FIELDS = (
    "user_id",
    "request_id",
    "ip_address",
    "endpoint",
    "method",
    "status_code",
    "event",
    "material_id",
    "request_ref",
)


class JSONFormatter(logging.Formatter):
    """Emit logs as JSON for aggregation (ELK/Splunk/etc.)."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)
        if hasattr(record, "duration"):
            log_data["duration_ms"] = record.duration

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Add ANSI colors to console output for local readability."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"

        result = super().format(record)

        # Reset levelname for other handlers
        record.levelname = levelname

        return result


class ContextEnricher(logging.Filter):
    """Inject contextvars (request_id, user_id, ip_address) into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        request_id = request_id_ctx.get()
        user_id = user_id_ctx.get()
        ip_address = ip_ctx.get()
        if request_id and not hasattr(record, "request_id"):
            record.request_id = request_id
        if user_id and not hasattr(record, "user_id"):
            record.user_id = user_id
        if ip_address and not hasattr(record, "ip_address"):
            record.ip_address = ip_address
        return True


def bind_request_context(
    *, request_id: Optional[str] = None, user_id: Optional[str] = None, ip_address: Optional[str] = None
):
    """Bind request context into contextvars; returns tokens for reset."""
    tokens = []
    if request_id is not None:
        tokens.append(("request_id", request_id_ctx.set(request_id)))
    if user_id is not None:
        tokens.append(("user_id", user_id_ctx.set(user_id)))
    if ip_address is not None:
        tokens.append(("ip_address", ip_ctx.set(ip_address)))
    return tokens


def reset_request_context(tokens):
    """Reset bound contextvars using tokens returned by bind_request_context."""
    for key, token in tokens:
        if key == "request_id":
            request_id_ctx.reset(token)
        elif key == "user_id":
            user_id_ctx.reset(token)
        elif key == "ip_address":
            ip_ctx.reset(token)


def _rotating_handler(path: Path, level: int, max_bytes: int, backup_count: int):
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(level)
    return handler


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    app_name: str = "materials_api",
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    use_json: bool = False,
    use_colors: bool = True,
) -> None:
    """Configure root logging.

    Args:
        log_level: Minimum logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_dir: Directory to store log files; if None, logs only to console.
        app_name: Application name used in log filenames.
        max_bytes: Max size per log file before rotation.
        backup_count: Number of rotated files to keep.
        use_json: If True, use JSON for file handlers (better for aggregation).
        use_colors: If True, add ANSI colors to console output.
    """

    def _reset_handlers(logger: logging.Logger) -> None:
        """Close and remove any existing handlers to avoid descriptor leaks."""
        for handler in list(logger.handlers):
            try:
                handler.flush()
            finally:
                handler.close()
                logger.removeHandler(handler)

    level = getattr(logging, log_level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    _reset_handlers(root_logger)
    context_filter = ContextEnricher()
    root_logger.addFilter(context_filter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_cls = ColoredFormatter if use_colors else logging.Formatter
    console_handler.setFormatter(console_cls(_PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        general_handler = _rotating_handler(
            log_path / f"{app_name}.log", logging.DEBUG, max_bytes, backup_count
        )
        error_handler = _rotating_handler(
            log_path / f"{app_name}_error.log", logging.ERROR, max_bytes, backup_count
        )
        for handler in (general_handler, error_handler):
            if use_json:
                handler.setFormatter(JSONFormatter())
            else:
                handler.setFormatter(
                    logging.Formatter(_PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
                )
            root_logger.addHandler(handler)

        access_handler = _rotating_handler(
            log_path / f"{app_name}_access.log", logging.INFO, max_bytes, backup_count
        )
        if use_json:
            access_handler.setFormatter(JSONFormatter())
        else:
            access_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s | %(method)s %(endpoint)s | Status: %(status_code)s | Duration: %(duration)sms | IP: %(ip_address)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )

        access_logger = logging.getLogger("access")
        _reset_handlers(access_logger)
        access_logger.addHandler(access_handler)
        access_logger.setLevel(logging.INFO)
        access_logger.propagate = False
        access_logger.addFilter(context_filter)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)

    logging.info(
        f"Logging configured. Level: {log_level}, Directory: {log_dir or 'console only'}"
    )


def log_request(
    method: str,
    endpoint: str,
    status_code: int,
    duration_ms: float,
    ip_address: str,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> None:
    """Log an HTTP request with structured data on the `access` logger."""
    logger = logging.getLogger("access")
    extra = {
        "method": method,
        "endpoint": endpoint,
        "status_code": status_code,
        "duration": f"{duration_ms:.2f}",
        "ip_address": ip_address,
    }

    if user_id:
        extra["user_id"] = user_id
    if request_id:
        extra["request_id"] = request_id

    message = f"{method} {endpoint} - {status_code} - {duration_ms:.2f}ms"
    logger.info(message, extra=extra)
