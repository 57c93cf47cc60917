"""Structured logging helpers shared by the settings and prompt layers."""
from __future__ import annotations

import json
import logging
import os
import threading
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

LOG_LEVEL_ENV = "OCR_TRANSLATOR_LOG_LEVEL"
LOG_DIR_ENV = "OCR_TRANSLATOR_LOG_DIR"
LOG_FORMAT_ENV = "OCR_TRANSLATOR_LOG_FORMAT"
DEFAULT_LOG_FILENAME = "ocr-translator.log"
DEFAULT_LOG_MAX_BYTES = 2 * 1024 * 1024  # 2 MiB
DEFAULT_LOG_BACKUP_COUNT = 3

_FORMAT_STRUCTURED = "structured"
_FORMAT_JSON = "json"
_SUPPORTED_FORMATS = {_FORMAT_STRUCTURED, _FORMAT_JSON}

_SESSION_MONOTONIC = time.monotonic()


class _RuntimeContextFilter(logging.Filter):
    """Attach process/thread/uptime metadata to every record."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        record.process_id = os.getpid()
        record.thread_name = threading.current_thread().name
        record.uptime_ms = int((time.monotonic() - _SESSION_MONOTONIC) * 1000)
        return True


def _stringify_detail(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, (list, tuple, set, frozenset)):
        return "[" + ", ".join(_stringify_detail(item) for item in value) + "]"
    if value is None:
        return "<none>"
    return str(value)


class StructuredMessage:
    """A log headline plus an optional event name and key/value details."""

    __slots__ = ("headline", "event", "details")

    def __init__(
        self,
        headline: str,
        /,
        *,
        event: str | None = None,
        details: Mapping[str, Any] | None = None,
        **fields: Any,
    ) -> None:
        combined: dict[str, Any] = dict(details or {})
        for key, value in fields.items():
            if value is not None:
                combined[key] = value
        self.headline = headline
        self.event = event
        self.details = combined

    def __str__(self) -> str:
        segments = [self.headline]
        if self.event:
            segments.append(f"event={self.event}")
        if self.details:
            segments.append(
                " ".join(f"{key}={_stringify_detail(value)}" for key, value in self.details.items())
            )
        return " | ".join(segments)


class _StructuredLogFormatter(logging.Formatter):
    default_time_format = "%Y-%m-%dT%H:%M:%S"
    default_msec_format = "%s.%03d"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, self.datefmt)
        name = record.name
        component = getattr(record, "component", None)
        if component:
            name = f"{name}:{component}"

        message = super().format(record)
        extras: list[str] = []
        thread_name = getattr(record, "thread_name", None)
        if thread_name and thread_name != "MainThread":
            extras.append(f"thread={thread_name}")
        uptime_ms = getattr(record, "uptime_ms", None)
        if isinstance(uptime_ms, int):
            extras.append(f"uptime_ms={uptime_ms}")
        context = f" [{', '.join(extras)}]" if extras else ""

        tail = ""
        event = getattr(record, "event", None)
        if event:
            tail = f" | event={event}"
        details = getattr(record, "details", None)
        if isinstance(details, Mapping) and details:
            tail += " | " + " ".join(
                f"{key}={_stringify_detail(value)}" for key, value in sorted(details.items())
            )
        return f"{timestamp} | {record.levelname:<8} | {name}{context} | {message}{tail}"


def _json_safe(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, Mapping):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_json_safe(item) for item in value]
    return str(value)


class _JsonLogFormatter(logging.Formatter):
    default_time_format = "%Y-%m-%dT%H:%M:%S"
    default_msec_format = "%s.%03d"

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attr in ("component", "event"):
            value = getattr(record, attr, None)
            if value:
                payload[attr] = value
        details = getattr(record, "details", None)
        if isinstance(details, Mapping) and details:
            payload["details"] = _json_safe(details)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, sort_keys=True)


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that unpacks :class:`StructuredMessage` into record extras."""

    def __init__(
        self,
        logger: logging.Logger,
        *,
        component: str | None = None,
        defaults: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(logger, extra={})
        self._component = component
        self._defaults = dict(defaults or {})

    def bind(self, **fields: Any) -> "ContextualLoggerAdapter":
        merged = dict(self._defaults)
        merged.update(fields)
        return ContextualLoggerAdapter(self.logger, component=self._component, defaults=merged)

    def process(self, msg: Any, kwargs: Mapping[str, Any]) -> tuple[Any, Mapping[str, Any]]:
        kwargs = dict(kwargs)
        event = kwargs.pop("event", None)
        detail_overrides = kwargs.pop("details", None)
        details: dict[str, Any] = dict(self._defaults)
        if isinstance(msg, StructuredMessage):
            event = event or msg.event
            details.update(msg.details)
            msg = msg.headline
        if isinstance(detail_overrides, Mapping):
            details.update(detail_overrides)

        extra = dict(kwargs.get("extra") or {})
        if self._component:
            extra.setdefault("component", self._component)
        if event:
            extra.setdefault("event", event)
        if details:
            extra["details"] = details
        if extra:
            kwargs["extra"] = extra
        return msg, kwargs


def log_context(
    headline: str,
    /,
    *,
    event: str | None = None,
    details: Mapping[str, Any] | None = None,
    **fields: Any,
) -> StructuredMessage:
    """Build a :class:`StructuredMessage` with keyword details."""

    return StructuredMessage(headline, event=event, details=details, **fields)


@contextmanager
def log_duration(
    logger: logging.Logger | logging.LoggerAdapter,
    headline: str,
    /,
    *,
    event: str | None = None,
    details: Mapping[str, Any] | None = None,
    level: int = logging.INFO,
) -> Iterator[dict[str, Any]]:
    """Log how long the wrapped block took.

    The yielded ``dict`` can be filled with extra details; it is merged into
    the record emitted on success or failure. Failures are re-raised.
    """

    collected: dict[str, Any] = {}
    started = time.perf_counter()
    try:
        yield collected
    except Exception as exc:
        payload = dict(details or {})
        payload.update(collected)
        payload["status"] = "failure"
        payload["error"] = repr(exc)
        payload["duration_ms"] = int((time.perf_counter() - started) * 1000)
        logger.log(logging.ERROR, StructuredMessage(headline, event=event, details=payload), exc_info=True)
        raise
    else:
        payload = dict(details or {})
        payload.update(collected)
        payload.setdefault("status", "success")
        payload["duration_ms"] = int((time.perf_counter() - started) * 1000)
        logger.log(level, StructuredMessage(headline, event=event, details=payload))


def get_logger(name: str, *, component: str | None = None, **default_fields: Any) -> ContextualLoggerAdapter:
    """Return a logger adapter tagged with ``component``."""

    return ContextualLoggerAdapter(logging.getLogger(name), component=component, defaults=default_fields)


def _determine_level() -> int:
    raw = os.getenv(LOG_LEVEL_ENV, "INFO").upper()
    return getattr(logging, raw, logging.INFO)


def _determine_format() -> tuple[str, str | None]:
    raw = (os.getenv(LOG_FORMAT_ENV) or "").strip().lower()
    if not raw:
        return _FORMAT_STRUCTURED, None
    if raw in _SUPPORTED_FORMATS:
        return raw, None
    return _FORMAT_STRUCTURED, raw


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == _FORMAT_JSON:
        return _JsonLogFormatter()
    return _StructuredLogFormatter()


def _build_file_handler(filters: Iterable[logging.Filter], formatter: logging.Formatter) -> logging.Handler | None:
    log_directory = Path(os.getenv(LOG_DIR_ENV, "logs")).expanduser()
    try:
        log_directory.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_directory / DEFAULT_LOG_FILENAME,
            maxBytes=DEFAULT_LOG_MAX_BYTES,
            backupCount=DEFAULT_LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError:
        logging.getLogger(__name__).warning(
            "Unable to set up file logging in %s; continuing with console only.",
            log_directory,
            exc_info=True,
        )
        return None
    handler.setFormatter(formatter)
    for filt in filters:
        handler.addFilter(filt)
    return handler


def setup_logging(*, log_to_file: bool = True) -> None:
    """Configure root logging; meant to be called once by the application shell."""

    level = _determine_level()
    log_format, invalid_choice = _determine_format()
    filters: list[logging.Filter] = [_RuntimeContextFilter()]

    console = logging.StreamHandler()
    console.setFormatter(_build_formatter(log_format))
    for filt in filters:
        console.addFilter(filt)
    handlers: list[logging.Handler] = [console]

    if log_to_file:
        file_handler = _build_file_handler(filters, _build_formatter(log_format))
        if file_handler is not None:
            handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)

    if invalid_choice is not None:
        logging.getLogger(__name__).warning(
            "Unsupported log format '%s' requested via %s; using '%s' instead.",
            invalid_choice,
            LOG_FORMAT_ENV,
            log_format,
        )

    get_logger("ocr_translator.logging", component="Logging").info(
        log_context(
            "Logging configured.",
            event="logging.configured",
            level=logging.getLevelName(level),
            log_format=log_format,
        )
    )


__all__ = [
    "ContextualLoggerAdapter",
    "StructuredMessage",
    "get_logger",
    "log_context",
    "log_duration",
    "setup_logging",
]
