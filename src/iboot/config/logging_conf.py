"""Standard *logging* configuration for applications embedding the package.

The library modules only create named loggers under ``iboot``; nothing is
configured at import time. Hosts call :func:`configure_logging` once to route
those records, together with the recoverable bootstrap warnings (captured from
:mod:`warnings`), to a stream and a log file as plain text or JSON lines.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Mapping

from .settings import Settings, get_settings

__all__ = ["JSONFormatter", "PACKAGE_LOGGER", "configure_logging"]

PACKAGE_LOGGER = "iboot"
WARNINGS_LOGGER = "py.warnings"

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RESERVED = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

_CATEGORY = re.compile(r":\s(\w+Warning):\s")

_PLAIN_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _jsonable(value: Any) -> Any:
    # numpy scalars and arrays expose ``tolist``
    if hasattr(value, "tolist"):
        return value.tolist()
    return value


class JSONFormatter(logging.Formatter):
    """Serialise each ``LogRecord`` as one JSON object.

    Fields passed through ``extra`` (for example ``interval_type`` and
    ``nboot`` on the per-run summary) become top-level keys; numpy values are
    converted to plain lists.
    """

    def __init__(self, *, default_context: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self._default_context = dict(default_context or {})

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        payload.update(self._default_context)
        for key, value in vars(record).items():
            if key not in _RESERVED:
                payload.setdefault(key, _jsonable(value))
        return json.dumps(payload, ensure_ascii=False, default=str)


class _WarningCategoryFilter(logging.Filter):
    """Tag captured warnings with their category (``IntervalHitEndWarning``...)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == WARNINGS_LOGGER and not hasattr(record, "warning_category"):
            match = _CATEGORY.search(record.getMessage())
            record.warning_category = match.group(1) if match else None
        return True


def _installed(handler: logging.Handler) -> bool:
    return getattr(handler, "_iboot_handler", False)


def _detach(logger: logging.Logger) -> None:
    for handler in [h for h in logger.handlers if _installed(h)]:
        logger.removeHandler(handler)
        handler.close()


def _make_handler(
    handler: logging.Handler, level: int | str, formatter: logging.Formatter
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(_WarningCategoryFilter())
    handler._iboot_handler = True  # type: ignore[attr-defined]
    return handler


def configure_logging(
    *,
    settings: Settings | None = None,
    level: int | str = logging.INFO,
    structured: bool | None = None,
    module_levels: Mapping[str, int | str] | None = None,
    stream: IO[str] | None = None,
    context: Mapping[str, Any] | None = None,
    log_file: Path | None = None,
    capture_warnings: bool = True,
) -> logging.Logger:
    """Attach handlers to the ``iboot`` logger (and to captured warnings).

    Calling the function again replaces the handlers it installed before;
    handlers added by the host application are left alone.

    Parameters
    ----------
    settings:
        :class:`Settings` instance; the cached singleton when ``None``.
    level:
        Level of the package logger and its handlers.
    structured:
        JSON lines through :class:`JSONFormatter`; ``None`` defers to
        ``settings.structured_logging``.
    module_levels:
        ``logger -> level`` overrides, e.g. ``{"iboot.stats.calibration": "DEBUG"}``.
    stream:
        Target of the stream handler; ``sys.stderr`` by default.
    context:
        Fields added to every structured record (e.g. ``{"seed": 1}``).
    log_file:
        Copy of the records (append mode); ``settings.logs_dir / 'iboot.log'``
        by default.
    capture_warnings:
        Route :class:`~iboot.exceptions.BootstrapWarning` and other
        ``warnings.warn`` calls through the same handlers.

    Returns
    -------
    logging.Logger
        The configured package logger.
    """

    settings = settings or get_settings()
    structured = settings.structured_logging if structured is None else structured
    formatter: logging.Formatter = (
        JSONFormatter(default_context=context)
        if structured
        else logging.Formatter(fmt=_PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )

    handlers = [_make_handler(logging.StreamHandler(stream), level, formatter)]
    file_target = log_file or (settings.logs_dir / "iboot.log")
    try:
        file_target.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(_make_handler(logging.FileHandler(file_target, encoding="utf-8"), level, formatter))
    except OSError:  # pragma: no cover - read-only filesystems
        pass

    for name in (PACKAGE_LOGGER, WARNINGS_LOGGER):
        _detach(logging.getLogger(name))
    targets = [PACKAGE_LOGGER, WARNINGS_LOGGER] if capture_warnings else [PACKAGE_LOGGER]
    for name in targets:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.propagate = False
        for handler in handlers:
            logger.addHandler(handler)
    logging.captureWarnings(capture_warnings)

    if module_levels:
        for logger_name, logger_level in module_levels.items():
            logging.getLogger(logger_name).setLevel(logger_level)
    return logging.getLogger(PACKAGE_LOGGER)
