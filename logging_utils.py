"""Logging for the web app and the update job.

Every module calls `get_logger(__name__)`. That returns a child of the
`sdn_openapi` logger which:

- writes its own file under ./logs/ (or $SDN_OPENAPI_LOG_DIR), e.g.
  `jobs_ofac_update.log`, rotated at UTC midnight with 14 days kept
- propagates to `sdn_openapi`, whose handlers write stderr and `app.log`

Lines start with a UTC timestamp and carry the pid, so the job's log and the
web workers' logs can be interleaved when debugging an update.
"""

from __future__ import annotations

import logging
import os
import time
from logging.handlers import TimedRotatingFileHandler


class _UTCFormatter(logging.Formatter):
    converter = staticmethod(time.gmtime)


_APP_LOGGER_NAME = "sdn_openapi"
_LOG_FORMAT = "%(asctime)sZ %(levelname)s pid=%(process)d %(name)s: %(message)s"
_LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"
_BACKUP_DAYS = 14


def logs_dir() -> str:
    override = (os.getenv("SDN_OPENAPI_LOG_DIR") or "").strip()
    if override:
        return override
    return os.path.join(os.path.dirname(__file__), "logs")


def _log_file_name(module_name: str) -> str:
    # "api.api_v1.ofac" -> "api_api_v1_ofac.log"
    name = (module_name or "app").strip() or "app"
    safe = "".join(ch if (ch.isalnum() or ch in {"-", "_"}) else "_" for ch in name)
    return f"{safe}.log"


def _formatter() -> logging.Formatter:
    return _UTCFormatter(fmt=_LOG_FORMAT, datefmt=_LOG_DATEFMT)


def _file_handler(path: str, level: int) -> TimedRotatingFileHandler:
    fh = TimedRotatingFileHandler(
        path,
        when="midnight",
        interval=1,
        backupCount=_BACKUP_DAYS,
        utc=True,
        encoding="utf-8",
    )
    fh.setLevel(level)
    fh.setFormatter(_formatter())
    return fh


def configure_app_logging(level_name: str = "INFO") -> logging.Logger:
    """Attach console + app.log handlers to `sdn_openapi` once; later calls only set the level."""

    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    app_logger = logging.getLogger(_APP_LOGGER_NAME)
    app_logger.setLevel(level)

    if getattr(app_logger, "_configured", False):
        return app_logger

    os.makedirs(logs_dir(), exist_ok=True)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(_formatter())

    app_logger.addHandler(console)
    app_logger.addHandler(_file_handler(os.path.join(logs_dir(), "app.log"), level))

    # Keep records away from the root logger (no double printing under Flask).
    app_logger.propagate = False

    app_logger._configured = True  # type: ignore[attr-defined]
    return app_logger


def set_log_level(level_name: str) -> int:
    """Re-level `sdn_openapi`, every module logger under it and all their handlers.

    Module loggers are created at import time with the level of that moment,
    so changing LOG_LEVEL afterwards (e.g. `--log-level DEBUG`) needs this.
    """

    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    app_logger = configure_app_logging(logging.getLevelName(level))

    loggers = [app_logger]
    prefix = f"{_APP_LOGGER_NAME}."
    for name, candidate in list(logging.root.manager.loggerDict.items()):
        if name.startswith(prefix) and isinstance(candidate, logging.Logger):
            loggers.append(candidate)

    for lg in loggers:
        lg.setLevel(level)
        for h in lg.handlers:
            h.setLevel(level)
    return level


def get_logger(module_name: str | None = None) -> logging.Logger:
    """Module logger with its own rotating file; see the module docstring."""

    base = configure_app_logging(os.getenv("LOG_LEVEL", "INFO"))

    child_name = module_name or "app"
    logger = logging.getLogger(f"{_APP_LOGGER_NAME}.{child_name}")

    if not getattr(logger, "_file_configured", False):
        logger.setLevel(base.level)
        logger.addHandler(
            _file_handler(os.path.join(logs_dir(), _log_file_name(child_name)), base.level)
        )
        logger._file_configured = True  # type: ignore[attr-defined]

    return logger
