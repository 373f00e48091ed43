"""Install the console and rotating file handlers described by ``LogSettings``."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from repo_triage.adapters.settings import LogSettings
from repo_triage.core.result_extractor import PAYLOAD_LOGGER_NAME

_OWNED_HANDLER_ATTR = "_repo_triage_owned"
_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def build_log_handlers(settings: LogSettings) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)
    settings.path.parent.mkdir(parents=True, exist_ok=True)
    handlers: list[logging.Handler] = [
        logging.StreamHandler(),
        RotatingFileHandler(
            filename=settings.path,
            maxBytes=settings.max_bytes,
            backupCount=settings.backup_count,
            encoding="utf-8",
        ),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _OWNED_HANDLER_ATTR, True)
    return handlers


def configure_runtime_logging(settings: LogSettings) -> None:
    """Apply ``settings`` to the root logger.

    Calling again replaces only the handlers installed by a previous call;
    handlers added by the host application are left in place.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _OWNED_HANDLER_ATTR, False):
            root.removeHandler(handler)
            handler.close()
    for handler in build_log_handlers(settings):
        root.addHandler(handler)
    root.setLevel(settings.level)
    logging.getLogger(PAYLOAD_LOGGER_NAME).setLevel(settings.payload_level)
    logging.getLogger("httpx").setLevel(settings.httpx_level)
    logging.getLogger(__name__).info(
        "logging.configured level=%s path=%s payload_level=%s",
        logging.getLevelName(settings.level),
        settings.path,
        logging.getLevelName(settings.payload_level),
    )
