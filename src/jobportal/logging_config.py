from __future__ import annotations

import logging

from jobportal.config import get_settings

_LOG_CONFIGURED = False
_CHATTY_LOGGERS = ("httpx", "openai", "multipart")


def configure_logging(level: str | None = None) -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # Transport libraries log every request at INFO; the scheduler polls constantly.
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    _LOG_CONFIGURED = True
