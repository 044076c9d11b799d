import logging
import sys
from typing import Optional
from core.config import settings

ROOT_LOGGER_NAME = "webmind"
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

_configured = False

def _configure_root():
    """Attach handlers to the application root logger once"""
    global _configured
    if _configured:
        return
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        try:
            handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))
        except OSError as e:
            print(f"[WARN] Failed to open log file {settings.log_file} ({e}). Logging to stdout only.", file=sys.stderr)
    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.propagate = False
    _configured = True

def get_logger(name: Optional[str] = None) -> logging.Logger:
    _configure_root()
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
