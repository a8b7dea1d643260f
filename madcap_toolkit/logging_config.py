from __future__ import annotations

"""Central logging configuration for the MadCap toolkit.

Import and call :func:`setup_logging` at application start-up.  The library
modules only create loggers; they never configure handlers themselves.
"""

import copy
import logging
import logging.config
import os
from typing import Any, Dict, Optional

from madcap_toolkit.config import ConfigManager

__all__ = ["setup_logging"]

LOG_DIR_ENV = "MADCAP_LOG_DIR"
DEBUG_MODULES_ENV = "MADCAP_DEBUG_MODULES"


def setup_logging(console_level: Optional[int] = None) -> None:
    """Configure logging for the application using configuration from YAML files.

    The file handler is only kept when ``$MADCAP_LOG_DIR`` is set; its log is
    written to ``app.log`` in that directory.  *console_level* overrides the
    level of the console handler (e.g. ``logging.DEBUG`` for ``-v``).
    """
    log_dir = os.environ.get(LOG_DIR_ENV, "").strip()
    log_file = os.path.join(log_dir, "app.log") if log_dir else None

    try:
        logging_config = copy.deepcopy(ConfigManager().get_logging_config())
        if logging_config and isinstance(logging_config, dict) and logging_config.get("version"):
            _route_file_handler(logging_config, log_dir, log_file)
            if console_level is not None and "console" in logging_config.get("handlers", {}):
                logging_config["handlers"]["console"]["level"] = console_level
            logging.config.dictConfig(logging_config)
            logging.debug("===== Logging initialised from config files =====")
        else:
            _setup_minimal_logging(console_level)
    except (ValueError, TypeError, AttributeError, ImportError, OSError) as exc:
        # dictConfig reports a bad configuration through these.
        print(f"Error loading logging config: {exc}")
        _setup_minimal_logging(console_level)

    _apply_debug_overrides()


def _route_file_handler(logging_config: Dict[str, Any], log_dir: str, log_file: Optional[str]) -> None:
    """Point the ``file`` handler at *log_file*, or drop it when there is none."""
    handlers = logging_config.get("handlers", {})
    if "file" not in handlers:
        return
    if log_file:
        os.makedirs(log_dir, exist_ok=True)
        handlers["file"]["filename"] = log_file
        return

    del handlers["file"]
    sections = [logging_config.get("root", {})] + list(logging_config.get("loggers", {}).values())
    for section in sections:
        if "file" in section.get("handlers", []):
            section["handlers"] = [h for h in section["handlers"] if h != "file"]


def _setup_minimal_logging(console_level: Optional[int] = None) -> None:
    """Set up minimal console-only logging when config is unavailable."""
    minimal_config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'simple': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'simple',
                'level': console_level or 'WARNING',
            },
        },
        'root': {
            'level': 'INFO',
            'handlers': ['console'],
        },
    }

    logging.config.dictConfig(minimal_config)
    logging.error("===== Logging initialised with minimal fallback (config error) =====")


def _apply_debug_overrides() -> None:
    """Apply environment-driven module-specific debug overrides.

    ``MADCAP_DEBUG_MODULES=comma,separated,logger,names`` sets DEBUG on the
    listed loggers, e.g. ``madcap_toolkit.core.converter.list_reconstructor``.
    """
    extra_modules = os.environ.get(DEBUG_MODULES_ENV, '').strip()
    targets = [m.strip() for m in extra_modules.split(',') if m.strip()]
    for name in targets:
        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)
        # Ensure at least one handler emits DEBUG for this logger
        has_debug_handler = any(
            h.level == logging.NOTSET or h.level <= logging.DEBUG for h in logger.handlers
        )
        if not has_debug_handler:
            h = logging.StreamHandler()
            h.setLevel(logging.DEBUG)
            h.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            logger.addHandler(h)
        logger.info("Debug override active for logger '%s'", name)
