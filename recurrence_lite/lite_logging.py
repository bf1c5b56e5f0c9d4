"""
Central logging configuration for recurrence_lite.

Keeps the package's own loggers at INFO (DEBUG on request) and holds the
icalendar library to INFO so large imports do not flood the console.
"""

import logging
import os
from typing import Optional

# Package loggers whose level follows the debug switch
LITE_MODULES = [
    "recurrence_lite",
    "recurrence_lite.calendar.lite_rrule_interpreter",
    "recurrence_lite.calendar.lite_ics_importer",
    "recurrence_lite.domain.window_expander",
    "recurrence_lite.domain.exception_overlay",
    "recurrence_lite.domain.occurrence_pipeline",
]

# Third-party loggers kept quiet regardless of debug mode
THIRD_PARTY_LEVELS: dict[str, int] = {
    "icalendar": logging.INFO,
}

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def configure_lite_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for recurrence_lite.

    Args:
        debug_mode: Whether to enable debug logging for recurrence_lite modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        RECURRENCE_LITE_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        RECURRENCE_LITE_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("RECURRENCE_LITE_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("RECURRENCE_LITE_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in _VALID_LEVELS:
        root_level = getattr(logging, env_log_level)

    # Handlers are installed by recurrence_lite._init_logging; only levels here
    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    logger_config: dict[str, int] = dict(THIRD_PARTY_LEVELS)
    lite_level = logging.DEBUG if final_debug else logging.INFO
    for module in LITE_MODULES:
        logger_config[module] = lite_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.debug("Debug logging enabled for recurrence_lite modules")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ["recurrence_lite", *THIRD_PARTY_LEVELS]:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
