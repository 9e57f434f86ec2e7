"""Logging utilities for the storage benchmark."""

import logging
import sys
from pathlib import Path
from typing import Optional
from rich.logging import RichHandler
from rich.console import Console


LOGGER_PREFIX = "py-storagemark"

# Config verbosity (0=quiet, 1=info, 2=debug) mapped to logging levels
VERBOSITY_LEVELS = {
    0: "WARNING",
    1: "INFO",
    2: "DEBUG",
}


def verbosity_to_level(verbosity: int) -> str:
    """Translate a 0-2 verbosity into a logging level name."""
    return VERBOSITY_LEVELS.get(verbosity, "INFO")


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    component: Optional[str] = None,
    enable_rich: bool = True
) -> logging.Logger:
    """Setup logging configuration.

    Handlers are attached to the package root logger so that every
    component logger (``py-storagemark.<component>``) shares them.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        component: Optional component name; returns that child logger
        enable_rich: Enable rich console output

    Returns:
        Configured logger instance
    """
    root = logging.getLogger(LOGGER_PREFIX)
    root.setLevel(getattr(logging, level.upper()))

    # Clear existing handlers
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if enable_rich:
        console_handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            markup=False,
            rich_tracebacks=True
        )
        console_handler.setFormatter(logging.Formatter('%(message)s'))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)

    root.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Prevent propagation to root logger
    root.propagate = False

    if component:
        return get_logger(component)
    return root


def get_logger(component: str) -> logging.Logger:
    """Get logger for component."""
    return logging.getLogger(f"{LOGGER_PREFIX}.{component}")


class LoggerMixin:
    """Mixin class that provides logging capabilities."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._logger = None

    @property
    def logger(self) -> logging.Logger:
        """Get logger for this component."""
        if getattr(self, '_logger', None) is None:
            component_name = self.__class__.__name__.lower()
            self._logger = get_logger(component_name)
        return self._logger
