# Path: provisioner/core/logger.py
"""
Provisioner Logger

Centralized logging configuration for the provisioner.

Architecture:
- Component-based logging (core, engine, cli, extraction)
- Rich console output (progress messages on stdout)
- Optional activity log directory
- Per-run log file receiving every warning and error
- IPO (Input-Process-Output) structured logging
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from provisioner.core.config_loader import ConfigLoader
from provisioner.constants import (
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    CONSOLE_LOG_FORMAT,
    LOGGER_ROOT,
    LOGGER_CORE,
    LOGGER_ENGINE,
    LOGGER_CLI,
    LOGGER_EXTRACTION,
)

# Shared console so progress bars and log lines do not interleave
console = Console()


class ProvisionerLogger:
    """
    Centralized logger for the provisioner.

    Provides component-specific loggers with unified configuration.

    Example:
        logger = get_logger(__name__, 'engine')
        logger.info("[INPUT] Locating binutils-2.30")
        logger.info("[PROCESS] Probing https://gcc.gnu.org/pub/binutils")
        logger.info("[OUTPUT] Staged binutils-2.30")
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        """
        Initialize provisioner logger.

        Args:
            config: Optional ConfigLoader instance
        """
        self.config = config if config else ConfigLoader()
        self._configured = False

    def configure(self) -> None:
        """Configure logging system for the provisioner."""
        if self._configured:
            return

        log_dir = self.config.get('log_dir')
        log_level = self.config.get('log_level', 'INFO')
        console_output = self.config.get('log_console', True)
        level = getattr(logging, log_level.upper(), logging.INFO)

        logger = logging.getLogger(LOGGER_ROOT)
        logger.setLevel(level)

        # Clear any existing handlers
        logger.handlers.clear()

        # Activity log files (optional)
        if log_dir:
            log_dir.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_dir / 'provisioner_activity.log')
            file_handler.setLevel(level)
            file_handler.setFormatter(
                logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
            )
            logger.addHandler(file_handler)

            error_handler = logging.FileHandler(log_dir / 'errors.log')
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(
                logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
            )
            logger.addHandler(error_handler)

        if console_output:
            console_handler = RichHandler(
                console=console,
                show_path=False,
                markup=False,
                rich_tracebacks=True,
            )
            console_handler.setLevel(level)
            console_handler.setFormatter(logging.Formatter(CONSOLE_LOG_FORMAT))
            logger.addHandler(console_handler)

        self._configured = True

    def get_logger(self, name: str, component: str = 'core') -> logging.Logger:
        """
        Get logger for specific component.

        Args:
            name: Module name (typically __name__)
            component: Component type ('core', 'engine', 'cli', 'extraction')

        Returns:
            Configured logger instance
        """
        if not self._configured:
            self.configure()

        if component == 'core':
            logger_name = f"{LOGGER_CORE}.{name}"
        elif component == 'engine':
            logger_name = f"{LOGGER_ENGINE}.{name}"
        elif component == 'cli':
            logger_name = f"{LOGGER_CLI}.{name}"
        elif component == 'extraction':
            logger_name = f"{LOGGER_EXTRACTION}.{name}"
        else:
            logger_name = f"{LOGGER_ROOT}.{name}"

        return logging.getLogger(logger_name)


# Global logger instance
_provisioner_logger = ProvisionerLogger()


def get_logger(name: str, component: str = 'core') -> logging.Logger:
    """
    Get logger for a provisioner component.

    Args:
        name: Module name (typically __name__)
        component: Component type ('core', 'engine', 'cli', 'extraction')

    Returns:
        Configured logger instance

    Example:
        from provisioner.core.logger import get_logger

        logger = get_logger(__name__, 'engine')
        logger.info("[INPUT] Processing manifest record")
    """
    return _provisioner_logger.get_logger(name, component)


def configure_logging(config: Optional[ConfigLoader] = None) -> None:
    """
    Configure provisioner logging system.

    Call this once at startup.

    Args:
        config: Optional ConfigLoader instance
    """
    global _provisioner_logger

    if config:
        _provisioner_logger = ProvisionerLogger(config)

    _provisioner_logger.configure()


def attach_run_log(log_path: Path) -> logging.Handler:
    """
    Tee every warning and error of this run into log_path.

    Args:
        log_path: Run log file (appended to)

    Returns:
        The attached handler, for detach_run_log()
    """
    handler = logging.FileHandler(log_path, mode='a')
    handler.setLevel(logging.WARNING)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logging.getLogger(LOGGER_ROOT).addHandler(handler)
    return handler


def detach_run_log(handler: logging.Handler) -> None:
    """Remove and close a handler installed by attach_run_log()."""
    logging.getLogger(LOGGER_ROOT).removeHandler(handler)
    handler.close()


__all__ = [
    'get_logger',
    'configure_logging',
    'attach_run_log',
    'detach_run_log',
    'ProvisionerLogger',
    'console',
]
