# Path: provisioner/core/__init__.py
"""
Provisioner Core Module

Core utilities: configuration, run settings and logging.
"""

from .config_loader import ConfigLoader
from .settings import RunSettings, detect_make_jobs
from .logger import (
    get_logger,
    configure_logging,
    attach_run_log,
    detach_run_log,
    console,
)

__all__ = [
    'ConfigLoader',
    'RunSettings',
    'detect_make_jobs',
    'get_logger',
    'configure_logging',
    'attach_run_log',
    'detach_run_log',
    'console',
]
