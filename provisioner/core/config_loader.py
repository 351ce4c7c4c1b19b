# Path: provisioner/core/config_loader.py
"""
Provisioner Configuration Loader

Centralized configuration management for the provisioner.
Loads environment variables with type safety and defaults.

Architecture:
- Singleton pattern for process-wide defaults
- Type-safe access with validation
- Optional .env file next to the project root
- Nothing is required; every value has a default

The loader only supplies defaults. The engine never reads it directly:
per-run values are frozen into RunSettings (see core/settings.py).
"""

import os
from typing import Any, Optional
from pathlib import Path
from dotenv import load_dotenv

from provisioner.constants import (
    ENV_MANIFEST,
    ENV_STAGING_DIR,
    ENV_LOG_DIR,
    ENV_MIRROR_URL,
    ENV_REMOTE_NAME,
    ENV_REQUEST_TIMEOUT,
    ENV_CONNECT_TIMEOUT,
    ENV_CLONE_TIMEOUT,
    ENV_EXTRACT_TIMEOUT,
    ENV_RETRY_ATTEMPTS,
    ENV_RETRY_DELAY,
    ENV_MAX_RETRY_DELAY,
    ENV_CHUNK_SIZE,
    ENV_ENABLE_RESUME,
    ENV_VERIFY_CHECKSUMS,
    ENV_KEEP_ARCHIVES,
    ENV_MAX_ARCHIVE_SIZE,
    ENV_FAILURE_STRATEGY,
    ENV_LOG_LEVEL,
    ENV_LOG_CONSOLE,
    DEFAULT_MANIFEST_NAME,
    DEFAULT_MIRROR_URL,
    DEFAULT_REMOTE_NAME,
    DEFAULT_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_CLONE_TIMEOUT,
    DEFAULT_EXTRACT_TIMEOUT,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_MAX_RETRY_DELAY,
    DEFAULT_CHUNK_SIZE,
    MAX_ARCHIVE_SIZE,
    STRATEGY_STOP,
)


class ConfigLoader:
    """
    Singleton configuration loader.

    Loads configuration from environment variables with validation,
    type conversion, and sensible defaults.

    Example:
        config = ConfigLoader()
        mirror = config.get('mirror_url')
        chunk_size = config.get('chunk_size')
    """

    _instance: Optional['ConfigLoader'] = None
    _initialized: bool = False

    def __new__(cls) -> 'ConfigLoader':
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """
        Initialize configuration loader.

        Only runs once due to singleton pattern.
        """
        if ConfigLoader._initialized:
            return

        # config_loader.py is at: <root>/provisioner/core/config_loader.py
        current_file = Path(__file__).resolve()
        project_root = current_file.parent.parent.parent
        env_path = project_root / '.env'

        if env_path.exists():
            load_dotenv(dotenv_path=env_path, interpolate=True)

        # A .env in the working directory overrides nothing already set
        load_dotenv(override=False)

        self._config = self._load_configuration()
        ConfigLoader._initialized = True

    @classmethod
    def reset(cls) -> None:
        """Drop the cached instance so the environment is re-read."""
        cls._instance = None
        cls._initialized = False

    def _load_configuration(self) -> dict[str, Any]:
        """
        Load all configuration from environment.

        Returns:
            Dictionary of validated configuration values
        """
        config = {
            # ================================================================
            # LOCATIONS
            # ================================================================
            'manifest_path': self._get_path(ENV_MANIFEST) or Path(DEFAULT_MANIFEST_NAME),
            'staging_dir': self._get_path(ENV_STAGING_DIR),
            'log_dir': self._get_path(ENV_LOG_DIR),
            'mirror_url': self._get_env(ENV_MIRROR_URL, DEFAULT_MIRROR_URL),
            'remote_name': self._get_env(ENV_REMOTE_NAME, DEFAULT_REMOTE_NAME),

            # ================================================================
            # TRANSFER CONFIGURATION
            # ================================================================
            'request_timeout': self._get_int(ENV_REQUEST_TIMEOUT, DEFAULT_TIMEOUT),
            'connect_timeout': self._get_int(ENV_CONNECT_TIMEOUT, DEFAULT_CONNECT_TIMEOUT),
            'clone_timeout': self._get_int(ENV_CLONE_TIMEOUT, DEFAULT_CLONE_TIMEOUT),
            'extract_timeout': self._get_int(ENV_EXTRACT_TIMEOUT, DEFAULT_EXTRACT_TIMEOUT),
            'retry_attempts': self._get_int(ENV_RETRY_ATTEMPTS, DEFAULT_RETRY_ATTEMPTS),
            'retry_delay': self._get_float(ENV_RETRY_DELAY, DEFAULT_RETRY_DELAY),
            'max_retry_delay': self._get_int(ENV_MAX_RETRY_DELAY, DEFAULT_MAX_RETRY_DELAY),
            'chunk_size': self._get_int(ENV_CHUNK_SIZE, DEFAULT_CHUNK_SIZE),
            'enable_resume': self._get_bool(ENV_ENABLE_RESUME, True),

            # ================================================================
            # VERIFICATION AND EXTRACTION
            # ================================================================
            'verify_checksums': self._get_bool(ENV_VERIFY_CHECKSUMS, True),
            'keep_archives': self._get_bool(ENV_KEEP_ARCHIVES, True),
            'max_archive_size': self._get_int(ENV_MAX_ARCHIVE_SIZE, MAX_ARCHIVE_SIZE),

            # ================================================================
            # RUN POLICY
            # ================================================================
            'failure_strategy': self._get_env(ENV_FAILURE_STRATEGY, STRATEGY_STOP).lower(),

            # ================================================================
            # LOGGING CONFIGURATION
            # ================================================================
            'log_level': self._get_env(ENV_LOG_LEVEL, 'INFO'),
            'log_console': self._get_bool(ENV_LOG_CONSOLE, True),
        }

        return config

    def _get_env(self, key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
        """
        Get string environment variable.

        Args:
            key: Environment variable name
            default: Default value if not found
            required: If True, raises ValueError when missing

        Returns:
            Environment variable value or default

        Raises:
            ValueError: If required and not found
        """
        value = os.getenv(key)

        if value is None or not value.strip():
            if required:
                raise ValueError(f"Required environment variable not set: {key}")
            return default

        return value.strip()

    def _get_bool(self, key: str, default: bool) -> bool:
        """
        Get boolean environment variable.

        Args:
            key: Environment variable name
            default: Default value if not found

        Returns:
            Boolean value
        """
        value = os.getenv(key)
        if value is None:
            return default

        return value.strip().lower() in ('true', '1', 'yes', 'on')

    def _get_int(self, key: str, default: int) -> int:
        """
        Get integer environment variable.

        Args:
            key: Environment variable name
            default: Default value if not found or invalid

        Returns:
            Integer value
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value.strip())
        except ValueError:
            return default

    def _get_float(self, key: str, default: float) -> float:
        """
        Get float environment variable.

        Args:
            key: Environment variable name
            default: Default value if not found or invalid

        Returns:
            Float value
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return float(value.strip())
        except ValueError:
            return default

    def _get_path(self, key: str, required: bool = False) -> Optional[Path]:
        """
        Get path environment variable.

        Args:
            key: Environment variable name
            required: If True, raises ValueError when missing

        Returns:
            Path object or None

        Raises:
            ValueError: If required and not found
        """
        value = os.getenv(key)

        if value is None or not value.strip():
            if required:
                raise ValueError(f"Required environment variable not set: {key}")
            return None

        return Path(value.strip()).expanduser()

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value.

        Args:
            key: Configuration key
            default: Default value if not found

        Returns:
            Configuration value or default
        """
        return self._config.get(key, default)

    def __getitem__(self, key: str) -> Any:
        """Dictionary-style access to configuration."""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        """Check if configuration key exists."""
        return key in self._config

    def keys(self):
        """Get all configuration keys."""
        return self._config.keys()

    def items(self):
        """Get all configuration key-value pairs."""
        return self._config.items()


__all__ = ['ConfigLoader']
