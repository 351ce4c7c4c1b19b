# Path: provisioner/constants.py
"""
Provisioner Module Constants

Module-wide constants for component acquisition.
Engine-specific constants live in engine/constants.py,
extraction constants in engine/extraction/constants.py.

No hardcoded paths - all paths come from .env via config_loader.
"""

# ============================================================================
# RECORD CLASSES
# ============================================================================
CLASS_TOOLCHAIN: str = 'toolchain'
CLASS_DREAMCAST: str = 'dreamcast'
CLASS_LIB: str = 'lib'

# ============================================================================
# STATUS VALUES
# ============================================================================
STATUS_FETCHED: str = 'fetched'
STATUS_SKIPPED: str = 'skipped'
STATUS_FAILED: str = 'failed'

RUN_OK: str = 'ok'
RUN_FAIL: str = 'fail'

# ============================================================================
# ERROR STAGES
# ============================================================================
STAGE_TRANSPORT: str = 'transport'
STAGE_LOCATE: str = 'locate'
STAGE_CHECKSUM: str = 'checksum'
STAGE_DOWNLOAD: str = 'download'
STAGE_VERIFICATION: str = 'verification'
STAGE_EXTRACTION: str = 'extraction'
STAGE_CLONE: str = 'clone'
STAGE_UNEXPECTED: str = 'unexpected'

# ============================================================================
# HTTP STATUS CODES
# ============================================================================
HTTP_OK: int = 200
HTTP_PARTIAL_CONTENT: int = 206
HTTP_NOT_FOUND: int = 404
HTTP_RANGE_NOT_SATISFIABLE: int = 416
HTTP_TOO_MANY_REQUESTS: int = 429
HTTP_SERVER_ERROR: int = 500
HTTP_BAD_GATEWAY: int = 502
HTTP_SERVICE_UNAVAILABLE: int = 503
HTTP_GATEWAY_TIMEOUT: int = 504
RETRYABLE_STATUS_CODES: list = [
    HTTP_TOO_MANY_REQUESTS,
    HTTP_SERVER_ERROR,
    HTTP_BAD_GATEWAY,
    HTTP_SERVICE_UNAVAILABLE,
    HTTP_GATEWAY_TIMEOUT
]

# ============================================================================
# DOWNLOAD CONFIGURATION DEFAULTS
# ============================================================================
DEFAULT_CHUNK_SIZE: int = 65536  # 64KB chunks for streaming
DEFAULT_TIMEOUT: int = 1800  # 30 minutes, gcc tarballs are large
DEFAULT_CONNECT_TIMEOUT: int = 30
DEFAULT_RETRY_ATTEMPTS: int = 3
DEFAULT_RETRY_DELAY: float = 1.0
DEFAULT_MAX_RETRY_DELAY: int = 60
DEFAULT_CLONE_TIMEOUT: int = 1800
DEFAULT_EXTRACT_TIMEOUT: int = 1800

# ============================================================================
# SOURCE LOCATIONS
# ============================================================================
DEFAULT_MIRROR_URL: str = 'https://gcc.gnu.org/pub'
GITHUB_HTTPS_PREFIX: str = 'https://github.com'
GITHUB_SSH_PREFIX: str = 'git@github.com:'
DEFAULT_BRANCH: str = 'master'
DEFAULT_ORGANIZATION: str = 'KallistiOS'
DEFAULT_REMOTE_NAME: str = 'KallistiOS'

# ============================================================================
# FILE NAMES
# ============================================================================
DEFAULT_MANIFEST_NAME: str = 'components.conf'
STAGING_DIRNAME: str = 'builds'
CHECKSUM_MANIFEST_NAME: str = 'sha512.sum'
CHECKSUM_SCRATCH_NAME: str = 'checksums.txt'
RUN_LOG_PATTERN: str = 'build-%Y-%m-%d-%H%M.log'

# ============================================================================
# FAILURE STRATEGIES
# ============================================================================
STRATEGY_STOP: str = 'stop'
STRATEGY_CONTINUE: str = 'continue'

# ============================================================================
# IPO LOGGING PREFIXES
# ============================================================================
LOG_INPUT: str = '[INPUT]'
LOG_PROCESS: str = '[PROCESS]'
LOG_OUTPUT: str = '[OUTPUT]'

# ============================================================================
# LOGGING COMPONENTS
# ============================================================================
LOGGER_ROOT: str = 'provisioner'
LOGGER_CORE: str = 'provisioner.core'
LOGGER_ENGINE: str = 'provisioner.engine'
LOGGER_CLI: str = 'provisioner.cli'
LOGGER_EXTRACTION: str = 'provisioner.extraction'

# ============================================================================
# LOG FORMAT
# ============================================================================
LOG_FORMAT: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT: str = '%Y-%m-%d %H:%M:%S'
CONSOLE_LOG_FORMAT: str = '%(message)s'

# ============================================================================
# ENVIRONMENT VARIABLE NAMES
# ============================================================================
ENV_MANIFEST: str = 'PROVISIONER_MANIFEST'
ENV_STAGING_DIR: str = 'PROVISIONER_STAGING_DIR'
ENV_LOG_DIR: str = 'PROVISIONER_LOG_DIR'
ENV_MIRROR_URL: str = 'PROVISIONER_MIRROR_URL'
ENV_REMOTE_NAME: str = 'PROVISIONER_REMOTE_NAME'
ENV_REQUEST_TIMEOUT: str = 'PROVISIONER_REQUEST_TIMEOUT'
ENV_CONNECT_TIMEOUT: str = 'PROVISIONER_CONNECT_TIMEOUT'
ENV_CLONE_TIMEOUT: str = 'PROVISIONER_CLONE_TIMEOUT'
ENV_EXTRACT_TIMEOUT: str = 'PROVISIONER_EXTRACT_TIMEOUT'
ENV_RETRY_ATTEMPTS: str = 'PROVISIONER_RETRY_ATTEMPTS'
ENV_RETRY_DELAY: str = 'PROVISIONER_RETRY_DELAY'
ENV_MAX_RETRY_DELAY: str = 'PROVISIONER_MAX_RETRY_DELAY'
ENV_CHUNK_SIZE: str = 'PROVISIONER_CHUNK_SIZE'
ENV_ENABLE_RESUME: str = 'PROVISIONER_ENABLE_RESUME'
ENV_VERIFY_CHECKSUMS: str = 'PROVISIONER_VERIFY_CHECKSUMS'
ENV_KEEP_ARCHIVES: str = 'PROVISIONER_KEEP_ARCHIVES'
ENV_MAX_ARCHIVE_SIZE: str = 'PROVISIONER_MAX_ARCHIVE_SIZE'
ENV_FAILURE_STRATEGY: str = 'PROVISIONER_FAILURE_STRATEGY'
ENV_LOG_LEVEL: str = 'PROVISIONER_LOG_LEVEL'
ENV_LOG_CONSOLE: str = 'PROVISIONER_LOG_CONSOLE'

# ============================================================================
# EXTRACTION LIMITS
# ============================================================================
MAX_ARCHIVE_SIZE: int = 4 * 1024 * 1024 * 1024  # 4GB unpacked, gcc is ~1GB
MAX_EXTRACTION_DEPTH: int = 64
