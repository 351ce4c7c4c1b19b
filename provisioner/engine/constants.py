# Path: provisioner/engine/constants.py
"""
Engine Constants

Constants used by engine components: HTTP headers, connection
settings and the git client.
"""

# ============================================================================
# HTTP HEADERS
# ============================================================================
HEADER_USER_AGENT = 'User-Agent'
HEADER_ACCEPT = 'Accept'
HEADER_ACCEPT_ENCODING = 'Accept-Encoding'
HEADER_RANGE = 'Range'
HEADER_CONTENT_LENGTH = 'Content-Length'

DEFAULT_USER_AGENT = 'provisioner/1.0 (toolchain source fetcher)'
DEFAULT_ACCEPT_HEADER = '*/*'
# Archives must arrive byte-identical for digest checks
DEFAULT_ACCEPT_ENCODING = 'identity'

# ============================================================================
# CONNECTION SETTINGS
# ============================================================================
MAX_CONCURRENT_CONNECTIONS = 4
FORCE_CLOSE_CONNECTIONS = False
VALID_URL_SCHEMES = ('http', 'https')

# ============================================================================
# GIT CLIENT
# ============================================================================
GIT_EXECUTABLE = 'git'
GIT_ENVIRONMENT = {
    'GIT_TERMINAL_PROMPT': '0',
}
GIT_SUFFIX = '.git'

# ============================================================================
# GITHUB ARCHIVES
# ============================================================================
GITHUB_ARCHIVE_PATH = '{prefix}/{organization}/{repo}/archive/{branch}.tar.gz'
