# Path: provisioner/engine/extraction/constants.py
"""
Extraction Module Constants

Centralized constants for archive extraction.
"""

# Archive read modes
ZIP_READ_MODE = 'r'

# TAR compression modes
TAR_READ_MODE = 'r'
TAR_GZ_MODE = 'r:gz'
TAR_BZ2_MODE = 'r:bz2'
TAR_XZ_MODE = 'r:xz'

# Extraction filter for tarfile (Python 3.12+), keeps exec bits
TAR_EXTRACTION_FILTER = 'tar'

# Supported archive file extensions
ARCHIVE_EXTENSIONS_ZIP = '.zip'
ARCHIVE_EXTENSIONS_TAR = '.tar'
ARCHIVE_EXTENSIONS_TAR_GZ = '.tar.gz'
ARCHIVE_EXTENSIONS_TGZ = '.tgz'
ARCHIVE_EXTENSIONS_TAR_BZ2 = '.tar.bz2'
ARCHIVE_EXTENSIONS_TBZ2 = '.tbz2'
ARCHIVE_EXTENSIONS_TAR_XZ = '.tar.xz'
ARCHIVE_EXTENSIONS_TXZ = '.txz'

# Scratch directory used when unpacking under a new name
UNPACK_SCRATCH_PREFIX = '.unpack-'
