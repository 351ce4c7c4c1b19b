# Path: provisioner/engine/extraction/__init__.py
"""
Extraction Module

Archive extraction for staged sources.
Use ArchiveHandler; it picks the extractor from the file extension.
"""

from provisioner.engine.extraction.archive_handler import (
    ArchiveHandler,
    ZipExtractor,
    TarExtractor,
    BaseExtractor,
    ExtractionCancelled,
    top_level_entries,
)

__all__ = [
    'ArchiveHandler',
    'ZipExtractor',
    'TarExtractor',
    'BaseExtractor',
    'ExtractionCancelled',
    'top_level_entries',
]
