# Path: provisioner/__init__.py
"""
Toolchain Provisioner

Fetches, verifies and stages toolchain sources listed in a component
manifest: GNU release tarballs, GitHub repositories and libraries.

Modules:
- core: configuration, run settings, logging
- engine: manifest dispatch, fetchers, transport, extraction
- cli: command-line front end
"""

__version__ = '1.0.0'
