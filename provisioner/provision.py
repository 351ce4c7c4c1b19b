# Path: provisioner/provision.py
"""
Toolchain Provisioner - Main Entry Point

Stages the sources listed in a component manifest.
Run from the project root: python -m provisioner.provision

Architecture:
- Reads components.conf (or --manifest / PROVISIONER_MANIFEST)
- Fetches each component into the staging directory
- Exit status 0 on success, 1 on any failure

Usage:
    python -m provisioner.provision --help
"""

import sys

from provisioner.cli.provision_cli import main


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(main(sys.argv[1:]))
    except KeyboardInterrupt:
        print("\n\nProvisioning cancelled by user.")
        sys.exit(1)


if __name__ == '__main__':
    run()
