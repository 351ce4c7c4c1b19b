# Path: provisioner/cli/__init__.py
"""
Provisioner CLI Module

Command-line interface for staging toolchain sources.
"""

from provisioner.cli.provision_cli import ProvisionCLI, main

__all__ = ['ProvisionCLI', 'main']
