"""
CLI runner module.

Provides commands:
- upload: Normalize per-account files and import them to YNAB
- status: Show run history and stale accounts
- init-config: Write a default configuration file
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
