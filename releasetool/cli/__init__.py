"""
Command-line interface for releasetool.
"""

from .release_cli import cli

__all__ = ['cli']
