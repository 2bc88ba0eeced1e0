#!/usr/bin/env python3
"""
Main entry point for releasetool.
"""
from .cli.release_cli import cli


def main():
    """Run the releasetool CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
