"""
Configuration loading for releasetool.
"""

from .global_config_loader import (
    GlobalConfig,
    PatchConfig,
    ReleaseConfig,
    LoggingConfig,
    load_global_config,
    parse_units
)

__all__ = [
    'GlobalConfig',
    'PatchConfig',
    'ReleaseConfig',
    'LoggingConfig',
    'load_global_config',
    'parse_units',
]
