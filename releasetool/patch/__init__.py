"""
Structured-document patching: replace one value in one section occurrence
of a YAML file without disturbing anything else.
"""

from .document import StructuredDocument, Section
from .patcher import DocumentPatcher
from .renderer import render_scalar, is_plain_safe

__all__ = [
    'StructuredDocument',
    'Section',
    'DocumentPatcher',
    'render_scalar',
    'is_plain_safe',
]
