"""
Renders replacement scalars in the quoting style of the value they replace.
"""
import json
from typing import Optional

import yaml


# Characters that end or split a plain scalar inside flow collections
FLOW_INDICATORS = set(',[]{}')


def is_plain_safe(value: str) -> bool:
    """
    True when ``value`` can be written unquoted and reads back as the same string.

    Args:
        value: Candidate scalar text

    Returns:
        Whether a plain (unquoted) rendering is lossless
    """
    if not value or value != value.strip():
        return False
    if '\n' in value or '\r' in value:
        return False
    if FLOW_INDICATORS.intersection(value):
        return False
    try:
        loaded = yaml.safe_load(value)
    except yaml.YAMLError:
        return False
    return isinstance(loaded, str) and loaded == value


def double_quoted(value: str) -> str:
    # JSON strings are valid YAML double-quoted scalars
    return json.dumps(value, ensure_ascii=False)


def single_quoted(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def render_scalar(value: str, style: Optional[str]) -> str:
    """
    Render ``value`` keeping the original scalar style where possible.

    Args:
        value: New scalar value
        style: PyYAML scalar style of the old value (None for plain)

    Returns:
        Text to put in place of the old value
    """
    if style == '"':
        return double_quoted(value)
    if style == "'":
        if '\n' in value:
            return double_quoted(value)
        return single_quoted(value)
    if is_plain_safe(value):
        return value
    return double_quoted(value)
