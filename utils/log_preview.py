"""Log previews - short, single-line renderings of response text.

Response bodies can be long and multi-line; log lines should carry just
enough to recognise which response a message refers to.
"""

import re
from typing import Union

_WHITESPACE = re.compile(r'\s+')

# Control characters other than whitespace break single-line log output
_CONTROL = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')


def preview(value: Union[str, bytes, None], max_length: int = 50) -> str:
    """Collapse and truncate a value for logging.

    Args:
        value: Text (or encoded text) to preview
        max_length: Maximum number of characters kept before the ellipsis

    Returns:
        Single-line preview, suffixed with "..." when truncated
    """
    if value is None:
        return "<None>"

    if isinstance(value, bytes):
        text = value.decode('utf-8', errors='replace')
    else:
        text = str(value)

    text = _CONTROL.sub('', text)
    text = _WHITESPACE.sub(' ', text).strip()

    if len(text) > max_length:
        return text[:max_length] + "..."

    return text


def describe_size(value: Union[str, bytes, None]) -> str:
    """Human-readable size of a payload for log lines."""
    if value is None:
        return "0 chars"
    if isinstance(value, bytes):
        return f"{len(value)} bytes"
    return f"{len(value)} chars"
