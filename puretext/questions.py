"""User question lookup.

Finds the user turn that prompted a response so exports can be titled
after it. Known sites have a conversation-container selector list and a
user-message selector list; unknown sites search a few ancestor levels for
common user-message selectors.
"""

import re
from typing import Optional

from bs4 import Tag

from logger import logger
from .dom import ancestors, text_content
from .sites import resolve_site

GENERIC_USER_SELECTORS = [
    '.user-message',
    '[data-role="user"]',
    '[data-testid="user-message"]',
    '[data-message-author-role="user"]',
    '.user-content',
    '.human-message',
]

GENERIC_SEARCH_DEPTH = 4

QUESTION_LIMIT = 50

_ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')


def clean_question_text(text: Optional[str], limit: int = QUESTION_LIMIT) -> str:
    """Collapse whitespace, truncate with '...' and make filename-safe."""
    if not text:
        return ''
    cleaned = re.sub(r'\s+', ' ', text).strip()
    if len(cleaned) > limit:
        cleaned = cleaned[:limit] + '...'
    return _ILLEGAL_FILENAME_CHARS.sub('_', cleaned)


def _closest(node: Tag, selectors) -> Optional[Tag]:
    for selector in selectors:
        found = node.css.closest(selector)
        if found is not None:
            return found
    return None


def _first_text(container: Tag, selectors) -> str:
    for selector in selectors:
        message = container.select_one(selector)
        if message is not None:
            text = text_content(message).strip()
            if text:
                return clean_question_text(text)
    return ''


def find_user_question(node: Tag, site_key: Optional[str] = None) -> str:
    """Question text for the response at ``node``, or '' when none is found."""
    if not isinstance(node, Tag):
        return ''
    try:
        site = resolve_site(site_key)
        if site is not None:
            containers, users = site.question_lookup
            container = _closest(node, containers)
            return _first_text(container, users) if container is not None else ''

        for ancestor in ancestors(node, GENERIC_SEARCH_DEPTH):
            text = _first_text(ancestor, GENERIC_USER_SELECTORS)
            if text:
                return text
        return ''
    except Exception as e:
        logger.error(f"User question lookup failed: {e}")
        return ''
