"""Generic fallback walker.

Works on any markup: collects text fragments grouped by their nearest
block-level ancestor and lets structure inference decide what each fragment
is. Used for unknown sites and as the last resort when a site walker fails
or comes back empty.
"""

import asyncio
import re
from typing import Optional

from bs4 import Tag

from ..document import Document
from ..dom import BLOCK_TAGS, HEADING_TAGS, is_text
from ..renderers.clipboard import render_html
from ..structure import infer_blocks
from .base import CancelToken, check

_WHITESPACE = re.compile(r'\s+')


class GenericWalker:
    """Linear-scan walker that always accepts."""

    name = 'generic'

    def can_handle(self, node: Tag) -> bool:
        return True

    def priority(self) -> int:
        return -1

    def build(self, node: Tag, token: Optional[CancelToken] = None) -> Document:
        fragments = extract_text_blocks(node, token)
        blocks = infer_blocks(fragments, detect_code=True, check=lambda: check(token))
        return Document(blocks=blocks)

    async def format(self, node: Tag) -> str:
        document = await asyncio.to_thread(self.build, node)
        return render_html(document)


def _block_ancestor(string, root: Tag) -> Optional[Tag]:
    for parent in string.parents:
        if parent is root:
            return root
        if parent.name in BLOCK_TAGS:
            return parent
    return root


def _marker(block: Tag) -> str:
    """Markdown-style prefix that keeps the source's block role visible to inference."""
    name = block.name
    if name in HEADING_TAGS:
        return '#' * int(name[1]) + ' '
    if name == 'blockquote':
        return '> '
    if name == 'li':
        parent = block.find_parent(['ol', 'ul'])
        if parent is not None and parent.name == 'ol':
            items = parent.find_all('li', recursive=False)
            position = next((i for i, li in enumerate(items) if li is block), 0)
            return f"{position + 1}. "
        return '• '
    return ''


def extract_text_blocks(node: Tag, token: Optional[CancelToken] = None) -> list[str]:
    """Split a tree into text fragments at block boundaries and <br>.

    Preformatted text keeps its line breaks and comes back fenced so the
    code detector recognises it. Whitespace-only fragments are dropped.
    """
    fragments: list[str] = []
    parts: list[str] = []
    current: Optional[Tag] = None

    def flush():
        if current is not None and parts:
            raw = ''.join(parts)
            if current.name == 'pre':
                if raw.strip():
                    fragments.append(f"```\n{raw.strip(chr(10))}\n```")
            else:
                text = _WHITESPACE.sub(' ', raw).strip()
                if text:
                    marker = _marker(current)
                    if marker:
                        text = marker + text
                    fragments.append(text)
        parts.clear()

    for element in node.descendants:
        check(token)
        if isinstance(element, Tag):
            if element.name == 'br':
                flush()
            continue
        if not is_text(element):
            continue
        block = _block_ancestor(element, node)
        if block is not current:
            flush()
            current = block
        parts.append(str(element))

    flush()
    return fragments
