"""Thin helpers over BeautifulSoup trees.

Everything the pipeline touches is a bs4 Tag. These helpers keep the
tree-handling idioms (class lookup, ancestor walks, safe removal, snapshots)
in one place.
"""

import copy
from typing import Iterator, Optional, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

import config
from .errors import MalformedInput

BLOCK_TAGS = {
    'address', 'article', 'aside', 'blockquote', 'details', 'dd', 'div', 'dl', 'dt',
    'fieldset', 'figcaption', 'figure', 'footer', 'form', 'h1', 'h2', 'h3', 'h4',
    'h5', 'h6', 'header', 'hr', 'li', 'main', 'nav', 'ol', 'p', 'pre', 'section',
    'summary', 'table', 'tbody', 'td', 'tfoot', 'th', 'thead', 'tr', 'ul',
}

HEADING_TAGS = {'h1', 'h2', 'h3', 'h4', 'h5', 'h6'}

NON_CONTENT_TAGS = {'script', 'style', 'noscript', 'template', 'svg', 'head', 'title', 'meta', 'link'}


def parse_fragment(markup: str, parser: Optional[str] = None) -> Tag:
    """Parse a markup string into a container Tag.

    Full documents resolve to their <body>; fragments resolve to the soup
    itself so no wrapper element is invented.
    """
    if markup is None or not str(markup).strip():
        raise MalformedInput("Empty markup")
    soup = BeautifulSoup(markup, parser or config.HTML_PARSER)
    body = soup.body
    return body if body is not None else soup


def snapshot(source: Union[Tag, str]) -> Tag:
    """Return a detached deep copy the pipeline may mutate freely."""
    if source is None:
        raise MalformedInput("No container node supplied")
    if isinstance(source, str):
        return parse_fragment(source)
    if not isinstance(source, Tag):
        raise MalformedInput(f"Unsupported container type: {type(source).__name__}")
    # Tag.__copy__ copies the whole subtree and detaches it from the parse tree
    return copy.copy(source)


def is_text(node) -> bool:
    """True for visible text nodes (not comments, doctypes or CDATA)."""
    if not isinstance(node, NavigableString) or isinstance(node, PreformattedString):
        return False
    parent = node.parent
    return parent is None or parent.name not in NON_CONTENT_TAGS


def classes(tag: Tag) -> list[str]:
    value = tag.get('class') if isinstance(tag, Tag) else None
    if not value:
        return []
    if isinstance(value, str):
        return value.split()
    return list(value)


def class_string(tag: Tag) -> str:
    """Lower-cased class attribute as one string, for substring matching."""
    return " ".join(classes(tag)).lower()


def has_class(tag: Tag, *names: str) -> bool:
    tag_classes = classes(tag)
    return any(name in tag_classes for name in names)


def class_contains(tag: Tag, *fragments: str) -> bool:
    value = class_string(tag)
    return any(fragment in value for fragment in fragments)


def attr(tag: Tag, name: str) -> str:
    """Attribute value as a lower-cased string ('' when absent)."""
    value = tag.get(name) if isinstance(tag, Tag) else None
    if value is None:
        return ''
    if isinstance(value, list):
        value = " ".join(value)
    return str(value).strip().lower()


def ancestors(tag: Tag, levels: int, include_self: bool = True) -> Iterator[Tag]:
    """Yield the tag (optionally) and up to ``levels`` real ancestors."""
    if include_self:
        yield tag
    count = 0
    for parent in tag.parents:
        if count >= levels or isinstance(parent, BeautifulSoup):
            return
        yield parent
        count += 1


def iter_elements(tag: Tag, include_self: bool = True) -> Iterator[Tag]:
    if include_self:
        yield tag
    yield from tag.find_all(True)


def text_content(tag) -> str:
    """Raw text of a node, like DOM textContent."""
    if isinstance(tag, NavigableString):
        return str(tag)
    return "".join(str(s) for s in tag.descendants if is_text(s))


def remove(tag: Tag) -> bool:
    """Decompose a tag unless it already went with an ancestor."""
    if getattr(tag, 'decomposed', False):
        return False
    tag.decompose()
    return True


def remove_all(tags) -> int:
    removed = 0
    for tag in list(tags):
        if remove(tag):
            removed += 1
    return removed
