"""Clipboard markup optimizer.

Post-processing for markup pasted into Word and WPS. The two applications
disagree on default list rendering, ignore attached stylesheets and are
lenient about unclosed tags in different ways, so every compatibility fix
lives here instead of in the walkers.

The markup is parsed once with a tree-building parser (lxml), which closes
unbalanced tags and drops stray closers. The passes then work on that tree:

1. drop_empty - remove empty p/li
2. inline_styles - fixed per-tag presentation (pt sizes, fonts, spacing)
3. style_lists - explicit list-style-type by nesting depth
4. style_tables - borders and cell padding

Serialization self-closes void tags and replaces typographic symbols with
named references in text (never in attribute values). wrap_document adds
the standalone document shell with base CSS.
"""

from collections import Counter
from html.parser import HTMLParser
from typing import Callable, Optional

from bs4 import BeautifulSoup, Tag
from bs4.dammit import EntitySubstitution
from bs4.formatter import HTMLFormatter

from logger import logger
from utils import describe_size
from .clipboard import escape

DEFAULT_TITLE = '复制的内容'

# html.parser keeps tags exactly as written; lxml applies HTML's implied-end rules
TREE_PARSER = 'lxml'

VOID_TAGS = {'br', 'hr', 'img', 'input', 'meta', 'link', 'col', 'wbr', 'area', 'base', 'source'}

# Removed when they hold nothing but whitespace
DROPPED_WHEN_EMPTY = ['p', 'li']

BODY_FONT = "'Microsoft YaHei', 'PingFang SC', 'SimSun', Arial, sans-serif"
CODE_FONT = "'Courier New', Consolas, monospace"

TAG_STYLES = {
    'h1': f"font-family: {BODY_FONT}; font-size: 22pt; font-weight: bold; margin: 18pt 0 10pt 0;",
    'h2': f"font-family: {BODY_FONT}; font-size: 18pt; font-weight: bold; margin: 16pt 0 8pt 0;",
    'h3': f"font-family: {BODY_FONT}; font-size: 16pt; font-weight: bold; margin: 14pt 0 6pt 0;",
    'h4': f"font-family: {BODY_FONT}; font-size: 14pt; font-weight: bold; margin: 12pt 0 6pt 0;",
    'h5': f"font-family: {BODY_FONT}; font-size: 12pt; font-weight: bold; margin: 10pt 0 4pt 0;",
    'h6': f"font-family: {BODY_FONT}; font-size: 11pt; font-weight: bold; margin: 10pt 0 4pt 0;",
    'p': f"font-family: {BODY_FONT}; font-size: 11pt; margin: 6pt 0; line-height: 1.6;",
    'blockquote': "margin: 12pt 0; padding: 6pt 12pt; border-left: 3pt solid #cccccc; background: #f0f0f0;",
    'code': f"font-family: {CODE_FONT}; font-size: 10pt; background: #f5f5f5;",
    'pre': f"font-family: {CODE_FONT}; font-size: 10pt; background: #f5f5f5; padding: 8pt; white-space: pre-wrap;",
    'strong': "font-weight: bold;",
    'em': "font-style: italic;",
    'a': "color: #0000ff; text-decoration: underline;",
}

# Ordered; curly quotes only, straight ASCII quotes stay as they are
SPECIAL_CHARACTERS = [
    ('•', '&bull;'),
    ('—', '&mdash;'),
    ('–', '&ndash;'),
    ('“', '&ldquo;'),
    ('”', '&rdquo;'),
    ('‘', '&lsquo;'),
    ('’', '&rsquo;'),
    ('…', '&hellip;'),
    ('©', '&copy;'),
    ('®', '&reg;'),
    ('™', '&trade;'),
    ('°', '&deg;'),
    ('±', '&plusmn;'),
    ('×', '&times;'),
    ('÷', '&divide;'),
    ('≤', '&le;'),
    ('≥', '&ge;'),
    ('≠', '&ne;'),
    ('≈', '&asymp;'),
    ('→', '&rarr;'),
    ('←', '&larr;'),
    ('↑', '&uarr;'),
    ('↓', '&darr;'),
    ('α', '&alpha;'),
    ('β', '&beta;'),
    ('γ', '&gamma;'),
    ('δ', '&delta;'),
    ('π', '&pi;'),
    ('Σ', '&Sigma;'),
    ('Ω', '&Omega;'),
]

# By nesting depth (0, 1, 2+)
UNORDERED_STYLES = ['disc', 'circle', 'square']
ORDERED_STYLES = ['decimal', 'lower-alpha', 'lower-roman']

LIST_ITEM_STYLE = "margin: 3pt 0; line-height: 1.6;"

TABLE_STYLES = {
    'table': "border-collapse: collapse; width: 100%; margin: 12pt 0; border: 1px solid #000000;",
    'thead': "background: #e0e0e0;",
    'tr': "",
    'th': "border: 1px solid #000000; padding: 4pt 6pt; background: #e0e0e0; font-weight: bold; text-align: center;",
    'td': "border: 1px solid #000000; padding: 4pt 6pt; vertical-align: top;",
}

BASE_CSS = f"""
    body {{ font-family: {BODY_FONT}; font-size: 11pt; line-height: 1.6; color: #000000; }}
    p {{ margin: 6pt 0; }}
    ul {{ list-style-type: disc; }}
    ul ul {{ list-style-type: circle; }}
    ul ul ul {{ list-style-type: square; }}
    ol {{ list-style-type: decimal; }}
    ol ol {{ list-style-type: lower-alpha; }}
    ol ol ol {{ list-style-type: lower-roman; }}
    code, pre {{ font-family: {CODE_FONT}; background: #f5f5f5; }}
    pre {{ white-space: pre-wrap; padding: 8pt; }}
    blockquote {{ border-left: 3pt solid #cccccc; background: #f0f0f0; padding: 6pt 12pt; }}
    table {{ border-collapse: collapse; }}
    th, td {{ border: 1px solid #000000; padding: 4pt 6pt; }}
    hr {{ border: none; border-top: 1px solid #cccccc; }}
"""



# =============================================================================
# TREE
# =============================================================================

def _encode_text(text: str) -> str:
    text = EntitySubstitution.substitute_xml(text)
    for char, entity in SPECIAL_CHARACTERS:
        text = text.replace(char, entity)
    return text


class _MarkupFormatter(HTMLFormatter):
    """Self-closes void tags; attribute values only get the XML escapes."""

    def attribute_value(self, value: str) -> str:
        return EntitySubstitution.substitute_xml(value)


MARKUP_FORMATTER = _MarkupFormatter(
    entity_substitution=EntitySubstitution.substitute_xml, void_element_close_prefix=' /',
)
WORD_FORMATTER = _MarkupFormatter(entity_substitution=_encode_text, void_element_close_prefix=' /')


def parse_markup(html: str) -> Tag:
    """Parse a fragment into a balanced tree and return its container."""
    soup = BeautifulSoup(html or '', TREE_PARSER)
    return soup.body if soup.body is not None else soup


def serialize(root: Tag, formatter: HTMLFormatter = MARKUP_FORMATTER) -> str:
    return root.decode_contents(formatter=formatter)


def add_style(tag: Tag, css: str) -> None:
    """Merge declarations into a tag's style attribute."""
    if not css:
        return
    existing = (tag.get('style') or '').strip()
    if existing and not existing.endswith(';'):
        existing += ';'
    tag['style'] = f"{existing} {css}".strip()


# =============================================================================
# PASSES
# =============================================================================

def _drop_empty(root: Tag) -> None:
    # Innermost first, so a list emptied by its items is seen after them
    for tag in reversed(root.find_all(DROPPED_WHEN_EMPTY)):
        if tag.decomposed:
            continue
        if tag.find(True) is None and not tag.get_text().strip():
            tag.decompose()


def _inline_styles(root: Tag) -> None:
    for tag in root.find_all(list(TAG_STYLES)):
        add_style(tag, TAG_STYLES[tag.name])


def _style_lists(root: Tag) -> None:
    for tag in root.find_all(['ul', 'ol']):
        depth = len(tag.find_parents(['ul', 'ol']))
        styles = ORDERED_STYLES if tag.name == 'ol' else UNORDERED_STYLES
        style_type = styles[min(depth, len(styles) - 1)]
        indent = 24 + 18 * depth
        add_style(tag, f"list-style-type: {style_type}; margin: 6pt 0; padding-left: {indent}pt;")
    for tag in root.find_all('li'):
        add_style(tag, LIST_ITEM_STYLE)


def _style_tables(root: Tag) -> None:
    for tag in root.find_all(list(TABLE_STYLES)):
        add_style(tag, TABLE_STYLES[tag.name])


def _run(html: str, passes: list[Callable[[Tag], None]], formatter: HTMLFormatter = MARKUP_FORMATTER) -> str:
    root = parse_markup(html)
    for apply in passes:
        apply(root)
    return serialize(root, formatter)


def standardize_html(html: str) -> str:
    """Close unbalanced tags, drop stray closers, empty p/li, self-close voids."""
    return _run(html, [_drop_empty])


def inline_styles(html: str) -> str:
    """Attach fixed presentation to every tag with an entry in TAG_STYLES."""
    return _run(html, [_inline_styles])


def encode_special_characters(html: str) -> str:
    """Replace typographic symbols with character references, in text only."""
    return _run(html, [], WORD_FORMATTER)


def style_lists(html: str) -> str:
    """Set list-style-type and indent on every list by nesting depth."""
    return _run(html, [_style_lists])


def style_tables(html: str) -> str:
    return _run(html, [_style_tables])


def wrap_document(body: str, title: Optional[str] = None) -> str:
    """Standalone document shell with UTF-8 charset and base CSS."""
    return (
        "<!DOCTYPE html>\n"
        '<html lang="zh-CN">\n'
        "<head>\n"
        '<meta charset="UTF-8">\n'
        '<meta name="Generator" content="PureText">\n'
        f"<title>{escape(title or DEFAULT_TITLE)}</title>\n"
        f"<style>{BASE_CSS}</style>\n"
        "</head>\n"
        "<body>\n"
        f"{body}\n"
        "</body>\n"
        "</html>"
    )


def optimize(html: str, title: Optional[str] = None) -> str:
    """Run every optimizer pass and wrap the result.

    Args:
        html: Clipboard markup from the serializer
        title: Document title for the <title> element

    Returns:
        Complete standalone markup document
    """
    optimized = _run(html, [_drop_empty, _inline_styles, _style_lists, _style_tables], WORD_FORMATTER)
    optimized = wrap_document(optimized, title)

    problems = validate_html_structure(optimized)
    if problems:
        logger.warning(f"Optimized markup still unbalanced: {'; '.join(problems)}")
    logger.debug(f"Optimized markup {describe_size(html)} -> {describe_size(optimized)}")
    return optimized


# =============================================================================
# VALIDATION
# =============================================================================

class _TagBalance(HTMLParser):
    """Counts start and end tags as written, without repairing anything."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.counts: Counter = Counter()

    def handle_starttag(self, tag, attrs):
        if tag not in VOID_TAGS:
            self.counts[tag] += 1

    def handle_endtag(self, tag):
        if tag not in VOID_TAGS:
            self.counts[tag] -= 1

    def handle_startendtag(self, tag, attrs):
        pass


def validate_html_structure(html: str) -> list[str]:
    """Report unbalanced tags; an empty list means the markup is balanced."""
    parser = _TagBalance()
    parser.feed(html or '')
    parser.close()

    problems = []
    for name in sorted(parser.counts):
        count = parser.counts[name]
        if count > 0:
            problems.append(f"<{name}> opened {count} more time(s) than closed")
        elif count < 0:
            problems.append(f"</{name}> closed {-count} more time(s) than opened")
    return problems
