"""Plain-text renderer.

A Canonical Document renders line by line. Markup strings are converted to
markdown first (markdownify) and then stripped, so both inputs end up as
text with no markdown syntax left in it.
"""

import re
from typing import Union

from markdownify import markdownify

from ..document import (
    Blockquote,
    CodeBlock,
    Document,
    Heading,
    HorizontalRule,
    ListBlock,
    MathFormula,
    Paragraph,
    Table,
    Block,
    runs_text,
)

# Applied in order; each rule keeps the text and drops the syntax
MARKDOWN_RULES = [
    {
        'name': 'fenced_code',
        'pattern': re.compile(r'^[ \t]*```[^\n]*\n?([\s\S]*?)\n?[ \t]*```[ \t]*$', re.MULTILINE),
        'replacement': r'\1',
        'description': 'Code fences with optional language',
    },
    {
        'name': 'image',
        'pattern': re.compile(r'!\[([^\]]*)\]\([^)]*\)'),
        'replacement': r'\1',
        'description': '![alt](src) keeps the alt text',
    },
    {
        'name': 'link',
        'pattern': re.compile(r'\[([^\]]+)\]\([^)]*\)'),
        'replacement': r'\1',
        'description': '[text](href) keeps the text',
    },
    {
        'name': 'horizontal_rule',
        'pattern': re.compile(r'^[ \t]*(?:(?:\\?-[ \t]*){3,}|(?:\\?\*[ \t]*){3,}|(?:\\?_[ \t]*){3,})$', re.MULTILINE),
        'replacement': '',
        'description': '---, *** and ___ rules, spaced too',
    },
    {
        'name': 'bold',
        'pattern': re.compile(r'(\*\*|__)(?=\S)([\s\S]+?)(?<=\S)\1'),
        'replacement': r'\2',
        'description': '**bold** and __bold__',
    },
    {
        'name': 'strike',
        'pattern': re.compile(r'~~(?=\S)([\s\S]+?)(?<=\S)~~'),
        'replacement': r'\1',
        'description': '~~strike~~',
    },
    {
        'name': 'italic_star',
        'pattern': re.compile(r'(?<![\w*])\*(?=\S)([^*\n]+?)(?<=\S)\*(?![\w*])'),
        'replacement': r'\1',
        'description': '*italic*',
    },
    {
        'name': 'italic_underscore',
        'pattern': re.compile(r'(?<![\w_])_(?=\S)([^_\n]+?)(?<=\S)_(?![\w_])'),
        'replacement': r'\1',
        'description': '_italic_',
    },
    {
        'name': 'inline_code',
        'pattern': re.compile(r'`([^`\n]+)`'),
        'replacement': r'\1',
        'description': '`code`',
    },
    {
        'name': 'heading',
        'pattern': re.compile(r'^[ \t]*#{1,6}[ \t]*', re.MULTILINE),
        'replacement': '',
        'description': 'ATX heading hashes',
    },
    {
        'name': 'setext_underline',
        'pattern': re.compile(r'^[ \t]*(?:=+|-{3,})[ \t]*$', re.MULTILINE),
        'replacement': '',
        'description': 'Setext heading underlines and --- rules',
    },
    {
        'name': 'quote',
        'pattern': re.compile(r'^[ \t]*(?:>[ \t]?)+', re.MULTILINE),
        'replacement': '',
        'description': '> quote markers, nested too',
    },
    {
        'name': 'unordered_marker',
        'pattern': re.compile(r'^([ \t]*)[*+•-][ \t]+', re.MULTILINE),
        'replacement': r'\1',
        'description': '"- item", "* item", "+ item", "• item"',
    },
    {
        'name': 'ordered_marker',
        'pattern': re.compile(r'^([ \t]*)\d+\\?[.)][ \t]+', re.MULTILINE),
        'replacement': r'\1',
        'description': '"1. item" and "1) item"',
    },
    {
        'name': 'escape',
        'pattern': re.compile(r'\\([\\`*_{}\[\]()#+\-.!~>|])'),
        'replacement': r'\1',
        'description': 'Backslash escapes',
    },
]

# Tokens that must never reach plain-text output
FORBIDDEN_TOKENS = ['**', '~~', '`']
_LEADING_HASH = re.compile(r'^[ \t]*#+[ \t]*', re.MULTILINE)

_HORIZONTAL_SPACE = re.compile(r'[ \t\u00a0\u3000\f\v]+')
_EXCESS_BLANK_LINES = re.compile(r'\n(?:[ \t]*\n){3,}')


def strip_markdown(text: str) -> str:
    """Remove markdown syntax, keeping the text it decorates."""
    if not text:
        return ''
    for rule in MARKDOWN_RULES:
        text = rule['pattern'].sub(rule['replacement'], text)
    return text


def normalize_whitespace(text: str) -> str:
    """Normalize line endings, collapse spaces per line and excess blank lines."""
    if not text:
        return ''
    text = text.replace('\r\n', '\n').replace('\r', '\n')
    lines = [_HORIZONTAL_SPACE.sub(' ', line).strip() for line in text.split('\n')]
    text = '\n'.join(lines)
    text = _EXCESS_BLANK_LINES.sub('\n\n', text)
    return text.strip('\n')


def scrub_tokens(text: str) -> str:
    """Drop leftover tokens until nothing changes (removals can form new ones)."""
    while True:
        before = text
        for token in FORBIDDEN_TOKENS:
            text = text.replace(token, '')
        text = _LEADING_HASH.sub('', text)
        if text == before:
            return text


def _block_lines(block: Block) -> list[str]:
    if isinstance(block, (Heading, Paragraph, Blockquote)):
        return [runs_text(block.runs)]
    if isinstance(block, CodeBlock):
        return block.text.split('\n')
    if isinstance(block, MathFormula):
        return [block.latex]
    if isinstance(block, Table):
        return ['\t'.join(runs_text(cell.runs) for cell in row) for row in block.rows]
    if isinstance(block, ListBlock):
        return _list_lines(block)
    if isinstance(block, HorizontalRule):
        return []
    return []


def _list_lines(block: ListBlock) -> list[str]:
    # One line per item text; numbering and bullets are list syntax, not text
    lines = []
    for item in block.items:
        for child in item:
            lines.extend(line for line in _block_lines(child) if line.strip())
    return lines


def document_text(document: Document) -> str:
    """Text of a Document, blocks separated by a blank line."""
    chunks = []
    for block in document.blocks:
        lines = _block_lines(block)
        if any(line.strip() for line in lines):
            chunks.append('\n'.join(lines))
    return '\n\n'.join(chunks)


def render_plain_text(source: Union[Document, str, None]) -> str:
    """Render a Document or a markup/markdown string as plain text.

    Output never contains ``**``, backticks or ``~~``, and no line starts
    with ``#``.
    """
    if source is None:
        return ''
    if isinstance(source, Document):
        text = document_text(source)
    else:
        text = str(source)
        if '<' in text and '>' in text:
            text = markdownify(
                text,
                heading_style='ATX',
                strip=['img'],
                escape_asterisks=False,
                escape_underscores=False,
                escape_misc=False,
            )
        text = strip_markdown(text)

    text = normalize_whitespace(scrub_tokens(normalize_whitespace(text)))
    return scrub_tokens(text)
