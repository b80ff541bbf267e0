"""Structure inference for flat text.

Some sites render answers as nested generic containers with no semantic
markup. This module reclassifies such text fragments as list items,
headings, block quotes, code or plain paragraphs using ordered pattern
tables, and assembles contiguous list lines into list blocks.

Each table is a list of dicts (name, pattern, description) so rules can be
inspected and tested on their own. A fragment belongs to a category when ANY
pattern in that category's table matches.
"""

import re
from typing import Callable, Optional

from .document import (
    Block,
    Blockquote,
    CodeBlock,
    Heading,
    InlineRun,
    ListBlock,
    Paragraph,
    plain_runs,
)
from .renderers.clipboard import render_blocks

# Headings longer than this are always treated as body text
MAX_HEADING_LENGTH = 100

DEFAULT_HEADING_LEVEL = 3


# =============================================================================
# LIST PATTERNS
# =============================================================================

# ``ordered`` feeds the majority vote; ``marker`` means the match is a prefix
# to strip from the item text. Descriptive "label: content" items keep their
# label because it is part of the content.
LIST_PATTERNS = [
    # 1. Bullet glyphs
    {
        'name': 'bullet_glyph',
        'pattern': re.compile(r'^\s*[•·▪▫◦‣⁃●○■□➢➤►]\s+'),
        'ordered': False,
        'marker': True,
        'description': 'Typographic bullet followed by whitespace',
    },
    # 2. Symbol-font bullets (Wingdings/Symbol glyphs pasted from Office)
    {
        'name': 'symbol_font_bullet',
        'pattern': re.compile('^\\s*[\uf0b7\uf0a7\uf0d8\uf076\uf0fc\uf06c\uf0a8]\\s*'),
        'ordered': False,
        'marker': True,
        'description': 'Private-use-area bullet glyph',
    },
    # 3. Numeric markers
    {
        'name': 'numeric',
        'pattern': re.compile(r'^\s*\d+[.)]\s+'),
        'ordered': True,
        'marker': True,
        'description': '"1. item" or "1) item"',
    },
    {
        'name': 'numeric_cjk_punctuation',
        'pattern': re.compile(r'^\s*\d+[、．]\s*'),
        'ordered': True,
        'marker': True,
        'description': '"1、item" with full-width punctuation',
    },
    # 4. Lettered markers
    {
        'name': 'lettered',
        'pattern': re.compile(r'^\s*[a-zA-Z][.)]\s+'),
        'ordered': True,
        'marker': True,
        'description': '"a. item" or "B) item"',
    },
    # 5. CJK numerals
    {
        'name': 'cjk_numeral',
        'pattern': re.compile(r'^\s*[一二三四五六七八九十]+[.)、．]\s*'),
        'ordered': True,
        'marker': True,
        'description': '"一、item"',
    },
    # 6. Roman numerals
    {
        'name': 'roman',
        'pattern': re.compile(r'^\s*[ivxlcdm]+[.)]\s+', re.IGNORECASE),
        'ordered': True,
        'marker': True,
        'description': '"iv. item"',
    },
    # 7. Descriptive items from a closed vocabulary
    {
        'name': 'descriptive_vocabulary',
        'pattern': re.compile(
            r'^\s*(合约价值|保证金比例|你账户里总共|期货公司会|平仓后|不会倒扣|只是亏的|剩余的钱'
            r'|简介|名句|代表作|影响|贡献)[:：]'
        ),
        'ordered': False,
        'marker': False,
        'description': 'Known "label:" openers',
    },
    # 8. Generic short label, colon, content
    {
        'name': 'descriptive_generic',
        'pattern': re.compile(r'^\s*[^：:]{1,20}[:：](?!//)\s*[^：:\s]'),
        'ordered': False,
        'marker': False,
        'description': 'Short label (<=20 chars) followed by a colon and content',
    },
    # 9. Dash markers
    {
        'name': 'dash',
        'pattern': re.compile(r'^\s*[-—–]\s+'),
        'ordered': False,
        'marker': True,
        'description': '"- item"',
    },
    # 10. Star / plus markers (markdown)
    {
        'name': 'star',
        'pattern': re.compile(r'^\s*[*+]\s+'),
        'ordered': False,
        'marker': True,
        'description': '"* item"',
    },
]


# =============================================================================
# HEADING PATTERNS
# =============================================================================

HEADING_PATTERNS = [
    {
        'name': 'emoji_prefix',
        'pattern': re.compile(r'^\s*(?:✅|❌|🔧|📝|💡|⚠️?|🎯|🔍|📌|🚀)\s*'),
        'prefix': True,
        'description': 'Emoji-led section title',
    },
    {
        'name': 'numbered_parenthetical',
        'pattern': re.compile(r'^\s*\d+\.\s*[^。]{5,50}[（(][^）)]+[）)]'),
        'prefix': False,
        'description': '"1. 张继（唐代）"',
    },
    {
        'name': 'numbered_short',
        'pattern': re.compile(r'^\s*\d+\.\s*[^。]{5,30}[:：]?$'),
        'prefix': False,
        'description': 'Short numbered title',
    },
    {
        'name': 'fixed_phrase',
        'pattern': re.compile(r'^\s*(举个例子|总结一句话|强平后会发生什么|不是"钱全没了"|其他关联诗人|In summary|To summarize)'),
        'prefix': False,
        'description': 'Known section openers',
    },
    {
        'name': 'markdown',
        'pattern': re.compile(r'^\s*#{1,6}\s+'),
        'prefix': True,
        'description': '"## Title"',
    },
    {
        'name': 'colon_terminated',
        'pattern': re.compile(r'^\s*[^。！？.!?]{5,30}[:：]$'),
        'prefix': False,
        'description': 'Short line ending with a colon',
    },
    {
        'name': 'question_terminated',
        'pattern': re.compile(r'^\s*[^。！.!]{10,40}[？?]$'),
        'prefix': False,
        'description': 'Short line ending with a question mark',
    },
]


# =============================================================================
# BLOCKQUOTE PATTERNS
# =============================================================================

BLOCKQUOTE_PATTERNS = [
    {
        'name': 'arithmetic',
        'pattern': re.compile(r'^\s*\d+\s*[-+*/=×÷]\s*\d+'),
        'prefix': False,
        'description': 'Worked calculation such as "5000 - 2000 = 3000"',
    },
    {
        'name': 'quote_glyph',
        'pattern': re.compile(r'^\s*[>》]\s+'),
        'prefix': True,
        'description': 'Explicit quote marker',
    },
    {
        'name': 'emphatic_summary',
        'pattern': re.compile(r'^\s*强平只是强制'),
        'prefix': False,
        'description': 'Known emphatic summary',
    },
    {
        'name': 'notice_label',
        'pattern': re.compile(r'^\s*(注意|重要|提示|Note|Important|Tip|Warning)[:：]', re.IGNORECASE),
        'prefix': False,
        'description': '"注意：" style callouts',
    },
]


# =============================================================================
# CODE PATTERNS (generic fallback only)
# =============================================================================

CODE_PATTERNS = [
    re.compile(r'^\s*```'),
    re.compile(r'^\s*`[^`]+`\s*$'),
    re.compile(r'^\s*(?:function|class|def)\s+\w+'),
    re.compile(r'^\s*(?:import|export)\s+'),
    re.compile(r'^\s*(?:const|let|var)\s+\w+\s*='),
    re.compile(r'^\s*(?:if|for|while)\s*\('),
    re.compile(r'^\s*\w+\s*\([^)]*\)\s*\{'),
    re.compile(r'^\s*<[a-zA-Z/][^>]*>'),
    re.compile(r'^\s*\{[\s\S]*\}\s*$'),
    re.compile(r'^\s*\[[\s\S]*\]\s*$'),
]

# Single-line code shorter than this renders inline
INLINE_CODE_LIMIT = 100

# Markdown heading and quote markers override list matching
MARKDOWN_HEADING = re.compile(r'^\s*#{1,6}\s+')
QUOTE_GLYPH = re.compile(r'^\s*[>》]\s+')


# =============================================================================
# CLASSIFIERS
# =============================================================================

def _matches(table: list[dict], text: str) -> bool:
    return any(rule['pattern'].search(text) for rule in table)


def is_list_item_start(text: str) -> bool:
    """Check whether text opens a list item."""
    if not text or not isinstance(text, str):
        return False
    return _matches(LIST_PATTERNS, text)


def is_heading(text: str) -> bool:
    """Check whether text reads as a heading (never over 100 characters)."""
    if not text or not isinstance(text, str):
        return False
    if len(text) > MAX_HEADING_LENGTH:
        return False
    return _matches(HEADING_PATTERNS, text)


def is_block_quote(text: str) -> bool:
    """Check whether text should be set off as a quote."""
    if not text or not isinstance(text, str):
        return False
    return _matches(BLOCKQUOTE_PATTERNS, text)


def is_code_block(text: str) -> bool:
    if not text or not isinstance(text, str):
        return False
    return any(pattern.search(text) for pattern in CODE_PATTERNS)


def has_explicit_role(text: str) -> bool:
    """Markdown heading or quote marker; these win over list patterns."""
    return bool(MARKDOWN_HEADING.match(text) or QUOTE_GLYPH.match(text))


def is_ordered_item(text: str) -> bool:
    """True when the item's marker is numeric, lettered, CJK or Roman."""
    for rule in LIST_PATTERNS:
        if rule['ordered'] and rule['pattern'].search(text):
            return True
    return False


def detect_list_type(items: list[str]) -> bool:
    """Majority vote: ordered only when ordered markers strictly outnumber the rest."""
    ordered = sum(1 for item in items if is_ordered_item(item))
    return ordered > len(items) - ordered


def heading_level(text: str, default: int = DEFAULT_HEADING_LEVEL) -> int:
    """Markdown hashes decide the level; everything else gets the default."""
    match = re.match(r'^\s*(#{1,6})\s+', text or '')
    if match:
        return len(match.group(1))
    return default


# =============================================================================
# CLEANING
# =============================================================================

def _strip_prefix(table: list[dict], text: str) -> str:
    for rule in table:
        if rule.get('marker', rule.get('prefix')):
            stripped, count = rule['pattern'].subn('', text, count=1)
            if count:
                return stripped
    return text


def clean_list_item(text: str) -> str:
    """Strip the first recognized list marker and surrounding whitespace."""
    if not text or not isinstance(text, str):
        return ''
    return _strip_prefix(LIST_PATTERNS, text.strip()).strip()


def clean_heading(text: str) -> str:
    if not text or not isinstance(text, str):
        return ''
    return _strip_prefix(HEADING_PATTERNS, text.strip()).strip()


def clean_block_quote(text: str) -> str:
    if not text or not isinstance(text, str):
        return ''
    return _strip_prefix(BLOCKQUOTE_PATTERNS, text.strip()).strip()


# =============================================================================
# BLOCK BUILDERS
# =============================================================================

def build_list(items: list[str], level: int = 0) -> ListBlock:
    """Build a list block from raw marker-prefixed lines.

    Empty lines are dropped; every remaining line becomes exactly one item.
    """
    lines = [item for item in items if item and item.strip()]
    return ListBlock(
        ordered=detect_list_type(lines),
        items=[[Paragraph(runs=plain_runs(clean_list_item(line)))] for line in lines],
        level=level,
    )


def build_heading(text: str, level: int = DEFAULT_HEADING_LEVEL) -> Heading:
    level = max(1, min(6, level))
    return Heading(level=level, runs=plain_runs(clean_heading(text), bold=True))


def build_block_quote(text: str) -> Blockquote:
    return Blockquote(runs=plain_runs(clean_block_quote(text)))


def build_paragraph(text: str) -> Paragraph:
    return Paragraph(runs=plain_runs((text or '').strip()))


def build_code(text: str) -> Block:
    """Short single-line code renders inline, anything else as a block."""
    body = text.strip()
    fence = re.match(r'^```(\w*)[ \t]*\n?([\s\S]*?)\n?```$', body)
    language = None
    if fence:
        language = fence.group(1) or None
        body = fence.group(2)
    elif body.startswith('`') and body.endswith('`') and body.count('`') == 2:
        body = body[1:-1]

    if '\n' not in body and len(body) < INLINE_CODE_LIMIT and not fence:
        return Paragraph(runs=[InlineRun(text=body, code=True)])
    return CodeBlock(text=body, language=language)


def classify_fragment(text: str, detect_code: bool = False) -> Optional[Block]:
    """Turn one non-list fragment into a block (heading, quote, code or paragraph)."""
    text = (text or '').strip()
    if not text:
        return None
    if MARKDOWN_HEADING.match(text) and len(text) <= MAX_HEADING_LENGTH:
        return build_heading(text, heading_level(text))
    if QUOTE_GLYPH.match(text):
        return build_block_quote(text)
    if is_heading(text):
        return build_heading(text, heading_level(text))
    if is_block_quote(text):
        return build_block_quote(text)
    if detect_code and is_code_block(text):
        return build_code(text)
    return build_paragraph(text)


def infer_blocks(
    fragments: list[str],
    detect_code: bool = False,
    check: Optional[Callable[[], None]] = None,
) -> list[Block]:
    """Classify flat text fragments and assemble list runs.

    Contiguous list lines are buffered; the buffer is flushed into one list
    when a non-list fragment appears or input ends.

    Args:
        fragments: Text fragments in document order
        detect_code: Route code-looking fragments to code blocks
        check: Called once per fragment (cancellation hook)

    Returns:
        Block nodes in source order
    """
    blocks: list[Block] = []
    buffer: list[str] = []

    def flush():
        if buffer:
            blocks.append(build_list(buffer))
            buffer.clear()

    for fragment in fragments:
        if check is not None:
            check()
        text = (fragment or '').strip()
        if not text:
            continue
        if is_list_item_start(text) and not has_explicit_role(text):
            buffer.append(text)
            continue
        flush()
        block = classify_fragment(text, detect_code=detect_code)
        if block is not None:
            blocks.append(block)

    flush()
    return blocks


# =============================================================================
# HTML GENERATION
# =============================================================================

def generate_list_html(items: list[str]) -> str:
    """Render list lines as <ol>/<ul> markup."""
    if not items:
        return ''
    return render_blocks([build_list(items)])


def generate_heading_html(text: str, level: int = DEFAULT_HEADING_LEVEL) -> str:
    if not text or not isinstance(text, str):
        return ''
    return render_blocks([build_heading(text, level)])


def generate_block_quote_html(text: str) -> str:
    if not text or not isinstance(text, str):
        return ''
    return render_blocks([build_block_quote(text)])


def generate_paragraph_html(text: str) -> str:
    if not text or not isinstance(text, str) or not text.strip():
        return ''
    return render_blocks([build_paragraph(text)])
