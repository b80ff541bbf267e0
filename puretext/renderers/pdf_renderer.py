"""PDF renderer (reportlab).

Walks a Canonical Document into platypus flowables on A4 portrait pages
with 10 mm margins. Body text uses the STSong-Light CID font, which ships
inside reportlab and covers Chinese as well as Latin text, so no font file
has to be installed. Code is set in Courier when it fits Latin-1.
"""

import io
import re
from typing import Optional

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.platypus import (
    Flowable,
    HRFlowable,
    Paragraph as PdfParagraph,
    Preformatted,
    SimpleDocTemplate,
    Spacer,
    Table as PdfTable,
    TableStyle,
)

import config
from logger import logger
from ..document import (
    Block,
    Blockquote,
    CodeBlock,
    Document,
    Heading,
    HorizontalRule,
    InlineRun,
    ListBlock,
    MathFormula,
    Paragraph,
    Table,
    normalize_runs,
)
from .clipboard import escape, escape_attr

PAGE_MARGIN = 10 * mm
CONTENT_WIDTH = A4[0] - 2 * PAGE_MARGIN

BODY_FONT = 'STSong-Light'
CODE_FONT = 'Courier'
BULLET_FONT = 'Helvetica'

HEADING_SIZES = {1: 18, 2: 16, 3: 14, 4: 13, 5: 12, 6: 11}

# By nesting depth; Helvetica has all three glyphs
BULLETS = ['•', '-', '·']
LIST_INDENT = 18  # points per level
MAX_LIST_LEVEL = 2

QUOTE_FILL = colors.HexColor('#F0F0F0')
CODE_FILL = colors.HexColor('#F5F5F5')
HEADER_FILL = colors.HexColor('#E0E0E0')
LINK_COLOR = '#0000FF'

CODE_LINE_LENGTH = 96

DEFAULT_TITLE = 'PureText导出'
DESCRIPTION = '由 PureText 导出'

_HEX_COLOR = re.compile(r'^[0-9a-fA-F]{6}$')

# CID fonts have no bold or italic faces; map the family onto itself
pdfmetrics.registerFont(UnicodeCIDFont(BODY_FONT))
pdfmetrics.registerFontFamily(BODY_FONT, normal=BODY_FONT, bold=BODY_FONT, italic=BODY_FONT, boldItalic=BODY_FONT)

BODY_STYLE = ParagraphStyle(
    'PureTextBody', fontName=BODY_FONT, fontSize=11, leading=17, spaceAfter=6, wordWrap='CJK',
)
QUOTE_STYLE = ParagraphStyle(
    'PureTextQuote', parent=BODY_STYLE, leftIndent=18, backColor=QUOTE_FILL, borderPadding=4,
)
MATH_STYLE = ParagraphStyle('PureTextMath', parent=BODY_STYLE, spaceBefore=6)
DISPLAY_MATH_STYLE = ParagraphStyle('PureTextDisplayMath', parent=MATH_STYLE, alignment=TA_CENTER)
CELL_STYLE = ParagraphStyle('PureTextCell', parent=BODY_STYLE, spaceAfter=0)
HEADER_CELL_STYLE = ParagraphStyle('PureTextHeaderCell', parent=CELL_STYLE, alignment=TA_CENTER)


def _heading_style(level: int) -> ParagraphStyle:
    size = HEADING_SIZES[level]
    return ParagraphStyle(
        f'PureTextHeading{level}', parent=BODY_STYLE,
        fontSize=size, leading=size * 1.4, spaceBefore=10, spaceAfter=6,
    )


HEADING_STYLES = {level: _heading_style(level) for level in HEADING_SIZES}


def _list_style(level: int) -> ParagraphStyle:
    indent = LIST_INDENT * (level + 1)
    return ParagraphStyle(
        f'PureTextList{level}', parent=BODY_STYLE, spaceAfter=3,
        leftIndent=indent, bulletIndent=indent - LIST_INDENT + 4, bulletFontName=BULLET_FONT,
    )


LIST_STYLES = [_list_style(level) for level in range(MAX_LIST_LEVEL + 1)]


def _is_latin(text: str) -> bool:
    try:
        text.encode('latin-1')
    except UnicodeEncodeError:
        return False
    return True


def _code_style(text: str) -> ParagraphStyle:
    return ParagraphStyle(
        'PureTextCode', parent=BODY_STYLE,
        fontName=CODE_FONT if _is_latin(text) else BODY_FONT,
        fontSize=9.5, leading=13, backColor=CODE_FILL, borderPadding=6, spaceBefore=4, spaceAfter=10,
    )


# =============================================================================
# INLINE MARKUP
# =============================================================================

def run_markup(run: InlineRun) -> str:
    """One run as reportlab paragraph markup."""
    text = escape(run.text).replace('\n', '<br/>')
    if run.code and _is_latin(run.text):
        text = f'<font face="{CODE_FONT}">{text}</font>'
    if run.strike:
        text = f"<strike>{text}</strike>"
    if run.underline and run.link is None:
        text = f"<u>{text}</u>"
    if run.italic:
        text = f"<i>{text}</i>"
    if run.bold:
        text = f"<b>{text}</b>"
    if run.link is not None:
        text = f'<a href="{escape_attr(run.link.href)}" color="{LINK_COLOR}"><u>{text}</u></a>'
    elif run.color:
        if _HEX_COLOR.match(run.color):
            text = f'<font color="#{run.color}">{text}</font>'
        else:
            logger.debug(f"Ignoring unparseable run color '{run.color}'")
    return text


def runs_markup(runs: list[InlineRun], bold: bool = False) -> str:
    markup = ''.join(run_markup(run) for run in normalize_runs(runs))
    return f"<b>{markup}</b>" if bold and markup else markup


# =============================================================================
# BLOCKS
# =============================================================================

class PdfRenderer:
    """Turns one Canonical Document into a flowable story."""

    def __init__(self):
        self.story: list[Flowable] = []

    def render(self, document: Document) -> list[Flowable]:
        for block in document.blocks:
            self.block(block)
        return self.story

    def block(self, block: Block, list_level: int = 0) -> None:
        if isinstance(block, Heading):
            level = max(1, min(6, block.level))
            self.story.append(PdfParagraph(runs_markup(block.runs, bold=True), HEADING_STYLES[level]))
        elif isinstance(block, Paragraph):
            if block.runs:
                style = LIST_STYLES[min(list_level - 1, MAX_LIST_LEVEL)] if list_level else BODY_STYLE
                self.story.append(PdfParagraph(runs_markup(block.runs), style))
        elif isinstance(block, ListBlock):
            self.list(block, list_level)
        elif isinstance(block, Blockquote):
            self.story.append(PdfParagraph(runs_markup(block.runs), QUOTE_STYLE))
        elif isinstance(block, CodeBlock):
            self.story.append(Preformatted(block.text, _code_style(block.text), maxLineLength=CODE_LINE_LENGTH))
        elif isinstance(block, Table):
            self.table(block)
        elif isinstance(block, MathFormula):
            style = DISPLAY_MATH_STYLE if block.display_mode else MATH_STYLE
            self.story.append(PdfParagraph(f"<i>{escape(block.latex)}</i>", style))
        elif isinstance(block, HorizontalRule):
            self.story.append(HRFlowable(width='100%', thickness=0.5, color=colors.grey, spaceBefore=6, spaceAfter=6))

    def list(self, block: ListBlock, level: int = 0) -> None:
        level = min(level, MAX_LIST_LEVEL)
        style = LIST_STYLES[level]

        for index, item in enumerate(block.items):
            marker = f"{block.start + index}." if block.ordered else BULLETS[level]
            numbered = False
            for child in item:
                if isinstance(child, ListBlock):
                    self.list(child, level + 1)
                elif isinstance(child, Paragraph) and not numbered:
                    self.story.append(PdfParagraph(runs_markup(child.runs), style, bulletText=marker))
                    numbered = True
                else:
                    self.block(child, list_level=level + 1)

    def table(self, block: Table) -> None:
        rows = [row for row in block.rows if row]
        if not rows:
            return
        columns = max(len(row) for row in rows)

        data = []
        for row in rows:
            cells = [
                PdfParagraph(runs_markup(cell.runs, bold=cell.is_header),
                             HEADER_CELL_STYLE if cell.is_header else CELL_STYLE)
                for cell in row
            ]
            data.append(cells + [''] * (columns - len(cells)))

        commands = [
            ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('LEFTPADDING', (0, 0), (-1, -1), 6),
            ('RIGHTPADDING', (0, 0), (-1, -1), 6),
        ]
        header_rows = 0
        for row in rows:
            if not all(cell.is_header for cell in row):
                break
            header_rows += 1
        if header_rows:
            commands.append(('BACKGROUND', (0, 0), (-1, header_rows - 1), HEADER_FILL))

        table = PdfTable(data, colWidths=[CONTENT_WIDTH / columns] * columns, repeatRows=header_rows, hAlign='LEFT')
        table.setStyle(TableStyle(commands))
        self.story.append(table)
        self.story.append(Spacer(1, 6))


def render_pdf(document: Document, title: Optional[str] = None) -> bytes:
    """Render a Canonical Document to PDF bytes.

    Args:
        document: Canonical Document to render
        title: Document-information title (the user's question, when known)
    """
    buffer = io.BytesIO()
    template = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=PAGE_MARGIN,
        rightMargin=PAGE_MARGIN,
        topMargin=PAGE_MARGIN,
        bottomMargin=PAGE_MARGIN,
        title=title or DEFAULT_TITLE,
        author=config.DOCUMENT_AUTHOR,
        subject=DESCRIPTION,
        creator='PureText',
    )
    story = PdfRenderer().render(document)
    if not story:
        story = [Spacer(1, 1)]
    template.build(story)
    data = buffer.getvalue()
    logger.debug(f"Rendered pdf: {len(document.blocks)} blocks, {len(data)} bytes")
    return data
