"""Word document renderer (python-docx).

Walks a Canonical Document and emits Word paragraphs, runs and tables.
Lists use two abstract numbering definitions (bullet and decimal, three
levels each); every ordered list gets its own numbering instance so its
count restarts. ``document_to_html`` reads a generated document back into
markup so the copy and download paths can be compared.
"""

import io
import re
from typing import Optional, Union

from docx import Document as new_word_document
from docx.document import Document as WordDocument
from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_COLOR_INDEX
from docx.oxml import parse_xml
from docx.oxml.ns import nsdecls, qn
from docx.oxml import OxmlElement
from docx.shared import Pt, RGBColor, Twips
from docx.table import Table as WordTable
from docx.text.paragraph import Paragraph as WordParagraph

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
from .clipboard import escape

MAX_HEADING_LEVEL = 4
MAX_LIST_LEVEL = 2

LIST_INDENTS = [360, 720, 1080]  # twips, per level
LIST_HANGING = 360

BULLET_LEVELS = [('bullet', '•'), ('bullet', '◦'), ('bullet', '▪')]
DECIMAL_LEVELS = [('decimal', '%1.'), ('lowerLetter', '%2.'), ('lowerRoman', '%3.')]

QUOTE_FILL = 'F0F0F0'
CODE_FILL = 'F5F5F5'
HEADER_FILL = 'E0E0E0'
QUOTE_INDENT = 720

CODE_FONT = 'Courier New'
MATH_FONT = 'Cambria Math'
LINK_COLOR = RGBColor(0x00, 0x00, 0xFF)
HORIZONTAL_RULE_TEXT = '────────────────────────'

DESCRIPTION = '由 PureText 导出'

# Characters lxml refuses in XML text
_XML_ILLEGAL = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]')

# pPr children that must follow <w:shd>
_SHD_SUCCESSORS = (
    'w:tabs', 'w:suppressAutoHyphens', 'w:kinsoku', 'w:wordWrap', 'w:overflowPunct',
    'w:topLinePunct', 'w:autoSpaceDE', 'w:autoSpaceDN', 'w:bidi', 'w:adjustRightInd',
    'w:snapToGrid', 'w:spacing', 'w:ind', 'w:contextualSpacing', 'w:mirrorIndents',
    'w:suppressOverlap', 'w:jc', 'w:textDirection', 'w:textAlignment', 'w:textboxTightWrap',
    'w:outlineLvl', 'w:divId', 'w:cnfStyle', 'w:rPr', 'w:sectPr', 'w:pPrChange',
)

# tcPr children that must follow <w:shd>
_CELL_SHD_SUCCESSORS = ('w:noWrap', 'w:tcMar', 'w:textDirection', 'w:tcFitText', 'w:vAlign', 'w:hideMark')


def _clean_xml_text(text: str) -> str:
    return _XML_ILLEGAL.sub('', text)


def _shading(fill: str):
    shd = OxmlElement('w:shd')
    shd.set(qn('w:val'), 'clear')
    shd.set(qn('w:color'), 'auto')
    shd.set(qn('w:fill'), fill)
    return shd


# =============================================================================
# NUMBERING
# =============================================================================

class Numbering:
    """Bullet and decimal definitions plus per-list numbering instances."""

    def __init__(self, word: WordDocument):
        self._element = word.part.numbering_part.element
        self.bullet_abstract = self._add_abstract(BULLET_LEVELS)
        self.decimal_abstract = self._add_abstract(DECIMAL_LEVELS)
        self._bullet_num: Optional[int] = None

    def _next_id(self, tag: str, attribute: str) -> int:
        ids = [int(el.get(qn(attribute))) for el in self._element.findall(qn(tag))]
        return max(ids, default=0) + 1

    def _add_abstract(self, levels: list[tuple[str, str]]) -> int:
        abstract_id = self._next_id('w:abstractNum', 'w:abstractNumId')
        lvl_xml = []
        for ilvl, (fmt, text) in enumerate(levels):
            lvl_xml.append(
                f'<w:lvl w:ilvl="{ilvl}">'
                f'<w:start w:val="1"/>'
                f'<w:numFmt w:val="{fmt}"/>'
                f'<w:lvlText w:val="{text}"/>'
                f'<w:lvlJc w:val="left"/>'
                f'<w:pPr><w:ind w:left="{LIST_INDENTS[ilvl]}" w:hanging="{LIST_HANGING}"/></w:pPr>'
                f'</w:lvl>'
            )
        abstract = parse_xml(
            f'<w:abstractNum {nsdecls("w")} w:abstractNumId="{abstract_id}">'
            f'<w:multiLevelType w:val="hybridMultilevel"/>'
            f'{"".join(lvl_xml)}'
            f'</w:abstractNum>'
        )
        # Every abstractNum must precede the first num
        first_num = self._element.find(qn('w:num'))
        if first_num is not None:
            first_num.addprevious(abstract)
        else:
            self._element.append(abstract)
        return abstract_id

    def _add_num(self, abstract_id: int, start: Optional[int]) -> int:
        num_id = self._next_id('w:num', 'w:numId')
        override = ''
        if start is not None:
            override = f'<w:lvlOverride w:ilvl="0"><w:startOverride w:val="{start}"/></w:lvlOverride>'
        num = parse_xml(
            f'<w:num {nsdecls("w")} w:numId="{num_id}">'
            f'<w:abstractNumId w:val="{abstract_id}"/>{override}</w:num>'
        )
        nums = self._element.findall(qn('w:num'))
        if nums:
            nums[-1].addnext(num)
        else:
            self._element.append(num)
        return num_id

    def bullet(self) -> int:
        if self._bullet_num is None:
            self._bullet_num = self._add_num(self.bullet_abstract, None)
        return self._bullet_num

    def ordered(self, start: int = 1) -> int:
        """A fresh instance so the list restarts at ``start``."""
        return self._add_num(self.decimal_abstract, max(1, start))


def _set_numbering(paragraph: WordParagraph, num_id: int, level: int) -> None:
    num_pr = paragraph._p.get_or_add_pPr().get_or_add_numPr()
    num_pr.get_or_add_ilvl().val = level
    num_pr.get_or_add_numId().val = num_id


# =============================================================================
# RENDERING
# =============================================================================

def _add_runs(paragraph: WordParagraph, runs: list[InlineRun], **forced) -> None:
    for source in normalize_runs(runs):
        run = paragraph.add_run(_clean_xml_text(source.text))
        run.bold = source.bold or forced.get('bold') or None
        run.italic = source.italic or forced.get('italic') or None
        if source.strike:
            run.font.strike = True
        if source.code:
            run.font.name = CODE_FONT
            run.font.highlight_color = WD_COLOR_INDEX.YELLOW
        if source.link is not None:
            run.font.underline = True
            run.font.color.rgb = LINK_COLOR
        elif source.underline:
            run.font.underline = True
        if source.color and source.link is None:
            try:
                run.font.color.rgb = RGBColor.from_string(source.color.upper())
            except ValueError:
                logger.debug(f"Ignoring unparseable run color '{source.color}'")
        if forced.get('font'):
            run.font.name = forced['font']


def _spaced(paragraph: WordParagraph, after: int = 120, before: Optional[int] = None) -> WordParagraph:
    paragraph.paragraph_format.space_after = Twips(after)
    if before is not None:
        paragraph.paragraph_format.space_before = Twips(before)
    return paragraph


class WordRenderer:
    """Renders one Canonical Document into a python-docx Document."""

    def __init__(self, word: WordDocument):
        self.word = word
        self.numbering = Numbering(word)

    def render(self, document: Document) -> None:
        for block in document.blocks:
            self.block(block)

    def block(self, block: Block, list_level: int = 0) -> None:
        if isinstance(block, Heading):
            paragraph = self.word.add_heading('', level=max(1, min(MAX_HEADING_LEVEL, block.level)))
            _add_runs(paragraph, block.runs)
            _spaced(paragraph, after=150)
        elif isinstance(block, Paragraph):
            if block.runs:
                paragraph = _spaced(self.word.add_paragraph())
                if list_level:
                    paragraph.paragraph_format.left_indent = Twips(LIST_INDENTS[min(list_level, MAX_LIST_LEVEL)])
                _add_runs(paragraph, block.runs)
        elif isinstance(block, ListBlock):
            self.list(block, list_level)
        elif isinstance(block, Blockquote):
            paragraph = _spaced(self.word.add_paragraph())
            paragraph.paragraph_format.left_indent = Twips(QUOTE_INDENT)
            self._shade(paragraph, QUOTE_FILL)
            _add_runs(paragraph, block.runs)
        elif isinstance(block, CodeBlock):
            self.code(block)
        elif isinstance(block, Table):
            self.table(block)
        elif isinstance(block, MathFormula):
            paragraph = _spaced(self.word.add_paragraph(), after=120, before=120 if block.display_mode else None)
            if block.display_mode:
                paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
            run = paragraph.add_run(_clean_xml_text(block.latex))
            run.italic = True
            run.font.name = MATH_FONT
        elif isinstance(block, HorizontalRule):
            paragraph = _spaced(self.word.add_paragraph(), after=120, before=120)
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
            paragraph.add_run(HORIZONTAL_RULE_TEXT)

    def _shade(self, paragraph: WordParagraph, fill: str) -> None:
        paragraph._p.get_or_add_pPr().insert_element_before(_shading(fill), *_SHD_SUCCESSORS)

    def list(self, block: ListBlock, level: int = 0) -> None:
        level = min(level, MAX_LIST_LEVEL)
        num_id = self.numbering.ordered(block.start) if block.ordered else self.numbering.bullet()

        for item in block.items:
            numbered = False
            for child in item:
                if isinstance(child, ListBlock):
                    self.list(child, level + 1)
                elif isinstance(child, Paragraph) and not numbered:
                    paragraph = _spaced(self.word.add_paragraph(), after=80)
                    _set_numbering(paragraph, num_id, level)
                    _add_runs(paragraph, child.runs)
                    numbered = True
                else:
                    self.block(child, list_level=level + 1)

    def code(self, block: CodeBlock) -> None:
        paragraph = _spaced(self.word.add_paragraph())
        self._shade(paragraph, CODE_FILL)
        run = paragraph.add_run()
        run.font.name = CODE_FONT
        run.font.size = Pt(10)
        for index, line in enumerate(block.text.split('\n')):
            if index:
                run.add_break()
            run.add_text(_clean_xml_text(line))

    def table(self, block: Table) -> None:
        rows = [row for row in block.rows if row]
        if not rows:
            return
        columns = max(len(row) for row in rows)
        table = self.word.add_table(rows=len(rows), cols=columns)
        table.style = 'Table Grid'

        for r, row in enumerate(rows):
            for c, cell in enumerate(row):
                word_cell = table.cell(r, c)
                paragraph = word_cell.paragraphs[0]
                if cell.is_header:
                    paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
                    _add_runs(paragraph, cell.runs, bold=True)
                    word_cell._tc.get_or_add_tcPr().insert_element_before(
                        _shading(HEADER_FILL), *_CELL_SHD_SUCCESSORS
                    )
                else:
                    _add_runs(paragraph, cell.runs)

        # Keep following paragraphs from merging visually into the grid
        _spaced(self.word.add_paragraph(), after=120)


def build_word_document(document: Document, title: Optional[str] = None) -> WordDocument:
    """Build a python-docx Document from a Canonical Document.

    Args:
        document: Canonical Document to render
        title: Core-property title (the user's question, when known)
    """
    word = new_word_document()
    properties = word.core_properties
    properties.author = config.DOCUMENT_AUTHOR
    properties.title = title or 'PureText导出'
    properties.comments = DESCRIPTION

    WordRenderer(word).render(document)
    return word


def render_docx(document: Document, title: Optional[str] = None) -> bytes:
    """Render a Canonical Document to .docx bytes."""
    word = build_word_document(document, title)
    buffer = io.BytesIO()
    word.save(buffer)
    data = buffer.getvalue()
    logger.debug(f"Rendered docx: {len(document.blocks)} blocks, {len(data)} bytes")
    return data


# =============================================================================
# TEXTUAL INVERSE
# =============================================================================

def _fill(properties) -> Optional[str]:
    if properties is None:
        return None
    shd = properties.find(qn('w:shd'))
    if shd is None:
        return None
    return (shd.get(qn('w:fill')) or '').upper() or None


def _list_formats(word: WordDocument) -> dict[int, bool]:
    """numId -> ordered, from the level-0 format of its abstract definition."""
    numbering = word.part.numbering_part.element
    abstract_ordered = {}
    for abstract in numbering.findall(qn('w:abstractNum')):
        lvl = abstract.find(qn('w:lvl'))
        fmt = lvl.find(qn('w:numFmt')) if lvl is not None else None
        value = fmt.get(qn('w:val')) if fmt is not None else 'bullet'
        abstract_ordered[abstract.get(qn('w:abstractNumId'))] = value != 'bullet'

    formats = {}
    for num in numbering.findall(qn('w:num')):
        abstract_id = num.find(qn('w:abstractNumId'))
        if abstract_id is None:
            continue
        formats[int(num.get(qn('w:numId')))] = abstract_ordered.get(abstract_id.get(qn('w:val')), False)
    return formats


def _runs_html(paragraph: WordParagraph) -> str:
    parts = []
    for run in paragraph.runs:
        text = escape(run.text)
        if not text:
            continue
        if run.font.name == CODE_FONT and run.font.highlight_color is not None:
            text = f"<code>{text}</code>"
        if run.italic:
            text = f"<em>{text}</em>"
        if run.bold:
            text = f"<strong>{text}</strong>"
        parts.append(text)
    return ''.join(parts)


def _numbering_of(paragraph: WordParagraph) -> Optional[tuple[int, int]]:
    p_pr = paragraph._p.pPr
    if p_pr is None or p_pr.numPr is None or p_pr.numPr.numId is None:
        return None
    ilvl = p_pr.numPr.ilvl
    return p_pr.numPr.numId.val, (ilvl.val if ilvl is not None else 0)


def _table_html(table: WordTable) -> str:
    rows = []
    for row in table.rows:
        cells = []
        for cell in row.cells:
            tag = 'th' if _fill(cell._tc.tcPr) == HEADER_FILL else 'td'
            body = '<br>'.join(_runs_html(p) for p in cell.paragraphs if p.text)
            cells.append(f"<{tag}>{body}</{tag}>")
        rows.append("<tr>" + "".join(cells) + "</tr>")
    return "<table>" + "".join(rows) + "</table>"


def document_to_html(source: Union[WordDocument, bytes]) -> str:
    """Read a generated Word document back into clipboard-style markup."""
    word = new_word_document(io.BytesIO(source)) if isinstance(source, (bytes, bytearray)) else source
    formats = _list_formats(word)
    parts: list[str] = []
    stack: list[list] = []  # [tag, level, num_id, item_open]

    def close_list():
        tag, _, _, item_open = stack.pop()
        if item_open:
            parts.append("</li>")
        parts.append(f"</{tag}>")

    for child in word.element.body.iterchildren():
        if child.tag == qn('w:tbl'):
            while stack:
                close_list()
            parts.append(_table_html(WordTable(child, word)))
            continue
        if child.tag != qn('w:p'):
            continue

        paragraph = WordParagraph(child, word)
        numbering = _numbering_of(paragraph)

        if numbering is not None:
            num_id, level = numbering
            while stack and stack[-1][1] > level:
                close_list()
            if stack and stack[-1][1] == level and stack[-1][2] != num_id:
                close_list()
            if not stack or stack[-1][1] < level:
                tag = 'ol' if formats.get(num_id) else 'ul'
                parts.append(f"<{tag}>")
                stack.append([tag, level, num_id, False])
            top = stack[-1]
            if top[3]:
                parts.append("</li>")
            parts.append(f"<li>{_runs_html(paragraph)}")
            top[3] = True
            continue

        text = paragraph.text
        if not text.strip():
            continue
        while stack:
            close_list()

        style = paragraph.style.name if paragraph.style is not None else ''
        fill = _fill(paragraph._p.pPr)
        if style.startswith('Heading'):
            level = style.replace('Heading', '').strip()
            level = int(level) if level.isdigit() else 1
            parts.append(f"<h{level}>{_runs_html(paragraph)}</h{level}>")
        elif fill == QUOTE_FILL:
            parts.append(f"<blockquote><p>{_runs_html(paragraph)}</p></blockquote>")
        elif fill == CODE_FILL:
            parts.append(f"<pre><code>{escape(text)}</code></pre>")
        elif text == HORIZONTAL_RULE_TEXT:
            parts.append("<hr>")
        else:
            parts.append(f"<p>{_runs_html(paragraph)}</p>")

    while stack:
        close_list()
    return "".join(parts)
