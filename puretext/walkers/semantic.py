"""Recursive-descent walker for sites with (mostly) semantic markup.

One implementation serves every site; what differs between sites is the
SiteVocabulary it is configured with (paragraph-role classes, wrappers to
unwrap, math and code containers, controls to prune, fingerprints).
"""

import asyncio
import re
from dataclasses import replace
from typing import Optional

from bs4 import Tag

from ..document import (
    Block,
    Blockquote,
    Cell,
    CodeBlock,
    Document,
    Heading,
    HorizontalRule,
    InlineRun,
    Link,
    ListBlock,
    MathFormula,
    Paragraph,
    Table,
    normalize_runs,
    strip_runs,
)
from ..dom import HEADING_TAGS, NON_CONTENT_TAGS, classes, is_text, text_content
from ..renderers.clipboard import render_html
from ..structure import infer_blocks
from .base import CancelToken, SiteVocabulary, check

INLINE_TAGS = {
    'a', 'abbr', 'b', 'bdi', 'bdo', 'br', 'cite', 'code', 'data', 'del', 'dfn', 'em',
    'font', 'i', 'img', 'ins', 'kbd', 'label', 'mark', 'math', 'q', 's', 'samp', 'small',
    'span', 'strike', 'strong', 'sub', 'sup', 'time', 'tt', 'u', 'var', 'wbr',
}

PRUNED_TAGS = NON_CONTENT_TAGS | {'button', 'input', 'select', 'textarea', 'img', 'video', 'audio', 'canvas'}

BOLD_TAGS = {'strong', 'b'}
ITALIC_TAGS = {'em', 'i', 'cite', 'var', 'dfn'}
UNDERLINE_TAGS = {'u', 'ins'}
STRIKE_TAGS = {'s', 'del', 'strike'}
CODE_TAGS = {'code', 'kbd', 'samp', 'tt'}

TEX_ANNOTATION = {'encoding': 'application/x-tex'}

# Sentinel text for <br>; collapsed source whitespace never contains '\n'
LINE_BREAK = '\n'

_WHITESPACE = re.compile(r'\s+')
_LANGUAGE_CLASS = re.compile(r'^(?:language|lang)-(.+)$')


class SemanticWalker:
    """Site walker driven by a SiteVocabulary."""

    def __init__(self, vocabulary: SiteVocabulary):
        self.vocabulary = vocabulary
        self.name = vocabulary.name

    def __repr__(self) -> str:
        return f"<SemanticWalker {self.name} priority={self.vocabulary.priority}>"

    # -------------------------------------------------------------------------
    # Capability interface
    # -------------------------------------------------------------------------

    def can_handle(self, node: Tag) -> bool:
        if not isinstance(node, Tag):
            return False
        if any(reject.matches(node) for reject in self.vocabulary.rejects):
            return False
        return self.vocabulary.fingerprint.matches(node)

    def priority(self) -> int:
        return self.vocabulary.priority

    def build(self, node: Tag, token: Optional[CancelToken] = None) -> Document:
        blocks = self._blocks(node, token, level=0, infer=self.vocabulary.infer_loose_text)
        return Document(blocks=blocks)

    async def format(self, node: Tag) -> str:
        document = await asyncio.to_thread(self.build, node)
        return render_html(document)

    # -------------------------------------------------------------------------
    # Role predicates
    # -------------------------------------------------------------------------

    def _pruned(self, element: Tag) -> bool:
        if element.name in PRUNED_TAGS:
            return True
        return self.vocabulary.has_any(element, self.vocabulary.pruned_classes)

    def _is_display_math(self, element: Tag) -> bool:
        return self.vocabulary.has_any(element, self.vocabulary.display_math_classes)

    def _is_inline_math(self, element: Tag) -> bool:
        return element.name == 'math' or self.vocabulary.has_any(element, self.vocabulary.math_classes)

    def _is_paragraph_role(self, element: Tag) -> bool:
        return element.name == 'p' or self.vocabulary.has_any(element, self.vocabulary.paragraph_classes)

    def _is_inline(self, element: Tag) -> bool:
        if self._is_display_math(element) or self._is_paragraph_role(element):
            return False
        if element.name == 'span' and self._contains_blocks(element):
            return False
        return element.name in INLINE_TAGS

    def _contains_blocks(self, element: Tag) -> bool:
        return element.find(['p', 'div', 'ul', 'ol', 'table', 'pre', 'blockquote'] + sorted(HEADING_TAGS)) is not None

    # -------------------------------------------------------------------------
    # Block level
    # -------------------------------------------------------------------------

    def _blocks(self, container: Tag, token, level: int, infer: bool = False) -> list[Block]:
        """Walk a container's children, flushing loose inline content as paragraphs."""
        blocks: list[Block] = []
        pending: list[InlineRun] = []

        for child in container.children:
            check(token)
            if is_text(child):
                pending.append(InlineRun(text=_collapse(str(child))))
                continue
            if not isinstance(child, Tag) or self._pruned(child):
                continue
            if self._is_inline(child):
                pending.extend(self._inline(child, token, {}))
                continue
            blocks.extend(self._flush(pending, infer))
            pending = []
            blocks.extend(self._block(child, token, level))

        blocks.extend(self._flush(pending, infer))
        return blocks

    def _flush(self, runs: list[InlineRun], infer: bool) -> list[Block]:
        lines = [strip_runs(line) for line in _split_lines(runs)]
        lines = [line for line in lines if line]
        if not lines:
            return []
        if infer and all(_is_plain(run) for line in lines for run in line):
            return infer_blocks(["".join(run.text for run in line) for line in lines])
        return [Paragraph(runs=line) for line in lines]

    def _block(self, element: Tag, token, level: int) -> list[Block]:
        name = element.name
        vocabulary = self.vocabulary

        if self._is_display_math(element):
            return [MathFormula(latex=self._latex(element), display_mode=True)]

        if name in HEADING_TAGS:
            runs = _single_line(self._runs(element, token, {}))
            return [Heading(level=int(name[1]), runs=runs)] if runs else []

        if name in ('ul', 'ol'):
            block = self._list(element, token, level)
            return [block] if block.items else []

        if name == 'table':
            table = self._table(element, token)
            return [table] if table.rows else []

        if vocabulary.has_any(element, vocabulary.table_wrapper_classes):
            inner = element.find('table')
            if inner is not None:
                table = self._table(inner, token)
                return [table] if table.rows else []

        if name == 'pre':
            return [self._code(element)]

        if vocabulary.has_any(element, vocabulary.code_block_classes):
            inner = element.find('pre')
            if inner is not None:
                return [self._code(inner)]

        if name == 'hr':
            return [HorizontalRule()]

        if name == 'blockquote':
            runs = self._quote_runs(element, token)
            return [Blockquote(runs=runs)] if runs else []

        if self._is_paragraph_role(element) and not self._contains_blocks(element):
            return self._blocks(element, token, level, infer=False)

        if name == 'li':
            return self._blocks(element, token, level + 1, infer=False)

        # Generic container: flatten its children into the parent
        return self._blocks(element, token, level, infer=vocabulary.infer_loose_text)

    def _list(self, element: Tag, token, level: int) -> ListBlock:
        ordered = element.name == 'ol'
        start = _int_attr(element, 'start', 1)
        items = []
        for child in element.children:
            check(token)
            if not isinstance(child, Tag) or self._pruned(child):
                continue
            if child.name == 'li':
                item = self._list_item(child, token, level)
                if item:
                    items.append(item)
            elif child.name in ('ul', 'ol'):
                # Nested list placed directly in the list: attach to the previous item
                nested = self._list(child, token, level + 1)
                if nested.items:
                    if items:
                        items[-1].append(nested)
                    else:
                        items.append([nested])
        return ListBlock(ordered=ordered, items=items, level=level, start=start)

    def _list_item(self, li: Tag, token, level: int) -> list[Block]:
        """Blocks of one list item; a lone paragraph-role wrapper is unwrapped."""
        elements = [c for c in li.children if isinstance(c, Tag) and not self._pruned(c)]
        loose_text = any(is_text(c) and str(c).strip() for c in li.children)
        if len(elements) == 1 and not loose_text and self._is_item_wrapper(elements[0]):
            return self._item_blocks(elements[0], token, level)
        return self._item_blocks(li, token, level)

    def _is_item_wrapper(self, element: Tag) -> bool:
        if element.name == 'p' or (element.name == 'div' and not classes(element)):
            return True
        return self.vocabulary.has_any(element, self.vocabulary.list_item_wrapper_classes + self.vocabulary.paragraph_classes)

    def _item_blocks(self, container: Tag, token, level: int) -> list[Block]:
        blocks: list[Block] = []
        pending: list[InlineRun] = []

        for child in container.children:
            check(token)
            if is_text(child):
                pending.append(InlineRun(text=_collapse(str(child))))
                continue
            if not isinstance(child, Tag) or self._pruned(child):
                continue
            if child.name in ('ul', 'ol'):
                blocks.extend(self._flush(pending, False))
                pending = []
                nested = self._list(child, token, level + 1)
                if nested.items:
                    blocks.append(nested)
                continue
            if self._is_inline(child):
                pending.extend(self._inline(child, token, {}))
                continue
            if self._is_item_wrapper(child) and not self._contains_blocks(child):
                # Wrapper content joins the item's own text
                pending.extend(self._runs(child, token, {}))
                continue
            blocks.extend(self._flush(pending, False))
            pending = []
            blocks.extend(self._block(child, token, level + 1))

        blocks.extend(self._flush(pending, False))
        return blocks

    def _table(self, table: Tag, token) -> Table:
        rows = []
        for tr in table.find_all('tr'):
            check(token)
            if tr.find_parent('table') is not table:
                continue
            head = tr.find_parent('thead')
            in_head = head is not None and head.find_parent('table') is table
            cells = []
            for cell in tr.find_all(['td', 'th'], recursive=False):
                runs = _single_line(self._runs(cell, token, {}))
                cells.append(Cell(runs=runs, is_header=in_head or cell.name == 'th'))
            if cells:
                rows.append(cells)
        return Table(rows=rows)

    def _code(self, pre: Tag) -> CodeBlock:
        code = pre.find('code')
        source = code if code is not None else pre
        text = text_content(source).rstrip('\n')
        language = None
        for element in (source, pre):
            for name in classes(element):
                match = _LANGUAGE_CLASS.match(name)
                if match:
                    language = match.group(1)
                    break
            if language:
                break
        return CodeBlock(text=text, language=language)

    def _quote_runs(self, element: Tag, token) -> list[InlineRun]:
        runs: list[InlineRun] = []
        for block in self._blocks(element, token, 0, infer=False):
            block_runs = getattr(block, 'runs', None)
            if block_runs is None:
                continue
            if runs:
                runs.append(InlineRun(text=' '))
            runs.extend(block_runs)
        return strip_runs(runs)

    # -------------------------------------------------------------------------
    # Inline level
    # -------------------------------------------------------------------------

    def _latex(self, element: Tag) -> str:
        annotation = element.find('annotation', attrs=TEX_ANNOTATION)
        if annotation is not None:
            return text_content(annotation).strip()
        rendered = element.find(class_='katex-html')
        source = rendered if rendered is not None else element
        return _collapse(text_content(source)).strip()

    def _runs(self, element: Tag, token, style: dict) -> list[InlineRun]:
        """Inline runs of an element's children, carrying inherited styles."""
        runs: list[InlineRun] = []
        for child in element.children:
            check(token)
            if is_text(child):
                runs.append(InlineRun(text=_collapse(str(child)), **style))
            elif isinstance(child, Tag) and not self._pruned(child):
                runs.extend(self._inline(child, token, style))
        return runs

    def _inline(self, element: Tag, token, style: dict) -> list[InlineRun]:
        """Runs for one inline element (the element itself, not just its children)."""
        name = element.name
        if name == 'br':
            return [InlineRun(text=LINE_BREAK)]
        if self._is_inline_math(element) or self._is_display_math(element):
            latex = self._latex(element)
            return [InlineRun(text=latex, **{**style, 'italic': True})] if latex else []
        if name in BOLD_TAGS:
            return self._runs(element, token, {**style, 'bold': True})
        if name in ITALIC_TAGS:
            return self._runs(element, token, {**style, 'italic': True})
        if name in UNDERLINE_TAGS:
            return self._runs(element, token, {**style, 'underline': True})
        if name in STRIKE_TAGS:
            return self._runs(element, token, {**style, 'strike': True})
        if name in CODE_TAGS:
            return [InlineRun(text=text_content(element), **{**style, 'code': True})]
        if name == 'a':
            return self._runs(element, token, {**style, 'link': _link(element)})
        return self._runs(element, token, style)


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(' ', text)


def _is_plain(run: InlineRun) -> bool:
    return not (run.bold or run.italic or run.code or run.underline or run.strike or run.link or run.color)


def _split_lines(runs: list[InlineRun]) -> list[list[InlineRun]]:
    lines: list[list[InlineRun]] = [[]]
    for run in normalize_runs(runs):
        if LINE_BREAK not in run.text:
            lines[-1].append(run)
            continue
        parts = run.text.split(LINE_BREAK)
        for index, part in enumerate(parts):
            if index:
                lines.append([])
            if part:
                lines[-1].append(replace(run, text=part))
    return lines


def _link(anchor: Tag) -> Optional[Link]:
    href = (anchor.get('href') or '').strip()
    if not href or href.startswith('#') or href.lower().startswith('javascript:'):
        return None
    title = anchor.get('title')
    return Link(href=href, title=title or None)


def _int_attr(element: Tag, name: str, default: int) -> int:
    try:
        return int(element.get(name, default))
    except (TypeError, ValueError):
        return default


def _single_line(runs: list[InlineRun]) -> list[InlineRun]:
    """Runs with line breaks folded to spaces (headings, table cells)."""
    flat = [replace(run, text=run.text.replace(LINE_BREAK, ' ')) for run in runs]
    return strip_runs([replace(run, text=_collapse(run.text)) for run in flat])
