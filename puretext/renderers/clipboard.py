"""Clipboard markup serializer.

Turns a Canonical Document into a bare markup snippet. No styling is added
here; presentation fixes for the consuming word processors live in
``optimizer.py`` so this output stays predictable and easy to test.
"""

import html

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


def escape(text: str) -> str:
    """Escape text content (quotes are left alone outside attributes)."""
    return html.escape(text, quote=False)


def escape_attr(value: str) -> str:
    return html.escape(value, quote=True)


def render_run(run: InlineRun) -> str:
    text = escape(run.text)
    if run.code:
        text = f"<code>{text}</code>"
    if run.strike:
        text = f"<s>{text}</s>"
    if run.underline and run.link is None:
        text = f"<u>{text}</u>"
    if run.italic:
        text = f"<em>{text}</em>"
    if run.bold:
        text = f"<strong>{text}</strong>"
    if run.color:
        text = f'<span style="color: #{escape_attr(run.color)}">{text}</span>'
    if run.link is not None:
        title = f' title="{escape_attr(run.link.title)}"' if run.link.title else ''
        text = f'<a href="{escape_attr(run.link.href)}"{title}>{text}</a>'
    return text


def render_runs(runs: list[InlineRun]) -> str:
    return "".join(render_run(run) for run in normalize_runs(runs))


def _render_list(block: ListBlock) -> str:
    tag = 'ol' if block.ordered else 'ul'
    start = f' start="{block.start}"' if block.ordered and block.start != 1 else ''
    parts = [f"<{tag}{start}>"]
    for item in block.items:
        # A lone paragraph is the item's text, not a nested <p>
        if len(item) == 1 and isinstance(item[0], Paragraph):
            body = render_runs(item[0].runs)
        else:
            body = render_blocks(item, inline_first_paragraph=True)
        parts.append(f"<li>{body}</li>")
    parts.append(f"</{tag}>")
    return "".join(parts)


def _render_table(block: Table) -> str:
    if not block.rows:
        return ''
    parts = ["<table>"]
    header_rows = []
    body_rows = list(block.rows)
    while body_rows and body_rows[0] and all(cell.is_header for cell in body_rows[0]):
        header_rows.append(body_rows.pop(0))

    def row_html(row):
        cells = []
        for cell in row:
            tag = 'th' if cell.is_header else 'td'
            cells.append(f"<{tag}>{render_runs(cell.runs)}</{tag}>")
        return "<tr>" + "".join(cells) + "</tr>"

    if header_rows:
        parts.append("<thead>" + "".join(row_html(row) for row in header_rows) + "</thead>")
    if body_rows:
        parts.append("<tbody>" + "".join(row_html(row) for row in body_rows) + "</tbody>")
    parts.append("</table>")
    return "".join(parts)


def render_block(block: Block) -> str:
    if isinstance(block, Heading):
        level = max(1, min(6, block.level))
        return f"<h{level}>{render_runs(block.runs)}</h{level}>"
    if isinstance(block, Paragraph):
        body = render_runs(block.runs)
        return f"<p>{body}</p>" if body else ''
    if isinstance(block, Blockquote):
        return f"<blockquote><p>{render_runs(block.runs)}</p></blockquote>"
    if isinstance(block, ListBlock):
        return _render_list(block) if block.items else ''
    if isinstance(block, CodeBlock):
        language = f' class="language-{escape_attr(block.language)}"' if block.language else ''
        return f"<pre><code{language}>{escape(block.text)}</code></pre>"
    if isinstance(block, Table):
        return _render_table(block)
    if isinstance(block, MathFormula):
        if block.display_mode:
            return f'<p class="math-display"><em>{escape(block.latex)}</em></p>'
        return f'<span class="math-inline"><em>{escape(block.latex)}</em></span>'
    if isinstance(block, HorizontalRule):
        return "<hr>"
    raise TypeError(f"Unknown block type: {type(block).__name__}")


def render_blocks(blocks: list[Block], inline_first_paragraph: bool = False) -> str:
    parts = []
    for index, block in enumerate(blocks):
        if inline_first_paragraph and index == 0 and isinstance(block, Paragraph):
            parts.append(render_runs(block.runs))
        else:
            parts.append(render_block(block))
    return "".join(parts)


def render_html(document: Document, wrap: bool = True) -> str:
    """Serialize a document; ``wrap`` puts the blocks in a single <div>."""
    body = render_blocks(document.blocks)
    return f"<div>{body}</div>" if wrap else body
