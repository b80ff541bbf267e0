"""Tests for the clipboard, optimizer, plain-text, Word and PDF renderers."""

import io
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from pypdf import PdfReader

import config
from puretext.document import (
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
    plain_runs,
)
from puretext.renderers import (
    build_word_document,
    document_to_html,
    normalize_whitespace,
    optimize,
    render_docx,
    render_html,
    render_pdf,
    render_plain_text,
    strip_markdown,
    validate_html_structure,
)
from puretext.renderers.optimizer import encode_special_characters, standardize_html, style_lists


def para(text, **styles):
    return Paragraph(runs=plain_runs(text, **styles))


def items(*texts):
    return [[para(text)] for text in texts]


SAMPLE = Document(blocks=[
    Heading(level=2, runs=plain_runs("标题")),
    para("正文"),
    ListBlock(ordered=True, items=items("第一项", "第二项")),
    Blockquote(runs=plain_runs("引用内容")),
    CodeBlock(text="x = 1"),
])


# =============================================================================
# CLIPBOARD
# =============================================================================

class TestClipboard:

    def test_paragraph_round_trip(self):
        document = Document(blocks=[para("你好，世界")])
        assert render_html(document, wrap=False) == "<p>你好，世界</p>"
        assert render_plain_text(document) == "你好，世界"

    def test_sample_markup(self):
        assert render_html(SAMPLE) == (
            "<div><h2>标题</h2><p>正文</p><ol><li>第一项</li><li>第二项</li></ol>"
            "<blockquote><p>引用内容</p></blockquote><pre><code>x = 1</code></pre></div>"
        )

    def test_inline_styles_and_link(self):
        document = Document(blocks=[Paragraph(runs=[
            InlineRun(text="粗", bold=True),
            InlineRun(text="链接", link=Link(href="https://example.com?a=1&b=2")),
        ])])
        assert render_html(document, wrap=False) == (
            '<p><strong>粗</strong><a href="https://example.com?a=1&amp;b=2">链接</a></p>'
        )

    def test_table_header_section(self):
        table = Table(rows=[
            [Cell(runs=plain_runs("名称"), is_header=True), Cell(runs=plain_runs("值"), is_header=True)],
            [Cell(runs=plain_runs("甲")), Cell(runs=plain_runs("1"))],
        ])
        assert render_html(Document(blocks=[table]), wrap=False) == (
            "<table><thead><tr><th>名称</th><th>值</th></tr></thead>"
            "<tbody><tr><td>甲</td><td>1</td></tr></tbody></table>"
        )

    def test_math_and_rule(self):
        document = Document(blocks=[MathFormula(latex="a^2", display_mode=True), HorizontalRule()])
        assert render_html(document, wrap=False) == '<p class="math-display"><em>a^2</em></p><hr>'


# =============================================================================
# OPTIMIZER
# =============================================================================

class TestOptimizer:

    def test_closes_unbalanced_tags(self):
        assert standardize_html("<ul><li>一<li>二</ul>") == "<ul><li>一</li><li>二</li></ul>"

    def test_nested_list_items_stay_nested(self):
        html = "<ul><li>外<ul><li>内一<li>内二</ul></li><li>外二</li></ul>"
        assert standardize_html(html) == "<ul><li>外<ul><li>内一</li><li>内二</li></ul></li><li>外二</li></ul>"

    def test_drops_stray_closers_and_empty_paragraphs(self):
        assert standardize_html("<p></p><p>正文</p></span></p>") == "<p>正文</p>"

    def test_misnested_inline_tags_balanced(self):
        html = standardize_html("<p><b><i>粗斜</b>斜</i></p>")
        assert validate_html_structure(html) == []
        assert "粗斜" in html

    def test_paragraph_closed_by_block(self):
        assert standardize_html("<p>一<div>二</div>") == "<p>一</p><div>二</div>"

    def test_self_closes_void_tags(self):
        assert standardize_html("<p>一<br>二</p><hr>") == "<p>一<br />二</p><hr />"

    def test_special_characters_in_text_only(self):
        assert encode_special_characters('<p title="“x”">“引号”…</p>') == (
            '<p title="“x”">&ldquo;引号&rdquo;&hellip;</p>'
        )

    def test_straight_quotes_untouched(self):
        assert encode_special_characters('<p>"a" \'b\'</p>') == '<p>"a" \'b\'</p>'

    def test_list_styles_by_depth(self):
        html = style_lists("<ol><li>a<ol><li>b</li></ol></li></ol>")
        assert "list-style-type: decimal" in html
        assert "list-style-type: lower-alpha" in html

    def test_optimize_produces_balanced_document(self):
        html = optimize("<div><p>正文<ul><li>项</ul></div>", title="标题")
        assert html.startswith("<!DOCTYPE html>")
        assert '<meta charset="UTF-8">' in html
        assert "<title>标题</title>" in html
        assert validate_html_structure(html) == []

    def test_default_title(self):
        assert "<title>复制的内容</title>" in optimize("<p>x</p>")

    def test_validate_reports_unbalanced(self):
        assert validate_html_structure("<p><p></p>") == ["<p> opened 1 more time(s) than closed"]


# =============================================================================
# PLAIN TEXT
# =============================================================================

MARKDOWN_SAMPLES = [
    ("bold_and_code", "**粗体** 和 `代码` 以及 ~~删除~~"),
    ("headings", "# 一级标题\n## 二级标题\n正文"),
    ("nested_stars", "****强调****"),
    ("fence", "```python\nprint('hi')\n```"),
    ("odd_tokens", "`` ` `` and ** unmatched"),
    ("hash_after_space", "   ### 缩进标题"),
    ("markup", "<h1>标题</h1><p><strong>粗</strong> <code>c</code> <del>删</del></p><pre><code>x</code></pre>"),
]


class TestPlainText:

    @pytest.mark.parametrize("name,source", MARKDOWN_SAMPLES)
    def test_no_markdown_tokens(self, name, source):
        text = render_plain_text(source)
        for token in ("**", "`", "~~"):
            assert token not in text, f"{name}: {token!r} left in {text!r}"
        for line in text.split("\n"):
            assert not line.startswith("#"), f"{name}: heading marker left in {line!r}"

    def test_keeps_text(self):
        assert render_plain_text("**粗体** 和 [链接](https://example.com)") == "粗体 和 链接"

    def test_document_lists(self):
        document = Document(blocks=[
            ListBlock(ordered=True, items=items("甲", "乙")),
            ListBlock(ordered=False, items=items("丙")),
        ])
        assert render_plain_text(document) == "甲\n乙\n\n丙"

    def test_markup_list_and_rule(self):
        text = render_plain_text("<ol><li>alpha</li><li>beta</li></ol><p>***</p><ul><li>gamma</li></ul>")
        assert [line for line in text.split("\n") if line] == ["alpha", "beta", "gamma"]
        assert "*" not in text

    @pytest.mark.parametrize("source", ["1. 第一步\n2) 第二步", "• 要点\n* 要点"])
    def test_list_markers_stripped(self, source):
        for line in strip_markdown(source).split("\n"):
            assert line in ("第一步", "第二步", "要点")

    @pytest.mark.parametrize("rule", ["***", "* * *", "---", "___", "\\*\\*\\*"])
    def test_horizontal_rules_removed(self, rule):
        assert render_plain_text(f"上文\n\n{rule}\n\n下文") == "上文\n\n下文"

    def test_document_styles_never_leak(self):
        document = Document(blocks=[Paragraph(runs=[
            InlineRun(text="粗", bold=True),
            InlineRun(text="码", code=True),
        ])])
        assert render_plain_text(document) == "粗码"

    def test_none_and_empty(self):
        assert render_plain_text(None) == ""
        assert render_plain_text("") == ""

    def test_strip_markdown_quote_and_list(self):
        assert strip_markdown("> 引用\n- 项目") == "引用\n项目"

    def test_normalize_whitespace(self):
        assert normalize_whitespace("a\u3000\u3000b\r\n\n\n\n\nc  ") == "a b\n\nc"


# =============================================================================
# WORD
# =============================================================================

class TestWord:

    def test_render_docx_is_zip(self):
        data = render_docx(SAMPLE, "问题")
        assert data[:2] == b"PK"

    def test_core_properties(self):
        word = build_word_document(SAMPLE, "什么是强平？")
        assert word.core_properties.title == "什么是强平？"
        assert word.core_properties.author == config.DOCUMENT_AUTHOR

    def test_default_title(self):
        assert build_word_document(SAMPLE).core_properties.title == "PureText导出"

    def test_round_trip_matches_clipboard_structure(self):
        html = document_to_html(render_docx(SAMPLE))
        assert html == render_html(SAMPLE, wrap=False)

    def test_ordered_lists_restart(self):
        document = Document(blocks=[
            ListBlock(ordered=True, items=items("一", "二")),
            para("中间"),
            ListBlock(ordered=True, items=items("三")),
        ])
        word = build_word_document(document)
        num_ids = [p._p.pPr.numPr.numId.val for p in word.paragraphs if p._p.pPr is not None and p._p.pPr.numPr is not None]
        assert num_ids[0] == num_ids[1]
        assert num_ids[2] != num_ids[0]

    def test_nested_list_round_trip(self):
        document = Document(blocks=[ListBlock(ordered=False, items=[
            [para("外"), ListBlock(ordered=False, items=items("内"), level=1)],
            [para("外二")],
        ])])
        assert document_to_html(build_word_document(document)) == (
            "<ul><li>外<ul><li>内</li></ul></li><li>外二</li></ul>"
        )

    def test_table_and_rule(self):
        document = Document(blocks=[
            Table(rows=[
                [Cell(runs=plain_runs("名称"), is_header=True)],
                [Cell(runs=plain_runs("甲"))],
            ]),
            HorizontalRule(),
        ])
        html = document_to_html(build_word_document(document))
        assert html == "<table><tr><th><strong>名称</strong></th></tr><tr><td>甲</td></tr></table><hr>"

    def test_illegal_xml_characters_dropped(self):
        data = render_docx(Document(blocks=[para("a\x00b\x0bc")]))
        assert document_to_html(data) == "<p>abc</p>"


# =============================================================================
# PDF
# =============================================================================

def pdf_pages(data: bytes) -> int:
    assert data[:5] == b"%PDF-"
    return len(PdfReader(io.BytesIO(data)).pages)


class TestPdf:

    def test_render_pdf(self):
        data = render_pdf(SAMPLE, "Margin call")
        assert pdf_pages(data) == 1
        assert PdfReader(io.BytesIO(data)).metadata.title == "Margin call"

    def test_default_title(self):
        reader = PdfReader(io.BytesIO(render_pdf(Document(blocks=[para("x")]))))
        assert reader.metadata.title == "PureText导出"

    def test_empty_document(self):
        assert pdf_pages(render_pdf(Document())) == 1

    def test_markup_characters_in_text(self):
        document = Document(blocks=[Paragraph(runs=[
            InlineRun(text="a < b && c > d "),
            InlineRun(text="<tag>", code=True),
            InlineRun(text="链接", link=Link(href='https://example.com/?q="x"&a=1')),
            InlineRun(text="红", color="ff0000"),
            InlineRun(text="坏色", color="not-a-color"),
        ])])
        assert pdf_pages(render_pdf(document)) == 1

    def test_every_block_type(self):
        nested = ListBlock(ordered=False, items=items("内一", "内二"))
        document = Document(blocks=[
            Heading(level=1, runs=plain_runs("一级标题")),
            ListBlock(ordered=True, start=3, items=[[para("外"), nested], [para("外二")]]),
            Table(rows=[
                [Cell(runs=plain_runs("名称"), is_header=True), Cell(runs=plain_runs("值"), is_header=True)],
                [Cell(runs=plain_runs("甲"))],
            ]),
            CodeBlock(text="print('你好')\nx = 1"),
            MathFormula(latex="E = mc^2", display_mode=True),
            HorizontalRule(),
            Blockquote(runs=plain_runs("引用内容", italic=True)),
        ])
        assert pdf_pages(render_pdf(document)) >= 1

    def test_long_document_breaks_pages(self):
        document = Document(blocks=[para(f"第{n}段：保证金比例决定了杠杆的大小。") for n in range(200)])
        assert pdf_pages(render_pdf(document)) > 1
