"""Tests for the site walkers and the generic fallback walker."""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from conftest import DEEPSEEK_ANSWER, KIMI_ANSWER, UNKNOWN_SITE_ANSWER
from puretext.document import (
    CodeBlock,
    Heading,
    ListBlock,
    MathFormula,
    Paragraph,
    Table,
    runs_text,
)
from puretext.dom import parse_fragment
from puretext.errors import WalkCancelled
from puretext.renderers.clipboard import render_blocks, render_html
from puretext.walkers import (
    CancelToken,
    GenericWalker,
    Walker,
    create_chatgpt_walker,
    create_deepseek_walker,
    create_doubao_walker,
    create_kimi_walker,
    create_site_walkers,
    extract_text_blocks,
)


class TestCapabilityProbes:

    def test_walkers_satisfy_protocol(self):
        for walker in create_site_walkers() + [GenericWalker()]:
            assert isinstance(walker, Walker)

    def test_priority_order(self):
        names = [walker.name for walker in create_site_walkers()]
        assert names == ['kimi', 'deepseek', 'chatgpt', 'doubao']

    def test_kimi_accepts_own_markup_only(self):
        kimi = create_kimi_walker()
        assert kimi.can_handle(parse_fragment(KIMI_ANSWER))
        assert not kimi.can_handle(parse_fragment(DEEPSEEK_ANSWER))

    def test_deepseek_accepts_own_markup_only(self):
        deepseek = create_deepseek_walker()
        assert deepseek.can_handle(parse_fragment(DEEPSEEK_ANSWER))
        assert not deepseek.can_handle(parse_fragment(KIMI_ANSWER))

    def test_chatgpt_and_doubao_fingerprints(self):
        chatgpt_markup = parse_fragment('<div data-message-author-role="assistant"><div class="prose"><p>Hi</p></div></div>')
        doubao_markup = parse_fragment('<div class="flow-markdown-body"><p>你好</p></div>')
        assert create_chatgpt_walker().can_handle(chatgpt_markup)
        assert not create_chatgpt_walker().can_handle(doubao_markup)
        assert create_doubao_walker().can_handle(doubao_markup)
        assert not create_doubao_walker().can_handle(chatgpt_markup)

    def test_generic_accepts_everything(self):
        walker = GenericWalker()
        assert walker.can_handle(parse_fragment('<span>x</span>'))
        assert walker.priority() == -1


# =============================================================================
# SITE WALKERS
# =============================================================================

class TestKimiWalker:

    @pytest.fixture
    def blocks(self):
        return create_kimi_walker().build(parse_fragment(KIMI_ANSWER)).blocks

    def test_block_sequence(self, blocks):
        assert [type(b) for b in blocks] == [Heading, Paragraph, ListBlock, Table, CodeBlock]

    def test_paragraph_keeps_inline_bold(self, blocks):
        assert render_blocks([blocks[1]]) == "<p>期货<strong>强平</strong>的含义如下。</p>"

    def test_paragraph_wrappers_unwrapped_in_list(self, blocks):
        assert render_blocks([blocks[2]]) == "<ol><li>第一步</li><li>第二步</li></ol>"

    def test_table_header(self, blocks):
        table = blocks[3]
        assert all(cell.is_header for cell in table.rows[0])
        assert [runs_text(cell.runs) for cell in table.rows[1]] == ['保证金', '1000']

    def test_code_block_without_header(self, blocks):
        assert blocks[4].text == 'print(1)'
        assert blocks[4].language == 'python'

    def test_actions_pruned(self, blocks):
        html = render_blocks(blocks)
        assert '复制' not in html


class TestDeepSeekWalker:

    @pytest.fixture
    def blocks(self):
        return create_deepseek_walker().build(parse_fragment(DEEPSEEK_ANSWER)).blocks

    def test_block_sequence(self, blocks):
        assert [type(b) for b in blocks] == [Paragraph, ListBlock, CodeBlock, MathFormula]

    def test_inline_code(self, blocks):
        assert render_blocks([blocks[0]]) == "<p>答案是<code>42</code>。</p>"

    def test_nested_list(self, blocks):
        assert render_blocks([blocks[1]]) == "<ul><li>苹果</li><li>香蕉<ul><li>小香蕉</li></ul></li></ul>"
        nested = blocks[1].items[1][1]
        assert nested.level == 1

    def test_banner_dropped_from_code(self, blocks):
        assert blocks[2].text == 'x = 1'

    def test_display_math_uses_tex_source(self, blocks):
        assert blocks[3].latex == 'E=mc^2'
        assert blocks[3].display_mode

    def test_ordered_list_start(self):
        root = parse_fragment('<div class="ds-markdown"><ol start="3"><li>三</li><li>四</li></ol></div>')
        block = create_deepseek_walker().build(root).blocks[0]
        assert block.start == 3
        assert render_blocks([block]) == '<ol start="3"><li>三</li><li>四</li></ol>'


class TestSemanticInline:

    def test_line_breaks_split_paragraphs(self):
        root = parse_fragment('<div class="ds-markdown"><p>第一行<br>第二行</p></div>')
        blocks = create_deepseek_walker().build(root).blocks
        assert [runs_text(b.runs) for b in blocks] == ['第一行', '第二行']

    def test_link_and_styles(self):
        root = parse_fragment(
            '<div class="ds-markdown"><p><a href="https://example.com">链接</a> <em>斜体</em> <del>删除</del></p></div>'
        )
        html = render_html(create_deepseek_walker().build(root), wrap=False)
        assert html == '<p><a href="https://example.com">链接</a> <em>斜体</em> <s>删除</s></p>'

    def test_loose_text_inference_on_kimi(self):
        root = parse_fragment('<div class="markdown"><div><span>1. 甲项</span><br><span>2. 乙项</span></div></div>')
        blocks = create_kimi_walker().build(root).blocks
        assert len(blocks) == 1
        assert isinstance(blocks[0], ListBlock)
        assert blocks[0].ordered


# =============================================================================
# GENERIC WALKER
# =============================================================================

class TestGenericWalker:

    def test_extract_text_blocks_marks_roles(self):
        fragments = extract_text_blocks(parse_fragment(UNKNOWN_SITE_ANSWER))
        assert fragments == ['### 标题', '第一段内容。', '• 甲项内容', '• 乙项内容']

    def test_build(self):
        document = GenericWalker().build(parse_fragment(UNKNOWN_SITE_ANSWER))
        assert [type(b) for b in document.blocks] == [Heading, Paragraph, ListBlock]
        assert document.blocks[0].level == 3
        assert not document.blocks[2].ordered

    def test_ordered_items_numbered(self):
        fragments = extract_text_blocks(parse_fragment('<ol><li>甲项内容</li><li>乙项内容</li></ol>'))
        assert fragments == ['1. 甲项内容', '2. 乙项内容']

    def test_ordered_items_with_labels_stay_ordered(self):
        root = parse_fragment('<ol><li>Step one: open the box</li><li>Step two: plug it in</li></ol>')
        assert extract_text_blocks(root) == ['1. Step one: open the box', '2. Step two: plug it in']
        document = GenericWalker().build(root)
        assert len(document.blocks) == 1
        assert document.blocks[0].ordered
        assert render_blocks(document.blocks) == '<ol><li>Step one: open the box</li><li>Step two: plug it in</li></ol>'

    def test_pre_is_fenced(self):
        document = GenericWalker().build(parse_fragment('<div><pre>a = 1\nb = 2</pre></div>'))
        assert isinstance(document.blocks[0], CodeBlock)
        assert document.blocks[0].text == 'a = 1\nb = 2'

    def test_single_character_fragments_kept(self):
        assert extract_text_blocks(parse_fragment('<div><span>是</span></div>')) == ['是']
        assert extract_text_blocks(parse_fragment('<div><p>好</p><p>的</p></div>')) == ['好', '的']

    def test_whitespace_fragments_dropped(self):
        assert extract_text_blocks(parse_fragment('<div><span> 　 </span><p>\n</p></div>')) == []

    def test_cancelled_token_stops_walk(self):
        token = CancelToken()
        token.cancel()
        with pytest.raises(WalkCancelled):
            GenericWalker().build(parse_fragment(UNKNOWN_SITE_ANSWER), token)

    @pytest.mark.asyncio
    async def test_format_returns_markup(self):
        html = await GenericWalker().format(parse_fragment(UNKNOWN_SITE_ANSWER))
        assert html.startswith('<div><h3>')
        assert '<ul><li>甲项内容</li><li>乙项内容</li></ul>' in html
