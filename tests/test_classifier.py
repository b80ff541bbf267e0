"""Tests for message classification and thinking detection."""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from puretext.classifier import (
    Geometry,
    MessageType,
    classify,
    is_thinking_content,
    is_thinking_text_content,
    lexical_signal,
    remove_thinking,
    should_process,
    LEXICAL_CAP,
)
from puretext.dom import parse_fragment, text_content


def first_div(markup: str):
    return parse_fragment(markup).find('div')


class TestClassify:

    def test_user_message_class(self):
        node = first_div('<div class="user-message">请帮我解释一下什么是期货？</div>')
        result = classify(node)
        assert result.type == MessageType.HUMAN
        assert 'class-user-content' in result.indicators
        assert should_process(node) is False

    def test_role_attribute_beats_human_wording(self):
        node = first_div('<div data-role="assistant">请问我想知道为什么会这样？帮我分析一下可以吗？</div>')
        result = classify(node)
        assert result.type == MessageType.AI
        assert 'attr-assistant' in result.indicators
        assert should_process(node) is True

    def test_role_attribute_on_ancestor(self):
        root = parse_fragment(
            '<div data-message-author-role="user"><div class="bubble">'
            '<div id="msg">Tomorrow at noon works for everyone on the team.</div>'
            '</div></div>'
        )
        node = root.find(id='msg')
        result = classify(node)
        assert result.type == MessageType.HUMAN
        assert 'attr-user' in result.indicators
        assert result.confidence == pytest.approx(1.0)
        assert should_process(node) is False

    def test_ancestor_beyond_attribute_depth_ignored(self):
        root = parse_fragment(
            '<div data-role="user"><div><div><div><div><div>'
            '<div id="msg">Tomorrow at noon works for everyone on the team.</div>'
            '</div></div></div></div></div></div>'
        )
        result = classify(root.find(id='msg'))
        assert 'attr-user' not in result.indicators

    def test_ai_structure(self):
        node = first_div(
            '<div class="segment-content-box"><p>以下是具体步骤：</p>'
            '<ol><li>首先准备材料</li><li>其次开始操作</li></ol></div>'
        )
        result = classify(node)
        assert result.type == MessageType.AI
        assert 'ai-structure' in result.indicators

    def test_code_counts_toward_ai(self):
        node = first_div('<div><p>Here is the fix:</p><pre><code>x = 1</code></pre></div>')
        result = classify(node)
        assert result.type == MessageType.AI
        assert 'code-content' in result.indicators

    def test_right_narrow_geometry_is_human(self):
        node = first_div('<div>好的</div>')
        result = classify(node, Geometry(left=900, width=200, viewport_width=1200))
        assert 'position-right-narrow' in result.indicators
        assert result.type == MessageType.HUMAN

    def test_none_is_unknown(self):
        result = classify(None)
        assert result.type == MessageType.UNKNOWN
        assert result.indicators == ['element-null']

    def test_confidence_is_share_of_winning_side(self):
        node = first_div('<div data-role="user" class="user-message">请问怎么办？</div>')
        result = classify(node)
        assert result.type == MessageType.HUMAN
        assert result.confidence == pytest.approx(1.0)


class TestLexicalSignal:

    def test_capped_per_side(self):
        score = lexical_signal("请问我想我需要帮我告诉我为什么如何什么是？")
        assert score.human == LEXICAL_CAP

    def test_ai_phrases(self):
        score = lexical_signal("以下是我建议的方案，此外还需要注意风险。")
        assert score.ai > 0
        assert score.human == 0


# =============================================================================
# THINKING
# =============================================================================

THINKING_TEXT = [
    ("planning_zh", "让我想想这个问题该怎么回答"),
    ("planning_en", "Let me think about what the user is asking here."),
    ("user_intent", "用户想要了解期货的强平机制"),
    ("status_line", "已深度思考（用时 5 秒）"),
    ("keyword_density", "这里需要分析用户的需求，考虑合适的策略"),
]

ANSWER_TEXT = [
    ("fact", "北京是中国的首都。"),
    ("explanation", "保证金比例决定了杠杆的大小，比例越低风险越高。"),
    ("code_label", "代码示例"),
]


class TestThinkingText:

    @pytest.mark.parametrize("name,text", THINKING_TEXT)
    def test_detects_thinking(self, name, text):
        assert is_thinking_text_content(text), f"{name} should read as thinking"

    @pytest.mark.parametrize("name,text", ANSWER_TEXT)
    def test_answer_is_not_thinking(self, name, text):
        assert not is_thinking_text_content(text), f"{name} should not read as thinking"

    def test_empty(self):
        assert not is_thinking_text_content("")
        assert not is_thinking_text_content("   ")


class TestRemoveThinking:

    def test_removes_thinking_class_keeps_siblings(self):
        root = parse_fragment(
            '<div><div class="thinking-container"><p>推理过程</p></div><p>最终答案</p></div>'
        )
        assert remove_thinking(root) == 1
        text = text_content(root)
        assert '推理过程' not in text
        assert '最终答案' in text

    def test_removes_data_attribute_marker(self):
        root = parse_fragment('<div><section data-type="reasoning">内部推理</section><p>答案</p></div>')
        assert remove_thinking(root) == 1
        assert '内部推理' not in text_content(root)

    def test_ambiguous_container_decided_by_text(self):
        root = parse_fragment(
            '<div>'
            '<details><summary>已深度思考</summary><p>用户想要了解期货</p></details>'
            '<details><summary>代码示例</summary><pre>x = 1</pre></details>'
            '</div>'
        )
        assert remove_thinking(root) == 1
        text = text_content(root)
        assert '用户想要' not in text
        assert 'x = 1' in text

    def test_thinking_root_is_emptied(self):
        root = parse_fragment('<div class="reasoning-block"><p>推理</p></div>').find('div')
        assert remove_thinking(root) == 1
        assert text_content(root) == ''

    def test_nothing_to_remove(self):
        root = parse_fragment('<div><p>普通回答</p></div>')
        assert remove_thinking(root) == 0

    def test_is_thinking_content_checks_ancestors(self):
        root = parse_fragment('<div class="thought-panel"><div><p id="inner">内容</p></div></div>')
        assert is_thinking_content(root.find(id='inner'))
