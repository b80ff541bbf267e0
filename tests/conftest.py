"""Pytest configuration and fixtures."""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from puretext.dispatcher import FormatterDispatcher
from puretext.dom import parse_fragment
from registry import FormatterRegistry


# =============================================================================
# SAMPLE MARKUP - shapes seen on the supported sites
# =============================================================================

KIMI_ANSWER = """
<div class="segment-content-box">
  <div class="markdown">
    <h2>总结</h2>
    <div class="paragraph">期货<strong>强平</strong>的含义如下。</div>
    <ol>
      <li><div class="paragraph">第一步</div></li>
      <li><div class="paragraph">第二步</div></li>
    </ol>
    <div class="table-container"><table>
      <thead><tr><th>项目</th><th>数值</th></tr></thead>
      <tbody><tr><td>保证金</td><td>1000</td></tr></tbody>
    </table></div>
    <div class="segment-code">
      <div class="segment-code-header">python</div>
      <pre><code class="language-python">print(1)</code></pre>
    </div>
  </div>
  <div class="segment-assistant-actions"><button>复制</button></div>
</div>
"""

DEEPSEEK_ANSWER = """
<div class="ds-markdown">
<p class="ds-markdown-paragraph">答案是<code>42</code>。</p>
<ul><li><p class="ds-markdown-paragraph">苹果</p></li><li><p class="ds-markdown-paragraph">香蕉</p><ul><li><p class="ds-markdown-paragraph">小香蕉</p></li></ul></li></ul>
<div class="md-code-block"><div class="md-code-block-banner">python</div><pre>x = 1</pre></div>
<span class="katex-display"><span class="katex"><span class="katex-mathml"><math><semantics><annotation encoding="application/x-tex">E=mc^2</annotation></semantics></math></span></span></span>
</div>
"""

THINKING_ANSWER = """
<div class="segment-content-box">
  <div class="thinking-container"><p>让我想想用户的问题到底是什么</p></div>
  <div class="markdown"><p>保证金比例决定了杠杆的大小，比例越低风险越高。</p></div>
</div>
"""

UNKNOWN_SITE_ANSWER = """
<div>
  <h3>标题</h3>
  <p>第一段内容。</p>
  <ul><li>甲项内容</li><li>乙项内容</li></ul>
</div>
"""


@pytest.fixture
def parse():
    """Parse markup into a container Tag."""
    return parse_fragment


@pytest.fixture
def fresh_registry():
    """A populated registry that is not the global instance."""
    registry = FormatterRegistry()
    registry.initialize()
    yield registry
    registry.clear()


@pytest.fixture
def dispatcher(fresh_registry):
    return FormatterDispatcher(fresh_registry, timeout=5.0)
