"""End-to-end tests for the pipeline and the command line."""

import asyncio
import io
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from pypdf import PdfReader

from conftest import DEEPSEEK_ANSWER, THINKING_ANSWER, UNKNOWN_SITE_ANSWER
from puretext import cli
from puretext.dispatcher import FormatterDispatcher
from puretext.dom import parse_fragment
from puretext.pipeline import (
    EXPORTED,
    MIME_DOCX,
    MIME_PDF,
    MIME_HTML,
    MIME_TEXT,
    NOTHING_TO_COPY,
    SKIPPED,
    OutputFormat,
    PipelineContext,
    process,
    process_sync,
)
from puretext.renderers import document_to_html
from registry import FormatterRegistry

THINKING_TEXT = '让我想想'
ANSWER_TEXT = '保证金比例决定了杠杆的大小'


# =============================================================================
# OUTPUTS
# =============================================================================

class TestOutputs:

    @pytest.mark.asyncio
    async def test_html(self, dispatcher):
        result = await process(DEEPSEEK_ANSWER, 'chat.deepseek.com', 'html', dispatcher=dispatcher)
        assert result.success
        assert result.mime_type == MIME_HTML
        assert result.walker_name == 'deepseek'
        assert not result.used_fallback
        assert result.content.startswith('<!DOCTYPE html>')
        assert '42</code>' in result.content

    @pytest.mark.asyncio
    async def test_text(self, dispatcher):
        result = await process(DEEPSEEK_ANSWER, 'chat.deepseek.com', OutputFormat.TEXT, dispatcher=dispatcher)
        assert result.success
        assert result.mime_type == MIME_TEXT
        assert '42' in result.content
        assert '苹果' in result.content
        for token in ('**', '`', '~~'):
            assert token not in result.content

    @pytest.mark.asyncio
    async def test_docx(self, dispatcher):
        result = await process(DEEPSEEK_ANSWER, 'chat.deepseek.com', 'docx', dispatcher=dispatcher)
        assert result.success
        assert result.mime_type == MIME_DOCX
        assert result.content[:2] == b'PK'
        assert result.filename.endswith('_deepseek.docx')
        assert result.message == EXPORTED
        assert '苹果' in document_to_html(result.content)

    @pytest.mark.asyncio
    async def test_pdf(self, dispatcher):
        context = {'title': 'Margin call'}
        result = await process(DEEPSEEK_ANSWER, 'chat.deepseek.com', 'pdf', context, dispatcher)
        assert result.success
        assert result.mime_type == MIME_PDF
        assert result.content[:5] == b'%PDF-'
        assert result.filename.endswith('_deepseek.pdf')
        assert result.message == EXPORTED
        reader = PdfReader(io.BytesIO(result.content))
        assert len(reader.pages) >= 1
        assert reader.metadata.title == 'Margin call'

    @pytest.mark.asyncio
    async def test_docx_title_from_context(self, dispatcher):
        context = {'title': '什么是强平？'}
        result = await process(DEEPSEEK_ANSWER, 'chat.deepseek.com', 'docx', context, dispatcher)
        assert result.title == '什么是强平？'

    @pytest.mark.asyncio
    async def test_unknown_site_uses_generic(self, dispatcher):
        result = await process(UNKNOWN_SITE_ANSWER, 'example.org', 'html', dispatcher=dispatcher)
        assert result.walker_name == 'generic'
        assert '甲项内容' in result.content

    @pytest.mark.asyncio
    async def test_default_registry(self):
        result = await process(DEEPSEEK_ANSWER, 'chat.deepseek.com', 'text')
        assert result.walker_name == 'deepseek'

    @pytest.mark.asyncio
    async def test_waits_for_registry_initialization(self):
        registry = FormatterRegistry()
        asyncio.get_running_loop().call_later(0.05, registry.initialize)
        dispatcher = FormatterDispatcher(registry, init_wait=2.0)
        result = await process(DEEPSEEK_ANSWER, 'chat.deepseek.com', 'text', dispatcher=dispatcher)
        assert result.success
        assert result.walker_name == 'deepseek'

    def test_process_sync(self):
        result = process_sync(UNKNOWN_SITE_ANSWER, 'example.org', 'text')
        assert result.success
        assert '第一段内容' in result.content

    @pytest.mark.asyncio
    async def test_unknown_output_rejected(self, dispatcher):
        with pytest.raises(ValueError):
            await process(DEEPSEEK_ANSWER, 'chat.deepseek.com', 'epub', dispatcher=dispatcher)


class TestThinkingRemoved:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("output", ['html', 'text'])
    async def test_copy_outputs(self, dispatcher, output):
        result = await process(THINKING_ANSWER, 'www.kimi.com', output, dispatcher=dispatcher)
        assert THINKING_TEXT not in result.content
        assert ANSWER_TEXT in result.content

    @pytest.mark.asyncio
    async def test_docx(self, dispatcher):
        result = await process(THINKING_ANSWER, 'www.kimi.com', 'docx', dispatcher=dispatcher)
        html = document_to_html(result.content)
        assert THINKING_TEXT not in html
        assert ANSWER_TEXT in html


# =============================================================================
# FAILURES AND SKIPS
# =============================================================================

class TestFailures:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("node", [None, '', '   ', 42])
    async def test_nothing_to_copy(self, dispatcher, node):
        result = await process(node, 'chat.deepseek.com', 'html', dispatcher=dispatcher)
        assert not result.success
        assert result.message == NOTHING_TO_COPY
        assert result.content == ''

    @pytest.mark.asyncio
    async def test_host_decision_skips(self, dispatcher):
        result = await process(DEEPSEEK_ANSWER, 'chat.deepseek.com', 'html', {'shouldProcess': False}, dispatcher)
        assert not result.success
        assert result.message == SKIPPED

    @pytest.mark.asyncio
    async def test_classifier_skips_user_message(self, dispatcher):
        node = parse_fragment('<div class="user-message">请帮我解释一下什么是期货？</div>').find('div')
        result = await process(node, 'www.kimi.com', 'text', {'check_message': True}, dispatcher)
        assert result.message == SKIPPED

    @pytest.mark.asyncio
    async def test_classifier_sees_role_on_ancestor(self, dispatcher):
        root = parse_fragment(
            '<div data-message-author-role="user"><div class="bubble">'
            '<div id="msg">Here is my draft, firstly the intro, secondly I suggest edits.</div>'
            '</div></div>'
        )
        node = root.find(id='msg')
        result = await process(node, 'chatgpt.com', 'text', {'check_message': True}, dispatcher)
        assert not result.success
        assert result.message == SKIPPED

    @pytest.mark.asyncio
    async def test_ancestor_classification_leaves_tree_untouched(self, dispatcher):
        root = parse_fragment('<div data-role="assistant"><div id="msg"><p>北京是中国的首都。</p></div></div>')
        before = str(root)
        result = await process(root.find(id='msg'), 'example.org', 'text', {'check_message': True}, dispatcher)
        assert result.success
        assert str(root) == before

    @pytest.mark.asyncio
    async def test_host_decision_beats_classifier(self, dispatcher):
        node = parse_fragment('<div class="user-message">请帮我解释一下什么是期货？</div>').find('div')
        context = {'check_message': True, 'should_process': True}
        result = await process(node, 'example.org', 'text', context, dispatcher)
        assert result.message != SKIPPED


class TestPipelineContext:

    def test_from_camel_case(self):
        ctx = PipelineContext.from_dict({
            'siteKey': 'www.kimi.com',
            'shouldProcess': True,
            'checkMessage': True,
            'geometry': {'left': 10, 'width': 300, 'viewportWidth': 1200},
        })
        assert ctx.site_key == 'www.kimi.com'
        assert ctx.should_process is True
        assert ctx.check_message
        assert ctx.geometry.viewport_width == 1200

    def test_defaults(self):
        ctx = PipelineContext.from_dict({})
        assert ctx.should_process is None
        assert ctx.geometry is None
        assert not ctx.check_message


# =============================================================================
# COMMAND LINE
# =============================================================================

class TestCli:

    @pytest.fixture
    def answer_file(self, tmp_path):
        path = tmp_path / 'answer.html'
        path.write_text(DEEPSEEK_ANSWER, encoding='utf-8')
        return path

    def run(self, monkeypatch, *args):
        monkeypatch.setattr(sys, 'argv', ['puretext', *args])
        return cli.main()

    def test_text(self, monkeypatch, capsys, answer_file):
        assert self.run(monkeypatch, 'text', str(answer_file), '--site', 'chat.deepseek.com') == 0
        assert '苹果' in capsys.readouterr().out

    def test_docx_into_directory(self, monkeypatch, tmp_path, answer_file):
        assert self.run(monkeypatch, 'docx', str(answer_file), '--site', 'chat.deepseek.com', '-o', str(tmp_path)) == 0
        written = list(tmp_path.glob('*_deepseek.docx'))
        assert len(written) == 1
        assert written[0].read_bytes()[:2] == b'PK'

    def test_pdf_to_file(self, monkeypatch, tmp_path, answer_file):
        target = tmp_path / 'answer.pdf'
        assert self.run(monkeypatch, 'pdf', str(answer_file), '--site', 'chat.deepseek.com', '-o', str(target)) == 0
        assert target.read_bytes()[:5] == b'%PDF-'

    def test_classify(self, monkeypatch, capsys, tmp_path):
        path = tmp_path / 'message.html'
        path.write_text('<div class="user-message">请帮我解释一下什么是期货？</div>', encoding='utf-8')
        assert self.run(monkeypatch, 'classify', str(path)) == 0
        assert 'Confidence:' in capsys.readouterr().out

    def test_missing_file(self, monkeypatch, tmp_path):
        assert self.run(monkeypatch, 'text', str(tmp_path / 'missing.html')) == 1

    def test_no_command(self, monkeypatch):
        assert self.run(monkeypatch) == 2
