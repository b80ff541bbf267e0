"""PureText pipeline - the caller-visible entry point.

Turns a response container into one of four outputs:
1. html - optimized clipboard markup (text/html)
2. text - plain text (text/plain)
3. docx - Word document bytes plus a generated filename
4. pdf - PDF document bytes plus a generated filename

Stages: validate + snapshot → select walker → clean / remove thinking /
walk (dispatcher, with fallbacks) → render → ProcessedResult.

MalformedInput never escapes: it becomes a failed result with the
NOTHING_TO_COPY message. FormatterNotFound is the only exception a caller
can see, and only when the registry was never populated.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from bs4 import Tag

from logger import logger
from registry import registry as default_registry
from utils import preview
from .classifier import Geometry, should_process
from .cleaner import clean_text
from .dispatcher import FormatterDispatcher, raw_text_document
from .document import Document
from .dom import snapshot
from .errors import MalformedInput
from .questions import find_user_question
from .renderers.clipboard import escape, render_html
from .renderers.docx_renderer import render_docx
from .renderers.optimizer import optimize
from .renderers.pdf_renderer import render_pdf
from .renderers.plain_text import render_plain_text, scrub_tokens
from .sites import generate_filename

NOTHING_TO_COPY = 'Nothing to copy'
COPY_FAILED = 'Copy failed'
COPIED = 'Copied'
EXPORTED = 'Exported'
SKIPPED = 'Not an AI response'

MIME_HTML = 'text/html'
MIME_TEXT = 'text/plain'
MIME_DOCX = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'
MIME_PDF = 'application/pdf'


class OutputFormat(Enum):
    HTML = 'html'
    TEXT = 'text'
    DOCX = 'docx'
    PDF = 'pdf'


MIME_TYPES = {
    OutputFormat.HTML: MIME_HTML,
    OutputFormat.TEXT: MIME_TEXT,
    OutputFormat.DOCX: MIME_DOCX,
    OutputFormat.PDF: MIME_PDF,
}


@dataclass
class ProcessedResult:
    """Result of processing a container through the pipeline."""
    success: bool
    output: OutputFormat
    content: Union[str, bytes] = ''
    mime_type: str = ''

    # Download path only
    filename: Optional[str] = None
    title: Optional[str] = None

    # Metadata
    walker_name: Optional[str] = None
    used_fallback: bool = False
    message: str = ''


@dataclass
class PipelineContext:
    """Optional host-supplied context."""
    site_key: str = ''
    should_process: Optional[bool] = None  # host's decision; None = not decided
    check_message: bool = False  # run the classifier when the host did not decide
    geometry: Optional[Geometry] = None
    title: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'PipelineContext':
        geometry = data.get('geometry')
        if isinstance(geometry, dict):
            geometry = Geometry(
                left=geometry.get('left', 0.0),
                width=geometry.get('width', 0.0),
                viewport_width=geometry.get('viewport_width', geometry.get('viewportWidth', 0.0)),
            )
        return cls(
            site_key=data.get('site_key', data.get('siteKey', '')),
            should_process=data.get('should_process', data.get('shouldProcess')),
            check_message=data.get('check_message', data.get('checkMessage', False)),
            geometry=geometry,
            title=data.get('title'),
        )


def _failure(output: OutputFormat, message: str) -> ProcessedResult:
    return ProcessedResult(success=False, output=output, mime_type=MIME_TYPES[output], message=message)


def _plain_paragraphs_html(document: Document) -> str:
    lines = [line for line in document.text().split('\n') if line.strip()]
    return '<div>' + ''.join(f"<p>{escape(line)}</p>" for line in lines) + '</div>'


def _render_html(document: Document, source: Tag, site_key: str, title: Optional[str]) -> str:
    try:
        return optimize(render_html(document), title)
    except Exception as e:
        logger.error(f"Markup rendering failed, degrading to plain paragraphs: {e}")
        return optimize(_plain_paragraphs_html(raw_text_document(source, site_key)), title)


def _render_text(document: Document) -> str:
    return scrub_tokens(clean_text(render_plain_text(document)))


async def process(
    node: Union[Tag, str, None],
    site_key: str = '',
    output: Union[OutputFormat, str] = OutputFormat.HTML,
    context: Optional[dict] = None,
    dispatcher: Optional[FormatterDispatcher] = None,
) -> ProcessedResult:
    """Process a response container into the requested output.

    Args:
        node: Response container (bs4 Tag) or a markup string
        site_key: Hostname of the page the container came from
        output: 'html', 'text', 'docx' or 'pdf'
        context: Optional dict for PipelineContext (should_process, geometry, title)
        dispatcher: Dispatcher to use (defaults to one over the global registry)

    Returns:
        ProcessedResult with the rendered content

    Raises:
        FormatterNotFound: No walker is registered at all
    """
    output = OutputFormat(output)
    ctx = PipelineContext.from_dict(context or {})
    site_key = site_key or ctx.site_key

    # Stage 0: Validate and snapshot
    try:
        source = snapshot(node)
    except MalformedInput as e:
        logger.warning(f"Nothing to process: {e}")
        return _failure(output, NOTHING_TO_COPY)

    # Stage 1: Host decision (or classifier when asked)
    # The snapshot is detached, so ancestor signals are read from the caller's node
    decision = ctx.should_process
    if decision is None and ctx.check_message:
        decision = should_process(node if isinstance(node, Tag) else source, ctx.geometry)
    if decision is False:
        logger.info(f"Skipping container on '{site_key or 'unknown'}' - not an AI response")
        return _failure(output, SKIPPED)

    # Stage 2: Select walker
    if dispatcher is None:
        if not default_registry.initialized:
            default_registry.initialize()
        dispatcher = FormatterDispatcher(default_registry)
    walker = await dispatcher.select(site_key, source)

    # Stage 3: Clean, remove thinking, walk (with fallbacks)
    for_copy = output in (OutputFormat.HTML, OutputFormat.TEXT)
    outcome = await dispatcher.run(walker, source, site_key, for_copy=for_copy)
    document = outcome.document

    # Stage 4: Render
    result = ProcessedResult(
        success=True,
        output=output,
        mime_type=MIME_TYPES[output],
        walker_name=outcome.walker_name,
        used_fallback=outcome.used_fallback,
        message=COPIED,
    )

    if output == OutputFormat.HTML:
        try:
            result.content = _render_html(document, source, site_key, ctx.title)
        except Exception as e:
            logger.error(f"Copy failed: {e}")
            return _failure(output, COPY_FAILED)

    elif output == OutputFormat.TEXT:
        text = _render_text(document)
        if not text.strip():
            return _failure(output, NOTHING_TO_COPY)
        result.content = text

    else:
        title = ctx.title
        if title is None and isinstance(node, Tag):
            title = find_user_question(node, site_key) or None
        renderer = render_docx if output == OutputFormat.DOCX else render_pdf
        try:
            result.content = renderer(document, title)
        except Exception as e:
            # No partial document is ever returned
            logger.error(f"{output.value} export failed: {e}")
            return _failure(output, COPY_FAILED)
        result.filename = generate_filename(site_key, output.value)
        result.title = title
        result.message = EXPORTED

    logger.info(
        f"Processed {output.value} via '{outcome.walker_name}'"
        f"{' (fallback)' if outcome.used_fallback else ''}: {preview(document.text())}"
    )
    return result


async def copy_html(node, site_key: str = '', context: Optional[dict] = None) -> ProcessedResult:
    return await process(node, site_key, OutputFormat.HTML, context)


async def copy_plain_text(node, site_key: str = '', context: Optional[dict] = None) -> ProcessedResult:
    return await process(node, site_key, OutputFormat.TEXT, context)


async def export_docx(node, site_key: str = '', context: Optional[dict] = None) -> ProcessedResult:
    return await process(node, site_key, OutputFormat.DOCX, context)


async def export_pdf(node, site_key: str = '', context: Optional[dict] = None) -> ProcessedResult:
    return await process(node, site_key, OutputFormat.PDF, context)


def process_sync(
    node: Union[Tag, str, None],
    site_key: str = '',
    output: Union[OutputFormat, str] = OutputFormat.HTML,
    context: Optional[dict] = None,
) -> ProcessedResult:
    """Blocking wrapper around process() for callers without an event loop."""
    return asyncio.run(process(node, site_key, output, context))
