"""Serializers for the Canonical Document.

- clipboard: bare markup snippet
- optimizer: Word/WPS compatibility pass over that markup
- docx_renderer: .docx via python-docx
- pdf_renderer: .pdf via reportlab
- plain_text: text with no markdown syntax
"""

from .clipboard import render_blocks, render_html, render_runs
from .docx_renderer import build_word_document, document_to_html, render_docx
from .optimizer import optimize, validate_html_structure
from .pdf_renderer import render_pdf
from .plain_text import normalize_whitespace, render_plain_text, strip_markdown

__all__ = [
    'render_html',
    'render_blocks',
    'render_runs',
    'optimize',
    'validate_html_structure',
    'render_docx',
    'build_word_document',
    'document_to_html',
    'render_pdf',
    'render_plain_text',
    'strip_markdown',
    'normalize_whitespace',
]
