"""PureText - clean copies and Word exports of AI chat answers.

A response container (a BeautifulSoup Tag or a markup string) goes through
classification, cleaning, thinking removal and a site-aware tree walk into a
Canonical Document, which then renders as clipboard markup, plain text or
a .docx file.
"""

from .classifier import ClassificationResult, Geometry, MessageType, classify, should_process
from .dispatcher import DispatchOutcome, FormatterDispatcher
from .document import Document
from .errors import (
    EmptyResult,
    FormatterNotFound,
    FormattingTimeout,
    MalformedInput,
    PureTextError,
    WalkCancelled,
)
from .pipeline import (
    OutputFormat,
    PipelineContext,
    ProcessedResult,
    copy_html,
    copy_plain_text,
    export_docx,
    process,
    process_sync,
)

__all__ = [
    'Document',
    'MessageType',
    'ClassificationResult',
    'Geometry',
    'classify',
    'should_process',
    'FormatterDispatcher',
    'DispatchOutcome',
    'OutputFormat',
    'PipelineContext',
    'ProcessedResult',
    'process',
    'process_sync',
    'copy_html',
    'copy_plain_text',
    'export_docx',
    'PureTextError',
    'FormatterNotFound',
    'FormattingTimeout',
    'EmptyResult',
    'MalformedInput',
    'WalkCancelled',
]
