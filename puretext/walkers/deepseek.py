"""DeepSeek (chat.deepseek.com) markup vocabulary.

Every DeepSeek answer class starts with ``ds-``; code blocks sit in
``div.md-code-block`` behind a banner, tables in ``div.markdown-table-wrapper``.
"""

from .base import Fingerprint, SiteVocabulary
from .semantic import SemanticWalker

DEEPSEEK_VOCABULARY = SiteVocabulary(
    name='deepseek',
    priority=8,
    site_keys=('chat.deepseek.com',),
    fingerprint=Fingerprint(
        classes=('ds-markdown', 'ds-markdown-paragraph'),
        prefixes=('ds-',),
    ),
    rejects=(
        Fingerprint(classes=('segment-content-box', 'markdown-container', 'segment-content')),
        Fingerprint(classes=('prose', 'dialogue-text', 'flow-markdown-body'),
                    attributes=('data-message-author-role',)),
    ),
    paragraph_classes=('ds-markdown-paragraph',),
    list_item_wrapper_classes=('ds-markdown-paragraph',),
    table_wrapper_classes=('markdown-table-wrapper',),
    code_block_classes=('md-code-block',),
    display_math_classes=('katex-display', 'math-display', 'ds-markdown-math'),
    pruned_classes=(
        'md-code-block-banner', 'ds-button', 'code-info-button', 'ds-icon-button',
        'ds-markdown-html', 'puretext-copy-btn', 'puretext-button-container',
    ),
)


def create_deepseek_walker() -> SemanticWalker:
    return SemanticWalker(DEEPSEEK_VOCABULARY)
