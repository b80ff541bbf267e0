"""Kimi (www.kimi.com) markup vocabulary.

Kimi wraps paragraphs in ``div.paragraph`` and list-item text in the same
wrapper; answers sit inside ``.segment-content-box`` / ``.markdown``.
"""

from .base import Fingerprint, SiteVocabulary
from .semantic import SemanticWalker

KIMI_VOCABULARY = SiteVocabulary(
    name='kimi',
    priority=10,
    site_keys=('www.kimi.com', 'kimi.com', 'kimi.moonshot.cn'),
    fingerprint=Fingerprint(
        classes=('markdown', 'segment-content-box', 'markdown-container', 'segment-content'),
    ),
    rejects=(
        Fingerprint(prefixes=('ds-',)),
        Fingerprint(classes=('prose', 'dialogue-text', 'flow-markdown-body'),
                    attributes=('data-message-author-role',)),
    ),
    paragraph_classes=('paragraph',),
    list_item_wrapper_classes=('paragraph',),
    table_wrapper_classes=('table-container', 'table-wrapper'),
    code_block_classes=('segment-code', 'code-block'),
    pruned_classes=(
        'puretext-copy-btn', 'puretext-button-container', 'simple-button',
        'segment-assistant-actions', 'segment-code-header', 'code-header', 'table-actions',
    ),
    infer_loose_text=True,
)


def create_kimi_walker() -> SemanticWalker:
    return SemanticWalker(KIMI_VOCABULARY)
