"""Doubao (www.doubao.com) markup vocabulary."""

from .base import Fingerprint, SiteVocabulary
from .semantic import SemanticWalker

DOUBAO_VOCABULARY = SiteVocabulary(
    name='doubao',
    priority=4,
    site_keys=('www.doubao.com', 'doubao.com'),
    fingerprint=Fingerprint(
        classes=('dialogue-text', 'flow-markdown-body'),
    ),
    rejects=(
        Fingerprint(prefixes=('ds-',)),
        Fingerprint(classes=('segment-content-box', 'markdown-container', 'prose'),
                    attributes=('data-message-author-role',)),
    ),
    paragraph_classes=('paragraph-element',),
    table_wrapper_classes=('table-wrapper',),
    code_block_classes=('code-block-element',),
    pruned_classes=('message-action-bar', 'code-header', 'puretext-copy-btn', 'puretext-button-container'),
    infer_loose_text=True,
)


def create_doubao_walker() -> SemanticWalker:
    return SemanticWalker(DOUBAO_VOCABULARY)
