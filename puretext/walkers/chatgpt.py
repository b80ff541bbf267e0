"""ChatGPT (chat.openai.com / chatgpt.com) markup vocabulary."""

from .base import Fingerprint, SiteVocabulary
from .semantic import SemanticWalker

CHATGPT_VOCABULARY = SiteVocabulary(
    name='chatgpt',
    priority=6,
    site_keys=('chat.openai.com', 'chatgpt.com'),
    fingerprint=Fingerprint(
        classes=('prose',),
        attributes=('data-message-author-role',),
    ),
    rejects=(
        Fingerprint(prefixes=('ds-',)),
        Fingerprint(classes=('segment-content-box', 'markdown-container', 'dialogue-text')),
    ),
    table_wrapper_classes=('tableContainer', 'overflow-x-auto'),
    code_block_classes=('contain-inline-size',),
    pruned_classes=('sr-only', 'flex-actions', 'copy-code-button', 'puretext-copy-btn', 'puretext-button-container'),
)


def create_chatgpt_walker() -> SemanticWalker:
    return SemanticWalker(CHATGPT_VOCABULARY)
