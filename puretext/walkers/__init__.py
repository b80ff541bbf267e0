"""Tree walkers: per-site semantic walkers plus the generic fallback."""

from .base import CancelToken, Fingerprint, SiteVocabulary, Walker
from .chatgpt import CHATGPT_VOCABULARY, create_chatgpt_walker
from .deepseek import DEEPSEEK_VOCABULARY, create_deepseek_walker
from .doubao import DOUBAO_VOCABULARY, create_doubao_walker
from .generic import GenericWalker, extract_text_blocks
from .kimi import KIMI_VOCABULARY, create_kimi_walker
from .semantic import SemanticWalker


def create_site_walkers() -> list[SemanticWalker]:
    """One walker per known site, highest priority first."""
    walkers = [
        create_kimi_walker(),
        create_deepseek_walker(),
        create_chatgpt_walker(),
        create_doubao_walker(),
    ]
    return sorted(walkers, key=lambda walker: walker.priority(), reverse=True)


__all__ = [
    'CancelToken',
    'Fingerprint',
    'SiteVocabulary',
    'Walker',
    'SemanticWalker',
    'GenericWalker',
    'extract_text_blocks',
    'KIMI_VOCABULARY',
    'DEEPSEEK_VOCABULARY',
    'CHATGPT_VOCABULARY',
    'DOUBAO_VOCABULARY',
    'create_kimi_walker',
    'create_deepseek_walker',
    'create_chatgpt_walker',
    'create_doubao_walker',
    'create_site_walkers',
]
