"""Known chat sites.

Maps hostnames to a canonical site key, the short name used in export
filenames, and the per-site control vocabulary the cleaner prunes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class SiteInfo:
    key: str
    short_name: str
    display_name: str
    hostnames: tuple[str, ...]
    control_classes: tuple[str, ...] = ()
    # (conversation container selectors, user message selectors)
    question_lookup: tuple[tuple[str, ...], tuple[str, ...]] = field(default=((), ()))


SITES = [
    SiteInfo(
        key='kimi',
        short_name='kimi',
        display_name='Kimi',
        hostnames=('www.kimi.com', 'kimi.com', 'kimi.moonshot.cn'),
        control_classes=(
            'simple-button', 'segment-assistant-actions', 'segment-user-actions',
            'table-actions', 'code-header',
        ),
        question_lookup=(
            ('.conversation-container', '.chat-container', '.chat-content-list'),
            ('.segment-user', '.user-message', '[data-role="user"]'),
        ),
    ),
    SiteInfo(
        key='deepseek',
        short_name='deepseek',
        display_name='DeepSeek',
        hostnames=('chat.deepseek.com',),
        control_classes=(
            'ds-button', 'md-code-block-banner', 'code-info-button', 'ds-icon-button',
            'ds-flex-actions',
        ),
        question_lookup=(
            ('[data-testid="conversation-turn"]', '.conversation-turn', '[role="listitem"]'),
            ('[data-testid="user-message"]', '.user-message', '[role="user"]'),
        ),
    ),
    SiteInfo(
        key='chatgpt',
        short_name='chatgpt',
        display_name='ChatGPT',
        hostnames=('chat.openai.com', 'chatgpt.com'),
        control_classes=('sr-only', 'flex-actions', 'copy-code-button'),
        question_lookup=(
            ('[data-testid^="conversation-turn"]', '.conversation-turn', 'main'),
            ('[data-message-author-role="user"]', '[data-testid="user-message"]', '.user-message'),
        ),
    ),
    SiteInfo(
        key='doubao',
        short_name='doubao',
        display_name='豆包',
        hostnames=('www.doubao.com', 'doubao.com'),
        control_classes=('message-action-bar', 'suggest-message-list'),
        question_lookup=(
            ('.conversation-item', '.chat-item', '.message-list'),
            ('.user-message', '[data-role="user"]', '.dialogue-text.user'),
        ),
    ),
]

_BY_HOST = {hostname: site for site in SITES for hostname in site.hostnames}
_BY_KEY = {site.key: site for site in SITES}


def normalize_host(site_key: Optional[str]) -> str:
    """Lower-case a site key and strip any scheme, path or port."""
    value = (site_key or '').strip().lower()
    if '://' in value:
        value = value.split('://', 1)[1]
    value = value.split('/', 1)[0]
    return value.split(':', 1)[0]


def resolve_site(site_key: Optional[str]) -> Optional[SiteInfo]:
    """Look up a site by hostname (www. optional) or canonical key."""
    host = normalize_host(site_key)
    if not host:
        return None
    site = _BY_HOST.get(host) or _BY_KEY.get(host)
    if site is None and host.startswith('www.'):
        site = _BY_HOST.get(host[4:])
    return site


def site_short_name(site_key: Optional[str]) -> str:
    """Fixed abbreviation for known sites, else the host with dots as underscores."""
    site = resolve_site(site_key)
    if site is not None:
        return site.short_name
    host = normalize_host(site_key)
    return host.replace('.', '_') if host else 'unknown'


def control_classes(site_key: Optional[str]) -> tuple[str, ...]:
    site = resolve_site(site_key)
    return site.control_classes if site is not None else ()


def generate_filename(site_key: Optional[str], file_type: str = 'docx', now: Optional[datetime] = None) -> str:
    """Build ``{yyyyMMdd_HHmmss}_{siteShortName}.{ext}`` in local time.

    Args:
        site_key: Hostname (or key) of the site the response came from
        file_type: 'docx' or 'pdf'
        now: Timestamp to use (defaults to the current local time)
    """
    file_type = (file_type or 'docx').lower().lstrip('.')
    if file_type not in ('docx', 'pdf'):
        raise ValueError(f"Unsupported file type: {file_type}")
    stamp = (now or datetime.now()).strftime('%Y%m%d_%H%M%S')
    return f"{stamp}_{site_short_name(site_key)}.{file_type}"
