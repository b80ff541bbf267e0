"""Content cleaner.

Strips what is not part of the answer: interactive controls, the
AI-generated disclaimer, recommended follow-up questions and (for the copy
path) hidden elements. ``clean`` works on an owned tree copy; ``clean_text``
works on already-extracted text.

Recommended questions are removed in two layers. Regex families alone
over-trigger on short questions that belong to the answer; the line-structure
pass alone misses them when no main content has appeared yet.
"""

import re
from dataclasses import dataclass, field

from bs4 import Tag

from logger import logger
from .dom import NON_CONTENT_TAGS, attr, class_string, remove, remove_all, text_content
from .sites import control_classes

# =============================================================================
# VOCABULARIES
# =============================================================================

CONTROL_LABELS = [
    '复制', '重试', '分享', '编辑', '搜索', '搜索一下', '点赞', '踩', '收藏', '删除', '举报',
    'copy', 'copied', 'retry', 'regenerate', 'share', 'edit', 'search', 'like', 'dislike',
    'favorite', 'favourite', 'delete', 'report',
]

CONTROL_LABEL = re.compile(
    r'^(?:' + '|'.join(re.escape(label) for label in CONTROL_LABELS) + r')$',
    re.IGNORECASE,
)

CONTROL_SELECTORS = [
    'button',
    '[role="button"]',
    '.btn',
    '.button',
    '[onclick]',
    'a[href="#"]',
    '.action',
    '.menu',
]

# Class fragments of controls that are removed regardless of their label
OWN_CONTROL_CLASSES = ['puretext-copy-btn', 'puretext-button-container', 'puretext-']

DISCLAIMER_PATTERNS = [
    re.compile(r'本回答由\s*AI\s*生成[，,。]*\s*内容仅供参考'),
    re.compile(r'内容由\s*AI\s*生成[，,。]*\s*(?:请)?仅供参考'),
    re.compile(r'AI[- ]generated content,?\s*for reference only', re.IGNORECASE),
    re.compile(r'ChatGPT can make mistakes\.?(?:\s*Check important info\.?)?', re.IGNORECASE),
]

RECOMMEND_CLASSES = ['recommend', 'suggest', 'related-question', 'follow-up', 'followup']

TOGGLE_LABELS = ['查看更多', '展开全部', '收起', '相关推荐', 'show more', 'show less', 'expand all', 'collapse']

TOGGLE_LABEL = re.compile(
    r'^(?:' + '|'.join(re.escape(label) for label in TOGGLE_LABELS) + r')$',
    re.IGNORECASE,
)

HIDDEN_STYLE = re.compile(r'display\s*:\s*none|visibility\s*:\s*hidden', re.IGNORECASE)


@dataclass
class CleanReport:
    """What ``clean`` removed, for logging."""
    controls: int = 0
    disclaimers: int = 0
    recommendations: int = 0
    hidden: int = 0
    other: int = 0
    rules_applied: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.controls + self.disclaimers + self.recommendations + self.hidden + self.other


# =============================================================================
# TREE CLEANING
# =============================================================================

def _label(tag: Tag) -> str:
    text = text_content(tag).strip()
    if not text:
        text = attr(tag, 'aria-label') or attr(tag, 'title')
    return re.sub(r'\s+', ' ', text)


def remove_non_content(node: Tag) -> int:
    """Scripts, styles, templates and our own injected controls."""
    removed = remove_all(node.find_all(list(NON_CONTENT_TAGS)))
    for element in list(node.find_all(True)):
        if getattr(element, 'decomposed', False):
            continue
        cls = class_string(element)
        if any(fragment in cls for fragment in OWN_CONTROL_CLASSES):
            removed += int(remove(element))
    return removed


def remove_controls(node: Tag, site_key: str = '') -> int:
    """Controls labelled with a UI action, and the site's own control classes."""
    removed = 0

    for selector in CONTROL_SELECTORS:
        for element in node.select(selector):
            if getattr(element, 'decomposed', False):
                continue
            if CONTROL_LABEL.match(_label(element)):
                removed += int(remove(element))

    site_classes = control_classes(site_key)
    if site_classes:
        for element in list(node.find_all(True)):
            if getattr(element, 'decomposed', False):
                continue
            cls = class_string(element).split()
            if any(name in cls for name in site_classes):
                removed += int(remove(element))

    return removed


def _matches_disclaimer(text: str) -> bool:
    text = text.strip()
    if not text:
        return False
    for pattern in DISCLAIMER_PATTERNS:
        match = pattern.search(text)
        if match and not pattern.sub('', text).strip(' \t\n,，。.'):
            return True
    return False


def remove_disclaimers(node: Tag) -> int:
    """Remove the smallest element whose whole text is the disclaimer."""
    removed = 0
    # Deepest first so the smallest matching element goes, not its container
    elements = list(node.find_all(True))
    for element in reversed(elements):
        if getattr(element, 'decomposed', False):
            continue
        if _matches_disclaimer(text_content(element)):
            removed += int(remove(element))

    # Bare text directly under an element
    for string in list(node.find_all(string=True)):
        if string.parent is not None and _matches_disclaimer(str(string)):
            string.extract()
            removed += 1
    return removed


def remove_recommendations(node: Tag) -> int:
    removed = 0
    for element in list(node.find_all(True)):
        if getattr(element, 'decomposed', False):
            continue
        cls = class_string(element)
        if any(fragment in cls for fragment in RECOMMEND_CLASSES):
            removed += int(remove(element))
    return removed


def _is_hidden(element: Tag) -> bool:
    if element.has_attr('hidden'):
        return True
    if attr(element, 'aria-hidden') == 'true':
        return True
    return bool(HIDDEN_STYLE.search(attr(element, 'style')))


def remove_hidden(node: Tag) -> int:
    removed = 0
    for element in list(node.find_all(True)):
        if getattr(element, 'decomposed', False):
            continue
        # KaTeX keeps its accessible MathML copy hidden; the walkers need it
        if 'katex' in class_string(element):
            continue
        if _is_hidden(element) or TOGGLE_LABEL.match(_label(element)):
            removed += int(remove(element))
    return removed


def clean(node: Tag, site_key: str = '', for_copy: bool = True) -> CleanReport:
    """Strip non-content subtrees from an owned copy, in place.

    Args:
        node: Deep copy owned by the current invocation
        site_key: Hostname of the source site (selects extra control classes)
        for_copy: Also drop hidden elements and show-more toggles

    Returns:
        CleanReport with per-rule counts
    """
    report = CleanReport()

    # 0. Non-content tags and injected controls
    report.other = remove_non_content(node)

    # 1. Interactive controls
    report.controls = remove_controls(node, site_key)
    if report.controls:
        report.rules_applied.append('controls')

    # 2. Disclaimer template
    report.disclaimers = remove_disclaimers(node)
    if report.disclaimers:
        report.rules_applied.append('disclaimer')

    # 3. Recommend / suggest blocks
    report.recommendations = remove_recommendations(node)
    if report.recommendations:
        report.rules_applied.append('recommendations')

    # 4. Hidden elements (copy path only)
    if for_copy:
        report.hidden = remove_hidden(node)
        if report.hidden:
            report.rules_applied.append('hidden')

    if report.total:
        logger.debug(f"Cleaner removed {report.total} nodes ({', '.join(report.rules_applied) or 'non-content'})")
    return report


# =============================================================================
# TEXT CLEANING
# =============================================================================

# Whole lines that are only UI text
UI_LINE_RULES = [
    {
        'name': 'control_label',
        'pattern': re.compile(
            r'^[ \t]*(?:' + '|'.join(re.escape(label) for label in CONTROL_LABELS) + r')[ \t]*$',
            re.IGNORECASE | re.MULTILINE,
        ),
        'description': 'Line consisting only of a button label',
    },
    {
        'name': 'toggle_label',
        'pattern': re.compile(
            r'^[ \t]*(?:' + '|'.join(re.escape(label) for label in TOGGLE_LABELS) + r')[ \t]*$',
            re.IGNORECASE | re.MULTILINE,
        ),
        'description': 'Show more / collapse toggles',
    },
]

# Recommended-question families, applied to whole lines
QUESTION_FAMILIES = [
    # 1. Short clause ending with a question mark
    re.compile(r'^[ \t]*[^\n。！!]{10,60}[？?][ \t]*$', re.MULTILINE),
    # 2. Interrogative openers
    re.compile(
        r'^[ \t]*(?:如何|怎么|什么是|什么叫|为什么|哪些|多少|何时|在哪|是否|能否|可以)[^\n。！]{5,50}[？?][ \t]*$',
        re.MULTILINE,
    ),
    re.compile(
        r'^[ \t]*(?:how|why|what|when|where|whether|which|who|can|should|is|are|does|do)\b[^\n.!]{5,60}\?[ \t]*$',
        re.IGNORECASE | re.MULTILINE,
    ),
    # 3. Interrogative pronouns
    re.compile(r'^[ \t]*(?:谁|哪|什么|怎样|多少|几|何)[^\n。！]{5,50}[？?][ \t]*$', re.MULTILINE),
    # 4. Time
    re.compile(r'^[ \t]*[^\n。！]{0,40}(?:多久|什么时候|何时|时间|期限|周期)[^\n。！]{0,40}[？?][ \t]*$', re.MULTILINE),
    # 5. Quantity / price
    re.compile(r'^[ \t]*[^\n。！]{0,40}(?:多少|比例|费用|成本|价格|金额|数量)[^\n。！]{0,40}[？?][ \t]*$', re.MULTILINE),
    # 6. Conditions
    re.compile(r'^[ \t]*[^\n。！]{0,40}(?:如果|假如|要是|情况下|条件)[^\n。！]{0,40}[？?][ \t]*$', re.MULTILINE),
    # 7. Section headers introducing suggestions
    re.compile(r'^[ \t]*(?:你可能还想问|相关问题|猜你想问|Related questions?|You might also ask)[:：]?[ \t]*$',
               re.IGNORECASE | re.MULTILINE),
]

SHORT_QUESTION_LIMIT = 80
MAIN_CONTENT_LENGTH = 20


def _is_question(line: str) -> bool:
    return line.endswith('？') or line.endswith('?')


def remove_ui_text(text: str) -> str:
    """Drop button/toggle-only lines and the disclaimer template."""
    for rule in UI_LINE_RULES:
        text = rule['pattern'].sub('', text)
    for pattern in DISCLAIMER_PATTERNS:
        text = pattern.sub('', text)
    return text


def remove_recommended_questions(text: str) -> str:
    """Regex families first, then the line-structure pass."""
    for pattern in QUESTION_FAMILIES:
        text = pattern.sub('', text)
    return remove_questions_by_structure(text)


def remove_questions_by_structure(text: str) -> str:
    """Drop short standalone questions once main content has appeared.

    Main content is a non-question line longer than 20 characters. A
    question is standalone when it is the last line or the next non-blank
    line is also a question. Blank lines are kept so paragraph breaks survive.
    """
    lines = [line.strip() for line in text.split('\n')]
    result = []
    found_main = False

    for index, line in enumerate(lines):
        if not line:
            result.append(line)
            continue

        is_question = _is_question(line)
        if found_main and is_question and len(line) < SHORT_QUESTION_LIMIT:
            following = next((later for later in lines[index + 1:] if later), None)
            if following is None or _is_question(following):
                continue

        if len(line) > MAIN_CONTENT_LENGTH and not is_question:
            found_main = True

        result.append(line)

    return '\n'.join(result)


def clean_text(text: str) -> str:
    """Clean flat extracted text (plain-text copy path)."""
    if not text:
        return ''
    text = text.replace('\r\n', '\n').replace('\r', '\n')
    text = remove_ui_text(text)
    text = remove_recommended_questions(text)
    return text.strip()
