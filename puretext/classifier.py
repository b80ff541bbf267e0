"""Content classifier.

Decides whether a response container was written by the human or by the AI,
and detects "thinking" scratch-work that must never reach an output.

Four independent signals each contribute a human score, an AI score and
string indicators:
- attribute: role/author attributes and class names on the node and its ancestors
- lexical: characteristic AI vs user phrasing
- geometry: on-screen position (supplied by the host) and structural fingerprints
- complexity: length, sentence count, structure, code, links

The "tie defaults to AI" and "low confidence falls back to a secondary
heuristic" policies are pragmatic, not provably correct; treat the result as
a heuristic.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from bs4 import Tag

from .dom import ancestors, attr, class_string, remove, text_content

# Ancestor levels inspected by the attribute signal
ATTRIBUTE_DEPTH = 5

# Ancestor levels inspected for thinking markers
THINKING_DEPTH = 3

# Cap per side for the lexical signal; an explicit role attribute (weight 5)
# must always outweigh wording alone
LEXICAL_CAP = 4

# Below this confidence an UNKNOWN result goes through the secondary heuristic
LOW_CONFIDENCE = 0.6


class MessageType(Enum):
    """Who authored a container."""
    HUMAN = "human"
    AI = "ai"
    UNKNOWN = "unknown"


@dataclass
class ClassificationResult:
    type: MessageType
    confidence: float
    indicators: list[str] = field(default_factory=list)


@dataclass
class SignalScore:
    """Output of one signal."""
    human: int = 0
    ai: int = 0
    indicators: list[str] = field(default_factory=list)

    def add(self, side: str, weight: int, indicator: str) -> None:
        if side == 'human':
            self.human += weight
        else:
            self.ai += weight
        self.indicators.append(indicator)


@dataclass
class Geometry:
    """Bounding box of the container, as measured by the host page."""
    left: float
    width: float
    viewport_width: float

    @property
    def on_right(self) -> bool:
        return self.left > self.viewport_width * 0.6

    @property
    def full_width(self) -> bool:
        return self.width > self.viewport_width * 0.7


# =============================================================================
# RULE TABLES
# =============================================================================

ROLE_ATTRIBUTES = ('data-role', 'data-author', 'data-message-author-role')

# (indicator, side, weight, predicate(class_string, role_values))
ATTRIBUTE_RULES = [
    ('class-user', 'human', 3,
     lambda cls, roles: 'user' in cls and 'user-agent' not in cls),
    ('class-user-content', 'human', 4,
     lambda cls, roles: 'user-content' in cls or 'user-message' in cls),
    ('attr-user', 'human', 5,
     lambda cls, roles: 'user' in roles),
    ('attr-assistant', 'ai', 5,
     lambda cls, roles: 'assistant' in roles),
    ('class-assistant', 'ai', 4,
     lambda cls, roles: 'assistant' in cls or 'ai-response' in cls),
    ('class-bot', 'ai', 3,
     lambda cls, roles: 'bot-message' in cls or 'kimi-response' in cls),
]

AI_PHRASES = [
    '我是Kimi', '我可以帮助', '根据您的', '建议您', '您可以',
    '以下是', '具体来说', '需要注意', '总结一下',
    '首先', '其次', '最后', '另外', '此外',
    '如果您', '您需要', '为您', 'Kimi助手',
    '我理解', '我建议', '让我来', '我来帮您',
    'here is', "here's", 'i suggest', 'i recommend', 'firstly', 'secondly',
    'in summary', 'i hope this helps', 'as an ai',
]

USER_PHRASES = [
    '我想', '我需要', '请问', '能否', '可以吗', '怎么样',
    '怎么办', '如何', '为什么', '什么是', '什么叫',
    '帮我', '告诉我', '我该', '我应该', '我要',
    '请帮助', '请解释', '请分析', '你觉得',
    'please help me', 'can you', 'could you', 'how do i', 'what is',
]

REQUEST_OPENER = re.compile(r'^(请|帮我|告诉我|我想|我需要|please\b|help me\b|tell me\b|explain\b)', re.IGNORECASE)
QUESTION_ENDING = re.compile(r'[？?]$')

AI_FINGERPRINT_CLASSES = ('segment-content-box', 'markdown-container', 'ds-markdown')
INPUT_CONTAINER_CLASSES = ('input-container', 'user-input', 'chat-input')

STRUCTURED_CONTENT = re.compile(r'[：:]\s*\n|^\s*[•\-*]\s+|^\s*\d+[.)]\s+', re.MULTILINE)
SENTENCE_SPLIT = re.compile(r'[。！？.!?]')
URL = re.compile(r'https?://\S+')

# Secondary heuristic for low-confidence results
FALLBACK_USER_PATTERNS = [
    re.compile(r'^(请|帮我|告诉我|我想|我需要)'),
    re.compile(r'[？?]$'),
    re.compile(r'^.{1,50}[？?]$', re.DOTALL),
]


# =============================================================================
# SIGNALS
# =============================================================================

def attribute_signal(node: Tag) -> SignalScore:
    """Role attributes and class names over 5 levels: the node and its 4 nearest ancestors."""
    score = SignalScore()
    for element in ancestors(node, ATTRIBUTE_DEPTH - 1):
        cls = class_string(element)
        roles = {attr(element, name) for name in ROLE_ATTRIBUTES} - {''}
        for indicator, side, weight, predicate in ATTRIBUTE_RULES:
            if predicate(cls, roles):
                score.add(side, weight, indicator)
    return score


def lexical_signal(text: str) -> SignalScore:
    """Phrase vocabularies, request openers and trailing question marks."""
    score = SignalScore()
    text = text.strip()
    if not text:
        return score

    lowered = text.lower()
    ai_hits = [phrase for phrase in AI_PHRASES if phrase.lower() in lowered]
    user_hits = [phrase for phrase in USER_PHRASES if phrase.lower() in lowered]

    ai = len(ai_hits) * 2
    human = len(user_hits) * 2
    if ai_hits:
        score.indicators.append(f"ai-words-{len(ai_hits)}")
    if user_hits:
        score.indicators.append(f"user-words-{len(user_hits)}")
    if REQUEST_OPENER.search(text):
        human += 2
        score.indicators.append('starts-with-request')
    if QUESTION_ENDING.search(text):
        human += 1
        score.indicators.append('ends-with-question')

    score.ai = min(ai, LEXICAL_CAP)
    score.human = min(human, LEXICAL_CAP)
    return score


def geometry_signal(node: Tag, geometry: Optional[Geometry] = None) -> SignalScore:
    """Screen position plus structural fingerprints."""
    score = SignalScore()

    if geometry is not None and geometry.viewport_width > 0:
        if geometry.on_right and not geometry.full_width:
            score.add('human', 2, 'position-right-narrow')
        if not geometry.on_right and geometry.full_width:
            score.add('ai', 2, 'position-left-wide')

    if _has_class_in_subtree(node, AI_FINGERPRINT_CLASSES) or _has_class_in_ancestors(node, AI_FINGERPRINT_CLASSES):
        score.add('ai', 3, 'ai-structure')

    if _has_class_in_ancestors(node, INPUT_CONTAINER_CLASSES) or node.find('textarea') is not None:
        score.add('human', 2, 'near-input')

    return score


def complexity_signal(node: Tag, text: str) -> SignalScore:
    """Length, sentences, structure, code and links."""
    score = SignalScore()
    text = text.strip()

    if len(text) > 200:
        score.add('ai', 1, 'long-text')
    elif len(text) < 50:
        score.add('human', 1, 'short-text')

    sentences = [s for s in SENTENCE_SPLIT.split(text) if len(s.strip()) > 10]
    if len(sentences) >= 3:
        score.add('ai', 1, 'multi-sentence')

    if STRUCTURED_CONTENT.search(text):
        score.add('ai', 2, 'structured-content')

    if node.find(['code', 'pre']) is not None or '`' in text:
        score.add('ai', 2, 'code-content')

    if node.find('a') is not None or URL.search(text):
        score.add('ai', 1, 'has-links')

    return score


def _has_class_in_subtree(node: Tag, names) -> bool:
    for element in node.find_all(True):
        cls = class_string(element)
        if any(name in cls for name in names):
            return True
    return False


def _has_class_in_ancestors(node: Tag, names) -> bool:
    for element in ancestors(node, 10):
        cls = class_string(element)
        if any(name in cls for name in names):
            return True
    return False


# =============================================================================
# CLASSIFICATION
# =============================================================================

def classify(node: Tag, geometry: Optional[Geometry] = None) -> ClassificationResult:
    """Decide whether a container holds a human message or an AI response.

    Args:
        node: Candidate container (read only)
        geometry: Optional on-screen box reported by the host

    Returns:
        ClassificationResult; ties resolve to AI with indicator "tie-default-ai"
    """
    if node is None:
        return ClassificationResult(MessageType.UNKNOWN, 0.0, ['element-null'])

    text = text_content(node)
    signals = [
        attribute_signal(node),
        lexical_signal(text),
        geometry_signal(node, geometry),
        complexity_signal(node, text),
    ]

    human = sum(s.human for s in signals)
    ai = sum(s.ai for s in signals)
    indicators = [indicator for s in signals for indicator in s.indicators]
    total = human + ai

    # Nothing to go on
    if total == 0:
        return ClassificationResult(MessageType.UNKNOWN, 0.0, indicators)

    if human > ai:
        return ClassificationResult(MessageType.HUMAN, human / total, indicators)
    if ai > human:
        return ClassificationResult(MessageType.AI, ai / total, indicators)

    # Tie: include rather than silently drop an answer
    indicators.append('tie-default-ai')
    return ClassificationResult(MessageType.AI, 0.5, indicators)


def should_process(node: Tag, geometry: Optional[Geometry] = None) -> bool:
    """The "process this container?" decision for the copy path."""
    result = classify(node, geometry)

    if result.type == MessageType.HUMAN:
        return False
    if result.type == MessageType.AI:
        return True

    if result.confidence < LOW_CONFIDENCE:
        text = text_content(node).strip()
        return not any(pattern.search(text) for pattern in FALLBACK_USER_PATTERNS)

    return True


# =============================================================================
# THINKING DETECTION
# =============================================================================

THINKING_CLASS_VOCABULARY = [
    'thinking', 'thought', 'reasoning', 'internal-monologue', 'internal-reasoning', 'think-',
    'scratchpad', 'chain-of-thought', 'ds-think', 'deep-think',
]

THINKING_ATTRIBUTES = ['data-thinking', 'data-reasoning', 'data-thought', 'data-internal']

THINKING_ATTRIBUTE_VALUES = {
    'names': ['data-type', 'data-role', 'data-block-type', 'data-message-type', 'data-content-type'],
    'values': {'thinking', 'reasoning', 'thought', 'thoughts', 'internal'},
}

# Containers that may or may not hold thinking; their text decides
AMBIGUOUS_TAGS = {'details', 'summary', 'aside'}
AMBIGUOUS_CLASSES = ['collapse', 'fold', 'process', 'toggle', 'expand', 'accordion']

# (a) Self-referential planning language
PLANNING_PATTERNS = [
    re.compile(r'\blet me (?:think|first|analy[sz]e|consider|figure out|work through)\b', re.IGNORECASE),
    re.compile(r'\bfirst\b.{0,120}\bthen\b.{0,120}\bfinally\b', re.IGNORECASE | re.DOTALL),
    re.compile(r'\bmy (?:response |answer )?strategy (?:is|will be)\b', re.IGNORECASE),
    re.compile(r'\bthe user (?:is asking|wants|asked|seems)\b', re.IGNORECASE),
    re.compile(r'\bI (?:need|should) to (?:first )?(?:figure out|think about|consider|check)\b', re.IGNORECASE),
    re.compile(r'让我(?:先)?(?:想想|想一想|思考|分析一下|梳理)'),
    re.compile(r'我(?:需要|应该|得)先'),
    re.compile(r'首先.{0,80}然后.{0,80}最后', re.DOTALL),
    re.compile(r'我的(?:回答|回复|应答)策略'),
    re.compile(r'用户(?:想要|在问|问的是|的问题是|希望)'),
]

# (b) Keyword density
THINKING_KEYWORDS = [
    '思考', '推理', '分析', '考虑', '策略', '用户', '计划', '步骤',
    'thinking', 'reasoning', 'analyze', 'consider', 'strategy', 'the user', 'plan', 'approach',
]
KEYWORD_THRESHOLD = 3

# (c) Short status lines that are nothing but the thinking process itself
PURE_THINKING_PATTERNS = [
    re.compile(r'^\s*(?:已?深度思考|深度思考中|思考中|正在思考|已思考|思考过程)'),
    re.compile(r'^\s*(?:thinking|reasoning)(?:\.{3}|…)?\s*$', re.IGNORECASE),
    re.compile(r'^\s*thought for\s+\d+', re.IGNORECASE),
    re.compile(r'^\s*(?:用时|耗时)\s*\d+\s*秒'),
]
PURE_THINKING_MAX_LENGTH = 200


def is_thinking_text_content(text: str) -> bool:
    """Text-only thinking check for ambiguous containers."""
    if not text or not text.strip():
        return False
    text = text.strip()

    if any(pattern.search(text) for pattern in PLANNING_PATTERNS):
        return True

    lowered = text.lower()
    hits = {keyword for keyword in THINKING_KEYWORDS if keyword in lowered}
    if len(hits) >= KEYWORD_THRESHOLD:
        return True

    if len(text) <= PURE_THINKING_MAX_LENGTH:
        return any(pattern.search(text) for pattern in PURE_THINKING_PATTERNS)

    return False


def _is_ambiguous_container(element: Tag) -> bool:
    if element.name in AMBIGUOUS_TAGS:
        return True
    cls = class_string(element)
    return any(name in cls for name in AMBIGUOUS_CLASSES)


def _element_is_thinking(element: Tag) -> bool:
    cls = class_string(element)
    if any(word in cls for word in THINKING_CLASS_VOCABULARY):
        return True

    if any(element.has_attr(name) for name in THINKING_ATTRIBUTES):
        return True

    for name in THINKING_ATTRIBUTE_VALUES['names']:
        if attr(element, name) in THINKING_ATTRIBUTE_VALUES['values']:
            return True

    if _is_ambiguous_container(element):
        return is_thinking_text_content(text_content(element))

    return False


def is_thinking_content(node: Tag) -> bool:
    """True when the node or an ancestor within 3 levels is thinking content."""
    if not isinstance(node, Tag):
        return False
    return any(_element_is_thinking(element) for element in ancestors(node, THINKING_DEPTH))


def remove_thinking(root: Tag) -> int:
    """Remove every thinking subtree from an owned copy.

    Returns:
        Number of subtrees removed (the root itself is emptied, not removed)
    """
    if _element_is_thinking(root):
        root.clear()
        return 1

    removed = 0
    for element in list(root.find_all(True)):
        if getattr(element, 'decomposed', False):
            continue
        if _element_is_thinking(element):
            if remove(element):
                removed += 1
    return removed
