"""Walker capability interface and supporting types."""

import threading
from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable

from bs4 import Tag

from ..dom import classes, iter_elements
from ..document import Document
from ..errors import WalkCancelled


class CancelToken:
    """Cooperative cancellation flag shared between the dispatcher and a walk.

    The dispatcher sets it when a walk loses the timeout race; walkers check
    it at every node so the losing walk stops instead of finishing unseen.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        if self._event.is_set():
            raise WalkCancelled("Walk cancelled")


def check(token: Optional[CancelToken]) -> None:
    if token is not None:
        token.check()


@runtime_checkable
class Walker(Protocol):
    """Anything that turns a markup tree into a Canonical Document."""

    name: str

    def can_handle(self, node: Tag) -> bool:
        """Capability probe: does this walker recognise the markup shape?"""
        ...

    def priority(self) -> int:
        ...

    def build(self, node: Tag, token: Optional[CancelToken] = None) -> Document:
        ...

    async def format(self, node: Tag) -> str:
        """Build and serialize to clipboard markup."""
        ...


@dataclass(frozen=True)
class Fingerprint:
    """Small structural signature of a site's markup.

    Matches when the node or any descendant carries one of the class names,
    a class starting with one of the prefixes, or one of the attributes.
    """
    classes: tuple[str, ...] = ()
    prefixes: tuple[str, ...] = ()
    attributes: tuple[str, ...] = ()

    def matches(self, node: Tag) -> bool:
        for element in iter_elements(node):
            names = classes(element)
            if self.classes and any(name in names for name in self.classes):
                return True
            if self.prefixes and any(name.startswith(self.prefixes) for name in names):
                return True
            if self.attributes and any(element.has_attr(name) for name in self.attributes):
                return True
        return False


@dataclass(frozen=True)
class SiteVocabulary:
    """Everything a SemanticWalker needs to know about one site's markup."""
    name: str
    priority: int
    fingerprint: Fingerprint
    rejects: tuple[Fingerprint, ...] = ()
    # Containers treated as paragraphs (``p`` always is)
    paragraph_classes: tuple[str, ...] = ()
    # Wrappers inside <li> that are unwrapped rather than nested
    list_item_wrapper_classes: tuple[str, ...] = ()
    table_wrapper_classes: tuple[str, ...] = ()
    code_block_classes: tuple[str, ...] = ()
    math_classes: tuple[str, ...] = ('katex', 'katex-container', 'math-inline')
    display_math_classes: tuple[str, ...] = ('katex-display', 'math-display')
    pruned_classes: tuple[str, ...] = ()
    # Run loose text in flattened containers through structure inference
    infer_loose_text: bool = False
    site_keys: tuple[str, ...] = field(default=())

    def has_any(self, element: Tag, names: tuple[str, ...]) -> bool:
        if not names:
            return False
        element_classes = classes(element)
        return any(name in element_classes for name in names)
