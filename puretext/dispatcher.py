"""Formatter dispatcher.

Picks a walker for a response container and runs it under a timeout. Every
attempt works on its own deep copy: the copy is cleaned, thinking subtrees
are removed, then the walker builds a Document in a worker thread.

Degradation order when a walk fails:
1. Chosen walker (timeout, empty result or any exception ends the attempt)
2. One retry with the generic fallback on a fresh copy
3. Raw text extraction, one paragraph per line
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Union

from bs4 import Tag

import config
from logger import logger
from utils import preview
from .classifier import remove_thinking
from .cleaner import clean
from .document import Document, Paragraph, plain_runs
from .dom import snapshot
from .errors import EmptyResult, FormatterNotFound, FormattingTimeout
from .renderers.clipboard import render_html
from .sites import normalize_host
from .walkers.base import CancelToken, Walker

RAW_TEXT_WALKER = 'raw-text'


@dataclass
class DispatchOutcome:
    """Document plus which walker actually produced it."""
    document: Document
    walker_name: str
    used_fallback: bool = False


def _accepts(walker: Walker, node: Tag) -> bool:
    try:
        return bool(walker.can_handle(node))
    except Exception as e:
        logger.warning(f"Probe of '{walker.name}' failed: {e}")
        return False


def raw_text_document(node: Tag, site_key: str = '') -> Document:
    """Last resort: visible text of a cleaned copy, one paragraph per line."""
    copy = snapshot(node)
    clean(copy, site_key, for_copy=True)
    remove_thinking(copy)
    lines = [line.strip() for line in copy.get_text('\n').split('\n')]
    blocks = [Paragraph(runs=plain_runs(line)) for line in lines if line]
    if not blocks:
        blocks = [Paragraph(runs=plain_runs(config.FALLBACK_TEXT))]
    return Document(blocks=blocks)


class FormatterDispatcher:
    """Selects and runs walkers against the registry."""

    def __init__(self, registry=None, timeout: Optional[float] = None, init_wait: Optional[float] = None):
        if registry is None:
            from registry import registry as default_registry
            registry = default_registry
        self.registry = registry
        self.timeout = config.FORMAT_TIMEOUT_SECONDS if timeout is None else timeout
        self.init_wait = config.INIT_MAX_WAIT if init_wait is None else init_wait

    async def select(self, site_key: Optional[str], node: Tag) -> Walker:
        """select_walker, once a registry still being populated elsewhere is ready.

        Raises:
            FormatterNotFound: Nothing was registered within init_wait seconds
        """
        if self.registry.is_empty():
            await self.registry.wait_until_ready(max_wait=self.init_wait)
        return self.select_walker(site_key, node)

    def select_walker(self, site_key: Optional[str], node: Tag) -> Walker:
        """Site walker if it accepts, then any accepting walker, then the fallback.

        Raises:
            FormatterNotFound: Nothing at all is registered
        """
        if self.registry.is_empty():
            raise FormatterNotFound(site_key or '')

        host = normalize_host(site_key)
        fallback = self.registry.get_fallback()

        # 1. Walker registered for this site
        site_walker = self.registry.get(host)
        if site_walker is not None and _accepts(site_walker, node):
            return site_walker

        # 2. Any other walker whose probe accepts, by priority
        for walker in self.registry.get_registered_formatters():
            if walker is site_walker or walker is fallback:
                continue
            if _accepts(walker, node):
                logger.debug(f"Walker '{walker.name}' accepted markup from '{host or 'unknown'}'")
                return walker

        # 3. Generic fallback
        if fallback is not None:
            return fallback

        # No fallback registered: best remaining guess
        return site_walker or self.registry.get_registered_formatters()[0]

    async def _attempt(self, walker: Walker, source: Tag, site_key: str, for_copy: bool) -> Document:
        copy = snapshot(source)
        clean(copy, site_key, for_copy=for_copy)
        removed = remove_thinking(copy)
        if removed:
            logger.debug(f"Removed {removed} thinking subtrees before '{walker.name}'")

        token = CancelToken()
        try:
            document = await asyncio.wait_for(
                asyncio.to_thread(walker.build, copy, token),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            token.cancel()
            raise FormattingTimeout(walker.name, self.timeout)

        if document is None or document.is_empty():
            raise EmptyResult(walker.name)
        return document

    async def run(
        self,
        walker: Walker,
        node: Union[Tag, str],
        site_key: str = '',
        for_copy: bool = True,
    ) -> DispatchOutcome:
        """Build a Document, degrading through the fallback chain.

        Raises:
            MalformedInput: node is missing or not parseable
        """
        source = snapshot(node)

        try:
            document = await self._attempt(walker, source, site_key, for_copy)
            logger.debug(f"'{walker.name}' built {len(document.blocks)} blocks: {preview(document.text())}")
            return DispatchOutcome(document=document, walker_name=walker.name)
        except (FormattingTimeout, EmptyResult) as e:
            logger.warning(str(e))
        except Exception as e:
            logger.error(f"Formatter '{walker.name}' failed: {e}")

        fallback = self.registry.get_fallback()
        if fallback is not None and fallback is not walker:
            logger.info(f"Retrying with fallback walker '{fallback.name}'")
            try:
                document = await self._attempt(fallback, source, site_key, for_copy)
                return DispatchOutcome(document=document, walker_name=fallback.name, used_fallback=True)
            except (FormattingTimeout, EmptyResult) as e:
                logger.warning(str(e))
            except Exception as e:
                logger.error(f"Fallback walker '{fallback.name}' failed: {e}")

        logger.warning("All walkers failed - using raw text extraction")
        return DispatchOutcome(
            document=raw_text_document(source, site_key),
            walker_name=RAW_TEXT_WALKER,
            used_fallback=True,
        )

    async def build_document(
        self,
        walker: Walker,
        node: Union[Tag, str],
        site_key: str = '',
        for_copy: bool = True,
    ) -> Document:
        outcome = await self.run(walker, node, site_key, for_copy)
        return outcome.document

    async def execute(self, walker: Walker, node: Union[Tag, str], site_key: str = '') -> str:
        """Run a walker and serialize the result as clipboard markup."""
        document = await self.build_document(walker, node, site_key)
        return render_html(document)
