"""Formatter registry for site-based walker routing."""

import asyncio
from typing import TYPE_CHECKING, Optional

import config
from logger import logger

if TYPE_CHECKING:
    from puretext.walkers.base import Walker


class FormatterRegistry:
    """Central registry for all walkers."""

    def __init__(self):
        self._walkers: dict[str, "Walker"] = {}  # site_key → walker
        self._by_name: dict[str, "Walker"] = {}  # name → walker
        self._fallback: Optional["Walker"] = None
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def register(self, site_key: str, walker: "Walker") -> None:
        """Register a walker for a site key."""
        self._walkers[site_key.lower()] = walker
        self._by_name[walker.name] = walker

    def set_fallback(self, walker: "Walker") -> None:
        """Designate the walker used when no site walker accepts."""
        self._fallback = walker
        self._by_name[walker.name] = walker

    def get(self, site_key: Optional[str]) -> Optional["Walker"]:
        """Get walker for a site key."""
        return self._walkers.get((site_key or '').lower())

    def get_by_name(self, name: str) -> Optional["Walker"]:
        return self._by_name.get(name)

    def get_fallback(self) -> Optional["Walker"]:
        return self._fallback

    def get_registered_formatters(self) -> list["Walker"]:
        """All distinct registered walkers, highest priority first."""
        return sorted(self._by_name.values(), key=lambda walker: walker.priority(), reverse=True)

    def is_empty(self) -> bool:
        return not self._by_name

    def initialize(self) -> None:
        """Register the built-in walkers (idempotent)."""
        if self._initialized:
            return

        from puretext.walkers import GenericWalker, create_site_walkers

        self.set_fallback(GenericWalker())
        for walker in create_site_walkers():
            for site_key in walker.vocabulary.site_keys:
                self.register(site_key, walker)

        self._initialized = True
        logger.info(f"Formatter registry ready - {len(self._by_name)} walkers, {len(self._walkers)} site keys")

    def clear(self) -> None:
        """Forget every registration (tests only)."""
        self._walkers.clear()
        self._by_name.clear()
        self._fallback = None
        self._initialized = False

    async def wait_until_ready(
        self,
        poll_interval: float = config.INIT_POLL_INTERVAL,
        max_wait: float = config.INIT_MAX_WAIT,
    ) -> bool:
        """Poll until initialize() has run elsewhere, up to max_wait seconds.

        Returns:
            True when the registry is ready, False when the wait ran out
        """
        waited = 0.0
        while not self._initialized:
            if waited >= max_wait:
                logger.warning(f"Formatter registry not ready after {max_wait:.1f}s")
                return False
            await asyncio.sleep(poll_interval)
            waited += poll_interval
        return True


# Global registry instance
registry = FormatterRegistry()
