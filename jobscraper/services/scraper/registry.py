# =============================================================================
# Extractor Registry
# =============================================================================
"""
Ordered registry of site-specific extractors plus one generic fallback.

The first registered extractor whose URL patterns match wins, so more
specific extractors must be registered before broader ones. The fallback
is consulted only when nothing else matches.
"""

import logging
from typing import Optional

from jobscraper.services.scraper.extractors import (
    BaseExtractor,
    GenericExtractor,
    get_site_extractors,
)


# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


class ExtractorRegistry:
    """
    Resolves URLs to extractors in registration order.

    Example:
        registry = ExtractorRegistry()
        registry.register(LinkedInExtractor()).register(GreenhouseExtractor())
        extractor = registry.resolve("https://www.linkedin.com/jobs/view/1")
    """

    def __init__(self, fallback: Optional[BaseExtractor] = None) -> None:
        """
        Initialize an empty registry.

        Args:
            fallback: Catch-all extractor; defaults to GenericExtractor.
        """
        self._extractors: list[BaseExtractor] = []
        self._fallback = fallback or GenericExtractor()
        self._frozen = False

    @property
    def fallback(self) -> BaseExtractor:
        """The generic fallback extractor."""
        return self._fallback

    @property
    def extractors(self) -> tuple[BaseExtractor, ...]:
        """Registered site-specific extractors in priority order."""
        return tuple(self._extractors)

    def register(self, extractor: BaseExtractor) -> "ExtractorRegistry":
        """
        Append an extractor (lowest priority so far).

        Args:
            extractor: Site-specific extractor to add.

        Returns:
            The registry, for chaining.

        Raises:
            RuntimeError: If the registry has been frozen.
            ValueError: If a generic extractor or a duplicate name is registered.
        """
        if self._frozen:
            raise RuntimeError("Extractor registry is frozen")
        if extractor.is_generic:
            raise ValueError("The generic extractor is the fallback and cannot be registered")
        if any(existing.name == extractor.name for existing in self._extractors):
            raise ValueError(f"Extractor '{extractor.name}' is already registered")

        self._extractors.append(extractor)
        logger.debug(f"Registered extractor: {extractor.name}")
        return self

    def freeze(self) -> "ExtractorRegistry":
        """Prevent further registrations."""
        self._frozen = True
        return self

    def resolve(self, url: str) -> BaseExtractor:
        """
        Select the extractor for a URL.

        Args:
            url: Job posting URL.

        Returns:
            First matching site-specific extractor, else the fallback.
        """
        for extractor in self._extractors:
            if extractor.can_handle(url):
                return extractor
        return self._fallback

    def get(self, name: str) -> Optional[BaseExtractor]:
        """Look up an extractor, including the fallback, by name."""
        if self._fallback.name == name:
            return self._fallback
        return next((e for e in self._extractors if e.name == name), None)

    def names(self) -> list[str]:
        """Names of site-specific extractors in priority order."""
        return [e.name for e in self._extractors]

    def __len__(self) -> int:
        return len(self._extractors)


def build_default_registry() -> ExtractorRegistry:
    """
    Build a frozen registry with every bundled site extractor.

    Returns:
        Registry with site extractors in priority order and the generic
        extractor as fallback.
    """
    registry = ExtractorRegistry()
    for extractor in get_site_extractors():
        registry.register(extractor)
    return registry.freeze()
