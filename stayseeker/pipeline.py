"""Waterfall extraction.

A pipeline is an ordered list of named strategies with the same
``(document) -> list[Listing]`` signature. ``run`` tries them in order and
stops at the first one that returns listings. A strategy that trips over an
unexpected document shape counts as having found nothing; its reason is kept
in the returned ``Extraction`` so callers can report it.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence
from bs4 import BeautifulSoup
from stayseeker.models import Listing

logger = logging.getLogger(__name__)

Strategy = Callable[[BeautifulSoup], list[Listing]]


class ShapeError(ValueError):
    """Embedded data exists but is not laid out the way the strategy expects."""


# Errors that mean "the document didn't look like we thought", as opposed to bugs
SHAPE_ERRORS = (ValueError, KeyError, TypeError, AttributeError, IndexError)


@dataclass(frozen=True)
class StrategyResult:
    strategy: str
    listings: list[Listing] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class Extraction:
    listings: list[Listing]
    attempts: list[StrategyResult]

    @property
    def strategy(self) -> str | None:
        """Name of the strategy that produced the listings, if any did."""
        for attempt in self.attempts:
            if attempt.listings:
                return attempt.strategy
        return None


class ExtractionPipeline:
    def __init__(self, source_name: str, strategies: Sequence[tuple[str, Strategy]]):
        self.source_name = source_name
        self.strategies = tuple(strategies)

    def attempt(self, name: str, strategy: Strategy, document: BeautifulSoup) -> StrategyResult:
        try:
            listings = strategy(document)
        except SHAPE_ERRORS as e:
            reason = f"{type(e).__name__}: {e}"
            logger.warning(f"{self.source_name}: {name} strategy failed: {reason}")
            return StrategyResult(strategy=name, error=reason)
        return StrategyResult(strategy=name, listings=list(listings))

    def run(self, document: BeautifulSoup) -> Extraction:
        attempts = []
        for name, strategy in self.strategies:
            result = self.attempt(name, strategy, document)
            attempts.append(result)
            if result.listings:
                logger.info(f"{self.source_name}: {len(result.listings)} listings from {name} strategy")
                return Extraction(listings=result.listings, attempts=attempts)
            if result.ok:
                logger.info(f"{self.source_name}: {name} strategy found nothing")
        return Extraction(listings=[], attempts=attempts)
