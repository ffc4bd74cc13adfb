import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from operator import attrgetter
from typing import Sequence
from bs4 import BeautifulSoup
from curl_cffi import CurlError
from stayseeker.config import SEARCH_CONFIG
from stayseeker.documents import parse_document
from stayseeker.fetcher import Fetcher, FetchError
from stayseeker.models import Listing, SearchRequest, placeholder_listing
from stayseeker.pipeline import Extraction, ExtractionPipeline, Strategy
from stayseeker.prices import currency_symbol, discount, format_price, round_price

logger = logging.getLogger(__name__)

SourceResult = dict[str, Listing]


def text_or(value, default: str = "") -> str:
    return default if value is None else str(value)


def select_cheapest(listings: Sequence[Listing]) -> Listing | None:
    """Lowest finite price; the first of equal prices wins."""
    priced = [listing for listing in listings if listing.is_priced]
    return min(priced, key=attrgetter("numeric_price"), default=None)


def describe_failure(error: Exception) -> str:
    if isinstance(error, asyncio.TimeoutError):
        return "Network error: Request timed out"
    if isinstance(error, (CurlError, ConnectionError)):
        return f"Network error: {error}"
    return f"Error: {error}"


class SourceAdapter(ABC):
    """One travel site: builds its search URLs, extracts and prices listings.

    ``search`` never raises. Whatever goes wrong ends up as a placeholder
    listing under ``"cheapest"``.
    """

    name: str = ""
    # Booking keeps its discounted price rounded to cents
    round_numeric: bool = False

    def __init__(self, fetcher: Fetcher, discount: float | None = None):
        self.fetcher = fetcher
        self.discount = discount if discount is not None else SEARCH_CONFIG["price_discount"]
        self.pipeline = ExtractionPipeline(self.name, self.strategies())

    @abstractmethod
    def page_urls(self, request: SearchRequest) -> list[str]:
        """Search pages to fetch for ``request``; results are pooled across them."""

    @abstractmethod
    def strategies(self) -> list[tuple[str, Strategy]]:
        """Extraction strategies, most reliable first."""

    def resolve_detail_url(self, listing: Listing, documents: Sequence[BeautifulSoup]) -> str | None:
        return None

    def extract(self, document: BeautifulSoup) -> Extraction:
        return self.pipeline.run(document)

    def apply_discount(self, listing: Listing) -> Listing:
        if not listing.is_priced:
            return replace(listing, display_price=listing.display_price or "N/A")
        price = discount(listing.numeric_price, self.discount)
        if self.round_numeric:
            price = round_price(price)
        return replace(
            listing,
            numeric_price=price,
            display_price=format_price(price, currency_symbol(listing.display_price)),
        )

    async def search(self, request: SearchRequest) -> SourceResult:
        try:
            cheapest = await self._find_cheapest(request)
        except Exception as e:
            message = describe_failure(e)
            logger.error(f"{self.name}: search failed: {message}")
            cheapest = placeholder_listing(self.name, name=message, title="Error occurred")
        return {"cheapest": cheapest}

    async def _find_cheapest(self, request: SearchRequest) -> Listing:
        urls = self.page_urls(request)
        pages = await asyncio.gather(*(self._fetch(url) for url in urls))
        failures = [page for page in pages if isinstance(page, FetchError)]
        if urls and len(failures) == len(urls):
            message = f"Network error: {failures[0].reason}"
            logger.error(f"{self.name}: every page failed: {message}")
            return placeholder_listing(self.name, name=message, title="Error occurred")
        documents = [parse_document(page) for page in pages if not isinstance(page, FetchError)]

        listings = []
        for document in documents:
            extraction = self.extract(document)
            for attempt in extraction.attempts:
                if not attempt.ok:
                    logger.info(f"{self.name}: {attempt.strategy} skipped ({attempt.error})")
            listings.extend(self.apply_discount(listing) for listing in extraction.listings)
        logger.info(f"{self.name}: {len(listings)} listings from {len(documents)}/{len(urls)} pages")

        cheapest = select_cheapest(listings)
        if cheapest is None:
            return placeholder_listing(self.name)
        if cheapest.detail_url is None:
            cheapest.detail_url = self.resolve_detail_url(cheapest, documents)
        return cheapest

    async def _fetch(self, url: str) -> str | FetchError:
        # Failed pages come back as their FetchError
        try:
            return await self.fetcher.fetch(url)
        except FetchError as e:
            logger.warning(f"{self.name}: no content for page: {e}")
            return e
