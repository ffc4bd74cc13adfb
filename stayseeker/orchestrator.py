import asyncio
import logging
from typing import Sequence
from stayseeker.fetcher import Fetcher
from stayseeker.models import SearchRequest
from stayseeker.scrapers.airbnb import AirbnbScraper
from stayseeker.scrapers.base import SourceAdapter, SourceResult
from stayseeker.scrapers.booking import BookingScraper

logger = logging.getLogger(__name__)

AggregatedResult = dict[str, SourceResult]


def default_adapters(fetcher: Fetcher) -> list[SourceAdapter]:
    return [AirbnbScraper(fetcher), BookingScraper(fetcher)]


async def aggregate(
    request: SearchRequest, adapters: Sequence[SourceAdapter] | None = None
) -> AggregatedResult:
    """Search every source at once and key each one's result by source name.

    Adapters contain their own failures, so this always waits for all of
    them and always returns an entry per source.
    """
    if adapters is None:
        async with Fetcher() as fetcher:
            return await aggregate(request, default_adapters(fetcher))

    logger.info(f"Searching {len(adapters)} sources for {request.destination}")
    results = await asyncio.gather(*(adapter.search(request) for adapter in adapters))
    return {adapter.name: result for adapter, result in zip(adapters, results)}


def run_search(request: SearchRequest) -> AggregatedResult:
    return asyncio.run(aggregate(request))
