import asyncio
import logging
from curl_cffi import CurlError, requests
from stayseeker.config import SEARCH_CONFIG

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """A page could not be fetched within the retry budget."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason


def default_headers() -> dict:
    return {
        "User-Agent": SEARCH_CONFIG["user_agent"],
        "Accept-Language": SEARCH_CONFIG["accept_language"],
    }


class Fetcher:
    """Async page fetcher shared by the scrapers.

    Each ``fetch`` call retries on its own; concurrent calls share only the
    underlying session.
    """

    def __init__(
        self,
        timeout: float | None = None,
        retries: int | None = None,
        backoff: float | None = None,
        impersonate: str | None = None,
    ):
        self.timeout = timeout if timeout is not None else SEARCH_CONFIG["fetch_timeout"]
        self.retries = max(1, retries if retries is not None else SEARCH_CONFIG["fetch_retries"])
        self.backoff = backoff if backoff is not None else SEARCH_CONFIG["fetch_backoff"]
        self.session = requests.AsyncSession(
            impersonate=impersonate or SEARCH_CONFIG["impersonate"],
            timeout=self.timeout,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self) -> None:
        await self.session.close()

    async def fetch(self, url: str, headers: dict | None = None) -> str:
        headers = {**default_headers(), **(headers or {})}
        reason = "no attempt made"
        for attempt in range(self.retries):
            try:
                resp = await self.session.get(url, headers=headers)
            except (CurlError, asyncio.TimeoutError) as e:
                reason = _describe(e)
            else:
                if 200 <= resp.status_code < 300:
                    return resp.text
                reason = f"HTTP {resp.status_code}"

            logger.warning(f"Request failed: {reason} (attempt {attempt + 1}/{self.retries}) {url}")
            if attempt < self.retries - 1:
                await asyncio.sleep((attempt + 1) * self.backoff)

        logger.error(f"Giving up on {url} after {self.retries} attempts: {reason}")
        raise FetchError(url, reason)


def _describe(error: Exception) -> str:
    if isinstance(error, asyncio.TimeoutError) or "timed out" in str(error).lower():
        return "Request timed out"
    return str(error) or type(error).__name__
