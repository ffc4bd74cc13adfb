import json
import logging
from urllib.parse import parse_qsl, urljoin, urlsplit
from bs4 import BeautifulSoup
from stayseeker.tree import MISSING

logger = logging.getLogger(__name__)


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def script_text(script) -> str:
    return (script.string or "").strip()


def load_json(text: str):
    """Decode an embedded data block; raises ValueError when it isn't JSON."""
    text = text.strip()
    if not text.startswith(("{", "[")):
        raise ValueError(f"embedded block is not JSON (starts with {text[:20]!r})")
    return json.loads(text)


def script_json(soup: BeautifulSoup, selector: str):
    """JSON payload of the first script matching ``selector``, MISSING if there is none."""
    script = soup.select_one(selector)
    if script is None:
        return MISSING
    return load_json(script_text(script))


def scripts_containing(soup: BeautifulSoup, marker: str) -> list[str]:
    return [text for text in (script_text(s) for s in soup.find_all("script")) if marker in text]


def find_link_with_id(soup: BeautifulSoup, listing_id: str, base_url: str) -> str | None:
    """Absolute URL of the first anchor whose query string mentions ``listing_id``."""
    if not listing_id:
        return None
    for anchor in soup.select("a[href]"):
        href = anchor.get("href", "")
        try:
            query = urlsplit(href).query
        except ValueError:
            logger.debug(f"Skipping malformed href {href!r}")
            continue
        if any(listing_id in value for _, value in parse_qsl(query, keep_blank_values=True)):
            return urljoin(base_url, href)
    return None
