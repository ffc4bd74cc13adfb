import logging
import re
from typing import Iterable, Sequence
from urllib.parse import urlencode, urljoin
from bs4 import BeautifulSoup
from stayseeker.config import SEARCH_CONFIG
from stayseeker.documents import find_link_with_id, load_json, script_text, scripts_containing
from stayseeker.fetcher import Fetcher
from stayseeker.models import Listing, SearchRequest
from stayseeker.pipeline import SHAPE_ERRORS, ShapeError, Strategy
from stayseeker.prices import extract_tax_amount, parse_price
from stayseeker.scrapers.base import SourceAdapter, text_or
from stayseeker.tree import MISSING, find_first_matching, get_path

logger = logging.getLogger(__name__)

APOLLO_SELECTOR = "script[data-capla-store-data=apollo]"
RESULTS_MARKER = '"results":'
PRICE_PATH = ["priceDisplayInfoIrene", "displayPrice", "amountPerStay"]
PHOTO_PATH = ["photos", "main", "highResUrl", "relativeUrl"]
IMAGE_HOST = "https://cf.bstatic.com"
IMAGE_SIZE = re.compile(r"max[^/]+")

CARD_SELECTOR = "[data-testid=property-card]"
CARD_TITLE_SELECTOR = "[data-testid=title]"
CARD_PRICE_SELECTOR = "[data-testid=price-and-discounted-price]"
CARD_RATING_SELECTOR = "[data-testid=review-score]"
CARD_LINK_SELECTOR = "a[data-testid=title-link]"

PROPERTY_TYPE_FILTERS = {
    "apartment": "ht_id=201",
    "guesthouse": "ht_id=216",
    "hotel": "ht_id=204",
    "house": "privacy_type=3",
}

PETS_FILTER = "hotelfacility=4"
POOL_FILTER = "hotelfacility=433"


def property_type_filters(property_types: Iterable[str]) -> list[str]:
    wanted = {p.lower() for p in property_types}
    return [f for name, f in PROPERTY_TYPE_FILTERS.items() if name in wanted]


def build_search_url(
    request: SearchRequest,
    base_url: str | None = None,
    aid: str | None = None,
    currency: str | None = None,
) -> str:
    base_url = base_url or SEARCH_CONFIG["booking_base_url"]
    guests = request.guests

    params = [
        ("aid", aid or SEARCH_CONFIG["booking_aid"]),
        ("ss", request.destination.strip().rstrip("`").strip()),
        ("lang", "en-us"),
        ("group_adults", str(guests.adults)),
        ("no_rooms", "1"),
        ("group_children", str(guests.children)),
        ("checkin", request.check_in.isoformat()),
        ("checkout", request.check_out.isoformat()),
    ]
    if guests.children > 0:
        params += [("age", str(age)) for age in guests.children_ages]

    filters = []
    if guests.pets > 0:
        filters.append(PETS_FILTER)
    if request.has_pool:
        filters.append(POOL_FILTER)
    if request.bedrooms > 0:
        filters.append(f"entire_place_bedroom_count={request.bedrooms}")
    if request.bathrooms > 0:
        filters.append(f"min_bathrooms={request.bathrooms}")
    filters += property_type_filters(request.property_types)
    if filters:
        params.append(("nflt", ";".join(filters)))

    params.append(("selected_currency", currency or SEARCH_CONFIG["booking_currency"]))
    return f"{base_url}/searchresults.html?{urlencode(params, safe=';=')}"


def _has_results(node: dict) -> bool:
    return isinstance(node.get("results"), list)


def _has_charges(node: dict) -> bool:
    return "chargesInfo" in node


class BookingScraper(SourceAdapter):
    name = "booking"
    round_numeric = True

    def __init__(
        self,
        fetcher: Fetcher,
        discount: float | None = None,
        base_url: str | None = None,
        aid: str | None = None,
        currency: str | None = None,
    ):
        self.base_url = base_url or SEARCH_CONFIG["booking_base_url"]
        self.aid = aid or SEARCH_CONFIG["booking_aid"]
        self.currency = currency or SEARCH_CONFIG["booking_currency"]
        super().__init__(fetcher, discount)

    def page_urls(self, request: SearchRequest) -> list[str]:
        return [build_search_url(request, self.base_url, self.aid, self.currency)]

    def strategies(self) -> list[tuple[str, Strategy]]:
        return [
            ("apollo-store", self._from_apollo),
            ("results-script", self._from_result_scripts),
            ("property-cards", self._from_cards),
        ]

    def resolve_detail_url(self, listing: Listing, documents: Sequence[BeautifulSoup]) -> str | None:
        for document in documents:
            url = find_link_with_id(document, listing.id, self.base_url)
            if url:
                return url
        return None

    def _from_apollo(self, soup: BeautifulSoup) -> list[Listing]:
        script = soup.select_one(APOLLO_SELECTOR)
        if script is None:
            return []
        text = script_text(script)
        if RESULTS_MARKER not in text:
            return []
        return self._listings_from_payload(load_json(text))

    def _from_result_scripts(self, soup: BeautifulSoup) -> list[Listing]:
        for text in scripts_containing(soup, RESULTS_MARKER):
            try:
                listings = self._listings_from_payload(load_json(text))
            except ValueError as e:
                logger.warning(f"Failed to parse alternative script: {e}")
                continue
            if listings:
                return listings
        return []

    def _listings_from_payload(self, payload) -> list[Listing]:
        holder = find_first_matching(payload, _has_results)
        if holder is MISSING:
            raise ShapeError("no results array in embedded data")

        listings = []
        for result in holder["results"]:
            listing = self._parse_result(result)
            if listing:
                listings.append(listing)
        return listings

    def _parse_result(self, result) -> Listing | None:
        if not isinstance(result, dict) or not isinstance(result.get("basicPropertyData"), dict):
            return None
        try:
            basic = result["basicPropertyData"]
            amount = get_path(result, PRICE_PATH)
            if not isinstance(amount, dict):
                amount = {}
            amount_text = text_or(amount.get("amount"))

            unformatted = amount.get("amountUnformatted")
            if isinstance(unformatted, (int, float)) and not isinstance(unformatted, bool):
                price = float(unformatted)
            else:
                price = parse_price(text_or(unformatted) or amount_text)
            price += self._tax_amount(result)

            reviews = basic.get("reviews") or {}
            score = reviews.get("totalScore")
            count = reviews.get("reviewsCount")
            name = text_or(get_path(result, ["displayName", "text"]) or None)

            return Listing(
                id=text_or(basic.get("id")),
                name=name,
                title=name,
                rating_text=f"{text_or(score, '0')} ({text_or(count, '0')})",
                display_price=amount_text,
                numeric_price=price,
                image_url=self._image_url(basic),
                source_name=self.name,
            )
        except SHAPE_ERRORS as e:
            logger.error(f"Error processing result: {e}")
            return None

    def _tax_amount(self, result: dict) -> float:
        holder = find_first_matching(result, _has_charges)
        if holder is MISSING or not isinstance(holder["chargesInfo"], dict):
            return 0.0
        return extract_tax_amount(text_or(holder["chargesInfo"].get("translation")))

    def _image_url(self, basic: dict) -> str:
        relative = get_path(basic, PHOTO_PATH)
        if not isinstance(relative, str) or not relative:
            return ""
        return IMAGE_HOST + IMAGE_SIZE.sub("max800", relative)

    def _from_cards(self, soup: BeautifulSoup) -> list[Listing]:
        listings = []
        for card in soup.select(CARD_SELECTOR):
            title_tag = card.select_one(CARD_TITLE_SELECTOR)
            title = title_tag.get_text(strip=True) if title_tag else ""
            price_tag = card.select_one(CARD_PRICE_SELECTOR)
            price = price_tag.get_text(strip=True) if price_tag else ""
            rating_tag = card.select_one(CARD_RATING_SELECTOR)
            link_tag = card.select_one(CARD_LINK_SELECTOR)
            img = card.select_one("img")

            listings.append(
                Listing(
                    id="",
                    name=title,
                    title=title,
                    rating_text=rating_tag.get_text(" ", strip=True) if rating_tag else "0.0",
                    display_price=price,
                    numeric_price=parse_price(price),
                    image_url=img.get("src", "") if img else "",
                    source_name=self.name,
                    detail_url=urljoin(self.base_url, link_tag["href"]) if link_tag and link_tag.get("href") else None,
                )
            )
        return listings
