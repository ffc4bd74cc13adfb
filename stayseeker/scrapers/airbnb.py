import logging
from typing import Iterable, Sequence
from urllib.parse import quote, urlencode
from bs4 import BeautifulSoup
from stayseeker.config import SEARCH_CONFIG
from stayseeker.documents import load_json, script_json, scripts_containing
from stayseeker.fetcher import Fetcher
from stayseeker.models import Listing, SearchRequest
from stayseeker.pipeline import SHAPE_ERRORS, ShapeError, Strategy
from stayseeker.prices import parse_price
from stayseeker.scrapers.base import SourceAdapter, text_or
from stayseeker.tree import MISSING, find_nested, get_path

logger = logging.getLogger(__name__)

DEFERRED_STATE_SELECTOR = "script#data-deferred-state-0"
NIOBE_KEY = "niobeMinimalClientData"
SEARCH_RESULTS_PATH = ["data", "presentation", "staysSearch", "results", "searchResults"]
CARD_SELECTOR = "[data-testid=card-container]"
CARD_TITLE_SELECTOR = "[data-testid=listing-card-title]"
CARD_PRICE_SELECTOR = "._1jo4hgw"

# Second results page: {"section_offset":0,"items_offset":18,"version":1}
NEXT_PAGE_CURSOR = "eyJzZWN0aW9uX29mZnNldCI6MCwiaXRlbXNfb2Zmc2V0IjoxOCwidmVyc2lvbiI6MX0="

EXPLORE_PARAMS = [
    ("refinement_paths[]", "/homes"),
    ("flexible_trip_lengths[]", "one_week"),
    ("price_filter_input_type", "0"),
    ("channel", "EXPLORE"),
    ("source", "structured_search_input_header"),
    ("search_type", "filter_change"),
    ("search_mode", "regular_search"),
    ("date_picker_type", "calendar"),
]

PROPERTY_TYPE_IDS = {
    "apartment": "3",
    "house": "1",
    "guesthouse": "2",
    "hotel": "4",
}

POOL_AMENITY_ID = "7"


def property_type_ids(property_types: Iterable[str]) -> list[str]:
    wanted = {p.lower() for p in property_types}
    return [type_id for name, type_id in PROPERTY_TYPE_IDS.items() if name in wanted]


def build_search_url(request: SearchRequest, cursor: str | None = None, base_url: str | None = None) -> str:
    base_url = base_url or SEARCH_CONFIG["airbnb_base_url"]
    destination = quote(request.destination.strip().rstrip("`").strip(), safe="")
    guests = request.guests

    params = list(EXPLORE_PARAMS)
    params += [
        ("checkin", request.check_in.isoformat()),
        ("checkout", request.check_out.isoformat()),
        ("adults", str(guests.adults)),
    ]
    if guests.children > 0:
        params.append(("children", str(guests.children)))
    if guests.pets > 0:
        params.append(("pets", str(guests.pets)))

    filter_order = []
    for type_id in property_type_ids(request.property_types):
        params.append(("l2_property_type_ids[]", type_id))
        filter_order.append(f"l2_property_type_ids:{type_id}")
    if request.bedrooms > 0:
        params.append(("min_bedrooms", str(request.bedrooms)))
        filter_order.append(f"min_bedrooms:{request.bedrooms}")
    if request.has_pool:
        params.append(("amenities[]", POOL_AMENITY_ID))
        filter_order.append(f"amenities:{POOL_AMENITY_ID}")
    if request.bathrooms > 0:
        params.append(("min_bathrooms", str(request.bathrooms)))
        filter_order.append(f"min_bathrooms:{request.bathrooms}")
    if filter_order:
        params.append(("selected_filter_order[]", ";".join(filter_order)))

    if cursor:
        params.append(("cursor", cursor))

    return f"{base_url}/s/{destination}/homes?{urlencode(params, safe='[]/:;')}"


class AirbnbScraper(SourceAdapter):
    name = "airbnb"

    def __init__(
        self,
        fetcher: Fetcher,
        discount: float | None = None,
        base_url: str | None = None,
        cursors: Sequence[str | None] = (None, NEXT_PAGE_CURSOR),
    ):
        self.base_url = base_url or SEARCH_CONFIG["airbnb_base_url"]
        self.cursors = tuple(cursors)
        super().__init__(fetcher, discount)

    def page_urls(self, request: SearchRequest) -> list[str]:
        return [build_search_url(request, cursor, self.base_url) for cursor in self.cursors]

    def strategies(self) -> list[tuple[str, Strategy]]:
        return [
            ("deferred-state", self._from_deferred_state),
            ("niobe-script", self._from_niobe_scripts),
            ("card-markup", self._from_cards),
        ]

    def resolve_detail_url(self, listing, documents) -> str | None:
        if not listing.id:
            return None
        return f"{self.base_url}/rooms/{listing.id}"

    def _from_deferred_state(self, soup: BeautifulSoup) -> list[Listing]:
        payload = script_json(soup, DEFERRED_STATE_SELECTOR)
        if payload is MISSING:
            return []
        return self._listings_from_payload(payload)

    def _from_niobe_scripts(self, soup: BeautifulSoup) -> list[Listing]:
        for text in scripts_containing(soup, NIOBE_KEY):
            try:
                listings = self._listings_from_payload(load_json(text))
            except ValueError as e:
                logger.warning(f"Skipping unreadable {NIOBE_KEY} block: {e}")
                continue
            if listings:
                return listings
        return []

    def _listings_from_payload(self, payload) -> list[Listing]:
        entries = get_path(payload, [NIOBE_KEY])
        if entries is MISSING:
            entries = find_nested(payload, [NIOBE_KEY])
        if not isinstance(entries, list):
            raise ShapeError(f"{NIOBE_KEY} missing or not a list")

        listings = []
        for entry in entries:
            # Entries are [operation_key, response] pairs
            if not isinstance(entry, list) or len(entry) < 2:
                continue
            results = get_path(entry[1], SEARCH_RESULTS_PATH)
            if results is MISSING:
                results = find_nested(entry[1], ["staysSearch", "results", "searchResults"])
            if not isinstance(results, list):
                continue
            for result in results:
                listing = self._parse_result(result)
                if listing:
                    listings.append(listing)
        return listings

    def _parse_result(self, result) -> Listing | None:
        if not isinstance(result, dict) or result.get("__typename") != "StaySearchResult":
            return None
        try:
            details = result.get("listing") or {}
            price_text = find_nested(result, ["secondaryLine", "price"])
            if not isinstance(price_text, str):
                price_text = None

            pictures = result.get("contextualPictures") or []
            picture = ""
            if pictures and isinstance(pictures[0], dict):
                picture = text_or(pictures[0].get("picture"))

            return Listing(
                id=text_or(details.get("id")),
                listing_type=details.get("listingObjType"),
                name=text_or(details.get("name")),
                title=text_or(details.get("title")),
                rating_text=text_or(result.get("avgRatingLocalized"), "0.0"),
                display_price=price_text or "",
                numeric_price=parse_price(price_text),
                image_url=picture,
                source_name=self.name,
            )
        except SHAPE_ERRORS as e:
            logger.warning(f"Error processing listing: {e}")
            return None

    def _from_cards(self, soup: BeautifulSoup) -> list[Listing]:
        listings = []
        for card in soup.select(CARD_SELECTOR):
            title_tag = card.select_one(CARD_TITLE_SELECTOR)
            title = title_tag.get_text(strip=True) if title_tag else ""
            price_tag = card.select_one(CARD_PRICE_SELECTOR)
            price = price_tag.get_text(strip=True) if price_tag else ""
            img = card.select_one("img")

            listings.append(
                Listing(
                    id=card.get("data-id", ""),
                    name=title,
                    title=title,
                    rating_text="0.0",
                    display_price=price,
                    numeric_price=parse_price(price),
                    image_url=img.get("src", "") if img else "",
                    source_name=self.name,
                )
            )
        return listings
