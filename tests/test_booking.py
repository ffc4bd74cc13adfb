import json
import pathlib
from datetime import date
from unittest.mock import AsyncMock, MagicMock
import pytest
from stayseeker.documents import parse_document
from stayseeker.fetcher import FetchError
from stayseeker.models import Guests, SearchRequest
from stayseeker.scrapers.booking import BookingScraper, build_search_url

FIXTURES = pathlib.Path(__file__).parent / "fixtures"


def _make_request(**kwargs) -> SearchRequest:
    defaults = {
        "destination": "Lisbon",
        "check_in": date(2026, 5, 1),
        "check_out": date(2026, 5, 4),
        "guests": Guests(adults=2, children=1, pets=0, children_ages=(7,)),
        "property_types": frozenset({"apartment", "house"}),
        "bedrooms": 1,
        "bathrooms": 1,
        "has_pool": True,
    }
    defaults.update(kwargs)
    return SearchRequest(**defaults)


def _make_scraper(side_effect) -> tuple[BookingScraper, MagicMock]:
    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(side_effect=side_effect)
    return BookingScraper(fetcher), fetcher


def _apollo_page(results) -> str:
    payload = json.dumps({"ROOT_QUERY": {"search": {"results": results}}})
    return f'<html><head><script data-capla-store-data="apollo">{payload}</script></head></html>'


def test_build_search_url():
    url = build_search_url(_make_request())

    assert url.startswith(
        "https://www.booking.com/searchresults.html?aid=817353&ss=Lisbon&lang=en-us"
        "&group_adults=2&no_rooms=1&group_children=1"
    )
    assert "checkin=2026-05-01&checkout=2026-05-04&age=7" in url
    assert "nflt=hotelfacility=433;entire_place_bedroom_count=1;min_bathrooms=1;ht_id=201;privacy_type=3" in url
    assert url.endswith("&selected_currency=EUR")


def test_build_search_url_pets_and_unknown_types():
    url = build_search_url(
        _make_request(
            destination="Porto Centro",
            guests=Guests(adults=1, pets=1),
            property_types=frozenset({"Hotel", "treehouse"}),
            bedrooms=0,
            bathrooms=0,
            has_pool=False,
        )
    )

    assert "ss=Porto+Centro" in url
    assert "age=" not in url
    assert "nflt=hotelfacility=4;ht_id=204&" in url


def test_extract_reads_apollo_results():
    html = (FIXTURES / "booking_results.html").read_text()
    scraper, _ = _make_scraper([])

    extraction = scraper.extract(parse_document(html))

    assert extraction.strategy == "apollo-store"
    first, second = extraction.listings
    assert first.id == "1010"
    assert first.name == "Alfama Guesthouse"
    assert first.numeric_price == 220.0
    assert first.rating_text == "8.5 (100)"
    assert first.image_url == "https://cf.bstatic.com/xdata/images/hotel/max800/1010.jpg?k=abc"
    assert second.numeric_price == 150.0


def test_discount_rounds_booking_prices():
    html = (FIXTURES / "booking_results.html").read_text()
    scraper, _ = _make_scraper([])

    listing = scraper.apply_discount(scraper.extract(parse_document(html)).listings[0])

    assert listing.numeric_price == 187.0
    assert listing.display_price == "€187.00"


@pytest.mark.asyncio
async def test_search_returns_cheapest_with_detail_url():
    html = (FIXTURES / "booking_results.html").read_text()
    scraper, fetcher = _make_scraper([html])

    cheapest = (await scraper.search(_make_request()))["cheapest"]

    assert cheapest.id == "2020"
    assert cheapest.name == "Baixa Suites"
    assert cheapest.display_price == "€127.50"
    assert cheapest.numeric_price == 127.5
    assert cheapest.rating_text == "9.1 (42)"
    assert cheapest.image_url == "https://cf.bstatic.com/xdata/images/hotel/max800/2020.jpg?k=def"
    assert cheapest.source_name == "booking"
    assert cheapest.detail_url == (
        "https://www.booking.com/hotel/pt/baixa-suites.html?aid=817353&dest_id=2020&checkin=2026-05-01"
    )
    fetcher.fetch.assert_awaited_once()


def test_secondary_script_when_apollo_block_missing():
    html = (FIXTURES / "booking_results.html").read_text()
    html = html.replace(' data-capla-store-data="apollo"', "")
    scraper, _ = _make_scraper([])

    extraction = scraper.extract(parse_document(html))

    assert extraction.strategy == "results-script"
    assert [l.id for l in extraction.listings] == ["1010", "2020"]


def test_apollo_block_without_results_falls_through():
    html = (
        '<html><head><script data-capla-store-data="apollo">{"ROOT_QUERY": {"results": "none"}, '
        '"note": "\\"results\\": later"}</script></head><body></body></html>'
    )
    scraper, _ = _make_scraper([])

    extraction = scraper.extract(parse_document(html))

    assert extraction.listings == []
    assert "no results array" in extraction.attempts[0].error


@pytest.mark.asyncio
async def test_search_from_property_cards():
    html = (FIXTURES / "booking_cards.html").read_text()
    scraper, _ = _make_scraper([html])

    cheapest = (await scraper.search(_make_request()))["cheapest"]

    assert cheapest.name == "Belem House"
    assert cheapest.display_price == "€204.00"
    assert cheapest.rating_text == "0.0"
    assert cheapest.detail_url == "https://www.booking.com/hotel/pt/belem-house.html?aid=817353"


def test_property_cards_read_rating_and_thousands():
    html = (FIXTURES / "booking_cards.html").read_text()
    scraper, _ = _make_scraper([])

    chiado = scraper.extract(parse_document(html)).listings[0]

    assert chiado.numeric_price == 1180.0
    assert chiado.rating_text == "8.7 Excellent"
    assert chiado.image_url == "https://cf.bstatic.com/xdata/images/hotel/square200/1.jpg"


def test_price_falls_back_to_formatted_amount():
    html = _apollo_page(
        [
            {
                "basicPropertyData": {"id": 7},
                "displayName": {"text": "Graça Flat"},
                "priceDisplayInfoIrene": {"displayPrice": {"amountPerStay": {"amount": "€ 1.250"}}},
            },
            {"displayName": {"text": "No property data"}},
        ]
    )
    scraper, _ = _make_scraper([])

    listings = scraper.extract(parse_document(html)).listings

    assert len(listings) == 1
    assert listings[0].numeric_price == 1250.0
    assert listings[0].rating_text == "0 (0)"
    assert listings[0].image_url == ""


@pytest.mark.asyncio
async def test_unpriced_results_give_placeholder():
    html = _apollo_page([{"basicPropertyData": {"id": 8}, "displayName": {"text": "Sold out"}}])
    scraper, _ = _make_scraper([html])

    cheapest = (await scraper.search(_make_request()))["cheapest"]

    assert cheapest.name == "No listings found"
    assert cheapest.numeric_price == 0.0


@pytest.mark.asyncio
async def test_detail_url_missing_when_no_anchor_matches():
    html = _apollo_page(
        [
            {
                "basicPropertyData": {"id": 31337},
                "displayName": {"text": "Hidden Gem"},
                "priceDisplayInfoIrene": {"displayPrice": {"amountPerStay": {"amount": "€ 90", "amountUnformatted": 90}}},
            }
        ]
    )
    scraper, _ = _make_scraper([html])

    cheapest = (await scraper.search(_make_request()))["cheapest"]

    assert cheapest.name == "Hidden Gem"
    assert cheapest.display_price == "€76.50"
    assert cheapest.detail_url is None


@pytest.mark.asyncio
async def test_fetch_failure_gives_placeholder():
    scraper, _ = _make_scraper(FetchError("https://www.booking.com/searchresults.html", "HTTP 403"))

    cheapest = (await scraper.search(_make_request()))["cheapest"]

    assert cheapest.name == "Network error: HTTP 403"
    assert cheapest.title == "Error occurred"
    assert cheapest.source_name == "booking"
