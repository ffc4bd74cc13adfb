import os

SEARCH_CONFIG = {
    "fetch_timeout": float(os.environ.get("FETCH_TIMEOUT", "10")),
    "fetch_retries": int(os.environ.get("FETCH_RETRIES", "3")),
    "fetch_backoff": float(os.environ.get("FETCH_BACKOFF", "1.0")),
    "impersonate": os.environ.get("IMPERSONATE", "chrome"),
    "price_discount": float(os.environ.get("PRICE_DISCOUNT", "0.85")),
    "airbnb_base_url": os.environ.get("AIRBNB_BASE_URL", "https://www.airbnb.es"),
    "booking_base_url": os.environ.get("BOOKING_BASE_URL", "https://www.booking.com"),
    "booking_aid": os.environ.get("BOOKING_AID", "817353"),
    "booking_currency": os.environ.get("BOOKING_CURRENCY", "EUR"),
    "user_agent": os.environ.get(
        "USER_AGENT",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    ),
    "accept_language": os.environ.get("ACCEPT_LANGUAGE", "en-US,en;q=0.9"),
}
