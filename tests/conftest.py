import os

os.environ.setdefault("FETCH_TIMEOUT", "10")
os.environ.setdefault("FETCH_RETRIES", "3")
os.environ.setdefault("FETCH_BACKOFF", "1.0")
os.environ.setdefault("PRICE_DISCOUNT", "0.85")
os.environ.setdefault("AIRBNB_BASE_URL", "https://www.airbnb.es")
os.environ.setdefault("BOOKING_BASE_URL", "https://www.booking.com")
os.environ.setdefault("BOOKING_AID", "817353")
os.environ.setdefault("BOOKING_CURRENCY", "EUR")
