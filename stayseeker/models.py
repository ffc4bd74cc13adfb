import math
from dataclasses import dataclass, field
from datetime import date

NO_LISTINGS = "No listings found"


@dataclass
class Listing:
    id: str
    name: str
    title: str
    rating_text: str
    display_price: str
    numeric_price: float
    image_url: str
    source_name: str
    detail_url: str | None = None
    listing_type: str | None = None

    @property
    def is_priced(self) -> bool:
        return not math.isinf(self.numeric_price)

    def to_dict(self) -> dict:
        return {
            "Listing ID": self.id,
            "Listing Type": self.listing_type,
            "Name": self.name,
            "Title": self.title,
            "Average Rating": self.rating_text,
            "Discounted Price": "",
            "Original Price": "",
            "Total Price": self.display_price,
            "Picture": self.image_url,
            "Website": self.source_name,
            "Price": self.numeric_price,
            "Listing URL": self.detail_url,
        }


def placeholder_listing(source_name: str, name: str = NO_LISTINGS, title: str | None = None) -> Listing:
    """Stand-in for a source that produced no usable listing."""
    return Listing(
        id="",
        name=name,
        title=title if title is not None else name,
        rating_text="0.0",
        display_price="0",
        numeric_price=0.0,
        image_url="",
        source_name=source_name,
    )


@dataclass(frozen=True)
class Guests:
    adults: int
    children: int = 0
    pets: int = 0
    children_ages: tuple[int, ...] = ()


@dataclass(frozen=True)
class SearchRequest:
    destination: str
    check_in: date
    check_out: date
    guests: Guests
    property_types: frozenset[str] = field(default_factory=frozenset)
    bedrooms: int = 0
    bathrooms: int = 0
    has_pool: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "SearchRequest":
        """Build a request from the JSON shape accepted by the handler.

        Raises ValueError when the payload is incomplete or inconsistent.
        """
        if not isinstance(data, dict):
            raise ValueError("Request must be a JSON object")

        destination = str(data.get("destination") or "").strip().rstrip("`").strip()
        if not destination:
            raise ValueError("destination is required")

        check_in = _parse_date(data.get("checkIn"), "checkIn")
        check_out = _parse_date(data.get("checkOut"), "checkOut")
        if check_out <= check_in:
            raise ValueError("checkOut must be after checkIn")

        raw_guests = data.get("guests") or {}
        if not isinstance(raw_guests, dict):
            raise ValueError("guests must be an object")
        guests = Guests(
            adults=_count(raw_guests.get("adults", 1), "guests.adults"),
            children=_count(raw_guests.get("children", 0), "guests.children"),
            pets=_count(raw_guests.get("pets", 0), "guests.pets"),
            children_ages=tuple(
                _count(age, "guests.childrenAges") for age in raw_guests.get("childrenAges") or ()
            ),
        )
        if guests.adults < 1:
            raise ValueError("guests.adults must be at least 1")

        property_types = data.get("propertyType") or ()
        if isinstance(property_types, str):
            property_types = [property_types]

        return cls(
            destination=destination,
            check_in=check_in,
            check_out=check_out,
            guests=guests,
            property_types=frozenset(str(p).lower() for p in property_types),
            bedrooms=_count(data.get("bedrooms", 0), "bedrooms"),
            bathrooms=_count(data.get("bathrooms", 0), "bathrooms"),
            has_pool=_flag(data.get("hasPool"), "hasPool"),
        )


def _parse_date(value, name: str) -> date:
    # Accept both {"date": "YYYY-MM-DD"} and a bare string
    if isinstance(value, dict):
        value = value.get("date")
    if not isinstance(value, str):
        raise ValueError(f"{name} date is required")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"{name} is not an ISO date: {value!r}")


def _count(value, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer")
    if number < 0:
        raise ValueError(f"{name} must not be negative")
    return number


def _flag(value, name: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be true or false")
    return value
