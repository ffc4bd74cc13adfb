"""Price string handling.

Sources print prices with whatever currency symbol and digit grouping the
page locale uses ("€1.234,56", "$1,234.56", "1 234 €"). Everything here is
total: unparseable input maps to ``math.inf`` so a bad price sorts last
instead of failing the batch.
"""
import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

_NON_NUMERIC = re.compile(r"[^0-9.,]")
_DIGITS = re.compile(r"\d+")


def parse_price(raw: str | None) -> float:
    if not raw:
        return math.inf

    clean = _NON_NUMERIC.sub("", raw)
    if not clean:
        return math.inf

    try:
        if "," in clean and "." in clean:
            if clean.index(",") > clean.index("."):
                # "1.234,56"
                return float(clean.replace(".", "").replace(",", "."))
            # "1,234.56"
            return float(clean.replace(",", ""))

        if "," in clean:
            whole, *rest = clean.split(",")
            if len(rest) == 1 and rest[0].isdigit() and len(rest[0]) != 3:
                # "1234,56"
                return float(f"{whole}.{rest[0]}")
            return float(clean.replace(",", ""))

        if "." in clean:
            groups = clean.split(".")
            if len(groups) > 1 and all(len(g) == 3 and g.isdigit() for g in groups[1:]):
                # "1.234" is read as a thousands grouping, never 1.234
                return float(clean.replace(".", ""))
            return float(clean)

        return float(clean)
    except ValueError:
        return math.inf


def extract_tax_amount(text: str | None) -> float:
    """First integer found in a charges blurb like "+€12 taxes and charges"."""
    if not text:
        return 0.0
    match = _DIGITS.search(text)
    return float(match.group()) if match else 0.0


def discount(amount: float, factor: float) -> float:
    if math.isinf(amount):
        return amount
    return amount * factor


def _quantize(amount: float, places: int) -> Decimal:
    # Round the shortest decimal repr half-up, so 81.175 becomes 81.18
    # rather than the binary-float 81.17.
    return Decimal(repr(amount)).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def round_price(amount: float, places: int = 2) -> float:
    if math.isinf(amount) or math.isnan(amount):
        return amount
    try:
        return float(_quantize(amount, places))
    except InvalidOperation:
        return amount


def format_price(amount: float, symbol: str) -> str:
    return f"{symbol}{_quantize(amount, 2)}"


def currency_symbol(text: str | None) -> str:
    return "€" if text and "€" in text else "$"
