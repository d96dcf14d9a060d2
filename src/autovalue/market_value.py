from __future__ import annotations

import re
from typing import Sequence

from autovalue.data_models import MarketValue

_MONEY = r"\$\s*(\d{1,3}(?:,\d{3})+|\d+)(?:\.\d{2})?"

AVERAGE_PATTERNS: tuple[str, ...] = (
    rf"average\s+market(?:\s+(?:price|value))?[^$]{{0,80}}{_MONEY}",
    rf"average\s+(?:price|value)[^$]{{0,80}}{_MONEY}",
    rf"(?:estimated\s+)?market\s+(?:price|value)[^$]{{0,80}}{_MONEY}",
)
BELOW_MARKET_PATTERNS: tuple[str, ...] = (
    rf"below\s+market[^$]{{0,60}}{_MONEY}",
    rf"(?:low|lower)\s+(?:price|range|estimate)[^$]{{0,60}}{_MONEY}",
)
ABOVE_MARKET_PATTERNS: tuple[str, ...] = (
    rf"above\s+market[^$]{{0,60}}{_MONEY}",
    rf"(?:high|upper)\s+(?:price|range|estimate)[^$]{{0,60}}{_MONEY}",
)
CERTAINTY_PATTERNS: tuple[str, ...] = (
    r"certainty[^\d%]{0,40}(\d{1,3})\s*%",
    r"(\d{1,3})\s*%\s*(?:certainty|confidence|certain)",
)
SAMPLE_SIZE_PATTERNS: tuple[str, ...] = (
    r"based\s+on\s+(\d{1,3}(?:,\d{3})+|\d+)\s+(?:similar\s+)?(?:vehicles|sales|listings|records)",
    r"sample\s+size[^\d]{0,20}(\d{1,3}(?:,\d{3})+|\d+)",
    r"(\d{1,3}(?:,\d{3})+|\d+)\s+(?:similar\s+)?(?:vehicles|listings)\s+(?:analy[sz]ed|compared)",
)

_MARKET_CONTENT_RE = re.compile(r"market\s+(?:value|price)", re.IGNORECASE)
_ANY_MONEY_RE = re.compile(_MONEY)


def _to_int(raw: str) -> int | None:
    try:
        return int(raw.replace(",", ""))
    except ValueError:
        return None


def first_match(text: str, patterns: Sequence[str]) -> int | None:
    for pattern in patterns:
        match = re.search(pattern, text, re.IGNORECASE)
        if match:
            value = _to_int(match.group(1))
            if value is not None:
                return value
    return None


def first_plausible_amount(text: str, low: int, high: int) -> int | None:
    for match in _ANY_MONEY_RE.finditer(text):
        value = _to_int(match.group(1))
        if value is not None and low <= value <= high:
            return value
    return None


def looks_like_market_page(text: str) -> bool:
    return bool(_MARKET_CONTENT_RE.search(text))


def parse_market_value(
    text: str,
    source_url: str = "",
    min_price: int = 500,
    max_price: int = 500_000,
) -> MarketValue | None:
    """Pull market statistics out of flattened page text.

    The average falls back to the first dollar amount in ``[min_price, max_price]``
    when no labeled pattern matches; every other figure is optional.
    """
    average = first_match(text, AVERAGE_PATTERNS)
    if average is None or not min_price <= average <= max_price:
        average = first_plausible_amount(text, min_price, max_price)
    if average is None:
        return None

    certainty = first_match(text, CERTAINTY_PATTERNS)
    if certainty is not None and certainty > 100:
        certainty = None

    return MarketValue(
        average=average,
        source_url=source_url,
        below_market=first_match(text, BELOW_MARKET_PATTERNS),
        above_market=first_match(text, ABOVE_MARKET_PATTERNS),
        certainty=certainty,
        sample_size=first_match(text, SAMPLE_SIZE_PATTERNS),
    )
