from __future__ import annotations

import logging

import httpx
from bs4 import BeautifulSoup

from autovalue.config import MarketValueConfig
from autovalue.data_models import MarketValue
from autovalue.market_value import looks_like_market_page, parse_market_value

logger = logging.getLogger(__name__)

_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


def html_to_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return soup.get_text(" ", strip=True)


class MarketValueClient:
    """Best-effort market statistics for a VIN from a second valuation site.

    Candidate URL templates are tried in order until one serves recognizable
    market-value content. Every failure degrades to ``None``.
    """

    def __init__(self, config: MarketValueConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self._transport = transport

    async def lookup(self, vin: str) -> MarketValue | None:
        if not self.config.enabled:
            return None

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                headers=_HEADERS,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                for template in self.config.url_templates:
                    url = template.format(vin=vin)
                    try:
                        resp = await client.get(url)
                        resp.raise_for_status()
                    except httpx.HTTPError as exc:
                        logger.info("Market value candidate %s failed: %s", url, exc)
                        continue

                    try:
                        value = self._parse_candidate(url, resp.text)
                    except Exception as exc:
                        logger.warning("Could not parse market value page %s: %s", url, exc)
                        continue
                    if value is not None:
                        return value
        except Exception as exc:
            logger.warning("Market value lookup failed for %s: %s", vin, exc)
            return None

        logger.info("No market value available for %s", vin)
        return None

    def _parse_candidate(self, url: str, html: str) -> MarketValue | None:
        text = html_to_text(html)
        if not looks_like_market_page(text):
            logger.info("No market value content at %s", url)
            return None
        return parse_market_value(
            text,
            source_url=url,
            min_price=self.config.min_plausible_price,
            max_price=self.config.max_plausible_price,
        )
