from __future__ import annotations

import logging
import re

from playwright.async_api import Page

from autovalue.errors import AutomationError

logger = logging.getLogger(__name__)

CURRENCY_PATTERN = r"\$\s?\d{1,3}(?:,\d{3})*(?:\.\d{2})?"
CURRENCY_RE = re.compile(CURRENCY_PATTERN)

# Explicitly price-styled elements first, then any element whose text looks like money.
PRICE_SELECTORS: tuple[str, ...] = (
    '[class*="price" i]',
    '[data-testid*="price" i]',
    f"text=/{CURRENCY_PATTERN}/i",
)

VALUATION_NOT_FOUND = "Could not find valuation on the page. The site may have changed."


def find_currency(text: str | None) -> str | None:
    match = CURRENCY_RE.search(text or "")
    return match.group(0) if match else None


async def extract_valuation(page: Page) -> str:
    for selector in PRICE_SELECTORS:
        element = page.locator(selector).first
        if not await element.count():
            continue
        found = find_currency(await element.text_content())
        if found:
            logger.debug("Valuation found via %s", selector)
            return found

    found = find_currency(await page.text_content("body"))
    if found:
        logger.debug("Valuation found via page body scan")
        return found
    raise AutomationError(VALUATION_NOT_FOUND)
