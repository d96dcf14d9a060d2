"""Ordered locator strategies for form fields on pages we do not control.

Each field kind owns a fixed-priority tuple of ``Strategy`` objects.
``resolve`` walks the tuple and accepts the first strategy that finds an
element *and* completes the requested action on it; later strategies are
never consulted, even when they would have matched a better element.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from autovalue.config import WorkflowConfig
from autovalue.errors import AutomationError

logger = logging.getLogger(__name__)

Locate = Callable[[Page], Awaitable["Locator | None"]]
Action = Callable[[Locator], Awaitable[None]]


@dataclass(frozen=True)
class Strategy:
    name: str
    locate: Locate


@dataclass(frozen=True)
class Resolution:
    field: str
    strategy: str
    locator: Locator


async def _first(locator: Locator) -> Locator | None:
    if await locator.count():
        return locator.first
    return None


def css(selector: str, has_text: str | None = None) -> Strategy:
    async def locate(page: Page) -> Locator | None:
        if has_text is None:
            return await _first(page.locator(selector))
        return await _first(page.locator(selector, has_text=has_text))

    name = f"css:{selector}" if has_text is None else f"css:{selector}[text~={has_text}]"
    return Strategy(name, locate)


def placeholder(pattern: str, wait_ms: int = 0) -> Strategy:
    async def locate(page: Page) -> Locator | None:
        target = page.get_by_placeholder(re.compile(pattern, re.IGNORECASE)).first
        if wait_ms:
            await target.wait_for(state="visible", timeout=wait_ms)
            return target
        return await _first(target)

    return Strategy(f"placeholder:{pattern}", locate)


def role(kind: str, name_pattern: str) -> Strategy:
    async def locate(page: Page) -> Locator | None:
        return await _first(page.get_by_role(kind, name=re.compile(name_pattern, re.IGNORECASE)))

    return Strategy(f"role:{kind}:{name_pattern}", locate)


def label(pattern: str) -> Strategy:
    async def locate(page: Page) -> Locator | None:
        return await _first(page.get_by_label(re.compile(pattern, re.IGNORECASE)))

    return Strategy(f"label:{pattern}", locate)


def scan(tag: str, keywords: Sequence[str]) -> Strategy:
    """Last resort: inspect every ``tag`` element's identifying attributes."""

    async def locate(page: Page) -> Locator | None:
        for candidate in await page.locator(tag).all():
            attrs = []
            for attr in ("id", "name", "placeholder", "aria-label"):
                attrs.append((await candidate.get_attribute(attr)) or "")
            haystack = " ".join(attrs).lower()
            if any(word in haystack for word in keywords):
                return candidate
        return None

    return Strategy(f"scan:{tag}:{'|'.join(keywords)}", locate)


def fill(value: str) -> Action:
    async def action(target: Locator) -> None:
        await target.fill(value)

    return action


async def click(target: Locator) -> None:
    await target.click()


async def present(target: Locator) -> None:
    return None


async def resolve(page: Page, field: str, strategies: Sequence[Strategy], action: Action) -> Resolution | None:
    for strategy in strategies:
        try:
            target = await strategy.locate(page)
            if target is None:
                continue
            await action(target)
        except PlaywrightError as exc:
            logger.debug("%s: strategy %s failed: %s", field, strategy.name, exc)
            continue
        logger.debug("%s resolved via %s", field, strategy.name)
        return Resolution(field=field, strategy=strategy.name, locator=target)
    return None


async def require(
    page: Page,
    field: str,
    strategies: Sequence[Strategy],
    action: Action,
    message: str,
) -> Resolution:
    resolution = await resolve(page, field, strategies, action)
    if resolution is None:
        raise AutomationError(message)
    return resolution


# ── Strategy tables ─────────────────────────────────────────────────

VIN_LINK: tuple[Strategy, ...] = (css("a", has_text="VIN"),)

PRIMARY_CTA: tuple[Strategy, ...] = (
    role("button", r"Value My Car"),
    css('button:has-text("Value My Car")'),
    css('input[type="submit"][value*="Value" i]'),
    css('button:has-text("Continue")'),
)

DETAILS_CONTINUE: tuple[Strategy, ...] = (
    css('button:has-text("Continue to Step 3")'),
    css('button:has-text("Continue")'),
    css('button[type="submit"]'),
    css('input[type="submit"]'),
)

SEE_VALUATION: tuple[Strategy, ...] = (
    role("button", r"See\s+Your\s+Valuation"),
    css('button:has-text("See Your Valuation"), a:has-text("See Your Valuation")'),
    role("button", r"Continue|Next|Get value"),
)


def build_field_strategies(config: WorkflowConfig) -> dict[str, tuple[Strategy, ...]]:
    return {
        "vin": (
            css('input[name="vin"]'),
            css("input#vin"),
            css('input[placeholder*="VIN" i]'),
        ),
        "mileage": (
            placeholder(r"Enter\s+Vehicle\s+Mileage", wait_ms=config.mileage_wait_ms),
            css('input[name*="mileage" i]'),
            css('input[name*="odometer" i]'),
            css('input[type="number"]'),
            css('input[placeholder*="odometer" i]'),
            css('input[placeholder*="mileage" i]'),
            css('input[aria-label*="mileage" i]'),
            label(r"mileage|odometer"),
            css("#mileage"),
            scan("input", ("mileage", "odometer", "miles")),
        ),
        "zip": (
            placeholder(r"Enter\s+ZIP\s+Code", wait_ms=config.contact_wait_ms),
            css('input[name*="zip" i]'),
            css('input[name*="postal" i]'),
            css('input[placeholder*="zip" i]'),
        ),
        "email": (
            placeholder(r"Enter\s+Email\s+Address", wait_ms=config.contact_wait_ms),
            css('input[type="email"]'),
            css('input[name*="email" i]'),
            css('input[placeholder*="email" i]'),
        ),
    }


def dropdown_strategies(kind: str) -> tuple[Strategy, ...]:
    return (
        css(f'select[name*="{kind}" i]'),
        css(f"select#{kind}"),
        label(rf"\b{kind}\b"),
    )
