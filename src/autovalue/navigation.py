from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from autovalue.config import WorkflowConfig
from autovalue.data_models import RunTrace, ValuationRequest, ValuationResult
from autovalue.errors import AutomationError
from autovalue.extraction import extract_valuation
from autovalue.strategies import (
    DETAILS_CONTINUE,
    PRIMARY_CTA,
    SEE_VALUATION,
    VIN_LINK,
    build_field_strategies,
    click,
    dropdown_strategies,
    fill,
    present,
    require,
    resolve,
)

logger = logging.getLogger(__name__)

Capture = Callable[[Page, str], Awaitable["str | None"]]


class WorkflowState(str, Enum):
    START = "start"
    VIN_ENTRY = "vin_entry"
    MAKE_MODEL_ENTRY = "make_model_entry"
    DETAILS = "details"
    CONDITION = "condition"
    RESULT = "result"
    DONE = "done"
    ERROR = "error"


class ScreenshotCapture:
    """Write full-page screenshots under ``shots_dir`` and return their public URL."""

    def __init__(self, shots_dir: str | Path, url_prefix: str = "/shots") -> None:
        self.shots_dir = Path(shots_dir)
        self.url_prefix = url_prefix.rstrip("/")

    async def __call__(self, page: Page, kind: str) -> str | None:
        name = f"{kind}-{int(time.time() * 1000)}.png"
        try:
            self.shots_dir.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=str(self.shots_dir / name), full_page=True)
        except (PlaywrightError, OSError) as exc:
            logger.warning("Could not capture %s screenshot: %s", kind, exc)
            return None
        return f"{self.url_prefix}/{name}"


async def no_capture(page: Page, kind: str) -> str | None:
    return None


@dataclass
class WorkflowRun:
    request: ValuationRequest
    trace: RunTrace = field(default_factory=RunTrace)
    selections: list[str] = field(default_factory=list)
    screenshots: dict[str, str | None] = field(default_factory=dict)
    state: WorkflowState = WorkflowState.START

    def advance(self, state: WorkflowState) -> None:
        logger.debug("Workflow %s -> %s", self.state.value, state.value)
        self.state = state


def is_placeholder_label(label: str, words: Sequence[str]) -> bool:
    lowered = label.lower()
    return any(word in lowered for word in words)


async def read_options(select: Locator) -> list[tuple[str, str]]:
    options = []
    for option in await select.locator("option").all():
        value = (await option.get_attribute("value")) or ""
        text = ((await option.text_content()) or "").strip()
        options.append((value, text))
    return options


def pick_autofill_option(options: Sequence[tuple[str, str]], placeholder_words: Sequence[str]) -> tuple[str, str] | None:
    """First option after the site's default whose value and label are real."""
    for value, text in options[1:]:
        if value.strip() and text and not is_placeholder_label(text, placeholder_words):
            return value, text
    return None


def match_option(options: Sequence[tuple[str, str]], wanted: str) -> tuple[str, str] | None:
    target = wanted.strip().lower()
    if not target:
        return None
    for value, text in options:
        if text.lower() == target or value.strip().lower() == target:
            return value, text
    for value, text in options:
        if text.lower().startswith(target):
            return value, text
    for value, text in options:
        if target in text.lower():
            return value, text
    return None


class NavigationDriver:
    """Drive the landing → details → condition → result workflow on one page."""

    def __init__(self, config: WorkflowConfig | None = None, capture: Capture | None = None) -> None:
        self.config = config or WorkflowConfig()
        self.capture = capture or no_capture
        self.fields = build_field_strategies(self.config)

    async def run(self, page: Page, request: ValuationRequest) -> ValuationResult:
        run = WorkflowRun(request=request)
        try:
            if not request.has_vehicle:
                raise AutomationError("Either vin, or make, model and year are required")
            await self._open_landing(page, run)
            if request.vin:
                run.advance(WorkflowState.VIN_ENTRY)
                await self._enter_vin(page, run)
            else:
                run.advance(WorkflowState.MAKE_MODEL_ENTRY)
                await self._enter_make_model(page, run)
            await self._submit_vehicle(page, run)

            run.advance(WorkflowState.DETAILS)
            await self._fill_details_if_present(page, run)

            run.advance(WorkflowState.CONDITION)
            await self._fill_condition(page, run)

            run.advance(WorkflowState.RESULT)
            await page.wait_for_load_state("networkidle", timeout=self.config.navigation_timeout_ms)
            await self._shot(page, run, "result", "Captured valuation screenshot")
            valuation = await extract_valuation(page)
        except Exception as exc:
            failed_in = run.state
            run.advance(WorkflowState.ERROR)
            message = exc.message if isinstance(exc, AutomationError) else (str(exc) or "Automation failed")
            logger.warning("Valuation workflow failed during %s: %s", failed_in.value, message)
            await self._shot(page, run, "error", "Captured error screenshot")
            raise AutomationError(message, steps=run.trace.snapshot(), screenshots=run.screenshots) from exc

        run.advance(WorkflowState.DONE)
        run.trace.add(f"Valuation found: {valuation}")
        return ValuationResult(
            valuation_text=valuation,
            method=request.method,
            selections=run.selections,
            screenshots=run.screenshots,
            trace=run.trace.snapshot(),
        )

    async def _shot(self, page: Page, run: WorkflowRun, kind: str, note: str) -> None:
        path = await self.capture(page, kind)
        run.screenshots[kind] = path
        if path:
            run.trace.add(f"{note}: {path}")

    async def _open_landing(self, page: Page, run: WorkflowRun) -> None:
        run.trace.add("Navigating to site")
        await page.goto(
            self.config.landing_url,
            wait_until="domcontentloaded",
            timeout=self.config.navigation_timeout_ms,
        )

    async def _enter_vin(self, page: Page, run: WorkflowRun) -> None:
        req = run.request
        await require(page, "vin-link", VIN_LINK, click, "Could not find VIN link")
        run.trace.add(
            f"Sending info to web: VIN={req.vin}, Mileage={req.mileage}, Zip={req.zip}, Email={req.email}"
        )
        await require(page, "vin", self.fields["vin"], fill(req.vin), "Could not find VIN input")

    async def _enter_make_model(self, page: Page, run: WorkflowRun) -> None:
        req = run.request
        run.trace.add(
            f"Sending info to web: {req.year} {req.make} {req.model}, Mileage={req.mileage}, "
            f"Zip={req.zip}, Email={req.email}"
        )
        year = await self._dropdown(page, "year")
        await self._choose(year, req.year, "year", run)

        make = await self._dropdown(page, "make")
        await self._wait_until_ready(make, "make")
        await self._choose(make, req.make, "make", run)

        model = await self._dropdown(page, "model")
        await self._wait_until_ready(model, "model")
        await page.wait_for_timeout(self.config.options_settle_ms)
        await self._choose(model, req.model, "model", run)

    async def _dropdown(self, page: Page, kind: str) -> Locator:
        found = await require(page, kind, dropdown_strategies(kind), present, f"Could not find {kind} dropdown")
        return found.locator

    async def _wait_until_ready(self, select: Locator, kind: str) -> None:
        # The list stays disabled (or holds only its placeholder) until the previous choice loads it.
        deadline = time.monotonic() + self.config.dropdown_enable_timeout_s
        while True:
            if await select.is_enabled() and await select.locator("option").count() > 1:
                return
            if time.monotonic() >= deadline:
                raise AutomationError(f"The {kind} dropdown never became available")
            await asyncio.sleep(self.config.dropdown_poll_interval_s)

    async def _choose(self, select: Locator, wanted: str, kind: str, run: WorkflowRun) -> None:
        choice = match_option(await read_options(select), wanted)
        if choice is None:
            raise AutomationError(f"No {kind} option matching '{wanted}'")
        value, text = choice
        if value.strip():
            await select.select_option(value=value)
        else:
            await select.select_option(label=text)
        run.selections.append(text)
        run.trace.add(f"Selected {kind}: {text}")

    async def _submit_vehicle(self, page: Page, run: WorkflowRun) -> None:
        run.trace.add("Clicking Value My Car")
        await require(page, "primary-cta", PRIMARY_CTA, click, "Could not find Value My Car button")
        await page.wait_for_load_state("domcontentloaded", timeout=self.config.navigation_timeout_ms)

    async def _fill_details_if_present(self, page: Page, run: WorkflowRun) -> None:
        if not any(marker in page.url for marker in self.config.details_url_markers):
            return
        run.trace.add("On Vehicle Details page - filling all dropdowns")

        filled = 0
        for select in await page.locator("select").all():
            choice = pick_autofill_option(await read_options(select), self.config.placeholder_words)
            if choice is None:
                continue
            value, text = choice
            await select.select_option(value=value)
            filled += 1
            run.trace.add(f"Selected dropdown option: {text}")
            run.selections.append(text)
        if not filled:
            run.trace.add("No dropdowns found to fill")

        if await resolve(page, "details-continue", DETAILS_CONTINUE, click) is None:
            run.trace.add("No Continue control found on Vehicle Details page")
            return
        run.trace.add("Clicked Continue to proceed to Vehicle Condition")
        await page.wait_for_load_state("domcontentloaded", timeout=self.config.navigation_timeout_ms)
        await page.wait_for_timeout(self.config.condition_settle_ms)

    async def _fill_condition(self, page: Page, run: WorkflowRun) -> None:
        req = run.request
        run.trace.add("Filling Vehicle Condition: mileage")
        await require(
            page, "mileage", self.fields["mileage"], fill(str(req.mileage)),
            "Could not find mileage/odometer input",
        )

        # ZIP and email are best-effort: a miss is noted, never fatal.
        run.trace.add("Filling Vehicle Condition: ZIP code")
        if await resolve(page, "zip", self.fields["zip"], fill(req.zip)) is None:
            run.trace.add("ZIP code field not found; continuing")
        run.trace.add("Filling Vehicle Condition: email")
        if await resolve(page, "email", self.fields["email"], fill(req.email)) is None:
            run.trace.add("Email field not found; continuing")

        await self._shot(page, run, "filled", "Captured screenshot before submit")
        run.trace.add("Clicking See Your Valuation")
        if await resolve(page, "see-valuation", SEE_VALUATION, click) is None:
            run.trace.add("See Your Valuation control not found")
