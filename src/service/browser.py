from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable

from playwright.async_api import Browser, BrowserType, Page, async_playwright
from playwright.async_api import Error as PlaywrightError

from autovalue.errors import BrowserUnavailable

logger = logging.getLogger(__name__)

# Flags for running Chromium inside small containers.
LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-zygote",
    "--single-process",
]


async def install_chromium() -> bool:
    logger.info("Installing Chromium for Playwright")
    proc = await asyncio.create_subprocess_exec(
        sys.executable, "-m", "playwright", "install", "chromium",
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    output, _ = await proc.communicate()
    if proc.returncode != 0:
        logger.error("Chromium install exited with %s: %s", proc.returncode, output.decode(errors="replace")[-500:])
        return False
    return True


class BrowserSessionManager:
    """Hand out one isolated browser context per request.

    A failed launch triggers a single ``playwright install chromium`` followed by
    one more launch attempt; if that also fails the error is fatal.
    """

    def __init__(
        self,
        headless: bool = True,
        installer: Callable[[], Awaitable[bool]] = install_chromium,
        playwright_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        self.headless = headless
        self._installer = installer
        self._playwright_factory = playwright_factory

    async def launch(self, chromium: BrowserType) -> Browser:
        try:
            return await chromium.launch(headless=self.headless, args=LAUNCH_ARGS)
        except PlaywrightError as exc:
            logger.warning("Chromium launch failed, installing and retrying once: %s", exc)

        installed = await self._installer()
        try:
            return await chromium.launch(headless=self.headless, args=LAUNCH_ARGS)
        except PlaywrightError as exc:
            raise BrowserUnavailable(f"Chromium could not be launched (installed={installed}): {exc}") from exc

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Page]:
        async with self._playwright_factory() as playwright:
            browser = await self.launch(playwright.chromium)
            try:
                context = await browser.new_context()
                try:
                    yield await context.new_page()
                finally:
                    await context.close()
            finally:
                await browser.close()
