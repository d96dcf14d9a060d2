from __future__ import annotations

from typing import Any


class InvalidRequest(ValueError):
    """Raised when a valuation request carries neither input shape or no mileage."""


class AutomationError(Exception):
    """Known workflow failure carrying the diagnostics collected so far."""

    def __init__(
        self,
        message: str,
        steps: list[str] | None = None,
        screenshots: dict[str, str | None] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.steps = list(steps or [])
        self.screenshots = dict(screenshots or {})

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "steps": self.steps, "screenshots": self.screenshots}


class BrowserUnavailable(RuntimeError):
    """The browser engine could not be started, even after installing it."""


class ImageAnalysisError(Exception):
    pass


class UpstreamError(ImageAnalysisError):
    pass


class ImageParseError(ImageAnalysisError):
    pass
