from __future__ import annotations

import json
import logging
import re
from typing import Any

import httpx

from autovalue.errors import ImageParseError, UpstreamError

logger = logging.getLogger(__name__)

IDENTIFIER_FIELDS = ("vin", "year", "make", "model", "mileage")

EXTRACTION_PROMPT = (
    "Look at this vehicle photo (it may show a dashboard, door jamb sticker, registration "
    "or the car itself) and extract the VIN, year, make, model and odometer mileage. "
    "Reply with a single JSON object using exactly the keys vin, year, make, model, mileage. "
    "Use null for anything you cannot read. Do not add any other text."
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def strip_code_fence(text: str) -> str:
    return _FENCE_RE.sub("", text.strip()).strip()


def parse_identifiers(text: str) -> dict[str, Any]:
    cleaned = strip_code_fence(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ImageParseError(f"Image analysis returned invalid JSON: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise ImageParseError("Image analysis did not return a JSON object")
    return {k: data[k] for k in IDENTIFIER_FIELDS if data.get(k) not in (None, "")}


class ImageClassifier:
    """Ask an OpenAI-compatible vision model for vehicle identifiers in a photo."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def analyze(self, image_data_url: str) -> dict[str, Any]:
        if not self.api_key:
            raise UpstreamError("Image analysis is not configured")

        payload = {
            "model": self.model,
            "max_tokens": 300,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": EXTRACTION_PROMPT},
                        {"type": "image_url", "image_url": {"url": image_data_url}},
                    ],
                }
            ],
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                resp = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                resp.raise_for_status()
            content = resp.json()["choices"][0]["message"]["content"]
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            logger.warning("Image analysis request failed: %s", exc)
            raise UpstreamError(f"Image analysis request failed: {exc}") from exc

        if content is not None and not isinstance(content, str):
            raise ImageParseError("Image analysis returned non-text content")
        return parse_identifiers(content or "")
