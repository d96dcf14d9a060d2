from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field

from autovalue.errors import AutomationError, ImageAnalysisError, InvalidRequest
from autovalue.navigation import NavigationDriver, ScreenshotCapture
from service.browser import BrowserSessionManager
from service.logging_config import configure_logging, correlation_id, new_correlation_id
from service.market import MarketValueClient
from service.metrics import Metrics
from service.orchestrator import ValuationService, summarize, summarize_failure
from service.settings import ServiceSettings
from service.vision import ImageClassifier

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Failed to fetch valuation"
SUMMARY_ROUTES = ("/api/gpt-value",)


# ── Request Models ──────────────────────────────────────────────────

class ValueRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    vin: str | None = None
    make: str | None = None
    model: str | None = None
    year: str | int | None = None
    mileage: str | int | float | None = None
    zip: str | int | None = None
    email: str | None = None


class AnalyzeImageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_data_url: str | None = Field(default=None, alias="imageDataUrl")


class HealthResponse(BaseModel):
    status: str


def describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "body"
    return f"Invalid request body: {field}: {first.get('msg', 'invalid value')}"


# ── App Factory ─────────────────────────────────────────────────────

def create_app(
    settings: ServiceSettings | None = None,
    valuation_service: ValuationService | None = None,
    image_classifier: ImageClassifier | None = None,
) -> FastAPI:
    settings = settings or ServiceSettings()
    configure_logging(level=settings.log_level, fmt=settings.log_format)

    public_dir = Path(settings.public_dir)
    shots_dir = settings.shots_path
    shots_dir.mkdir(parents=True, exist_ok=True)

    if valuation_service is None:
        valuation_service = ValuationService(
            defaults=settings.valuation_defaults(),
            sessions=BrowserSessionManager(headless=settings.headless),
            driver=NavigationDriver(settings.workflow_config(), capture=ScreenshotCapture(shots_dir)),
            market=MarketValueClient(settings.market_value_config()),
        )
    if image_classifier is None:
        image_classifier = ImageClassifier(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            model=settings.vision_model,
            timeout_seconds=settings.vision_timeout_seconds,
        )
    metrics = Metrics()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        logger.info(
            "Valuation service ready",
            extra={"extra_data": {"landing_url": settings.landing_url, "shots_dir": str(shots_dir)}},
        )
        yield
        logger.info("Valuation service stopped")

    app = FastAPI(title="Vehicle Valuation Automation API", version="1.0.0", lifespan=lifespan)
    app.state.metrics = metrics

    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next: Any) -> Response:
        cid = request.headers.get("X-Correlation-ID") or new_correlation_id()
        correlation_id.set(cid)
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = cid
        return response

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        metrics.incr("request_invalid")
        message = describe_validation_error(exc)
        if request.url.path in SUMMARY_ROUTES:
            return JSONResponse(status_code=400, content=summarize_failure(message))
        return JSONResponse(status_code=400, content={"error": message})

    # ── Valuation ───────────────────────────────────────────────────

    @app.post("/api/value")
    async def value(payload: ValueRequest | None = None) -> JSONResponse:
        t0 = time.monotonic()
        try:
            req = valuation_service.build_request((payload or ValueRequest()).model_dump())
        except InvalidRequest as exc:
            metrics.incr("valuation_invalid")
            return JSONResponse(status_code=400, content={"error": str(exc)})

        try:
            result = await valuation_service.value(req)
        except AutomationError as exc:
            metrics.incr("valuation_failure")
            logger.warning("Valuation failed: %s", exc.message)
            return JSONResponse(status_code=500, content=exc.to_dict())
        except Exception:
            metrics.incr("valuation_failure")
            logger.exception("Unexpected valuation failure")
            return JSONResponse(status_code=500, content={"error": GENERIC_FAILURE})

        metrics.observe("valuation", time.monotonic() - t0)
        metrics.incr("valuation_success")
        if req.vin:
            metrics.incr("market_value_hit" if result.market_value else "market_value_miss")
        return JSONResponse(content=result.to_dict())

    @app.post("/api/gpt-value")
    async def gpt_value(payload: ValueRequest | None = None) -> JSONResponse:
        try:
            req = valuation_service.build_request((payload or ValueRequest()).model_dump())
        except InvalidRequest as exc:
            metrics.incr("valuation_invalid")
            return JSONResponse(status_code=400, content=summarize_failure(str(exc)))

        try:
            result = await valuation_service.value(req)
        except AutomationError as exc:
            metrics.incr("valuation_failure")
            logger.warning("Valuation failed: %s", exc.message)
            return JSONResponse(status_code=500, content=summarize_failure(exc.message, req))
        except Exception:
            metrics.incr("valuation_failure")
            logger.exception("Unexpected valuation failure")
            return JSONResponse(status_code=500, content=summarize_failure(GENERIC_FAILURE, req))

        metrics.incr("valuation_success")
        return JSONResponse(content=summarize(req, result))

    # ── Image Analysis ──────────────────────────────────────────────

    @app.post("/api/analyze-image")
    async def analyze_image(payload: AnalyzeImageRequest | None = None) -> JSONResponse:
        if payload is None or not payload.image_data_url:
            return JSONResponse(status_code=400, content={"error": "imageDataUrl is required"})
        try:
            identifiers = await image_classifier.analyze(payload.image_data_url)
        except ImageAnalysisError as exc:
            metrics.incr("image_analysis_failure")
            return JSONResponse(status_code=500, content={"error": str(exc)})
        metrics.incr("image_analysis_success")
        return JSONResponse(content=identifiers)

    # ── Defaults / Health / Metrics ─────────────────────────────────

    @app.get("/api/defaults")
    async def defaults() -> dict[str, str]:
        return {"zip": valuation_service.defaults.zip, "email": valuation_service.defaults.email}

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/metrics")
    async def get_metrics() -> dict[str, Any]:
        return metrics.snapshot()

    @app.get("/metrics/prometheus")
    async def get_prometheus_metrics() -> Response:
        return Response(content=metrics.prometheus(), media_type="text/plain; charset=utf-8")

    # ── Static Client ───────────────────────────────────────────────

    @app.get("/", include_in_schema=False)
    async def index() -> FileResponse:
        return FileResponse(public_dir / "index.html")

    app.mount("/shots", StaticFiles(directory=shots_dir), name="shots")
    app.mount("/", StaticFiles(directory=public_dir, check_dir=False), name="public")

    return app


def main() -> None:
    settings = ServiceSettings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


app = create_app()
