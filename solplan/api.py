"""FastAPI surface for the natural-language plan endpoint."""

from __future__ import annotations

import json
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from solplan.cache import ResponseCache
from solplan.config import Settings, load_settings
from solplan.errors import InvalidRequestError, PlanError
from solplan.extractor import GeminiExtractor
from solplan.jobs.registry_refresh import RegistryRefreshService
from solplan.pipeline import PlanPipeline
from solplan.plan_types import ActionType, Mode, NLPlanRequest
from solplan.pro_enricher import ProEnricher
from solplan.token_registry import TokenRegistry
from solplan.utils.logging import bind_context, clear_context, get_logger
from solplan.utils.prompts import load_prompt_template
from solplan.utils.protocols import SUPPORTED_PROTOCOLS
from solplan.utils.rate_limit import RateLimiter

logger = get_logger(__name__)

PLAN_ENDPOINT = "/api/v1/solana/nl-plan"
NO_CACHE_HEADER = "x-no-cache"

ENDPOINT_METADATA: Dict[str, Any] = {
    "name": "Solana NL Action Plan Translator",
    "version": "1.0.0",
    "description": (
        "Translates natural language prompts into structured, safe Solana action "
        "plans. Planner-only: no ready-to-sign transactions."
    ),
    "endpoint": PLAN_ENDPOINT,
    "method": "POST",
    "pricing": {"amount": "$0.02", "unit": "per call"},
    "modes": [mode.value for mode in Mode],
    "supported_actions": [
        action.value for action in ActionType if action is not ActionType.UNKNOWN
    ],
    "supported_protocols": SUPPORTED_PROTOCOLS,
    "input_schema": {"$ref": "#/definitions/NLPlanRequest"},
    "output_schema": {"$ref": "#/definitions/NLPlanResponse"},
}


def build_pipeline(settings: Settings) -> PlanPipeline:
    """Wire the shared registry, cache, extractor and enricher from settings."""
    registry = TokenRegistry(
        token_list_url=str(settings.token_list_url),
        refresh_interval_seconds=settings.registry_refresh_minutes * 60,
        timeout=settings.http_timeout_seconds,
    )

    extractor = None
    if settings.gemini_api_key:
        extractor = GeminiExtractor(
            api_key=settings.gemini_api_key,
            model_name=settings.gemini_model,
            system_prompt=load_prompt_template(settings.extractor_prompt_file),
        )
    else:
        logger.warning("extractor_not_configured")

    return PlanPipeline(
        registry=registry,
        extractor=extractor,
        enricher=ProEnricher(
            quote_url=str(settings.quote_api_url),
            timeout=settings.http_timeout_seconds,
        ),
        cache=ResponseCache(settings.cache_max_entries),
        lite_ttl_seconds=settings.lite_cache_ttl_seconds,
        pro_ttl_seconds=settings.pro_cache_ttl_seconds,
    )


def unwrap_body(payload: Any) -> Any:
    """Accept bodies nested under a ``body`` key by payment gateways."""
    if not isinstance(payload, dict):
        return payload
    inner = payload.get("body")
    if isinstance(inner, dict):
        return inner
    if isinstance(inner, str):
        try:
            decoded = json.loads(inner)
        except json.JSONDecodeError:
            return payload
        if isinstance(decoded, dict):
            return decoded
    return payload


def _error(status_code: int, error: str, error_code: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "error_code": error_code, **extra},
    )


def _client_id(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def create_app(
    settings: Optional[Settings] = None,
    pipeline: Optional[PlanPipeline] = None,
    start_background_jobs: bool = True,
) -> FastAPI:
    """Build the application around a single, process-lifetime pipeline."""
    settings = settings or load_settings()
    pipeline = pipeline or build_pipeline(settings)
    rate_limiter = (
        RateLimiter(settings.rate_limit_per_ip_per_min)
        if settings.rate_limit_per_ip_per_min > 0
        else None
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        scheduler: Optional[AsyncIOScheduler] = None
        if start_background_jobs:
            pipeline.schedule_registry_refresh()
            scheduler = AsyncIOScheduler()
            RegistryRefreshService(
                registry=pipeline.registry,
                scheduler=scheduler,
                interval_minutes=settings.registry_refresh_minutes,
                rate_limiter=rate_limiter,
            ).start()
            scheduler.start()
        logger.info("server_started", port=settings.port)
        try:
            yield
        finally:
            logger.info("server_stopping")
            if scheduler is not None:
                scheduler.shutdown(wait=False)
            await pipeline.aclose()

    app = FastAPI(title=ENDPOINT_METADATA["name"], lifespan=lifespan)
    app.state.pipeline = pipeline
    app.state.settings = settings
    app.state.rate_limiter = rate_limiter

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        clear_context()
        bind_context(request_id=uuid.uuid4().hex[:12], path=request.url.path)
        try:
            if rate_limiter is not None and request.url.path.startswith("/api"):
                client_id = _client_id(request)
                if not rate_limiter.allow(client_id):
                    logger.warning("rate_limited", client=client_id)
                    return _error(
                        429,
                        "Rate limit exceeded",
                        "RATE_LIMITED",
                        retry_after_seconds=rate_limiter.retry_after(client_id),
                    )
            return await call_next(request)
        finally:
            clear_context()

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get(PLAN_ENDPOINT)
    async def plan_metadata() -> Dict[str, Any]:
        return ENDPOINT_METADATA

    @app.post(PLAN_ENDPOINT)
    async def create_plan(request: Request) -> JSONResponse:
        raw = await request.body()
        if len(raw) > settings.max_body_bytes:
            return _error(413, "Request body too large", "BODY_TOO_LARGE")

        try:
            try:
                payload = json.loads(raw or b"null")
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise InvalidRequestError("Request body must be valid JSON") from exc

            plan_request = NLPlanRequest.from_payload(unwrap_body(payload))
            no_cache = request.headers.get(NO_CACHE_HEADER, "").lower() == "true"
            response = await pipeline.process_plan(plan_request, no_cache=no_cache)
            return JSONResponse(content=response)
        except PlanError as exc:
            return JSONResponse(status_code=exc.status_code, content=exc.to_payload())
        except Exception as exc:
            logger.exception("internal_error", error=str(exc))
            return _error(500, "Internal server error", "INTERNAL_ERROR")

    return app


__all__ = ["ENDPOINT_METADATA", "PLAN_ENDPOINT", "build_pipeline", "create_app", "unwrap_body"]
