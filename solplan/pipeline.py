"""Request pipeline: cache, safety gate, extraction, validation, assembly."""

from __future__ import annotations

import asyncio
import copy
import time
from typing import Optional, Set

from solplan.cache import LITE_TTL_SECONDS, PRO_TTL_SECONDS, ResponseCache
from solplan.danger_gate import detect_danger
from solplan.errors import (
    ExtractionError,
    ExtractionFailedError,
    ServiceUnavailableError,
)
from solplan.extractor import EntityExtractor
from solplan.plan_assembler import assemble_plan
from solplan.plan_types import ActionPlan, Mode, NLPlanRequest, NLPlanResponse
from solplan.pro_enricher import ProEnricher
from solplan.token_registry import TokenRegistry
from solplan.utils.logging import get_logger
from solplan.utils.normalizer import cache_key
from solplan.validator import validate_entities

logger = get_logger(__name__)


class PlanPipeline:
    """Sequence the planning stages for one request at a time.

    The registry and cache are shared across every request the pipeline
    serves. Extraction and pro enrichment are the only awaited stages.
    """

    def __init__(
        self,
        registry: TokenRegistry,
        extractor: Optional[EntityExtractor],
        enricher: Optional[ProEnricher] = None,
        cache: Optional[ResponseCache[NLPlanResponse]] = None,
        lite_ttl_seconds: float = LITE_TTL_SECONDS,
        pro_ttl_seconds: float = PRO_TTL_SECONDS,
    ) -> None:
        self.registry = registry
        self.extractor = extractor
        self.enricher = enricher or ProEnricher()
        self.cache: ResponseCache[NLPlanResponse] = (
            cache if cache is not None else ResponseCache()
        )
        self.ttl_seconds = {Mode.LITE: lite_ttl_seconds, Mode.PRO: pro_ttl_seconds}
        self._background: Set["asyncio.Task[None]"] = set()

    async def process_plan(
        self, request: NLPlanRequest, no_cache: bool = False
    ) -> NLPlanResponse:
        """Return the plan response for ``request``.

        Raises:
            ServiceUnavailableError: No extractor is configured.
            ExtractionFailedError: The extractor could not produce entities.
        """
        started = time.monotonic()
        mode = request.mode
        logger.info(
            "nl_plan_request",
            mode=mode.value,
            has_wallet=bool(request.wallet),
            prompt_length=len(request.prompt),
        )

        # Wallet-specific responses are never cached
        key: Optional[str] = None
        if not request.wallet and not no_cache:
            key = cache_key(request.prompt, mode, request.constraints)
            cached = self.cache.get(key)
            if cached is not None:
                logger.info("cache_hit", cache_key=key)
                return copy.deepcopy(cached)

        verdict = detect_danger(request.prompt)
        if verdict.is_dangerous:
            logger.warning(
                "danger_detected",
                family=verdict.family,
                pattern=verdict.pattern,
                reason=verdict.reason,
            )
            return ActionPlan.blocked(verdict.reason).to_dict()

        if self.extractor is None:
            raise ServiceUnavailableError(
                "Entity extraction service unavailable (no API key configured)"
            )

        try:
            entities = await self.extractor.extract(request.prompt, request.constraints)
        except ExtractionError as exc:
            logger.error("extraction_failed", error=str(exc))
            raise ExtractionFailedError(
                "Failed to extract intent from prompt", detail=str(exc)
            ) from exc

        logger.info(
            "extraction_complete",
            action_type=entities.action_type.value,
            confidence=entities.raw_confidence,
        )

        self.schedule_registry_refresh()

        validation = validate_entities(entities, request.constraints, self.registry)
        plan = assemble_plan(validation)
        response = plan.to_dict()

        if mode is Mode.PRO:
            decimals = {
                entry.mint: entry.decimals
                for entry in validation.resolved_tokens.values()
            }
            enrichment = await self.enricher.enrich(plan, request.wallet, decimals)
            response["quote_summary"] = (
                enrichment.quote_summary.to_dict() if enrichment.quote_summary else None
            )
            response["simulation_summary"] = (
                enrichment.simulation_summary.to_dict()
                if enrichment.simulation_summary
                else None
            )
            if enrichment.error:
                logger.warning("pro_enrichment_degraded", error=enrichment.error)

        if key is not None:
            self.cache.set(key, copy.deepcopy(response), self.ttl_seconds[mode])

        logger.info(
            "nl_plan_response",
            mode=mode.value,
            feasibility=response["feasibility"],
            risk_level=response["risk_level"],
            duration_ms=round((time.monotonic() - started) * 1000),
        )
        return response

    def schedule_registry_refresh(self) -> Optional["asyncio.Task[None]"]:
        """Start a background refresh when the registry is stale."""
        if not self.registry.needs_refresh() or self.registry.refresh_in_progress:
            return None
        task = asyncio.ensure_future(self._refresh_registry())
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _refresh_registry(self) -> None:
        try:
            await self.registry.refresh()
        except Exception as exc:
            logger.warning("token_registry_refresh_failed", error=str(exc))

    async def aclose(self) -> None:
        """Cancel background work and release HTTP clients."""
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        await self.registry.aclose()
        await self.enricher.aclose()


__all__ = ["PlanPipeline"]
