"""Material estimation orchestrator.

Drives one submission through validation, prompt building and generation.
The streaming path returns as soon as the relay task has been scheduled:
the caller gets a live `StreamableValue` and reads it while the model is
still writing. Nothing awaits the relay; the registry keeps it alive.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from datetime import timedelta
from typing import Any
from uuid import UUID

from core.error_handler import StructuredLogger
from schemas.estimation import EstimationRequest, EstimationResult, FormState
from services.ai.exceptions import StreamFailure
from services.ai.generation import GenerationClient
from services.estimation.prompts import build_estimation_prompt
from services.estimation.registry import EstimationRecord, EstimationRegistry
from services.estimation.relay import relay_stream
from services.estimation.streamable import create_streamable_value
from services.estimation.validator import (
    ValidationFailure,
    validate_estimation_form,
)


ESTIMATION_ACCEPTED_MESSAGE = "Estimation successful."

logger = StructuredLogger(__name__)


class EstimationOrchestrator:
    """Entry point for material estimations.

    Args:
        client: Text generation capability (both modes).
        registry: Where running and finished estimations are kept.
        max_concurrent: Upper bound on simultaneously open upstream streams.
            Requests over the bound queue inside their own task, so
            `get_material_estimation` never blocks on it.
    """

    def __init__(
        self,
        client: GenerationClient,
        registry: EstimationRegistry | None = None,
        max_concurrent: int = 8,
    ) -> None:
        self._client = client
        self._registry = registry or EstimationRegistry()
        self._slots = asyncio.Semaphore(max_concurrent)

    @property
    def registry(self) -> EstimationRegistry:
        return self._registry

    async def get_material_estimation(self, form_data: Mapping[str, Any]) -> FormState:
        """Validate a raw submission and start streaming its estimation."""
        outcome = validate_estimation_form(form_data)
        if isinstance(outcome, ValidationFailure):
            logger.info("Estimation form rejected", issue_count=len(outcome.issues))
            return FormState(
                message=outcome.message,
                fields=outcome.fields,
                issues=outcome.issues,
            )

        record = self.start_estimation(outcome)
        return FormState(
            message=ESTIMATION_ACCEPTED_MESSAGE,
            estimation=EstimationResult(estimation=record.value),
            estimation_id=record.estimation_id,
        )

    def start_estimation(self, request: EstimationRequest) -> EstimationRecord:
        """Schedule the relay for `request` without waiting for it."""
        prompt = build_estimation_prompt(request)
        value, writer = create_streamable_value()
        record = EstimationRecord(request=request, value=value, writer=writer)
        self._registry.add(record)

        record.task = asyncio.create_task(
            self._run_relay(record, prompt),
            name=f"estimation-{record.estimation_id}",
        )
        logger.info(
            "Estimation started",
            estimation_id=str(record.estimation_id),
            project_type=request.project_type,
        )
        return record

    async def _run_relay(self, record: EstimationRecord, prompt: str) -> None:
        async with self._slots:
            await relay_stream(
                lambda: self._client.generate_stream(prompt), record.writer
            )
        logger.info(
            "Estimation finished",
            estimation_id=str(record.estimation_id),
            status=record.value.state.value,
            output_chars=len(record.value.value),
        )

    async def estimate_materials(self, request: EstimationRequest) -> EstimationResult:
        """One-shot estimation; `GenerationError` propagates to the caller."""
        text = await self._client.generate(build_estimation_prompt(request))
        return EstimationResult(estimation=text)

    def get_estimation(self, estimation_id: UUID) -> EstimationRecord | None:
        return self._registry.get(estimation_id)

    def purge_expired(self, retention_seconds: int) -> int:
        purged = self._registry.purge_expired(timedelta(seconds=retention_seconds))
        if purged:
            logger.info("Purged expired estimations", purged=purged)
        return purged

    async def aclose(self) -> None:
        """Cancel in-flight relays; every affected value ends as failed."""
        pending = [
            record
            for record in self._registry.records()
            if record.task is not None and not record.task.done()
        ]
        tasks = [record.task for record in pending if record.task is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        # A task cancelled before its first step never reaches the relay
        for record in pending:
            if not record.value.is_terminal:
                record.writer.fail(
                    StreamFailure("The estimation was cancelled before it finished.")
                )
        if pending:
            logger.warning("Cancelled in-flight estimations", cancelled=len(pending))
