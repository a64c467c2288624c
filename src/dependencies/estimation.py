"""Estimation service dependency.

One orchestrator per process: the registry it owns is what lets the stream
and snapshot endpoints find an estimation started by an earlier request.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from core.config import get_settings
from services.ai.generation import PydanticAIGenerationClient
from services.estimation.orchestrator import EstimationOrchestrator


@lru_cache
def get_estimation_service() -> EstimationOrchestrator:
    settings = get_settings()
    return EstimationOrchestrator(
        client=PydanticAIGenerationClient(),
        max_concurrent=settings.ESTIMATION_MAX_CONCURRENT,
    )


EstimationService = Annotated[EstimationOrchestrator, Depends(get_estimation_service)]
