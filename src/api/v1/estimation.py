"""Material estimation endpoints.

A submission returns immediately with an id; the estimation text is then
read either as a Server-Sent Events stream or as a point-in-time snapshot.
`/generate` is the blocking variant that answers with the finished text.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, StreamingResponse

from core.exceptions import EstimationNotFoundError
from core.ratelimit import check_rate_limit
from dependencies.estimation import EstimationService
from schemas.api import ApiResponse
from schemas.estimation import (
    MAX_SSE_TEXT_CHARS,
    EstimationAccepted,
    EstimationFormErrors,
    EstimationSnapshot,
    EstimationSseEvent,
    EstimationText,
)
from services.ai.exceptions import AIGenerationError
from services.estimation.orchestrator import EstimationOrchestrator
from services.estimation.registry import EstimationRecord
from services.estimation.streamable import StreamableValue, StreamState
from services.estimation.validator import (
    ValidationFailure,
    validate_estimation_form,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/material-estimation", tags=["material-estimation"])


async def _read_form_data(request: Request) -> dict[str, Any]:
    """Raw submission as a mapping, from a JSON object or an HTML form body."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Request body is not valid JSON.",
            ) from exc
        return payload if isinstance(payload, dict) else {}

    form = await request.form()
    # File parts carry no meaning for an estimation
    return {key: value for key, value in form.items() if isinstance(value, str)}


def _form_errors_response(failure: ValidationFailure) -> JSONResponse:
    body = ApiResponse[EstimationFormErrors](
        success=False,
        data=EstimationFormErrors(fields=failure.fields, issues=failure.issues),
        message=failure.message,
    )
    return JSONResponse(status_code=422, content=body.model_dump(mode="json"))


def _split_for_sse(text: str) -> list[str]:
    """Cut a chunk into pieces that each fit one SSE event."""
    return [
        text[start : start + MAX_SSE_TEXT_CHARS]
        for start in range(0, len(text), MAX_SSE_TEXT_CHARS)
    ] or [text]


def _complete_event_data(text: str) -> dict[str, Any]:
    """Full text when it fits one event, otherwise a truncated preview.

    Readers already hold the whole text from the delta events.
    """
    if len(text) <= MAX_SSE_TEXT_CHARS:
        return {"estimation": text}
    return {
        "estimation": text[:MAX_SSE_TEXT_CHARS] + "... (truncated for display)",
        "truncated": True,
        "total_chars": len(text),
    }


def _get_record(
    service: EstimationOrchestrator, estimation_id: UUID
) -> EstimationRecord:
    record = service.get_estimation(estimation_id)
    if record is None:
        raise EstimationNotFoundError(f"Estimation {estimation_id} not found")
    return record


@router.post(
    "",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ApiResponse[EstimationAccepted],
    responses={422: {"model": ApiResponse[EstimationFormErrors]}},
    dependencies=[Depends(check_rate_limit)],
)
async def submit_estimation(
    request: Request, service: EstimationService
) -> ApiResponse[EstimationAccepted] | JSONResponse:
    """Validate the project form and start a streamed estimation."""
    form_data = await _read_form_data(request)
    state = await service.get_material_estimation(form_data)

    if state.estimation is None or state.estimation_id is None:
        return _form_errors_response(
            ValidationFailure(
                message=state.message,
                fields=state.fields or {},
                issues=state.issues or [],
            )
        )

    live = state.estimation.estimation
    stream_url = request.url_for(
        "stream_estimation", estimation_id=str(state.estimation_id)
    ).path
    return ApiResponse(
        success=True,
        data=EstimationAccepted(
            estimation_id=state.estimation_id,
            status=(
                live.state if isinstance(live, StreamableValue) else StreamState.DONE
            ),
            stream_url=stream_url,
        ),
        message=state.message,
    )


@router.post(
    "/generate",
    response_model=ApiResponse[EstimationText],
    responses={422: {"model": ApiResponse[EstimationFormErrors]}},
    dependencies=[Depends(check_rate_limit)],
)
async def generate_estimation(
    request: Request, service: EstimationService
) -> ApiResponse[EstimationText] | JSONResponse:
    """Generate the whole estimation in one call and return the text."""
    outcome = validate_estimation_form(await _read_form_data(request))
    if isinstance(outcome, ValidationFailure):
        return _form_errors_response(outcome)

    result = await service.estimate_materials(outcome)
    estimation = result.estimation
    text = estimation.value if isinstance(estimation, StreamableValue) else estimation
    return ApiResponse(
        success=True,
        data=EstimationText(estimation=text),
        message="Estimation successful.",
    )


@router.get("/{estimation_id}", response_model=ApiResponse[EstimationSnapshot])
async def get_estimation(
    estimation_id: UUID, service: EstimationService
) -> ApiResponse[EstimationSnapshot]:
    """Current state and accumulated text of an estimation."""
    value = _get_record(service, estimation_id).value
    return ApiResponse(
        success=True,
        data=EstimationSnapshot(
            estimation_id=estimation_id,
            status=value.state,
            estimation=value.value,
            error=value.error.message if value.error is not None else None,
        ),
        message="Estimation retrieved",
    )


@router.get(
    "/{estimation_id}/stream",
    name="stream_estimation",
    response_class=StreamingResponse,
)
async def stream_estimation(
    estimation_id: UUID, service: EstimationService
) -> StreamingResponse:
    """Replay an estimation from its first chunk and follow it to the end."""
    value = _get_record(service, estimation_id).value

    async def event_stream() -> AsyncGenerator[str, None]:
        yield EstimationSseEvent(
            event="status",
            estimation_id=estimation_id,
            data={"status": value.state.value},
        ).to_sse()
        try:
            async for delta in value.deltas():
                for piece in _split_for_sse(delta):
                    yield EstimationSseEvent(
                        event="estimation.delta",
                        estimation_id=estimation_id,
                        data={"delta": piece},
                    ).to_sse()
        except AIGenerationError as exc:
            logger.info("Estimation %s ended with %s", estimation_id, exc.error_code)
            yield EstimationSseEvent(
                event="error",
                estimation_id=estimation_id,
                data={"message": exc.message, "error_code": exc.error_code},
            ).to_sse()
        except Exception:
            logger.exception("Estimation %s stream aborted", estimation_id)
            yield EstimationSseEvent(
                event="error",
                estimation_id=estimation_id,
                data={
                    "message": "The estimation stream was interrupted.",
                    "error_code": "stream_failed",
                },
            ).to_sse()
        else:
            yield EstimationSseEvent(
                event="estimation.complete",
                estimation_id=estimation_id,
                data=_complete_event_data(value.value),
            ).to_sse()
        yield EstimationSseEvent(
            event="done", estimation_id=estimation_id, data={}
        ).to_sse()

    return StreamingResponse(event_stream(), media_type="text/event-stream")
