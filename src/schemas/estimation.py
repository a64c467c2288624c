"""Schemas for AI-assisted material estimation."""

from __future__ import annotations

from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from services.estimation.streamable import StreamableValue, StreamState


MAX_SSE_EVENT_BYTES: int = 262_144
# Text carried by one SSE event; fits MAX_SSE_EVENT_BYTES even when escaped
MAX_SSE_TEXT_CHARS: int = 16_384

# Wire names of the estimation form, in display order
FORM_FIELDS: tuple[str, ...] = (
    "projectType",
    "projectSize",
    "projectLocation",
    "specificRequirements",
)


class EstimationRequest(BaseModel):
    """Validated project specifications; immutable once built."""

    project_type: str = Field(
        ...,
        alias="projectType",
        min_length=1,
        description="The type of the project (e.g., residential, commercial).",
    )
    project_size: str = Field(
        ...,
        alias="projectSize",
        min_length=1,
        description="The size of the project in square feet.",
    )
    project_location: str = Field(
        ...,
        alias="projectLocation",
        min_length=1,
        description="The location of the project.",
    )
    specific_requirements: str = Field(
        ...,
        alias="specificRequirements",
        min_length=1,
        description="Any specific requirements for the project.",
    )

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class EstimationResult(BaseModel):
    """Estimation text: finished `str` (one-shot) or a live handle (streaming)."""

    estimation: str | StreamableValue

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class FormState(BaseModel):
    """Outcome of one estimation form submission."""

    message: str
    estimation: EstimationResult | None = None
    estimation_id: UUID | None = None
    fields: dict[str, str] | None = None
    issues: list[str] | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def accepted(self) -> bool:
        return self.estimation is not None


# --- HTTP payloads ----------------------------------------------------------


class EstimationAccepted(BaseModel):
    estimation_id: UUID
    status: StreamState
    stream_url: str


class EstimationFormErrors(BaseModel):
    """Echoed input and per-field issues for re-rendering the form."""

    fields: dict[str, str]
    issues: list[str]


class EstimationSnapshot(BaseModel):
    estimation_id: UUID
    status: StreamState
    estimation: str
    error: str | None = None


class EstimationText(BaseModel):
    estimation: str


class EstimationSseEvent(BaseModel):
    """SSE envelope for streamed estimations.

    Order on the wire: one `status`, any number of `estimation.delta`, then
    `estimation.complete` or `error`, and always a final `done`.
    """

    event: Literal[
        "status",
        "estimation.delta",
        "estimation.complete",
        "error",
        "done",
    ]
    estimation_id: UUID
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    def to_sse(self) -> str:
        """Serialize event to SSE format with size validation."""
        payload = self.model_dump_json()
        if len(payload.encode("utf-8")) > MAX_SSE_EVENT_BYTES:
            raise ValueError("SSE payload exceeded MAX_SSE_EVENT_BYTES")
        return f"data: {payload}\n\n"
