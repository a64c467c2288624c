"""In-memory registry of running and recently finished estimations.

Holding the record keeps the detached relay task referenced (asyncio only
keeps weak references to tasks) and lets later HTTP requests find the live
value by id. Terminal records are purged after the retention window.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

from schemas.estimation import EstimationRequest
from services.estimation.streamable import StreamableValue, StreamableWriter


@dataclass(slots=True)
class EstimationRecord:
    request: EstimationRequest
    value: StreamableValue
    writer: StreamableWriter = field(repr=False)
    estimation_id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    task: asyncio.Task[None] | None = field(default=None, repr=False)

    def is_expired(self, now: datetime, retention: timedelta) -> bool:
        completed_at = self.value.completed_at
        return completed_at is not None and now - completed_at >= retention


class EstimationRegistry:
    def __init__(self) -> None:
        self._records: dict[UUID, EstimationRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: EstimationRecord) -> None:
        self._records[record.estimation_id] = record

    def get(self, estimation_id: UUID) -> EstimationRecord | None:
        return self._records.get(estimation_id)

    def records(self) -> list[EstimationRecord]:
        return list(self._records.values())

    def purge_expired(self, retention: timedelta, now: datetime | None = None) -> int:
        """Drop terminal records older than `retention`; in-flight ones stay."""
        now = now or datetime.now(UTC)
        expired = [
            estimation_id
            for estimation_id, record in self._records.items()
            if record.is_expired(now, retention)
        ]
        for estimation_id in expired:
            del self._records[estimation_id]
        return len(expired)
