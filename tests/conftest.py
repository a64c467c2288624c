"""Shared test fixtures for pytest.

Settings are pinned to the `test` environment before the app is imported so
no `.env` file is read and no provider credentials or Upstash config leak in
from the developer's shell.
"""

import asyncio
import os
from collections.abc import AsyncGenerator, AsyncIterator, Generator, Sequence

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient


os.environ["ENVIRONMENT"] = "test"
for _var in ("UPSTASH_REDIS_REST_URL", "UPSTASH_REDIS_REST_TOKEN", "GEMINI_API_KEY"):
    os.environ.pop(_var, None)

from dependencies.estimation import get_estimation_service
from main import app
from services.estimation.orchestrator import EstimationOrchestrator


SCENARIO_A_FORM = {
    "projectType": "residential",
    "projectSize": "2000 sq ft",
    "projectLocation": "Austin, TX",
    "specificRequirements": "energy efficient",
}

SCENARIO_A_CHUNKS = ["Based", " on", " your specs..."]


class FakeGenerationClient:
    """Scripted `GenerationClient` for tests.

    `generate_stream` yields `chunks` in order (optionally waiting on `gate`
    before each one) and then raises `error` if set. `generate` returns
    `text` or raises `error`.
    """

    def __init__(
        self,
        chunks: Sequence[str | None] = (),
        *,
        text: str = "",
        error: Exception | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.chunks = list(chunks)
        self.text = text
        self.error = error
        self.gate = gate
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.text

    async def generate_stream(self, prompt: str) -> AsyncIterator[str | None]:
        self.prompts.append(prompt)
        for chunk in self.chunks:
            if self.gate is not None:
                await self.gate.wait()
            yield chunk
        if self.error is not None:
            raise self.error


@pytest.fixture
def scenario_form() -> dict[str, str]:
    return dict(SCENARIO_A_FORM)


@pytest.fixture
def fake_client() -> FakeGenerationClient:
    return FakeGenerationClient(SCENARIO_A_CHUNKS, text="".join(SCENARIO_A_CHUNKS))


@pytest.fixture
def make_fake_client() -> type[FakeGenerationClient]:
    return FakeGenerationClient


@pytest_asyncio.fixture
async def estimation_service(
    fake_client: FakeGenerationClient,
) -> AsyncGenerator[EstimationOrchestrator, None]:
    service = EstimationOrchestrator(client=fake_client, max_concurrent=4)
    yield service
    await service.aclose()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """
    Create a test client for the FastAPI application.
    """
    with TestClient(app) as client:
        yield client


@pytest_asyncio.fixture
async def async_client(
    estimation_service: EstimationOrchestrator,
) -> AsyncGenerator[AsyncClient, None]:
    """Async client whose estimation service runs on `fake_client`."""
    app.dependency_overrides[get_estimation_service] = lambda: estimation_service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.pop(get_estimation_service, None)
