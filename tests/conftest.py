"""
Pytest configuration and fixtures for the DeArrow client test suite.
"""
import asyncio
import logging
from typing import Generator

import pytest
import structlog
from aioresponses import aioresponses

from dearrow.internal.dearrow.models import (
    BrandingResponse,
    BrandingThumbnail,
    BrandingTitle,
)
from dearrow.internal.env_settings import ClientSettings
from dearrow.util.log import LOGGER_NAME


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class GatedSource:
    """In-memory BrandingSource whose requests can be held open per video."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []
        self.cancelled: list[str] = []
        self.outcomes: dict[str, BrandingResponse | BaseException] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.closed = False

    def respond(self, video_id: str, outcome: BrandingResponse | BaseException):
        self.outcomes[video_id] = outcome

    def hold(self, video_id: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[video_id] = gate
        return gate

    def call_ids(self) -> list[str]:
        return [video_id for video_id, _ in self.calls]

    async def get_branding(self, video_id: str, base_url: str) -> BrandingResponse:
        self.calls.append((video_id, base_url))
        gate = self.gates.get(video_id)
        if gate is not None:
            try:
                await gate.wait()
            except asyncio.CancelledError:
                self.cancelled.append(video_id)
                raise
        outcome = self.outcomes.get(video_id, BrandingResponse())
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gated_source() -> GatedSource:
    return GatedSource()


@pytest.fixture
def client_settings() -> ClientSettings:
    return ClientSettings(
        base_url="https://dearrow.test",
        thumbnail_base_url="https://thumbs.test",
        max_concurrent_fetches=4,
        cache_ttl_seconds=60,
        timeout_seconds=1.0,
    )


@pytest.fixture(scope="function")
def aioresponses_mocker() -> Generator[aioresponses, None, None]:
    """Provide aioresponses context manager for manual HTTP mocking."""
    with aioresponses() as mocked:
        yield mocked


# Sample data fixtures
@pytest.fixture
def sample_branding_payload() -> dict:
    """Branding response as returned by the DeArrow API."""
    return {
        "titles": [
            {
                "title": "How >iPhone cameras actually work",
                "original": False,
                "votes": 4,
                "locked": True,
                "UUID": "title-uuid-1",
            },
            {
                "title": "Original clickbait title!!",
                "original": True,
                "votes": 1,
                "locked": False,
                "UUID": "title-uuid-2",
            },
        ],
        "thumbnails": [
            {
                "timestamp": 42.5,
                "original": False,
                "votes": 2,
                "locked": False,
                "UUID": "thumb-uuid-1",
            }
        ],
        "randomTime": 0.31,
        "videoDuration": 612.0,
    }


@pytest.fixture
def sample_branding(sample_branding_payload) -> BrandingResponse:
    return BrandingResponse.model_validate(sample_branding_payload)


@pytest.fixture
def title_only_branding() -> BrandingResponse:
    return BrandingResponse(
        titles=[BrandingTitle(title="A better title", votes=0)],
        thumbnails=[BrandingThumbnail(original=True, votes=3)],
    )


@pytest.fixture
def reset_logging() -> Generator[None, None, None]:
    """Undo setup_logging: drop dearrow handlers and restore structlog defaults."""
    package_logger = logging.getLogger(LOGGER_NAME)
    yield
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True
    structlog.reset_defaults()
