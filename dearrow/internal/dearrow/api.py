"""
DeArrow branding API source.
"""
import asyncio
from typing import Protocol
from urllib.parse import urlencode

from aiohttp import ClientError, ClientSession
from pydantic import ValidationError

from dearrow.internal.dearrow.models import BrandingResponse, FetchError, FetchErrorKind
from dearrow.internal.dearrow.errors import branding_failure
from dearrow.util.log import logger


class BrandingSource(Protocol):
    async def get_branding(self, video_id: str, base_url: str) -> BrandingResponse: ...

    async def close(self) -> None: ...


def branding_url(base_url: str, video_id: str) -> str:
    return f"{base_url.rstrip('/')}/api/branding?{urlencode({'videoID': video_id})}"


class DeArrowAPI:
    """aiohttp client for ``GET /api/branding``.

    Every failure leaves as a ``FetchError``: HTTP 404 is ``NOT_FOUND``,
    other non-success statuses and transport errors are ``NETWORK``, and
    bodies that do not parse into ``BrandingResponse`` are
    ``MALFORMED_RESPONSE``.
    """

    user_agent: str
    _client_session: ClientSession | None
    _owns_session: bool

    def __init__(
        self,
        client_session: ClientSession | None = None,
        user_agent: str = "dearrow-client/0.1",
    ):
        self.user_agent = user_agent
        self._client_session = client_session
        self._owns_session = client_session is None

    def _get_session(self) -> ClientSession:
        if self._client_session is None or self._client_session.closed:
            self._client_session = ClientSession()
            self._owns_session = True
        return self._client_session

    async def get_branding(self, video_id: str, base_url: str) -> BrandingResponse:
        url = branding_url(base_url, video_id)
        logger.debug("Requesting DeArrow branding", video_id=video_id, url=url)

        try:
            async with self._get_session().get(
                url,
                headers={
                    "Accept": "application/json",
                    "User-Agent": self.user_agent,
                },
            ) as response:
                if response.status == 404:
                    raise FetchError(
                        FetchErrorKind.NOT_FOUND,
                        "No branding submitted for video",
                        identifier=video_id,
                        status=404,
                    )
                if not response.ok:
                    logger.warning(
                        f"DeArrow API returned {response.status}",
                        video_id=video_id,
                        reason=response.reason,
                    )
                    raise FetchError(
                        FetchErrorKind.NETWORK,
                        f"DeArrow API returned {response.status}",
                        identifier=video_id,
                        status=response.status,
                    )

                data = await response.json(content_type=None)

        except (asyncio.TimeoutError, ClientError, ValueError) as e:
            raise branding_failure(e, video_id, "HTTP request") from e

        try:
            return BrandingResponse.model_validate(data)
        except ValidationError as e:
            raise branding_failure(
                e, video_id, "parse response", message="Unexpected branding response"
            ) from e

    async def close(self) -> None:
        if self._owns_session and self._client_session is not None:
            await self._client_session.close()
        self._client_session = None
