"""
Deduplicating, priority-aware client for DeArrow branding.

All bookkeeping (cache, pending fetches, queue) is mutated from the event
loop's thread only; network requests run as tasks on the same loop and
report back through ``_settle``.
"""
import asyncio
import heapq
import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, Self

from dearrow.internal.dearrow.api import BrandingSource, DeArrowAPI
from dearrow.internal.dearrow.models import (
    FetchError,
    FetchErrorKind,
    Priority,
    ResolutionResult,
)
from dearrow.internal.dearrow.normalize import normalize_branding
from dearrow.internal.env_settings import ClientSettings, Settings
from dearrow.util.cache import CacheMetrics, ResultCache
from dearrow.internal.dearrow.errors import branding_failure
from dearrow.util.log import logger


@dataclass(eq=False)
class PendingFetch:
    """One in-flight (or queued) network lookup shared by all its waiters."""

    identifier: str
    priority: Priority
    sequence: int
    waiters: list[asyncio.Future[ResolutionResult]] = field(default_factory=list)
    started_at: float | None = None
    task: asyncio.Task[None] | None = None


class MetadataClient:
    """Resolves video identifiers to replacement titles and thumbnails.

    At most one network request is outstanding per identifier, and at most
    ``max_concurrent_fetches`` overall. Requests over budget wait in a queue
    served HIGH before NORMAL, FIFO within a priority.

    Construct one instance per application (``dearrow.internal.bootstrap.init_client``
    also sets up logging) and pass it to whoever needs it::

        async with init_client(Settings()) as client:
            result = await client.fetch("dQw4w9WgXcQ", Priority.HIGH)
    """

    _cache: ResultCache[ResolutionResult]
    _pending: dict[str, PendingFetch]
    _queue: list[tuple[int, int, PendingFetch]]
    _source: BrandingSource
    _clock: Callable[[], float]
    _in_flight: int
    _closed: bool

    def __init__(
        self,
        settings: ClientSettings | None = None,
        source: BrandingSource | None = None,
        base_url: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        settings = settings or ClientSettings()
        self._base_url = (base_url or settings.base_url).rstrip("/")
        self._thumbnail_base_url = settings.thumbnail_base_url
        self._max_concurrent_fetches = settings.max_concurrent_fetches
        self._timeout_seconds = settings.timeout_seconds
        self._clock = clock
        self._cache = ResultCache(
            settings.cache_ttl_seconds, maxsize=settings.cache_maxsize, clock=clock
        )
        self._source = source or DeArrowAPI(user_agent=settings.user_agent)
        self._pending = {}
        self._queue = []
        self._sequence = itertools.count()
        self._in_flight = 0
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Settings, source: BrandingSource | None = None) -> Self:
        return cls(settings.client, source=source, base_url=settings.get_base_url())

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def max_concurrent_fetches(self) -> int:
        return self._max_concurrent_fetches

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    @property
    def cache_ttl_seconds(self) -> float:
        return self._cache.ttl

    @property
    def cache_metrics(self) -> CacheMetrics:
        return self._cache.get_metrics()

    def submit(
        self, identifier: str, priority: Priority = Priority.NORMAL
    ) -> asyncio.Future[ResolutionResult]:
        """Register interest in ``identifier`` without waiting.

        Returns a future resolved with the ``ResolutionResult`` or failed with
        a ``FetchError``. Callbacks added with ``add_done_callback`` are
        always scheduled by the loop, even on a cache hit, so they never run
        before this call returns. Must be called from the event loop thread.
        """
        if self._closed:
            raise RuntimeError("MetadataClient is closed")

        waiter: asyncio.Future[ResolutionResult] = asyncio.get_running_loop().create_future()

        cached = self._cache.get(identifier)
        if cached is not None:
            logger.debug("Branding cache hit", video_id=identifier)
            waiter.set_result(cached)
            return waiter

        pending = self._pending.get(identifier)
        if pending is not None:
            pending.waiters.append(waiter)
            self._promote(pending, priority)
            logger.debug(
                "Joined pending branding fetch",
                video_id=identifier,
                waiters=len(pending.waiters),
                priority=pending.priority.name,
            )
            return waiter

        pending = PendingFetch(
            identifier=identifier,
            priority=priority,
            sequence=next(self._sequence),
            waiters=[waiter],
        )
        self._pending[identifier] = pending
        heapq.heappush(self._queue, (-pending.priority, pending.sequence, pending))
        self._pump()
        return waiter

    async def fetch(
        self, identifier: str, priority: Priority = Priority.NORMAL
    ) -> ResolutionResult:
        """Resolve ``identifier``, raising ``FetchError`` if the lookup failed."""
        return await self.submit(identifier, priority)

    def peek(self, identifier: str) -> ResolutionResult | None:
        """Cache-only read. Never starts or joins a network request."""
        return self._cache.get(identifier)

    def invalidate_all(self) -> None:
        """Drop every cached result. Requests already in flight are unaffected."""
        logger.info("Flushing DeArrow branding cache")
        self._cache.clear()

    def configure(
        self,
        base_url: str | None = None,
        *,
        max_concurrent_fetches: int | None = None,
        cache_ttl_seconds: float | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        """Change runtime configuration for network requests started from now on."""
        if base_url is not None:
            self._base_url = base_url.rstrip("/")
            logger.info("DeArrow API instance changed", base_url=self._base_url)
        if cache_ttl_seconds is not None:
            if cache_ttl_seconds < 0:
                raise ValueError("cache_ttl_seconds must not be negative")
            self._cache.ttl = cache_ttl_seconds
        if timeout_seconds is not None:
            if timeout_seconds <= 0:
                raise ValueError("timeout_seconds must be positive")
            self._timeout_seconds = timeout_seconds
        if max_concurrent_fetches is not None:
            if max_concurrent_fetches < 1:
                raise ValueError("max_concurrent_fetches must be at least 1")
            self._max_concurrent_fetches = max_concurrent_fetches
            self._pump()

    def pending_count(self) -> int:
        return len(self._pending)

    def queued_count(self) -> int:
        return sum(1 for pending in self._pending.values() if pending.task is None)

    def effective_priority(self, identifier: str) -> Priority | None:
        pending = self._pending.get(identifier)
        return pending.priority if pending else None

    async def close(self) -> None:
        """Cancel outstanding requests, fail their waiters and release the HTTP session."""
        if self._closed:
            return
        self._closed = True

        tasks = [p.task for p in self._pending.values() if p.task is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        # Queued fetches, and tasks cancelled before their first step, never settled
        for pending in list(self._pending.values()):
            self._settle(
                pending,
                None,
                FetchError(FetchErrorKind.NETWORK, "Client closed", identifier=pending.identifier),
            )
        self._queue.clear()
        await self._source.close()

    def _promote(self, pending: PendingFetch, priority: Priority) -> None:
        if priority <= pending.priority:
            return
        pending.priority = priority
        if pending.task is None:
            # The old heap entry goes stale; _pump skips it by sequence
            pending.sequence = next(self._sequence)
            heapq.heappush(self._queue, (-pending.priority, pending.sequence, pending))

    def _pump(self) -> None:
        while self._queue and self._in_flight < self._max_concurrent_fetches:
            _, sequence, pending = heapq.heappop(self._queue)
            if pending.task is not None or sequence != pending.sequence:
                continue
            if self._pending.get(pending.identifier) is not pending:
                continue
            self._start(pending)

    def _start(self, pending: PendingFetch) -> None:
        pending.started_at = self._clock()
        self._in_flight += 1
        pending.task = asyncio.get_running_loop().create_task(
            self._run(pending, self._base_url),
            name=f"dearrow-branding-{pending.identifier}",
        )
        logger.debug(
            "Started branding fetch",
            video_id=pending.identifier,
            priority=pending.priority.name,
            in_flight=self._in_flight,
        )

    async def _run(self, pending: PendingFetch, base_url: str) -> None:
        identifier = pending.identifier
        timeout = self._timeout_seconds
        result: ResolutionResult | None = None
        error: FetchError | None = None

        try:
            branding = await asyncio.wait_for(
                self._source.get_branding(identifier, base_url), timeout=timeout
            )
            result = normalize_branding(identifier, branding, self._thumbnail_base_url)
        except FetchError as e:
            if e.kind is FetchErrorKind.NOT_FOUND:
                result = ResolutionResult.empty(identifier)
            else:
                e.identifier = e.identifier or identifier
                error = e
        except asyncio.TimeoutError as e:
            error = branding_failure(
                e,
                identifier,
                "fetch branding",
                message=f"Branding fetch timed out after {timeout}s",
                timeout=timeout,
            )
        except asyncio.CancelledError:
            error = FetchError(FetchErrorKind.NETWORK, "Branding fetch cancelled", identifier=identifier)
            raise
        except Exception as e:
            error = branding_failure(e, identifier, "fetch branding", kind=FetchErrorKind.NETWORK)
        finally:
            self._settle(pending, result, error)

    def _settle(
        self,
        pending: PendingFetch,
        result: ResolutionResult | None,
        error: FetchError | None,
    ) -> None:
        identifier = pending.identifier
        if self._pending.get(identifier) is not pending:
            return

        elapsed = None
        if pending.started_at is not None:
            self._in_flight -= 1
            elapsed = self._clock() - pending.started_at
        if result is not None:
            self._cache.put(identifier, result)
        del self._pending[identifier]

        if error is not None:
            logger.debug(
                "Branding fetch failed",
                video_id=identifier,
                kind=error.kind.value,
                elapsed=elapsed,
            )
        elif result is not None:
            logger.debug(
                "Branding fetch resolved",
                video_id=identifier,
                empty=result.is_empty,
                waiters=len(pending.waiters),
                elapsed=elapsed,
            )

        for waiter in pending.waiters:
            # A caller that cancelled its own wait does not cancel the fetch
            if waiter.done():
                continue
            if error is not None:
                waiter.set_exception(error)
            else:
                waiter.set_result(result)

        if not self._closed:
            self._pump()
