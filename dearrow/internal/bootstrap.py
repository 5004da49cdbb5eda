"""
Process-level init for the DeArrow client.

Call ``init_client`` once at startup and hand the returned client to the
UI-integration layer explicitly; close it on shutdown::

    client = init_client()
    ...
    await client.close()
"""
from dearrow.internal.dearrow.api import BrandingSource
from dearrow.internal.dearrow.client import MetadataClient
from dearrow.internal.env_settings import Settings
from dearrow.util.log import logger, setup_logging


def init_client(
    settings: Settings | None = None,
    source: BrandingSource | None = None,
) -> MetadataClient:
    """Configure logging from ``settings.app`` and build the application's client."""
    settings = settings or Settings()
    setup_logging(settings.app)

    client = MetadataClient.from_settings(settings, source=source)
    logger.info(
        "DeArrow client initialised",
        base_url=client.base_url,
        max_concurrent_fetches=client.max_concurrent_fetches,
        cache_ttl_seconds=client.cache_ttl_seconds,
        timeout_seconds=client.timeout_seconds,
        enabled=settings.preferences.enabled,
    )
    return client
