"""
DeArrow branding lookups.

Resolves YouTube video IDs to community-submitted replacement titles and
thumbnails, with caching, request deduplication and a priority-ordered
concurrency budget.
"""

from .api import BrandingSource, DeArrowAPI
from .client import MetadataClient
from .models import FetchError, FetchErrorKind, Priority, ResolutionResult, Thumbnail

__all__ = [
    "BrandingSource",
    "DeArrowAPI",
    "FetchError",
    "FetchErrorKind",
    "MetadataClient",
    "Priority",
    "ResolutionResult",
    "Thumbnail",
]
