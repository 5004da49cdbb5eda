"""
Turns a DeArrow branding response into a ResolutionResult.

Submissions arrive ranked by the server. At most one title and one thumbnail
are surfaced: the first submission that is locked or not downvoted below zero.
If that winner is the video's original title/thumbnail, there is no
replacement to show.
"""
import re
from typing import Sequence
from urllib.parse import urlencode

from dearrow.internal.dearrow.models import (
    BrandingResponse,
    BrandingThumbnail,
    BrandingTitle,
    ResolutionResult,
    Thumbnail,
)

# ">" in front of a word tells DeArrow not to auto-format it
_FORMAT_MARKER = re.compile(r"(^|\s)>(?=\S)")


def clean_title(title: str) -> str:
    """Strip auto-format markers and surrounding whitespace."""
    return _FORMAT_MARKER.sub(r"\1", title).strip()


def _is_trusted(candidate: BrandingTitle | BrandingThumbnail) -> bool:
    return candidate.locked or candidate.votes >= 0


def select_title(titles: Sequence[BrandingTitle]) -> BrandingTitle | None:
    for candidate in titles:
        if not _is_trusted(candidate):
            continue
        if candidate.original or not clean_title(candidate.title):
            return None
        return candidate
    return None


def select_thumbnail(thumbnails: Sequence[BrandingThumbnail]) -> BrandingThumbnail | None:
    for candidate in thumbnails:
        if not _is_trusted(candidate):
            continue
        if candidate.original or candidate.timestamp is None:
            return None
        return candidate
    return None


def build_thumbnail_url(thumbnail_base_url: str, video_id: str, timestamp: float) -> str:
    params = {"videoID": video_id, "time": timestamp}
    return f"{thumbnail_base_url.rstrip('/')}/api/v1/getThumbnail?{urlencode(params)}"


def normalize_branding(
    video_id: str,
    branding: BrandingResponse,
    thumbnail_base_url: str,
) -> ResolutionResult:
    title = select_title(branding.titles)
    thumbnail = select_thumbnail(branding.thumbnails)

    resolved_thumbnail = None
    if thumbnail is not None and thumbnail.timestamp is not None:
        resolved_thumbnail = Thumbnail(
            url=build_thumbnail_url(thumbnail_base_url, video_id, thumbnail.timestamp),
            timestamp_seconds=thumbnail.timestamp,
        )

    return ResolutionResult(
        identifier=video_id,
        title=clean_title(title.title) if title else None,
        thumbnail=resolved_thumbnail,
        locked=title.locked if title else False,
    )
