"""
Result and wire models for DeArrow branding lookups.
"""
from enum import IntEnum, StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Priority(IntEnum):
    """Request priority. Only affects ordering while the fetch budget is full."""

    NORMAL = 0
    HIGH = 1


class Thumbnail(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    timestamp_seconds: float


class ResolutionResult(BaseModel):
    """Replacement branding resolved for one video.

    Instances are frozen: the same object is handed to every caller waiting
    on an identifier, and a newer answer always produces a new instance.
    """

    model_config = ConfigDict(frozen=True)

    identifier: str
    title: str | None = None
    thumbnail: Thumbnail | None = None
    locked: bool = False

    @classmethod
    def empty(cls, identifier: str) -> "ResolutionResult":
        return cls(identifier=identifier)

    @property
    def has_title(self) -> bool:
        return self.title is not None

    @property
    def has_thumbnail(self) -> bool:
        return self.thumbnail is not None

    @property
    def is_empty(self) -> bool:
        """Checked, and nothing found. Distinct from a failed lookup."""
        return self.title is None and self.thumbnail is None


class FetchErrorKind(StrEnum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    MALFORMED_RESPONSE = "malformed_response"
    NOT_FOUND = "not_found"


class FetchError(Exception):
    """Structured lookup failure delivered to every waiter of a fetch.

    ``NOT_FOUND`` never reaches callers: the client turns it into a cached
    empty result.
    """

    kind: FetchErrorKind
    identifier: str | None
    status: int | None

    def __init__(
        self,
        kind: FetchErrorKind,
        message: str = "",
        identifier: str | None = None,
        status: int | None = None,
    ):
        super().__init__(message or kind.value)
        self.kind = kind
        self.identifier = identifier
        self.status = status

    def __repr__(self) -> str:
        return f"FetchError(kind={self.kind.value!r}, identifier={self.identifier!r}, status={self.status!r})"


class BrandingTitle(BaseModel):
    """DeArrow API title submission."""
    title: str
    original: bool = False
    votes: int = 0
    locked: bool = False
    UUID: str | None = None


class BrandingThumbnail(BaseModel):
    """DeArrow API thumbnail submission. Original thumbnails carry no timestamp."""
    timestamp: float | None = None
    original: bool = False
    votes: int = 0
    locked: bool = False
    UUID: str | None = None


class BrandingResponse(BaseModel):
    """DeArrow API ``/api/branding`` response model."""
    titles: list[BrandingTitle] = Field(default_factory=list)
    thumbnails: list[BrandingThumbnail] = Field(default_factory=list)
    randomTime: float | None = None
    videoDuration: float | None = None
