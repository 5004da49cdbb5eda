from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseModel):
    base_url: str = "https://sponsor.ajay.app"
    """DeArrow API instance queried for branding"""
    thumbnail_base_url: str = "https://dearrow-thumb.ajay.app"
    """Thumbnail cache service used to build replacement thumbnail URLs"""
    user_agent: str = "dearrow-client/0.1"

    max_concurrent_fetches: int = Field(default=6, ge=1)
    """Maximum number of branding requests outstanding at once"""
    cache_ttl_seconds: int = Field(default=1800, ge=0)
    """TTL for resolved branding (default: 30 minutes)"""
    cache_maxsize: int | None = Field(default=None, ge=1)
    """Optional LRU bound on cached identifiers. None = unlimited"""
    timeout_seconds: float = Field(default=8.0, gt=0)
    """Per-request timeout; a timed out request is cancelled and not cached"""


class PreferenceSettings(BaseModel):
    """Feature flags read by the UI-integration layer."""

    enabled: bool = True
    titles_enabled: bool = True
    thumbnails_enabled: bool = True
    replace_in_feed: bool = True
    replace_in_watch: bool = True
    show_original_on_long_press: bool = True
    api_instance: str = ""
    """Custom API instance URL. If set, it overrides client.base_url."""


class ApplicationSettings(BaseModel):
    debug: bool = False
    config_dir: str = "."
    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR)"""
    log_format: str = "text"
    """Log format: 'text' for human-readable, 'json' for machine-readable"""
    log_file: str | None = None
    """Optional log file path (relative to config_dir/logs/). If not set, logs to stdout only"""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(  # pyright: ignore[reportUnannotatedClassAttribute]
        env_prefix="DEARROW_",
        env_nested_delimiter="__",
        nested_model_default_partial_update=True,
        env_file=(".env.local", ".env"),
        extra="ignore",
    )

    client: ClientSettings = ClientSettings()
    preferences: PreferenceSettings = PreferenceSettings()
    app: ApplicationSettings = ApplicationSettings()

    def get_base_url(self) -> str:
        instance = self.preferences.api_instance.strip()
        if instance:
            return instance.rstrip("/")
        return self.client.base_url.rstrip("/")
