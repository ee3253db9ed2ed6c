"""Configuration schema using Pydantic."""

from pathlib import Path
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from unigif.media.fetcher import BROWSER_USER_AGENT, DEFAULT_MAX_BYTES
from unigif.media.resolver import DEFAULT_MAX_PAGE_BYTES

DEFAULT_BOT_USERNAME = "@UniGifConverterBot"


class TelegramConfig(BaseModel):
    """Telegram bot configuration."""
    token: str = ""  # Bot token from @BotFather
    bot_username: str = DEFAULT_BOT_USERNAME  # Shown in the "Via ..." caption
    source_link: str = "https://github.com/pynvox/"
    proxy: str | None = None  # HTTP/SOCKS5 proxy URL, e.g. "socks5://127.0.0.1:1080"


class StorageConfig(BaseModel):
    """Temp pool and janitor configuration."""
    temp_dir: str = "./temp"
    sweep_interval_m: float = 10
    max_age_m: float = 15
    min_input_bytes: int = 100  # Smaller downloads are treated as empty


class FetchConfig(BaseModel):
    """HTTP download configuration."""
    timeout_s: float = 30.0
    max_bytes: int = DEFAULT_MAX_BYTES
    user_agent: str = BROWSER_USER_AGENT


class ResolverConfig(BaseModel):
    """Link resolution configuration."""
    timeout_s: float = 15.0
    fallback_to_original: bool = False  # Treat an unreachable page as the media itself
    max_page_bytes: int = DEFAULT_MAX_PAGE_BYTES  # Bytes of a page read when scraping


class TranscodeConfig(BaseModel):
    """ffmpeg configuration."""
    ffmpeg_path: str = "ffmpeg"
    timeout_s: float = 120.0
    max_concurrent: int = 2


class Config(BaseSettings):
    """Root configuration for unigif."""
    debug_log: bool = False
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    transcode: TranscodeConfig = Field(default_factory=TranscodeConfig)

    @property
    def temp_path(self) -> Path:
        """Get expanded temp pool path."""
        return Path(self.storage.temp_dir).expanduser()

    class Config:
        env_prefix = "UNIGIF_"
        env_nested_delimiter = "__"
        extra = "ignore"
