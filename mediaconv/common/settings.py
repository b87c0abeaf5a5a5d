# mediaconv/common/settings.py
from __future__ import annotations

from functools import lru_cache
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _to_bool(v: str | bool | int | None, default: bool = False) -> bool:
    if isinstance(v, bool):
        return v
    if v is None:
        return default
    s = str(v).strip().lower()
    return s in {"1", "true", "yes", "y", "on"}


class FFmpegConfig(BaseModel):
    bin: str = "ffmpeg"
    timeout_sec: float = Field(1800, gt=0, description="Run-scoped budget for the Execution stage")
    log_level: str = "info"  # ffmpeg -loglevel; "info" keeps the frame=/speed= status lines
    progress_log_every: int = Field(100, ge=1, description="Log a progress line every N frames")
    stderr_tail_chars: int = Field(4000, ge=256)
    hide_banner: bool = True

    @field_validator("hide_banner", mode="before")
    @classmethod
    def _boolify(cls, v):
        return _to_bool(v, default=True)


class FFProbeConfig(BaseModel):
    bin: str = "ffprobe"
    timeout_sec: float = Field(30, gt=0)
    log_level: str = "error"  # quiet|panic|fatal|error|warning|info|verbose|debug|trace


class PipelineConfig(BaseModel):
    fallback_width: int = Field(1280, ge=2)
    fallback_height: int = Field(720, ge=2)
    max_concurrent_runs: int = Field(4, ge=1, le=64)

    @field_validator("fallback_width", "fallback_height")
    @classmethod
    def _even(cls, v: int) -> int:
        if v % 2:
            raise ValueError("fallback dimensions must be even")
        return v


class Settings(BaseSettings):
    # -------- App / Env --------
    app_name: str = "mediaconv"
    app_env: str = "development"  # development|test|staging|production
    log_level: str = "INFO"

    # -------- Sub-configs --------
    ffmpeg: FFmpegConfig = FFmpegConfig()
    ffprobe: FFProbeConfig = FFProbeConfig()
    pipeline: PipelineConfig = PipelineConfig()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Global settings accessor (cached). Use this everywhere you need config:
        from mediaconv.common.settings import get_settings
        cfg = get_settings()
    Nested values come from env as e.g. FFMPEG__TIMEOUT_SEC=600.
    """
    return Settings()  # pydantic_settings will read from .env automatically
