import pytest
from pydantic import ValidationError

from mediaconv.common.settings import get_settings


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("FFMPEG__TIMEOUT_SEC", raising=False)
    monkeypatch.delenv("PIPELINE__MAX_CONCURRENT_RUNS", raising=False)

    cfg = get_settings()
    assert cfg.app_name == "mediaconv"
    assert cfg.ffmpeg.bin == "ffmpeg"
    assert cfg.ffmpeg.timeout_sec == 1800
    assert cfg.ffprobe.timeout_sec == 30
    assert (cfg.pipeline.fallback_width, cfg.pipeline.fallback_height) == (1280, 720)
    assert cfg.pipeline.max_concurrent_runs >= 1


def test_settings_nested_env_override(monkeypatch):
    monkeypatch.setenv("FFMPEG__TIMEOUT_SEC", "600")
    monkeypatch.setenv("FFMPEG__HIDE_BANNER", "no")
    monkeypatch.setenv("PIPELINE__MAX_CONCURRENT_RUNS", "2")
    monkeypatch.setenv("FFPROBE__BIN", "/opt/ff/ffprobe")

    cfg = get_settings()
    assert cfg.ffmpeg.timeout_sec == 600
    assert cfg.ffmpeg.hide_banner is False
    assert cfg.pipeline.max_concurrent_runs == 2
    assert cfg.ffprobe.bin == "/opt/ff/ffprobe"


def test_settings_are_cached():
    assert get_settings() is get_settings()


def test_fallback_dimensions_must_be_even(monkeypatch):
    monkeypatch.setenv("PIPELINE__FALLBACK_WIDTH", "1281")
    with pytest.raises(ValidationError):
        get_settings()
