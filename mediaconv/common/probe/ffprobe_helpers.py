# mediaconv/common/probe/ffprobe_helpers.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from mediaconv.domain.entities.probe import MediaMetadata, StreamDescriptor
from mediaconv.domain.enums.stream_kind import StreamKind


def build_ffprobe_cmd(
    input_path: str | Path,
    *,
    ffprobe_bin: str = "ffprobe",
    log_level: str = "error",
    extra_args: Iterable[str] | None = None,
) -> List[str]:
    """
    Build a robust ffprobe command that emits JSON we can parse consistently.
    """
    if isinstance(input_path, Path):
        input_path = str(input_path)
    base = [
        ffprobe_bin,
        "-v", log_level,
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        "-show_error",
        "--",  # Stop option parsing in case of weird filenames
        input_path,
    ]
    if extra_args:
        # Insert before the "--" so they stay options
        base = base[:-2] + list(extra_args) + base[-2:]
    return base


def parse_rate(rate: Any) -> Tuple[Optional[int], Optional[int]]:
    """
    Split an ffprobe rate ("30000/1001", "25/1", "25") into (num, den).
    Returns (None, None) for anything unparsable. A zero denominator is kept
    so callers can tell "0/0" (unknown) apart from a missing field.
    """
    if rate is None:
        return None, None
    s = str(rate).strip()
    if not s:
        return None, None
    if "/" not in s:
        try:
            f = float(s)
        except ValueError:
            return None, None
        # keep three decimals of precision for plain floats like "29.97"
        return int(round(f * 1000)), 1000
    n, d = s.split("/", 1)
    try:
        return int(float(n)), int(float(d))
    except ValueError:
        return None, None


def _maybe_int(x: Any) -> Optional[int]:
    try:
        return int(float(x)) if x is not None else None
    except (TypeError, ValueError):
        return None


def _maybe_float(x: Any) -> Optional[float]:
    try:
        return float(x) if x is not None else None
    except (TypeError, ValueError):
        return None


def parse_stream(idx: int, s: Dict[str, Any]) -> StreamDescriptor:
    kind = StreamKind.from_codec_type(s.get("codec_type"))
    num, den = parse_rate(s.get("r_frame_rate") or s.get("avg_frame_rate"))
    index = _maybe_int(s.get("index"))
    return StreamDescriptor(
        index=idx if index is None else index,
        kind=kind,
        codec_name=s.get("codec_name"),
        width=_maybe_int(s.get("width")) if kind is StreamKind.video else None,
        height=_maybe_int(s.get("height")) if kind is StreamKind.video else None,
        frame_rate_num=num if kind is StreamKind.video else None,
        frame_rate_den=den if kind is StreamKind.video else None,
    )


def parse_ffprobe(data: Dict[str, Any]) -> MediaMetadata:
    """
    Turn ffprobe JSON ({format: {...}, streams: [...]}) into MediaMetadata.
    Safe to call in unit tests with fixture JSON; never raises on odd values.
    """
    data = data or {}
    fmt = data.get("format")
    streams = data.get("streams") or []

    format_present = isinstance(fmt, dict) and bool(fmt)
    fmt = fmt if isinstance(fmt, dict) else {}

    parsed = tuple(parse_stream(i, s) for i, s in enumerate(streams) if isinstance(s, dict))

    return MediaMetadata(
        format_present=format_present,
        duration=_maybe_float(fmt.get("duration")),
        size_bytes=_maybe_int(fmt.get("size")),
        format_name=fmt.get("format_name"),
        bit_rate=_maybe_int(fmt.get("bit_rate")),
        streams=parsed,
        raw=dict(data),
    )
