# mediaconv/domain/policies/profile_registry.py
from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from mediaconv.common.logging import get_logger
from mediaconv.domain.dataclasses.capabilities import Resolution
from mediaconv.domain.dataclasses.profile import AudioParams, EncodingProfile, VideoParams
from mediaconv.domain.entities.probe import MediaMetadata
from mediaconv.domain.errors import ProfileSelectionError

logger = get_logger(__name__)

HD_MIN_PIXELS = 1280 * 720
FULL_HD_MIN_HEIGHT = 1080
# NTSC vs PAL guess for SD sources. Rates strictly inside (26, 32) are read
# as NTSC (29.97/30); everything else, including unknown, as PAL. This is an
# approximation, not a classifier: 50/60 fps NTSC-region sources land on PAL.
NTSC_FPS_RANGE = (26.0, 32.0)
DEFAULT_FPS = 25.0


def _mpeg(pid: str, desc: str, res: Tuple[int, int], vb: str, maxrate: str, bufsize: str,
          gop: int, fps: float, acodec: str, ab: str, *, interlaced: bool = False) -> EncodingProfile:
    return EncodingProfile(
        id=pid,
        target_format="mpeg",
        description=desc,
        video=VideoParams(
            codec="mpeg2video",
            resolution=Resolution(*res),
            bitrate=vb,
            maxrate=maxrate,
            bufsize=bufsize,
            gop_size=gop,
            frame_rate=fps,
            pixel_format="yuv420p",
            aspect_ratio="16:9",
            interlaced=interlaced,
        ),
        audio=AudioParams(codec=acodec, bitrate=ab, sample_rate=48000, channels=2),
        container="mpeg",
    )


def _web(pid: str, desc: str, res: Tuple[int, int], crf: int, preset: str, profile: str,
         level: str, ab: str, sr: int) -> EncodingProfile:
    return EncodingProfile(
        id=pid,
        target_format="mp4",
        description=desc,
        video=VideoParams(codec="h264", resolution=Resolution(*res), crf=crf, preset=preset,
                          profile=profile, level=level),
        audio=AudioParams(codec="aac", bitrate=ab, sample_rate=sr),
    )


_PROFILES: Tuple[EncodingProfile, ...] = (
    # MPEG-2 (DVD / broadcast)
    _mpeg("mpeg-dvd-pal", "DVD Video PAL Standard", (720, 576), "6000k", "8000k", "1835k", 12, 25, "mp2", "384k"),
    _mpeg("mpeg-dvd-ntsc", "DVD Video NTSC Standard", (720, 480), "6000k", "8000k", "1835k", 12, 29.97, "mp2", "384k"),
    _mpeg("mpeg-broadcast-sd", "Broadcast SD (DVB/ATSC)", (720, 576), "5000k", "7000k", "2048k", 12, 25, "mp2", "256k"),
    _mpeg("mpeg-broadcast-hd", "Broadcast HD 1080i (DVB/ATSC)", (1920, 1080), "9800k", "15000k", "4096k", 15, 25,
          "ac3", "448k", interlaced=True),
    _mpeg("mpeg-hd-720p", "HD 720p Progressive", (1280, 720), "6000k", "8000k", "2048k", 15, 25, "mp2", "256k"),
    _mpeg("mpeg-hd-1080p", "Full HD 1080p Progressive", (1920, 1080), "9000k", "12000k", "4096k", 15, 25, "ac3", "384k"),
    # Web / streaming (MP4)
    _web("web-360p", "Web 360p", (640, 360), 28, "faster", "baseline", "3.0", "96k", 44100),
    _web("web-720p", "Web 720p HD", (1280, 720), 23, "medium", "high", "4.0", "128k", 48000),
    _web("web-1080p", "Web 1080p Full HD", (1920, 1080), 20, "medium", "high", "4.1", "192k", 48000),
    # Generic balanced profiles; resolution comes from the planner
    EncodingProfile(
        id="webm-balanced", target_format="webm", description="Balanced WebM - VP9 CRF 31",
        video=VideoParams(codec="libvpx-vp9", crf=31, bitrate="0"),
        audio=AudioParams(codec="libopus", bitrate="128k"),
        container="webm",
    ),
    EncodingProfile(
        id="wmv-balanced", target_format="wmv", description="Balanced WMV - VBR with 2000k avg",
        video=VideoParams(codec="wmv2", bitrate="2000k", maxrate="3000k", bufsize="1024k", gop_size=250),
        audio=AudioParams(codec="wmav2", bitrate="128k"),
        container="asf",
    ),
    EncodingProfile(
        id="flv-balanced", target_format="flv", description="Balanced FLV - CRF 23, faster preset",
        video=VideoParams(codec="libx264", crf=23, preset="faster", profile="main", level="3.0",
                          pixel_format="yuv420p"),
        audio=AudioParams(codec="aac", bitrate="128k", sample_rate=44100),
        container="flv",
    ),
    EncodingProfile(
        id="mov-balanced", target_format="mov", description="Balanced MOV - CRF 23",
        video=VideoParams(codec="libx264", crf=23, preset="medium", profile="high", level="4.0",
                          pixel_format="yuv420p"),
        audio=AudioParams(codec="aac", bitrate="192k"),
        container="mov",
    ),
    EncodingProfile(
        id="mkv-balanced", target_format="mkv", description="Balanced MKV - CRF 23",
        video=VideoParams(codec="libx264", crf=23, preset="medium", profile="high", level="4.0"),
        audio=AudioParams(codec="aac", bitrate="192k"),
        container="matroska",
    ),
    EncodingProfile(
        id="avi-balanced", target_format="avi", description="Balanced AVI - MPEG-4 Part 2",
        video=VideoParams(codec="mpeg4", bitrate="4000k", pixel_format="yuv420p"),
        audio=AudioParams(codec="libmp3lame", bitrate="128k"),
        container="avi",
    ),
)

# format -> profile id used when no format-specific rule applies
_GENERIC: Mapping[str, str] = MappingProxyType({
    "webm": "webm-balanced",
    "wmv": "wmv-balanced",
    "flv": "flv-balanced",
    "mov": "mov-balanced",
    "mkv": "mkv-balanced",
    "avi": "avi-balanced",
})


class ProfileRegistry:
    """
    Immutable catalog of named encoding profiles plus the auto-selection
    heuristics and profile -> ffmpeg argument compilation.
    """

    def __init__(
        self,
        profiles: Optional[Iterable[EncodingProfile]] = None,
        generic: Optional[Mapping[str, str]] = None,
    ) -> None:
        table: Dict[str, EncodingProfile] = {}
        for p in (_PROFILES if profiles is None else profiles):
            if p.id in table:
                raise ValueError(f"duplicate profile id {p.id!r}")
            table[p.id] = p
        self._profiles: Mapping[str, EncodingProfile] = MappingProxyType(table)
        self._generic: Mapping[str, str] = _GENERIC if generic is None else MappingProxyType(dict(generic))

    # ---------------- lookups ----------------

    def get_profile(self, profile_id: Optional[str]) -> Optional[EncodingProfile]:
        if not profile_id:
            return None
        return self._profiles.get(profile_id)

    def profile_ids(self) -> Tuple[str, ...]:
        return tuple(self._profiles.keys())

    def list_profiles_for_format(self, fmt: str) -> List[EncodingProfile]:
        key = (fmt or "").lower()
        return [p for p in self._profiles.values() if p.target_format == key]

    # ---------------- selection ----------------

    def select_profile(
        self,
        metadata: MediaMetadata,
        target_format: str,
        explicit_id: Optional[str] = None,
    ) -> EncodingProfile:
        """
        Pure function of (metadata, target_format, explicit_id).
        Raises ProfileSelectionError when nothing applies.
        """
        fmt = (target_format or "").lower()

        if explicit_id:
            chosen = self.get_profile(explicit_id)
            if chosen is not None and chosen.target_format == fmt:
                return chosen
            logger.warning(
                "Profile hint %r does not resolve for %s; falling back to auto-selection", explicit_id, fmt
            )

        vs = metadata.first_video if metadata is not None else None
        if vs is None or not vs.has_dimensions:
            raise ProfileSelectionError("No video stream found for profile selection")

        pid: Optional[str] = None
        if fmt == "mpeg":
            pid = self._select_mpeg(vs.width, vs.height, vs.frame_rate)
        elif fmt == "mp4":
            pid = self._select_web(vs.height)
        else:
            pid = self._generic.get(fmt)

        profile = self.get_profile(pid)
        if profile is None:
            raise ProfileSelectionError(f"Could not select appropriate encoding profile for {fmt}")
        return profile

    @staticmethod
    def _select_mpeg(width: int, height: int, fps: Optional[float]) -> str:
        if width * height >= HD_MIN_PIXELS:
            return "mpeg-hd-1080p" if height >= FULL_HD_MIN_HEIGHT else "mpeg-hd-720p"
        rate = fps if fps is not None else DEFAULT_FPS
        lo, hi = NTSC_FPS_RANGE
        if lo < rate < hi:
            return "mpeg-dvd-ntsc"
        return "mpeg-dvd-pal"

    @staticmethod
    def _select_web(height: int) -> str:
        if height >= 1080:
            return "web-1080p"
        if height >= 720:
            return "web-720p"
        return "web-360p"

    # ---------------- compilation ----------------

    @staticmethod
    def build_invocation_arguments(
        profile: EncodingProfile,
        input_path: str,
        output_path: str,
        resolution_override: Optional[Resolution] = None,
    ) -> List[str]:
        """
        Map every populated profile field to its ffmpeg flag, always in the
        same order. `resolution_override` replaces the profile's own
        resolution; the profile itself is never modified.
        """
        v, a = profile.video, profile.audio
        args: List[str] = ["-i", str(input_path), "-c:v", v.codec]

        res = resolution_override or v.resolution
        if res is not None:
            args += ["-vf", f"scale={res.width}:{res.height}"]
        if v.bitrate:
            args += ["-b:v", v.bitrate]
        if v.maxrate:
            args += ["-maxrate", v.maxrate]
        if v.bufsize:
            args += ["-bufsize", v.bufsize]
        if v.crf is not None:
            args += ["-crf", str(v.crf)]
        if v.preset:
            args += ["-preset", v.preset]
        if v.profile:
            args += ["-profile:v", v.profile]
        if v.level:
            args += ["-level", v.level]
        if v.gop_size:
            args += ["-g", str(v.gop_size)]
        if v.frame_rate:
            args += ["-r", f"{v.frame_rate:g}"]
        if v.pixel_format:
            args += ["-pix_fmt", v.pixel_format]
        if v.aspect_ratio:
            args += ["-aspect", v.aspect_ratio]
        if v.interlaced:
            args += ["-flags", "+ilme+ildct"]

        args += ["-c:a", a.codec]
        if a.bitrate:
            args += ["-b:a", a.bitrate]
        if a.sample_rate:
            args += ["-ar", str(a.sample_rate)]
        if a.channels:
            args += ["-ac", str(a.channels)]

        if profile.container:
            args += ["-f", profile.container]

        args += ["-map_metadata", "0", "-max_muxing_queue_size", "1024", "-y", str(output_path)]
        return args
