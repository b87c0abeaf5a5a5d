# mediaconv/domain/enums/file_format.py
from __future__ import annotations

from enum import StrEnum


class TargetFormat(StrEnum):
    MPEG = "mpeg"
    MP4 = "mp4"
    WEBM = "webm"
    WMV = "wmv"
    FLV = "flv"
    MOV = "mov"
    MKV = "mkv"
    AVI = "avi"
