# tests/services/pipeline/test_orchestrator.py
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from conftest import FakeProber, FakeTranscoder, make_metadata
from mediaconv.domain.dataclasses.capabilities import Resolution
from mediaconv.domain.enums.failure_category import FailureCategory
from mediaconv.domain.enums.pipeline_stage import PipelineStage, StageOutcome
from mediaconv.domain.errors import ProbeError, QuickConvertError, TranscoderError
from mediaconv.domain.policies.capability_catalog import CapabilityCatalog
from mediaconv.domain.policies.error_abstraction import MESSAGES
from mediaconv.services.pipeline.orchestrator import ConversionOrchestrator, build_quick_arguments
from mediaconv.services.schemas.conversion import ConversionRequest
from mediaconv.services.transcode.ffmpeg_runner import FFmpegRunner


def _orchestrator(prober: FakeProber, transcoder, **kw) -> ConversionOrchestrator:
    return ConversionOrchestrator(prober=lambda: prober, transcoder=lambda: transcoder, **kw)


def _request(tmp_path, fmt="mpeg", **kw) -> ConversionRequest:
    return ConversionRequest(
        input_path=str(tmp_path / "in.mov"),
        output_path=str(tmp_path / "out" / f"result.{fmt}"),
        target_format=fmt,
        **kw,
    )


class _HangingProc:
    def __init__(self):
        self.pid = 99
        self.returncode = None
        self.killed = False
        self.stderr = self

    async def read(self, n):
        await asyncio.sleep(3600)

    async def wait(self):
        return self.returncode

    def kill(self):
        self.killed = True
        self.returncode = -9


class _ExitProc(_HangingProc):
    def __init__(self, returncode: int, stderr: bytes):
        super().__init__()
        self._rc = returncode
        self._chunks = [stderr]

    async def read(self, n):
        return self._chunks.pop(0) if self._chunks else b""

    async def wait(self):
        if self.returncode is None:
            self.returncode = self._rc
        return self.returncode


@pytest.mark.asyncio
async def test_full_run_succeeds_with_five_stages(tmp_path, fake_transcoder):
    prober = FakeProber(make_metadata(width=1920, height=1080))
    result = await _orchestrator(prober, fake_transcoder).execute(_request(tmp_path))

    assert result.ok is True
    assert result.profile_id == "mpeg-hd-1080p"
    assert result.resolution_plan.needs_adjustment is False
    assert [r.name for r in result.log.stages] == list(PipelineStage)
    assert all(r.outcome is StageOutcome.ok for r in result.log.stages)
    assert result.log.finished_at is not None

    args, timeout = fake_transcoder.calls[0]
    assert args[args.index("-vf") + 1] == "scale=1920:1080"
    assert args[-1] == result.output_path
    assert timeout == 1800
    assert (tmp_path / "out").is_dir()


@pytest.mark.asyncio
async def test_zero_duration_fails_at_validation_without_transcoding(tmp_path, fake_transcoder):
    prober = FakeProber(make_metadata(duration=0))
    result = await _orchestrator(prober, fake_transcoder).execute(_request(tmp_path))

    assert result.ok is False
    assert result.failing_stage is PipelineStage.validation
    assert result.category is FailureCategory.validation_failure
    assert len(result.log) == 1
    assert result.log.last.name is PipelineStage.validation
    assert result.log.last.outcome is StageOutcome.failed
    assert "Duration is zero" in result.technical_detail
    assert "Duration" not in result.message
    assert fake_transcoder.calls == []


@pytest.mark.asyncio
async def test_4k_source_is_adjusted_to_1080p(tmp_path, fake_transcoder):
    prober = FakeProber(make_metadata(width=3840, height=2160))
    result = await _orchestrator(prober, fake_transcoder).execute(_request(tmp_path))

    assert result.ok is True
    plan = result.resolution_plan
    assert plan.needs_adjustment is True
    assert plan.target == Resolution(1920, 1080)
    args, _ = fake_transcoder.calls[0]
    assert args[args.index("-vf") + 1] == "scale=1920:1080"


@pytest.mark.asyncio
async def test_planner_target_overrides_profile_resolution(tmp_path, fake_transcoder):
    # webm-balanced carries no resolution; the scale filter comes from the plan
    prober = FakeProber(make_metadata(width=1919, height=1079))
    result = await _orchestrator(prober, fake_transcoder).execute(_request(tmp_path, fmt="webm"))

    assert result.ok is True
    assert result.resolution_plan.target == Resolution(1920, 1080)
    args, _ = fake_transcoder.calls[0]
    assert args[args.index("-vf") + 1] == "scale=1920:1080"


@pytest.mark.asyncio
async def test_probe_failure_is_validation_stage_probe_category(tmp_path, fake_transcoder):
    prober = FakeProber(error=ProbeError("ffprobe returned non-zero exit code", stderr="moov atom not found", rc=1))
    result = await _orchestrator(prober, fake_transcoder).execute(_request(tmp_path))

    assert result.failing_stage is PipelineStage.validation
    assert result.category is FailureCategory.probe_failure
    assert "moov atom not found" in result.technical_detail
    assert len(result.log) == 1


@pytest.mark.asyncio
async def test_source_below_minimum_fails_capability_check(tmp_path, fake_transcoder):
    prober = FakeProber(make_metadata(width=160, height=120))
    result = await _orchestrator(prober, fake_transcoder).execute(_request(tmp_path))

    assert result.failing_stage is PipelineStage.capability_check
    assert result.category is FailureCategory.capability_mismatch
    assert len(result.log) == 2
    assert fake_transcoder.calls == []


@pytest.mark.asyncio
async def test_format_missing_from_catalog_fails_capability_check(tmp_path, fake_transcoder):
    full = CapabilityCatalog()
    narrow = CapabilityCatalog({"mp4": full.get_capabilities("mp4")})
    result = await _orchestrator(FakeProber(), fake_transcoder, catalog=narrow).execute(_request(tmp_path, fmt="wmv"))

    assert result.failing_stage is PipelineStage.capability_check
    assert result.category is FailureCategory.capability_mismatch
    assert "Unsupported target format: wmv" in result.technical_detail


@pytest.mark.asyncio
async def test_format_outside_default_catalog_returns_failure(tmp_path, fake_transcoder):
    prober = FakeProber(make_metadata(width=1280, height=720))
    result = await _orchestrator(prober, fake_transcoder).execute(
        input_path=str(tmp_path / "in.mov"), output_path=str(tmp_path / "a.3gp"), target_format="3gp"
    )

    assert result.ok is False
    assert result.failing_stage is PipelineStage.capability_check
    assert result.category is FailureCategory.capability_mismatch
    assert "Unsupported target format: 3gp" in result.technical_detail
    assert len(result.log) == 2
    assert result.log.target_format == "3gp"
    assert fake_transcoder.calls == []


@pytest.mark.asyncio
async def test_malformed_request_fails_validation_instead_of_raising(tmp_path, fake_transcoder):
    prober = FakeProber()
    result = await _orchestrator(prober, fake_transcoder).execute(
        input_path="", output_path=str(tmp_path / "a.mp4"), target_format="mp4"
    )

    assert result.ok is False
    assert result.failing_stage is PipelineStage.validation
    assert result.category is FailureCategory.validation_failure
    assert "input_path" in result.technical_detail
    assert len(result.log) == 1
    assert prober.calls == []
    assert fake_transcoder.calls == []


@pytest.mark.asyncio
async def test_profile_hint_is_honored(tmp_path, fake_transcoder):
    prober = FakeProber(make_metadata(width=1920, height=1080))
    result = await _orchestrator(prober, fake_transcoder).execute(
        _request(tmp_path, profile_hint="mpeg-broadcast-hd")
    )
    assert result.profile_id == "mpeg-broadcast-hd"
    args, _ = fake_transcoder.calls[0]
    assert "+ilme+ildct" in args


@pytest.mark.asyncio
async def test_encoder_init_exit_code_is_abstracted(tmp_path):
    proc = _ExitProc(234, b"[mpeg2video @ 0x1] broken\nError initializing output stream\n")
    orch = ConversionOrchestrator(prober=lambda: FakeProber(), transcoder=lambda: FFmpegRunner("/opt/ff/ffmpeg"))
    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
        result = await orch.execute(_request(tmp_path))

    assert result.ok is False
    assert result.category is FailureCategory.encoder_init_failure
    assert result.message == MESSAGES[FailureCategory.encoder_init_failure][0]
    assert "Video encoder initialization failed" in result.message
    assert "234" not in result.message
    assert "234" in result.technical_detail
    assert result.failing_stage is PipelineStage.execution
    assert len(result.log) == 5


@pytest.mark.asyncio
async def test_timeout_kills_transcoder_and_marks_execution(tmp_path):
    proc = _HangingProc()
    orch = ConversionOrchestrator(
        prober=lambda: FakeProber(),
        transcoder=lambda: FFmpegRunner("/opt/ff/ffmpeg"),
        timeout_sec=0.05,
    )
    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
        result = await orch.execute(_request(tmp_path))

    assert proc.killed
    assert result.category is FailureCategory.execution_timeout
    assert result.log.last.name is PipelineStage.execution
    assert result.log.last.outcome is StageOutcome.failed
    assert "Conversion took too long" in result.message


@pytest.mark.asyncio
async def test_execute_accepts_keyword_arguments(tmp_path, fake_transcoder):
    result = await _orchestrator(FakeProber(make_metadata(width=1280, height=720)), fake_transcoder).execute(
        input_path=str(tmp_path / "a.mov"),
        output_path=str(tmp_path / "a.mp4"),
        target_format=".MP4",
    )
    assert result.ok is True
    assert result.profile_id == "web-720p"
    assert result.log.target_format == "mp4"


@pytest.mark.asyncio
async def test_concurrent_runs_do_not_share_logs(tmp_path, fake_transcoder):
    orch = _orchestrator(FakeProber(), fake_transcoder)
    results = await asyncio.gather(*(orch.execute(_request(tmp_path / str(i))) for i in range(5)))
    assert all(r.ok for r in results)
    assert len({id(r.log) for r in results}) == 5
    assert all(len(r.log) == 5 for r in results)


# ---- bypass path ----

@pytest.mark.parametrize(
    "fmt,expected",
    [
        ("mp4", ["-c:v", "libx264", "-c:a", "aac"]),
        ("webm", ["-c:v", "libvpx-vp9", "-c:a", "libopus"]),
        ("avi", ["-c:v", "mpeg4", "-c:a", "libmp3lame"]),
        ("mkv", ["-c", "copy"]),
    ],
)
def test_quick_arguments(fmt, expected):
    args = build_quick_arguments("in.mov", f"out.{fmt}", fmt)
    assert args[:2] == ["-i", "in.mov"]
    assert args[2:-2] == expected
    assert args[-2:] == ["-y", f"out.{fmt}"]


@pytest.mark.asyncio
async def test_quick_convert_skips_probe(tmp_path, fake_transcoder):
    prober = FakeProber()
    out = str(tmp_path / "q.webm")
    result = await _orchestrator(prober, fake_transcoder).quick_convert(
        input_path=str(tmp_path / "in.mov"), output_path=out, target_format="webm"
    )
    assert result.output_path == out
    assert result.mode == "quick"
    assert prober.calls == []
    assert len(fake_transcoder.calls) == 1


@pytest.mark.asyncio
async def test_quick_convert_accepts_conversion_request(tmp_path, fake_transcoder):
    req = _request(tmp_path, fmt="mp4", profile_hint="web-720p")
    result = await _orchestrator(FakeProber(), fake_transcoder).quick_convert(req)
    assert result.output_path == req.output_path


@pytest.mark.asyncio
async def test_quick_convert_failure_raises_abstracted_error(tmp_path):
    transcoder = FakeTranscoder(error=TranscoderError("Transcoder exited with code 1", returncode=1,
                                                      stderr="out.mp4: No space left on device"))
    with pytest.raises(QuickConvertError) as ei:
        await _orchestrator(FakeProber(), transcoder).quick_convert(_request(tmp_path, fmt="mp4"))

    err = ei.value
    assert err.category is FailureCategory.disk_space_exhausted
    assert err.abstracted.stage is PipelineStage.execution
    assert str(err) == "Insufficient disk space to complete conversion."


@pytest.mark.asyncio
async def test_quick_convert_unknown_format_raises_capability_mismatch(tmp_path, fake_transcoder):
    with pytest.raises(QuickConvertError) as ei:
        await _orchestrator(FakeProber(), fake_transcoder).quick_convert(
            input_path=str(tmp_path / "in.mov"), output_path=str(tmp_path / "q.3gp"), target_format="3gp"
        )

    assert ei.value.category is FailureCategory.capability_mismatch
    assert "3gp" in ei.value.abstracted.technical
    assert fake_transcoder.calls == []


@pytest.mark.asyncio
async def test_quick_convert_malformed_request_raises_quick_convert_error(tmp_path, fake_transcoder):
    with pytest.raises(QuickConvertError) as ei:
        await _orchestrator(FakeProber(), fake_transcoder).quick_convert(
            input_path=str(tmp_path / "in.mov"), output_path=str(tmp_path / "q.mp4"), target_format=""
        )

    assert ei.value.category is FailureCategory.validation_failure
    assert fake_transcoder.calls == []
