"""Tests for media decoding, segment clamping and scratch directories."""

import asyncio
import base64
import subprocess
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.services.media_service import MediaTranscoder, clamp_segment, decode_data_url, scratch_dir
from src.utils.exceptions import FileSizeExceededError, InvalidMediaError, MediaProcessingError

from tests.conftest import HangingProcess


class TestClampSegment:
    def test_clamps_to_remaining_length(self):
        assert clamp_segment(8, 3, 9) == (8, 1)

    def test_fits_entirely(self):
        assert clamp_segment(2, 3, 9) == (2, 3)

    @pytest.mark.parametrize("start", [9, 12])
    def test_empty_segment_is_rejected(self, start):
        with pytest.raises(MediaProcessingError) as exc_info:
            clamp_segment(start, 3, 9)
        assert exc_info.value.status_code == 400
        assert exc_info.value.details["video_duration"] == 9

    def test_negative_start_is_treated_as_zero(self):
        assert clamp_segment(-4, 3, 9) == (0, 3)


class TestDecodeDataUrl:
    def test_data_url(self):
        payload = "data:image/png;base64," + base64.b64encode(b"png-bytes").decode()
        assert decode_data_url(payload) == ("image/png", b"png-bytes")

    def test_bare_base64(self):
        assert decode_data_url(base64.b64encode(b"abc").decode()) == (None, b"abc")

    def test_extra_parameters_before_base64(self):
        payload = "data:text/plain;charset=utf-8;base64," + base64.b64encode(b"hi").decode()
        assert decode_data_url(payload) == ("text/plain", b"hi")

    @pytest.mark.parametrize("payload", ["", "data:image/png;base64,", "@@@not base64@@@"])
    def test_invalid_payloads(self, payload):
        with pytest.raises(InvalidMediaError):
            decode_data_url(payload)

    def test_size_limit(self):
        with pytest.raises(FileSizeExceededError) as exc_info:
            decode_data_url(base64.b64encode(b"x" * 20).decode(), max_size=10)
        assert exc_info.value.status_code == 413


def test_scratch_dir_removed_on_error():
    with pytest.raises(RuntimeError):
        with scratch_dir() as tmp:
            (tmp / "frame.jpg").write_bytes(b"x")
            kept = tmp
            raise RuntimeError("step failed")
    assert not kept.exists()


class TestTranscoder:
    async def test_probe_falls_back_to_default_duration(self, tmp_path):
        transcoder = MediaTranscoder(timeout=5, default_duration=5.0)
        failed = subprocess.CompletedProcess(args=[], returncode=1, stdout="N/A", stderr="bad")
        with patch.object(transcoder, "_run", return_value=failed):
            assert await transcoder.probe_duration(tmp_path / "in.mp4") == 5.0

    async def test_probe_reads_ffprobe_output(self, tmp_path):
        transcoder = MediaTranscoder(timeout=5)
        done = subprocess.CompletedProcess(args=[], returncode=0, stdout="9.000000\n", stderr="")
        with patch.object(transcoder, "_run", return_value=done):
            assert await transcoder.probe_duration(tmp_path / "in.mp4") == 9.0

    async def test_step_timeout_is_media_error(self, tmp_path):
        transcoder = MediaTranscoder(timeout=1)
        with patch.object(transcoder, "_run", side_effect=subprocess.TimeoutExpired(cmd="ffmpeg", timeout=1)):
            with pytest.raises(MediaProcessingError, match="timed out"):
                await transcoder.extract_segment(tmp_path / "in.mp4", 0, 3, tmp_path)

    async def test_step_without_output_is_media_error(self, tmp_path):
        transcoder = MediaTranscoder(timeout=1)
        done = subprocess.CompletedProcess(args=[], returncode=0, stdout="", stderr="")
        with patch.object(transcoder, "_run", return_value=done):
            with pytest.raises(MediaProcessingError, match="no output"):
                await transcoder.extract_frame(Path(tmp_path / "in.mp4"), 0.5, tmp_path, duration=3.0)

    async def test_audio_falls_back_to_ffmpeg(self, tmp_path):
        transcoder = MediaTranscoder(timeout=1)

        def fake_ffmpeg(cmd):
            (tmp_path / "audio.mp3").write_bytes(b"mp3")
            return subprocess.CompletedProcess(args=cmd, returncode=0, stdout="", stderr="")

        with patch.object(transcoder, "_extract_audio_moviepy", return_value=None), \
                patch.object(transcoder, "_run", side_effect=fake_ffmpeg):
            assert await transcoder.extract_audio(tmp_path / "in.mp4", tmp_path) == tmp_path / "audio.mp3"


class TestChildProcesses:
    async def test_timed_out_step_kills_its_process(self, tmp_path):
        transcoder = MediaTranscoder(timeout=0.05)
        process = HangingProcess()
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(MediaProcessingError, match="timed out"):
                await transcoder.extract_segment(tmp_path / "in.mp4", 0, 3, tmp_path)
        assert process.killed and process.reaped

    async def test_cancelled_step_kills_its_process(self, tmp_path):
        transcoder = MediaTranscoder(timeout=30)
        process = HangingProcess()
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            task = asyncio.create_task(transcoder.extract_frame(tmp_path / "in.mp4", 0.5, tmp_path, duration=3.0))
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
        assert process.killed and process.reaped

    async def test_finished_step_is_not_killed(self, tmp_path):
        transcoder = MediaTranscoder(timeout=5)
        process = MagicMock(returncode=0)
        process.communicate = AsyncMock(return_value=(b"7.5\n", b""))
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)) as spawn:
            assert await transcoder.probe_duration(tmp_path / "in.mp4") == 7.5
        assert spawn.call_args.args[0] == transcoder.ffprobe_path
        process.kill.assert_not_called()
