"""
Media transcoding service

Duration probing, segment and frame extraction, and audio extraction for
uploaded video. ffmpeg and ffprobe run as asyncio child processes with a
bounded wall-clock timeout and are killed when the request is cancelled.
Outputs land in a request-scoped scratch directory that is removed on every
exit path.
"""
import asyncio
import base64
import binascii
import re
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from moviepy import VideoFileClip

from src.utils.config import settings
from src.utils.exceptions import FileSizeExceededError, InvalidMediaError, MediaProcessingError
from src.utils.logger import get_logger

logger = get_logger(__name__)

FRAME_SIZE = "640x480"
AUDIO_SAMPLE_RATE = 16000

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w=.-]+)*;base64,", re.IGNORECASE)


def decode_data_url(data: str, max_size: Optional[int] = None) -> Tuple[Optional[str], bytes]:
    """
    Decode a base64 payload, with or without a data: URL prefix

    Returns:
        (mime_type or None, raw bytes)

    Raises:
        InvalidMediaError: payload is empty or not valid base64
        FileSizeExceededError: decoded payload is larger than max_size
    """
    mime = None
    match = _DATA_URL.match(data or "")
    if match:
        mime = match.group("mime")
        data = data[match.end():]

    try:
        raw = base64.b64decode(data, validate=False)
    except (binascii.Error, ValueError) as e:
        raise InvalidMediaError(f"Invalid base64 payload: {e}")
    if not raw:
        raise InvalidMediaError("Empty media payload")

    limit = max_size or settings.MAX_UPLOAD_SIZE
    if len(raw) > limit:
        raise FileSizeExceededError(limit)
    return mime, raw


def clamp_segment(start: float, duration: float, total: float) -> Tuple[float, float]:
    """
    Fit a requested segment inside the video

    Returns:
        (start, actual_duration) with actual_duration = min(duration, total - start)

    Raises:
        MediaProcessingError: the clamped segment is empty
    """
    start = max(float(start), 0.0)
    actual = min(float(duration), float(total) - start)
    if actual <= 0:
        raise MediaProcessingError(
            f"Invalid segment: starts at {start:g}s but video is only {total:g}s long",
            details={"start": start, "duration": duration, "video_duration": total}
        )
    return start, actual


@contextmanager
def scratch_dir(prefix: str = "analysis_") -> Iterator[Path]:
    """Request-scoped scratch directory, deleted with its contents on exit"""
    # A cancelled moviepy worker thread may still be writing here
    with tempfile.TemporaryDirectory(prefix=prefix, dir=settings.scratch_path, ignore_cleanup_errors=True) as tmp:
        logger.debug(f"Scratch directory created: {tmp}")
        yield Path(tmp)
    logger.debug(f"Scratch directory removed: {tmp}")


class MediaTranscoder:
    """ffmpeg/ffprobe wrapper with moviepy for audio extraction"""

    def __init__(
        self,
        timeout: Optional[float] = None,
        default_duration: Optional[float] = None,
        ffmpeg_path: Optional[str] = None,
        ffprobe_path: Optional[str] = None
    ):
        self.timeout = timeout or settings.MEDIA_TIMEOUT_SECONDS
        self.default_duration = default_duration or settings.DEFAULT_VIDEO_DURATION_SECONDS
        self.ffmpeg_path = ffmpeg_path or shutil.which("ffmpeg") or "ffmpeg"
        self.ffprobe_path = ffprobe_path or shutil.which("ffprobe") or "ffprobe"

    async def _run(self, cmd: List[str]) -> subprocess.CompletedProcess:
        """
        Run one external step as a child process

        The child is killed and reaped when the step times out or when the
        awaiting request is cancelled, so nothing outlives the request.

        Raises:
            subprocess.TimeoutExpired: the step ran longer than ``self.timeout``
            OSError: the executable could not be started
        """
        logger.debug(f"Running: {' '.join(cmd)}")
        process = await asyncio.create_subprocess_exec(
            *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            await self._kill(process)
            raise subprocess.TimeoutExpired(cmd, self.timeout)
        except asyncio.CancelledError:
            await self._kill(process)
            raise
        return subprocess.CompletedProcess(
            cmd, process.returncode,
            stdout.decode(errors="replace"), stderr.decode(errors="replace"),
        )

    @staticmethod
    async def _kill(process) -> None:
        if process.returncode is None:
            logger.warning(f"Killing media process {process.pid}")
            process.kill()
        await process.wait()

    async def _run_checked(self, cmd: List[str], output: Path, step: str) -> Path:
        try:
            result = await self._run(cmd)
        except subprocess.TimeoutExpired:
            raise MediaProcessingError(f"{step} timed out after {self.timeout:.0f}s")
        except OSError as e:
            raise MediaProcessingError(f"{step} could not start: {e}")

        if result.returncode != 0:
            logger.warning(f"{step} failed: {result.stderr[-500:]}")
            raise MediaProcessingError(f"{step} failed", details={"stderr": result.stderr[-500:]})
        if not output.exists() or output.stat().st_size == 0:
            raise MediaProcessingError(f"{step} produced no output")
        return output

    async def probe_duration(self, path: Path) -> float:
        """Media duration in seconds; falls back to the configured default"""
        cmd = [
            self.ffprobe_path, "-v", "error",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            str(path),
        ]
        try:
            result = await self._run(cmd)
            duration = float(result.stdout.strip())
            if duration > 0:
                return duration
        except (subprocess.TimeoutExpired, OSError, ValueError) as e:
            logger.warning(f"Duration probe failed: {e}")
        logger.warning(f"Using default duration of {self.default_duration}s for {path.name}")
        return self.default_duration

    async def extract_segment(self, path: Path, start: float, duration: float, out_dir: Path) -> Path:
        output = out_dir / "segment.mp4"
        cmd = [
            self.ffmpeg_path, "-y",
            "-ss", f"{start:.3f}",
            "-i", str(path),
            "-t", f"{duration:.3f}",
            "-c:v", "libx264", "-c:a", "aac",
            str(output),
        ]
        logger.info(f"Extracting segment {start:.1f}s +{duration:.1f}s")
        return await self._run_checked(cmd, output, "Segment extraction")

    async def extract_frame(self, path: Path, timestamp_fraction: float, out_dir: Path,
                            duration: Optional[float] = None) -> Path:
        """Grab one frame at ``timestamp_fraction`` of the clip"""
        if duration is None:
            duration = await self.probe_duration(path)
        timestamp = max(duration * min(max(timestamp_fraction, 0.0), 1.0), 0.0)
        output = out_dir / "frame.jpg"
        cmd = [
            self.ffmpeg_path, "-y",
            "-ss", f"{timestamp:.3f}",
            "-i", str(path),
            "-frames:v", "1",
            "-s", FRAME_SIZE,
            str(output),
        ]
        return await self._run_checked(cmd, output, "Frame extraction")

    def _extract_audio_moviepy(self, path: Path, output: Path) -> Optional[Path]:
        video = None
        try:
            video = VideoFileClip(str(path))
            if video.audio is None:
                logger.warning("Video has no audio track")
                return None
            video.audio.write_audiofile(
                str(output),
                fps=AUDIO_SAMPLE_RATE,
                codec="libmp3lame",
                ffmpeg_params=["-ac", "1"],
                logger=None,
            )
            return output if output.exists() and output.stat().st_size > 0 else None
        except Exception as e:
            logger.warning(f"moviepy audio extraction failed: {e}")
            return None
        finally:
            if video is not None:
                video.close()

    async def _extract_audio_ffmpeg(self, path: Path, output: Path) -> Optional[Path]:
        cmd = [
            self.ffmpeg_path, "-y",
            "-i", str(path),
            "-vn",
            "-acodec", "libmp3lame",
            "-ac", "1",
            "-ar", str(AUDIO_SAMPLE_RATE),
            str(output),
        ]
        try:
            return await self._run_checked(cmd, output, "Audio extraction")
        except MediaProcessingError as e:
            logger.warning(f"ffmpeg audio extraction failed: {e.message}")
            return None

    async def extract_audio(self, path: Path, out_dir: Path) -> Optional[Path]:
        """Mono 16 kHz mp3 of the clip's audio, or None when it has no usable audio"""
        output = out_dir / "audio.mp3"
        audio = await asyncio.to_thread(self._extract_audio_moviepy, path, output)
        if audio:
            logger.info("Audio extraction complete using moviepy")
            return audio
        logger.info("moviepy audio extraction failed, trying ffmpeg CLI")
        return await self._extract_audio_ffmpeg(path, output)
