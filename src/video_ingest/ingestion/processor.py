"""Media processing using FFmpeg."""

import json
import logging
from pathlib import Path
from typing import Callable

from ..cancellation import CancellationToken, check
from ..config import Settings
from ..exceptions import AudioExtractionError, NoFramesError, ProbeError, ToolError
from ..interfaces import Frame, MediaMetadata, MediaProcessor
from .tools import Toolkit, run_tool

logger = logging.getLogger(__name__)

AUDIO_CODECS = {
    "mp3": "libmp3lame",
    "m4a": "aac",
    "wav": "pcm_s16le",
}


class FFmpegProcessor:
    """Probe, frame capture and audio transcoding via ffmpeg/ffprobe."""

    def __init__(self, settings: Settings, toolkit: Toolkit):
        self.settings = settings
        self.toolkit = toolkit

    def probe(self, video_path: Path, cancel: CancellationToken | None = None) -> MediaMetadata:
        """Get duration and container format.

        Falls back to ``settings.fallback_duration`` when the container
        reports no usable duration.

        Raises:
            ProbeError: ffprobe cannot read the file at all
        """
        if not video_path.exists():
            raise ProbeError(f"video file not found: {video_path.name}")

        try:
            result = run_tool(
                [
                    self.toolkit.ffprobe,
                    "-v", "error",
                    "-show_entries", "format=duration,format_name",
                    "-of", "json",
                    str(video_path),
                ],
                timeout=self.settings.probe_timeout,
                cancel=cancel,
            )
        except ToolError as e:
            raise ProbeError(str(e)) from e

        try:
            fmt = json.loads(result.stdout or "{}").get("format", {})
        except json.JSONDecodeError as e:
            raise ProbeError(f"unreadable ffprobe output: {e}") from e

        duration = _parse_duration(fmt.get("duration"))
        if duration is None:
            logger.warning(
                "No duration for %s, assuming %.0fs", video_path.name, self.settings.fallback_duration
            )
            return MediaMetadata(
                duration=self.settings.fallback_duration,
                format_name=fmt.get("format_name"),
                duration_is_fallback=True,
            )

        return MediaMetadata(duration=duration, format_name=fmt.get("format_name"))

    def _frame_cmd(self, video_path: Path, timestamp: int, frame_path: Path, accurate: bool) -> list[str]:
        # -ss before -i seeks to the nearest keyframe; after -i it decodes up to the exact time
        seek = ["-ss", str(timestamp)]
        source = ["-i", str(video_path)]
        return [
            self.toolkit.ffmpeg,
            "-y",
            "-loglevel", "error",
            *(source + seek if accurate else seek + source),
            "-frames:v", "1",
            "-q:v", str(self.settings.frame_quality),
            str(frame_path),
        ]

    def extract_frame(
        self,
        video_path: Path,
        timestamp: int,
        frame_path: Path,
        cancel: CancellationToken | None = None,
    ) -> Frame | None:
        """Capture one JPEG at ``timestamp``.

        Tries a fast keyframe seek first, then a frame-accurate seek. Returns
        None when both fail. The frame file is always removed before
        returning.
        """
        try:
            for accurate in (False, True):
                mode = "accurate" if accurate else "fast"
                try:
                    run_tool(
                        self._frame_cmd(video_path, timestamp, frame_path, accurate),
                        timeout=self.settings.frame_timeout,
                        cancel=cancel,
                    )
                except ToolError as e:
                    logger.debug("%s seek failed at %ss: %s", mode, timestamp, e)
                    continue

                if frame_path.exists() and frame_path.stat().st_size > 0:
                    return Frame(timestamp=timestamp, data=frame_path.read_bytes())
                logger.debug("%s seek at %ss produced no image", mode, timestamp)

            logger.warning("Skipping frame at %ss: both seek modes failed", timestamp)
            return None
        finally:
            frame_path.unlink(missing_ok=True)

    def extract_audio(
        self,
        video_path: Path,
        audio_path: Path,
        cancel: CancellationToken | None = None,
    ) -> Path:
        """Transcode the full audio track in one pass.

        Raises:
            AudioExtractionError: ffmpeg failed or produced nothing
        """
        audio_path.parent.mkdir(parents=True, exist_ok=True)
        cmd = [
            self.toolkit.ffmpeg,
            "-y",
            "-loglevel", "error",
            "-i", str(video_path),
            "-vn",  # no video
            "-acodec", AUDIO_CODECS.get(self.settings.audio_format, "libmp3lame"),
            "-ab", self.settings.audio_bitrate,
            "-ar", str(self.settings.audio_sample_rate),
            str(audio_path),
        ]
        try:
            run_tool(cmd, timeout=self.settings.audio_timeout, cancel=cancel)
        except ToolError as e:
            audio_path.unlink(missing_ok=True)
            raise AudioExtractionError(str(e)) from e

        if not audio_path.exists() or audio_path.stat().st_size == 0:
            audio_path.unlink(missing_ok=True)
            raise AudioExtractionError("ffmpeg produced no audio output")

        return audio_path


def extract_frames(
    processor: MediaProcessor,
    video_path: Path,
    timestamps: list[int],
    frame_path_for: Callable[[int], Path],
    cancel: CancellationToken | None = None,
) -> list[Frame]:
    """Capture a frame at each timestamp in order, skipping failures.

    Raises:
        NoFramesError: not a single frame was captured
    """
    frames: list[Frame] = []
    for timestamp in timestamps:
        check(cancel)
        frame = processor.extract_frame(video_path, timestamp, frame_path_for(timestamp), cancel)
        if frame is not None:
            frames.append(frame)

    if not frames:
        raise NoFramesError(timestamps=list(timestamps))

    logger.info("Extracted %d of %d frames", len(frames), len(timestamps))
    return frames


def _parse_duration(value) -> float | None:
    """ffprobe reports duration as a string, or 'N/A'."""
    try:
        duration = float(value)
    except (TypeError, ValueError):
        return None
    if duration != duration or duration <= 0:  # NaN or non-positive
        return None
    return duration
