"""
Test configuration and shared fixtures.
"""

from pathlib import Path

import pytest

from video_ingest.config import Settings
from video_ingest.exceptions import AudioExtractionError, ResolutionError
from video_ingest.ingestion.downloader import HttpFetcher
from video_ingest.interfaces import Frame, MediaMetadata, ResolvedMedia


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at an isolated transient directory."""
    return Settings(
        _env_file=None,
        temp_dir=tmp_path / "transient",
        ffmpeg_binary=None,
        ffprobe_binary=None,
        ytdlp_binary=None,
    )


class FakeResolver:
    """Resolver returning a fixed direct URL, or failing."""

    def __init__(self, fail: bool = False, write_bytes: int | None = None):
        self.fail = fail
        self.write_bytes = write_bytes
        self.calls = 0

    def resolve(self, reference, dest_path, cancel=None) -> ResolvedMedia:
        self.calls += 1
        if self.fail:
            raise ResolutionError(attempts=[("hosted-api", "boom"), ("yt-dlp", "boom")])
        if self.write_bytes is not None:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            dest_path.write_bytes(b"\x00" * self.write_bytes)
            return ResolvedMedia(url=reference.url, strategy="yt-dlp", local_path=dest_path)
        return ResolvedMedia(url="https://cdn.example.com/video.mp4", strategy="direct")


class FakeFetcher(HttpFetcher):
    """HttpFetcher whose network stream is replaced by fixed bytes."""

    def __init__(self, settings: Settings, size: int = 50_000):
        super().__init__(settings)
        self.size = size
        self.downloads = 0

    def _stream(self, media, dest_path, cancel) -> None:
        self.downloads += 1
        dest_path.write_bytes(b"\x00" * self.size)


class FakeProcessor:
    """Processor that writes fake files instead of running ffmpeg."""

    def __init__(
        self,
        duration: float = 32.4,
        failing: set[int] | None = None,
        audio_fails: bool = False,
        probe_error: Exception | None = None,
    ):
        self.duration = duration
        self.failing = failing or set()
        self.audio_fails = audio_fails
        self.probe_error = probe_error
        self.attempted: list[int] = []
        self.probed: list[Path] = []

    def probe(self, video_path: Path, cancel=None) -> MediaMetadata:
        self.probed.append(video_path)
        if self.probe_error is not None:
            raise self.probe_error
        return MediaMetadata(duration=self.duration, format_name="mov,mp4,m4a,3gp,3g2,mj2")

    def extract_frame(self, video_path: Path, timestamp: int, frame_path: Path, cancel=None):
        self.attempted.append(timestamp)
        # Leave the file behind so workspace cleanup is exercised
        frame_path.write_bytes(b"\xff\xd8jpeg")
        if timestamp in self.failing:
            return None
        return Frame(timestamp=timestamp, data=frame_path.read_bytes())

    def extract_audio(self, video_path: Path, audio_path: Path, cancel=None) -> Path:
        audio_path.write_bytes(b"ID3audio")
        if self.audio_fails:
            raise AudioExtractionError("ffmpeg exited with status 1: no audio stream")
        return audio_path


@pytest.fixture
def fake_processor() -> FakeProcessor:
    return FakeProcessor()
