"""Interfaces (Protocols) and data types for the ingestion pipeline."""

import base64
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol
from urllib.parse import urlsplit

from .cancellation import CancellationToken


class PipelineStage(str, Enum):
    """States of a single pipeline invocation."""

    RESOLVING = "resolving"
    DOWNLOADING = "downloading"
    PROBING = "probing"
    SAMPLING = "sampling"
    EXTRACTING_FRAMES = "extracting_frames"
    EXTRACTING_AUDIO = "extracting_audio"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Platform:
    """A short-video platform whose page URLs need resolving."""

    name: str
    domains: tuple[str, ...]
    referer: str

    def matches(self, host: str) -> bool:
        host = host.lower()
        return any(host == d or host.endswith("." + d) for d in self.domains)


KNOWN_PLATFORMS: tuple[Platform, ...] = (
    Platform(name="tiktok", domains=("tiktok.com",), referer="https://www.tiktok.com/"),
)


def detect_platform(url: str) -> Platform | None:
    """Return the known platform a URL belongs to, if any."""
    host = urlsplit(url).hostname or ""
    for platform in KNOWN_PLATFORMS:
        if platform.matches(host):
            return platform
    return None


@dataclass(frozen=True)
class VideoReference:
    """Caller-supplied video locator (page URL or direct media URL)."""

    url: str
    platform: Platform | None = None

    @classmethod
    def parse(cls, url: str) -> "VideoReference":
        url = url.strip()
        if "://" not in url:
            # Links pasted without a scheme, e.g. "www.tiktok.com/@a/video/1"
            url = "https://" + url.lstrip("/")
        return cls(url=url, platform=detect_platform(url))

    @property
    def is_platform(self) -> bool:
        return self.platform is not None


@dataclass(frozen=True)
class ResolvedMedia:
    """A directly fetchable media resource.

    Strategies that fetch the media themselves (an external downloader)
    set ``local_path`` instead of handing back a URL to download.
    """

    url: str
    strategy: str
    referer: str | None = None
    local_path: Path | None = None


@dataclass
class DownloadedMedia:
    """Transient local copy of the video."""

    path: Path
    size_bytes: int


@dataclass
class MediaMetadata:
    """Container metadata from the prober."""

    duration: float
    format_name: str | None = None
    duration_is_fallback: bool = False


@dataclass
class Frame:
    """A still image captured at a sample timestamp."""

    timestamp: int
    data: bytes
    mime_type: str = "image/jpeg"

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode()

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "base64": self.base64,
            "mimeType": self.mime_type,
        }


@dataclass
class ExtractionResult:
    """Frames and audio track produced by one pipeline invocation.

    The caller owns ``audio_path`` and must delete it after use.
    """

    frames: list[Frame]
    audio_path: Path
    metadata: MediaMetadata | None = None
    strategy: str | None = None
    timestamps: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "frames": [f.to_dict() for f in self.frames],
            "audioPath": str(self.audio_path),
            "duration": self.metadata.duration if self.metadata else None,
            "strategy": self.strategy,
        }


ProgressCallback = Callable[[PipelineStage, str], None]


class UrlResolver(Protocol):
    """Protocol for turning a reference into a fetchable resource."""

    def resolve(
        self,
        reference: VideoReference,
        dest_path: Path,
        cancel: CancellationToken | None = None,
    ) -> ResolvedMedia:
        """Resolve a reference; may write the media to dest_path directly."""
        ...


class MediaFetcher(Protocol):
    """Protocol for downloading media to transient storage."""

    def download(
        self,
        media: ResolvedMedia,
        dest_path: Path,
        cancel: CancellationToken | None = None,
    ) -> DownloadedMedia:
        """Stream media to dest_path and validate it."""
        ...

    def validate(self, path: Path) -> DownloadedMedia:
        """Validate a file that was already written."""
        ...


class MediaProcessor(Protocol):
    """Protocol for probing and extracting from local media files."""

    def probe(self, video_path: Path, cancel: CancellationToken | None = None) -> MediaMetadata:
        """Read duration and format from the container."""
        ...

    def extract_frame(
        self,
        video_path: Path,
        timestamp: int,
        frame_path: Path,
        cancel: CancellationToken | None = None,
    ) -> Frame | None:
        """Capture one frame, or None when the timestamp must be skipped."""
        ...

    def extract_audio(
        self,
        video_path: Path,
        audio_path: Path,
        cancel: CancellationToken | None = None,
    ) -> Path:
        """Transcode the full audio track to audio_path."""
        ...
