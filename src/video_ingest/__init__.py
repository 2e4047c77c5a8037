"""Video Ingest - resolve, download and sample short-form video into frames and audio."""

__version__ = "0.1.0"

from .cancellation import CancellationToken
from .config import Settings
from .exceptions import (
    AudioExtractionError,
    DependencyError,
    DownloadError,
    NoFramesError,
    PipelineCancelled,
    ProbeError,
    ResolutionError,
    VideoIngestError,
)
from .interfaces import ExtractionResult, Frame, MediaMetadata, PipelineStage, VideoReference
from .service import VideoIngestService

__all__ = [
    "CancellationToken",
    "Settings",
    "VideoIngestService",
    "ExtractionResult",
    "Frame",
    "MediaMetadata",
    "PipelineStage",
    "VideoReference",
    "VideoIngestError",
    "ResolutionError",
    "DownloadError",
    "ProbeError",
    "NoFramesError",
    "AudioExtractionError",
    "PipelineCancelled",
    "DependencyError",
]
