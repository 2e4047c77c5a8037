"""Video Ingest Service - the frame and audio extraction pipeline."""

import logging
from pathlib import Path

from .cancellation import CancellationToken, check
from .config import Settings
from .config import settings as default_settings
from .exceptions import ProbeError, StageError, VideoIngestError
from .ingestion.downloader import HttpFetcher
from .ingestion.processor import FFmpegProcessor, extract_frames
from .ingestion.resolver import StrategyResolver
from .ingestion.sampler import choose_timestamps
from .ingestion.tools import Toolkit
from .interfaces import (
    ExtractionResult,
    MediaFetcher,
    MediaProcessor,
    PipelineStage,
    ProgressCallback,
    UrlResolver,
    VideoReference,
)
from .storage.media import TransientWorkspace

logger = logging.getLogger(__name__)


class _Run:
    """Stage bookkeeping for one invocation."""

    def __init__(
        self,
        label: str,
        on_progress: ProgressCallback | None,
        cancel: CancellationToken | None,
    ):
        self.label = label
        self.on_progress = on_progress
        self.cancel = cancel
        self.stage = PipelineStage.RESOLVING

    def enter(self, stage: PipelineStage, message: str) -> None:
        check(self.cancel)
        self.stage = stage
        logger.info("[%s] %s", self.label, message)
        if self.on_progress:
            self.on_progress(stage, message)

    def fail(self, error: Exception) -> VideoIngestError:
        """Tag the error with the current stage and report the failure."""
        failed_at = self.stage
        if isinstance(error, VideoIngestError):
            if error.stage is None:
                error.stage = failed_at.value
            wrapped = error
        else:
            wrapped = StageError(failed_at.value, error)

        self.stage = PipelineStage.FAILED
        logger.error("[%s] %s", self.label, wrapped)
        if self.on_progress:
            self.on_progress(PipelineStage.FAILED, str(wrapped))
        return wrapped


class VideoIngestService:
    """Resolve, download and sample a video into frames plus an audio track.

    Each call to ``extract`` is independent: all files it creates are
    namespaced by a fresh invocation id, so the service can be shared
    across threads.
    """

    def __init__(
        self,
        resolver: UrlResolver,
        fetcher: MediaFetcher,
        processor: MediaProcessor,
        settings: Settings | None = None,
    ):
        self.resolver = resolver
        self.fetcher = fetcher
        self.processor = processor
        self.settings = settings or default_settings

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "VideoIngestService":
        """Create a service with default dependencies.

        Raises:
            DependencyError: ffmpeg or ffprobe cannot be found
        """
        settings = settings or default_settings
        toolkit = Toolkit.discover(settings)
        return cls(
            resolver=StrategyResolver.default(settings, toolkit.ytdlp),
            fetcher=HttpFetcher(settings),
            processor=FFmpegProcessor(settings, toolkit),
            settings=settings,
        )

    def extract(
        self,
        reference: str,
        timestamps: list[int] | None = None,
        on_progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ExtractionResult:
        """
        Full ingestion pipeline for a page URL or direct media URL.

        Args:
            reference: Video page URL, direct media URL, or local file path
            timestamps: Optional second offsets overriding the sampler
            on_progress: Optional callback for stage transitions
            cancel: Optional token to abort the invocation

        Returns:
            ExtractionResult; the caller owns and must delete ``audio_path``

        Raises:
            VideoIngestError: a subclass naming the failed stage
        """
        local = Path(reference).expanduser()
        if "://" not in reference and local.is_file():
            return self.extract_file(local, timestamps, on_progress, cancel)

        ref = VideoReference.parse(reference)
        workspace = TransientWorkspace.from_settings(self.settings)
        run = _Run(workspace.invocation_id[:8], on_progress, cancel)

        with workspace:
            try:
                run.enter(PipelineStage.RESOLVING, f"Resolving {ref.url}")
                media = self.resolver.resolve(ref, workspace.video_path, cancel)

                if media.local_path is not None:
                    run.enter(PipelineStage.DOWNLOADING, f"Validating {media.strategy} download")
                    self.fetcher.validate(media.local_path)
                    video_path = media.local_path
                else:
                    run.enter(PipelineStage.DOWNLOADING, f"Downloading via {media.strategy}")
                    video_path = self.fetcher.download(media, workspace.video_path, cancel).path

                result = self._process(video_path, workspace, timestamps, run)
                result.strategy = media.strategy
                return result
            except VideoIngestError as e:
                raise run.fail(e)
            except Exception as e:
                raise run.fail(e) from e

    def extract_file(
        self,
        video_path: Path,
        timestamps: list[int] | None = None,
        on_progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ExtractionResult:
        """Run the pipeline on a caller-owned local file (e.g. an upload).

        The input file is never deleted.
        """
        workspace = TransientWorkspace.from_settings(self.settings)
        run = _Run(workspace.invocation_id[:8], on_progress, cancel)

        with workspace:
            try:
                if not video_path.is_file():
                    run.stage = PipelineStage.PROBING
                    raise ProbeError(f"video file not found: {video_path}")
                result = self._process(video_path, workspace, timestamps, run)
                result.strategy = "local"
                return result
            except VideoIngestError as e:
                raise run.fail(e)
            except Exception as e:
                raise run.fail(e) from e

    def _process(
        self,
        video_path: Path,
        workspace: TransientWorkspace,
        timestamps: list[int] | None,
        run: _Run,
    ) -> ExtractionResult:
        """Probe, sample, capture frames and extract audio."""
        run.enter(PipelineStage.PROBING, "Probing media")
        metadata = self.processor.probe(video_path, run.cancel)

        run.enter(PipelineStage.SAMPLING, f"Sampling {metadata.duration:.1f}s of video")
        points = choose_timestamps(metadata.duration, timestamps, self.settings.max_samples)

        run.enter(PipelineStage.EXTRACTING_FRAMES, f"Extracting {len(points)} frames at {points}")
        frames = extract_frames(self.processor, video_path, points, workspace.frame_path, run.cancel)

        run.enter(PipelineStage.EXTRACTING_AUDIO, "Extracting audio")
        self.processor.extract_audio(video_path, workspace.audio_path, run.cancel)
        check(run.cancel)
        audio_path = workspace.release_audio()

        run.enter(PipelineStage.DONE, f"Extracted {len(frames)} frames and audio")
        return ExtractionResult(
            frames=frames,
            audio_path=audio_path,
            metadata=metadata,
            timestamps=points,
        )
