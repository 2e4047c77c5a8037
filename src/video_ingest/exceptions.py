"""
video_ingest.exceptions - Custom exception classes.

All pipeline exceptions inherit from VideoIngestError. Fatal errors carry
the stage they occurred in so callers can tell which step failed.
"""


class VideoIngestError(Exception):
    """Base exception for all ingestion errors."""

    stage: str | None = None
    label = "Ingestion"

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(f"{self.label} failed: {message}" if message else f"{self.label} failed")


class ResolutionError(VideoIngestError):
    """Every applicable resolution strategy failed."""

    stage = "resolving"
    label = "Resolution"

    def __init__(self, message: str = "", attempts: list[tuple[str, str]] | None = None):
        self.attempts = attempts or []
        if self.attempts and not message:
            message = "; ".join(f"{name}: {error}" for name, error in self.attempts)
        super().__init__(message)


class DownloadError(VideoIngestError):
    """Network failure, non-2xx response, or undersized payload."""

    stage = "downloading"
    label = "Download"


class ProbeError(VideoIngestError):
    """File unreadable by the media toolkit."""

    stage = "probing"
    label = "Probe"


class NoFramesError(VideoIngestError):
    """No frame survived extraction."""

    stage = "extracting_frames"
    label = "Frame extraction"

    def __init__(self, message: str = "", timestamps: list[int] | None = None):
        self.timestamps = timestamps or []
        if not message:
            message = f"no frames captured at {self.timestamps or 'any timestamp'}"
        super().__init__(message)


class AudioExtractionError(VideoIngestError):
    """Audio transcoding failed."""

    stage = "extracting_audio"
    label = "Audio extraction"


class PipelineCancelled(VideoIngestError):
    """The caller cancelled the invocation."""

    label = "Ingestion"

    def __init__(self, message: str = "cancelled by caller"):
        super().__init__(message)


class DependencyError(VideoIngestError):
    """Required dependency missing or misconfigured."""

    label = "Setup"

    def __init__(self, dependency: str, message: str, install_hint: str | None = None):
        self.dependency = dependency
        self.install_hint = install_hint
        super().__init__(f"{dependency}: {message}")


class StrategyError(Exception):
    """A single resolution strategy failed; the resolver moves on."""

    pass


class ToolError(Exception):
    """An external tool exited with a non-zero status."""

    def __init__(self, tool: str, returncode: int, stderr: str = "", message: str | None = None):
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr
        if message is None:
            detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no output"
            message = f"{tool} exited with status {returncode}: {detail}"
        super().__init__(message)


class ToolTimeout(ToolError):
    """An external tool exceeded its timeout and was killed."""

    def __init__(self, tool: str, timeout: float):
        self.timeout = timeout
        super().__init__(tool, -1, message=f"{tool} timed out after {timeout:.0f}s")


class StageError(VideoIngestError):
    """Unexpected failure inside a pipeline stage."""

    def __init__(self, stage: str, cause: Exception):
        self.stage = stage
        self.label = stage.replace("_", " ").capitalize()
        super().__init__(f"{type(cause).__name__}: {cause}")
