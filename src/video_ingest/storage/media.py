"""Transient media file management."""

import logging
import uuid
from pathlib import Path

from ..config import Settings

logger = logging.getLogger(__name__)


def new_invocation_id() -> str:
    """Collision-free identifier embedded in every file of one invocation."""
    return uuid.uuid4().hex


def _remove(path: Path) -> bool:
    """Best-effort delete; never raises."""
    try:
        path.unlink(missing_ok=True)
        return True
    except OSError as e:
        logger.warning("Could not delete %s: %s", path, e)
        return False


class TransientWorkspace:
    """Namespaced file paths for one pipeline invocation.

    All files live directly in the shared transient directory and carry the
    invocation id, so concurrent invocations never collide. Used as a
    context manager, the workspace deletes the video and any frame files
    on exit. The audio file survives a clean exit, since the caller takes
    ownership of it, and is deleted when the block raises.
    """

    def __init__(self, root: Path, invocation_id: str | None = None, audio_format: str = "mp3"):
        self.root = root
        self.invocation_id = invocation_id or new_invocation_id()
        self.audio_format = audio_format
        self.keep_audio = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "TransientWorkspace":
        return cls(settings.temp_directory, audio_format=settings.audio_format)

    @property
    def video_path(self) -> Path:
        """Path to the downloaded video file."""
        return self.root / f"video_{self.invocation_id}.mp4"

    @property
    def audio_path(self) -> Path:
        """Path to the extracted audio file."""
        return self.root / f"audio_{self.invocation_id}.{self.audio_format}"

    def frame_path(self, timestamp: int) -> Path:
        """Path to the intermediate image for one timestamp."""
        return self.root / f"frame_{self.invocation_id}_{timestamp}.jpg"

    def frame_files(self) -> list[Path]:
        """Frame files of this invocation still on disk."""
        if not self.root.exists():
            return []
        return sorted(self.root.glob(f"frame_{self.invocation_id}_*.jpg"))

    def ensure(self) -> Path:
        """Create the shared transient directory if absent."""
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def cleanup_intermediates(self) -> None:
        """Remove the video and any leftover frame files."""
        _remove(self.video_path)
        for frame in self.frame_files():
            _remove(frame)

    def cleanup(self) -> None:
        """Remove everything this invocation created."""
        self.cleanup_intermediates()
        _remove(self.audio_path)

    def release_audio(self) -> Path:
        """Hand the audio file over to the caller; it survives cleanup."""
        self.keep_audio = True
        return self.audio_path

    def __enter__(self) -> "TransientWorkspace":
        self.ensure()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None and self.keep_audio:
            self.cleanup_intermediates()
        else:
            self.cleanup()


def get_storage_stats(root: Path) -> dict:
    """Get usage statistics of the transient directory."""
    if not root.exists():
        return {"total_size": 0, "file_count": 0, "files": []}

    files = []
    total_size = 0

    for path in root.iterdir():
        if path.is_file():
            size = path.stat().st_size
            files.append({"name": path.name, "size_bytes": size})
            total_size += size

    return {
        "total_size": total_size,
        "total_size_mb": round(total_size / (1024 * 1024), 2),
        "file_count": len(files),
        "files": files,
    }
