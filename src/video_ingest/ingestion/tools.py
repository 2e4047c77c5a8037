"""External tool discovery and subprocess execution."""

import logging
import os
import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from ..cancellation import CancellationToken
from ..config import Settings
from ..exceptions import DependencyError, ToolError, ToolTimeout

logger = logging.getLogger(__name__)

COMMON_BIN_DIRS = ("/usr/bin", "/usr/local/bin", "/opt/homebrew/bin")

# Granularity of cancellation checks while a subprocess runs
POLL_INTERVAL = 0.25


def find_binary(name: str, explicit: str | None = None) -> str | None:
    """Locate an executable by explicit path, PATH lookup, then common dirs."""
    if explicit:
        if Path(explicit).is_file() and os.access(explicit, os.X_OK):
            return explicit
        found = shutil.which(explicit)
        if found:
            return found
        logger.warning("Configured %s binary not usable: %s", name, explicit)
        return None

    found = shutil.which(name)
    if found:
        return found

    for directory in COMMON_BIN_DIRS:
        candidate = Path(directory) / name
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
    return None


@dataclass(frozen=True)
class Toolkit:
    """Resolved paths of the external binaries used by the pipeline."""

    ffmpeg: str
    ffprobe: str
    ytdlp: str | None = None

    @classmethod
    def discover(cls, settings: Settings) -> "Toolkit":
        """Find binaries once; ffmpeg and ffprobe are required, yt-dlp is not."""
        ffmpeg = find_binary("ffmpeg", settings.ffmpeg_binary)
        if ffmpeg is None:
            raise DependencyError(
                "ffmpeg",
                "binary not found",
                install_hint="Install ffmpeg or set VIDEO_INGEST_FFMPEG_BINARY",
            )

        ffprobe = find_binary("ffprobe", settings.ffprobe_binary)
        if ffprobe is None:
            # ffprobe normally ships next to ffmpeg
            sibling = Path(ffmpeg).with_name("ffprobe")
            if sibling.is_file():
                ffprobe = str(sibling)
            else:
                raise DependencyError(
                    "ffprobe",
                    "binary not found",
                    install_hint="Install ffmpeg or set VIDEO_INGEST_FFPROBE_BINARY",
                )

        ytdlp = find_binary("yt-dlp", settings.ytdlp_binary)
        if ytdlp is None:
            logger.info("yt-dlp not found; downloader fallback disabled")

        logger.debug("Toolkit: ffmpeg=%s ffprobe=%s yt-dlp=%s", ffmpeg, ffprobe, ytdlp)
        return cls(ffmpeg=ffmpeg, ffprobe=ffprobe, ytdlp=ytdlp)


def run_tool(
    cmd: list[str],
    timeout: float,
    cancel: CancellationToken | None = None,
) -> subprocess.CompletedProcess:
    """Run an argument vector without a shell.

    Raises:
        ToolError: non-zero exit status
        ToolTimeout: the process outlived ``timeout`` and was killed
        PipelineCancelled: the token was triggered; the process is killed
    """
    tool = Path(cmd[0]).name
    logger.debug("Running %s with %d args", tool, len(cmd) - 1)

    try:
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except OSError as e:
        raise ToolError(tool, -1, f"could not start: {e}") from e
    deadline = time.monotonic() + timeout
    try:
        while True:
            if cancel is not None and cancel.cancelled:
                proc.kill()
                proc.communicate()
                cancel.raise_if_cancelled()
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                proc.kill()
                proc.communicate()
                raise ToolTimeout(tool, timeout)
            try:
                stdout, stderr = proc.communicate(timeout=min(POLL_INTERVAL, remaining))
                break
            except subprocess.TimeoutExpired:
                continue
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait()

    if proc.returncode != 0:
        raise ToolError(tool, proc.returncode, stderr or "")

    return subprocess.CompletedProcess(cmd, proc.returncode, stdout, stderr)
