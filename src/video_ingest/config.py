"""Configuration settings for video ingestion."""

import tempfile
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="VIDEO_INGEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    temp_dir: Path = Path(tempfile.gettempdir()) / "video_ingest"

    # Media toolkit (discovered at service construction when unset)
    ffmpeg_binary: str | None = None
    ffprobe_binary: str | None = None
    ytdlp_binary: str | None = None

    # Hosted resolution API
    resolver_api_url: str = "https://www.tikwm.com/api/"
    resolver_api_timeout: float = 15.0
    resolver_api_hd: bool = True

    # External downloader
    ytdlp_timeout: float = 120.0

    # Download
    download_timeout: float = 60.0  # overall, seconds
    connect_timeout: float = 10.0
    max_redirects: int = 5
    download_chunk_size: int = 64 * 1024
    min_video_bytes: int = 1000  # payloads this size or smaller are error pages
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )

    # Sampling
    fallback_duration: float = 30.0  # used when the container has no duration
    max_samples: int = 5  # images per downstream analysis call

    # Subprocess timeouts
    probe_timeout: float = 30.0
    frame_timeout: float = 30.0
    audio_timeout: float = 120.0

    # Encoding
    audio_format: str = "mp3"
    audio_bitrate: str = "128k"
    audio_sample_rate: int = 44100
    frame_quality: int = 2  # ffmpeg -q:v (2 is high quality)

    @property
    def temp_directory(self) -> Path:
        """Get absolute transient directory path."""
        return self.temp_dir.resolve()


settings = Settings()
