"""Ingestion module for resolving, downloading and processing videos."""

from .downloader import HttpFetcher
from .processor import FFmpegProcessor, extract_frames
from .resolver import (
    DirectUrlStrategy,
    HostedApiStrategy,
    ResolutionStrategy,
    StrategyResolver,
    YtDlpStrategy,
)
from .sampler import choose_timestamps, sample_timestamps
from .tools import Toolkit, run_tool

__all__ = [
    "HttpFetcher",
    "FFmpegProcessor",
    "extract_frames",
    "ResolutionStrategy",
    "HostedApiStrategy",
    "YtDlpStrategy",
    "DirectUrlStrategy",
    "StrategyResolver",
    "choose_timestamps",
    "sample_timestamps",
    "Toolkit",
    "run_tool",
]
