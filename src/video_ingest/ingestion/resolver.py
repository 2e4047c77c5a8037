"""Resolve video references to directly fetchable media."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import urljoin, urlsplit, urlunsplit

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..cancellation import CancellationToken, check
from ..config import Settings
from ..exceptions import ResolutionError, StrategyError, ToolError
from ..interfaces import ResolvedMedia, VideoReference
from .tools import run_tool

logger = logging.getLogger(__name__)


def clean_page_url(url: str) -> str:
    """Strip query string and fragment (tracking parameters) from a page URL."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class ResolutionStrategy(ABC):
    """One way of turning a reference into a fetchable resource."""

    name: str = "strategy"

    @abstractmethod
    def applies_to(self, reference: VideoReference) -> bool:
        """Whether this strategy should be tried for the reference."""
        pass

    @abstractmethod
    def resolve(
        self,
        reference: VideoReference,
        dest_path: Path,
        cancel: CancellationToken | None = None,
    ) -> ResolvedMedia:
        """Resolve the reference.

        Raises:
            StrategyError: this strategy could not produce usable media
        """
        pass


class HostedApiStrategy(ResolutionStrategy):
    """Ask a hosted resolver API for direct play URLs of a platform page.

    The plain ``play`` URL is preferred over ``hdplay``: the HD variant is
    often HEVC, which ffmpeg builds without the decoder cannot read.
    ``wmplay`` (watermarked) is the last resort.
    """

    name = "hosted-api"
    url_fields = ("play", "hdplay", "wmplay")

    def __init__(self, settings: Settings):
        self.settings = settings

    def applies_to(self, reference: VideoReference) -> bool:
        return reference.is_platform

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        reraise=True,
    )
    def _post(self, page_url: str) -> dict:
        response = requests.post(
            self.settings.resolver_api_url,
            data={"url": page_url, "hd": "1" if self.settings.resolver_api_hd else "0"},
            headers={"User-Agent": self.settings.user_agent},
            timeout=self.settings.resolver_api_timeout,
        )
        response.raise_for_status()
        return response.json()

    def pick_url(self, data: dict) -> str | None:
        """Choose the most decodable candidate from the API payload."""
        for field in self.url_fields:
            value = data.get(field)
            if isinstance(value, str) and value.strip():
                return urljoin(self.settings.resolver_api_url, value.strip())
        return None

    def resolve(
        self,
        reference: VideoReference,
        dest_path: Path,
        cancel: CancellationToken | None = None,
    ) -> ResolvedMedia:
        page_url = clean_page_url(reference.url)
        try:
            payload = self._post(page_url)
        except requests.RequestException as e:
            raise StrategyError(f"API request failed: {e}") from e
        except ValueError as e:
            raise StrategyError(f"API returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise StrategyError("API returned unexpected payload")

        code = payload.get("code")
        if code != 0:
            raise StrategyError(f"API error code {code}: {payload.get('msg', 'unknown')}")

        data = payload.get("data")
        url = self.pick_url(data) if isinstance(data, dict) else None
        if not url:
            raise StrategyError("API returned no playable URL")

        return ResolvedMedia(
            url=url,
            strategy=self.name,
            referer=reference.platform.referer if reference.platform else None,
        )


class YtDlpStrategy(ResolutionStrategy):
    """Download the page with yt-dlp straight into transient storage."""

    name = "yt-dlp"

    def __init__(self, settings: Settings, binary: str | None):
        self.settings = settings
        self.binary = binary

    def applies_to(self, reference: VideoReference) -> bool:
        return reference.is_platform

    def resolve(
        self,
        reference: VideoReference,
        dest_path: Path,
        cancel: CancellationToken | None = None,
    ) -> ResolvedMedia:
        if self.binary is None:
            raise StrategyError("yt-dlp binary not available")

        dest_path.parent.mkdir(parents=True, exist_ok=True)
        cmd = [
            self.binary,
            "-f", "best[ext=mp4]/best",
            "--no-playlist",
            "--no-part",
            "--force-overwrites",
            "--quiet",
            "--user-agent", self.settings.user_agent,
            "-o", str(dest_path),
            reference.url,
        ]
        try:
            run_tool(cmd, timeout=self.settings.ytdlp_timeout, cancel=cancel)
        except ToolError as e:
            raise StrategyError(str(e)) from e

        if not dest_path.exists() or dest_path.stat().st_size == 0:
            raise StrategyError("yt-dlp produced no output file")

        return ResolvedMedia(url=reference.url, strategy=self.name, local_path=dest_path)


class DirectUrlStrategy(ResolutionStrategy):
    """Treat a non-platform reference as a direct media URL."""

    name = "direct"

    def applies_to(self, reference: VideoReference) -> bool:
        return not reference.is_platform

    def resolve(
        self,
        reference: VideoReference,
        dest_path: Path,
        cancel: CancellationToken | None = None,
    ) -> ResolvedMedia:
        scheme = urlsplit(reference.url).scheme.lower()
        if scheme not in ("http", "https"):
            raise StrategyError(f"unsupported URL scheme: {scheme or 'none'}")
        return ResolvedMedia(url=reference.url, strategy=self.name)


class StrategyResolver:
    """Try an ordered list of strategies until one yields media."""

    def __init__(self, strategies: list[ResolutionStrategy]):
        self.strategies = strategies

    @classmethod
    def default(cls, settings: Settings, ytdlp_binary: str | None) -> "StrategyResolver":
        return cls(
            [
                HostedApiStrategy(settings),
                YtDlpStrategy(settings, ytdlp_binary),
                DirectUrlStrategy(),
            ]
        )

    def resolve(
        self,
        reference: VideoReference,
        dest_path: Path,
        cancel: CancellationToken | None = None,
    ) -> ResolvedMedia:
        """Return the first successful strategy's media.

        Raises:
            ResolutionError: every applicable strategy failed
        """
        attempts: list[tuple[str, str]] = []

        for strategy in self.strategies:
            if not strategy.applies_to(reference):
                continue
            check(cancel)
            try:
                media = strategy.resolve(reference, dest_path, cancel)
            except StrategyError as e:
                logger.warning("Resolution strategy %s failed for %s: %s", strategy.name, reference.url, e)
                attempts.append((strategy.name, str(e)))
                continue

            logger.info("Resolved %s via %s", reference.url, strategy.name)
            return media

        if not attempts:
            raise ResolutionError(f"no strategy applies to {reference.url}")
        raise ResolutionError(attempts=attempts)
