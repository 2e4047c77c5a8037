"""Stream resolved media to transient storage."""

import logging
import threading
import time
from pathlib import Path

import requests

from ..cancellation import CancellationToken, check
from ..config import Settings
from ..exceptions import DownloadError, VideoIngestError
from ..interfaces import DownloadedMedia, ResolvedMedia

logger = logging.getLogger(__name__)


class HttpFetcher:
    """Download media over HTTP with browser-like headers."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def build_headers(self, media: ResolvedMedia) -> dict[str, str]:
        """Headers a platform CDN expects from a browser."""
        headers = {
            "User-Agent": self.settings.user_agent,
            "Accept": "*/*",
        }
        if media.referer:
            headers["Referer"] = media.referer
            headers["Origin"] = media.referer.rstrip("/")
        return headers

    def download(
        self,
        media: ResolvedMedia,
        dest_path: Path,
        cancel: CancellationToken | None = None,
    ) -> DownloadedMedia:
        """Stream ``media.url`` to ``dest_path`` and validate the result.

        Raises:
            DownloadError: network failure, timeout, non-2xx status or an
                undersized/HTML payload
        """
        dest_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._stream(media, dest_path, cancel)
        except BaseException:
            dest_path.unlink(missing_ok=True)
            raise

        downloaded = self.validate(dest_path)
        logger.info(
            "Downloaded %.2f MB via %s", downloaded.size_bytes / 1024 / 1024, media.strategy
        )
        return downloaded

    def _stream(
        self,
        media: ResolvedMedia,
        dest_path: Path,
        cancel: CancellationToken | None,
    ) -> None:
        deadline = time.monotonic() + self.settings.download_timeout

        try:
            with requests.Session() as session:
                session.max_redirects = self.settings.max_redirects
                with session.get(
                    media.url,
                    headers=self.build_headers(media),
                    stream=True,
                    allow_redirects=True,
                    timeout=(self.settings.connect_timeout, self.settings.download_timeout),
                ) as response:
                    if not 200 <= response.status_code < 300:
                        raise DownloadError(f"HTTP {response.status_code} from {media.url}")

                    content_type = response.headers.get("Content-Type", "").lower()
                    if content_type.startswith("text/html"):
                        raise DownloadError(f"got an HTML page instead of media from {media.url}")

                    # A server trickling bytes keeps resetting the read timeout,
                    # so the deadline closes the response from a watchdog thread.
                    expired = threading.Event()

                    def expire() -> None:
                        expired.set()
                        response.close()

                    watchdog = threading.Timer(max(0.0, deadline - time.monotonic()), expire)
                    watchdog.daemon = True
                    watchdog.start()
                    try:
                        self._write_body(response, dest_path, cancel, deadline, expired)
                    except VideoIngestError:
                        raise
                    except Exception as e:
                        if expired.is_set():
                            raise self._timed_out() from e
                        raise
                    finally:
                        watchdog.cancel()
        except requests.RequestException as e:
            raise DownloadError(str(e)) from e
        except OSError as e:
            raise DownloadError(f"could not write {dest_path.name}: {e}") from e

    def _write_body(
        self,
        response: requests.Response,
        dest_path: Path,
        cancel: CancellationToken | None,
        deadline: float,
        expired: threading.Event,
    ) -> None:
        with open(dest_path, "wb") as f:
            for chunk in response.iter_content(chunk_size=self.settings.download_chunk_size):
                check(cancel)
                if expired.is_set() or time.monotonic() > deadline:
                    raise self._timed_out()
                if chunk:
                    f.write(chunk)

        # A closed response can end the stream early instead of raising
        if expired.is_set():
            raise self._timed_out()

    def _timed_out(self) -> DownloadError:
        return DownloadError(f"timed out after {self.settings.download_timeout:g}s")

    def validate(self, path: Path) -> DownloadedMedia:
        """Reject missing or undersized files, which are error responses in disguise."""
        if not path.exists():
            raise DownloadError(f"file not created: {path.name}")

        size = path.stat().st_size
        if size <= self.settings.min_video_bytes:
            path.unlink(missing_ok=True)
            raise DownloadError(
                f"payload too small ({size} bytes <= {self.settings.min_video_bytes}), "
                "likely a blocked or error response"
            )

        return DownloadedMedia(path=path, size_bytes=size)
