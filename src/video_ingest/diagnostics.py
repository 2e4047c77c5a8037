"""Environment self-check for the ingestion pipeline."""

import logging

import requests

from .config import Settings
from .config import settings as default_settings
from .ingestion.tools import find_binary
from .storage.media import get_storage_stats, new_invocation_id

logger = logging.getLogger(__name__)


def check_environment(settings: Settings | None = None, probe_network: bool = False) -> dict:
    """Report which external dependencies the pipeline can reach.

    Args:
        settings: Settings to check (default: module settings)
        probe_network: Also POST a known page to the resolution API

    Returns:
        Dict with one entry per dependency and an overall ``ok`` flag
    """
    settings = settings or default_settings
    report: dict = {}

    for name, explicit in (
        ("ffmpeg", settings.ffmpeg_binary),
        ("ffprobe", settings.ffprobe_binary),
        ("yt-dlp", settings.ytdlp_binary),
    ):
        path = find_binary(name, explicit)
        report[name] = {"found": path is not None, "path": path}

    temp_dir = settings.temp_directory
    try:
        temp_dir.mkdir(parents=True, exist_ok=True)
        probe_file = temp_dir / f"probe_{new_invocation_id()}.txt"
        probe_file.write_text("ok")
        probe_file.unlink()
        report["temp_dir"] = {"writable": True, "path": str(temp_dir), **get_storage_stats(temp_dir)}
    except OSError as e:
        report["temp_dir"] = {"writable": False, "path": str(temp_dir), "error": str(e)}

    if probe_network:
        try:
            response = requests.post(
                settings.resolver_api_url,
                data={"url": "https://www.tiktok.com/@tiktok/video/6584647400055855365", "hd": "1"},
                headers={"User-Agent": settings.user_agent},
                timeout=settings.resolver_api_timeout,
            )
            payload = response.json()
            report["resolver_api"] = {
                "reachable": True,
                "code": payload.get("code") if isinstance(payload, dict) else None,
                "has_data": bool(isinstance(payload, dict) and payload.get("data")),
            }
        except (requests.RequestException, ValueError) as e:
            logger.warning("Resolution API unreachable: %s", e)
            report["resolver_api"] = {"reachable": False, "error": str(e)}

    report["ok"] = (
        report["ffmpeg"]["found"] and report["ffprobe"]["found"] and report["temp_dir"]["writable"]
    )
    return report
