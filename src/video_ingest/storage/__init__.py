"""Storage module for transient media file management."""

from .media import TransientWorkspace, get_storage_stats, new_invocation_id

__all__ = [
    "TransientWorkspace",
    "get_storage_stats",
    "new_invocation_id",
]
