"""Sample timestamp selection."""

import math

DEFAULT_MAX_SAMPLES = 5


def sample_timestamps(duration: float, max_samples: int = DEFAULT_MAX_SAMPLES) -> list[int]:
    """Pick up to ``max_samples`` integer second offsets to capture.

    Points are weighted toward the opening seconds of short-form video
    while still spanning the whole clip: 0, min(2, 10%), 25%, 50%, 90%.
    Each point is floored, duplicates dropped, and anything not strictly
    before ``duration`` discarded.
    """
    if duration <= 0:
        return []

    candidates = [
        0,
        min(2, duration * 0.1),
        duration * 0.25,
        duration * 0.5,
        duration * 0.9,
    ]

    timestamps: list[int] = []
    for point in candidates:
        second = math.floor(point)
        if second < duration and second not in timestamps:
            timestamps.append(second)

    return sorted(timestamps)[:max_samples]


def filter_timestamps(timestamps: list[int], duration: float) -> list[int]:
    """Keep caller-supplied timestamps that fall inside the video, in order."""
    return [t for t in timestamps if 0 <= t < duration]


def choose_timestamps(
    duration: float,
    manual: list[int] | None = None,
    max_samples: int = DEFAULT_MAX_SAMPLES,
) -> list[int]:
    """Use a manual override verbatim when given, otherwise sample."""
    if manual is not None:
        return filter_timestamps(manual, duration)
    return sample_timestamps(duration, max_samples)
