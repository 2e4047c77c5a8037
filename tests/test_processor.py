"""Tests for video_ingest.ingestion.processor module."""

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from video_ingest.exceptions import AudioExtractionError, NoFramesError, ProbeError, ToolError, ToolTimeout
from video_ingest.ingestion.processor import FFmpegProcessor, extract_frames
from video_ingest.ingestion.tools import Toolkit

TOOLKIT = Toolkit(ffmpeg="/usr/bin/ffmpeg", ffprobe="/usr/bin/ffprobe")


@pytest.fixture
def processor(settings) -> FFmpegProcessor:
    return FFmpegProcessor(settings, TOOLKIT)


@pytest.fixture
def video(tmp_path: Path) -> Path:
    path = tmp_path / "video.mp4"
    path.write_bytes(b"\x00" * 2048)
    return path


def probe_output(fmt: dict) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess([], 0, json.dumps({"format": fmt}), "")


def is_accurate(cmd: list[str]) -> bool:
    return cmd.index("-i") < cmd.index("-ss")


class TestProbe:
    def test_reads_duration_and_format(self, processor, video) -> None:
        output = probe_output({"duration": "32.400000", "format_name": "mov,mp4,m4a,3gp,3g2,mj2"})
        with patch("video_ingest.ingestion.processor.run_tool", return_value=output) as run:
            metadata = processor.probe(video)

        assert metadata.duration == pytest.approx(32.4)
        assert metadata.format_name == "mov,mp4,m4a,3gp,3g2,mj2"
        assert not metadata.duration_is_fallback
        assert run.call_args.args[0][0] == "/usr/bin/ffprobe"

    @pytest.mark.parametrize("raw", ["N/A", "0", "0.000000", None])
    def test_missing_duration_falls_back(self, processor, video, settings, raw) -> None:
        fmt = {"format_name": "mp4"}
        if raw is not None:
            fmt["duration"] = raw
        with patch("video_ingest.ingestion.processor.run_tool", return_value=probe_output(fmt)):
            metadata = processor.probe(video)

        assert metadata.duration == settings.fallback_duration
        assert metadata.duration_is_fallback

    def test_unreadable_file_raises(self, processor, video) -> None:
        error = ToolError("ffprobe", 1, "video.mp4: Invalid data found when processing input")
        with patch("video_ingest.ingestion.processor.run_tool", side_effect=error):
            with pytest.raises(ProbeError, match="Invalid data"):
                processor.probe(video)

    def test_missing_file_raises(self, processor, tmp_path: Path) -> None:
        with pytest.raises(ProbeError, match="not found"):
            processor.probe(tmp_path / "gone.mp4")


class TestExtractFrame:
    def test_fast_seek_first(self, processor, video, tmp_path: Path) -> None:
        frame_path = tmp_path / "frame_1_8.jpg"
        calls = []

        def fake_run(cmd, timeout, cancel=None):
            calls.append(cmd)
            Path(cmd[-1]).write_bytes(b"\xff\xd8jpeg")

        with patch("video_ingest.ingestion.processor.run_tool", side_effect=fake_run):
            frame = processor.extract_frame(video, 8, frame_path)

        assert frame.timestamp == 8
        assert frame.data == b"\xff\xd8jpeg"
        assert frame.mime_type == "image/jpeg"
        assert len(calls) == 1
        assert not is_accurate(calls[0])
        assert calls[0][calls[0].index("-frames:v") + 1] == "1"
        assert not frame_path.exists()

    def test_falls_back_to_accurate_seek(self, processor, video, tmp_path: Path) -> None:
        frame_path = tmp_path / "frame_1_16.jpg"
        calls = []

        def fake_run(cmd, timeout, cancel=None):
            calls.append(cmd)
            if not is_accurate(cmd):
                raise ToolError("ffmpeg", 1, "seek failed")
            Path(cmd[-1]).write_bytes(b"\xff\xd8accurate")

        with patch("video_ingest.ingestion.processor.run_tool", side_effect=fake_run):
            frame = processor.extract_frame(video, 16, frame_path)

        assert frame.data == b"\xff\xd8accurate"
        assert [is_accurate(c) for c in calls] == [False, True]
        assert not frame_path.exists()

    def test_empty_output_triggers_fallback(self, processor, video, tmp_path: Path) -> None:
        frame_path = tmp_path / "frame_1_29.jpg"

        def fake_run(cmd, timeout, cancel=None):
            Path(cmd[-1]).write_bytes(b"\xff\xd8ok" if is_accurate(cmd) else b"")

        with patch("video_ingest.ingestion.processor.run_tool", side_effect=fake_run):
            frame = processor.extract_frame(video, 29, frame_path)

        assert frame.data == b"\xff\xd8ok"

    def test_both_modes_fail_skips(self, processor, video, tmp_path: Path, caplog) -> None:
        frame_path = tmp_path / "frame_1_2.jpg"

        def fake_run(cmd, timeout, cancel=None):
            Path(cmd[-1]).write_bytes(b"partial")
            raise ToolTimeout("ffmpeg", 30)

        with patch("video_ingest.ingestion.processor.run_tool", side_effect=fake_run):
            assert processor.extract_frame(video, 2, frame_path) is None

        assert not frame_path.exists()
        assert "Skipping frame at 2s" in caplog.text


class TestExtractFrames:
    class StubProcessor:
        def __init__(self, failing: set[int]):
            self.failing = failing

        def extract_frame(self, video_path, timestamp, frame_path, cancel=None):
            if timestamp in self.failing:
                return None
            from video_ingest.interfaces import Frame

            return Frame(timestamp=timestamp, data=b"img")

    def test_partial_failures_tolerated(self, tmp_path: Path) -> None:
        frames = extract_frames(
            self.StubProcessor({2, 16}), tmp_path / "v.mp4", [0, 2, 8, 16, 29], lambda t: tmp_path / f"{t}.jpg"
        )
        assert [f.timestamp for f in frames] == [0, 8, 29]

    def test_all_fail_raises(self, tmp_path: Path) -> None:
        with pytest.raises(NoFramesError) as excinfo:
            extract_frames(self.StubProcessor({0, 1}), tmp_path / "v.mp4", [0, 1], lambda t: tmp_path / f"{t}.jpg")
        assert excinfo.value.timestamps == [0, 1]

    def test_empty_timestamps_raise(self, tmp_path: Path) -> None:
        with pytest.raises(NoFramesError):
            extract_frames(self.StubProcessor(set()), tmp_path / "v.mp4", [], lambda t: tmp_path / f"{t}.jpg")


class TestExtractAudio:
    def test_transcodes_to_mp3(self, processor, video, tmp_path: Path) -> None:
        audio = tmp_path / "audio.mp3"

        def fake_run(cmd, timeout, cancel=None):
            Path(cmd[-1]).write_bytes(b"ID3")

        with patch("video_ingest.ingestion.processor.run_tool", side_effect=fake_run) as run:
            assert processor.extract_audio(video, audio) == audio

        cmd = run.call_args.args[0]
        assert "-vn" in cmd
        assert cmd[cmd.index("-acodec") + 1] == "libmp3lame"

    def test_failure_raises_and_removes_output(self, processor, video, tmp_path: Path) -> None:
        audio = tmp_path / "audio.mp3"

        def fake_run(cmd, timeout, cancel=None):
            Path(cmd[-1]).write_bytes(b"half")
            raise ToolError("ffmpeg", 1, "Output file #0 does not contain any stream")

        with patch("video_ingest.ingestion.processor.run_tool", side_effect=fake_run):
            with pytest.raises(AudioExtractionError, match="does not contain any stream"):
                processor.extract_audio(video, audio)
        assert not audio.exists()

    def test_no_output_raises(self, processor, video, tmp_path: Path) -> None:
        with patch("video_ingest.ingestion.processor.run_tool"):
            with pytest.raises(AudioExtractionError, match="no audio"):
                processor.extract_audio(video, tmp_path / "audio.mp3")
