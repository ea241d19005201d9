"""Shared test fixtures for reelcompose tests."""

import subprocess

import pytest
import imageio_ffmpeg
from PIL import Image

from reelcompose.common import find_font_file
from reelcompose.graph import RenderSettings

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()

# Tiny output frame keeps ffmpeg integration tests fast. Still 9:16.
SMALL_SETTINGS = RenderSettings(width=108, height=192, fps=10, font_size=12, box_border=2)


def _make_video(path, size=(320, 240), duration=2.0, color="blue", audio=False):
    """Write a solid-color test clip with the bundled ffmpeg."""
    w, h = size
    cmd = [
        _FFMPEG, "-y",
        "-f", "lavfi", "-i", f"color=c={color}:s={w}x{h}:d={duration}:r=10",
    ]
    if audio:
        cmd += ["-f", "lavfi", "-i", "anullsrc=r=44100:cl=mono", "-shortest"]
    cmd += ["-c:v", "libx264", "-crf", "28", "-pix_fmt", "yuv420p"]
    cmd += ["-c:a", "aac", "-b:a", "32k"] if audio else ["-an"]
    cmd.append(str(path))
    subprocess.run(cmd, check=True, capture_output=True)
    return path


@pytest.fixture
def make_video(tmp_path):
    """Factory: make_video(name, size=(w, h), duration=s, color=c) -> Path."""
    def _factory(name="clip.mp4", **kwargs):
        return _make_video(tmp_path / name, **kwargs)
    return _factory


@pytest.fixture
def source_video(make_video):
    """A 2-second 320x240 landscape clip."""
    return make_video("source.mp4", size=(320, 240), duration=2.0)


@pytest.fixture
def narration_audio(tmp_path):
    """A 1.5-second mp3 sine tone standing in for narration."""
    out = tmp_path / "narration.mp3"
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", "sine=frequency=440:duration=1.5",
            "-c:a", "libmp3lame", "-b:a", "64k",
            str(out),
        ],
        check=True,
        capture_output=True,
    )
    return out


@pytest.fixture
def font_path():
    """A locally installed font, or skip when the machine has none."""
    path = find_font_file()
    if path is None:
        pytest.skip("No local font available for cue text")
    return path


@pytest.fixture
def cue_images(tmp_path):
    """Factory: cue_images(n) -> n semi-transparent PNG patches, no font needed."""
    def _factory(n):
        paths = []
        for i in range(n):
            path = tmp_path / f"cue_{i:03d}.png"
            Image.new("RGBA", (40, 12), (0, 0, 0, 128)).save(path)
            paths.append(str(path))
        return paths
    return _factory


@pytest.fixture
def small_settings():
    return SMALL_SETTINGS
