"""reelcompose.common — shared utilities for reel rendering.

Contains: the bundled ffmpeg binary, path variable resolution, hex color
parsing, font file lookup, and media duration probing.
"""

import re
from pathlib import Path

import imageio_ffmpeg
from moviepy import AudioFileClip, VideoFileClip

FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()


# ── Font paths ─────────────────────────────────────────────────────
# Used when a render request does not name a font location.

FONT_PATHS = [
    Path.home() / ".local/share/fonts/Inter.ttc",
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
    Path("/usr/share/fonts/dejavu/DejaVuSans.ttf"),
    Path("/Library/Fonts/Arial.ttf"),
    Path("C:/Windows/Fonts/arial.ttf"),
]


# ── Color utilities ────────────────────────────────────────────────

def parse_hex_color(hex_str: str) -> tuple[int, int, int]:
    """Convert '#RRGGBB' or 'RRGGBB' string to (R, G, B) tuple."""
    hex_str = hex_str.lstrip("#")
    if len(hex_str) != 6 or not all(c in "0123456789abcdefABCDEF" for c in hex_str):
        raise ValueError(f"Invalid hex color: '#{hex_str}'")
    return (int(hex_str[0:2], 16), int(hex_str[2:4], 16), int(hex_str[4:6], 16))


# ── Path utilities ─────────────────────────────────────────────────

def resolve_path_vars(text: str, paths: dict[str, str]) -> str:
    """Replace ${name} variables in a string using the paths dict."""
    def _replace(match):
        key = match.group(1)
        if key not in paths:
            raise ValueError(f"Unknown path variable: ${{{key}}}")
        return paths[key]
    return re.sub(r"\$\{(\w+)\}", _replace, text)


# ── Font lookup ────────────────────────────────────────────────────

def find_font_file() -> Path | None:
    """Return the first locally installed font from FONT_PATHS, or None."""
    for font_path in FONT_PATHS:
        if font_path.exists():
            return font_path
    return None


# ── Duration probing ───────────────────────────────────────────────

def probe_duration(path: str | Path, audio: bool = False) -> float | None:
    """Probe a media file's duration in seconds using moviepy.

    imageio_ffmpeg does not bundle ffprobe, so the duration comes from
    moviepy's reader. Returns None when the file cannot be read.
    """
    reader = AudioFileClip if audio else VideoFileClip
    try:
        with reader(str(path)) as clip:
            return clip.duration
    except (OSError, KeyError):
        return None
