"""Job manifest loader — one reel render described in YAML.

Follows the same ${var} path resolution as the other manifests.

Job manifest schema:
  video:                         # optional; every key optional
    resolution: [1080, 1920]
    fps: 30
    preset: ultrafast
    font_size: 48
    font_color: "#FFFFFF"
    box_color: "#000000"
    box_opacity: 0.5
    box_border: 5
  paths:
    media: "/data/media"
  clips:
    - "${media}/a.mp4"
    - "https://example.com/b.mp4"
  audio: "${media}/voice.mp3"    # optional
  font: "${media}/font.ttf"      # optional
  duration: 30
  script: |
    Hello world
    This is a test line
  # or instead of script:
  script_file: "${media}/script.txt"
"""

import dataclasses
from pathlib import Path

import yaml

from .common import parse_hex_color, resolve_path_vars
from .engine import RenderRequest
from .graph import RenderSettings

# video.* keys that map straight onto RenderSettings fields.
_VIDEO_INT_KEYS = {"fps", "font_size", "box_border"}
_VIDEO_STR_KEYS = {"preset", "video_codec", "audio_codec"}
_VIDEO_COLOR_KEYS = {"font_color", "box_color"}


def _is_remote(location: str) -> bool:
    return location.startswith(("http://", "https://", "data:", "file://"))


def _load_settings(video: dict) -> RenderSettings:
    """Build RenderSettings from the manifest's video section."""
    overrides = {}

    if "resolution" in video:
        res = video["resolution"]
        if (
            not isinstance(res, (list, tuple))
            or len(res) != 2
            or not all(isinstance(v, int) and not isinstance(v, bool) and v > 0 for v in res)
        ):
            raise ValueError(
                f"Job manifest: video.resolution must be [width, height] positive integers, got {res!r}"
            )
        overrides["width"], overrides["height"] = res[0], res[1]

    for key in _VIDEO_INT_KEYS:
        if key in video:
            value = video[key]
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"Job manifest: video.{key} must be a positive integer, got {value!r}")
            overrides[key] = value

    for key in _VIDEO_STR_KEYS:
        if key in video:
            overrides[key] = str(video[key])

    for key in _VIDEO_COLOR_KEYS:
        if key in video:
            value = str(video[key])
            parse_hex_color(value)  # raises ValueError on bad input
            overrides[key] = value

    if "box_opacity" in video:
        opacity = video["box_opacity"]
        if not isinstance(opacity, (int, float)) or not 0 <= opacity <= 1:
            raise ValueError(f"Job manifest: video.box_opacity must be in [0, 1], got {opacity!r}")
        overrides["box_opacity"] = float(opacity)

    unknown = set(video) - {"resolution", "box_opacity"} - _VIDEO_INT_KEYS \
        - _VIDEO_STR_KEYS - _VIDEO_COLOR_KEYS
    if unknown:
        raise ValueError(f"Job manifest: unknown video settings {sorted(unknown)}")

    return dataclasses.replace(RenderSettings(), **overrides)


def load_job_manifest(manifest_path: str | Path) -> tuple[RenderRequest, RenderSettings]:
    """Load, validate, and normalize a job manifest.

    Processing pipeline:
      1. Parse YAML.
      2. Resolve ${path} variables in clips, audio, font and script_file.
      3. Read script_file if script is not inline.
      4. Validate duration and build RenderSettings from video.*.

    Args:
        manifest_path: Path to the YAML job manifest.

    Returns:
        (RenderRequest, RenderSettings).

    Raises:
        ValueError: Missing/invalid fields.
        FileNotFoundError: script_file does not exist.
    """
    with open(manifest_path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError("Job manifest: top level must be a mapping")

    paths = raw.get("paths", {})

    clips = raw.get("clips")
    if not clips or not isinstance(clips, list):
        raise ValueError("Job manifest: 'clips' must be a non-empty list")
    clips = [resolve_path_vars(str(c), paths) for c in clips]

    if "duration" not in raw:
        raise ValueError("Job manifest: missing required 'duration' field")
    duration = raw["duration"]
    if isinstance(duration, bool) or not isinstance(duration, (int, float)) or duration <= 0:
        raise ValueError(f"Job manifest: duration must be > 0, got {duration!r}")

    if "script" in raw and "script_file" in raw:
        raise ValueError("Job manifest: give either 'script' or 'script_file', not both")
    if "script" in raw:
        script = str(raw["script"])
    elif "script_file" in raw:
        script_path = Path(resolve_path_vars(str(raw["script_file"]), paths))
        if not script_path.exists():
            raise FileNotFoundError(f"Script file not found: {script_path}")
        script = script_path.read_text(encoding="utf-8")
    else:
        raise ValueError("Job manifest: missing required 'script' or 'script_file' field")

    audio = raw.get("audio")
    if audio is not None:
        audio = resolve_path_vars(str(audio), paths)
    font = raw.get("font")
    if font is not None:
        font = resolve_path_vars(str(font), paths)

    request = RenderRequest(
        clip_urls=clips,
        script=script,
        target_duration=float(duration),
        audio_location=audio,
        font_location=font,
    )
    settings = _load_settings(raw.get("video") or {})
    return request, settings


def validate_job_paths(request: RenderRequest) -> None:
    """Check that every local clip and font path exists on disk.

    Remote locations are not checked. A missing local audio file is not an
    error: audio is optional and its absence degrades to video-only.

    Raises:
        FileNotFoundError: Lists all missing files.
    """
    local = [c for c in request.clip_urls if not _is_remote(c)]
    if request.font_location and not _is_remote(request.font_location):
        local.append(request.font_location)

    missing = [p for p in local if not Path(p).exists()]
    if missing:
        msg = f"Missing {len(missing)} input file(s):\n"
        for p in missing:
            msg += f"  - {p}\n"
        raise FileNotFoundError(msg)
