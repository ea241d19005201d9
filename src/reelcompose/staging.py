"""Media input loader — fetch clips, audio and font into a staging area.

Every render attempt gets its own StagingArea: a freshly created temp
directory that is removed when the attempt ends, whatever the outcome.
File names inside it (video_000.mp4, audio.mp3, ...) are only unique per
attempt, so staging areas are never shared between attempts.

Locations may be:
  - http(s) URLs, fetched with requests
  - data: URLs (narration arrives as data:audio/mpeg;base64,...)
  - file:// URLs or plain local paths

Failure policy: any video clip or font that cannot be fetched raises
FetchError. A failed audio fetch only prints a warning and the render
continues video-only.
"""

import base64
import shutil
import tempfile
import uuid
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from urllib.parse import unquote, unquote_to_bytes, urlparse

import requests
from PIL import ImageFont

from .common import find_font_file
from .errors import FetchError, InvalidPlanError, RenderCancelled

DEFAULT_TIMEOUT = 30.0
CHUNK_SIZE = 65536
CANCEL_POLL_INTERVAL = 0.1

# Extension fallbacks when a location carries none.
_MIME_EXTENSIONS = {
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/aac": ".aac",
    "audio/mp4": ".m4a",
    "audio/ogg": ".ogg",
    "video/mp4": ".mp4",
    "video/quicktime": ".mov",
    "video/webm": ".webm",
    "font/ttf": ".ttf",
    "font/otf": ".otf",
}


@dataclass(frozen=True)
class ClipSource:
    """A caller-supplied clip location and its playback position."""

    index: int
    url: str


@dataclass(frozen=True)
class StagedMedia:
    """A local file inside a staging area, tagged with its role."""

    role: str
    path: Path
    size: int


# ── Staging area ─────────────────────────────────────────────────


class StagingArea:
    """Per-attempt scratch directory, released on every exit path.

    Usage:
        with StagingArea() as staging:
            staging.put("audio", "audio.mp3", data)
    """

    def __init__(self, root: str | Path | None = None):
        self.attempt_id = uuid.uuid4().hex[:12]
        self.path = Path(tempfile.mkdtemp(
            prefix=f"reelcompose-{self.attempt_id}-",
            dir=str(root) if root else None,
        ))
        self.media: list[StagedMedia] = []
        self.released = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    def path_for(self, name: str) -> Path:
        """Path for a file named *name* inside this staging area."""
        if self.released:
            raise RuntimeError(f"Staging area {self.attempt_id} already released")
        return self.path / name

    def put(self, role: str, name: str, data: bytes) -> StagedMedia:
        """Write *data* to the staging area and record it under *role*."""
        path = self.path_for(name)
        path.write_bytes(data)
        staged = StagedMedia(role=role, path=path, size=len(data))
        self.media.append(staged)
        return staged

    @property
    def total_bytes(self) -> int:
        return sum(m.size for m in self.media)

    def release(self) -> None:
        """Delete everything staged for this attempt. Safe to call twice."""
        if self.released:
            return
        self.released = True
        self.media = []
        shutil.rmtree(self.path, ignore_errors=True)


# ── Fetching ─────────────────────────────────────────────────────


def _decode_data_url(location: str) -> tuple[bytes, str]:
    """Decode a data: URL into (payload, mime type)."""
    header, sep, payload = location[5:].partition(",")
    if not sep:
        raise FetchError("Malformed data URL (no ',' separator)", location=location[:40])
    params = header.split(";")
    mime = params[0] or "text/plain"
    if "base64" in params[1:]:
        try:
            return base64.b64decode(payload, validate=False), mime
        except ValueError as e:
            raise FetchError(f"Malformed base64 data URL: {e}", location=location[:40]) from e
    return unquote_to_bytes(payload), mime


def fetch_bytes(location: str, timeout: float = DEFAULT_TIMEOUT, cancel=None) -> bytes:
    """Fetch raw bytes from an http(s) URL, data: URL, file:// URL or path.

    *cancel* is checked between downloaded chunks.

    Raises:
        FetchError: The location cannot be read or returns an error status.
        RenderCancelled: *cancel* was set during a download.
    """
    if location.startswith("data:"):
        return _decode_data_url(location)[0]

    parsed = urlparse(location)
    if parsed.scheme in ("http", "https"):
        try:
            with requests.get(location, timeout=timeout, stream=True) as r:
                r.raise_for_status()
                chunks = []
                for chunk in r.iter_content(CHUNK_SIZE):
                    _check_cancel(cancel)
                    chunks.append(chunk)
                return b"".join(chunks)
        except requests.RequestException as e:
            raise FetchError(f"Failed to fetch {location}: {e}", location=location) from e

    path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(location)
    try:
        return path.read_bytes()
    except OSError as e:
        raise FetchError(f"Failed to read {location}: {e}", location=location) from e


def _extension_for(location: str, default: str) -> str:
    """Pick a file extension for a staged copy of *location*."""
    if location.startswith("data:"):
        mime = location[5:].split(";", 1)[0].split(",", 1)[0]
        return _MIME_EXTENSIONS.get(mime, default)
    suffix = Path(urlparse(location).path).suffix.lower()
    if suffix and len(suffix) <= 6 and suffix[1:].isalnum():
        return suffix
    return default


def _check_cancel(cancel) -> None:
    if cancel is not None and cancel.cancelled:
        raise RenderCancelled("Render cancelled during input staging")


# ── Staging ──────────────────────────────────────────────────────


def stage_inputs(
    clip_urls: list[str],
    audio_location: str | None,
    staging: StagingArea,
    timeout: float = DEFAULT_TIMEOUT,
    workers: int = 4,
    cancel=None,
    quiet: bool = False,
) -> tuple[list[StagedMedia], StagedMedia | None]:
    """Fetch every clip (in parallel) and the optional audio track.

    Args:
        clip_urls: Ordered clip locations, 1..N.
        audio_location: Optional narration location.
        staging: The attempt's staging area.
        timeout: Per-request network timeout in seconds.
        workers: Max concurrent clip fetches.
        cancel: Optional CancelToken, polled while fetches are in flight.
        quiet: Suppress status lines.

    Returns:
        (staged clips in caller order, staged audio or None).

    Raises:
        InvalidPlanError: No clip locations given.
        FetchError: Any clip could not be fetched.
        RenderCancelled: Cancellation was requested.
    """
    if not clip_urls:
        raise InvalidPlanError("At least one clip location is required")
    _check_cancel(cancel)

    sources = [ClipSource(index=i, url=url) for i, url in enumerate(clip_urls)]

    def _fetch_clip(source: ClipSource) -> bytes:
        role = f"video[{source.index}]"
        try:
            data = fetch_bytes(source.url, timeout=timeout, cancel=cancel)
        except FetchError as e:
            raise FetchError(f"Clip {source.index}: {e}", location=source.url, role=role) from e
        if not data:
            raise FetchError(
                f"Clip {source.index}: empty payload from {source.url}",
                location=source.url, role=role,
            )
        return data

    pool = ThreadPoolExecutor(max_workers=max(1, min(workers, len(sources))))
    futures = [pool.submit(_fetch_clip, source) for source in sources]
    try:
        pending = set(futures)
        while pending:
            done, pending = wait(pending, timeout=CANCEL_POLL_INTERVAL, return_when=FIRST_EXCEPTION)
            _check_cancel(cancel)
            for future in done:
                future.result()
        payloads = [future.result() for future in futures]
    finally:
        # Fetches still in flight after a failure or cancel are abandoned.
        pool.shutdown(wait=False, cancel_futures=True)

    clips = []
    for source, data in zip(sources, payloads):
        ext = _extension_for(source.url, ".mp4")
        staged = staging.put(f"video[{source.index}]", f"video_{source.index:03d}{ext}", data)
        if not quiet:
            print(f"  FETCH  video[{source.index}]  {len(data) / 1e6:.1f} MB  {source.url[:80]}")
        clips.append(staged)

    audio = None
    if audio_location:
        try:
            data = fetch_bytes(audio_location, timeout=timeout, cancel=cancel)
        except FetchError as e:
            if not quiet:
                print(f"  WARN   audio unavailable, rendering video-only ({e})")
        else:
            if data:
                ext = _extension_for(audio_location, ".mp3")
                audio = staging.put("audio", f"audio{ext}", data)
                if not quiet:
                    print(f"  FETCH  audio  {len(data) / 1e6:.1f} MB")
            elif not quiet:
                print("  WARN   audio payload is empty, rendering video-only")
        _check_cancel(cancel)

    return clips, audio


def stage_font(
    font_location: str | None,
    staging: StagingArea,
    timeout: float = DEFAULT_TIMEOUT,
) -> StagedMedia:
    """Stage a font for text overlays and check that Pillow can load it.

    Without a location, the first installed font from FONT_PATHS is used.

    Raises:
        FetchError: No font available, or the font data is unusable.
    """
    if font_location is None:
        local = find_font_file()
        if local is None:
            raise FetchError("No font location given and no local font found", role="font")
        font_location = str(local)

    data = fetch_bytes(font_location, timeout=timeout)
    try:
        ImageFont.truetype(BytesIO(data), size=12)
    except OSError as e:
        raise FetchError(
            f"Font at {font_location} is not a usable font: {e}",
            location=font_location, role="font",
        ) from e

    ext = _extension_for(font_location, ".ttf")
    return staging.put("font", f"font{ext}", data)
