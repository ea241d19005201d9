"""Filter graph builder — N clips + cue images + optional audio -> RenderPlan.

The plan is an ordered sequence of tagged stages rather than a hand-built
command line, so it can be inspected and tested without running ffmpeg:

  1. ScaleCropStage per input: scale to cover the target frame, then
     center-crop to exactly WxH. Every stream entering concat has the same
     geometry, which is what concat requires.
  2. ConcatStage: inputs joined in caller order. Clips are not trimmed, so
     the video duration is the sum of the clip durations.
  3. OverlayStage per cue: the cue's pre-rendered PNG patch, centered and
     enabled only while t is in [start, end), chained one after another on
     the concatenated stream.
  4. AudioMapStage (only with audio): the audio input is the sole audio
     output, and the output ends with the shorter stream.
  5. EncodeStage: libx264 + aac, fast preset, mp4.

Inputs are numbered clips first, then cue images, then audio:

    ffmpeg -i clip0 ... -i clipN-1 -i cue0.png ... -i cueK-1.png [-i audio]
        -filter_complex "[0:v]scale=...[v0];...;[v0][v1]concat=...[vcat];
                         [vcat][N:v]overlay=...[t0];[t0][N+1:v]overlay=...[t1]"
        -map [t1] [-map N+K:a -shortest | -an] -c:v libx264 ... out.mp4
"""

from dataclasses import dataclass, field
from typing import ClassVar

from .common import FFMPEG
from .errors import InvalidPlanError
from .timing import EPSILON, ScriptCue


# ── Settings ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class RenderSettings:
    """Output frame, encoding, text style, and fetch settings for a render."""

    width: int = 1080
    height: int = 1920
    fps: int = 30
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    preset: str = "ultrafast"
    pixel_format: str = "yuv420p"
    font_size: int = 48
    font_color: str = "#FFFFFF"
    box_color: str = "#000000"
    box_opacity: float = 0.5
    box_border: int = 5
    fetch_timeout: float = 30.0
    fetch_workers: int = 4


# ── Stages ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ScaleCropStage:
    kind: ClassVar[str] = "scale_crop"

    input_index: int
    source: str
    width: int
    height: int
    fps: int
    pixel_format: str = "yuv420p"

    @property
    def label(self) -> str:
        return f"v{self.input_index}"

    def filter(self) -> str:
        w, h = self.width, self.height
        return (
            f"[{self.input_index}:v]"
            f"scale={w}:{h}:force_original_aspect_ratio=increase,"
            f"crop={w}:{h},setsar=1,fps={self.fps},format={self.pixel_format}"
            f"[{self.label}]"
        )


@dataclass(frozen=True)
class ConcatStage:
    kind: ClassVar[str] = "concat"

    inputs: tuple[str, ...]
    label: str = "vcat"

    def filter(self) -> str:
        ins = "".join(f"[{lbl}]" for lbl in self.inputs)
        return f"{ins}concat=n={len(self.inputs)}:v=1:a=0[{self.label}]"


@dataclass(frozen=True)
class OverlayStage:
    kind: ClassVar[str] = "overlay"

    cue: ScriptCue
    input_label: str
    label: str
    image_index: int
    image_path: str

    def filter(self) -> str:
        # A single-frame image input repeats its last frame (eof_action=repeat).
        window = f"gte(t,{self.cue.start:.3f})*lt(t,{self.cue.end:.3f})"
        return (
            f"[{self.input_label}][{self.image_index}:v]"
            f"overlay=x=(W-w)/2:y=(H-h)/2:enable='{window}'"
            f"[{self.label}]"
        )


@dataclass(frozen=True)
class AudioMapStage:
    kind: ClassVar[str] = "audio_map"

    input_index: int
    source: str
    duration_policy: str = "shortest"

    @property
    def stream(self) -> str:
        return f"{self.input_index}:a"


@dataclass(frozen=True)
class EncodeStage:
    kind: ClassVar[str] = "encode"

    video_codec: str = "libx264"
    audio_codec: str = "aac"
    preset: str = "ultrafast"
    pixel_format: str = "yuv420p"
    container: str = "mp4"
    mime_type: str = "video/mp4"


# ── Plan ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RenderPlan:
    """A fully resolved, immutable description of one render."""

    video_stages: tuple[ScaleCropStage, ...]
    concat: ConcatStage
    overlays: tuple[OverlayStage, ...]
    audio: AudioMapStage | None
    encode: EncodeStage = field(default_factory=EncodeStage)

    def __post_init__(self):
        if not self.video_stages:
            raise InvalidPlanError("Render plan needs at least one video input")
        sizes = {(s.width, s.height) for s in self.video_stages}
        if len(sizes) > 1:
            raise InvalidPlanError(
                f"Video stages disagree on output resolution: {sorted(sizes)}"
            )

    @property
    def stages(self) -> tuple:
        """All stages in graph order."""
        tail = (self.audio,) if self.audio else ()
        return (*self.video_stages, self.concat, *self.overlays, *tail, self.encode)

    @property
    def resolution(self) -> tuple[int, int]:
        first = self.video_stages[0]
        return first.width, first.height

    @property
    def output_label(self) -> str:
        if self.overlays:
            return self.overlays[-1].label
        return self.concat.label

    def filter_complex(self) -> str:
        parts = [stage.filter() for stage in self.video_stages]
        parts.append(self.concat.filter())
        parts.extend(stage.filter() for stage in self.overlays)
        return ";".join(parts)

    def ffmpeg_args(self, output_path: str, ffmpeg: str = FFMPEG) -> list[str]:
        """Full ffmpeg argv for this plan, writing to *output_path*."""
        inputs = []
        for stage in self.video_stages:
            inputs.extend(["-i", stage.source])
        for stage in self.overlays:
            inputs.extend(["-i", stage.image_path])
        if self.audio:
            inputs.extend(["-i", self.audio.source])

        maps = ["-map", f"[{self.output_label}]"]
        if self.audio:
            maps.extend(["-map", self.audio.stream])
            if self.audio.duration_policy == "shortest":
                maps.append("-shortest")
            codec_args = [
                "-c:v", self.encode.video_codec,
                "-preset", self.encode.preset,
                "-pix_fmt", self.encode.pixel_format,
                "-c:a", self.encode.audio_codec,
            ]
        else:
            codec_args = [
                "-c:v", self.encode.video_codec,
                "-preset", self.encode.preset,
                "-pix_fmt", self.encode.pixel_format,
                "-an",
            ]

        return [
            ffmpeg, "-y", "-hide_banner", "-loglevel", "error",
            "-nostats", "-progress", "pipe:1",
            *inputs,
            "-filter_complex", self.filter_complex(),
            *maps,
            *codec_args,
            "-movflags", "+faststart",
            "-f", self.encode.container,
            str(output_path),
        ]

    def describe(self) -> list[str]:
        """Human-readable summary, one line per stage."""
        w, h = self.resolution
        lines = []
        for stage in self.video_stages:
            lines.append(f"scale_crop  [{stage.input_index}] {stage.source} -> {w}x{h}")
        lines.append(f"concat      {len(self.concat.inputs)} input(s)")
        for stage in self.overlays:
            cue = stage.cue
            lines.append(f"overlay     {cue.start:7.2f}s - {cue.end:7.2f}s  {cue.text}")
        if self.audio:
            lines.append(f"audio_map   {self.audio.source} ({self.audio.duration_policy})")
        enc = self.encode
        lines.append(
            f"encode      {enc.video_codec}/{enc.audio_codec} "
            f"preset={enc.preset} {enc.container}"
        )
        return lines


# ── Builder ──────────────────────────────────────────────────────


def build_plan(
    video_paths: list[str],
    cues: list[ScriptCue],
    cue_images: list[str],
    audio_path: str | None = None,
    settings: RenderSettings | None = None,
) -> RenderPlan:
    """Build a RenderPlan from staged inputs and a cue sequence.

    Args:
        video_paths: Local clip paths, in playback order. At least one.
        cues: Contiguous cue sequence from timing.plan_cues.
        cue_images: One rendered patch per cue, in cue order.
        audio_path: Optional narration track; replaces any clip audio.
        settings: Output geometry and encoding.

    Returns:
        Immutable RenderPlan.

    Raises:
        InvalidPlanError: No videos, no cues, a cue with empty text after
            sanitization, a cue without an image, overlapping cues, or bad
            output geometry.
    """
    settings = settings or RenderSettings()

    if not video_paths:
        raise InvalidPlanError("Render plan needs at least one video input")
    if not cues:
        raise InvalidPlanError("Render plan needs at least one cue")
    if len(cue_images) != len(cues):
        raise InvalidPlanError(
            f"Render plan needs one image per cue, got {len(cue_images)} for {len(cues)} cue(s)"
        )

    w, h = settings.width, settings.height
    if w <= 0 or h <= 0 or w % 2 or h % 2:
        raise InvalidPlanError(
            f"Output resolution must be positive and even, got {w}x{h}"
        )
    if settings.fps <= 0:
        raise InvalidPlanError(f"Output fps must be positive, got {settings.fps}")

    for i, cue in enumerate(cues):
        if not cue.display_text:
            raise InvalidPlanError(f"Cue {i}: text is empty after sanitization")
        if cue.end <= cue.start:
            raise InvalidPlanError(
                f"Cue {i}: end ({cue.end}) must be after start ({cue.start})"
            )
        if i > 0 and cue.start < cues[i - 1].end - EPSILON:
            raise InvalidPlanError(f"Cue {i}: overlaps the previous cue")

    video_stages = tuple(
        ScaleCropStage(
            input_index=i,
            source=str(path),
            width=w,
            height=h,
            fps=settings.fps,
            pixel_format=settings.pixel_format,
        )
        for i, path in enumerate(video_paths)
    )
    concat = ConcatStage(inputs=tuple(stage.label for stage in video_stages))

    overlays = []
    current = concat.label
    for i, (cue, image) in enumerate(zip(cues, cue_images)):
        stage = OverlayStage(
            cue=cue,
            input_label=current,
            label=f"t{i}",
            image_index=len(video_stages) + i,
            image_path=str(image),
        )
        overlays.append(stage)
        current = stage.label

    audio = None
    if audio_path is not None:
        audio = AudioMapStage(
            input_index=len(video_stages) + len(overlays),
            source=str(audio_path),
        )

    encode = EncodeStage(
        video_codec=settings.video_codec,
        audio_codec=settings.audio_codec,
        preset=settings.preset,
        pixel_format=settings.pixel_format,
    )

    return RenderPlan(
        video_stages=video_stages,
        concat=concat,
        overlays=tuple(overlays),
        audio=audio,
        encode=encode,
    )
