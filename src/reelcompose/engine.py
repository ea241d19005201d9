"""One render attempt, end to end.

    request -> validate script/duration (fail fast, before any fetch)
            -> StagingArea (fresh per attempt)
            -> stage clips + audio + font
            -> render cue patches -> build RenderPlan
            -> execute with ffmpeg (progress, cancellation)
            -> package bytes, release staging

The staging area is released on every exit path: success, any error, and
cancellation.
"""

import time
from dataclasses import dataclass

from .graph import RenderSettings, build_plan
from .overlays import stage_cue_images
from .package import RenderedArtifact, package_output
from .render import CancelToken, ProgressSink, execute_plan, expected_output_duration
from .staging import StagingArea, stage_font, stage_inputs
from .timing import plan_cues

OUTPUT_NAME = "output.mp4"


@dataclass(frozen=True)
class RenderRequest:
    """Caller input for one reel render."""

    clip_urls: tuple[str, ...]
    script: str
    target_duration: float
    audio_location: str | None = None
    font_location: str | None = None

    def __post_init__(self):
        # Accept any sequence for clip_urls but store an immutable tuple.
        object.__setattr__(self, "clip_urls", tuple(self.clip_urls))


def render_reel(
    request: RenderRequest,
    on_progress: ProgressSink | None = None,
    cancel: CancelToken | None = None,
    settings: RenderSettings | None = None,
    quiet: bool = False,
    staging_root: str | None = None,
) -> RenderedArtifact:
    """Render *request* into an mp4 artifact.

    Args:
        request: Clips, optional audio, script and target duration.
        on_progress: Optional sink for progress fractions in [0, 1].
        cancel: Optional CancelToken to abandon the attempt.
        settings: Output geometry, encoding and text style.
        quiet: Suppress status lines.
        staging_root: Parent directory for the per-attempt staging area.

    Returns:
        RenderedArtifact with the encoded video bytes.

    Raises:
        EmptyScriptError, InvalidPlanError: Bad script, duration or inputs.
        FetchError: A clip or the font could not be fetched.
        RenderError: ffmpeg failed.
        RenderCancelled: *cancel* was set.
        OutputMissingError: ffmpeg succeeded without producing output.
    """
    settings = settings or RenderSettings()

    # Validate the cheap parts before fetching anything.
    cues = plan_cues(request.script, request.target_duration)

    with StagingArea(staging_root) as staging:
        t0 = time.monotonic()
        clips, audio = stage_inputs(
            list(request.clip_urls),
            request.audio_location,
            staging,
            timeout=settings.fetch_timeout,
            workers=settings.fetch_workers,
            cancel=cancel,
            quiet=quiet,
        )
        font = stage_font(request.font_location, staging, timeout=settings.fetch_timeout)
        cue_images = stage_cue_images(cues, str(font.path), staging, settings)

        plan = build_plan(
            [str(clip.path) for clip in clips],
            cues,
            [str(image.path) for image in cue_images],
            audio_path=str(audio.path) if audio else None,
            settings=settings,
        )
        expected = expected_output_duration(plan)

        if not quiet:
            print(
                f"  PLAN   {len(plan.video_stages)} clip(s), {len(plan.overlays)} cue(s), "
                f"{'with' if plan.audio else 'no'} audio, "
                f"{staging.total_bytes / 1e6:.1f} MB staged"
            )
            if expected:
                print(f"  RENDER expected duration ~{expected:.1f}s")

        output_path = staging.path_for(OUTPUT_NAME)
        execute_plan(
            plan, output_path,
            on_progress=on_progress,
            cancel=cancel,
            expected_duration=expected,
        )
        artifact = package_output(output_path, staging, plan)

    if not quiet:
        elapsed = time.monotonic() - t0
        print(f"  DONE   {artifact.size / 1e6:.1f} MB {artifact.mime_type}, {elapsed:.1f}s wall")
    return artifact
