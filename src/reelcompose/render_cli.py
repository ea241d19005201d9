"""CLI for rendering a reel from a YAML job manifest.

Usage:
    # Render
    reelcompose render --manifest job.yaml --output reel.mp4

    # Validate only (manifest fields, local paths, cue timing)
    reelcompose render --manifest job.yaml --validate

    # Show the plan and ffmpeg command without fetching or rendering
    reelcompose render --manifest job.yaml --output reel.mp4 --dry-run
"""

import argparse
import shlex
import sys

from .common import find_font_file
from .engine import render_reel
from .errors import ReelComposeError
from .graph import build_plan
from .job_manifest import load_job_manifest, validate_job_paths
from .overlays import cue_image_name
from .render import CancelToken
from .timing import plan_cues


def _print_progress(fraction: float) -> None:
    print(f"\r  RENDER {fraction * 100:5.1f}%", end="", flush=True)


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render a vertical reel from clips, a script and optional narration.",
    )
    parser.add_argument(
        "--manifest", required=True,
        help="Path to YAML job manifest",
    )
    parser.add_argument(
        "--output",
        help="Output mp4 path (required unless --validate)",
    )
    parser.add_argument(
        "--validate", action="store_true",
        help="Validate manifest only — check paths and timing, don't render",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Print the render plan and ffmpeg command, don't fetch or render",
    )
    parser.add_argument(
        "--quiet", action="store_true",
        help="Suppress status and progress output",
    )
    parsed = parser.parse_args(args)

    try:
        request, settings = load_job_manifest(parsed.manifest)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if parsed.validate:
        try:
            validate_job_paths(request)
            cues = plan_cues(request.script, request.target_duration)
        except (ValueError, FileNotFoundError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Job manifest valid: {len(request.clip_urls)} clip(s), {len(cues)} cue(s)")
        for i, cue in enumerate(cues):
            print(f"  {i}: {cue.start:6.2f}s - {cue.end:6.2f}s  {cue.text}")
        print(f"Audio: {request.audio_location or 'none'}")
        return

    if not parsed.output:
        parser.error("--output is required (unless using --validate)")

    if parsed.dry_run:
        try:
            cues = plan_cues(request.script, request.target_duration)
            # Cue patches are rendered at staging time; show their staged names.
            plan = build_plan(
                list(request.clip_urls), cues,
                [cue_image_name(i) for i in range(len(cues))],
                audio_path=request.audio_location,
                settings=settings,
            )
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        for line in plan.describe():
            print(f"  {line}")
        font = request.font_location or find_font_file()
        print(f"  font        {font or 'none found, render would fail'}")
        print()
        print(shlex.join(plan.ffmpeg_args(parsed.output)))
        return

    cancel = CancelToken()
    try:
        artifact = render_reel(
            request,
            on_progress=None if parsed.quiet else _print_progress,
            cancel=cancel,
            settings=settings,
            quiet=parsed.quiet,
        )
    except KeyboardInterrupt:
        cancel.cancel()
        print("\nCancelled.", file=sys.stderr)
        sys.exit(130)
    except ReelComposeError as e:
        if not parsed.quiet:
            print()
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    artifact.write(parsed.output)
    if not parsed.quiet:
        print(f"\nDone: {parsed.output}")


if __name__ == "__main__":
    main()
