"""Timing planner — turns a script into contiguous on-screen text cues.

Each non-blank script line becomes one cue. Cue durations are proportional
to the line's word count:

    duration_i = total_duration * words_i / sum(words)

Boundaries accumulate left to right from 0, so every cue starts exactly
where the previous one ended. The last cue always ends at total_duration.

Cue text is sanitized here (control characters dropped, whitespace
collapsed). It is drawn into images by the overlays module and is never
written into the ffmpeg filter graph.
"""

import math
import re
from dataclasses import dataclass

from .errors import EmptyScriptError, InvalidPlanError

EPSILON = 1e-6

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


@dataclass(frozen=True)
class ScriptCue:
    """One line of script shown on screen during [start, end)."""

    text: str
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def display_text(self) -> str:
        """Text as it is drawn on screen."""
        return sanitize_text(self.text)


# ── Script parsing ───────────────────────────────────────────────


def word_count(line: str) -> int:
    """Number of whitespace-separated words in a line."""
    return len(line.split())


def script_lines(script: str) -> list[str]:
    """Split a script on line breaks, dropping lines with no words."""
    return [line.strip() for line in script.splitlines() if word_count(line) > 0]


# ── Cue planning ─────────────────────────────────────────────────


def plan_cues(script: str, duration: float) -> list[ScriptCue]:
    """Compute word-count-weighted cues spanning [0, duration].

    Args:
        script: Free text, one cue per line. Blank lines are ignored.
        duration: Target total duration in seconds. Must be positive.

    Returns:
        Ordered, contiguous, non-overlapping list of ScriptCue.

    Raises:
        EmptyScriptError: No line contains any words.
        InvalidPlanError: Duration is not a positive finite number.
    """
    if (
        isinstance(duration, bool)
        or not isinstance(duration, (int, float))
        or not math.isfinite(duration)
        or duration <= 0
    ):
        raise InvalidPlanError(f"Target duration must be a positive number, got {duration!r}")

    lines = script_lines(script or "")
    if not lines:
        raise EmptyScriptError("Script has no non-blank lines")

    weights = [word_count(line) for line in lines]
    total_weight = sum(weights)

    cues = []
    start = 0.0
    for line, weight in zip(lines, weights):
        end = start + duration * weight / total_weight
        cues.append(ScriptCue(text=line, start=start, end=end))
        start = end

    # Floating accumulation can drift a few ulps from the target; the last
    # cue always ends exactly on it.
    last = cues[-1]
    if last.end != duration:
        cues[-1] = ScriptCue(text=last.text, start=last.start, end=float(duration))

    return cues


# ── Text sanitization ────────────────────────────────────────────


def sanitize_text(text: str) -> str:
    """Drop control characters and collapse runs of whitespace."""
    text = _CONTROL_CHARS.sub(" ", text)
    return " ".join(text.split())


