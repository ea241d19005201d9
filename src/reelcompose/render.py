"""Render executor — run a RenderPlan through ffmpeg with progress.

ffmpeg is started with ``-progress pipe:1``, which writes key=value blocks
to stdout every half second or so. The ``out_time_us`` value divided by the
expected output duration gives the completion fraction. Fractions are
forwarded through a ProgressReporter that only passes strictly increasing
values, and nothing at all once cancellation has been requested.

Callers must not wait for a final 1.0: the return of execute_plan is the
signal that the output is ready. stderr goes to an unnamed temp file (not a
pipe, so a chatty ffmpeg cannot block on a full buffer) and is attached
verbatim to RenderError on failure.
"""

import subprocess
import tempfile
import threading
from contextlib import nullcontext
from pathlib import Path
from typing import Callable

from .common import probe_duration
from .errors import RenderCancelled, RenderError
from .graph import RenderPlan

CANCEL_POLL_INTERVAL = 0.1
TERMINATE_GRACE = 5.0

ProgressSink = Callable[[float], None]


class CancelToken:
    """Thread-safe cancellation flag shared between caller and render.

    ``lock`` is held by cancel() and by progress delivery, so once cancel()
    returns no further progress sample reaches the caller.
    """

    def __init__(self):
        self._event = threading.Event()
        self.lock = threading.RLock()

    def cancel(self) -> None:
        with self.lock:
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or *timeout* elapses. True if cancelled."""
        return self._event.wait(timeout)


class ProgressReporter:
    """Forwards monotonic progress fractions to a single sink."""

    def __init__(self, sink: ProgressSink | None, cancel: CancelToken | None = None):
        self._sink = sink
        self._cancel = cancel
        self.last = -1.0

    def report(self, fraction: float) -> None:
        if self._sink is None:
            return
        fraction = min(1.0, max(0.0, fraction))
        with self._cancel.lock if self._cancel is not None else nullcontext():
            if self._cancel is not None and self._cancel.cancelled:
                return
            if fraction <= self.last:
                return
            self.last = fraction
            self._sink(fraction)


# ── Progress parsing ─────────────────────────────────────────────


def parse_progress_time(line: str) -> float | None:
    """Return output time in seconds from one ``-progress`` line, or None.

    ffmpeg emits out_time_us and out_time_ms (both in microseconds, the
    latter for historical reasons) and out_time as HH:MM:SS.micro.
    Values are "N/A" before the first frame is written.
    """
    key, sep, value = line.strip().partition("=")
    if not sep or value in ("", "N/A"):
        return None
    try:
        if key in ("out_time_us", "out_time_ms"):
            return max(0.0, int(value) / 1_000_000)
        if key == "out_time":
            h, m, s = value.split(":")
            return max(0.0, int(h) * 3600 + int(m) * 60 + float(s))
    except ValueError:
        return None
    return None


def expected_output_duration(plan: RenderPlan) -> float | None:
    """Sum of clip durations, clamped to the audio duration when mapped.

    Returns None if any input cannot be probed; progress is then not
    reported.
    """
    total = 0.0
    for stage in plan.video_stages:
        duration = probe_duration(stage.source)
        if duration is None:
            return None
        total += duration

    if plan.audio is not None and plan.audio.duration_policy == "shortest":
        audio_duration = probe_duration(plan.audio.source, audio=True)
        if audio_duration is not None:
            total = min(total, audio_duration)

    return total if total > 0 else None


# ── Execution ────────────────────────────────────────────────────


def _terminate(process: subprocess.Popen) -> None:
    """Stop ffmpeg, escalating to kill if it ignores SIGTERM."""
    if process.poll() is not None:
        return
    process.terminate()
    try:
        process.wait(timeout=TERMINATE_GRACE)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()


def _watch_cancel(process: subprocess.Popen, cancel: CancelToken) -> None:
    """Terminate *process* as soon as *cancel* is set, or return when it exits."""
    while process.poll() is None:
        if cancel.wait(CANCEL_POLL_INTERVAL):
            _terminate(process)
            return


def execute_plan(
    plan: RenderPlan,
    output_path: str | Path,
    on_progress: ProgressSink | None = None,
    cancel: CancelToken | None = None,
    expected_duration: float | None = None,
) -> Path:
    """Execute *plan* with ffmpeg, writing to *output_path*. Blocks until done.

    Args:
        plan: The render plan to execute.
        output_path: Destination file.
        on_progress: Optional sink for fractions in [0, 1]. May be called
            any number of times, including never.
        cancel: Optional CancelToken. When set, ffmpeg is terminated and
            RenderCancelled is raised.
        expected_duration: Output duration in seconds used to turn ffmpeg's
            out_time into a fraction. None disables progress.

    Returns:
        The output path.

    Raises:
        RenderError: ffmpeg could not start or exited non-zero.
        RenderCancelled: Cancellation was requested.
    """
    if cancel is not None and cancel.cancelled:
        raise RenderCancelled("Render cancelled before ffmpeg started")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    cmd = plan.ffmpeg_args(str(output_path))
    reporter = ProgressReporter(on_progress, cancel)

    with tempfile.TemporaryFile(mode="w+", encoding="utf-8", errors="replace") as err:
        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=err,
                stdin=subprocess.DEVNULL,
                text=True,
                bufsize=1,
            )
        except OSError as e:
            raise RenderError(f"Could not start ffmpeg: {e}") from e

        watcher = None
        if cancel is not None:
            watcher = threading.Thread(
                target=_watch_cancel, args=(process, cancel), daemon=True,
            )
            watcher.start()

        try:
            for line in process.stdout:
                if cancel is not None and cancel.cancelled:
                    break
                seconds = parse_progress_time(line)
                if seconds is not None and expected_duration:
                    reporter.report(seconds / expected_duration)
            if cancel is not None and cancel.cancelled:
                _terminate(process)
            process.wait()
        finally:
            _terminate(process)
            process.stdout.close()
            if watcher is not None:
                watcher.join()

        if cancel is not None and cancel.cancelled:
            raise RenderCancelled("Render cancelled")

        if process.returncode != 0:
            err.seek(0)
            raise RenderError(
                f"ffmpeg exited with code {process.returncode}",
                returncode=process.returncode,
                diagnostic=err.read().strip(),
            )

    return output_path
