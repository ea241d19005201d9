"""Error taxonomy for a render attempt.

Validation errors (EmptyScriptError, InvalidPlanError) are raised before
any ffmpeg work begins and also subclass ValueError. Everything else is
fatal for the attempt and propagates to the caller unmodified; nothing in
reelcompose retries.
"""


class ReelComposeError(Exception):
    """Base class for all reelcompose errors."""


class FetchError(ReelComposeError):
    """A required input (video clip or font) could not be retrieved."""

    def __init__(self, message: str, location: str | None = None, role: str | None = None):
        super().__init__(message)
        self.location = location
        self.role = role


class EmptyScriptError(ReelComposeError, ValueError):
    """The script has no lines containing words."""


class InvalidPlanError(ReelComposeError, ValueError):
    """A render plan cannot be built from the given inputs."""


class RenderError(ReelComposeError):
    """ffmpeg exited with a failure. ``diagnostic`` is its stderr, verbatim."""

    def __init__(self, message: str, returncode: int | None = None, diagnostic: str = ""):
        if diagnostic:
            message = f"{message}\n{diagnostic}"
        super().__init__(message)
        self.returncode = returncode
        self.diagnostic = diagnostic


class RenderCancelled(ReelComposeError):
    """The caller cancelled the render attempt."""


class OutputMissingError(ReelComposeError):
    """ffmpeg reported success but produced no output file."""
