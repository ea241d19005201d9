"""Output packager — hand the rendered bytes to the caller and clean up."""

from dataclasses import dataclass
from pathlib import Path

from .errors import OutputMissingError
from .graph import RenderPlan
from .staging import StagingArea


@dataclass(frozen=True)
class RenderedArtifact:
    """Encoded output video, owned by the caller."""

    data: bytes
    mime_type: str = "video/mp4"
    container: str = "mp4"

    @property
    def size(self) -> int:
        return len(self.data)

    def write(self, path: str | Path) -> Path:
        """Write the artifact to *path*, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.data)
        return path


def package_output(
    output_path: str | Path,
    staging: StagingArea,
    plan: RenderPlan,
) -> RenderedArtifact:
    """Read the rendered file into memory and release the staging area.

    The staging area is released even when the output is missing.

    Raises:
        OutputMissingError: ffmpeg succeeded but left no (or an empty) file.
    """
    output_path = Path(output_path)
    try:
        if not output_path.is_file() or output_path.stat().st_size == 0:
            raise OutputMissingError(
                f"Render reported success but produced no output at {output_path}"
            )
        data = output_path.read_bytes()
    finally:
        staging.release()

    return RenderedArtifact(
        data=data,
        mime_type=plan.encode.mime_type,
        container=plan.encode.container,
    )
