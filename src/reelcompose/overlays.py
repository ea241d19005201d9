"""Cue overlays — each script cue rendered to a transparent PNG patch.

A patch is the cue text drawn over a rounded box in the configured box
color and opacity, sized to the text plus box_border padding. Patches are
staged next to the clips and fed to ffmpeg as extra image inputs; the
filter graph only references them by input index, so cue text never
appears in the graph description.
"""

from io import BytesIO

from PIL import Image, ImageDraw, ImageFont

from .common import parse_hex_color
from .errors import InvalidPlanError
from .graph import RenderSettings
from .staging import StagedMedia, StagingArea
from .timing import ScriptCue

OVERLAY_BORDER_RADIUS = 12


def cue_image_name(index: int) -> str:
    """File name of the staged patch for cue *index*."""
    return f"cue_{index:03d}.png"


def render_overlay_patch(
    text: str,
    font: ImageFont.FreeTypeFont,
    color: tuple[int, int, int],
    box_color: tuple[int, int, int],
    box_opacity: float,
    padding: int,
) -> Image.Image:
    """Render text on a semi-transparent rounded box.

    Args:
        text: Single line of text. Not wrapped.
        font: Loaded font at the output size.
        color: RGB text color, drawn fully opaque.
        box_color: RGB box color.
        box_opacity: Box alpha in [0, 1].
        padding: Box padding around the text bounds, in pixels.

    Returns:
        RGBA image sized to the text plus padding.
    """
    draw_tmp = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    left, top, right, bottom = draw_tmp.textbbox((0, 0), text, font=font)
    patch_w = max(1, right - left + 2 * padding)
    patch_h = max(1, bottom - top + 2 * padding)

    img = Image.new("RGBA", (patch_w, patch_h), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)

    alpha = max(0, min(255, round(box_opacity * 255)))
    draw.rounded_rectangle(
        [(0, 0), (patch_w - 1, patch_h - 1)],
        radius=min(OVERLAY_BORDER_RADIUS, padding),
        fill=(*box_color, alpha),
    )

    # textbbox is offset from the origin by the font's bearings.
    draw.text((padding - left, padding - top), text, fill=(*color, 255), font=font)
    return img


def stage_cue_images(
    cues: list[ScriptCue],
    font_path: str,
    staging: StagingArea,
    settings: RenderSettings | None = None,
) -> list[StagedMedia]:
    """Render one PNG patch per cue into the staging area, in cue order.

    Raises:
        InvalidPlanError: A cue has no text left after sanitization.
    """
    settings = settings or RenderSettings()
    font = ImageFont.truetype(str(font_path), size=settings.font_size)
    color = parse_hex_color(settings.font_color)
    box_color = parse_hex_color(settings.box_color)

    staged = []
    for i, cue in enumerate(cues):
        if not cue.display_text:
            raise InvalidPlanError(f"Cue {i}: text is empty after sanitization")
        patch = render_overlay_patch(
            cue.display_text, font, color, box_color,
            settings.box_opacity, settings.box_border,
        )
        buf = BytesIO()
        patch.save(buf, format="PNG")
        staged.append(staging.put(f"cue[{i}]", cue_image_name(i), buf.getvalue()))
    return staged
