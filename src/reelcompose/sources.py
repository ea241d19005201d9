"""Helpers at the boundary with external collaborators.

The script generator, stock-footage search and narration service live
outside reelcompose. These helpers shape their inputs and outputs so the
results can be handed straight to a RenderRequest.
"""

import base64

SCRIPT_PROMPT = """Generate a {duration}-second {style} reel script about "{topic}".

Requirements:
- Create 5-7 short, punchy lines (each line should be 1-2 sentences max)
- Each line should be impactful and engaging
- Style: {style}
- Format: Return each line on a new line, no numbering
- Keep it concise for a {duration}-second video
- Make it viral-worthy and attention-grabbing"""


def build_script_prompt(topic: str, style: str, duration: float) -> str:
    """Prompt for the script-generation service (one cue per output line)."""
    if not topic or not topic.strip():
        raise ValueError("Script prompt needs a non-empty topic")
    return SCRIPT_PROMPT.format(topic=topic.strip(), style=style, duration=f"{duration:g}")


def pick_portrait_file(video_files: list[dict]) -> dict | None:
    """Pick the largest portrait rendition from a stock-footage search result.

    Each entry is a dict with at least 'width', 'height' and 'link'.
    Landscape, square and dimensionless entries are ignored.
    """
    portrait = [
        f for f in video_files
        if f.get("width") and f.get("height") and f["height"] > f["width"] and f.get("link")
    ]
    if not portrait:
        return None
    return max(portrait, key=lambda f: f["width"] * f["height"])


def narration_data_url(audio: bytes, mime_type: str = "audio/mpeg") -> str | None:
    """Encode a narration payload as a data: URL, or None for no narration."""
    if not audio:
        return None
    return f"data:{mime_type};base64,{base64.b64encode(audio).decode('ascii')}"
