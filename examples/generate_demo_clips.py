#!/usr/bin/env python3
"""Generate synthetic source clips for the demo job manifest.

Creates clips with mixed orientations in examples/demo-clips/: landscape,
portrait and square, so the uniform 1080x1920 scale/crop is easy to see.
Each clip is a solid color with its name drawn in the middle, so crop
centering is visible in the rendered reel.

Usage:
    python examples/generate_demo_clips.py
    # Then render:
    reelcompose render --manifest examples/demo-job.yaml --output examples/demo-reel.mp4
"""

import numpy as np
from moviepy import ImageClip
from pathlib import Path
from PIL import Image, ImageDraw, ImageFont

OUTPUT_DIR = Path(__file__).resolve().parent / "demo-clips"
FPS = 30

# (name, color, size, duration). Sizes cover all three orientations.
CLIPS = [
    ("clip-01", (180, 60, 60),  (1280, 720),  4.0),  # red, landscape
    ("clip-02", (60, 60, 180),  (720, 1280),  4.0),  # blue, portrait
    ("clip-03", (60, 160, 60),  (720, 720),   4.0),  # green, square
]


def _make_frame(name: str, color: tuple[int, int, int], size: tuple[int, int]) -> np.ndarray:
    """Solid color frame with the clip name centered in white."""
    img = Image.new("RGB", size, color)
    draw = ImageDraw.Draw(img)
    try:
        font = ImageFont.truetype(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", size[1] // 10
        )
    except OSError:
        font = ImageFont.load_default()
    bbox = draw.textbbox((0, 0), name, font=font)
    tw, th = bbox[2] - bbox[0], bbox[3] - bbox[1]
    draw.text(((size[0] - tw) / 2, (size[1] - th) / 2), name, fill=(255, 255, 255), font=font)
    return np.array(img)


def main():
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    for name, color, size, duration in CLIPS:
        out = OUTPUT_DIR / f"{name}.mp4"
        if out.exists():
            print(f"  skip {name} (exists)")
            continue

        clip = ImageClip(_make_frame(name, color, size), duration=duration)
        clip.write_videofile(str(out), fps=FPS, codec="libx264", audio=False, logger=None)
        print(f"  wrote {name} {size[0]}x{size[1]} ({duration}s)")

    print(f"\nDone. {len(CLIPS)} clips in {OUTPUT_DIR}")


if __name__ == "__main__":
    main()
