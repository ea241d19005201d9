"""reelcompose — vertical reel rendering.

Scale and crop source clips to a 1080x1920 frame, concatenate them, overlay
each script line as timed on-screen text, and mux in an optional narration
track. Cue text is drawn into PNG patches with Pillow; everything else runs
as a single ffmpeg filter graph.
"""
