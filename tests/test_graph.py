"""Tests for the filter graph builder.

These inspect the plan only; nothing here runs ffmpeg.
"""

import pytest

from reelcompose.errors import InvalidPlanError
from reelcompose.graph import (
    AudioMapStage,
    ConcatStage,
    EncodeStage,
    OverlayStage,
    RenderPlan,
    RenderSettings,
    ScaleCropStage,
    build_plan,
)
from reelcompose.timing import ScriptCue, plan_cues


CUES = plan_cues("Hello world\nThis is a test line", 30)
IMAGES = ["cue_000.png", "cue_001.png"]


class TestBuildPlanStages:
    def test_one_scale_crop_stage_per_input(self):
        plan = build_plan(["a.mp4", "b.mp4", "c.mp4"], CUES, IMAGES)
        assert len(plan.video_stages) == 3
        assert all(isinstance(s, ScaleCropStage) for s in plan.video_stages)

    def test_concat_lists_inputs_in_order(self):
        plan = build_plan(["a.mp4", "b.mp4", "c.mp4"], CUES, IMAGES)
        assert [s.source for s in plan.video_stages] == ["a.mp4", "b.mp4", "c.mp4"]
        assert plan.concat.inputs == ("v0", "v1", "v2")
        assert "[v0][v1][v2]concat=n=3:v=1:a=0[vcat]" in plan.filter_complex()

    def test_every_stage_targets_same_portrait_resolution(self):
        plan = build_plan(["landscape.mp4", "portrait.mp4"], CUES, IMAGES)
        sizes = {(s.width, s.height) for s in plan.video_stages}
        assert sizes == {(1080, 1920)}
        assert plan.resolution == (1080, 1920)

    def test_scale_crop_filter(self):
        plan = build_plan(["a.mp4"], CUES, IMAGES)
        f = plan.video_stages[0].filter()
        assert f.startswith("[0:v]scale=1080:1920:force_original_aspect_ratio=increase,")
        assert "crop=1080:1920" in f
        assert f.endswith("[v0]")

    def test_custom_resolution(self):
        settings = RenderSettings(width=540, height=960)
        plan = build_plan(["a.mp4", "b.mp4"], CUES, IMAGES, settings=settings)
        assert all((s.width, s.height) == (540, 960) for s in plan.video_stages)

    def test_one_overlay_per_cue_chained(self):
        plan = build_plan(["a.mp4"], CUES, IMAGES)
        assert len(plan.overlays) == 2
        assert plan.overlays[0].input_label == "vcat"
        assert plan.overlays[1].input_label == plan.overlays[0].label
        assert plan.output_label == plan.overlays[-1].label

    def test_overlay_window_is_half_open(self):
        plan = build_plan(["a.mp4"], CUES, IMAGES)
        f0 = plan.overlays[0].filter()
        f1 = plan.overlays[1].filter()
        assert "enable='gte(t,0.000)*lt(t,8.571)'" in f0
        assert "enable='gte(t,8.571)*lt(t,30.000)'" in f1

    def test_overlay_reads_cue_image_input(self):
        plan = build_plan(["a.mp4", "b.mp4"], CUES, IMAGES)
        f0 = plan.overlays[0].filter()
        f1 = plan.overlays[1].filter()
        assert f0.startswith("[vcat][2:v]overlay=")
        assert f1.startswith("[t0][3:v]overlay=")
        assert "x=(W-w)/2:y=(H-h)/2" in f0
        assert f1.endswith("[t1]")

    def test_cue_text_never_enters_the_graph(self):
        text = "It's 5:00, [ok]; 100% done \\ back"
        cues = plan_cues(text, 3)
        plan = build_plan(["a.mp4"], cues, ["cue_000.png"])
        fc = plan.filter_complex()
        assert "5:00" not in fc
        assert "[ok]" not in fc
        assert fc.count(";") == 2

    def test_stage_order(self):
        plan = build_plan(["a.mp4", "b.mp4"], CUES, IMAGES, audio_path="voice.mp3")
        kinds = [s.kind for s in plan.stages]
        assert kinds == [
            "scale_crop", "scale_crop", "concat",
            "overlay", "overlay", "audio_map", "encode",
        ]


class TestAudio:
    def test_audio_is_next_input_with_shortest_policy(self):
        plan = build_plan(["a.mp4", "b.mp4"], CUES, IMAGES, audio_path="voice.mp3")
        assert isinstance(plan.audio, AudioMapStage)
        assert plan.audio.input_index == 4
        assert plan.audio.duration_policy == "shortest"

        args = plan.ffmpeg_args("out.mp4", ffmpeg="ffmpeg")
        assert args.count("-i") == 5
        assert args[args.index("-map", args.index("-map") + 1) + 1] == "4:a"
        assert "-shortest" in args
        assert "-an" not in args
        assert args[args.index("-c:a") + 1] == "aac"

    def test_no_audio_means_no_audio_stage(self):
        plan = build_plan(["a.mp4"], CUES, IMAGES)
        assert plan.audio is None
        assert all(s.kind != "audio_map" for s in plan.stages)

        args = plan.ffmpeg_args("out.mp4", ffmpeg="ffmpeg")
        assert args.count("-map") == 1
        assert "-shortest" not in args
        assert "-an" in args
        assert "-c:a" not in args


class TestFfmpegArgs:
    def test_encoding_defaults(self):
        plan = build_plan(["a.mp4"], CUES, IMAGES)
        args = plan.ffmpeg_args("out.mp4", ffmpeg="ffmpeg")
        assert args[0] == "ffmpeg"
        assert args[-1] == "out.mp4"
        assert args[args.index("-c:v") + 1] == "libx264"
        assert args[args.index("-preset") + 1] == "ultrafast"
        assert args[args.index("-pix_fmt") + 1] == "yuv420p"
        assert args[args.index("-progress") + 1] == "pipe:1"

    def test_filter_complex_is_single_argument(self):
        plan = build_plan(["a.mp4", "b.mp4"], CUES, IMAGES)
        args = plan.ffmpeg_args("out.mp4", ffmpeg="ffmpeg")
        fc = args[args.index("-filter_complex") + 1]
        assert fc == plan.filter_complex()
        assert fc.count(";") == 2 + 1 + 2 - 1

    def test_inputs_are_clips_then_cue_images(self):
        plan = build_plan(["a.mp4", "b.mp4"], CUES, IMAGES, audio_path="v.mp3")
        args = plan.ffmpeg_args("out.mp4", ffmpeg="ffmpeg")
        inputs = [args[i + 1] for i, a in enumerate(args) if a == "-i"]
        assert inputs == ["a.mp4", "b.mp4", "cue_000.png", "cue_001.png", "v.mp3"]

    def test_maps_final_overlay_label(self):
        plan = build_plan(["a.mp4"], CUES, IMAGES)
        args = plan.ffmpeg_args("out.mp4", ffmpeg="ffmpeg")
        assert args[args.index("-map") + 1] == "[t1]"

    def test_describe_mentions_every_stage(self):
        plan = build_plan(["a.mp4"], CUES, IMAGES, audio_path="v.mp3")
        lines = plan.describe()
        assert len(lines) == 1 + 1 + 2 + 1 + 1
        assert "Hello world" in lines[2]


class TestBuildPlanRejects:
    def test_zero_videos(self):
        with pytest.raises(InvalidPlanError, match="video"):
            build_plan([], CUES, IMAGES)

    def test_empty_cues(self):
        with pytest.raises(InvalidPlanError, match="cue"):
            build_plan(["a.mp4"], [], [])

    def test_missing_cue_image(self):
        with pytest.raises(InvalidPlanError, match="one image per cue"):
            build_plan(["a.mp4"], CUES, IMAGES[:1])

    def test_cue_empty_after_sanitization(self):
        cues = [ScriptCue("\x01\x02", 0.0, 5.0)]
        with pytest.raises(InvalidPlanError, match="empty after sanitization"):
            build_plan(["a.mp4"], cues, ["cue_000.png"])

    def test_overlapping_cues(self):
        cues = [ScriptCue("a", 0.0, 5.0), ScriptCue("b", 4.0, 8.0)]
        with pytest.raises(InvalidPlanError, match="overlaps"):
            build_plan(["a.mp4"], cues, ["cue_000.png", "cue_001.png"])

    def test_zero_length_cue(self):
        cues = [ScriptCue("a", 2.0, 2.0)]
        with pytest.raises(InvalidPlanError, match="end"):
            build_plan(["a.mp4"], cues, ["cue_000.png"])

    @pytest.mark.parametrize("w,h", [(0, 1920), (1080, -2), (1081, 1920)])
    def test_bad_geometry(self, w, h):
        with pytest.raises(InvalidPlanError, match="resolution"):
            build_plan(["a.mp4"], CUES, IMAGES, settings=RenderSettings(width=w, height=h))

    def test_plan_rejects_mismatched_stage_sizes(self):
        stages = (
            ScaleCropStage(0, "a.mp4", 1080, 1920, 30),
            ScaleCropStage(1, "b.mp4", 720, 1280, 30),
        )
        with pytest.raises(InvalidPlanError, match="disagree"):
            RenderPlan(
                video_stages=stages,
                concat=ConcatStage(inputs=("v0", "v1")),
                overlays=(),
                audio=None,
                encode=EncodeStage(),
            )

    def test_plan_is_immutable(self):
        plan = build_plan(["a.mp4"], CUES, IMAGES)
        with pytest.raises(AttributeError):
            plan.audio = AudioMapStage(1, "x.mp3")
        assert isinstance(plan.overlays[0], OverlayStage)
