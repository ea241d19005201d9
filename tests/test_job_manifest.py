"""Tests for the YAML job manifest loader."""

import tempfile

import pytest
import yaml

from reelcompose.job_manifest import load_job_manifest, validate_job_paths


def _write_manifest(content: dict) -> str:
    """Write a manifest dict to a temp YAML file, return path."""
    f = tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False)
    yaml.dump(content, f)
    f.close()
    return f.name


def _minimal_job(**overrides):
    """Return a minimal valid job manifest dict."""
    m = {
        "clips": ["/tmp/fake.mp4"],
        "duration": 30,
        "script": "Hello world\nThis is a test line\n",
    }
    m.update(overrides)
    return m


class TestLoadJobManifest:
    def test_minimal(self):
        request, settings = load_job_manifest(_write_manifest(_minimal_job()))
        assert request.clip_urls == ("/tmp/fake.mp4",)
        assert request.target_duration == 30.0
        assert request.script.startswith("Hello world")
        assert request.audio_location is None
        assert (settings.width, settings.height) == (1080, 1920)

    def test_resolves_path_variables(self):
        m = _minimal_job(
            paths={"media": "/data/media"},
            clips=["${media}/a.mp4", "https://example.com/b.mp4"],
            audio="${media}/voice.mp3",
            font="${media}/font.ttf",
        )
        request, _ = load_job_manifest(_write_manifest(m))
        assert request.clip_urls == ("/data/media/a.mp4", "https://example.com/b.mp4")
        assert request.audio_location == "/data/media/voice.mp3"
        assert request.font_location == "/data/media/font.ttf"

    def test_unknown_path_variable(self):
        m = _minimal_job(clips=["${nope}/a.mp4"])
        with pytest.raises(ValueError, match="Unknown path variable"):
            load_job_manifest(_write_manifest(m))

    def test_script_file(self, tmp_path):
        script = tmp_path / "script.txt"
        script.write_text("line one\nline two\n")
        m = _minimal_job(paths={"d": str(tmp_path)}, script_file="${d}/script.txt")
        del m["script"]
        request, _ = load_job_manifest(_write_manifest(m))
        assert request.script == "line one\nline two\n"

    def test_missing_script_file(self, tmp_path):
        m = _minimal_job(script_file=str(tmp_path / "none.txt"))
        del m["script"]
        with pytest.raises(FileNotFoundError):
            load_job_manifest(_write_manifest(m))

    def test_script_and_script_file_conflict(self):
        m = _minimal_job(script_file="/tmp/x.txt")
        with pytest.raises(ValueError, match="not both"):
            load_job_manifest(_write_manifest(m))

    def test_missing_script(self):
        m = _minimal_job()
        del m["script"]
        with pytest.raises(ValueError, match="script"):
            load_job_manifest(_write_manifest(m))

    def test_missing_clips(self):
        with pytest.raises(ValueError, match="clips"):
            load_job_manifest(_write_manifest(_minimal_job(clips=[])))

    @pytest.mark.parametrize("duration", [0, -1, "thirty"])
    def test_bad_duration(self, duration):
        with pytest.raises(ValueError, match="duration"):
            load_job_manifest(_write_manifest(_minimal_job(duration=duration)))

    def test_missing_duration(self):
        m = _minimal_job()
        del m["duration"]
        with pytest.raises(ValueError, match="duration"):
            load_job_manifest(_write_manifest(m))


class TestVideoSettings:
    def test_overrides(self):
        m = _minimal_job(video={
            "resolution": [720, 1280],
            "fps": 24,
            "preset": "veryfast",
            "font_size": 64,
            "font_color": "#FFEE00",
            "box_opacity": 0.7,
        })
        _, settings = load_job_manifest(_write_manifest(m))
        assert (settings.width, settings.height) == (720, 1280)
        assert settings.fps == 24
        assert settings.preset == "veryfast"
        assert settings.font_size == 64
        assert settings.font_color == "#FFEE00"
        assert settings.box_opacity == 0.7
        # Untouched defaults survive.
        assert settings.video_codec == "libx264"

    def test_bad_resolution(self):
        m = _minimal_job(video={"resolution": [720]})
        with pytest.raises(ValueError, match="resolution"):
            load_job_manifest(_write_manifest(m))

    @pytest.mark.parametrize("res", [[None, 1920], ["wide", 1920], [True, 1920], [1080, 0]])
    def test_bad_resolution_values(self, res):
        m = _minimal_job(video={"resolution": res})
        with pytest.raises(ValueError, match="resolution"):
            load_job_manifest(_write_manifest(m))

    def test_bad_color(self):
        m = _minimal_job(video={"font_color": "yellowish"})
        with pytest.raises(ValueError, match="hex color"):
            load_job_manifest(_write_manifest(m))

    def test_bad_opacity(self):
        m = _minimal_job(video={"box_opacity": 1.5})
        with pytest.raises(ValueError, match="box_opacity"):
            load_job_manifest(_write_manifest(m))

    def test_unknown_setting(self):
        m = _minimal_job(video={"bitrate": "9000k"})
        with pytest.raises(ValueError, match="unknown video settings"):
            load_job_manifest(_write_manifest(m))


class TestValidateJobPaths:
    def test_reports_missing_local_files(self, tmp_path):
        existing = tmp_path / "a.mp4"
        existing.write_bytes(b"x")
        m = _minimal_job(clips=[str(existing), str(tmp_path / "b.mp4")])
        request, _ = load_job_manifest(_write_manifest(m))
        with pytest.raises(FileNotFoundError, match="b.mp4"):
            validate_job_paths(request)

    def test_remote_locations_not_checked(self):
        m = _minimal_job(clips=["https://example.com/a.mp4"], audio="/nowhere/voice.mp3")
        request, _ = load_job_manifest(_write_manifest(m))
        validate_job_paths(request)
