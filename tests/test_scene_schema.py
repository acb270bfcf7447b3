"""Tests for parsing submitted storyboard scenes."""

import json

import pytest

from storyreel.exceptions import InvalidSceneError
from storyreel.render.models import RemoteVideo, StillImage
from storyreel.schemas.scene import parse_scenes


class TestParseScenes:
    def test_parses_json_string_and_assigns_indices(self):
        raw = json.dumps(
            [
                {"paragraph": "Intro", "duration": 2, "imageFile": "img0"},
                {"duration": 3.5, "videoUrl": "https://cdn.test/clip.mp4"},
            ]
        )

        scenes = parse_scenes(raw)

        assert [s.order_index for s in scenes] == [0, 1]
        assert scenes[0].source == StillImage(asset_ref="img0")
        assert scenes[0].paragraph == "Intro"
        assert scenes[1].source == RemoteVideo(url="https://cdn.test/clip.mp4")
        assert scenes[1].duration == 3.5
        assert scenes[1].is_image is False

    def test_accepts_already_decoded_list(self):
        scenes = parse_scenes([{"duration": 1, "imageFile": "a"}])
        assert scenes[0].source == StillImage(asset_ref="a")

    def test_combined_field_with_url(self):
        scenes = parse_scenes([{"duration": 1, "videoUrlOrImageFile": "http://cdn.test/a.mp4"}])
        assert scenes[0].source == RemoteVideo(url="http://cdn.test/a.mp4")

    def test_combined_field_with_upload_descriptor(self):
        scenes = parse_scenes(
            [{"duration": 1, "videoUrlOrImageFile": {"fieldname": "photo1", "mimetype": "image/png"}}]
        )
        assert scenes[0].source == StillImage(asset_ref="photo1")

    def test_unknown_fields_ignored(self):
        scenes = parse_scenes([{"duration": 1, "imageFile": "a", "transition": "fade"}])
        assert len(scenes) == 1

    @pytest.mark.parametrize("raw", ["not json", "{}", "[]", '"scenes"'])
    def test_rejects_non_list_payloads(self, raw):
        with pytest.raises(InvalidSceneError):
            parse_scenes(raw)

    def test_rejects_non_positive_duration(self):
        with pytest.raises(InvalidSceneError, match="Scene 1") as exc_info:
            parse_scenes(
                [
                    {"duration": 1, "imageFile": "a"},
                    {"duration": 0, "imageFile": "b"},
                ]
            )
        assert "duration" in exc_info.value.message

    def test_rejects_missing_source(self):
        with pytest.raises(InvalidSceneError, match="exactly one"):
            parse_scenes([{"duration": 1}])

    def test_rejects_both_sources(self):
        with pytest.raises(InvalidSceneError, match="exactly one"):
            parse_scenes([{"duration": 1, "imageFile": "a", "videoUrl": "https://cdn.test/a.mp4"}])

    def test_rejects_non_http_url(self):
        with pytest.raises(InvalidSceneError, match="http"):
            parse_scenes([{"duration": 1, "videoUrl": "file:///etc/passwd"}])

    def test_error_carries_code_and_status(self):
        with pytest.raises(InvalidSceneError) as exc_info:
            parse_scenes("[]")
        assert exc_info.value.code == "INVALID_SCENES"
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize("duration", ["Infinity", "-Infinity", "NaN"])
    def test_rejects_non_finite_duration(self, duration):
        raw = f'[{{"videoUrl": "https://cdn.test/a.mp4", "duration": {duration}}}]'

        with pytest.raises(InvalidSceneError, match="Scene 0"):
            parse_scenes(raw)
