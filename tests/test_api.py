#!/usr/bin/env python3
"""
Timeline API Tests

Exercises the FastAPI routes through TestClient; no server process needed.
"""

import pytest

from models import Layer


API = "/api/v1/timeline"


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_root(self, client):
        assert client.get("/").json()["name"] == "LayerStack Web API"


class TestFlattenEndpoint:

    def test_flatten(self, client, gap_timeline):
        response = client.post(f"{API}/flatten", json={"timeline": gap_timeline.to_dict()})
        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["diagnostics"] == []
        assert data["total_duration_ms"] == 2500
        assert [i["kind"] for i in data["instructions"]] == ["main-audio", "main-video", "main-video"]
        assert [(b["kind"], b["timelineOffsetMs"], b["durationMs"]) for b in data["blanks"]] == [
            ("blank-video", 1000, 500),
            ("blank-video", 2000, 500),
        ]

    def test_invalid_timeline_reports_diagnostics(self, client, make_unit, make_timeline):
        overlay = Layer.from_units(make_unit("figure", 0, 500, with_audio=False))
        video = Layer.from_units(make_unit("video", 0, 1000))
        timeline = make_timeline(overlay, video, main_video=video)

        data = client.post(f"{API}/flatten", json={"timeline": timeline.to_dict()}).json()
        assert data["valid"] is False
        assert data["diagnostics"][0]["code"] == "figure-missing-audio"
        assert data["diagnostics"][0]["unit_id"] == overlay.get(0).id

    @pytest.mark.parametrize("body", [
        {"timeline": {"layers": "many"}},
        {"timeline": {"layers": [{"units": [{"resource": {"type": "hologram"}}]}]}},
        {"timeline": {"scale": {"display_scale": 0}}},
        {},
    ])
    def test_malformed_input_is_422(self, client, body):
        assert client.post(f"{API}/flatten", json=body).status_code == 422

    @pytest.mark.parametrize("text", [
        '{"timeline": {"layers": [{"units": [{"resource": {"type": "video", "duration": 1e999}}]}]}}',
        '{"timeline": {"layers": [{"units": [{"resource": {"type": "audio"}, "track": {"x": NaN}}]}]}}',
        '{"timeline": {"scale": {"display_scale": Infinity}}}',
    ])
    def test_non_finite_numbers_are_422(self, client, text):
        response = client.post(
            f"{API}/flatten", content=text, headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 422


class TestDurationEndpoint:

    def test_duration(self, client, gap_timeline):
        response = client.post(f"{API}/duration", json={"timeline": gap_timeline.to_dict()})
        assert response.json() == {"total_duration_ms": 2500}

    def test_dangling_reference_does_not_fail(self, client):
        body = {"timeline": {"layers": [], "main_video_layer_id": "gone"}}
        assert client.post(f"{API}/duration", json=body).json() == {"total_duration_ms": 0}


class TestJobEndpoint:

    def test_job(self, client, gap_timeline):
        response = client.post(f"{API}/job", json={
            "timeline": gap_timeline.to_dict(),
            "subtitle_url": "https://cdn.example.com/subs.srt",
        })
        assert response.status_code == 200
        data = response.json()
        assert data["samplingRate"] == 44100
        assert data["fps"] == 25
        assert len(data["units"]) == 3
        assert data["subtitle"] == {"url": "https://cdn.example.com/subs.srt"}

    def test_invalid_timeline_is_400(self, client):
        response = client.post(f"{API}/job", json={"timeline": {}})
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert [d["code"] for d in detail["diagnostics"]] == ["empty-composition"]
