import logging

from fastapi.testclient import TestClient

from app import main as main_module
from app.main import app
from app.models import PatternSearchResult

client = TestClient(app)

PATTERN = [{"step": "B", "alter": -1}, {"step": "A"}, {"step": "C"}, {"step": "B", "alter": -1}]


def test_find_pattern_returns_occurrences_and_highlights(musicxml):
    res = client.post(
        "/api/find-pattern",
        json={"musicxml": musicxml.melody(["Bb4", "A4", "C5", "Bb4", "A4", "C5", "B4"]), "pattern": PATTERN},
    )

    assert res.status_code == 200
    body = res.json()
    assert len(body["exact_pattern_occurrences"]) == 1
    assert len(body["approximate_pattern_occurrences"]) == 1
    assert body["exact_pattern_occurrences"][0]["matched_count"] == 4
    assert body["approximate_pattern_occurrences"][0]["matched_count"] == 3
    colors = [h["color"] for h in body["highlights"]]
    assert colors == ["#F44336"] * 4 + ["#F4433655"] * 3
    assert res.headers["X-Request-ID"]


def test_find_pattern_accepts_pitch_names(musicxml):
    res = client.post(
        "/api/find-pattern",
        json={"musicxml": musicxml.melody(["Bb4", "A4", "C5", "Bb4"]), "pattern": ["Bb", "A", "C", "Bb"]},
    )

    assert res.status_code == 200
    note = res.json()["exact_pattern_occurrences"][0]["notes"][0]
    assert note["note"]["pitch"] == {"step": "B", "alter": -1, "octave": 4}
    assert note["staff_voice_ordinal"] == 1


def test_find_pattern_honours_approximate_ratio(musicxml):
    res = client.post(
        "/api/find-pattern",
        json={"musicxml": musicxml.melody(["Bb4", "A4", "E5", "F5"]), "pattern": PATTERN, "approximate_ratio": 0.4},
    )

    assert res.status_code == 200
    assert len(res.json()["approximate_pattern_occurrences"]) == 1


def test_empty_pattern_returns_422_with_request_id(musicxml, caplog):
    caplog.set_level(logging.INFO)

    res = client.post(
        "/api/find-pattern",
        json={"musicxml": musicxml.melody(["C4"]), "pattern": []},
        headers={"X-Request-ID": "req-42"},
    )

    assert res.status_code == 422
    detail = res.json()["detail"]
    assert detail["message"].startswith("Pattern search failed")
    assert detail["request_id"] == "req-42"
    assert res.headers["X-Request-ID"] == "req-42"
    assert "request_failed" in caplog.text


def test_malformed_score_returns_422(musicxml):
    bad_pitch = musicxml.score(
        musicxml.part("P1", ['<measure number="1"><note><pitch><octave>4</octave></pitch></note></measure>'])
    )

    for payload in ("<score-partwise><part>", bad_pitch):
        res = client.post("/api/find-pattern", json={"musicxml": payload, "pattern": PATTERN})
        assert res.status_code == 422
        assert "Pattern search failed" in res.json()["detail"]["message"]


def test_pattern_length_is_capped(musicxml):
    res = client.post(
        "/api/find-pattern",
        json={"musicxml": musicxml.melody(["C4"]), "pattern": ["C"] * 65},
    )

    assert res.status_code == 422


def test_unexpected_failure_returns_friendly_500(musicxml, monkeypatch):
    def broken(*_args, **_kwargs) -> PatternSearchResult:
        raise RuntimeError("boom")

    monkeypatch.setattr(main_module, "find_pattern", broken)
    failing_client = TestClient(app, raise_server_exceptions=False)

    res = failing_client.post("/api/find-pattern", json={"musicxml": musicxml.melody(["C4"]), "pattern": ["C"]})

    assert res.status_code == 500
    assert res.json()["request_id"]
    assert "boom" not in res.text


def test_palette_endpoint_lists_exact_and_translucent_colors():
    res = client.get("/api/palette")

    assert res.status_code == 200
    body = res.json()
    assert len(body["exact"]) == 16
    assert body["approximate"][0] == body["exact"][0] + "55"
