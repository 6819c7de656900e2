"""HTTP-level tests for the drive recording and leaderboard flow."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import BASE_TIME, COL_ROUTE, COL_TRACK

from drivr.app import app

ROUTE_PAYLOAD = [{"latitude": lat, "longitude": lon} for lat, lon in COL_ROUTE]


def _login(client: TestClient, username: str) -> dict:
    response = client.post("/users/login", json={"username": username})
    assert response.status_code == 200
    return response.json()


def _vehicle(client: TestClient) -> int:
    response = client.post("/vehicles", json={"brand": "Alpine", "model": "A110", "year": 2022})
    assert response.status_code == 201
    return response.json()["vehicle"]["id"]


def _segment(client: TestClient, **overrides) -> int:
    payload = {"name": "Col Example", "route": ROUTE_PAYLOAD, "tolerance_m": 30, **overrides}
    response = client.post("/segments", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["segment"]["id"]


def _track_payload(step_s: int = 60):
    return [
        {
            "latitude": lat,
            "longitude": lon,
            "speed_kmh": 60.0,
            "recorded_at": (BASE_TIME + timedelta(seconds=idx * step_s)).isoformat(),
        }
        for idx, (lat, lon) in enumerate(COL_TRACK)
    ]


def _drive(client: TestClient, vehicle_id: int, step_s: int = 60) -> int:
    response = client.post("/sessions", json={"vehicle_id": vehicle_id, "title": "Morning run"})
    assert response.status_code == 201
    session_id = response.json()["session"]["id"]
    response = client.post(f"/sessions/{session_id}/points/batch", json=_track_payload(step_s))
    assert response.status_code == 201
    assert response.json()["pointsAdded"] == len(COL_TRACK)
    return session_id


@pytest.fixture
def background_matching(monkeypatch):
    monkeypatch.setattr("drivr.api.routers.sessions.MATCH_IN_BACKGROUND", True)


@pytest.fixture
def inline_matching(monkeypatch):
    monkeypatch.setattr("drivr.api.routers.sessions.MATCH_IN_BACKGROUND", False)


def test_health(client):
    assert client.get("/health").json() == {"ok": True}
    config = client.get("/config").json()
    assert "mountain_pass" in config["segment_types"]


def test_login_and_identity(client):
    assert client.get("/users/me").status_code == 401

    user = _login(client, "alice")
    assert user["username"] == "alice"
    assert client.get("/users/me").json()["id"] == user["id"]

    # Logging in again returns the same account.
    assert _login(client, "alice")["id"] == user["id"]

    client.post("/users/logout")
    assert client.get("/users/me").status_code == 401


def test_login_requires_a_username(client):
    assert client.post("/users/login", json={"username": "  "}).status_code == 400


def test_completed_drive_lands_on_the_leaderboard(client, background_matching):
    _login(client, "alice")
    vehicle_id = _vehicle(client)
    segment_id = _segment(client)
    session_id = _drive(client, vehicle_id)

    response = client.post(f"/sessions/{session_id}/complete", json={"visibility": "public"})
    assert response.status_code == 200
    body = response.json()
    assert body["session"]["status"] == "completed"
    assert body["session"]["visibility"] == "public"
    assert body["matching"] == {"status": "scheduled"}

    board = client.get(f"/segments/{segment_id}/leaderboard").json()
    assert board["segment_id"] == segment_id
    [entry] = board["leaderboard"]
    assert entry["rank"] == 1
    assert entry["durationSeconds"] == 240
    assert entry["avgSpeedKmh"] == 60.0
    assert entry["user"]["username"] == "alice"

    records = client.get(f"/segments/{segment_id}/my-records").json()["records"]
    assert [r["sessionId"] for r in records] == [session_id]

    profile = client.get("/users/alice/profile").json()
    assert profile["user"]["stats"]["totalSessions"] == 1
    assert profile["segmentRecords"][0]["segmentName"] == "Col Example"
    assert profile["segmentRecords"][0]["rank"] == 1

    segment = client.get(f"/segments/{segment_id}").json()["segment"]
    assert segment["totalAttempts"] == 1
    assert len(segment["route"]) == len(COL_ROUTE)


def test_faster_driver_takes_first_place(client, background_matching):
    _login(client, "alice")
    segment_id = _segment(client)
    slow = _drive(client, _vehicle(client))
    client.post(f"/sessions/{slow}/complete")

    other = TestClient(app)
    _login(other, "bruno")
    fast = _drive(other, _vehicle(other), step_s=50)
    other.post(f"/sessions/{fast}/complete")

    board = client.get(f"/segments/{segment_id}/leaderboard").json()["leaderboard"]
    assert [(e["rank"], e["user"]["username"], e["durationSeconds"]) for e in board] == [
        (1, "bruno", 200),
        (2, "alice", 240),
    ]
    assert board[0]["rankAtCreation"] == 1
    assert board[1]["rankAtCreation"] == 1


def test_inline_matching_reports_records(client, inline_matching):
    _login(client, "alice")
    segment_id = _segment(client)
    session_id = _drive(client, _vehicle(client))

    matching = client.post(f"/sessions/{session_id}/complete").json()["matching"]

    assert matching["status"] == "done"
    assert [r["segmentId"] for r in matching["records"]] == [segment_id]


def test_completed_session_is_final(client, inline_matching):
    _login(client, "alice")
    _segment(client)
    session_id = _drive(client, _vehicle(client))
    client.post(f"/sessions/{session_id}/complete")

    again = client.post(f"/sessions/{session_id}/complete")
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "INVALID_STATE"

    point = {"latitude": 45.0, "longitude": 6.0}
    assert client.post(f"/sessions/{session_id}/points", json=point).status_code == 409

    assert client.post(f"/sessions/{session_id}/match").json() == {"records": []}


def test_rematch_requires_a_completed_session(client):
    _login(client, "alice")
    session_id = _drive(client, _vehicle(client))

    response = client.post(f"/sessions/{session_id}/match")
    assert response.status_code == 409


def test_session_lifecycle(client):
    _login(client, "alice")
    vehicle_id = _vehicle(client)
    session_id = _drive(client, vehicle_id)

    # Only one open session per driver.
    assert client.post("/sessions", json={"vehicle_id": vehicle_id}).status_code == 409

    assert client.post(f"/sessions/{session_id}/pause").json()["session"]["status"] == "paused"
    paused_point = {"latitude": 45.0, "longitude": 6.0}
    assert client.post(f"/sessions/{session_id}/points", json=paused_point).status_code == 409
    assert client.post(f"/sessions/{session_id}/resume").json()["session"]["status"] == "active"

    response = client.post(f"/sessions/{session_id}/points", json=paused_point)
    assert response.status_code == 201
    assert response.json()["sequenceNumber"] == len(COL_TRACK) + 1

    detail = client.get(f"/sessions/{session_id}").json()
    assert detail["session"]["pointCount"] == len(COL_TRACK) + 1

    assert client.delete(f"/sessions/{session_id}/cancel").status_code == 204
    assert client.get("/sessions").json()["sessions"][0]["status"] == "cancelled"


def test_sessions_are_private_to_their_driver(client):
    _login(client, "alice")
    session_id = _drive(client, _vehicle(client))

    other = TestClient(app)
    _login(other, "bruno")
    response = other.get(f"/sessions/{session_id}")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_unknown_vehicle(client):
    _login(client, "alice")
    response = client.post("/sessions", json={"vehicle_id": 999})
    assert response.status_code == 404


def test_out_of_range_point_is_rejected(client):
    _login(client, "alice")
    session_id = _drive(client, _vehicle(client))

    response = client.post(f"/sessions/{session_id}/points", json={"latitude": 91, "longitude": 6})
    assert response.status_code == 422


@pytest.mark.parametrize(
    "overrides",
    [
        {"route": ROUTE_PAYLOAD[:1]},
        {"route": [ROUTE_PAYLOAD[0], ROUTE_PAYLOAD[0]]},
        {"route": [{"lat": 45.0, "lng": 6.0}, {"lat": 45.1, "lng": 6.1}]},
        {"tolerance_m": -5},
        {"type": "racetrack"},
        {"name": ""},
    ],
)
def test_segment_validation(client, overrides):
    _login(client, "alice")
    payload = {"name": "Col Example", "route": ROUTE_PAYLOAD, "tolerance_m": 30, **overrides}
    assert client.post("/segments", json=payload).status_code == 400


def test_segment_creation_requires_login(client):
    response = client.post("/segments", json={"name": "Col", "route": ROUTE_PAYLOAD})
    assert response.status_code == 401


def test_segment_catalog(client):
    _login(client, "alice")
    col_id = _segment(client, type="mountain_pass")
    ring = [{"latitude": 46.0, "longitude": 7.0}, {"latitude": 46.01, "longitude": 7.0}]
    _segment(client, name="Ring Road", route=ring)

    listing = client.get("/segments").json()["segments"]
    assert len(listing) == 2
    assert "route" not in listing[0]

    passes = client.get("/segments", params={"type": "mountain_pass"}).json()["segments"]
    assert [s["id"] for s in passes] == [col_id]
    assert passes[0]["createdByUsername"] == "alice"

    assert client.get("/segments/999").status_code == 404
    assert client.get("/segments/999/leaderboard").status_code == 404
    assert client.get("/segments", params={"limit": 0}).status_code == 400


def test_only_the_creator_can_remove_a_segment(client):
    _login(client, "alice")
    segment_id = _segment(client)

    other = TestClient(app)
    _login(other, "bruno")
    response = other.delete(f"/segments/{segment_id}")
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"

    assert client.delete(f"/segments/{segment_id}").json()["ok"] is True
    assert client.get(f"/segments/{segment_id}").status_code == 404
    # Records of a removed segment stay readable.
    assert client.get(f"/segments/{segment_id}/leaderboard").status_code == 200


GPX_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="drivr-tests" xmlns="http://www.topografix.com/GPX/1/1">
  <trk><name>Col run</name><trkseg>
{points}
  </trkseg></trk>
</gpx>
"""


def _gpx(step_s: int = 60) -> bytes:
    points = "\n".join(
        f'    <trkpt lat="{lat}" lon="{lon}"><ele>1200</ele>'
        f"<time>{(BASE_TIME + timedelta(seconds=idx * step_s)).strftime('%Y-%m-%dT%H:%M:%SZ')}</time></trkpt>"
        for idx, (lat, lon) in enumerate(COL_TRACK)
    )
    return GPX_TEMPLATE.format(points=points).encode("utf-8")


def test_gpx_import_is_matched(client, inline_matching):
    _login(client, "alice")
    segment_id = _segment(client)
    response = client.post("/sessions", json={"vehicle_id": _vehicle(client)})
    session_id = response.json()["session"]["id"]

    response = client.post(
        f"/sessions/{session_id}/points/gpx",
        files={"gpxfile": ("col.gpx", _gpx(), "application/gpx+xml")},
    )
    assert response.status_code == 201, response.text
    assert response.json()["pointsAdded"] == len(COL_TRACK)

    matching = client.post(f"/sessions/{session_id}/complete").json()["matching"]
    [record] = matching["records"]
    assert record["segmentId"] == segment_id
    assert record["durationSeconds"] == 240
    assert record["maxSpeedKmh"] is None


def test_gpx_import_rejects_other_files(client):
    _login(client, "alice")
    response = client.post("/sessions", json={"vehicle_id": _vehicle(client)})
    session_id = response.json()["session"]["id"]

    response = client.post(
        f"/sessions/{session_id}/points/gpx",
        files={"gpxfile": ("notes.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 400

    response = client.post(
        f"/sessions/{session_id}/points/gpx",
        files={"gpxfile": ("broken.gpx", b"<gpx><trk>", "application/gpx+xml")},
    )
    assert response.status_code == 400
