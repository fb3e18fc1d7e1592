import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_scheduler
from engines.service import SchedulerService
from main import app

client = TestClient(app)

WORDS = [
    {"id": 1, "word": "casa", "translation": "house", "part_of_speech": "noun"},
    {"id": 2, "word": "perro", "translation": "dog"},
    {"id": 3, "word": "correr", "translation": "to run", "difficulty": 3},
]


@pytest.fixture
def scheduler(settings, clock):
    service = SchedulerService.in_memory(settings=settings, clock=clock)
    app.dependency_overrides[get_scheduler] = lambda: service
    yield service
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(scheduler):
    response = client.post("/api/items/import", json={"entries": WORDS})
    assert response.status_code == 200
    return scheduler


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_start_with_nothing_to_study(scheduler):
    response = client.post("/api/study/sessions", json={"mode": "normal"})

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "idle"
    assert body["current_item"] is None


def test_start_session(seeded):
    response = client.post("/api/study/sessions")

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "studying"
    assert body["mode"] == "normal"
    assert body["total"] == 3
    assert body["remaining"] == 3
    assert body["current_item"]["item_id"] == 1
    assert body["current_item"]["word"] == "casa"
    assert body["current_item"]["extra"] == {"part_of_speech": "noun"}


def test_quick_session_without_reviews_is_idle(seeded):
    response = client.post("/api/study/sessions", json={"mode": "quick"})
    assert response.json()["state"] == "idle"


def test_answer_with_quality(seeded):
    client.post("/api/study/sessions")

    response = client.post("/api/study/sessions/current/answers", json={"quality": 5, "time_spent": 2.5})

    assert response.status_code == 200
    body = response.json()
    assert body["record"]["item_id"] == 1
    assert body["record"]["status"] == "learning"
    assert body["record"]["interval_days"] == 14
    assert body["repeat_same_day"] is False
    assert body["session"]["current_index"] == 1
    assert body["session"]["current_item"]["word"] == "perro"


def test_answer_with_rating(seeded):
    client.post("/api/study/sessions")

    response = client.post("/api/study/sessions/current/answers", json={"rating": "forgot"})

    assert response.status_code == 200
    assert response.json()["repeat_same_day"] is True
    assert response.json()["session"]["incorrect_count"] == 1


@pytest.mark.parametrize("payload", [{"quality": 4, "rating": "vague"}, {"time_spent": 1.0}])
def test_answer_needs_exactly_one_score(seeded, payload):
    client.post("/api/study/sessions")

    response = client.post("/api/study/sessions/current/answers", json=payload)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "E2000_VALIDATION_GENERIC"


def test_answer_quality_out_of_range(seeded):
    client.post("/api/study/sessions")

    response = client.post("/api/study/sessions/current/answers", json={"quality": 9})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "E2003_OUT_OF_RANGE"
    assert client.get("/api/study/sessions/current").json()["current_index"] == 0


def test_answer_without_session(seeded):
    response = client.post("/api/study/sessions/current/answers", json={"quality": 3})

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "E5002_STATE_CONFLICT"


def test_answer_missing_body(seeded):
    response = client.post("/api/study/sessions/current/answers")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "E2001_REQUIRED_FIELD_MISSING"


def test_skip(seeded):
    client.post("/api/study/sessions")

    body = client.post("/api/study/sessions/current/skip").json()

    assert body["current_index"] == 1
    assert body["skipped_count"] == 1


def test_complete_session(seeded):
    client.post("/api/study/sessions")
    for quality in (4, 4, 4):
        response = client.post("/api/study/sessions/current/answers", json={"quality": quality})

    session = response.json()["session"]
    assert session["state"] == "complete"
    assert session["remaining"] == 0
    assert session["current_item"] is None


def test_suspend(seeded):
    assert client.post("/api/study/sessions/current/suspend").json() == {"saved": False}

    client.post("/api/study/sessions")
    response = client.post("/api/study/sessions/current/suspend", json={"reason": "background"})

    assert response.json() == {"saved": True}


def test_finish(seeded):
    client.post("/api/study/sessions")
    client.post("/api/study/sessions/current/answers", json={"quality": 3})

    body = client.post("/api/study/sessions/current/finish").json()

    assert body["state"] == "idle"
    assert body["current_index"] == 1
    assert client.get("/api/study/sessions/current").json()["state"] == "idle"


def test_resume_without_snapshot(seeded):
    body = client.post("/api/study/sessions/resume").json()

    assert body["recovery"] == "no_snapshot"
    assert body["session"]["state"] == "studying"


def test_resume_after_restart(seeded, settings, clock):
    client.post("/api/study/sessions")
    client.post("/api/study/sessions/current/answers", json={"quality": 4})
    restarted = SchedulerService(seeded.items, seeded.snapshots, settings, clock=clock)
    app.dependency_overrides[get_scheduler] = lambda: restarted
    clock.advance(hours=2)

    body = client.post("/api/study/sessions/resume").json()

    assert body["recovery"] == "restored"
    assert body["session"]["current_index"] == 1
    assert body["session"]["current_item"]["word"] == "perro"


def test_today_stats(seeded):
    client.post("/api/study/sessions")
    client.post("/api/study/sessions/current/answers", json={"quality": 5, "time_spent": 3.0})
    client.post("/api/study/sessions/current/answers", json={"quality": 1, "time_spent": 5.0})

    body = client.get("/api/study/stats/today").json()

    assert body["new_items_introduced"] == 2
    assert body["new_items_remaining"] == 18
    assert body["reviews_done"] == 0
    assert body["total_answers"] == 2
    assert body["accuracy"] == 0.5
    assert body["average_time_per_item"] == 4.0
    assert body["due_now"] == 0


def test_today_stats_due_count(seeded, clock):
    client.post("/api/study/sessions")
    client.post("/api/study/sessions/current/answers", json={"quality": 0})
    clock.advance(hours=2)

    assert client.get("/api/study/stats/today").json()["due_now"] == 1


def test_study_history(seeded, clock):
    client.post("/api/study/sessions")
    client.post("/api/study/sessions/current/answers", json={"quality": 5, "time_spent": 3.0})
    clock.advance(days=1)
    client.post("/api/study/sessions/current/answers", json={"quality": 2, "time_spent": 1.0})

    body = client.get("/api/study/stats/history", params={"days": 3}).json()

    assert [d["day"] for d in body] == ["2026-03-09", "2026-03-10", "2026-03-11"]
    assert [d["reviews"] for d in body] == [0, 1, 1]
    assert [d["accuracy"] for d in body] == [0.0, 1.0, 0.0]
    assert body[1]["new_items"] == 1
    assert body[1]["total_time"] == 3.0


def test_study_history_defaults_to_thirty_days(scheduler):
    body = client.get("/api/study/stats/history").json()

    assert len(body) == 30
    assert body[-1]["day"] == "2026-03-10"
    assert all(d["reviews"] == 0 for d in body)


@pytest.mark.parametrize("days", [0, 366])
def test_study_history_day_bounds(scheduler, days):
    response = client.get("/api/study/stats/history", params={"days": days})
    assert response.status_code == 400


def test_forecast(seeded):
    client.post("/api/study/sessions")
    client.post("/api/study/sessions/current/answers", json={"quality": 2})

    body = client.get("/api/study/forecast", params={"days": 3}).json()

    assert [d["day"] for d in body] == ["2026-03-10", "2026-03-11", "2026-03-12"]
    assert [d["due_count"] for d in body] == [0, 1, 0]


@pytest.mark.parametrize("days", [0, 91])
def test_forecast_day_bounds(scheduler, days):
    response = client.get("/api/study/forecast", params={"days": days})
    assert response.status_code == 400
