import json
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_coach, get_db
from app.db.base import Base
import app.models  # noqa: F401
from app.main import app
from app.models.course import Course
from app.services.coach import AnthropicCoach, CoachError
from app.services.insights import parse_coach_reply, to_tiered_insights

COACH_JSON = {
    "summary": "Solid ball striking, but short game leaks strokes.",
    "primaryIssue": "Chips that need recovery.",
    "reason": "Missed chips lead to extra putts.",
    "practiceFocus": "Landing-spot chipping drill.",
    "managementTip": "Aim for the fat side of greens.",
    "progress": "null",
}


class FakeCoach:
    def __init__(self, reply=None, error=None):
        self.reply = reply if reply is not None else f"```json\n{json.dumps(COACH_JSON)}\n```"
        self.error = error
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def coach():
    return FakeCoach()


@pytest.fixture()
def client(session_factory, coach):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_coach] = lambda: coach
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def played_round(client, session_factory, user="u1"):
    with session_factory() as db:
        course = Course(
            name="Test Course",
            club_name="Test Club",
            num_holes=18,
            par=70,
            tees=[{"id": "t1", "name": "White"}],
            holes=[{"number": 1, "par_men": 4}],
        )
        db.add(course)
        db.commit()
        course_id = course.id

    headers = {"X-User-Id": user}
    rnd = client.post("/api/v1/rounds", json={"course_id": course_id, "tee_id": "t1"}, headers=headers).json()
    shots = [
        {"type": "Tee Shot", "result": "On Target", "timestamp": "2026-05-01T10:00:00.000Z"},
        {"type": "Chip", "result": "Recovery Needed", "timestamp": "2026-05-01T10:04:00.000Z"},
        {"type": "Putts", "result": "On Target", "timestamp": "2026-05-01T10:06:00.000Z"},
    ]
    resp = client.post(
        f"/api/v1/rounds/{rnd['id']}/finish",
        json={"holes": {"1": {"par": 4, "distance": 360, "shots": shots}}},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    return rnd["id"]


def test_analyze_without_completed_rounds(client):
    resp = client.post("/api/v1/insights/analyze", json={}, headers={"X-User-Id": "u1"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "No completed rounds found. Please complete a round first."}


def test_analyze_requires_a_user(client):
    resp = client.post("/api/v1/insights/analyze", json={})
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Unable to determine user ID")


def test_analyze_generates_and_stores_insights(client, session_factory, coach):
    round_id = played_round(client, session_factory)

    resp = client.post(
        "/api/v1/insights/analyze", json={"roundId": round_id}, headers={"X-User-Id": "u1"}
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["message"] == "Golf insights generated successfully"
    assert data["analyzedRounds"] == [round_id]
    assert isinstance(data["insightsId"], int)

    cards = data["insights"]["tieredInsights"]
    # "progress" came back as the string "null" and is dropped.
    assert [c["id"] for c in cards] == [
        "summary",
        "primary-issue",
        "root-cause",
        "practice-focus",
        "management-tip",
    ]
    assert data["insights"]["summary"] == COACH_JSON["summary"]

    prompt = coach.prompts[0]
    golf_data = json.loads(prompt.split("Golf rounds data: ", 1)[1])
    assert golf_data["totalRounds"] == 1
    summary = golf_data["rounds"][0]
    assert summary["par"] == 70
    assert summary["teeName"] == "White"
    assert summary["totalScore"] == 3
    assert summary["shots"]["Chip"]["Recovery Needed"] == 1
    assert summary["holeDetails"][0]["timeInfo"]["duration"] == 6

    latest = client.get("/api/v1/insights/latest", headers={"X-User-Id": "u1"})
    assert latest.status_code == 200
    body = latest.json()
    assert body["id"] == data["insightsId"]
    assert body["round_id"] == round_id
    assert body["insights"]["summary"] == COACH_JSON["summary"]


def test_analyze_accepts_user_id_in_body(client, session_factory):
    round_id = played_round(client, session_factory, user="body-user")

    resp = client.post("/api/v1/insights/analyze", json={"userId": "body-user"})
    assert resp.status_code == 200
    assert resp.json()["analyzedRounds"] == [round_id]


def test_analyze_rejects_round_of_another_player(client, session_factory):
    round_id = played_round(client, session_factory, user="u1")
    played_round(client, session_factory, user="u2")

    resp = client.post(
        "/api/v1/insights/analyze", json={"roundId": round_id}, headers={"X-User-Id": "u2"}
    )
    assert resp.status_code == 404
    assert resp.json() == {"error": "Round not found"}


def test_analyze_keeps_unparseable_reply(client, session_factory, coach):
    played_round(client, session_factory)
    coach.reply = "Sorry, I can only answer in prose."

    data = client.post("/api/v1/insights/analyze", headers={"X-User-Id": "u1"}).json()
    assert data["insights"]["error"] == "Failed to parse as JSON"
    assert data["insights"]["rawResponse"] == coach.reply


def test_analyze_coach_failure_is_a_server_error(client, session_factory, coach):
    played_round(client, session_factory)
    coach.error = CoachError("Missing ANTHROPIC_API_KEY environment variable")

    with TestClient(app, raise_server_exceptions=False) as c:
        resp = c.post("/api/v1/insights/analyze", headers={"X-User-Id": "u1"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Missing ANTHROPIC_API_KEY environment variable"
    assert resp.headers["access-control-allow-origin"] == "*"


def test_latest_insights_not_found(client):
    resp = client.get("/api/v1/insights/latest", headers={"X-User-Id": "nobody"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "No insights found"}


def test_parse_coach_reply_variants():
    assert parse_coach_reply('{"summary": "a"}') == {"summary": "a"}
    assert parse_coach_reply('Here:\n```\n{"summary": "b"}\n```') == {"summary": "b"}
    with pytest.raises(ValueError):
        parse_coach_reply("[1, 2]")
    with pytest.raises(ValueError):
        parse_coach_reply("no json here")


def test_summary_card_always_present():
    tiered = to_tiered_insights({"summary": None, "primaryIssue": ""})
    assert [c["id"] for c in tiered["tieredInsights"]] == ["summary"]


def test_anthropic_coach_returns_first_text_block():
    calls = []

    def create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(
            content=[
                SimpleNamespace(type="tool_use"),
                SimpleNamespace(type="text", text="first"),
                SimpleNamespace(type="text", text="second"),
            ]
        )

    fake_client = SimpleNamespace(messages=SimpleNamespace(create=create))
    coach = AnthropicCoach(api_key=None, model="test-model", max_tokens=42, client=fake_client)

    assert coach.complete("hello") == "first"
    assert calls[0]["model"] == "test-model"
    assert calls[0]["max_tokens"] == 42
    assert calls[0]["messages"] == [{"role": "user", "content": "hello"}]


def test_anthropic_coach_requires_key():
    coach = AnthropicCoach(api_key=None, model="test-model")
    with pytest.raises(CoachError):
        coach.complete("hello")


def test_analyze_treats_malformed_body_as_empty(client):
    resp = client.post(
        "/api/v1/insights/analyze",
        content=b"{not json",
        headers={"X-User-Id": "u1", "Content-Type": "application/json"},
    )
    assert resp.status_code == 404
    assert resp.json()["error"].startswith("No completed rounds found")


def test_analyze_without_body_uses_header_identity(client, session_factory):
    round_id = played_round(client, session_factory)

    resp = client.post("/api/v1/insights/analyze", headers={"X-User-Id": "u1"})
    assert resp.status_code == 200
    assert resp.json()["analyzedRounds"] == [round_id]
