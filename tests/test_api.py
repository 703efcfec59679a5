# tests/test_api.py
from fastapi import status
from fastapi.testclient import TestClient

from crisp.application.interview_session import CandidateRecord
from crisp.application.service import InterviewService
from crisp.managers.ai import FallbackInterviewAdapter
from crisp.managers.storage import InMemoryCandidateRepository, InMemorySessionStore
from crisp.interface.api.main import create_app
from crisp.processors.questions import fallback_questions

START = {"name": "Ada Lovelace", "email": "ada@example.com", "skills": ["React"]}


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/api/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "ok"
    assert response.json()["ai_configured"] is False


def test_start_interview(client):
    response = client.post("/api/interview/start", json=START)
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    interview = body["interview"]
    assert interview["candidateId"] == body["candidate"]["id"]
    assert interview["currentQuestionIndex"] == 0
    assert len(interview["questions"]) == 6
    assert interview["timeRemaining"] == interview["questions"][0]["timeLimit"]


def test_answer_flow(client):
    client.post("/api/interview/start", json=START)
    response = client.post("/api/interview/answer", json={
        "text": "State is owned by a component, props are passed in by its parent.",
        "time_taken": 9,
    })
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["accepted"] is True
    assert 5 <= body["score"] <= 85
    assert body["interview"]["currentQuestionIndex"] == 1
    assert body["interview"]["answers"][0]["timeTaken"] == 9

    candidate = client.get(f"/api/candidates/{body['interview']['candidateId']}").json()
    assert candidate["answers"][0]["score"] == body["score"]
    assert candidate["status"] == "in_progress"


def test_blank_answer_rejected(client):
    client.post("/api/interview/start", json=START)
    response = client.post("/api/interview/answer", json={"text": "  "})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_answer_before_start_conflicts(client):
    response = client.post("/api/interview/answer", json={"text": "hello there"})
    assert response.status_code == status.HTTP_409_CONFLICT


def test_skip_through_to_completion(client):
    client.post("/api/interview/start", json=START)
    for _ in range(6):
        assert client.post("/api/interview/skip").json()["accepted"] is True
    state = client.get("/api/interview").json()
    assert state["isComplete"] is True
    assert client.post("/api/interview/skip").status_code == status.HTTP_409_CONFLICT


def test_pause_resume_and_jump(client):
    client.post("/api/interview/start", json=START)
    paused = client.post("/api/interview/pause").json()
    assert paused["isPaused"] is True
    assert paused["currentQuestionStartTime"] is None
    resumed = client.post("/api/interview/resume").json()
    assert resumed["isPaused"] is False
    assert client.post("/api/interview/jump", json={"index": 3}).json()["currentQuestionIndex"] == 3
    assert client.post("/api/interview/jump", json={"index": 9}).status_code == status.HTTP_409_CONFLICT


def test_reset(client):
    client.post("/api/interview/start", json=START)
    state = client.post("/api/interview/reset").json()
    assert state["candidateId"] is None
    assert state["questions"] == []


def test_unknown_candidate(client):
    assert client.get("/api/candidates/missing").status_code == status.HTTP_404_NOT_FOUND


def test_welcome_back_after_reload(settings):
    store = InMemorySessionStore()
    candidates = InMemoryCandidateRepository()
    first = InterviewService(settings, adapter=FallbackInterviewAdapter(), store=store,
                             candidates=candidates)
    first.session.start("c1", fallback_questions(3))
    first.session.submit_answer("fallback-1", "an earlier answer", 12)
    first.session.advance()
    candidates.save(CandidateRecord(id="c1", name="Ada", email="ada@example.com"))

    # a new process: same persisted session and candidates, fresh tab marker
    reloaded = InterviewService(settings, adapter=FallbackInterviewAdapter(), store=store,
                                candidates=candidates)
    client = TestClient(create_app(reloaded))

    body = client.get("/api/interview/welcome-back").json()
    assert body["decision"] == "prompt"
    assert body["progress"] == 1
    assert client.get("/api/interview/welcome-back").json()["decision"] == "already_checked"

    state = client.post("/api/interview/welcome-back/start-fresh").json()
    assert state["candidateId"] is None
    assert client.get("/api/interview/welcome-back").json()["decision"] == "nothing"

