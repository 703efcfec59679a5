# tests/test_submission.py
import asyncio

import pytest

from crisp.application.interview_session import (
    CandidateRecord,
    CandidateStatus,
    Difficulty,
    Question,
    ScoredResult,
)
from crisp.core.exceptions import EmptyAnswerError
from crisp.managers.ai import FallbackInterviewAdapter
from crisp.managers.session import InterviewSessionMachine
from crisp.managers.storage import InMemoryCandidateRepository
from crisp.managers.submission import SubmissionCoordinator
from crisp.managers.timer import QuestionTimer


class CountingAdapter(FallbackInterviewAdapter):
    """Fallback adapter that counts calls and can hold scoring open."""

    def __init__(self, score=70):
        self.score = score
        self.requests = []
        self.gate = None

    async def score_answer(self, request):
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        return ScoredResult(score=self.score, feedback="ok", strengths=[], improvements=[])


@pytest.fixture
def candidates():
    repo = InMemoryCandidateRepository()
    repo.save(CandidateRecord(id="c1", name="Ada", email="ada@example.com"))
    return repo


@pytest.fixture
def adapter():
    return CountingAdapter()


@pytest.fixture
def coordinator(session, adapter, candidates):
    return SubmissionCoordinator(session, adapter, candidates)


LONG_ANSWER = "Props flow down from parents while state lives inside the component."


@pytest.mark.asyncio
async def test_submit_scores_records_and_advances(session, questions, coordinator, candidates, adapter):
    session.start("c1", questions)
    outcome = await coordinator.submit(LONG_ANSWER, 12)
    assert outcome.score == 70
    assert outcome.completed is False
    assert session.snapshot.current_question_index == 1
    assert session.snapshot.answers[0].text == LONG_ANSWER
    record = candidates.get("c1").answers[0]
    assert record.to_dict() == {
        "question": questions[0].text,
        "answer": LONG_ANSWER,
        "score": 70,
        "timeTaken": 12,
        "timeAllowed": 20,
        "difficulty": "easy",
        "feedback": "ok",
    }
    assert candidates.get("c1").score == 70
    assert adapter.requests[0].answer == LONG_ANSWER


@pytest.mark.asyncio
async def test_blank_manual_submit_is_rejected(session, questions, coordinator, adapter):
    session.start("c1", questions)
    with pytest.raises(EmptyAnswerError):
        await coordinator.submit("   ", 3)
    assert adapter.requests == []
    assert session.snapshot.answers == []


@pytest.mark.asyncio
async def test_blank_auto_submit_is_scored_leniently(session, questions, coordinator, adapter):
    session.start("c1", questions)
    outcome = await coordinator.handle_time_up(20, True)
    assert adapter.requests[0].answer == "No response provided (time expired)"
    assert outcome.is_auto_submit is True
    assert outcome.score == 25


@pytest.mark.asyncio
async def test_short_answers_are_capped(session, questions, coordinator, adapter):
    adapter.score = 90
    session.start("c1", questions)
    assert (await coordinator.submit("useState hook", 5)).score == 40
    assert (await coordinator.submit("props", 5)).score == 25


@pytest.mark.asyncio
async def test_manual_submit_beats_time_up(store, clock, candidates, adapter):
    question = Question(id="q5", text="Quick one", difficulty=Difficulty.EASY, time_limit=5)
    session = InterviewSessionMachine(store, clock=clock)
    coordinator = SubmissionCoordinator(session, adapter, candidates)
    session.start("c1", [question, Question(id="q6", text="Next", difficulty=Difficulty.EASY,
                                            time_limit=5)])
    adapter.gate = asyncio.Event()
    timer = QuestionTimer(session, coordinator.handle_time_up, tick_seconds=0,
                          hold=lambda: coordinator.is_submitting)

    clock.advance(4)
    manual = asyncio.create_task(coordinator.submit(LONG_ANSWER, 4))
    await asyncio.sleep(0)
    clock.advance(1)
    assert timer.tick() is None
    assert await coordinator.handle_time_up(5, True) is None

    adapter.gate.set()
    outcome = await manual
    assert outcome.question_id == "q5"
    assert len(adapter.requests) == 1
    assert len(candidates.get("c1").answers) == 1


@pytest.mark.asyncio
async def test_time_up_then_manual_submit_is_ignored(session, questions, coordinator, adapter, clock):
    session.start("c1", questions)
    adapter.gate = asyncio.Event()
    auto = asyncio.create_task(coordinator.handle_time_up(20, True, text=LONG_ANSWER))
    await asyncio.sleep(0)
    assert await coordinator.submit(LONG_ANSWER, 19) is None
    adapter.gate.set()
    await auto
    assert len(adapter.requests) == 1


@pytest.mark.asyncio
async def test_stale_score_is_discarded(session, questions, coordinator, adapter, candidates):
    session.start("c1", questions)
    adapter.gate = asyncio.Event()
    pending = asyncio.create_task(coordinator.submit(LONG_ANSWER, 8))
    await asyncio.sleep(0)
    session.jump_to_question(2)
    adapter.gate.set()
    assert await pending is None
    assert candidates.get("c1").answers == []
    assert session.snapshot.current_question_index == 2


@pytest.mark.asyncio
async def test_last_answer_completes_interview(session, questions, coordinator, candidates, adapter):
    session.start("c1", questions)
    adapter.score = 60
    await coordinator.submit(LONG_ANSWER, 10)
    adapter.score = 81
    await coordinator.submit(LONG_ANSWER, 10)
    adapter.score = 70
    outcome = await coordinator.submit(LONG_ANSWER, 30)
    assert outcome.completed is True
    assert outcome.final_score == 70
    assert session.is_complete
    candidate = candidates.get("c1")
    assert candidate.status == CandidateStatus.COMPLETED
    assert candidate.score == 70
    assert candidate.summary.startswith("Ada completed the technical interview")
    assert candidate.interview_end_time is not None


@pytest.mark.asyncio
async def test_skip_moves_on_without_scoring(session, questions, coordinator, adapter):
    session.start("c1", questions)
    assert await coordinator.skip() is True
    assert adapter.requests == []
    assert session.snapshot.current_question_index == 1
    assert session.snapshot.answers[0].text == ""


@pytest.mark.asyncio
async def test_released_claims_allow_a_restarted_session(session, questions, coordinator):
    session.start("c1", questions)
    assert await coordinator.skip() is True
    session.reset()
    coordinator.release_claims()
    session.start("c1", questions)
    assert await coordinator.skip() is True


@pytest.mark.asyncio
async def test_released_question_can_be_answered_again(session, questions, coordinator, adapter):
    session.start("c1", questions)
    await coordinator.submit(LONG_ANSWER, 5)
    session.jump_to_question(0)
    assert await coordinator.submit(LONG_ANSWER, 6) is None
    coordinator.release_claims("q1")
    assert await coordinator.submit(LONG_ANSWER, 7) is not None
    assert len(adapter.requests) == 2
