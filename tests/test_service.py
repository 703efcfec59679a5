# tests/test_service.py
import asyncio

import pytest

from crisp.application.interview_session import CandidateProfile, CandidateStatus
from crisp.application.service import InterviewService
from crisp.managers.ai import FallbackInterviewAdapter
from crisp.managers.resume import ResumeDecision
from crisp.managers.storage import InMemoryCandidateRepository, InMemorySessionStore

PROFILE = CandidateProfile(name="Ada", email="ada@example.com")
LONG_ANSWER = "An answer that is long enough to avoid the caps."


class GatedAdapter(FallbackInterviewAdapter):
    """Fallback adapter whose scoring waits until the gate opens."""

    def __init__(self):
        self.gate = None
        self.scored = 0

    async def score_answer(self, request):
        if self.gate is not None:
            await self.gate.wait()
        self.scored += 1
        return await super().score_answer(request)


async def wait_until(condition, timeout=2.0):
    async def poll():
        while not condition():
            await asyncio.sleep(0.01)
    await asyncio.wait_for(poll(), timeout)


@pytest.fixture
def service(settings, clock):
    return InterviewService(settings, adapter=FallbackInterviewAdapter(), clock=clock)


@pytest.mark.asyncio
async def test_time_up_submits_the_draft(service, clock):
    candidate = await service.start_interview(PROFILE)
    service.save_draft("State belongs to a component and props come from its parent.")
    timer = service.timer
    timer.tick_seconds = 0
    clock.advance(25)
    await timer.run()

    snapshot = service.session.snapshot
    assert snapshot.current_question_index == 1
    assert snapshot.answers[0].time_taken == 20
    assert snapshot.answers[0].text.startswith("State belongs")
    assert service.draft == ""
    assert service.timer is not timer
    assert len(service.candidates.get(candidate.id).answers) == 1


@pytest.mark.asyncio
async def test_manual_submit_uses_elapsed_time(service, clock):
    await service.start_interview(PROFILE)
    clock.advance(7.5)
    outcome = await service.submit_answer("Props are inputs, state is owned data.")
    assert outcome is not None
    assert service.session.snapshot.answers[0].time_taken == 7


@pytest.mark.asyncio
async def test_full_interview_completes_candidate(service, clock):
    candidate = await service.start_interview(PROFILE)
    for _ in range(service.settings.QUESTION_COUNT):
        clock.advance(3)
        outcome = await service.submit_answer(LONG_ANSWER)
    assert outcome.completed is True
    record = service.candidates.get(candidate.id)
    assert record.status == CandidateStatus.COMPLETED
    assert record.score == outcome.final_score
    assert service.timer is None


@pytest.mark.asyncio
async def test_pause_stops_the_clock(service, clock):
    await service.start_interview(PROFILE)
    clock.advance(4)
    service.pause()
    clock.advance(60)
    assert service.remaining() == 16
    service.resume()
    clock.advance(2)
    assert service.remaining() == 14


@pytest.mark.asyncio
async def test_same_tab_never_prompts(service, clock):
    await service.start_interview(PROFILE)
    await service.submit_answer(LONG_ANSWER)
    assert service.check_welcome_back() == ResumeDecision.NOTHING
    assert service.welcome_back_pending is False


@pytest.mark.asyncio
async def test_manual_submit_during_time_up_scoring_is_refused(settings, clock):
    settings.TIMER_AUTOSTART = True
    settings.TIMER_TICK_SECONDS = 0.01
    adapter = GatedAdapter()
    service = InterviewService(settings, adapter=adapter, clock=clock)
    candidate = await service.start_interview(PROFILE)
    adapter.gate = asyncio.Event()
    clock.advance(25)
    await wait_until(lambda: service.coordinator.is_submitting)

    assert await service.submit_answer("A late manual answer to the first question.") is None

    adapter.gate.set()
    await wait_until(lambda: service.session.snapshot.current_question_index == 1)
    assert adapter.scored == 1
    assert len(service.candidates.get(candidate.id).answers) == 1
    assert service.timer is not None and service.timer.question_id == "fallback-2"
    await service.shutdown()


@pytest.mark.asyncio
async def test_restart_on_the_same_files_prompts_and_keeps_scoring(settings, clock, tmp_path):
    settings.SESSION_STORE_PATH = tmp_path / "session.json"
    first = InterviewService(settings, adapter=FallbackInterviewAdapter(), clock=clock)
    candidate = await first.start_interview(PROFILE)
    clock.advance(5)
    await first.submit_answer(LONG_ANSWER)

    second = InterviewService(settings, adapter=FallbackInterviewAdapter(), clock=clock)
    assert second.check_welcome_back() == ResumeDecision.PROMPT
    assert second.candidates.get(candidate.id).name == "Ada"

    second.resume_after_welcome_back()
    clock.advance(5)
    assert await second.submit_answer(LONG_ANSWER) is not None
    assert len(second.candidates.get(candidate.id).answers) == 2


@pytest.mark.asyncio
async def test_restored_session_gets_a_timer(settings, clock):
    store = InMemorySessionStore()
    candidates = InMemoryCandidateRepository()
    first = InterviewService(settings, adapter=FallbackInterviewAdapter(), store=store,
                             candidates=candidates, clock=clock)
    await first.start_interview(PROFILE)

    reloaded = InterviewService(settings, adapter=FallbackInterviewAdapter(), store=store,
                                candidates=candidates, clock=clock)
    assert reloaded.timer is None
    assert reloaded.check_welcome_back() == ResumeDecision.NOTHING
    timer = reloaded.timer
    assert timer is not None

    timer.tick_seconds = 0
    clock.advance(25)
    await timer.run()
    snapshot = reloaded.session.snapshot
    assert snapshot.current_question_index == 1
    assert snapshot.answers[0].time_taken == 20


@pytest.mark.asyncio
async def test_jump_back_reopens_answered_question(service, clock):
    await service.start_interview(PROFILE)
    clock.advance(3)
    await service.submit_answer(LONG_ANSWER)
    service.jump_to_question(0)
    clock.advance(3)
    outcome = await service.submit_answer("A revised answer that is long enough to keep.")
    assert outcome is not None
    assert service.session.snapshot.answers[0].text.startswith("A revised")

