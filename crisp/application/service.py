import asyncio
import time
import uuid
from typing import Any, Dict, Optional

import structlog

from ..core.config import Settings
from ..core.interfaces import (
    ActiveMarker,
    CandidateRepository,
    InterviewAdapter,
    SessionStore,
)
from ..managers.ai import build_interview_adapter
from ..managers.resume import ResumeDecision, ResumeDetectionPolicy
from ..managers.session import Clock, InterviewSessionMachine
from ..managers.storage import (
    InMemoryActiveMarker,
    InMemoryCandidateRepository,
    InMemorySessionStore,
    JsonFileCandidateRepository,
    JsonFileSessionStore,
    candidate_store_path,
)
from ..managers.submission import SubmissionCoordinator, SubmissionOutcome
from ..managers.timer import QuestionTimer, compute_remaining
from .interview_session import CandidateProfile, CandidateRecord

logger = structlog.get_logger(__name__)


class InterviewService:
    """Single-candidate interview flow: session, timer, scoring and welcome-back."""

    def __init__(self,
                 settings: Settings,
                 adapter: Optional[InterviewAdapter] = None,
                 store: Optional[SessionStore] = None,
                 marker: Optional[ActiveMarker] = None,
                 candidates: Optional[CandidateRepository] = None,
                 clock: Clock = time.time):
        self.settings = settings
        self.adapter = adapter or build_interview_adapter(settings)
        store_path = settings.SESSION_STORE_PATH
        if store is None:
            store = JsonFileSessionStore(store_path) if store_path is not None else InMemorySessionStore()
        if candidates is None:
            if store_path is not None:
                candidates = JsonFileCandidateRepository(candidate_store_path(store_path))
            else:
                candidates = InMemoryCandidateRepository()
        self.marker = marker or InMemoryActiveMarker()
        self.candidates = candidates
        self.session = InterviewSessionMachine.restore(store, marker=self.marker, clock=clock)
        self.coordinator = SubmissionCoordinator(self.session, self.adapter, self.candidates)
        self.welcome_back_pending = False
        self.policy = ResumeDetectionPolicy(
            self.marker,
            on_prompt=self._open_welcome_back,
            prompt_delay=settings.RESUME_PROMPT_DELAY_SECONDS,
            candidate_exists=lambda cid: self.candidates.get(cid) is not None,
        )
        self.draft = ""
        self.timer: Optional[QuestionTimer] = None
        self._timer_task: Optional[asyncio.Task] = None

    # Interview lifecycle

    async def start_interview(self, profile: CandidateProfile) -> CandidateRecord:
        questions = await self.adapter.generate_questions(profile, self.settings.QUESTION_COUNT)
        candidate = CandidateRecord(
            id=str(uuid.uuid4()),
            name=profile.name,
            email=profile.email,
            role=profile.role,
        )
        self.candidates.save(candidate)
        self.coordinator.release_claims()
        self.session.start(candidate.id, questions)
        self.draft = ""
        self._arm_timer()
        return candidate

    def save_draft(self, text: str) -> None:
        self.draft = text

    def elapsed_on_current_question(self) -> int:
        question = self.session.current_question
        if question is None:
            return 0
        return question.time_limit - self.remaining()

    async def submit_answer(self, text: str, time_taken: Optional[int] = None) -> Optional[SubmissionOutcome]:
        if time_taken is None:
            time_taken = self.elapsed_on_current_question()
        try:
            outcome = await self.coordinator.submit(text, time_taken)
        finally:
            # the timer held off while scoring ran; a time-up still scoring re-arms itself
            if not self.coordinator.is_submitting:
                self._arm_timer()
        if outcome is not None:
            self.draft = ""
        return outcome

    async def skip_question(self) -> bool:
        skipped = await self.coordinator.skip()
        if skipped:
            self.draft = ""
            self._arm_timer()
        return skipped

    def pause(self) -> None:
        self._cancel_timer()
        self.session.pause()

    def resume(self) -> None:
        self.session.resume()
        self._arm_timer()

    def jump_to_question(self, index: int) -> None:
        self.session.jump_to_question(index)
        self.coordinator.release_claims(self.session.current_question.id)
        self._arm_timer()

    def reset(self) -> None:
        self._cancel_timer()
        self.session.reset()
        self.coordinator.release_claims()
        self.draft = ""

    # Welcome back

    def _open_welcome_back(self) -> None:
        self.welcome_back_pending = True

    def check_welcome_back(self) -> ResumeDecision:
        decision = self.policy.check(self.session.snapshot)
        if decision == ResumeDecision.NOTHING:
            self.ensure_timer()
        return decision

    def resume_after_welcome_back(self) -> None:
        self.policy.choose_resume()
        self.welcome_back_pending = False
        self._arm_timer()

    def start_fresh_after_welcome_back(self) -> None:
        self._cancel_timer()
        self.policy.choose_start_fresh(self.session)
        self.coordinator.release_claims()
        self.welcome_back_pending = False
        self.draft = ""

    # Timer

    def remaining(self) -> int:
        snapshot = self.session.snapshot
        question = snapshot.current_question
        if question is None:
            return 0
        return compute_remaining(
            question.time_limit,
            snapshot.time_spent_on_current_question,
            snapshot.current_question_start_time,
            self.session.now(),
        )

    async def _on_time_up(self, time_taken: int, is_auto_submit: bool) -> None:
        outcome = await self.coordinator.handle_time_up(time_taken, is_auto_submit, text=self.draft)
        if outcome is not None:
            self.draft = ""
            self._arm_timer()

    def ensure_timer(self) -> None:
        """Arm the countdown for a restored session when nothing is driving it yet."""
        if not self.session.is_in_progress or self.session.is_paused or self.coordinator.is_submitting:
            return
        if self._timer_task is not None and not self._timer_task.done():
            return
        if self._timer_task is None and self.timer is not None and not self.timer.stopped \
                and not self.settings.TIMER_AUTOSTART:
            return
        logger.info("timer_rearmed", candidate_id=self.session.candidate_id)
        self._arm_timer()

    def _arm_timer(self) -> None:
        if self.coordinator.is_submitting:
            return
        self._cancel_timer()
        if not self.session.is_in_progress or self.session.is_paused:
            self.timer = None
            return
        self.timer = QuestionTimer(
            self.session,
            on_time_up=self._on_time_up,
            tick_seconds=self.settings.TIMER_TICK_SECONDS,
            warning_seconds=self.settings.TIMER_WARNING_SECONDS,
            persist_interval=self.settings.TIMER_PERSIST_INTERVAL_SECONDS,
            hold=lambda: self.coordinator.is_submitting,
        )
        if not self.settings.TIMER_AUTOSTART:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("timer_not_scheduled", reason="no running event loop")
            return
        self._timer_task = loop.create_task(self.timer.run())

    def _cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.stop()
        if self._timer_task is not None and not self._timer_task.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            # the current task may be the timer itself when time-up re-arms,
            # and a time-up that is still scoring must run to completion
            if self._timer_task is not current and not self.coordinator.is_submitting:
                self._timer_task.cancel()
        self._timer_task = None

    async def shutdown(self) -> None:
        self._cancel_timer()
        self.policy.close()

    # Views

    def state(self) -> Dict[str, Any]:
        snapshot = self.session.snapshot
        remaining = self.remaining()
        data = snapshot.to_dict()
        data.update({
            "timeRemaining": remaining,
            "isWarning": snapshot.current_question is not None
                         and remaining <= self.settings.TIMER_WARNING_SECONDS,
            "isSubmitting": self.coordinator.is_submitting,
            "welcomeBackPending": self.welcome_back_pending,
        })
        return data
