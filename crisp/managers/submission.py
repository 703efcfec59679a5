from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Set, Tuple

import structlog

from ..application.interview_session import (
    AnswerRecord,
    CandidateStatus,
    ScoredResult,
    ScoringRequest,
)
from ..core.exceptions import EmptyAnswerError, SessionNotStartedError, StorageError
from ..core.interfaces import CandidateRepository, InterviewAdapter
from ..processors.policy import (
    apply_length_caps,
    average_score,
    feedback_notice,
    prepare_answer_text,
)
from .session import InterviewSessionMachine

logger = structlog.get_logger(__name__)


@dataclass
class SubmissionOutcome:
    question_id: str
    score: int
    result: ScoredResult
    is_auto_submit: bool
    notice: Tuple[str, str]
    completed: bool = False
    final_score: Optional[int] = None
    summary: Optional[str] = None


class SubmissionCoordinator:
    """
    Runs one answer from submission through scoring into the candidate record.

    Per question, only the first of {manual submit, time-up, skip} proceeds.
    A scoring result that arrives after the session has moved to another
    question (or candidate) is dropped.
    """

    def __init__(self,
                 session: InterviewSessionMachine,
                 adapter: InterviewAdapter,
                 candidates: CandidateRepository):
        self.session = session
        self.adapter = adapter
        self.candidates = candidates
        self._claimed: Set[Tuple[str, str]] = set()
        self._in_flight: Optional[Tuple[str, str]] = None

    @property
    def is_submitting(self) -> bool:
        return self._in_flight is not None

    def is_claimed(self, question_id: str) -> bool:
        return (self.session.candidate_id or "", question_id) in self._claimed

    def _current_key(self) -> Tuple[str, str]:
        question = self.session.current_question
        if question is None or self.session.candidate_id is None:
            raise SessionNotStartedError("No question is currently open")
        return (self.session.candidate_id, question.id)

    def release_claims(self, question_id: Optional[str] = None) -> None:
        """Forget who took which question, for one question or all of them."""
        if question_id is None:
            self._claimed = {key for key in self._claimed if key == self._in_flight}
            return
        key = (self.session.candidate_id or "", question_id)
        if key != self._in_flight:
            self._claimed.discard(key)

    def _claim(self, key: Tuple[str, str], source: str) -> bool:
        if key in self._claimed:
            logger.info("submission_ignored", question_id=key[1], source=source)
            return False
        self._claimed.add(key)
        return True

    def _is_current(self, key: Tuple[str, str]) -> bool:
        question = self.session.current_question
        return (
            self.session.is_in_progress
            and question is not None
            and (self.session.candidate_id, question.id) == key
        )

    async def handle_time_up(self, time_taken: int, is_auto_submit: bool = True,
                             text: str = "") -> Optional[SubmissionOutcome]:
        return await self.submit(text, time_taken, is_auto_submit=is_auto_submit)

    async def submit(self, text: str, time_taken: int,
                     is_auto_submit: bool = False) -> Optional[SubmissionOutcome]:
        if not is_auto_submit and not text.strip():
            raise EmptyAnswerError("A manual submission needs an answer")

        key = self._current_key()
        question = self.session.current_question
        if not self._claim(key, "time_up" if is_auto_submit else "manual"):
            return None

        self._in_flight = key
        try:
            self.session.submit_answer(question.id, text, time_taken)
            request = ScoringRequest(
                question=question.text,
                answer=prepare_answer_text(text, is_auto_submit),
                difficulty=question.difficulty,
                time_limit=question.time_limit,
                time_taken=time_taken,
            )
            result = await self.adapter.score_answer(request)

            if not self._is_current(key):
                logger.info("stale_score_discarded", candidate_id=key[0], question_id=key[1])
                return None

            score = apply_length_caps(result.score, text)
            record = AnswerRecord(
                question=question.text,
                answer=text,
                score=score,
                time_taken=time_taken,
                time_allowed=question.time_limit,
                difficulty=question.difficulty,
                feedback=result.feedback,
            )
            self._record_answer(key[0], record)
            logger.info(
                "answer_submitted",
                candidate_id=key[0],
                question_id=question.id,
                score=score,
                auto=is_auto_submit,
            )
            outcome = SubmissionOutcome(
                question_id=question.id,
                score=score,
                result=result,
                is_auto_submit=is_auto_submit,
                notice=feedback_notice(score, text),
            )

            if self.session.is_last_question:
                self.session.complete()
                outcome.completed = True
                outcome.final_score, outcome.summary = await self._finish(key[0])
            else:
                self.session.advance()
            return outcome
        finally:
            self._in_flight = None

    async def skip(self) -> bool:
        """Skip the open question. Returns False if it was already taken."""
        key = self._current_key()
        if not self._claim(key, "skip"):
            return False
        self.session.skip(key[1])
        logger.info("question_skipped", candidate_id=key[0], question_id=key[1])
        if self.session.is_complete:
            await self._finish(key[0])
        return True

    def _record_answer(self, candidate_id: str, record: AnswerRecord) -> None:
        try:
            candidate = self.candidates.get(candidate_id)
            if candidate is None:
                logger.warning("candidate_missing", candidate_id=candidate_id)
                return
            candidate.answers.append(record)
            candidate.score = average_score(candidate.answers)
            self.candidates.save(candidate)
        except StorageError as e:
            logger.warning("candidate_persist_failed", candidate_id=candidate_id, error=str(e))

    async def _finish(self, candidate_id: str) -> Tuple[Optional[int], Optional[str]]:
        candidate = self.candidates.get(candidate_id)
        if candidate is None:
            logger.warning("candidate_missing", candidate_id=candidate_id)
            return None, None
        final_score = average_score(candidate.answers)
        summary = await self.adapter.generate_summary(candidate.name, candidate.answers, final_score)
        candidate.score = final_score
        candidate.summary = summary
        candidate.status = CandidateStatus.COMPLETED
        candidate.interview_end_time = datetime.now(timezone.utc).isoformat()
        try:
            self.candidates.save(candidate)
        except StorageError as e:
            logger.warning("candidate_persist_failed", candidate_id=candidate_id, error=str(e))
        logger.info("candidate_completed", candidate_id=candidate_id, score=final_score)
        return final_score, summary
