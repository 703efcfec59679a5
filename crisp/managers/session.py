import copy
import math
import time
from typing import Callable, List, Optional

import structlog

from ..application.interview_session import (
    Answer,
    Question,
    SessionSnapshot,
    utc_now_iso,
)
from ..core.exceptions import (
    EmptyQuestionListError,
    InvalidQuestionIndexError,
    LastQuestionError,
    SessionCompleteError,
    SessionNotStartedError,
    StorageError,
)
from ..core.interfaces import ActiveMarker, SessionStore

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]


class InterviewSessionMachine:
    """
    Owns the interview session and applies every transition to it.

    The session is NotStarted until start(), InProgress until complete(),
    and Completed afterwards; pausing is a flag on InProgress. Each committed
    transition is written through to the session store.
    """

    def __init__(self,
                 store: SessionStore,
                 marker: Optional[ActiveMarker] = None,
                 clock: Clock = time.time,
                 snapshot: Optional[SessionSnapshot] = None):
        self._store = store
        self._marker = marker
        self._clock = clock
        self._state = snapshot or SessionSnapshot()

    @classmethod
    def restore(cls,
                store: SessionStore,
                marker: Optional[ActiveMarker] = None,
                clock: Clock = time.time) -> "InterviewSessionMachine":
        """Rebuild the machine from whatever the store holds."""
        snapshot = None
        try:
            data = store.load()
            if data is not None:
                snapshot = SessionSnapshot.from_dict(data)
        except StorageError as e:
            logger.warning("session_restore_failed", error=str(e))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("session_snapshot_invalid", error=str(e))
        if snapshot is not None:
            logger.info(
                "session_restored",
                candidate_id=snapshot.candidate_id,
                answers=len(snapshot.answers),
                questions=len(snapshot.questions),
            )
        return cls(store, marker=marker, clock=clock, snapshot=snapshot)

    # Read access

    @property
    def snapshot(self) -> SessionSnapshot:
        return copy.deepcopy(self._state)

    @property
    def candidate_id(self) -> Optional[str]:
        return self._state.candidate_id

    @property
    def current_question(self) -> Optional[Question]:
        return self._state.current_question

    @property
    def is_complete(self) -> bool:
        return self._state.is_complete

    @property
    def is_paused(self) -> bool:
        return self._state.is_paused

    @property
    def is_in_progress(self) -> bool:
        return self._state.is_started and not self._state.is_complete

    @property
    def is_last_question(self) -> bool:
        return self._state.current_question_index >= len(self._state.questions) - 1

    def now(self) -> float:
        return self._clock()

    # Transitions

    def start(self, candidate_id: str, questions: List[Question]) -> None:
        if not questions:
            raise EmptyQuestionListError("Cannot start an interview without questions")
        now = self._clock()
        self._state = SessionSnapshot(
            candidate_id=candidate_id,
            current_question_index=0,
            questions=list(questions),
            answers=[],
            is_paused=False,
            is_complete=False,
            current_question_start_time=now,
            time_spent_on_current_question=0,
            started_at=utc_now_iso(),
        )
        if self._marker is not None:
            self._marker.set()
        logger.info("interview_started", candidate_id=candidate_id, question_count=len(questions))
        self._commit()

    def submit_answer(self, question_id: str, text: str, time_taken: int) -> None:
        self._require_in_progress()
        answer = Answer(question_id=question_id, text=text, time_taken=max(0, int(time_taken)))
        for i, existing in enumerate(self._state.answers):
            if existing.question_id == question_id:
                self._state.answers[i] = answer
                break
        else:
            self._state.answers.append(answer)
        logger.debug("answer_recorded", question_id=question_id, time_taken=answer.time_taken)
        self._commit()

    def advance(self) -> None:
        self._require_in_progress()
        if self.is_last_question:
            raise LastQuestionError("Already on the last question; call complete() instead")
        self._state.current_question_index += 1
        self._restart_question_clock()
        logger.debug("question_advanced", index=self._state.current_question_index)
        self._commit()

    def skip(self, question_id: str) -> None:
        """Record an empty answer, then move on or finish."""
        self.submit_answer(question_id, "", 0)
        if self.is_last_question:
            self.complete()
        else:
            self.advance()

    def pause(self) -> None:
        self._require_in_progress()
        self._fold_running_time(rebase=False)
        self._state.is_paused = True
        self._commit()

    def resume(self) -> None:
        self._require_in_progress()
        self._state.is_paused = False
        if self._state.current_question_start_time is None:
            self._state.current_question_start_time = self._clock()
        self._commit()

    def complete(self) -> None:
        self._require_in_progress()
        self._state.is_complete = True
        self._state.is_paused = False
        logger.info(
            "interview_completed",
            candidate_id=self._state.candidate_id,
            answers=len(self._state.answers),
        )
        self._commit()

    def reset(self) -> None:
        self._state = SessionSnapshot()
        if self._marker is not None:
            self._marker.clear()
        logger.info("session_reset")
        self._commit()

    def jump_to_question(self, index: int) -> None:
        self._require_in_progress()
        if not 0 <= index < len(self._state.questions):
            raise InvalidQuestionIndexError(index, len(self._state.questions))
        self._state.current_question_index = index
        self._restart_question_clock()
        self._commit()

    # Timer support

    def checkpoint_timer(self) -> int:
        """
        Fold the running clock into time_spent_on_current_question and rebase
        the start timestamp, so the persisted pair keeps describing the same
        total elapsed time. Returns the total elapsed seconds.
        """
        self._require_in_progress()
        self._fold_running_time(rebase=True)
        self._commit()
        return self._state.time_spent_on_current_question

    def expire_timer(self, time_limit: int) -> None:
        self._require_in_progress()
        self._state.time_spent_on_current_question = time_limit
        self._state.current_question_start_time = None
        self._commit()

    # Internals

    def _require_in_progress(self) -> None:
        if not self._state.is_started:
            raise SessionNotStartedError("No interview has been started")
        if self._state.is_complete:
            raise SessionCompleteError("The interview is already complete")

    def _restart_question_clock(self) -> None:
        # a paused session keeps the clock stopped until resume()
        self._state.current_question_start_time = None if self._state.is_paused else self._clock()
        self._state.time_spent_on_current_question = 0

    def _fold_running_time(self, rebase: bool) -> None:
        start = self._state.current_question_start_time
        if start is None:
            return
        now = self._clock()
        elapsed = max(0, math.floor(now - start))
        self._state.time_spent_on_current_question += elapsed
        # keep the sub-second remainder running when rebasing
        self._state.current_question_start_time = start + elapsed if rebase else None

    def _commit(self) -> None:
        try:
            self._store.save(self._state.to_dict())
        except StorageError as e:
            logger.warning("session_persist_failed", error=str(e))
