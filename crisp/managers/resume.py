import asyncio
from enum import Enum
from typing import Any, Callable, Optional, Tuple

import structlog

from ..application.interview_session import SessionSnapshot
from ..core.interfaces import ActiveMarker
from .session import InterviewSessionMachine

logger = structlog.get_logger(__name__)

Scheduler = Callable[[float, Callable[[], None]], Any]
Signature = Tuple[str, int, int]


class ResumeDecision(str, Enum):
    NOTHING = "nothing"
    PROMPT = "prompt"
    ALREADY_CHECKED = "already_checked"


def call_later(delay: float, callback: Callable[[], None]) -> Any:
    """Run callback after delay on the running event loop, or right away without one."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        callback()
        return None
    return loop.call_later(delay, callback)


class ResumeDetectionPolicy:
    """
    Decides whether a freshly loaded session deserves a "welcome back" prompt.

    A prompt is due when the persisted session has answers, is not complete,
    and the tab-lifetime marker is absent (a reload, not a same-tab update).
    Each (candidate, answers, questions) signature is evaluated once.
    """

    def __init__(self,
                 marker: ActiveMarker,
                 on_prompt: Callable[[], None],
                 prompt_delay: float = 0.5,
                 scheduler: Scheduler = call_later,
                 candidate_exists: Optional[Callable[[str], bool]] = None):
        self.marker = marker
        self.on_prompt = on_prompt
        self.prompt_delay = prompt_delay
        self.scheduler = scheduler
        self.candidate_exists = candidate_exists
        self.prompt_open = False
        self._signature: Optional[Signature] = None
        self._checked = False

    @staticmethod
    def signature(snapshot: SessionSnapshot) -> Optional[Signature]:
        if snapshot.candidate_id is None:
            return None
        return (snapshot.candidate_id, len(snapshot.answers), len(snapshot.questions))

    def check(self, snapshot: SessionSnapshot) -> ResumeDecision:
        signature = self.signature(snapshot)
        if signature != self._signature:
            self._signature = signature
            self._checked = False

        if self._checked or self.prompt_open:
            return ResumeDecision.ALREADY_CHECKED

        if snapshot.candidate_id is None:
            return ResumeDecision.NOTHING
        if self.candidate_exists is not None and not self.candidate_exists(snapshot.candidate_id):
            return ResumeDecision.NOTHING

        self._checked = True
        if snapshot.is_complete:
            return ResumeDecision.NOTHING

        if snapshot.answers and not self.marker.is_set():
            self.prompt_open = True
            logger.info(
                "welcome_back_prompt_scheduled",
                candidate_id=snapshot.candidate_id,
                answers=len(snapshot.answers),
                delay=self.prompt_delay,
            )
            self.scheduler(self.prompt_delay, self.on_prompt)
            self.marker.set()
            return ResumeDecision.PROMPT

        self.marker.set()
        return ResumeDecision.NOTHING

    def choose_resume(self) -> None:
        self.marker.set()
        self.prompt_open = False
        logger.info("welcome_back_resumed")

    def choose_start_fresh(self, session: InterviewSessionMachine) -> None:
        session.reset()
        self.marker.clear()
        self.marker.set()
        self.prompt_open = False
        logger.info("welcome_back_started_fresh")

    def close(self) -> None:
        """The browsing context is going away; the marker goes with it."""
        self.marker.clear()
