import asyncio
import inspect
import math
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

import structlog

from .session import InterviewSessionMachine

logger = structlog.get_logger(__name__)

TimeUpCallback = Callable[[int, bool], Union[Awaitable[Any], Any]]


def compute_remaining(time_limit: int,
                      time_spent: int,
                      start_time: Optional[float],
                      now: float) -> int:
    """Seconds left on a question, derived only from the persisted timer fields."""
    elapsed_since_resume = max(0, math.floor(now - start_time)) if start_time is not None else 0
    total_elapsed = time_spent + elapsed_since_resume
    return max(0, time_limit - total_elapsed)


@dataclass
class TimerTick:
    remaining: int
    total_elapsed: int
    is_warning: bool
    warning_started: bool = False
    expired: bool = False


class QuestionTimer:
    """
    Countdown for the question that is current when the timer is created.

    tick() recomputes the remaining time from the session on every call;
    nothing is counted in memory. When the clock runs out the session is
    force-persisted at the full limit and the time-up is reported exactly
    once, flagged as an auto-submission.
    """

    def __init__(self,
                 session: InterviewSessionMachine,
                 on_time_up: TimeUpCallback,
                 tick_seconds: float = 1.0,
                 warning_seconds: int = 5,
                 persist_interval: float = 10.0,
                 on_warning: Optional[Callable[[int], None]] = None,
                 hold: Optional[Callable[[], bool]] = None):
        question = session.current_question
        if question is None:
            raise ValueError("QuestionTimer needs an interview in progress")
        self.session = session
        self.question_id = question.id
        self.time_limit = question.time_limit
        self.on_time_up = on_time_up
        self.on_warning = on_warning
        self.tick_seconds = tick_seconds
        self.warning_seconds = warning_seconds
        self.persist_interval = persist_interval
        self._hold = hold
        self._last_persist: Optional[float] = None
        self._warned = False
        self._fired = False
        self._stopped = False

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def stopped(self) -> bool:
        return self._stopped

    def is_active(self) -> bool:
        if self._stopped or self._fired:
            return False
        if not self.session.is_in_progress or self.session.is_paused:
            return False
        if self._hold is not None and self._hold():
            return False
        question = self.session.current_question
        return question is not None and question.id == self.question_id

    def remaining(self) -> int:
        snapshot = self.session.snapshot
        return compute_remaining(
            self.time_limit,
            snapshot.time_spent_on_current_question,
            snapshot.current_question_start_time,
            self.session.now(),
        )

    def start(self) -> None:
        """Make sure the session clock is running for this question."""
        if self.is_active() and self.session.snapshot.current_question_start_time is None:
            self.session.resume()

    def stop(self) -> None:
        self._stopped = True

    def tick(self) -> Optional[TimerTick]:
        """One recomputation. Returns None once the timer is no longer active."""
        if not self.is_active():
            self._stopped = True
            return None

        now = self.session.now()
        remaining = self.remaining()
        total_elapsed = self.time_limit - remaining
        is_warning = remaining <= self.warning_seconds
        warning_started = is_warning and remaining > 0 and not self._warned
        if warning_started:
            self._warned = True
            if self.on_warning is not None:
                self.on_warning(remaining)

        if remaining <= 0:
            self._stopped = True
            self._fired = True
            self.session.expire_timer(self.time_limit)
            logger.info("question_time_up", question_id=self.question_id, time_limit=self.time_limit)
            return TimerTick(remaining=0, total_elapsed=self.time_limit, is_warning=True,
                             warning_started=warning_started, expired=True)

        if self._last_persist is None or now - self._last_persist >= self.persist_interval:
            self.session.checkpoint_timer()
            self._last_persist = now

        return TimerTick(remaining=remaining, total_elapsed=total_elapsed,
                         is_warning=is_warning, warning_started=warning_started)

    async def run(self) -> None:
        """Tick on a fixed cadence until the question ends or time runs out."""
        self.start()
        while True:
            tick = self.tick()
            if tick is None:
                return
            if tick.expired:
                result = self.on_time_up(self.time_limit, True)
                if inspect.isawaitable(result):
                    await result
                return
            await asyncio.sleep(self.tick_seconds)
