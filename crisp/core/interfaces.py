from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

from ..application.interview_session import (
    AnswerRecord,
    CandidateProfile,
    CandidateRecord,
    Question,
    ScoredResult,
    ScoringRequest,
)

class InterviewAdapter(ABC):
    @abstractmethod
    async def generate_questions(self,
                                 profile: CandidateProfile,
                                 count: int) -> List[Question]:
        """Return an ordered list of interview questions for the candidate."""
        pass

    @abstractmethod
    async def score_answer(self, request: ScoringRequest) -> ScoredResult:
        """Score a single answer against its question and timing."""
        pass

    @abstractmethod
    async def generate_summary(self,
                               candidate_name: str,
                               records: List[AnswerRecord],
                               overall_score: int) -> str:
        """Produce a short written summary of a finished interview."""
        pass

class SessionStore(ABC):
    @abstractmethod
    def load(self) -> Optional[Dict[str, Any]]:
        """Return the persisted session snapshot, or None if there is none."""
        pass

    @abstractmethod
    def save(self, snapshot: Dict[str, Any]) -> None:
        """Persist the whole session snapshot, replacing any earlier one."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove the persisted snapshot."""
        pass

class ActiveMarker(ABC):
    """Flag that lives only as long as the current browsing context."""

    @abstractmethod
    def is_set(self) -> bool:
        pass

    @abstractmethod
    def set(self) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

class CandidateRepository(ABC):
    @abstractmethod
    def get(self, candidate_id: str) -> Optional[CandidateRecord]:
        pass

    @abstractmethod
    def save(self, candidate: CandidateRecord) -> None:
        pass
