from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import List, Dict, Any, Optional


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class CandidateStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    difficulty: Difficulty
    time_limit: int
    category: str = "General"

    def __post_init__(self):
        if self.time_limit <= 0:
            raise ValueError(f"time_limit must be positive, got {self.time_limit}")
        if not isinstance(self.difficulty, Difficulty):
            object.__setattr__(self, "difficulty", Difficulty(self.difficulty))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "difficulty": self.difficulty.value,
            "timeLimit": self.time_limit,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        return cls(
            id=str(data["id"]),
            text=data["text"],
            difficulty=Difficulty(data.get("difficulty", "medium")),
            time_limit=int(data["timeLimit"]),
            category=data.get("category") or "General",
        )


@dataclass
class Answer:
    question_id: str
    text: str
    time_taken: int

    def to_dict(self) -> Dict[str, Any]:
        return {"questionId": self.question_id, "text": self.text, "timeTaken": self.time_taken}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Answer":
        return cls(
            question_id=str(data["questionId"]),
            text=data.get("text", ""),
            time_taken=int(data.get("timeTaken", 0)),
        )


@dataclass
class SessionSnapshot:
    """Durable state of one candidate's progress through an interview."""
    candidate_id: Optional[str] = None
    current_question_index: int = 0
    questions: List[Question] = field(default_factory=list)
    answers: List[Answer] = field(default_factory=list)
    is_paused: bool = False
    is_complete: bool = False
    # Epoch seconds; set only while the current question's clock is running
    current_question_start_time: Optional[float] = None
    time_spent_on_current_question: int = 0
    started_at: Optional[str] = None

    @property
    def is_started(self) -> bool:
        return self.candidate_id is not None

    @property
    def current_question(self) -> Optional[Question]:
        if not self.questions or self.is_complete:
            return None
        return self.questions[self.current_question_index]

    def answer_for(self, question_id: str) -> Optional[Answer]:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidateId": self.candidate_id,
            "currentQuestionIndex": self.current_question_index,
            "questions": [q.to_dict() for q in self.questions],
            "answers": [a.to_dict() for a in self.answers],
            "isPaused": self.is_paused,
            "isComplete": self.is_complete,
            "currentQuestionStartTime": self.current_question_start_time,
            "timeSpentOnCurrentQuestion": self.time_spent_on_current_question,
            "startedAt": self.started_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionSnapshot":
        start_time = data.get("currentQuestionStartTime")
        return cls(
            candidate_id=data.get("candidateId"),
            current_question_index=int(data.get("currentQuestionIndex", 0)),
            questions=[Question.from_dict(q) for q in data.get("questions", [])],
            answers=[Answer.from_dict(a) for a in data.get("answers", [])],
            is_paused=bool(data.get("isPaused", False)),
            is_complete=bool(data.get("isComplete", False)),
            current_question_start_time=float(start_time) if start_time is not None else None,
            time_spent_on_current_question=int(data.get("timeSpentOnCurrentQuestion", 0)),
            started_at=data.get("startedAt"),
        )


@dataclass
class ScoredResult:
    score: int
    feedback: str
    strengths: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ScoringRequest:
    question: str
    answer: str
    difficulty: Difficulty
    time_limit: int
    time_taken: int


@dataclass
class CandidateProfile:
    name: str
    email: str
    role: str = "Full Stack Developer"
    experience: Optional[str] = None
    skills: List[str] = field(default_factory=list)
    resume_text: Optional[str] = None


@dataclass
class AnswerRecord:
    """A scored answer as the backend stores it on the candidate."""
    question: str
    answer: str
    score: int
    time_taken: int
    time_allowed: int
    difficulty: Difficulty
    feedback: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "question": self.question,
            "answer": self.answer,
            "score": self.score,
            "timeTaken": self.time_taken,
            "timeAllowed": self.time_allowed,
            "difficulty": Difficulty(self.difficulty).value,
        }
        if self.feedback is not None:
            data["feedback"] = self.feedback
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnswerRecord":
        return cls(
            question=data["question"],
            answer=data.get("answer", ""),
            score=int(data["score"]),
            time_taken=int(data.get("timeTaken", 0)),
            time_allowed=int(data["timeAllowed"]),
            difficulty=Difficulty(data.get("difficulty", "medium")),
            feedback=data.get("feedback"),
        )


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class CandidateRecord:
    id: str
    name: str
    email: str
    role: str = "Full Stack Developer"
    score: int = 0
    summary: str = ""
    status: CandidateStatus = CandidateStatus.IN_PROGRESS
    answers: List[AnswerRecord] = field(default_factory=list)
    interview_start_time: str = field(default_factory=utc_now_iso)
    interview_end_time: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "score": self.score,
            "summary": self.summary,
            "status": self.status.value,
            "answers": [a.to_dict() for a in self.answers],
            "interviewStartTime": self.interview_start_time,
            "interviewEndTime": self.interview_end_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CandidateRecord":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            email=data["email"],
            role=data.get("role") or "Full Stack Developer",
            score=int(data.get("score", 0)),
            summary=data.get("summary", ""),
            status=CandidateStatus(data.get("status", CandidateStatus.IN_PROGRESS.value)),
            answers=[AnswerRecord.from_dict(a) for a in data.get("answers", [])],
            interview_start_time=data.get("interviewStartTime") or utc_now_iso(),
            interview_end_time=data.get("interviewEndTime"),
        )
