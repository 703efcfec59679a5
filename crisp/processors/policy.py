"""Rules the submission flow applies around whichever scorer produced a score."""
from typing import Iterable, Tuple

from ..application.interview_session import AnswerRecord
from .scoring import round_half_up

# (maximum trimmed length, score ceiling), applied in order
LENGTH_CAPS: Tuple[Tuple[int, int], ...] = ((20, 40), (10, 25))

BRIEF_ANSWER_LENGTH = 5
NOTICE_BRIEF_LENGTH = 10


def prepare_answer_text(raw_answer: str, is_auto_submit: bool) -> str:
    """Text handed to the scorer in place of empty or near-empty answers."""
    text = raw_answer.strip()
    if not text:
        return "No response provided (time expired)" if is_auto_submit else "No response provided"
    if len(text) < BRIEF_ANSWER_LENGTH:
        return "Very brief response provided"
    return text


def apply_length_caps(score: int, raw_answer: str) -> int:
    length = len(raw_answer.strip())
    for max_length, ceiling in LENGTH_CAPS:
        if length < max_length and score > ceiling:
            score = ceiling
    return score


def average_score(records: Iterable[AnswerRecord]) -> int:
    scores = [r.score for r in records]
    if not scores:
        return 0
    return round_half_up(sum(scores) / len(scores))


def feedback_notice(score: int, raw_answer: str) -> Tuple[str, str]:
    """Severity and message shown to the candidate after each answer."""
    if len(raw_answer.strip()) < NOTICE_BRIEF_LENGTH:
        return "warning", "Very brief answer - consider adding more detail for better evaluation"
    if score >= 80:
        return "success", "Excellent answer!"
    if score >= 60:
        return "success", "Good response!"
    if score >= 40:
        return "info", "Adequate answer, room for improvement"
    return "warning", "Consider providing more technical depth in your answers"
