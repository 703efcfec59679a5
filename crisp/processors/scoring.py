"""
Deterministic answer scoring used when no AI evaluation is available.

The model is additive: length, technical vocabulary (with a bonus for
overlap with the question's own topics), structure and effort points,
followed by a timing adjustment and a difficulty multiplier. The result is
clamped so this path never awards a top score.
"""
import math
import re
from dataclasses import dataclass, field
from typing import Dict, Tuple

import structlog

from ..application.interview_session import Difficulty, ScoredResult

logger = structlog.get_logger(__name__)

TECHNICAL_KEYWORDS: Tuple[str, ...] = (
    "function", "component", "state", "props", "hook", "api", "database",
    "server", "client", "async", "await", "promise", "callback", "event",
    "method", "class", "object", "array", "string", "number", "boolean",
    "null", "undefined", "return", "import", "export", "const", "let", "var",
    "if", "else", "for", "while", "try", "catch",
)

QUESTION_TOPIC_PATTERN = re.compile(
    r"\b(react|node|express|javascript|typescript|database|api|state|props|hook|component)\b"
)

NUMBERED_ITEM_PATTERN = re.compile(r"\d+\.")


@dataclass(frozen=True)
class FallbackScoringWeights:
    min_answer_length: int = 5
    empty_answer_score: int = 5

    points_per_character: float = 0.2
    max_length_points: float = 40

    points_per_keyword: int = 2
    max_keyword_points: int = 30
    points_per_topic_match: int = 3
    max_relevance_points: int = 10

    structure_points: int = 5
    min_sentences_for_structure: int = 3

    effort_long_answer: Tuple[Tuple[int, int], ...] = ((100, 3), (200, 3))
    effort_hedged_points: int = 2
    effort_practice_points: int = 2

    fast_ratio: float = 0.5
    fast_bonus: int = 5
    good_ratio: float = 0.8
    good_bonus: int = 2
    overtime_ratio: float = 1.2
    overtime_penalty_per_ratio: float = 20
    max_overtime_penalty: float = 15

    difficulty_multipliers: Dict[Difficulty, float] = field(default_factory=lambda: {
        Difficulty.EASY: 1.1,
        Difficulty.MEDIUM: 1.0,
        Difficulty.HARD: 0.9,
    })

    min_score: int = 5
    max_score: int = 85


DEFAULT_WEIGHTS = FallbackScoringWeights()


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def performance_level(score: int) -> str:
    if score >= 70:
        return "good"
    if score >= 50:
        return "adequate"
    if score >= 30:
        return "basic"
    return "poor"


def _content_points(answer_text: str, question_text: str, w: FallbackScoringWeights) -> float:
    length_points = min(w.max_length_points, len(answer_text) * w.points_per_character)

    keyword_matches = sum(1 for kw in TECHNICAL_KEYWORDS if kw in answer_text)
    keyword_points = min(w.max_keyword_points, keyword_matches * w.points_per_keyword)

    topics = QUESTION_TOPIC_PATTERN.findall(question_text)
    relevant = sum(1 for topic in topics if topic in answer_text)
    keyword_points += min(w.max_relevance_points, relevant * w.points_per_topic_match)

    structure_points = 0
    if "example" in answer_text or "for instance" in answer_text:
        structure_points += w.structure_points
    if NUMBERED_ITEM_PATTERN.search(answer_text):
        structure_points += w.structure_points
    if "because" in answer_text or "since" in answer_text:
        structure_points += w.structure_points
    if len(answer_text.split(". ")) > w.min_sentences_for_structure:
        structure_points += w.structure_points

    effort_points = 0
    for min_length, points in w.effort_long_answer:
        if len(answer_text) > min_length:
            effort_points += points
    if "would" in answer_text or "could" in answer_text:
        effort_points += w.effort_hedged_points
    if "best practice" in answer_text or "recommend" in answer_text:
        effort_points += w.effort_practice_points

    return length_points + keyword_points + structure_points + effort_points


def _timing_adjustment(time_taken: int, time_limit: int, w: FallbackScoringWeights) -> float:
    if time_limit <= 0:
        return 0
    ratio = time_taken / time_limit
    if ratio <= w.fast_ratio:
        return w.fast_bonus
    if ratio <= w.good_ratio:
        return w.good_bonus
    if ratio > w.overtime_ratio:
        return -min(w.max_overtime_penalty, (ratio - 1) * w.overtime_penalty_per_ratio)
    return 0


def build_result(score: int) -> ScoredResult:
    level = performance_level(score)
    if score < 50:
        advice = "Consider providing more detailed technical explanations and examples."
    else:
        advice = "Shows understanding but could benefit from more depth."
    if score >= 50:
        strengths = ["Attempted comprehensive answer", "Shows basic understanding"]
    else:
        strengths = ["Made an effort to respond"]
    if score < 70:
        improvements = [
            "Provide more specific technical details",
            "Include concrete examples",
            "Explain reasoning behind choices",
        ]
    else:
        improvements = ["Consider edge cases and optimization"]
    return ScoredResult(
        score=score,
        feedback=f"FALLBACK SCORING: Answer demonstrates {level} effort. {advice}",
        strengths=strengths,
        improvements=improvements,
    )


def get_fallback_score(question: str,
                       answer: str,
                       difficulty: Difficulty,
                       time_taken: int,
                       time_limit: int,
                       weights: FallbackScoringWeights = DEFAULT_WEIGHTS) -> ScoredResult:
    """Score an answer without any external call. Same inputs, same result."""
    answer_text = answer.lower().strip()
    question_text = question.lower()

    if len(answer_text) < weights.min_answer_length:
        score = weights.empty_answer_score
    else:
        raw = _content_points(answer_text, question_text, weights)
        raw += _timing_adjustment(time_taken, time_limit, weights)
        multiplier = weights.difficulty_multipliers.get(Difficulty(difficulty), 1.0)
        score = round_half_up(raw * multiplier)
        score = max(weights.min_score, min(weights.max_score, score))

    logger.debug(
        "fallback_score",
        answer_length=len(answer_text),
        difficulty=Difficulty(difficulty).value,
        time_taken=time_taken,
        time_limit=time_limit,
        score=score,
    )
    return build_result(score)
