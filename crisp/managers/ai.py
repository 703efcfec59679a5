import json
import re
import time
from typing import Any, Dict, List, Optional

import structlog
from google import genai
from google.genai import types

from ..application.interview_session import (
    AnswerRecord,
    CandidateProfile,
    Difficulty,
    Question,
    ScoredResult,
    ScoringRequest,
)
from ..core.config import Settings
from ..core.exceptions import AdapterError
from ..core.interfaces import InterviewAdapter
from ..processors.questions import fallback_questions
from ..processors.scoring import get_fallback_score, round_half_up

logger = structlog.get_logger(__name__)

_FENCE_RE = re.compile(r"```json\n?|\n?```")

SAFETY_SETTINGS = [
    types.SafetySetting(category=category, threshold=types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE)
    for category in (
        types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
        types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    )
]


def parse_json_payload(text: str) -> Any:
    """Decode a model reply that may be wrapped in a ```json fence."""
    try:
        return json.loads(_FENCE_RE.sub("", text or "").strip())
    except json.JSONDecodeError as e:
        raise AdapterError(f"Model reply is not valid JSON: {e}") from e


class FallbackInterviewAdapter(InterviewAdapter):
    """Deterministic adapter used when no AI service is configured."""

    async def generate_questions(self, profile: CandidateProfile, count: int) -> List[Question]:
        return fallback_questions(count)

    async def score_answer(self, request: ScoringRequest) -> ScoredResult:
        return get_fallback_score(
            request.question,
            request.answer,
            request.difficulty,
            request.time_taken,
            request.time_limit,
        )

    async def generate_summary(self,
                               candidate_name: str,
                               records: List[AnswerRecord],
                               overall_score: int) -> str:
        if records:
            avg = round_half_up(sum(r.score for r in records) / len(records))
        else:
            avg = overall_score
        if overall_score >= 80:
            level = "excellent"
        elif overall_score >= 60:
            level = "good"
        else:
            level = "developing"
        if overall_score >= 70:
            outlook = "Recommended for further consideration."
        else:
            outlook = "Consider additional technical discussion or training opportunities."
        return (
            f"{candidate_name} completed the technical interview with an overall score of "
            f"{overall_score}/100 (average: {avg}/100).\n\n"
            f"They demonstrated {level} technical knowledge across the assessed areas. "
            "Key strengths include problem-solving approach and communication skills.\n\n"
            f"{outlook}"
        )


class GeminiInterviewAdapter(InterviewAdapter):
    """
    Gemini-backed question generation, scoring and summaries.

    Any failure (network, safety block, unparseable reply) is logged and the
    request is answered by the fallback adapter instead.
    """

    def __init__(self,
                 api_key: str,
                 model: str = "gemini-2.5-flash-lite",
                 fallback: Optional[InterviewAdapter] = None,
                 client: Optional[Any] = None):
        self.model = model
        self.fallback = fallback or FallbackInterviewAdapter()
        self.client = client or genai.Client(api_key=api_key)
        self.config = types.GenerateContentConfig(
            temperature=0.7,
            top_p=0.8,
            top_k=40,
            max_output_tokens=1024,
            safety_settings=SAFETY_SETTINGS,
        )

    async def _generate(self, prompt: str) -> str:
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
            config=self.config,
        )
        return response.text or ""

    async def generate_questions(self, profile: CandidateProfile, count: int) -> List[Question]:
        try:
            text = await self._generate(self._questions_prompt(profile, count))
            payload = parse_json_payload(text)
            if not isinstance(payload, list):
                raise AdapterError("Question reply is not a JSON array")
            stamp = int(time.time() * 1000)
            questions = [self._to_question(item, stamp, i) for i, item in enumerate(payload)]
        except Exception as e:
            logger.warning("question_generation_failed", error=str(e))
            return await self.fallback.generate_questions(profile, count)

        if len(questions) != count:
            logger.warning("question_count_mismatch", expected=count, received=len(questions))
            return await self.fallback.generate_questions(profile, count)
        logger.info("questions_generated", count=len(questions), model=self.model)
        return questions

    async def score_answer(self, request: ScoringRequest) -> ScoredResult:
        if not request.answer.strip():
            return await self.fallback.score_answer(request)
        try:
            text = await self._generate(self._scoring_prompt(request))
            data = parse_json_payload(text)
            if not isinstance(data, dict):
                raise AdapterError("Score reply is not a JSON object")
            result = ScoredResult(
                score=max(0, min(100, round_half_up(float(data.get("score") or 0)))),
                feedback=data.get("feedback") or "Answer evaluated by AI.",
                strengths=data["strengths"] if isinstance(data.get("strengths"), list) else [],
                improvements=data["improvements"] if isinstance(data.get("improvements"), list) else [],
            )
        except Exception as e:
            logger.warning("answer_scoring_failed", error=str(e))
            return await self.fallback.score_answer(request)
        logger.info("answer_scored", score=result.score, model=self.model)
        return result

    async def generate_summary(self,
                               candidate_name: str,
                               records: List[AnswerRecord],
                               overall_score: int) -> str:
        try:
            text = await self._generate(self._summary_prompt(candidate_name, records, overall_score))
        except Exception as e:
            logger.warning("summary_generation_failed", error=str(e))
            text = ""
        return text or await self.fallback.generate_summary(candidate_name, records, overall_score)

    @staticmethod
    def _to_question(item: Dict[str, Any], stamp: int, index: int) -> Question:
        difficulty = item.get("difficulty") or "medium"
        return Question(
            id=f"gemini-{stamp}-{index}",
            text=item["text"],
            difficulty=Difficulty(difficulty),
            time_limit=int(item.get("timeLimit") or 60),
            category=item.get("category") or "General",
        )

    @staticmethod
    def _questions_prompt(profile: CandidateProfile, count: int) -> str:
        details = [f"- Name: {profile.name}", f"- Email: {profile.email}", f"- Role: {profile.role}"]
        if profile.experience:
            details.append(f"- Experience: {profile.experience}")
        if profile.skills:
            details.append(f"- Skills: {', '.join(profile.skills)}")
        if profile.resume_text:
            details.append(f"- Resume Summary: {profile.resume_text[:500]}...")
        profile_block = "\n".join(details)
        return f"""
Generate {count} technical interview questions for a {profile.role} candidate named {profile.name}.

Candidate Profile:
{profile_block}

Requirements:
1. Generate exactly {count} questions
2. Mix of difficulties: 2 easy, 2 medium, 2 hard
3. Focus on practical coding and system design concepts
4. Questions should be relevant to Full Stack Development
5. Each question should be clear and specific
6. Include appropriate time limits (easy: 20s, medium: 60s, hard: 120s)

Format your response as a JSON array with the following structure:
[
  {{
    "text": "Question text here",
    "difficulty": "easy|medium|hard",
    "timeLimit": 20|60|120,
    "category": "React|Node.js|System Design|JavaScript|Database|etc"
  }}
]
"""

    @staticmethod
    def _scoring_prompt(request: ScoringRequest) -> str:
        difficulty = Difficulty(request.difficulty).value
        efficiency = round_half_up(request.time_taken / request.time_limit * 100) if request.time_limit else 0
        return f"""
You are a strict technical interviewer evaluating a candidate's answer. Be critical and accurate in your assessment.

Question ({difficulty} level): {request.question}

Candidate Answer: {request.answer}

Time Details:
- Time Limit: {request.time_limit} seconds
- Time Taken: {request.time_taken} seconds
- Efficiency: {efficiency}%

Scoring Criteria (0-100 total):
1. Technical Accuracy (50 points)
2. Completeness (25 points)
3. Clarity & Structure (15 points)
4. Time Efficiency (10 points): <=80% of the limit earns full marks, >120% earns 0-2

Penalties:
- Empty or one-word answers: maximum 10 points
- Completely off-topic or nonsensical: maximum 5 points
- Copy-paste or obviously fake answers: maximum 15 points

Provide your response in JSON format:
{{
  "score": 65,
  "feedback": "Detailed assessment explaining the score with specific reasoning...",
  "strengths": ["Specific technical strengths demonstrated"],
  "improvements": ["Specific technical areas needing improvement"]
}}
"""

    @staticmethod
    def _summary_prompt(candidate_name: str, records: List[AnswerRecord], overall_score: int) -> str:
        answers_text = "\n".join(
            f"Q{i + 1} ({Difficulty(r.difficulty).value}): {r.question}\n"
            f"Answer: {r.answer}\nScore: {r.score}/100\nTime: {r.time_taken}s\n"
            for i, r in enumerate(records)
        )
        return f"""
Generate a comprehensive interview summary for {candidate_name}.

Overall Score: {overall_score}/100

Interview Responses:
{answers_text}

Please provide a professional 2-3 paragraph summary that includes:
1. Overall performance assessment
2. Key technical strengths demonstrated
3. Areas for improvement
4. Recommendation (Strong Hire/Hire/Maybe/No Hire)
"""


def build_interview_adapter(settings: Settings) -> InterviewAdapter:
    if settings.GEMINI_API_KEY:
        logger.info("ai_adapter_selected", adapter="gemini", model=settings.AI_MODEL)
        return GeminiInterviewAdapter(api_key=settings.GEMINI_API_KEY, model=settings.AI_MODEL)
    logger.info("ai_adapter_selected", adapter="fallback")
    return FallbackInterviewAdapter()
