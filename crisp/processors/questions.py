from typing import List

from ..application.interview_session import Difficulty, Question

FALLBACK_QUESTIONS: List[Question] = [
    Question(
        id="fallback-1",
        text="Explain the difference between state and props in React. When would you use each?",
        difficulty=Difficulty.EASY,
        time_limit=20,
        category="React",
    ),
    Question(
        id="fallback-2",
        text="What is the purpose of useEffect hook and how do you handle cleanup?",
        difficulty=Difficulty.EASY,
        time_limit=20,
        category="React",
    ),
    Question(
        id="fallback-3",
        text="Describe how you would implement a custom hook in React. Give an example.",
        difficulty=Difficulty.MEDIUM,
        time_limit=60,
        category="React",
    ),
    Question(
        id="fallback-4",
        text="Explain the concept of middleware in Express.js and how you would use it for authentication.",
        difficulty=Difficulty.MEDIUM,
        time_limit=60,
        category="Node.js",
    ),
    Question(
        id="fallback-5",
        text="Design a scalable REST API for a social media platform. Consider rate limiting, caching, and database design.",
        difficulty=Difficulty.HARD,
        time_limit=120,
        category="System Design",
    ),
    Question(
        id="fallback-6",
        text="Explain how you would optimize a React application with performance issues. Include specific techniques and tools.",
        difficulty=Difficulty.HARD,
        time_limit=120,
        category="React",
    ),
]


def fallback_questions(count: int = 6) -> List[Question]:
    return list(FALLBACK_QUESTIONS[:count])
