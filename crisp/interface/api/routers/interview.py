from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from crisp.application.interview_session import CandidateProfile
from crisp.application.service import InterviewService

router = APIRouter(tags=["interview"])


class StartPayload(BaseModel):
    name: str
    email: str
    role: str = "Full Stack Developer"
    experience: Optional[str] = None
    skills: List[str] = []
    resume_text: Optional[str] = None


class DraftPayload(BaseModel):
    text: str = ""


class AnswerPayload(BaseModel):
    text: str
    time_taken: Optional[int] = Field(default=None, ge=0)


class JumpPayload(BaseModel):
    index: int


def get_service(request: Request) -> InterviewService:
    return request.app.state.interview_service


@router.get("/interview")
async def interview_state(service: InterviewService = Depends(get_service)):
    return service.state()


@router.post("/interview/start", status_code=status.HTTP_201_CREATED)
async def start_interview(payload: StartPayload, service: InterviewService = Depends(get_service)):
    candidate = await service.start_interview(CandidateProfile(**payload.model_dump()))
    return {"candidate": candidate.to_dict(), "interview": service.state()}


@router.post("/interview/draft")
async def save_draft(payload: DraftPayload, service: InterviewService = Depends(get_service)):
    service.save_draft(payload.text)
    return {"status": "ok"}


@router.post("/interview/answer")
async def submit_answer(payload: AnswerPayload, service: InterviewService = Depends(get_service)):
    outcome = await service.submit_answer(payload.text, payload.time_taken)
    if outcome is None:
        return {"accepted": False, "interview": service.state()}
    severity, message = outcome.notice
    return {
        "accepted": True,
        "questionId": outcome.question_id,
        "score": outcome.score,
        "feedback": outcome.result.feedback,
        "strengths": outcome.result.strengths,
        "improvements": outcome.result.improvements,
        "notice": {"severity": severity, "message": message},
        "completed": outcome.completed,
        "finalScore": outcome.final_score,
        "summary": outcome.summary,
        "interview": service.state(),
    }


@router.post("/interview/skip")
async def skip_question(service: InterviewService = Depends(get_service)):
    accepted = await service.skip_question()
    return {"accepted": accepted, "interview": service.state()}


@router.post("/interview/pause")
async def pause_interview(service: InterviewService = Depends(get_service)):
    service.pause()
    return service.state()


@router.post("/interview/resume")
async def resume_interview(service: InterviewService = Depends(get_service)):
    service.resume()
    return service.state()


@router.post("/interview/jump")
async def jump_to_question(payload: JumpPayload, service: InterviewService = Depends(get_service)):
    service.jump_to_question(payload.index)
    return service.state()


@router.post("/interview/reset")
async def reset_interview(service: InterviewService = Depends(get_service)):
    service.reset()
    return service.state()


@router.get("/interview/welcome-back")
async def welcome_back_check(service: InterviewService = Depends(get_service)):
    decision = service.check_welcome_back()
    snapshot = service.session.snapshot
    return {
        "decision": decision.value,
        "pending": service.welcome_back_pending,
        "candidateId": snapshot.candidate_id,
        "progress": len(snapshot.answers),
        "totalQuestions": len(snapshot.questions),
    }


@router.post("/interview/welcome-back/resume")
async def welcome_back_resume(service: InterviewService = Depends(get_service)):
    service.resume_after_welcome_back()
    return service.state()


@router.post("/interview/welcome-back/start-fresh")
async def welcome_back_start_fresh(service: InterviewService = Depends(get_service)):
    service.start_fresh_after_welcome_back()
    return service.state()


@router.get("/candidates/{candidate_id}")
async def get_candidate(candidate_id: str, service: InterviewService = Depends(get_service)):
    candidate = service.candidates.get(candidate_id)
    if candidate is None:
        raise HTTPException(status_code=404, detail="Candidate not found")
    return candidate.to_dict()
