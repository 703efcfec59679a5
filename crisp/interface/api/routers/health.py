from fastapi import APIRouter, Depends, Request
from crisp.core.config import Settings, get_settings
from crisp.managers.ai import GeminiInterviewAdapter

router = APIRouter(tags=["health"])

@router.get("/health")
async def health_check(request: Request, settings: Settings = Depends(get_settings)):
    """Health check endpoint."""
    adapter = request.app.state.interview_service.adapter
    return {
        "status": "ok",
        "environment": settings.ENVIRONMENT,
        "app_name": settings.APP_NAME,
        "ai_configured": isinstance(adapter, GeminiInterviewAdapter),
    }
