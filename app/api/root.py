from fastapi import APIRouter

from app.core.config import settings

router = APIRouter()

@router.get("/")
def root():
    return {
        "name": "REST Resource Preview",
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "api": settings.api_prefix,
        "preview_header": settings.PREVIEW_SESSION_HEADER,
    }
