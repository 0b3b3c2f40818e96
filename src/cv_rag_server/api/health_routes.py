from fastapi import APIRouter

from .models import HealthResponse
from ..config import settings

router = APIRouter(tags=["health"])

@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    missing = settings.missing_credentials()
    return HealthResponse(configured=not missing, missing=missing)
