"""
Health check endpoint
"""
from fastapi import APIRouter
from app.core.constants import SERVICE_NAME
from app.core.security import check_hashing_backend

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Health check endpoint

    Returns service status and the password hashing backend in use.
    """
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "hashing": check_hashing_backend()["primary_scheme"],
    }
