from fastapi import APIRouter

from .estimation import router as estimation_router
from .health import router as health_router


# The estimation endpoints are public; abuse is bounded by the rate limiter
api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(estimation_router)
