"""FastAPI routers that expose HTTP endpoints."""

from fastapi import APIRouter

from . import gacha, progression

api_router = APIRouter()
api_router.include_router(progression.router)
api_router.include_router(gacha.router)

__all__ = ["api_router", "gacha", "progression"]
