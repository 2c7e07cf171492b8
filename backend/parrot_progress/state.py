"""FastAPI dependencies resolving the per-application store and services."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings
from .repositories.protocols import ProgressionStoreProtocol
from .security import verify_access_token
from .services.progression import ProgressionService

http_bearer = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> ProgressionStoreProtocol:
    """Return the store registered on the application during startup."""

    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progression store is not ready",
        )
    return store


def get_progression_service(
    request: Request,
    store: ProgressionStoreProtocol = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> ProgressionService:
    return ProgressionService(
        store,
        settings,
        draw_engine=getattr(request.app.state, "draw_engine", None),
    )


def get_current_user_id(
    creds: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    settings: Settings = Depends(get_app_settings),
) -> str:
    """Return the user id carried in the bearer token's ``sub`` claim."""

    if creds is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = verify_access_token(creds.credentials, settings)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return str(user_id)
