from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ..models import (
    Collectible,
    InsufficientBalance,
    NoCollectiblesAvailable,
    OwnershipRecord,
    RedemptionSucceeded,
)
from ..repositories.protocols import ProgressionStoreProtocol
from ..schemas import RedeemRequest
from ..services.progression import ProgressionService
from ..state import get_current_user_id, get_progression_service, get_store

router = APIRouter(tags=["gacha"])


@router.post("/gacha/redeem", response_model=RedemptionSucceeded)
async def redeem(
    payload: RedeemRequest,
    user_id: str = Depends(get_current_user_id),
    service: ProgressionService = Depends(get_progression_service),
) -> RedemptionSucceeded:
    """Spend tickets and draw that many parrots."""

    try:
        outcome = await service.redeem_gacha(user_id, payload.count)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    if isinstance(outcome, InsufficientBalance):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=outcome.message)
    if isinstance(outcome, NoCollectiblesAvailable):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=outcome.message)
    return outcome


@router.get("/collectibles", response_model=List[Collectible])
async def list_collectibles(
    store: ProgressionStoreProtocol = Depends(get_store),
) -> List[Collectible]:
    """Return the full parrot catalog."""

    return await store.list_catalog()


@router.get("/collection", response_model=List[OwnershipRecord])
async def get_collection(
    user_id: str = Depends(get_current_user_id),
    service: ProgressionService = Depends(get_progression_service),
) -> List[OwnershipRecord]:
    """Return the parrots the current user owns, most recently obtained first."""

    return await service.get_collection(user_id)
