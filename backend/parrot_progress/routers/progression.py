from fastapi import APIRouter, Depends, HTTPException, status

from ..models import LevelInfo, RewardNotification, StreakInfo, TicketBalance
from ..schemas import AccountResponse, DiaryEntryCreated
from ..services.progression import ProgressionService
from ..state import get_current_user_id, get_progression_service

router = APIRouter(tags=["progression"])


@router.post("/accounts", response_model=AccountResponse)
async def create_account(
    user_id: str = Depends(get_current_user_id),
    service: ProgressionService = Depends(get_progression_service),
) -> AccountResponse:
    """Create the progression and ticket records of the current user."""

    created = await service.create_account(user_id)
    return AccountResponse(user_id=user_id, created=created)


@router.get("/progression", response_model=LevelInfo)
async def get_progression(
    user_id: str = Depends(get_current_user_id),
    service: ProgressionService = Depends(get_progression_service),
) -> LevelInfo:
    """Return level, in-level XP and the next threshold."""

    return await service.get_level_info(user_id)


@router.get("/tickets", response_model=TicketBalance)
async def get_tickets(
    user_id: str = Depends(get_current_user_id),
    service: ProgressionService = Depends(get_progression_service),
) -> TicketBalance:
    return TicketBalance(user_id=user_id, ticket_count=await service.ledger.balance(user_id))


@router.get("/streak", response_model=StreakInfo)
async def get_streak(
    user_id: str = Depends(get_current_user_id),
    service: ProgressionService = Depends(get_progression_service),
) -> StreakInfo:
    return await service.get_streak(user_id)


@router.post("/streak/check-in", response_model=StreakInfo)
async def check_in(
    user_id: str = Depends(get_current_user_id),
    service: ProgressionService = Depends(get_progression_service),
) -> StreakInfo:
    """Count today's visit towards the daily streak and return the resulting rank."""

    return await service.record_activity(user_id)


@router.post("/diary-entries/rewards", response_model=RewardNotification)
async def reward_diary_entry(
    payload: DiaryEntryCreated,
    user_id: str = Depends(get_current_user_id),
    service: ProgressionService = Depends(get_progression_service),
) -> RewardNotification:
    """Grant the rewards of a newly created diary entry.

    Only call this on creation; edited entries earn nothing. Posting the same
    ``entry_id`` again returns an empty reward.
    """

    try:
        return await service.on_diary_entry_created(
            user_id, payload.entry_id, lines=payload.lines
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
