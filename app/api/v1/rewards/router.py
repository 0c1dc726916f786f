"""Rewards API router"""

from typing import Optional
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_current_user
from app.models import RewardType, RewardStatus
from app.services.reward_service import RewardService
from app.utils.dependencies import get_pagination_params
from app.utils.pagination import PaginationParams
from .schemas import (
    RewardResponse,
    RewardHistoryResponse,
    RewardBalanceResponse,
    MilestoneResponse,
)

router = APIRouter()

@router.get("/balance", response_model=RewardBalanceResponse)
async def get_balance(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get user's reward totals"""
    service = RewardService(db)
    return await service.get_balance(current_user["id"])

@router.get("/history", response_model=RewardHistoryResponse)
async def get_history(
    reward_status: Optional[RewardStatus] = Query(None, alias="status"),
    reward_type: Optional[RewardType] = Query(None, alias="type"),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get user's rewards, newest first"""
    service = RewardService(db)
    rewards = await service.get_history(
        current_user["id"],
        status=reward_status.value if reward_status else None,
        reward_type=reward_type.value if reward_type else None,
        skip=pagination.skip,
        limit=pagination.limit,
    )

    items = [RewardResponse.model_validate(reward) for reward in rewards]
    return RewardHistoryResponse(items=items, count=len(items))

@router.get("/milestones", response_model=MilestoneResponse)
async def get_milestones(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get progress towards free nights"""
    service = RewardService(db)
    return await service.get_milestones(current_user["id"])

@router.get("/{reward_id}", response_model=RewardResponse)
async def get_reward(
    reward_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a single reward owned by the caller"""
    service = RewardService(db)
    return await service.get_reward_for_owner(reward_id, current_user["id"])
