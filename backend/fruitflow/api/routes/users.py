from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from fruitflow.api.deps import require_roles
from fruitflow.database import get_db
from fruitflow.models.user import User, UserRole
from fruitflow.schemas.user import ApprovalsResponse, CreateManagerRequest, UserResponse
from fruitflow.services.users import (
    approve_user,
    create_manager,
    get_all_users,
    get_available_transporters,
    get_partner_approvals,
    refresh_all_ratings,
)
from fruitflow.services.websocket_manager import broadcast_user_suspended

router = APIRouter(prefix="/users", tags=["users"])

manager_only = require_roles(UserRole.MANAGER)


@router.get("", response_model=list[UserResponse])
def list_users(
    db: Session = Depends(get_db),
    _: User = Depends(manager_only),
):
    return [UserResponse.model_validate(u) for u in get_all_users(db)]


@router.get("/approvals", response_model=ApprovalsResponse)
def list_approvals(
    db: Session = Depends(get_db),
    _: User = Depends(manager_only),
):
    pending, approved = get_partner_approvals(db)
    return ApprovalsResponse(
        pending=[UserResponse.model_validate(u) for u in pending],
        approved=[UserResponse.model_validate(u) for u in approved],
    )


@router.post("/{user_id}/approve", response_model=UserResponse)
def approve(
    user_id: UUID,
    db: Session = Depends(get_db),
    _: User = Depends(manager_only),
):
    user = approve_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse.model_validate(user)


@router.post("/managers", response_model=UserResponse, status_code=201)
def add_manager(
    dto: CreateManagerRequest,
    db: Session = Depends(get_db),
    _: User = Depends(manager_only),
):
    return UserResponse.model_validate(create_manager(db, dto.name, dto.password))


@router.post("/refresh-ratings", response_model=list[UserResponse])
async def refresh_ratings(
    db: Session = Depends(get_db),
    _: User = Depends(manager_only),
):
    """Recompute every user's ratings; returns the accounts suspended by this run."""
    suspended = [UserResponse.model_validate(u) for u in refresh_all_ratings(db)]
    for user in suspended:
        await broadcast_user_suspended(user.model_dump(mode="json"))
    return suspended


@router.get("/transporters", response_model=list[UserResponse])
def available_transporters(
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(UserRole.SUPPLIER, UserRole.MANAGER)),
):
    return [UserResponse.model_validate(u) for u in get_available_transporters(db)]
