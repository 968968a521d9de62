from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fruitflow.api.deps import get_current_user
from fruitflow.database import get_db
from fruitflow.models.user import User
from fruitflow.schemas.user import (
    AddressUpdate,
    LoginRequest,
    SignupRequest,
    SignupResponse,
    TokenResponse,
    UserResponse,
)
from fruitflow.services.users import login, signup, update_address

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=SignupResponse, status_code=201)
def register(
    dto: SignupRequest,
    db: Session = Depends(get_db),
):
    user, token = signup(db, dto)
    if token:
        message = "Signup successful."
    else:
        message = (
            f"Signup successful. Your {user.role.value} account is awaiting manager approval."
        )
    return SignupResponse(user=UserResponse.model_validate(user), token=token, message=message)


@router.post("/login", response_model=TokenResponse)
def sign_in(
    dto: LoginRequest,
    db: Session = Depends(get_db),
):
    user, token = login(db, dto.name, dto.password)
    return TokenResponse(user=UserResponse.model_validate(user), token=token)


@router.get("/me", response_model=UserResponse)
def get_profile(
    user: User = Depends(get_current_user),
):
    return UserResponse.model_validate(user)


@router.put("/me/address", response_model=UserResponse)
def set_address(
    body: AddressUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return UserResponse.model_validate(update_address(db, user, body.address))
