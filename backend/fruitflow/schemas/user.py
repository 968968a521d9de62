from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from fruitflow.models.user import UserRole


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    role: UserRole


class LoginRequest(BaseModel):
    name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class CreateManagerRequest(BaseModel):
    name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AddressUpdate(BaseModel):
    address: str


class UserResponse(BaseModel):
    id: UUID
    name: str
    role: UserRole
    is_approved: bool
    is_suspended: bool
    address: str | None = None
    average_supplier_rating: float | None = None
    supplier_rating_count: int = 0
    average_transporter_rating: float | None = None
    transporter_rating_count: int = 0
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    user: UserResponse
    token: str


class SignupResponse(BaseModel):
    user: UserResponse
    # Only customers are logged in right away; partners wait for approval.
    token: str | None = None
    message: str


class ApprovalsResponse(BaseModel):
    pending: list[UserResponse]
    approved: list[UserResponse]
