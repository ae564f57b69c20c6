from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    member = "member"
    administrator = "administrator"


class VerifiedIdentity(BaseModel):
    """Claims yielded by the identity verifier for an authenticated bearer token."""

    subject_id: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


class Account(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    subject_id: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    role: Role = Role.member
    is_premium: bool = False
    created_at: datetime
    updated_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role is Role.administrator


class AccountResponse(BaseModel):
    id: UUID
    subject_id: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    role: Role
    is_premium: bool
    created_at: datetime


class AccountListResponse(BaseModel):
    items: List[AccountResponse]


class ProfileUpdateRequest(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    photo_url: Optional[str] = Field(default=None, max_length=2048)


class RoleUpdateRequest(BaseModel):
    role: Role
