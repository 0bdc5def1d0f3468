from pydantic import BaseModel, field_validator
from uuid import UUID
from fastapi_users import schemas
from typing import Literal, Optional

UserRole = Literal["hospital", "organizer", "donor"]


class UserRead(schemas.BaseUser[UUID]):
    display_name: Optional[str] = None
    role: UserRole


class UserCreate(schemas.BaseUserCreate):
    display_name: Optional[str] = None
    role: UserRole = "donor"

    @field_validator("display_name")
    @classmethod
    def _strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class UserUpdate(schemas.BaseUserUpdate):
    # role is fixed at signup
    display_name: Optional[str] = None

    @field_validator("display_name")
    @classmethod
    def _strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class UserProfile(BaseModel):
    id: UUID
    display_name: Optional[str] = None
    role: UserRole

    class Config:
        from_attributes = True
