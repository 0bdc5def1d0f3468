from fastapi import APIRouter, Depends, HTTPException, status
from uuid import UUID

from core.auth import current_active_user, get_user_manager
from db.users import User
from schemas.users import UserProfile

router = APIRouter()


@router.get("/{user_id}", response_model=UserProfile)
async def get_user_profile(
    user_id: UUID,
    user_manager=Depends(get_user_manager),
    user: User = Depends(current_active_user),
):
    """Public part of a user's profile: display name and role."""
    other = await user_manager.user_db.get(user_id)
    if other is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return other.to_profile
