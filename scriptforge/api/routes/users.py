from __future__ import annotations

from fastapi import APIRouter, Depends

from ...domain.users import User, UserResponse
from ..dependencies import get_current_user

router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserResponse)
async def read_current_user(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse(data=current_user)
