"""
FastAPI routes for user profiles.
"""

from fastapi import APIRouter, Depends, Request
import logging

from ..auth.guard import require_identity
from ..auth.models import Identity, UserUpdate
from .service import UsersService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def get_users_service(request: Request) -> UsersService:
    return request.app.state.users_service


@router.patch("/me")
async def update_me(
    updates: UserUpdate,
    identity: Identity = Depends(require_identity),
    users_service: UsersService = Depends(get_users_service),
):
    """Update the authenticated user's email and/or username."""
    user = await users_service.update_profile(identity.id, email=updates.email, username=updates.username)
    return {"status": "success", "data": {"user": user.model_dump(by_alias=True, mode="json")}}


@router.get("/{user_id}")
async def get_user(user_id: str, users_service: UsersService = Depends(get_users_service)):
    """Public profile of any user."""
    profile = await users_service.get_public_profile(user_id)
    return {"status": "success", "data": {"user": profile.model_dump(by_alias=True, mode="json")}}
