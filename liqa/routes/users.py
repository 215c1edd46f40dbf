"""
users.py
--------
Purpose:
    Self-service endpoints for the authenticated user.

    - GET    /me               profile and preferences
    - PUT    /me/preferences   replace interests / preferred days / time of day
    - DELETE /account          delete own account
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from liqa.auth.verify import auth_dependency, current_user_id
from liqa.infrastructure.audit.activity_logger import ActivityLogger
from liqa.infrastructure.observability.logging import get_logger
from liqa.models.api.user_request import PreferencesUpdateRequest
from liqa.models.domain.user_domain import User, UserPreferences
from liqa.repositories.base import Storage
from liqa.routes.dependencies import get_activity_logger, get_storage
from liqa.utils.audit_helpers import record_activity

router = APIRouter(tags=["users"])
logger = get_logger(__name__)


@router.get("/me", response_model=User)
async def me(claims: dict = Depends(auth_dependency), storage: Storage = Depends(get_storage)):
    user = await storage.get_user(current_user_id(claims))
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.put("/me/preferences", response_model=User)
async def update_preferences(
    body: PreferencesUpdateRequest,
    request: Request,
    claims: dict = Depends(auth_dependency),
    storage: Storage = Depends(get_storage),
    activity_logger: ActivityLogger = Depends(get_activity_logger),
):
    user_id = current_user_id(claims)
    original = await storage.get_user(user_id)
    if original is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    preferences = UserPreferences(**body.model_dump())
    user = await storage.update_user_preferences(user_id, preferences)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    await record_activity(
        request,
        activity_logger,
        action="USER_UPDATE",
        entity_type="USER",
        user_id=user_id,
        entity_id=user_id,
        previous_state={
            "preferences": original.preferences.model_dump() if original.preferences else None
        },
        new_state={"preferences": preferences.model_dump()},
    )
    return user


@router.delete("/account", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    request: Request,
    claims: dict = Depends(auth_dependency),
    storage: Storage = Depends(get_storage),
    activity_logger: ActivityLogger = Depends(get_activity_logger),
):
    user_id = current_user_id(claims)
    if not await storage.delete_user(user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    logger.info("Account deleted", user_id=user_id)
    await record_activity(
        request,
        activity_logger,
        action="USER_DELETE",
        entity_type="USER",
        user_id=user_id,
        entity_id=user_id,
        details={"self_service": True},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
