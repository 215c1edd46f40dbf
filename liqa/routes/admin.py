"""
admin.py
--------
Purpose:
    Admin dashboard endpoints. Every route requires an admin token.

    - GET    /admin/users
    - PATCH  /admin/users/{id}/role
    - DELETE /admin/users/{id}
    - GET    /admin/registrations    (joined with user and meeting)
    - GET    /admin/activity-logs    (filters: user_id, entity_type, action,
                                      start_date, end_date; inclusive)
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from liqa.auth.verify import admin_dependency, current_user_id
from liqa.infrastructure.audit.activity_logger import ActivityLogger
from liqa.models.api.admin_response import RegistrationDetail
from liqa.models.api.user_request import RoleUpdateRequest
from liqa.models.domain.activity_domain import (
    ActivityAction,
    ActivityLogEntry,
    ActivityLogFilters,
    EntityType,
)
from liqa.models.domain.user_domain import User
from liqa.repositories.base import Storage
from liqa.routes.dependencies import get_activity_logger, get_storage
from liqa.utils.audit_helpers import record_activity

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(admin_dependency)])


@router.get("/users", response_model=list[User])
async def list_users(storage: Storage = Depends(get_storage)):
    return await storage.get_all_users()


@router.patch("/users/{user_id}/role", response_model=User)
async def update_user_role(
    user_id: int,
    body: RoleUpdateRequest,
    request: Request,
    claims: dict = Depends(admin_dependency),
    storage: Storage = Depends(get_storage),
    activity_logger: ActivityLogger = Depends(get_activity_logger),
):
    original = await storage.get_user(user_id)
    user = await storage.update_user_role(user_id, body.is_admin)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    await record_activity(
        request,
        activity_logger,
        action="ADMIN_ACTION",
        entity_type="USER",
        user_id=current_user_id(claims),
        entity_id=user_id,
        previous_state={"is_admin": original.is_admin} if original else None,
        new_state={"is_admin": user.is_admin},
        details={"operation": "role_update"},
    )
    return user


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    request: Request,
    claims: dict = Depends(admin_dependency),
    storage: Storage = Depends(get_storage),
    activity_logger: ActivityLogger = Depends(get_activity_logger),
):
    original = await storage.get_user(user_id)
    if not await storage.delete_user(user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    await record_activity(
        request,
        activity_logger,
        action="USER_DELETE",
        entity_type="USER",
        user_id=current_user_id(claims),
        entity_id=user_id,
        previous_state=original.model_dump(mode="json") if original else None,
        details={"deleted_by_admin": True},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/registrations", response_model=list[RegistrationDetail])
async def list_registrations(storage: Storage = Depends(get_storage)):
    registrations = await storage.get_all_registrations()

    users: dict[int, User | None] = {}
    meetings = {meeting.id: meeting for meeting in await storage.get_meetings()}

    details = []
    for registration in registrations:
        if registration.user_id not in users:
            users[registration.user_id] = await storage.get_user(registration.user_id)
        details.append(
            RegistrationDetail(
                registration=registration,
                user=users[registration.user_id],
                meeting=meetings.get(registration.meeting_id),
            )
        )
    return details


@router.get("/activity-logs", response_model=list[ActivityLogEntry])
async def list_activity_logs(
    user_id: int | None = Query(default=None),
    entity_type: EntityType | None = Query(default=None),
    action: ActivityAction | None = Query(default=None),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    activity_logger: ActivityLogger = Depends(get_activity_logger),
):
    filters = ActivityLogFilters(
        user_id=user_id,
        entity_type=entity_type,
        action=action,
        start_date=start_date,
        end_date=end_date,
    )
    return await activity_logger.query(filters)
