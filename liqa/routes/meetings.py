"""
meetings.py
-----------
Purpose:
    Meeting catalogue, registration and recording annotations.

    - GET    /meetings                       any authenticated user
    - GET    /meetings/{id}                  any authenticated user
    - POST   /meetings                       admin; emails every user
    - PATCH  /meetings/{id}                  admin
    - DELETE /meetings/{id}                  admin
    - POST   /meetings/{id}/register         authenticated user; emails a confirmation
    - GET    /meetings/{id}/annotations      authenticated user
    - POST   /meetings/{id}/annotations      authenticated user

Every mutation is recorded in the activity log with before/after snapshots.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from liqa.auth.verify import admin_dependency, auth_dependency, current_user_id
from liqa.infrastructure.audit.activity_logger import ActivityLogger
from liqa.infrastructure.observability.best_effort import best_effort
from liqa.infrastructure.observability.logging import get_logger
from liqa.models.api.meeting_request import (
    AnnotationCreateRequest,
    MeetingCreateRequest,
    MeetingUpdateRequest,
)
from liqa.models.domain.meeting_domain import Annotation, Meeting, Registration
from liqa.repositories.base import Storage
from liqa.routes.dependencies import get_activity_logger, get_email_service, get_storage
from liqa.services.email_service import EmailService
from liqa.utils.audit_helpers import record_activity

router = APIRouter(prefix="/meetings", tags=["meetings"])
logger = get_logger(__name__)


async def _require_meeting(storage: Storage, meeting_id: int) -> Meeting:
    meeting = await storage.get_meeting(meeting_id)
    if meeting is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Meeting not found")
    return meeting


@router.get("", response_model=list[Meeting])
async def list_meetings(
    claims: dict = Depends(auth_dependency),
    storage: Storage = Depends(get_storage),
):
    return await storage.get_meetings()


@router.get("/{meeting_id}", response_model=Meeting)
async def get_meeting(
    meeting_id: int,
    claims: dict = Depends(auth_dependency),
    storage: Storage = Depends(get_storage),
):
    return await _require_meeting(storage, meeting_id)


@router.post("", response_model=Meeting, status_code=status.HTTP_201_CREATED)
async def create_meeting(
    body: MeetingCreateRequest,
    request: Request,
    claims: dict = Depends(admin_dependency),
    storage: Storage = Depends(get_storage),
    activity_logger: ActivityLogger = Depends(get_activity_logger),
    email: EmailService = Depends(get_email_service),
):
    meeting = await storage.create_meeting(body.model_dump())

    async def _announce() -> int:
        users = await storage.get_all_users()
        return await email.send_new_meeting_notification(users, meeting)

    await best_effort("new_meeting_announcement", _announce, meeting_id=meeting.id)

    await record_activity(
        request,
        activity_logger,
        action="MEETING_CREATE",
        entity_type="MEETING",
        user_id=current_user_id(claims),
        entity_id=meeting.id,
        new_state=meeting.model_dump(mode="json"),
    )
    return meeting


@router.patch("/{meeting_id}", response_model=Meeting)
async def update_meeting(
    meeting_id: int,
    body: MeetingUpdateRequest,
    request: Request,
    claims: dict = Depends(admin_dependency),
    storage: Storage = Depends(get_storage),
    activity_logger: ActivityLogger = Depends(get_activity_logger),
):
    original = await _require_meeting(storage, meeting_id)
    changes = body.model_dump(exclude_unset=True)

    becomes_past = not changes.get("is_upcoming", original.is_upcoming)
    video_url = changes.get("video_url", original.video_url)
    if becomes_past and not video_url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Video URL is required for past meetings",
        )

    meeting = await storage.update_meeting(meeting_id, changes)
    if meeting is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Meeting not found")

    await record_activity(
        request,
        activity_logger,
        action="MEETING_UPDATE",
        entity_type="MEETING",
        user_id=current_user_id(claims),
        entity_id=meeting_id,
        previous_state=original.model_dump(mode="json"),
        new_state=meeting.model_dump(mode="json"),
    )
    return meeting


@router.delete("/{meeting_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_meeting(
    meeting_id: int,
    request: Request,
    claims: dict = Depends(admin_dependency),
    storage: Storage = Depends(get_storage),
    activity_logger: ActivityLogger = Depends(get_activity_logger),
):
    meeting = await _require_meeting(storage, meeting_id)
    if not await storage.delete_meeting(meeting_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Meeting not found")

    await record_activity(
        request,
        activity_logger,
        action="MEETING_DELETE",
        entity_type="MEETING",
        user_id=current_user_id(claims),
        entity_id=meeting_id,
        previous_state=meeting.model_dump(mode="json"),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{meeting_id}/register",
    response_model=Registration,
    status_code=status.HTTP_201_CREATED,
)
async def register_for_meeting(
    meeting_id: int,
    request: Request,
    claims: dict = Depends(auth_dependency),
    storage: Storage = Depends(get_storage),
    activity_logger: ActivityLogger = Depends(get_activity_logger),
    email: EmailService = Depends(get_email_service),
):
    user_id = current_user_id(claims)

    # Check-then-insert is not atomic; the unique constraint is the final guard.
    if await storage.get_registration(user_id, meeting_id) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Already registered")

    meeting = await _require_meeting(storage, meeting_id)
    if not meeting.is_upcoming:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot register for past meetings",
        )

    registration = await storage.create_registration(user_id, meeting_id)

    user = await storage.get_user(user_id)
    if user is not None and not await email.send_meeting_confirmation(user, meeting):
        logger.warning(
            "Registration confirmation email not sent", user_id=user_id, meeting_id=meeting_id
        )

    await record_activity(
        request,
        activity_logger,
        action="REGISTRATION_CREATE",
        entity_type="REGISTRATION",
        user_id=user_id,
        entity_id=registration.id,
        new_state=registration.model_dump(mode="json"),
    )
    return registration


@router.get("/{meeting_id}/annotations", response_model=list[Annotation])
async def list_annotations(
    meeting_id: int,
    claims: dict = Depends(auth_dependency),
    storage: Storage = Depends(get_storage),
):
    return await storage.get_annotations(meeting_id)


@router.post(
    "/{meeting_id}/annotations",
    response_model=Annotation,
    status_code=status.HTTP_201_CREATED,
)
async def create_annotation(
    meeting_id: int,
    body: AnnotationCreateRequest,
    request: Request,
    claims: dict = Depends(auth_dependency),
    storage: Storage = Depends(get_storage),
    activity_logger: ActivityLogger = Depends(get_activity_logger),
):
    user_id = current_user_id(claims)
    await _require_meeting(storage, meeting_id)

    annotation = await storage.create_annotation(meeting_id, user_id, body.timestamp, body.text)

    await record_activity(
        request,
        activity_logger,
        action="ANNOTATION_CREATE",
        entity_type="ANNOTATION",
        user_id=user_id,
        entity_id=annotation.id,
        new_state=annotation.model_dump(mode="json"),
    )
    return annotation
