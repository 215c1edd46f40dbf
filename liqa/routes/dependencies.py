"""
FastAPI dependencies wiring routes to their collaborators.

Tests override ``get_storage`` / ``get_email_service`` through
``app.dependency_overrides``; everything built on top of them follows.
"""

from fastapi import Depends, WebSocket

from liqa.infrastructure.audit.activity_logger import ActivityLogger
from liqa.infrastructure.notifications.broadcaster import NotificationBroadcaster
from liqa.repositories.base import Storage
from liqa.repositories.postgres_storage import postgres_storage
from liqa.services.email_service import EmailService, email_service
from liqa.services.recommendation_service import RecommendationService


def get_storage() -> Storage:
    return postgres_storage


def get_email_service() -> EmailService:
    return email_service


def get_activity_logger(storage: Storage = Depends(get_storage)) -> ActivityLogger:
    return ActivityLogger(storage)


def get_recommendation_service(
    storage: Storage = Depends(get_storage),
) -> RecommendationService:
    return RecommendationService(storage)


def get_websocket_broadcaster(websocket: WebSocket) -> NotificationBroadcaster | None:
    return getattr(websocket.app.state, "broadcaster", None)
