"""
recommendations.py
------------------
Purpose:
    Ranked meeting suggestions for the authenticated user.

    GET /recommendations -> list of {meeting, score, reasons}, at most 5,
    highest score first. Recomputed on every call.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from liqa.auth.verify import auth_dependency, current_user_id
from liqa.errors import NotFoundError
from liqa.infrastructure.observability.logging import get_logger
from liqa.models.domain.recommendation_domain import RecommendationScore
from liqa.routes.dependencies import get_recommendation_service
from liqa.services.recommendation_service import RecommendationService

router = APIRouter()
logger = get_logger(__name__)


@router.get("/recommendations", response_model=list[RecommendationScore])
async def recommendations(
    claims: dict = Depends(auth_dependency),
    service: RecommendationService = Depends(get_recommendation_service),
):
    user_id = current_user_id(claims)
    try:
        return await service.score_for(user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except Exception as e:
        logger.error(
            "Failed to compute recommendations",
            user_id=user_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to compute recommendations",
        ) from e
