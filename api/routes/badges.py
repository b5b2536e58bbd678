"""
Badge API routes
"""
from fastapi import APIRouter, Depends

from api.dependencies import get_badge_service, get_current_user
from application.dto import BadgeAwardDTO, BadgeEvaluationDTO, CurrentUserDTO
from application.services.badge_service import BadgeService
from core.response import Response as ApiResponse, success_response


router = APIRouter(
    prefix="/badges",
    tags=["Badges"]
)


@router.post("/evaluate", summary="Evaluate badge rules for the caller",
             response_model=ApiResponse[BadgeEvaluationDTO])
async def evaluate_badges(
    user: CurrentUserDTO = Depends(get_current_user),
    service: BadgeService = Depends(get_badge_service),
):
    awards = await service.evaluate_for_user(user.id)
    return success_response(
        data=BadgeEvaluationDTO(awarded=[BadgeAwardDTO.from_entity(a) for a in awards])
    )
