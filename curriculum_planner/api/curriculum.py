from typing import Any

from fastapi import APIRouter, Depends, Response

from curriculum_planner.api.deps import cors_policy, get_curriculum_planner
from curriculum_planner.services.curriculum_planner import CurriculumPlanner, CurriculumRequest


router = APIRouter(prefix="/api", tags=["curriculum"])


@router.options("/generate-curriculum")
def generate_curriculum_preflight() -> Response:
    return Response(status_code=200, headers=cors_policy.headers())


@router.post("/generate-curriculum")
def generate_curriculum(
    payload: CurriculumRequest,
    planner: CurriculumPlanner = Depends(get_curriculum_planner),
) -> dict[str, Any]:
    return planner.generate(payload)
