"""
PrintDesk - Stage Vocabulary Router
"""

from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from ..services.stages import all_stages, color_class, next_options

router = APIRouter(prefix="/stages", tags=["stages"])


class StagesResponse(BaseModel):
    stages: list[str]
    colors: dict[str, str]
    next: Optional[list[str]] = None


@router.get("", response_model=StagesResponse, response_model_exclude_none=True)
async def list_stages(
    current: Optional[str] = Query(default=None, description="Current stage of an order"),
) -> StagesResponse:
    """
    The stage vocabulary in progression order, with badge colors.

    With `current`, also returns the stages an order can advance to.
    """
    stages = all_stages()
    response = StagesResponse(
        stages=stages,
        colors={stage: color_class(stage) for stage in stages},
    )
    if current is not None:
        response.next = next_options(current)
    return response
