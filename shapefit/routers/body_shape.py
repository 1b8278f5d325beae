from typing import Dict

from fastapi import APIRouter

from ..schemas.measurements import BodyShapeResult, Measurements
from ..services.body_shape import classify, shape_descriptions


router = APIRouter(tags=["body-shape"])


@router.post("/body-shape", response_model=BodyShapeResult)
async def body_shape(measurements: Measurements) -> BodyShapeResult:
    return classify(measurements)


@router.get("/body-shapes")
async def body_shapes() -> Dict[str, Dict[str, str]]:
    """Supported shapes with a short description and visual cues."""
    return shape_descriptions()
