from fastapi import APIRouter, Depends, HTTPException
import structlog

from ..errors import AIQuotaExceeded, ShapefitError
from ..schemas.analysis import (
    BodyShapeAnalysisRequest,
    BodyShapeAnalysisResponse,
    ColorSeasonAnalysisRequest,
    ColorSeasonAnalysisResponse,
)
from ..services.style_analysis import StyleAnalyst
from .deps import get_style_analyst


logger = structlog.get_logger("shapefit")

router = APIRouter(prefix="/style-analysis", tags=["style-analysis"])


def _raise_for(exc: ShapefitError, kind: str) -> None:
    if isinstance(exc, AIQuotaExceeded):
        raise HTTPException(status_code=429, detail=str(exc))
    logger.error("style_analysis_failed", kind=kind, error=str(exc), error_type=type(exc).__name__)
    raise HTTPException(status_code=502, detail="Failed to get style analysis")


@router.post("/body-shape", response_model=BodyShapeAnalysisResponse)
async def body_shape_analysis(
    body: BodyShapeAnalysisRequest,
    analyst: StyleAnalyst = Depends(get_style_analyst),
) -> BodyShapeAnalysisResponse:
    if not analyst.available:
        raise HTTPException(status_code=503, detail="AI style analysis is not configured")
    try:
        analysis = await analyst.analyze_body_shape(body.body_shape, body.measurements, shop=body.store_domain)
    except ShapefitError as e:
        _raise_for(e, "body_shape")
    return BodyShapeAnalysisResponse(body_shape=body.body_shape, analysis=analysis)


@router.post("/color-season", response_model=ColorSeasonAnalysisResponse)
async def color_season_analysis(
    body: ColorSeasonAnalysisRequest,
    analyst: StyleAnalyst = Depends(get_style_analyst),
) -> ColorSeasonAnalysisResponse:
    if not analyst.available:
        raise HTTPException(status_code=503, detail="AI style analysis is not configured")
    try:
        analysis = await analyst.analyze_color_season(body.color_season, body.color_profile, shop=body.store_domain)
    except ShapefitError as e:
        _raise_for(e, "color_season")
    return ColorSeasonAnalysisResponse(color_season=body.color_season, analysis=analysis)
