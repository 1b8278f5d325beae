from fastapi import APIRouter, Depends, HTTPException
import structlog

from ..config import settings
from ..errors import CatalogUnavailable
from ..schemas.recommend import (
    BudgetRanges,
    RecommendationRequest,
    RecommendRequestBody,
    RecommendResponse,
)
from ..services.body_shape import classify
from ..services.catalog_api import CatalogApiClient
from ..services.catalog_filter import budget_ceiling
from ..services.recommender import RecommendationOrchestrator, build_recommendations
from .deps import budget_ranges, default_ai_config, default_settings, get_catalog_client, get_orchestrator


logger = structlog.get_logger("shapefit")

router = APIRouter(tags=["recommendations"])


@router.get("/budget-settings", response_model=BudgetRanges)
async def budget_settings(ranges: BudgetRanges = Depends(budget_ranges)) -> BudgetRanges:
    """Price ceilings of the low, medium and high budget tiers."""
    return ranges


@router.post("/recommendations", response_model=RecommendResponse)
async def recommend(
    body: RecommendRequestBody,
    catalog_client: CatalogApiClient = Depends(get_catalog_client),
    orchestrator: RecommendationOrchestrator = Depends(get_orchestrator),
    ranges: BudgetRanges = Depends(budget_ranges),
) -> RecommendResponse:
    if body.body_shape:
        shape = body.body_shape
    elif body.measurements is not None:
        shape = classify(body.measurements).shape
    else:
        raise HTTPException(status_code=400, detail="Provide body_shape or measurements")

    options = body.settings or default_settings()
    request = RecommendationRequest(
        body_shape=shape,
        measurements=body.measurements,
        color_season=body.color_season,
        max_price=budget_ceiling(options.budget_range, ranges),
        store_domain=body.store_domain,
        number_of_suggestions=options.number_of_suggestions,
        minimum_match_score=options.minimum_match_score,
        max_products_to_scan=options.max_products_to_scan,
        only_in_stock=options.only_in_stock,
        enable_image_analysis=options.enable_image_analysis,
        ai_enabled=settings.ai_enabled if body.ai_enabled is None else body.ai_enabled,
        ai=body.ai or default_ai_config(),
    )
    logger.info(
        "recommendation_request",
        store_domain=body.store_domain,
        shape=shape,
        suggestions=request.number_of_suggestions,
        min_score=request.minimum_match_score,
        max_scan=request.max_products_to_scan,
        in_stock=request.only_in_stock,
        image_analysis=request.enable_image_analysis,
        color_season=request.color_season,
        budget_range=options.budget_range,
        max_price=request.max_price,
    )

    try:
        catalog = await catalog_client.fetch_products(body.store_domain)
    except CatalogUnavailable as e:
        logger.warning("catalog_unavailable", store_domain=body.store_domain, error=str(e))
        catalog = []

    recommendations = await build_recommendations(request, catalog, orchestrator)
    return RecommendResponse(body_shape=shape, recommendations=recommendations)
