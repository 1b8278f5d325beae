from functools import lru_cache

from ..config import settings
from ..schemas.recommend import AIConfig, BudgetRanges, RecommendationSettings
from ..services.ai_providers import StylistProvider, get_provider
from ..services.ai_quota import AIQuota
from ..services.catalog_api import CatalogApiClient
from ..services.recommender import RecommendationOrchestrator
from ..services.style_analysis import StyleAnalyst


# One provider (and so one AsyncOpenAI connection pool) and one quota ledger per process.
@lru_cache(maxsize=1)
def get_stylist_provider() -> StylistProvider | None:
    return get_provider(settings.ai_provider)


@lru_cache(maxsize=1)
def get_ai_quota() -> AIQuota:
    return AIQuota()


@lru_cache(maxsize=1)
def get_orchestrator() -> RecommendationOrchestrator:
    return RecommendationOrchestrator(provider=get_stylist_provider(), quota=get_ai_quota())


@lru_cache(maxsize=1)
def get_style_analyst() -> StyleAnalyst:
    return StyleAnalyst(provider=get_stylist_provider(), quota=get_ai_quota())


def get_catalog_client() -> CatalogApiClient:
    return CatalogApiClient()


def default_settings() -> RecommendationSettings:
    return RecommendationSettings(
        number_of_suggestions=settings.number_of_suggestions,
        minimum_match_score=settings.minimum_match_score,
        max_products_to_scan=settings.max_products_to_scan,
        only_in_stock=settings.only_in_stock,
        enable_image_analysis=settings.enable_image_analysis,
    )


def default_ai_config() -> AIConfig:
    return AIConfig(temperature=settings.ai_temperature, max_tokens=settings.ai_max_tokens)


def budget_ranges() -> BudgetRanges:
    return BudgetRanges(
        low_max=settings.budget_low_max,
        medium_max=settings.budget_medium_max,
        high_max=settings.budget_high_max,
    )
