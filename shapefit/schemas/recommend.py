from typing import List, Literal, Optional
from pydantic import BaseModel, Field, model_validator

from .catalog import Product
from .measurements import Measurements


class AIConfig(BaseModel):
    system_prompt: Optional[str] = None
    task_prompt: Optional[str] = None
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(4096, gt=0)


BudgetTier = Literal["low", "medium", "high", "luxury"]


class BudgetRanges(BaseModel):
    """Upper price bound of each budget tier. "luxury" has no bound."""

    low_max: float = Field(30, gt=0)
    medium_max: float = Field(80, gt=0)
    high_max: float = Field(200, gt=0)

    @model_validator(mode="after")
    def _ascending(self) -> "BudgetRanges":
        if not self.low_max <= self.medium_max <= self.high_max:
            raise ValueError("budget ceilings must be ascending: low <= medium <= high")
        return self


class RecommendationSettings(BaseModel):
    number_of_suggestions: int = Field(30, ge=1)
    minimum_match_score: int = Field(30, ge=0, le=100)
    max_products_to_scan: int = Field(500, ge=0, description="0 scans the whole catalog")
    only_in_stock: bool = True
    enable_image_analysis: bool = False
    budget_range: Optional[BudgetTier] = None


class RecommendationRequest(BaseModel):
    body_shape: str
    measurements: Optional[Measurements] = None
    color_season: Optional[str] = None
    # price ceiling from the budget tier; None keeps every price
    max_price: Optional[float] = Field(None, gt=0)
    # quota key for AI calls
    store_domain: Optional[str] = None
    number_of_suggestions: int = Field(30, ge=1)
    minimum_match_score: int = Field(30, ge=0, le=100)
    max_products_to_scan: int = Field(500, ge=0)
    only_in_stock: bool = True
    enable_image_analysis: bool = False
    ai_enabled: bool = True
    ai: AIConfig = Field(default_factory=AIConfig)


class Recommendation(BaseModel):
    product: Product
    suitability_score: int = Field(..., ge=0, le=100)
    recommended_size: str
    reasoning: str
    category: str
    styling_tip: str = ""


class RecommendRequestBody(BaseModel):
    store_domain: str
    body_shape: Optional[str] = None
    measurements: Optional[Measurements] = None
    color_season: Optional[str] = None
    settings: Optional[RecommendationSettings] = None
    ai_enabled: Optional[bool] = None
    ai: Optional[AIConfig] = None


class RecommendResponse(BaseModel):
    body_shape: str
    recommendations: List[Recommendation]
