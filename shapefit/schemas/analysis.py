from typing import List, Optional
from pydantic import AliasChoices, BaseModel, Field

from .measurements import Measurements


def _alias(snake: str, camel: str):
    # model output uses camelCase keys; API output stays snake_case
    return Field(default_factory=list, validation_alias=AliasChoices(snake, camel))


class StyleCategory(BaseModel):
    category: str
    items: List[str] = Field(default_factory=list)
    reasoning: str = ""
    styling_tips: str = Field("", validation_alias=AliasChoices("styling_tips", "stylingTips"))


class AvoidItem(BaseModel):
    item: str
    reason: str = ""


class BodyShapeStyleAnalysis(BaseModel):
    analysis: str
    style_goals: List[str] = _alias("style_goals", "styleGoals")
    recommendations: List[StyleCategory] = Field(default_factory=list)
    avoid_items: List[AvoidItem] = _alias("avoid_items", "avoidItems")
    pro_tips: List[str] = _alias("pro_tips", "proTips")


class PaletteGroup(BaseModel):
    category: str
    colors: List[str] = Field(default_factory=list)
    reasoning: str = ""


class AvoidColor(BaseModel):
    color: str
    reason: str = ""


class ColorSeasonAnalysis(BaseModel):
    analysis: str
    best_colors: List[str] = _alias("best_colors", "bestColors")
    color_palette: List[PaletteGroup] = _alias("color_palette", "colorPalette")
    avoid_colors: List[AvoidColor] = _alias("avoid_colors", "avoidColors")
    styling_tips: List[str] = _alias("styling_tips", "stylingTips")


class ColorProfile(BaseModel):
    undertone: Optional[str] = None
    depth: Optional[str] = None
    intensity: Optional[str] = None


class BodyShapeAnalysisRequest(BaseModel):
    body_shape: str = Field(..., min_length=1)
    measurements: Optional[Measurements] = None
    store_domain: Optional[str] = None


class ColorSeasonAnalysisRequest(BaseModel):
    color_season: str = Field(..., min_length=1)
    color_profile: Optional[ColorProfile] = None
    store_domain: Optional[str] = None


class BodyShapeAnalysisResponse(BaseModel):
    body_shape: str
    analysis: BodyShapeStyleAnalysis


class ColorSeasonAnalysisResponse(BaseModel):
    color_season: str
    analysis: ColorSeasonAnalysis
