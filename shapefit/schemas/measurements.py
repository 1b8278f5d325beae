from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


Gender = Literal["woman", "man", "non-binary"]
UnitSystem = Literal["metric", "imperial"]


class Measurements(BaseModel):
    model_config = ConfigDict(frozen=True)

    gender: Gender
    age: str = Field("26-35", description="Age bracket, e.g. '13-17', '26-35', '56+'")
    height: Optional[float] = Field(None, gt=0)
    weight: Optional[float] = Field(None, gt=0)
    bust: float = Field(..., gt=0, description="Bust for feminine bodies, chest for masculine bodies")
    waist: float = Field(..., gt=0)
    hips: float = Field(..., gt=0)
    shoulders: float = Field(..., gt=0)
    unit: UnitSystem = "metric"


class NormalizedMeasurements(BaseModel):
    """Measurements converted to centimetres / kilograms."""

    model_config = ConfigDict(frozen=True)

    gender: Gender
    age: str
    height: Optional[float] = None
    weight: Optional[float] = None
    bust: float
    waist: float
    hips: float
    shoulders: float


class BodyShapeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    shape: str
    description: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    characteristics: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
