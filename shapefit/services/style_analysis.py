from typing import Any, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from ..config import settings
from ..errors import AIInvocationFailure, AIQuotaExceeded, AIResponseMalformed
from ..schemas.analysis import BodyShapeStyleAnalysis, ColorProfile, ColorSeasonAnalysis
from ..schemas.measurements import Measurements
from .ai_providers.base import StylistProvider
from .ai_quota import AIQuota
from .json_repair import parse_model_json
from .prompts import (
    STYLE_ANALYST_SYSTEM_PROMPT,
    build_body_shape_analysis_prompt,
    build_color_season_analysis_prompt,
)


logger = structlog.get_logger("shapefit")

ANALYSIS_MAX_TOKENS = 2048

T = TypeVar("T", bound=BaseModel)


class StyleAnalyst:
    """
    Free-text style advice for a body shape or a color season, asked of the
    same provider the recommendations use. Unlike the recommendation path there
    is no algorithmic fallback, so failures are raised to the caller.
    """

    def __init__(self, provider: Optional[StylistProvider] = None, quota: Optional[AIQuota] = None) -> None:
        self.provider = provider
        self.quota = quota

    @property
    def available(self) -> bool:
        return self.provider is not None and self.provider.configured

    async def analyze_body_shape(
        self,
        shape: str,
        measurements: Optional[Measurements] = None,
        shop: Optional[str] = None,
    ) -> BodyShapeStyleAnalysis:
        prompt = build_body_shape_analysis_prompt(shape, measurements)
        return await self._ask(prompt, BodyShapeStyleAnalysis, shop, kind="body_shape", subject=shape)

    async def analyze_color_season(
        self,
        color_season: str,
        profile: Optional[ColorProfile] = None,
        shop: Optional[str] = None,
    ) -> ColorSeasonAnalysis:
        prompt = build_color_season_analysis_prompt(color_season, profile.model_dump() if profile else None)
        return await self._ask(prompt, ColorSeasonAnalysis, shop, kind="color_season", subject=color_season)

    async def _ask(self, prompt: str, model: Type[T], shop: Optional[str], kind: str, subject: str) -> T:
        if not self.available:
            raise AIInvocationFailure("AI provider not configured")
        if self.quota is not None:
            check = self.quota.try_acquire(shop or "default")
            if not check.allowed:
                raise AIQuotaExceeded(check.reason or "AI quota exhausted")

        logger.info("style_analysis_started", kind=kind, subject=subject)
        completion = await self.provider.complete(  # type: ignore[union-attr]
            system_prompt=STYLE_ANALYST_SYSTEM_PROMPT,
            task_prompt=prompt,
            temperature=settings.ai_temperature,
            max_tokens=ANALYSIS_MAX_TOKENS,
        )
        if completion.truncated:
            logger.warning("style_analysis_truncated", kind=kind, subject=subject)

        parsed: Any = parse_model_json(completion.text)
        if not isinstance(parsed, dict):
            raise AIResponseMalformed(f"{kind} analysis is not a JSON object")
        try:
            result = model.model_validate(parsed)
        except ValidationError as e:
            raise AIResponseMalformed(f"{kind} analysis has unexpected shape: {e.error_count()} errors") from e

        logger.info("style_analysis_ready", kind=kind, subject=subject)
        return result
