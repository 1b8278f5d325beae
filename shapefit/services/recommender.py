import math
from typing import Any, Dict, List, Optional

import structlog

from ..errors import AIResponseMalformed, RecommendationInvalid, ShapefitError
from ..schemas.catalog import Product
from ..schemas.recommend import Recommendation, RecommendationRequest
from . import scoring
from .ai_providers.base import StylistProvider
from .ai_quota import AIQuota
from .catalog_filter import filter_catalog, stratified_sample
from .json_repair import parse_model_json
from .prompts import DEFAULT_SYSTEM_PROMPT, build_task_prompt


logger = structlog.get_logger("shapefit")


def _coerce_index(value: Any, size: int) -> int:
    # bool is an int subclass; "true" is not a product index
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RecommendationInvalid(f"non-numeric index {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise RecommendationInvalid(f"fractional index {value!r}")
    index = int(value)
    if index < 0 or index >= size:
        raise RecommendationInvalid(f"index {index} out of range 0..{size - 1}")
    return index


def _coerce_score(value: Any, minimum: int) -> int:
    if isinstance(value, bool):
        raise RecommendationInvalid(f"non-numeric score {value!r}")
    try:
        score = float(value)
    except (TypeError, ValueError):
        raise RecommendationInvalid(f"non-numeric score {value!r}")
    if not math.isfinite(score):
        raise RecommendationInvalid(f"non-finite score {value!r}")
    score = min(100.0, score)
    # compare before rounding: 69.6 must not pass a minimum of 70
    if score < minimum:
        raise RecommendationInvalid(f"score {score} below minimum {minimum}")
    return int(round(score))


def _text(entry: Dict[str, Any], key: str) -> str:
    value = entry.get(key)
    return value.strip() if isinstance(value, str) else ""


class RecommendationOrchestrator:
    """
    Chooses between the AI-assisted and the deterministic ranking path.

    The AI path sends one request to the injected provider, parses and validates
    the answer, and degrades to `scoring.rank_products` when the provider is
    missing, the shop's AI quota is spent, or the call yields nothing usable.
    `recommend` never raises.
    """

    def __init__(
        self,
        provider: Optional[StylistProvider] = None,
        scorer: Optional[scoring.SuitabilityScorer] = None,
        quota: Optional[AIQuota] = None,
    ) -> None:
        self.provider = provider
        self.scorer = scorer or scoring.KeywordWeightedScorer()
        self.quota = quota

    def fallback(self, request: RecommendationRequest, products: List[Product]) -> List[Recommendation]:
        return scoring.rank_products(
            products,
            request.body_shape,
            limit=request.number_of_suggestions,
            minimum_score=request.minimum_match_score,
            scorer=self.scorer,
        )

    async def recommend(self, request: RecommendationRequest, products: List[Product]) -> List[Recommendation]:
        try:
            if not products:
                return []

            if not request.ai_enabled:
                logger.info("ai_disabled_using_algorithm", shape=request.body_shape)
                return self.fallback(request, products)
            if self.provider is None or not self.provider.configured:
                logger.warning("ai_not_configured_using_algorithm", shape=request.body_shape)
                return self.fallback(request, products)
            if self.quota is not None and not self.quota.try_acquire(request.store_domain or "default").allowed:
                return self.fallback(request, products)

            try:
                accepted = await self._recommend_with_ai(request, products)
            except ShapefitError as e:
                logger.warning("ai_path_failed", shape=request.body_shape, error=str(e), error_type=type(e).__name__)
                accepted = []
            except Exception as e:
                logger.error("ai_path_unexpected_error", shape=request.body_shape, error=str(e), exc_info=True)
                accepted = []

            if not accepted:
                logger.warning("ai_fallback_to_algorithm", shape=request.body_shape, candidates=len(products))
                return self.fallback(request, products)
            return accepted
        except Exception as e:
            logger.error("recommendation_failed", shape=request.body_shape, error=str(e), exc_info=True)
            return []

    async def _recommend_with_ai(self, request: RecommendationRequest, products: List[Product]) -> List[Recommendation]:
        candidates = stratified_sample(products, request.max_products_to_scan)

        task_prompt = build_task_prompt(
            shape=request.body_shape,
            products=candidates,
            count=request.number_of_suggestions,
            minimum_score=request.minimum_match_score,
            measurements=request.measurements,
            color_season=request.color_season,
            include_images=request.enable_image_analysis,
            task_prompt=request.ai.task_prompt,
        )
        image_refs = None
        if request.enable_image_analysis:
            image_refs = [p.image_url for p in candidates if p.image_url]

        logger.info(
            "ai_request_started",
            shape=request.body_shape,
            candidates=len(candidates),
            count=request.number_of_suggestions,
            temperature=request.ai.temperature,
            max_tokens=request.ai.max_tokens,
        )
        completion = await self.provider.complete(  # type: ignore[union-attr]
            system_prompt=request.ai.system_prompt or DEFAULT_SYSTEM_PROMPT,
            task_prompt=task_prompt,
            temperature=request.ai.temperature,
            max_tokens=request.ai.max_tokens,
            image_refs=image_refs,
        )
        if completion.truncated:
            logger.warning("ai_response_truncated", shape=request.body_shape, max_tokens=request.ai.max_tokens)

        parsed = parse_model_json(completion.text)
        if not isinstance(parsed, dict) or not isinstance(parsed.get("recommendations"), list):
            raise AIResponseMalformed("response has no 'recommendations' list")

        return self._validate(parsed["recommendations"], candidates, request)

    def _validate(self, entries: List[Any], candidates: List[Product], request: RecommendationRequest) -> List[Recommendation]:
        accepted: List[Recommendation] = []
        # keyed on product id: the catalog may hold the same product at two indices
        seen: set[str] = set()
        dropped = 0

        for entry in entries:
            if len(accepted) >= request.number_of_suggestions:
                break
            try:
                if not isinstance(entry, dict):
                    raise RecommendationInvalid("entry is not an object")
                index = _coerce_index(entry.get("index"), len(candidates))
                product = candidates[index]
                if product.id in seen:
                    raise RecommendationInvalid(f"duplicate product {product.id} at index {index}")
                score = _coerce_score(entry.get("score"), request.minimum_match_score)
            except RecommendationInvalid as e:
                dropped += 1
                logger.debug("ai_entry_dropped", reason=str(e))
                continue

            seen.add(product.id)
            accepted.append(self._enrich(product, score, entry, request.body_shape))

        logger.info("ai_recommendations_validated", received=len(entries), accepted=len(accepted), dropped=dropped)
        return accepted

    def _enrich(self, product: Product, score: int, entry: Dict[str, Any], shape: str) -> Recommendation:
        product_category = scoring.category(product)
        return Recommendation(
            product=product,
            suitability_score=score,
            recommended_size=_text(entry, "sizeAdvice") or scoring.size_advice(shape, product_category),
            reasoning=_text(entry, "reasoning") or scoring.reasoning(product, shape, score / 100.0),
            category=product_category,
            styling_tip=_text(entry, "stylingTip"),
        )


async def build_recommendations(
    request: RecommendationRequest,
    catalog: List[Product],
    orchestrator: RecommendationOrchestrator,
) -> List[Recommendation]:
    """Filter the catalog for the shape and hand the survivors to the orchestrator."""
    if not catalog:
        logger.info("catalog_empty", shape=request.body_shape)
        return []

    filtered = filter_catalog(catalog, request.body_shape, request.only_in_stock, request.max_price)
    if not filtered:
        logger.info("catalog_empty_after_filtering", shape=request.body_shape, scanned=len(catalog))
        return []

    recommendations = await orchestrator.recommend(request, filtered)
    logger.info("recommendations_ready", shape=request.body_shape, returned=len(recommendations))
    return recommendations
