from typing import Dict, List, Protocol

import structlog

from ..schemas.catalog import Product
from ..schemas.recommend import Recommendation
from .body_shape import APPLE, HOURGLASS, INVERTED_TRIANGLE, OVAL, PEAR, RECTANGLE, V_SHAPE


logger = structlog.get_logger("shapefit")


BASE_SCORE = 0.5
KEYWORD_WEIGHT = 0.15
FAVORABLE_WEIGHT = 0.2
NEUTRAL_WEIGHT = 0.05
AVOID_PENALTY = 0.2

DEFAULT_SIZE_ADVICE = "Choose your normal size and check the size chart"

SHAPE_PREFERENCES: Dict[str, Dict[str, List[str]]] = {
    PEAR: {
        "favorable": ["tops", "blouses", "jackets", "blazers", "statement-sleeves"],
        "neutral": ["dresses", "jumpsuits"],
        "avoid": ["tight-bottoms", "skinny-jeans"],
        "keywords": ["a-line", "fit-and-flare", "empire-waist", "bootcut", "wide-leg", "structured-shoulders"],
    },
    APPLE: {
        "favorable": ["dresses", "tunics", "flowing-tops", "v-necks"],
        "neutral": ["jackets", "cardigans"],
        "avoid": ["tight-waist", "crop-tops"],
        "keywords": ["empire-waist", "v-neck", "scoop-neck", "high-waisted", "flowing", "wrap"],
    },
    HOURGLASS: {
        "favorable": ["fitted-dresses", "wrap-dresses", "belted-items", "high-waisted"],
        "neutral": ["tops", "bottoms"],
        "avoid": ["loose-fitting", "baggy"],
        "keywords": ["fitted", "wrap", "belted", "high-waisted", "curve-hugging", "bodycon"],
    },
    INVERTED_TRIANGLE: {
        "favorable": ["bottoms", "skirts", "wide-leg-pants", "a-line"],
        "neutral": ["dresses"],
        "avoid": ["shoulder-pads", "statement-sleeves"],
        "keywords": ["a-line", "wide-leg", "bootcut", "scoop-neck", "v-neck", "minimize-shoulders"],
    },
    RECTANGLE: {
        "favorable": ["belted-items", "peplum", "layering", "structured"],
        "neutral": ["tops", "bottoms", "dresses"],
        "avoid": ["straight-cut", "loose-fitting"],
        "keywords": ["belted", "peplum", "structured", "layered", "cropped", "fitted"],
    },
    V_SHAPE: {
        "favorable": ["fitted-shirts", "straight-leg", "minimal-shoulder"],
        "neutral": ["casual-wear", "athletic-wear"],
        "avoid": ["shoulder-emphasis", "tight-fitting"],
        "keywords": ["fitted", "straight-leg", "v-neck", "minimal", "athletic", "casual"],
    },
    OVAL: {
        "favorable": ["cardigans", "open-jackets", "vertical-stripes", "dark-tops"],
        "neutral": ["shirts", "trousers"],
        "avoid": ["tight-fitting", "clingy"],
        "keywords": ["vertical", "open-front", "longline", "relaxed-fit", "straight-leg", "v-neck"],
    },
}

SIZE_RECOMMENDATIONS: Dict[str, Dict[str, str]] = {
    PEAR: {
        "tops": "Consider sizing up for comfortable fit across hips",
        "bottoms": "Focus on hip measurement, may need larger size",
        "dresses": "Choose based on largest measurement (usually hips)",
    },
    APPLE: {
        "tops": "Choose based on bust measurement, empire waist styles work well",
        "bottoms": "High-waisted styles, size for waist comfort",
        "dresses": "Empire waist or A-line, size for bust",
    },
    HOURGLASS: {
        "tops": "Size for bust, should nip in at waist",
        "bottoms": "Size for hips, high-waisted styles recommended",
        "dresses": "Size for largest measurement, fitted styles work best",
    },
    INVERTED_TRIANGLE: {
        "tops": "Size for shoulders/bust, avoid tight fits",
        "bottoms": "Can often size down, focus on hip fit",
        "dresses": "Size for shoulders/bust, A-line styles recommended",
    },
    RECTANGLE: {
        "tops": "Standard sizing, add belts or structure",
        "bottoms": "Standard sizing, can experiment with different cuts",
        "dresses": "Standard sizing, belted styles create curves",
    },
    V_SHAPE: {
        "tops": "Size for chest/shoulders, fitted cuts work well",
        "bottoms": "Standard sizing, straight cuts recommended",
        "dresses": "Size for chest, avoid shoulder emphasis",
    },
    OVAL: {
        "tops": "Size for the midsection so the fabric skims rather than clings",
        "bottoms": "Size for waist comfort, mid or high rise recommended",
    },
}


class SuitabilityScorer(Protocol):
    def score(self, product: Product, shape: str) -> float:  # in [0, 1]
        ...


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _count(text: str, tokens: List[str]) -> int:
    return sum(1 for t in tokens if t in text)


class KeywordWeightedScorer:
    """Additive keyword/category scoring. The canonical scorer."""

    def score(self, product: Product, shape: str) -> float:
        prefs = SHAPE_PREFERENCES.get(shape)
        if not prefs:
            return BASE_SCORE

        text = product.searchable_text()
        value = BASE_SCORE
        value += KEYWORD_WEIGHT * _count(text, prefs["keywords"])
        value += FAVORABLE_WEIGHT * _count(text, prefs["favorable"])
        value += NEUTRAL_WEIGHT * _count(text, prefs["neutral"])
        value -= AVOID_PENALTY * _count(text, prefs["avoid"])
        return _clamp(value)


class KeywordFractionScorer:
    """Share of the shape's keyword and favorable tokens present, mapped onto [0.3, 1.0]."""

    floor = 0.3

    def score(self, product: Product, shape: str) -> float:
        prefs = SHAPE_PREFERENCES.get(shape)
        if not prefs:
            return BASE_SCORE

        text = product.searchable_text()
        tokens = prefs["keywords"] + prefs["favorable"]
        fraction = _count(text, tokens) / len(tokens)
        value = self.floor + (1.0 - self.floor) * fraction
        value -= AVOID_PENALTY * _count(text, prefs["avoid"])
        return _clamp(value)


def category(product: Product) -> str:
    text = f"{product.title} {product.description} {product.product_type}".lower()
    if "dress" in text:
        return "dresses"
    if "top" in text or "shirt" in text or "blouse" in text:
        return "tops"
    if "pant" in text or "jean" in text or "trouser" in text:
        return "bottoms"
    return "general"


def size_advice(shape: str, product_category: str) -> str:
    return SIZE_RECOMMENDATIONS.get(shape, {}).get(product_category, DEFAULT_SIZE_ADVICE)


def reasoning(product: Product, shape: str, score: float) -> str:
    if score > 0.7:
        return f"Excellent match for {shape} body shape - this style is highly recommended for your figure"
    if score > 0.5:
        return f"Good choice for {shape} body shape - this style complements your figure well"
    return f"Suitable option for {shape} body shape - consider your personal style preferences"


def to_percent(score: float) -> int:
    return int(round(_clamp(score) * 100))


def rank_products(
    products: List[Product],
    shape: str,
    limit: int,
    minimum_score: int,
    scorer: SuitabilityScorer | None = None,
) -> List[Recommendation]:
    """
    Deterministic ranking: score every product, keep those at or above
    `minimum_score` (0-100), sort by score descending and cut to `limit`.
    Ties keep catalog order.
    """
    scorer = scorer or KeywordWeightedScorer()
    scored = []
    seen = set()
    for p in products:
        if p.id in seen:
            continue
        seen.add(p.id)
        raw = scorer.score(p, shape)
        pct = to_percent(raw)
        if pct < minimum_score:
            continue
        product_category = category(p)
        scored.append(
            Recommendation(
                product=p,
                suitability_score=pct,
                recommended_size=size_advice(shape, product_category),
                reasoning=reasoning(p, shape, raw),
                category=product_category,
                styling_tip="",
            )
        )

    # stable sort: equal scores keep catalog order
    ranked = sorted(scored, key=lambda r: r.suitability_score, reverse=True)[: max(0, limit)]
    logger.info("fallback_ranking", shape=shape, scanned=len(products), eligible=len(scored), returned=len(ranked))
    return ranked
