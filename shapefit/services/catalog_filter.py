import math
from typing import Dict, List, Optional

import structlog

from ..schemas.catalog import Product
from ..schemas.recommend import BudgetRanges
from .body_shape import APPLE, HOURGLASS, INVERTED_TRIANGLE, OVAL, PEAR, RECTANGLE, V_SHAPE


logger = structlog.get_logger("shapefit")


# Lowercase substrings that disqualify a product for a shape. Lists are disjoint.
AVOID_KEYWORDS: Dict[str, List[str]] = {
    PEAR: ["tight-fit-bottom", "skinny-jean", "pencil-skirt"],
    APPLE: ["tight-waist", "crop-top", "bodycon"],
    HOURGLASS: ["oversized", "baggy", "shapeless"],
    INVERTED_TRIANGLE: ["shoulder-pad", "puff-sleeve", "statement-shoulder"],
    RECTANGLE: ["straight-cut", "shift-dress"],
    V_SHAPE: ["heavily-structured-shoulder"],
    OVAL: ["tight-midsection", "skin-tight"],
}


def avoid_keywords_for(shape: str) -> List[str]:
    return AVOID_KEYWORDS.get(shape, [])


def filter_in_stock(products: List[Product]) -> List[Product]:
    return [p for p in products if p.available]


def filter_avoid_keywords(products: List[Product], shape: str) -> List[Product]:
    avoid = avoid_keywords_for(shape)
    if not avoid:
        return list(products)
    return [p for p in products if not any(k in p.searchable_text() for k in avoid)]


def budget_ceiling(tier: Optional[str], ranges: BudgetRanges) -> Optional[float]:
    """Price ceiling for a budget tier; None for "luxury" or no tier."""
    return {
        "low": ranges.low_max,
        "medium": ranges.medium_max,
        "high": ranges.high_max,
    }.get(tier or "")


def filter_budget(products: List[Product], max_price: Optional[float]) -> List[Product]:
    # products without a readable price stay in
    if max_price is None:
        return list(products)
    return [p for p in products if p.numeric_price is None or p.numeric_price <= max_price]


def filter_catalog(
    products: List[Product],
    shape: str,
    stock_only: bool,
    max_price: Optional[float] = None,
) -> List[Product]:
    """Stock filter (optional), budget ceiling (optional), then the shape's avoid-keyword filter."""
    stocked = filter_in_stock(products) if stock_only else list(products)
    logger.info("catalog_stock_filter", before=len(products), after=len(stocked), stock_only=stock_only)

    if max_price is not None:
        affordable = filter_budget(stocked, max_price)
        logger.info("catalog_budget_filter", before=len(stocked), after=len(affordable), max_price=max_price)
        stocked = affordable

    kept = filter_avoid_keywords(stocked, shape)
    logger.info("catalog_avoid_filter", before=len(stocked), after=len(kept), shape=shape)
    return kept


def stratified_sample(products: List[Product], cap: int) -> List[Product]:
    """
    Down-sample to at most `cap` products while keeping every product type represented.

    Each product-type bucket contributes its first ceil(cap / buckets) items, then
    unselected products backfill in catalog order. The result keeps catalog order.
    """
    if cap <= 0 or len(products) <= cap:
        return list(products)

    buckets: Dict[str, List[int]] = {}
    for i, p in enumerate(products):
        buckets.setdefault((p.product_type or "").strip().lower(), []).append(i)

    quota = math.ceil(cap / len(buckets))
    taken: Dict[str, List[int]] = {k: idxs[:quota] for k, idxs in buckets.items()}

    # ceil() can overshoot by up to one item per bucket; trim the fullest buckets
    bucket_order = list(buckets.keys())
    while sum(len(v) for v in taken.values()) > cap:
        fullest = max(reversed(bucket_order), key=lambda k: len(taken[k]))
        taken[fullest].pop()

    selected = set(i for idxs in taken.values() for i in idxs)
    for i in range(len(products)):
        if len(selected) >= cap:
            break
        selected.add(i)

    sample = [products[i] for i in sorted(selected)]
    logger.info("catalog_stratified_sample", before=len(products), after=len(sample), buckets=len(buckets), quota=quota)
    return sample
