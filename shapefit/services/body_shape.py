"""
Body Shape Classification
Maps bust/waist/hip/shoulder proportions onto a fixed body-shape taxonomy.

Each cascade is ordered: the first matching rule wins, so inputs that satisfy
several predicates resolve to the earliest rule. Confidence is a constant of
the matched rule, not a computed statistic.
"""
from typing import Dict, List, Tuple

import structlog

from ..schemas.measurements import BodyShapeResult, Measurements
from .measurements import normalize


logger = structlog.get_logger("shapefit")


PEAR = "Pear/Triangle"
APPLE = "Apple/Round"
HOURGLASS = "Hourglass"
INVERTED_TRIANGLE = "Inverted Triangle"
RECTANGLE = "Rectangle/Straight"
V_SHAPE = "V-Shape/Athletic"
OVAL = "Oval/Apple"

ALL_SHAPES: List[str] = [PEAR, APPLE, HOURGLASS, INVERTED_TRIANGLE, RECTANGLE, V_SHAPE, OVAL]

TEEN_AGE = "13-17"
SENIOR_AGE = "56+"

# label -> (description, confidence, characteristics, recommendations)
ShapeProfile = Tuple[str, float, Tuple[str, ...], Tuple[str, ...]]

FEMININE_PROFILES: Dict[str, ShapeProfile] = {
    PEAR: (
        "Hips are wider than bust and shoulders",
        0.9,
        ("Fuller hips and thighs", "Narrower shoulders and bust", "Defined waist"),
        (
            "A-line and fit-and-flare dresses",
            "Wide-leg pants and bootcut jeans",
            "Tops with interesting necklines",
            "Structured blazers to balance shoulders",
        ),
    ),
    APPLE: (
        "Fuller midsection with less defined waist",
        0.85,
        ("Fuller bust and midsection", "Less defined waist", "Slimmer hips and legs"),
        (
            "Empire waist dresses",
            "V-neck and scoop neck tops",
            "High-waisted bottoms",
            "Flowing fabrics that skim the body",
        ),
    ),
    HOURGLASS: (
        "Balanced bust and hips with defined waist",
        0.95,
        ("Balanced bust and hip measurements", "Well-defined waist", "Curves in proportion"),
        (
            "Fitted clothing that follows your curves",
            "Wrap dresses and tops",
            "High-waisted styles",
            "Belted garments to emphasize waist",
        ),
    ),
    INVERTED_TRIANGLE: (
        "Broader shoulders and bust than hips",
        0.85,
        ("Broader shoulders or fuller bust", "Narrower hips", "Athletic build"),
        (
            "A-line skirts and dresses",
            "Wide-leg pants",
            "Scoop and V-necklines",
            "Minimize shoulder details",
        ),
    ),
    RECTANGLE: (
        "Similar measurements for bust, waist, and hips",
        0.8,
        ("Balanced proportions", "Minimal waist definition", "Straight silhouette"),
        (
            "Create curves with belts and fitted styles",
            "Layering to add dimension",
            "Peplum tops and dresses",
            "Cropped jackets and structured pieces",
        ),
    ),
}

MASCULINE_PROFILES: Dict[str, ShapeProfile] = {
    V_SHAPE: (
        "Broad shoulders and chest with narrow waist",
        0.9,
        ("Broad shoulders and chest", "Narrow waist", "Athletic build"),
        (
            "Fitted shirts that show your shape",
            "Straight-leg pants",
            "Minimal shoulder padding",
            "V-necks and open collars",
        ),
    ),
    RECTANGLE: (
        "Balanced proportions throughout torso",
        0.85,
        ("Shoulders and waist similar width", "Straight silhouette", "Minimal waist definition"),
        (
            "Layering to add dimension",
            "Structured jackets",
            "Horizontal stripes",
            "Fitted cuts to create shape",
        ),
    ),
    OVAL: (
        "Fuller midsection with broader waist",
        0.8,
        ("Fuller midsection", "Less defined waist", "Broader torso"),
        (
            "Vertical lines and patterns",
            "Open jackets and cardigans",
            "Darker colors on torso",
            "Avoid tight-fitting clothes around midsection",
        ),
    ),
}

SHAPE_VISUAL_CUES: Dict[str, Tuple[str, str]] = {
    PEAR: ("Hips wider than bust and shoulders", "Bottom-heavy silhouette"),
    APPLE: ("Fuller midsection with less defined waist", "Carry weight in the middle"),
    HOURGLASS: ("Balanced bust and hips with defined waist", "Curved silhouette with narrow waist"),
    INVERTED_TRIANGLE: ("Broader shoulders and bust than hips", "Top-heavy silhouette"),
    RECTANGLE: ("Similar measurements throughout", "Straight up-and-down silhouette"),
    V_SHAPE: ("Broad shoulders with narrow waist", "Athletic, muscular build"),
    OVAL: ("Fuller midsection", "Weight carried in torso area"),
}


def _ratio(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator


def _result(label: str, profile: ShapeProfile) -> BodyShapeResult:
    description, confidence, characteristics, recommendations = profile
    return BodyShapeResult(
        shape=label,
        description=description,
        confidence=confidence,
        characteristics=list(characteristics),
        recommendations=list(recommendations),
    )


def classify_feminine(bust: float, waist: float, hips: float, shoulders: float) -> BodyShapeResult:
    hip_waist = hips - waist
    bust_waist = bust - waist

    if hip_waist > 7 and bust < hips - 5:
        label = PEAR
    elif bust_waist < 10 and _ratio(waist, hips) > 0.85:
        label = APPLE
    elif abs(bust - hips) < 8 and bust_waist > 8 and hip_waist > 8:
        label = HOURGLASS
    elif bust > hips + 5 or shoulders > hips + 5:
        label = INVERTED_TRIANGLE
    else:
        label = RECTANGLE
    return _result(label, FEMININE_PROFILES[label])


def classify_masculine(chest: float, waist: float, shoulders: float) -> BodyShapeResult:
    shoulder_waist = _ratio(shoulders, waist)
    chest_waist = _ratio(chest, waist)

    if shoulder_waist > 1.3 and chest_waist > 1.2:
        label = V_SHAPE
    elif shoulder_waist < 1.2:
        label = RECTANGLE
    else:
        label = OVAL
    return _result(label, MASCULINE_PROFILES[label])


def _merge(feminine: BodyShapeResult, masculine: BodyShapeResult) -> BodyShapeResult:
    return BodyShapeResult(
        shape=f"{feminine.shape} or {masculine.shape}",
        description="Multiple body shape analyses available",
        confidence=max(feminine.confidence, masculine.confidence),
        characteristics=feminine.characteristics + masculine.characteristics,
        recommendations=feminine.recommendations + masculine.recommendations,
    )


def _age_note(age: str) -> str | None:
    if age == TEEN_AGE:
        return "Focus on comfort and age-appropriate styles"
    if age == SENIOR_AGE:
        return "Choose quality fabrics and classic cuts that allow ease of movement"
    return None


def classify(measurements: Measurements) -> BodyShapeResult:
    """
    Classify body shape from raw measurements.

    Measurements are normalized to metric first. Women follow the feminine
    cascade, men the masculine one; non-binary runs both and merges them into
    a hybrid "<feminine> or <masculine>" label.
    """
    m = normalize(measurements)

    if m.gender == "woman":
        result = classify_feminine(m.bust, m.waist, m.hips, m.shoulders)
    elif m.gender == "man":
        result = classify_masculine(m.bust, m.waist, m.shoulders)
    else:
        result = _merge(
            classify_feminine(m.bust, m.waist, m.hips, m.shoulders),
            classify_masculine(m.bust, m.waist, m.shoulders),
        )

    note = _age_note(m.age)
    if note:
        result = result.model_copy(update={"recommendations": result.recommendations + [note]})

    logger.info("body_shape_classified", gender=m.gender, shape=result.shape, confidence=result.confidence)
    return result


def shape_descriptions() -> Dict[str, Dict[str, str]]:
    return {
        label: {"description": description, "visual_cues": cues}
        for label, (description, cues) in SHAPE_VISUAL_CUES.items()
    }
