import json
from typing import Any, Dict, List, Optional

from ..schemas.catalog import Product
from ..schemas.measurements import Measurements
from .body_shape import APPLE, HOURGLASS, INVERTED_TRIANGLE, OVAL, PEAR, RECTANGLE, V_SHAPE
from .measurements import normalize


DESCRIPTION_LIMIT = 300

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert fashion stylist and personal shopper with deep knowledge of body proportions "
    "and style optimization. Your goal is to select products that will genuinely flatter the customer's "
    "body shape and color season.\n\n"
    "You analyze clothing based on:\n"
    "- Silhouette and how it interacts with different body shapes\n"
    "- Color harmony with seasonal color analysis\n"
    "- Fabric, drape, and structure\n"
    "- Necklines, waistlines, and hem styles\n"
    "- Fit and proportion principles\n\n"
    "You provide honest, specific recommendations that help customers look and feel their best."
)

DEFAULT_TASK_PROMPT = (
    "Analyze the provided products and select the most suitable items for the customer's body shape.\n\n"
    "For each recommendation, consider:\n"
    "1. How the garment's silhouette flatters their specific body shape\n"
    "2. Whether the fit and proportions complement their measurements\n"
    "3. How design elements (necklines, waistlines, etc.) enhance their figure\n"
    "4. Practical styling advice for wearing the item\n\n"
    "Provide specific, actionable reasoning for each recommendation."
)

SHAPE_GUIDANCE: Dict[str, str] = {
    PEAR: "Focus on balancing wider hips with structured shoulders, A-line silhouettes, and drawing attention upward. Avoid tight bottoms.",
    APPLE: "Emphasize defined waist with empire cuts, V-necks, and flowing fabrics. Create vertical lines. Avoid tight waistbands.",
    HOURGLASS: "Highlight curves with fitted styles, wrap designs, and belted pieces. Avoid shapeless or overly loose clothing.",
    INVERTED_TRIANGLE: "Balance broad shoulders with A-line skirts, wide-leg pants, and minimize shoulder details. Avoid shoulder pads.",
    RECTANGLE: "Create curves with belts, peplum, and structured pieces. Add dimension through layering. Avoid straight cuts.",
    V_SHAPE: "Show off athletic build with fitted shirts and straight-leg pants. Minimize shoulder emphasis.",
    OVAL: "Use vertical lines, open layers, and darker colors on torso. Avoid tight-fitting around midsection.",
}

COLOR_SEASON_GUIDANCE: Dict[str, str] = {
    "spring": "Warm, clear and light colors: coral, peach, warm yellow, turquoise, camel. Avoid black and icy pastels.",
    "summer": "Cool, soft and muted colors: dusty rose, lavender, powder blue, soft grey, navy. Avoid orange and bright warm tones.",
    "autumn": "Warm, rich and earthy colors: rust, olive, mustard, terracotta, chocolate brown. Avoid cool pastels and stark white.",
    "winter": "Cool, deep and high-contrast colors: true red, emerald, royal blue, black, pure white. Avoid muted earthy tones.",
}


def shape_guidance(shape: str) -> str:
    return SHAPE_GUIDANCE.get(shape, "Consider proportions and personal style.")


def color_season_guidance(color_season: Optional[str]) -> Optional[str]:
    if not color_season:
        return None
    key = color_season.strip().lower()
    for season, guidance in COLOR_SEASON_GUIDANCE.items():
        # accept sub-seasons such as "Light Spring" or "Deep Winter"
        if season in key:
            return guidance
    return "Favor colors that harmonize with the customer's natural coloring."


def product_payload(products: List[Product], include_images: bool) -> List[Dict[str, Any]]:
    items = []
    for index, p in enumerate(products):
        item: Dict[str, Any] = {
            "index": index,
            "title": p.title,
            "description": p.description[:DESCRIPTION_LIMIT],
            "productType": p.product_type,
            "tags": ", ".join(p.tags),
            "price": p.display_price,
        }
        if include_images and p.image_url:
            item["image"] = p.image_url
        items.append(item)
    return items


def _measurement_block(measurements: Optional[Measurements]) -> str:
    if measurements is None:
        return ""
    m = normalize(measurements)
    return (
        "Customer Measurements:\n"
        f"- Gender: {m.gender}\n"
        f"- Age: {m.age}\n"
        f"- Bust/Chest: {m.bust:.1f}cm\n"
        f"- Waist: {m.waist:.1f}cm\n"
        f"- Hips: {m.hips:.1f}cm\n"
        f"- Shoulders: {m.shoulders:.1f}cm\n"
    )


def build_task_prompt(
    shape: str,
    products: List[Product],
    count: int,
    minimum_score: int,
    measurements: Optional[Measurements] = None,
    color_season: Optional[str] = None,
    include_images: bool = False,
    task_prompt: Optional[str] = None,
) -> str:
    sections = [task_prompt or DEFAULT_TASK_PROMPT]

    block = _measurement_block(measurements)
    if block:
        sections.append(block)

    profile = f"Body Shape: {shape}\nStyle Guidance: {shape_guidance(shape)}"
    color = color_season_guidance(color_season)
    if color:
        profile += f"\nColor Season: {color_season}\nColor Guidance: {color}"
    sections.append(profile)

    sections.append("Products Available:\n" + json.dumps(product_payload(products, include_images), indent=2))

    sections.append(
        f"TASK: Select exactly {count} DIFFERENT products that will flatter the {shape} body shape "
        f"(fewer only if fewer than {count} products qualify).\n\n"
        "For each recommendation, provide:\n"
        "- index: Product index from the list (0-based) - MUST be unique, NO DUPLICATES\n"
        "- score: Suitability score (0-100) where 100 = perfect match\n"
        f"- reasoning: Explain WHY this specific product flatters the {shape} body shape (2-3 sentences with specific design details)\n"
        "- sizeAdvice: Specific sizing guidance for their body shape and proportions\n"
        "- stylingTip: A unique, actionable styling suggestion for THIS SPECIFIC product\n\n"
        "CRITICAL RULES:\n"
        "- NO DUPLICATE PRODUCTS - each index must appear only once\n"
        "- Each product MUST have distinct reasoning and styling tips\n"
        f"- Only recommend products with score >= {minimum_score}\n"
        f"- Return exactly {count} recommendations when enough products qualify"
    )

    sections.append(
        "Format your response as valid JSON (no markdown):\n"
        '{\n  "recommendations": [\n    {\n      "index": 0,\n      "score": 95,\n'
        f'      "reasoning": "Specific reasoning about why this flatters {shape}",\n'
        '      "sizeAdvice": "Specific size guidance",\n'
        '      "stylingTip": "Unique styling tip for this product"\n    }\n  ]\n}\n\n'
        "Return ONLY the JSON, no other text."
    )
    return "\n\n".join(sections)


STYLE_ANALYST_SYSTEM_PROMPT = (
    "You are an expert fashion stylist, personal shopper and color analyst. "
    "You give specific, practical and empowering advice and you answer with JSON only."
)


def build_body_shape_analysis_prompt(shape: str, measurements: Optional[Measurements] = None) -> str:
    context = ""
    if measurements is not None:
        context = "\n\n" + _measurement_block(measurements).replace("Customer Measurements:", "Customer measurements:")
    return (
        f'A customer has been identified as having a "{shape}" body shape.{context}\n\n'
        "Provide detailed, personalized style recommendations for this body shape, covering:\n"
        "1. Body Shape Analysis: what makes this shape unique and its key characteristics\n"
        "2. Style Goals: which styling strategies work best and why\n"
        "3. Recommended Clothing Types: specific items and styles that flatter this shape\n"
        "4. Styling Tips: practical advice for putting outfits together\n"
        "5. What to Avoid: items or styles that may be less flattering\n\n"
        "Format your response as a JSON object with this structure:\n"
        "{\n"
        '  "analysis": "Explanation of this body shape and its characteristics (2-3 paragraphs)",\n'
        '  "styleGoals": ["Goal 1", "Goal 2", "Goal 3"],\n'
        '  "recommendations": [\n'
        "    {\n"
        '      "category": "Category name (e.g. Dresses, Tops, Bottoms)",\n'
        '      "items": ["Specific item 1", "Specific item 2"],\n'
        '      "reasoning": "Why these items work well (1-2 sentences)",\n'
        '      "stylingTips": "How to wear these items"\n'
        "    }\n"
        "  ],\n"
        '  "avoidItems": [{"item": "Item to avoid", "reason": "Why it may not flatter"}],\n'
        '  "proTips": ["Pro tip 1", "Pro tip 2", "Pro tip 3"]\n'
        "}\n\n"
        "Return ONLY the JSON, no other text."
    )


def build_color_season_analysis_prompt(color_season: str, profile: Optional[Dict[str, Optional[str]]] = None) -> str:
    context = ""
    if profile:
        context = (
            "\n\nCustomer color characteristics:\n"
            f"- Skin undertone: {profile.get('undertone') or 'not specified'}\n"
            f"- Depth: {profile.get('depth') or 'not specified'}\n"
            f"- Intensity: {profile.get('intensity') or 'not specified'}"
        )
    guidance = color_season_guidance(color_season)
    return (
        f'A customer has been identified as having a "{color_season}" skin color season.{context}\n'
        f"Reference palette: {guidance}\n\n"
        "Provide a detailed, personalized color analysis for this season, covering:\n"
        "1. Color Season Analysis: what makes this season unique\n"
        "2. Best Colors: the most flattering colors\n"
        "3. Color Palette by Category: neutrals, accent colors and statement colors with reasoning\n"
        "4. Colors to Avoid: and why\n"
        "5. Styling Tips: how to bring these colors into a wardrobe\n\n"
        "Format your response as a JSON object with this structure:\n"
        "{\n"
        '  "analysis": "Explanation of this color season (2-3 paragraphs)",\n'
        '  "bestColors": ["Color 1", "Color 2", "Color 3", "Color 4", "Color 5"],\n'
        '  "colorPalette": [\n'
        '    {"category": "Neutrals", "colors": ["Color 1", "Color 2"], "reasoning": "Why they work (1-2 sentences)"}\n'
        "  ],\n"
        '  "avoidColors": [{"color": "Color to avoid", "reason": "Why it may not flatter"}],\n'
        '  "stylingTips": ["Tip 1", "Tip 2", "Tip 3", "Tip 4"]\n'
        "}\n\n"
        "Return ONLY the JSON, no other text."
    )
