import os
from pydantic import BaseModel


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    # AI provider
    ai_provider: str = os.getenv("AI_PROVIDER", "openai")
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    ai_timeout_seconds: float = float(os.getenv("AI_TIMEOUT_SECONDS", "60"))

    # Catalog (storefront products.json listing)
    catalog_page_size: int = int(os.getenv("CATALOG_PAGE_SIZE", "250"))
    catalog_max_pages: int = int(os.getenv("CATALOG_MAX_PAGES", "20"))
    catalog_timeout_seconds: float = float(os.getenv("CATALOG_TIMEOUT_SECONDS", "30"))

    # Recommendation defaults, overridable per request
    number_of_suggestions: int = int(os.getenv("NUMBER_OF_SUGGESTIONS", "30"))
    minimum_match_score: int = int(os.getenv("MINIMUM_MATCH_SCORE", "30"))
    max_products_to_scan: int = int(os.getenv("MAX_PRODUCTS_TO_SCAN", "500"))
    only_in_stock: bool = _env_bool("ONLY_IN_STOCK", "1")
    enable_image_analysis: bool = _env_bool("ENABLE_IMAGE_ANALYSIS", "0")

    # Budget tier ceilings, in store currency
    budget_low_max: float = float(os.getenv("BUDGET_LOW_MAX", "30"))
    budget_medium_max: float = float(os.getenv("BUDGET_MEDIUM_MAX", "80"))
    budget_high_max: float = float(os.getenv("BUDGET_HIGH_MAX", "200"))

    # Per-shop AI call quota (fixed minute and day windows)
    ai_rate_limiting: bool = _env_bool("AI_RATE_LIMITING", "1")
    ai_requests_per_minute: int = int(os.getenv("AI_REQUESTS_PER_MINUTE", "15"))
    ai_requests_per_day: int = int(os.getenv("AI_REQUESTS_PER_DAY", "1500"))

    # AI prompt defaults
    ai_enabled: bool = _env_bool("AI_ENABLED", "1")
    ai_temperature: float = float(os.getenv("AI_TEMPERATURE", "0.7"))
    ai_max_tokens: int = int(os.getenv("AI_MAX_TOKENS", "4096"))

    # Rate limit (token bucket)
    rate_limit_per_min: int = int(os.getenv("RATE_LIMIT_PER_MIN", "60"))
    rate_limit_burst: int = int(os.getenv("RATE_LIMIT_BURST", "30"))


settings = Settings()
