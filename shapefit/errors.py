class ShapefitError(Exception):
    """Base class for recoverable failures inside the recommendation pipeline."""


class CatalogUnavailable(ShapefitError):
    """The storefront catalog could not be fetched."""


class AIInvocationFailure(ShapefitError):
    """The AI provider call failed (network, auth, quota, timeout)."""


class AIQuotaExceeded(ShapefitError):
    """The shop used up its per-minute or per-day AI call quota."""


class AIResponseMalformed(ShapefitError):
    """The AI response could not be parsed, even after salvage."""


class RecommendationInvalid(ShapefitError):
    """A single AI recommendation entry failed validation."""
