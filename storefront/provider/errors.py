"""Errors raised at the content provider boundary."""


class StorefrontError(RuntimeError):
    """Base class for storefront errors."""


class FetchError(StorefrontError):
    """Raised when the catalog cannot be fetched or does not validate."""


class GenerationError(StorefrontError):
    """Raised when a quiz cannot be generated or does not validate."""


class RecommendationError(StorefrontError):
    """Raised when recommendations cannot be produced or do not validate."""
