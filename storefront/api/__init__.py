"""
API module for the storefront.

Provides REST API endpoints for the shop UI.
"""
from storefront.api.models import (
    CartResponse,
    CatalogPageResponse,
    GuidedSelectionResponse,
    SessionResponse,
)

__all__ = [
    "CartResponse",
    "CatalogPageResponse",
    "GuidedSelectionResponse",
    "SessionResponse",
]
