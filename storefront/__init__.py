"""
Storefront - catalog browsing, cart pricing and guided product selection.

A session-scoped shopping backend with:
- Search, filter, sort and pagination over a cached catalog
- Cart ledger with bulk discount and free-shipping threshold
- Quiz-driven recommendations from a content provider
"""

from storefront.core.controller import StorefrontSession, create_session
from storefront.core.config import StorefrontConfig, get_config, set_config

__all__ = [
    'StorefrontSession',
    'create_session',
    'StorefrontConfig',
    'get_config',
    'set_config',
]

__version__ = '0.1.0'
