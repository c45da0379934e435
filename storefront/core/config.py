"""
Configuration management for the storefront.

Loads settings from the YAML config file and provides typed access.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional
import yaml

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()


def _project_root() -> Path:
    """Return project root (parent of storefront package)."""
    return Path(__file__).resolve().parent.parent.parent


DEFAULT_CONFIG_PATH = _project_root() / "config" / "default.yaml"


def _decimal(value: Any, default: str) -> Decimal:
    # str() first so YAML floats like 0.1 stay exact
    if value is None:
        return Decimal(default)
    return Decimal(str(value))


@dataclass
class StorefrontConfig:
    """Configuration for a storefront deployment."""

    # Cart pricing policy
    free_shipping_threshold: Decimal = Decimal("400")   # strictly greater-than
    flat_shipping_rate: Decimal = Decimal("50")
    bulk_discount_rate: Decimal = Decimal("0.10")       # applied by guided-selection "add all"

    # Catalog browsing
    page_size_options: List[int] = field(default_factory=lambda: [12, 24, 36])
    default_page_size: int = 12
    catalog_cache_key: str = "products"
    catalog_size: int = 30                              # products requested from the provider

    # Guided selection
    quiz_question_count: int = 3
    max_recommendations: int = 5
    prompt_delay_seconds: float = 3.0
    offline_recommendation_count: int = 3

    # Model configuration
    content_provider_model: str = "gpt-4o-mini"
    temperature: float = 0.7

    # Session cache
    cache_backend: str = "memory"                       # "memory" or "redis"
    cache_ttl_seconds: int = 3600

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "StorefrontConfig":
        """Load configuration from YAML file."""
        path = config_path or DEFAULT_CONFIG_PATH
        if not path.exists():
            return cls()

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        cart_config: Dict[str, Any] = data.get('cart', {})
        catalog_config: Dict[str, Any] = data.get('catalog', {})
        guided_config: Dict[str, Any] = data.get('guided_selection', {})
        models_config: Dict[str, Any] = data.get('models', {})
        cache_config: Dict[str, Any] = data.get('cache', {})

        return cls(
            free_shipping_threshold=_decimal(cart_config.get('free_shipping_threshold'), "400"),
            flat_shipping_rate=_decimal(cart_config.get('flat_shipping_rate'), "50"),
            bulk_discount_rate=_decimal(cart_config.get('bulk_discount_rate'), "0.10"),
            page_size_options=list(catalog_config.get('page_size_options', [12, 24, 36])),
            default_page_size=catalog_config.get('default_page_size', 12),
            catalog_cache_key=catalog_config.get('cache_key', 'products'),
            catalog_size=catalog_config.get('size', 30),
            quiz_question_count=guided_config.get('question_count', 3),
            max_recommendations=guided_config.get('max_recommendations', 5),
            prompt_delay_seconds=float(guided_config.get('prompt_delay_seconds', 3.0)),
            offline_recommendation_count=guided_config.get('offline_recommendation_count', 3),
            content_provider_model=models_config.get('content_provider', 'gpt-4o-mini'),
            temperature=models_config.get('temperature', 0.7),
            cache_backend=cache_config.get('backend', 'memory'),
            cache_ttl_seconds=cache_config.get('ttl_seconds', 3600),
        )


# Global config instance
_config: Optional[StorefrontConfig] = None


def get_config() -> StorefrontConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = StorefrontConfig.from_yaml()
    return _config


def set_config(config: StorefrontConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
