"""
Built-in product list used when the content provider is unavailable.

Returned verbatim so the storefront stays usable offline.
"""
from decimal import Decimal
from typing import List

from storefront.data.models import Category, Product


FALLBACK_PRODUCTS: List[Product] = [
    Product(
        id="1", name="Solgar Magnesium Citrate", brand="Solgar", category=Category.HEALTH,
        price=Decimal("208.00"), image_url="https://picsum.photos/seed/mag1/400/400",
        description="Highly absorbable magnesium for muscle and nerve function.",
        rating=5, review_count=12, size="60s", tags=("New",),
    ),
    Product(
        id="2", name="Yenn Magnesium Spray with MSM", brand="Yenn", category=Category.HEALTH,
        price=Decimal("149.00"), image_url="https://picsum.photos/seed/mag2/400/400",
        description="Topical magnesium spray for targeted relief and relaxation.",
        rating=4, review_count=10, size="100ml", tags=(),
    ),
    Product(
        id="3", name="Essentially Young Magnesium Bath Flakes", brand="Essentially Young",
        category=Category.BODY_AND_BEAUTY, price=Decimal("185.00"),
        image_url="https://picsum.photos/seed/mag3/400/400",
        description="Pure magnesium chloride flakes for a restorative and relaxing bath.",
        rating=5, review_count=8, size="1kg", tags=(),
    ),
    Product(
        id="4", name="Organic Baby Shampoo", brand="Earth Mama", category=Category.BABY_AND_KIDS,
        price=Decimal("125.50"), image_url="https://picsum.photos/seed/baby1/400/400",
        description="Gentle, tear-free organic shampoo for babies.",
        rating=5, review_count=34, size="250ml", tags=("Eco-Friendly",),
    ),
    Product(
        id="5", name="Reusable Beeswax Food Wraps", brand="EcoWrap", category=Category.HOME_AND_LIFESTYLE,
        price=Decimal("210.00"), image_url="https://picsum.photos/seed/home1/400/400",
        description="A sustainable alternative to plastic wrap for food storage.",
        rating=4, review_count=55, size="3 Pack", tags=("Sustainable",),
    ),
    Product(
        id="6", name="Almond Flour", brand="Goodness Grains", category=Category.FOOD,
        price=Decimal("95.00"), image_url="https://picsum.photos/seed/food1/400/400",
        description="Gluten-free, low-carb flour perfect for baking.",
        rating=5, review_count=102, size="500g", tags=("Bestseller",),
    ),
    Product(
        id="7", name="All Natural Magnesium Body Butter", brand="The Apothecary",
        category=Category.BODY_AND_BEAUTY, price=Decimal("154.95"),
        image_url="https://picsum.photos/seed/mag4/400/400",
        description="A rich and creamy body butter infused with magnesium for skin health.",
        rating=4, review_count=23, size="100g", tags=(),
    ),
]


def fallback_products() -> List[Product]:
    """Return a fresh list of the built-in products."""
    return list(FALLBACK_PRODUCTS)
