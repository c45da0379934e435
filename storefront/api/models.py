"""
Pydantic models for storefront API requests and responses.
"""
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from storefront.catalog.pipeline import SortKey
from storefront.data.models import Category, CategoryFilter, Filters, Product, QuizQuestion


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    service: str
    version: str
    config: Dict[str, Any]


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

class CreateSessionRequest(BaseModel):
    """Request model for session creation."""
    session_id: Optional[str] = Field(default=None, description="Session ID (auto-generated if not provided)")


class SessionResponse(BaseModel):
    """Response model for session state."""
    session_id: str
    product_count: int
    cart_item_count: int
    quiz_context: Optional[str] = None
    guided_selection_step: Optional[str] = None


# ---------------------------------------------------------------------------
# Catalog browsing
# ---------------------------------------------------------------------------

class CategoryCount(BaseModel):
    name: str
    count: int


class FacetsResponse(BaseModel):
    categories: List[CategoryCount]
    brands: List[str]


class CatalogPageResponse(BaseModel):
    """One page of products plus the state that produced it."""
    items: List[Product]
    total_count: int = Field(description="Number of products matching search and filters")
    total_pages: int
    page_number: int
    page_size: int
    sort: SortKey
    search_term: str
    filters: Filters
    active_filter_count: int
    facets: FacetsResponse
    quiz_context: Optional[str] = Field(default=None, description="Search term or category scoping guided selection")
    quiz_prompt_visible: bool = False


class BrowseRequest(BaseModel):
    """Sort / page size / page change. Omitted fields are left as they are."""
    sort: Optional[SortKey] = None
    page_size: Optional[int] = None
    page: Optional[int] = None


class FilterActionRequest(BaseModel):
    """A single sidebar filter action."""
    action: Literal["category", "rating", "brand", "clear"]
    category: Optional[CategoryFilter] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    brand: Optional[str] = None


class SearchRequest(BaseModel):
    term: str


class NavigateRequest(BaseModel):
    """Header navigation: logo (home) or a category link."""
    target: Literal["home", "category"]
    category: Optional[Category] = None


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------

class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = 1


class UpdateQuantityRequest(BaseModel):
    quantity: int = Field(description="Absolute quantity; 0 or less removes the item")


class CartItemResponse(BaseModel):
    product: Product
    quantity: int
    line_total: Decimal


class CartResponse(BaseModel):
    """Cart contents and derived totals."""
    items: List[CartItemResponse]
    item_count: int
    subtotal: Decimal
    discount_rate: Decimal
    discount_amount: Decimal
    subtotal_after_discount: Decimal
    shipping: Decimal
    total: Decimal
    free_shipping: bool


# ---------------------------------------------------------------------------
# Guided selection
# ---------------------------------------------------------------------------

class AnswerRequest(BaseModel):
    question: str
    option: str


class AddOneRequest(BaseModel):
    product_id: str


class GuidedSelectionResponse(BaseModel):
    """Snapshot of a guided-selection session."""
    step: str
    context: str
    candidate_count: int
    title: Optional[str] = None
    question_index: int = 0
    question_count: int = 0
    current_question: Optional[QuizQuestion] = None
    answers: Dict[str, str] = Field(default_factory=dict)
    recommended: List[Product] = Field(default_factory=list)
    error: Optional[str] = None
