"""
Domain models shared by the catalog, cart and guided-selection components.

Products, filters and quizzes are immutable pydantic models; anything coming
from the content provider is validated into these before it reaches the rest
of the system.
"""
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Category(str, Enum):
    """Closed set of catalog categories."""
    FOOD = "Food"
    HEALTH = "Health"
    BODY_AND_BEAUTY = "Body & Beauty"
    HOME_AND_LIFESTYLE = "Home & Lifestyle"
    BABY_AND_KIDS = "Baby & Kids"


ALL_CATEGORIES = "All"

CategoryFilter = Union[Category, Literal["All"]]


class Product(BaseModel):
    """A catalog product. Immutable once fetched."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1, description="Unique within a catalog snapshot")
    name: str
    brand: str
    category: Category
    price: Decimal = Field(ge=0)
    rating: int = Field(ge=0, le=5)
    review_count: int = Field(default=0, ge=0, alias="reviewCount")
    size: str = ""
    tags: Tuple[str, ...] = ()
    description: str = ""
    image_url: Optional[str] = Field(default=None, alias="imageUrl")


class Filters(BaseModel):
    """
    Sidebar filter state.

    Value object: every filter action returns a new instance instead of
    mutating this one.
    """
    model_config = ConfigDict(frozen=True)

    category: CategoryFilter = ALL_CATEGORIES
    rating: int = Field(default=0, ge=0, le=5, description="Minimum rating, 0 = no filter")
    brand: Tuple[str, ...] = Field(default=(), description="Selected brands, empty = no filter")

    def with_category(self, category: CategoryFilter) -> "Filters":
        """Select a category; brand and rating selections are cleared."""
        return Filters(category=category)

    def with_rating_toggled(self, rating: int) -> "Filters":
        """Select a minimum rating, or clear it when the same rating is chosen again."""
        new_rating = 0 if self.rating == rating else rating
        return Filters(category=self.category, rating=new_rating, brand=self.brand)

    def with_brand_toggled(self, brand: str) -> "Filters":
        """Add the brand to the selection, or remove it if already selected."""
        if brand in self.brand:
            brands = tuple(b for b in self.brand if b != brand)
        else:
            brands = self.brand + (brand,)
        return Filters(category=self.category, rating=self.rating, brand=brands)

    @property
    def active_count(self) -> int:
        """Number of active filter chips (category, each brand, rating)."""
        count = 0 if self.category == ALL_CATEGORIES else 1
        count += len(self.brand)
        if self.rating > 0:
            count += 1
        return count


class QuizQuestion(BaseModel):
    """A single multiple-choice question."""
    model_config = ConfigDict(frozen=True)

    question: str = Field(min_length=1)
    options: Tuple[str, ...]

    @field_validator("options")
    @classmethod
    def _validate_options(cls, options: Tuple[str, ...]) -> Tuple[str, ...]:
        if len(options) < 2:
            raise ValueError("a question needs at least 2 options")
        if len(set(options)) != len(options):
            raise ValueError("question options must be distinct")
        return options


class Quiz(BaseModel):
    """A guided-selection quiz. Answers are keyed by question text."""
    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1)
    questions: Tuple[QuizQuestion, ...] = Field(min_length=1)

    @model_validator(mode="after")
    def _distinct_questions(self) -> "Quiz":
        texts = [q.question for q in self.questions]
        if len(set(texts)) != len(texts):
            raise ValueError("quiz question texts must be distinct")
        return self
