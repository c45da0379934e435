"""
Content provider adapter.

Boundary to the LLM that generates the catalog, the guided-selection quiz and
the recommendation ids. Responses are requested as structured output, parsed
into loose payload models, then validated into domain models; nothing that
fails validation crosses this boundary.

The adapter owns no state of its own.
"""
import json
import os
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Type, TypeVar

from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from storefront.core.config import StorefrontConfig, get_config
from storefront.data.fallback_catalog import fallback_products
from storefront.data.models import Category, Product, Quiz, QuizQuestion
from storefront.provider.errors import FetchError, GenerationError, RecommendationError
from storefront.utils.logger import get_logger

logger = get_logger("provider.content_provider")

PayloadT = TypeVar("PayloadT", bound=BaseModel)


# ---------------------------------------------------------------------------
# Structured output payloads (no constraints here; domain models validate)
# ---------------------------------------------------------------------------

class CatalogProductPayload(BaseModel):
    id: str = Field(description="A unique identifier")
    name: str
    brand: str
    category: str = Field(description="One of: " + ", ".join(c.value for c in Category))
    price: float
    description: str
    rating: int = Field(description="Rating from 1 to 5")
    review_count: int
    size: str = Field(description="e.g., '100ml', '250g', '60s'")
    tags: List[str] = Field(description="e.g. 'New', 'Bestseller', 'Eco-Friendly'; may be empty")


class CatalogPayload(BaseModel):
    products: List[CatalogProductPayload]


class QuizQuestionPayload(BaseModel):
    question: str
    options: List[str]


class QuizPayload(BaseModel):
    title: str = Field(description="A friendly and engaging title for the quiz.")
    questions: List[QuizQuestionPayload]


class RecommendationPayload(BaseModel):
    product_ids: List[str] = Field(description="Ids of the recommended products, best fit first")


CATALOG_PROMPT = """Generate {count} unique products for an online store focused on natural and organic products.
Categories must be one of: {categories}.
Ensure variety in brands, realistic pricing, ratings, and descriptions.
Include relevant tags like 'Bestseller', 'New', 'Eco-Friendly', 'Organic', 'Vegan' where appropriate.
Some products can have an empty list of tags."""

QUIZ_PROMPT = """You are an expert AI shopping assistant for an e-commerce store focused on natural and organic products.
A user is looking at products related to '{context}'.
Generate a short, engaging quiz with {count} multiple-choice questions to help them find the perfect product.
The goal is to understand their specific needs, preferences, or lifestyle related to this topic.
Every question must have at least 2 distinct options, and no two questions may have the same text."""

RECOMMENDATION_PROMPT = """You are an expert AI shopping assistant.
A user has completed a quiz about products related to '{context}'. Their answers are: {answers}.
Based *only* on the following list of available products, select up to {limit} of the most relevant products
that match their needs. Prioritize products that are a strong fit. Do not recommend products not in this list.

Available Products:
{products}"""


def _seeded_image_url(product_id: str) -> str:
    return f"https://picsum.photos/seed/{product_id}/400/400"


class ContentProvider:
    """Interface every content provider implements."""

    async def fetch_catalog(self) -> List[Product]:
        raise NotImplementedError

    async def fetch_quiz(self, context: str) -> Quiz:
        raise NotImplementedError

    async def fetch_recommendations(
        self,
        answers: Dict[str, str],
        context: str,
        candidates: Sequence[Product],
    ) -> List[str]:
        raise NotImplementedError


class OpenAIContentProvider(ContentProvider):
    """Content provider backed by OpenAI structured outputs."""

    def __init__(self, config: Optional[StorefrontConfig] = None, client: Optional[AsyncOpenAI] = None):
        self.config = config or get_config()
        self.client = client or AsyncOpenAI()

    async def _parse(self, system_prompt: str, user_prompt: str, response_format: Type[PayloadT]) -> PayloadT:
        response = await self.client.beta.chat.completions.parse(
            model=self.config.content_provider_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format=response_format,
            temperature=self.config.temperature,
        )
        message = response.choices[0].message
        if message.parsed is None:
            raise ValueError(f"Provider returned no structured content (refusal: {message.refusal})")
        return message.parsed

    # ------------------------------------------------------------------ #
    # Catalog
    # ------------------------------------------------------------------ #

    async def fetch_catalog(self) -> List[Product]:
        """Fetch the catalog; any failure falls back to the built-in products."""
        try:
            products = await self._request_catalog()
        except FetchError as e:
            logger.warning(f"Catalog fetch failed, using built-in products: {e}")
            return fallback_products()

        logger.info(f"Fetched {len(products)} products from provider")
        return products

    async def _request_catalog(self) -> List[Product]:
        try:
            payload = await self._parse(
                system_prompt="You generate product catalogs as structured JSON.",
                user_prompt=CATALOG_PROMPT.format(
                    count=self.config.catalog_size,
                    categories=", ".join(f"'{c.value}'" for c in Category),
                ),
                response_format=CatalogPayload,
            )
            products = [
                Product(
                    id=p.id,
                    name=p.name,
                    brand=p.brand,
                    category=p.category,
                    price=Decimal(str(p.price)),
                    description=p.description,
                    rating=p.rating,
                    review_count=p.review_count,
                    size=p.size,
                    tags=tuple(p.tags),
                    image_url=_seeded_image_url(p.id),
                )
                for p in payload.products
            ]
        except Exception as e:
            raise FetchError(f"Could not fetch the catalog: {e}") from e

        if not products:
            raise FetchError("Provider returned an empty catalog")

        ids = [p.id for p in products]
        if len(set(ids)) != len(ids):
            raise FetchError("Provider returned duplicate product ids")

        return products

    # ------------------------------------------------------------------ #
    # Guided selection
    # ------------------------------------------------------------------ #

    async def fetch_quiz(self, context: str) -> Quiz:
        """Generate a quiz scoped to a search term or category name."""
        if not context or not context.strip():
            raise ValueError("Quiz context must be non-empty")

        try:
            payload = await self._parse(
                system_prompt="You write short shopping quizzes as structured JSON.",
                user_prompt=QUIZ_PROMPT.format(context=context, count=self.config.quiz_question_count),
                response_format=QuizPayload,
            )
            quiz = Quiz.model_validate(payload.model_dump())
        except Exception as e:
            logger.error(f"Error generating quiz for '{context}': {e}")
            raise GenerationError("Could not generate the quiz.") from e

        logger.info(f"Generated quiz '{quiz.title}' with {len(quiz.questions)} questions")
        return quiz

    async def fetch_recommendations(
        self,
        answers: Dict[str, str],
        context: str,
        candidates: Sequence[Product],
    ) -> List[str]:
        """Ask the provider to choose up to max_recommendations ids from the candidates."""
        simplified = [
            {"id": p.id, "name": p.name, "description": p.description, "tags": list(p.tags)}
            for p in candidates
        ]
        limit = self.config.max_recommendations

        try:
            payload = await self._parse(
                system_prompt="You recommend products as structured JSON.",
                user_prompt=RECOMMENDATION_PROMPT.format(
                    context=context,
                    answers=json.dumps(answers),
                    limit=limit,
                    products=json.dumps(simplified),
                ),
                response_format=RecommendationPayload,
            )
        except Exception as e:
            logger.error(f"Error getting recommendations for '{context}': {e}")
            raise RecommendationError("Could not get recommendations.") from e

        ids = list(payload.product_ids)
        if len(ids) > limit:
            logger.warning(f"Provider returned {len(ids)} recommendations, keeping first {limit}")
            ids = ids[:limit]

        logger.info(f"Recommended ids: {ids}")
        return ids


class OfflineContentProvider(ContentProvider):
    """
    Deterministic provider used when no API key is configured.

    Built-in catalog, a one-question quiz, and the first few candidates as
    recommendations.
    """

    def __init__(self, config: Optional[StorefrontConfig] = None):
        self.config = config or get_config()

    async def fetch_catalog(self) -> List[Product]:
        return fallback_products()

    async def fetch_quiz(self, context: str) -> Quiz:
        if not context or not context.strip():
            raise ValueError("Quiz context must be non-empty")
        return Quiz(
            title=f"Find your perfect {context} product",
            questions=(
                QuizQuestion(
                    question="What is your main goal?",
                    options=("Option A", "Option B", "Option C"),
                ),
            ),
        )

    async def fetch_recommendations(
        self,
        answers: Dict[str, str],
        context: str,
        candidates: Sequence[Product],
    ) -> List[str]:
        return [p.id for p in candidates[:self.config.offline_recommendation_count]]


def create_content_provider(config: Optional[StorefrontConfig] = None) -> ContentProvider:
    """Use OpenAI when an API key is configured, otherwise the offline provider."""
    config = config or get_config()
    if os.getenv("OPENAI_API_KEY"):
        return OpenAIContentProvider(config)

    logger.warning("OPENAI_API_KEY not set. Using built-in data; guided selection will be limited.")
    return OfflineContentProvider(config)
