"""Pytest configuration for storefront tests."""

import asyncio
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

import pytest

from storefront.core.config import StorefrontConfig, set_config
from storefront.data.models import Category, Product, Quiz, QuizQuestion
from storefront.provider.content_provider import ContentProvider


# ---------------------------------------------------------------------------
# Global state isolation: sessions is a module-level dict in
# storefront.api.server and the config is a module-level singleton.
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function", autouse=True)
def _isolate_state(monkeypatch):
    """Fresh default config and no sessions for every test."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    set_config(StorefrontConfig())
    from storefront.api.server import sessions
    sessions.clear()
    yield
    sessions.clear()
    set_config(StorefrontConfig())


# ---------------------------------------------------------------------------
# Test data
# ---------------------------------------------------------------------------

def make_product(product_id: str, **overrides) -> Product:
    fields = dict(
        id=product_id,
        name=f"Product {product_id}",
        brand="Brand",
        category=Category.HEALTH,
        price=Decimal("10.00"),
        rating=4,
    )
    fields.update(overrides)
    return Product(**fields)


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def sample_quiz() -> Quiz:
    return Quiz(
        title="Find your magnesium",
        questions=(
            QuizQuestion(question="What is your main goal?", options=("Sleep", "Recovery")),
            QuizQuestion(question="Which format do you prefer?", options=("Capsules", "Spray", "Bath")),
        ),
    )


class FakeProvider(ContentProvider):
    """
    Scriptable in-memory provider.

    Set `gate` to an asyncio.Event to hold quiz/recommendation calls in flight
    until the test releases them.
    """

    def __init__(
        self,
        catalog: Optional[List[Product]] = None,
        quiz: Optional[Quiz] = None,
        recommendation_ids: Optional[List[str]] = None,
        quiz_error: Optional[Exception] = None,
        recommendation_error: Optional[Exception] = None,
    ):
        self.catalog = catalog or []
        self.quiz = quiz
        self.recommendation_ids = recommendation_ids or []
        self.quiz_error = quiz_error
        self.recommendation_error = recommendation_error
        self.gate: Optional[asyncio.Event] = None
        self.calls: Dict[str, int] = {"catalog": 0, "quiz": 0, "recommendations": 0}
        self.last_answers: Optional[Dict[str, str]] = None
        self.last_candidates: Optional[Sequence[Product]] = None

    async def fetch_catalog(self) -> List[Product]:
        self.calls["catalog"] += 1
        return list(self.catalog)

    async def fetch_quiz(self, context: str) -> Quiz:
        self.calls["quiz"] += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.quiz_error is not None:
            raise self.quiz_error
        return self.quiz

    async def fetch_recommendations(
        self,
        answers: Dict[str, str],
        context: str,
        candidates: Sequence[Product],
    ) -> List[str]:
        self.calls["recommendations"] += 1
        self.last_answers = dict(answers)
        self.last_candidates = candidates
        if self.gate is not None:
            await self.gate.wait()
        if self.recommendation_error is not None:
            raise self.recommendation_error
        return list(self.recommendation_ids)


@pytest.fixture
def fake_provider_cls():
    return FakeProvider
