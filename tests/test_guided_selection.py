"""
Tests for the guided selection engine.

Tests verify:
- Step transitions INTRO -> ... -> RESULTS, and ERROR on provider failure
- At most one provider request in flight per session
- Responses arriving after close/restart are discarded
- Recommendations are resolved against the candidate snapshot
- add-one / add-all cart commits
"""

import asyncio
from decimal import Decimal

import pytest

from storefront.cart.ledger import CartLedger
from storefront.data.models import Category, Filters
from storefront.interview.guided_selection import GuidedSelectionEngine, QuizStep, resolve_context
from storefront.provider.errors import GenerationError, RecommendationError


@pytest.fixture
def candidates(product_factory):
    return [product_factory(str(i), price=Decimal("100")) for i in range(1, 6)]


@pytest.fixture
def provider(fake_provider_cls, sample_quiz):
    return fake_provider_cls(quiz=sample_quiz, recommendation_ids=["2", "4"])


@pytest.fixture
def cart():
    return CartLedger()


@pytest.fixture
def engine(candidates, provider, cart):
    return GuidedSelectionEngine("magnesium", candidates, provider, cart)


async def _answer_all(engine):
    await engine.answer("What is your main goal?", "Sleep")
    return await engine.answer("Which format do you prefer?", "Spray")


class TestResolveContext:

    def test_search_term_wins(self):
        assert resolve_context("magnesium", Filters(category=Category.HEALTH)) == "magnesium"

    def test_category_when_no_search(self):
        assert resolve_context("  ", Filters(category=Category.HEALTH)) == "Health"

    def test_none_without_search_or_category(self):
        assert resolve_context("", Filters()) is None


def test_empty_context_rejected(candidates, provider, cart):
    with pytest.raises(ValueError):
        GuidedSelectionEngine("  ", candidates, provider, cart)


@pytest.mark.asyncio
async def test_full_flow(engine, provider):
    assert engine.step == QuizStep.INTRO

    assert await engine.start() == QuizStep.QUESTIONING
    assert engine.current_question.question == "What is your main goal?"

    assert await engine.answer("What is your main goal?", "Sleep") == QuizStep.QUESTIONING
    assert engine.current_question.question == "Which format do you prefer?"

    assert await engine.answer("Which format do you prefer?", "Spray") == QuizStep.RESULTS
    assert [p.id for p in engine.recommended] == ["2", "4"]
    assert provider.last_answers == {
        "What is your main goal?": "Sleep",
        "Which format do you prefer?": "Spray",
    }
    assert provider.calls == {"catalog": 0, "quiz": 1, "recommendations": 1}


@pytest.mark.asyncio
async def test_quiz_failure_enters_error(engine, provider):
    provider.quiz_error = GenerationError("Could not generate the quiz.")

    assert await engine.start() == QuizStep.ERROR
    assert engine.state.error == "Could not generate the quiz."
    assert engine.current_question is None


@pytest.mark.asyncio
async def test_recommendation_failure_enters_error(engine, provider):
    provider.recommendation_error = RecommendationError("Could not get recommendations.")
    await engine.start()

    assert await _answer_all(engine) == QuizStep.ERROR
    assert engine.recommended == ()


@pytest.mark.asyncio
async def test_restart_from_error(engine, provider):
    provider.quiz_error = GenerationError("boom")
    await engine.start()

    provider.quiz_error = None
    assert engine.restart() == QuizStep.INTRO
    assert await engine.start() == QuizStep.QUESTIONING
    assert engine.state.error is None


@pytest.mark.asyncio
async def test_start_only_from_intro(engine, provider):
    await engine.start()
    assert await engine.start() == QuizStep.QUESTIONING
    assert provider.calls["quiz"] == 1


@pytest.mark.asyncio
async def test_answers_to_wrong_question_or_option_ignored(engine):
    await engine.start()

    await engine.answer("Which format do you prefer?", "Spray")
    await engine.answer("What is your main goal?", "Not an option")

    assert engine.answers == {}
    assert engine.state.question_index == 0


@pytest.mark.asyncio
async def test_single_recommendation_request_while_loading(engine, provider):
    await engine.start()
    await engine.answer("What is your main goal?", "Sleep")

    provider.gate = asyncio.Event()
    task = asyncio.create_task(engine.answer("Which format do you prefer?", "Spray"))
    await asyncio.sleep(0)
    assert engine.step == QuizStep.LOADING_RECOMMENDATIONS
    assert engine.is_loading

    # Extra answers while loading are ignored
    await engine.answer("Which format do you prefer?", "Bath")
    await engine.start()

    provider.gate.set()
    assert await task == QuizStep.RESULTS
    assert provider.calls["recommendations"] == 1
    assert provider.calls["quiz"] == 1
    assert engine.answers["Which format do you prefer?"] == "Spray"


@pytest.mark.asyncio
async def test_response_after_close_is_discarded(engine, provider, cart):
    provider.gate = asyncio.Event()
    task = asyncio.create_task(engine.start())
    await asyncio.sleep(0)
    assert engine.step == QuizStep.LOADING_QUIZ

    engine.close()
    provider.gate.set()
    await task

    assert engine.step == QuizStep.CLOSED
    assert engine.state.quiz is None


@pytest.mark.asyncio
async def test_response_after_restart_is_discarded(engine, provider):
    await engine.start()
    await engine.answer("What is your main goal?", "Sleep")

    provider.gate = asyncio.Event()
    task = asyncio.create_task(engine.answer("Which format do you prefer?", "Spray"))
    await asyncio.sleep(0)

    engine.restart()
    provider.gate.set()
    await task

    assert engine.step == QuizStep.INTRO
    assert engine.recommended == ()


@pytest.mark.asyncio
async def test_unknown_and_duplicate_ids_dropped(engine, provider):
    provider.recommendation_ids = ["3", "missing", "3", "1"]
    await engine.start()
    await _answer_all(engine)

    assert [p.id for p in engine.recommended] == ["3", "1"]


@pytest.mark.asyncio
async def test_candidates_are_a_snapshot(candidates, provider, cart):
    engine = GuidedSelectionEngine("magnesium", candidates, provider, cart)
    candidates.clear()

    await engine.start()
    await _answer_all(engine)

    assert len(provider.last_candidates) == 5
    assert [p.id for p in engine.recommended] == ["2", "4"]


@pytest.mark.asyncio
async def test_add_one_keeps_session_open(engine, cart):
    await engine.start()
    await _answer_all(engine)

    assert engine.add_one(engine.recommended[0])
    assert cart.get_item("2").quantity == 1
    assert cart.discount_rate == Decimal("0")
    assert engine.step == QuizStep.RESULTS


@pytest.mark.asyncio
async def test_add_one_rejects_non_recommended(engine, candidates, cart):
    await engine.start()
    await _answer_all(engine)

    assert not engine.add_one(candidates[0])
    assert cart.is_empty


@pytest.mark.asyncio
async def test_add_all_applies_discount_and_closes(engine, cart):
    await engine.start()
    await _answer_all(engine)

    assert engine.add_all()
    assert [item.product.id for item in cart.items] == ["2", "4"]
    assert cart.discount_rate == Decimal("0.10")
    assert cart.totals().subtotal == Decimal("200")
    assert engine.is_closed


@pytest.mark.asyncio
async def test_add_all_outside_results_ignored(engine, cart):
    await engine.start()
    assert not engine.add_all()
    assert cart.is_empty
    assert engine.step == QuizStep.QUESTIONING


def test_closed_engine_cannot_restart(engine):
    engine.close()
    assert engine.restart() == QuizStep.CLOSED


@pytest.mark.asyncio
async def test_unexpected_quiz_error_enters_error(engine, provider):
    provider.quiz_error = TimeoutError("slow")

    assert await engine.start() == QuizStep.ERROR
    assert engine.state.error == "Could not generate the quiz."

    provider.quiz_error = None
    engine.restart()
    assert await engine.start() == QuizStep.QUESTIONING


@pytest.mark.asyncio
async def test_unexpected_recommendation_error_enters_error(engine, provider):
    provider.recommendation_error = ConnectionError("reset by peer")
    await engine.start()

    assert await _answer_all(engine) == QuizStep.ERROR
    assert engine.state.error == "Could not get recommendations."
    assert not engine.is_loading


@pytest.mark.asyncio
async def test_unexpected_error_after_close_is_discarded(engine, provider):
    provider.quiz_error = TimeoutError("slow")
    provider.gate = asyncio.Event()
    task = asyncio.create_task(engine.start())
    await asyncio.sleep(0)

    engine.close()
    provider.gate.set()

    assert await task == QuizStep.CLOSED
    assert engine.state.error is None
