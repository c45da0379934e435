"""
Guided selection engine: the quiz -> recommendations flow.

Steps:
    INTRO -> LOADING_QUIZ -> QUESTIONING -> LOADING_RECOMMENDATIONS -> RESULTS
with ERROR reachable from either loading step and CLOSED once the session
ends. The flow is linear: one answer per question, no going back. Revising
answers means restart() back to INTRO, because the recommendation request is
keyed on the complete answer set.

Provider calls are the only suspension points. While a call is in flight the
engine ignores start/answer events, so there is at most one request per
session. close() and restart() bump a generation counter; a response that
comes back for an older generation is dropped.
"""
import traceback
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

from storefront.cart.ledger import CartLedger
from storefront.data.models import ALL_CATEGORIES, Filters, Product, Quiz, QuizQuestion
from storefront.provider.content_provider import ContentProvider
from storefront.provider.errors import GenerationError, RecommendationError
from storefront.utils.logger import get_logger

logger = get_logger("interview.guided_selection")


class QuizStep(str, Enum):
    INTRO = "intro"
    LOADING_QUIZ = "loading_quiz"
    QUESTIONING = "questioning"
    LOADING_RECOMMENDATIONS = "loading_recommendations"
    RESULTS = "results"
    ERROR = "error"
    CLOSED = "closed"


LOADING_STEPS = (QuizStep.LOADING_QUIZ, QuizStep.LOADING_RECOMMENDATIONS)


def resolve_context(search_term: str, filters: Filters) -> Optional[str]:
    """
    Context for a guided-selection session.

    The search term wins when present; otherwise the selected category name.
    None when neither is set (no guided selection offered).
    """
    term = (search_term or "").strip()
    if term:
        return term
    if filters.category != ALL_CATEGORIES:
        return filters.category.value
    return None


@dataclass
class GuidedSelectionState:
    """Per-session quiz state."""
    step: QuizStep = QuizStep.INTRO
    quiz: Optional[Quiz] = None
    question_index: int = 0
    answers: Dict[str, str] = field(default_factory=dict)
    recommended: List[Product] = field(default_factory=list)
    error: Optional[str] = None


class GuidedSelectionEngine:
    """
    Drives one guided-selection session.

    Args:
        context: Search term or category name scoping the quiz
        candidates: Products visible when the session was opened; recommendations
            are resolved against this snapshot only
        provider: Content provider for the quiz and recommendation calls
        cart: Cart ledger receiving add-one / add-all commits
        bulk_discount_rate: Discount applied by add_all()
    """

    def __init__(
        self,
        context: str,
        candidates: Sequence[Product],
        provider: ContentProvider,
        cart: CartLedger,
        bulk_discount_rate: Union[Decimal, float] = Decimal("0.10"),
    ):
        if not context or not context.strip():
            raise ValueError("Guided selection needs a non-empty context")

        self.context = context
        self.candidates: Tuple[Product, ...] = tuple(candidates)
        self.provider = provider
        self.cart = cart
        self.bulk_discount_rate = bulk_discount_rate
        self.state = GuidedSelectionState()
        self._generation = 0

    # ------------------------------------------------------------------ #
    # Read-only views
    # ------------------------------------------------------------------ #

    @property
    def step(self) -> QuizStep:
        return self.state.step

    @property
    def is_closed(self) -> bool:
        return self.state.step == QuizStep.CLOSED

    @property
    def is_loading(self) -> bool:
        return self.state.step in LOADING_STEPS

    @property
    def answers(self) -> Dict[str, str]:
        return dict(self.state.answers)

    @property
    def recommended(self) -> Tuple[Product, ...]:
        return tuple(self.state.recommended)

    @property
    def current_question(self) -> Optional[QuizQuestion]:
        if self.state.step != QuizStep.QUESTIONING or self.state.quiz is None:
            return None
        return self.state.quiz.questions[self.state.question_index]

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #

    async def start(self) -> QuizStep:
        """INTRO -> LOADING_QUIZ -> QUESTIONING (or ERROR)."""
        if self.state.step != QuizStep.INTRO:
            logger.info(f"Ignoring start in step {self.state.step.value}")
            return self.state.step

        self.state.step = QuizStep.LOADING_QUIZ
        generation = self._generation
        logger.info(f"Requesting quiz for '{self.context}'")

        try:
            quiz = await self.provider.fetch_quiz(self.context)
        except GenerationError as e:
            if self._is_stale(generation):
                return self.state.step
            return self._fail(str(e))
        except Exception as e:
            logger.error(f"Unexpected quiz provider error: {e}\n{traceback.format_exc()}")
            if self._is_stale(generation):
                return self.state.step
            return self._fail("Could not generate the quiz.")

        if self._is_stale(generation):
            return self.state.step

        self.state.quiz = quiz
        self.state.question_index = 0
        self.state.answers = {}
        self.state.step = QuizStep.QUESTIONING
        logger.info(f"Quiz ready: '{quiz.title}' ({len(quiz.questions)} questions)")
        return self.state.step

    async def answer(self, question: str, option: str) -> QuizStep:
        """
        Record the answer to the current question.

        The last answer triggers the recommendation request. Answers in any
        other step, for a question other than the current one, or with an
        option the question does not offer are ignored.
        """
        current = self.current_question
        if current is None:
            logger.info(f"Ignoring answer in step {self.state.step.value}")
            return self.state.step
        if question != current.question or option not in current.options:
            logger.warning(f"Ignoring answer '{option}' to '{question}'; not the current question/option")
            return self.state.step

        self.state.answers[question] = option

        if self.state.question_index == len(self.state.quiz.questions) - 1:
            return await self._request_recommendations()

        self.state.question_index += 1
        return self.state.step

    async def _request_recommendations(self) -> QuizStep:
        self.state.step = QuizStep.LOADING_RECOMMENDATIONS
        generation = self._generation
        answers = dict(self.state.answers)
        logger.info(f"Requesting recommendations for '{self.context}' with answers {answers}")

        try:
            ids = await self.provider.fetch_recommendations(answers, self.context, self.candidates)
        except RecommendationError as e:
            if self._is_stale(generation):
                return self.state.step
            return self._fail(str(e))
        except Exception as e:
            logger.error(f"Unexpected recommendation provider error: {e}\n{traceback.format_exc()}")
            if self._is_stale(generation):
                return self.state.step
            return self._fail("Could not get recommendations.")

        if self._is_stale(generation):
            return self.state.step

        by_id = {p.id: p for p in self.candidates}
        recommended: List[Product] = []
        for product_id in ids:
            product = by_id.get(product_id)
            if product is None:
                logger.warning(f"Dropping recommended id '{product_id}' not in candidate set")
                continue
            if product not in recommended:
                recommended.append(product)

        self.state.recommended = recommended
        self.state.step = QuizStep.RESULTS
        logger.info(f"Recommended {len(recommended)} products: {[p.id for p in recommended]}")
        return self.state.step

    def add_one(self, product: Product) -> bool:
        """Add a single recommended product to the cart; the session stays open."""
        if self.state.step != QuizStep.RESULTS or product not in self.state.recommended:
            logger.warning(f"Ignoring add-one for '{product.id}' in step {self.state.step.value}")
            return False
        self.cart.add_item(product, 1)
        return True

    def add_all(self) -> bool:
        """Bulk-commit every recommendation with the bulk discount, then close."""
        if self.state.step != QuizStep.RESULTS:
            logger.warning(f"Ignoring add-all in step {self.state.step.value}")
            return False
        self.cart.add_many(self.state.recommended, self.bulk_discount_rate)
        self.close()
        return True

    def close(self) -> None:
        """End the session; any in-flight response will be discarded."""
        if self.state.step == QuizStep.CLOSED:
            return
        self._generation += 1
        self.state.step = QuizStep.CLOSED
        logger.info(f"Guided selection for '{self.context}' closed")

    def restart(self) -> QuizStep:
        """Discard quiz, answers and results and go back to INTRO."""
        if self.state.step == QuizStep.CLOSED:
            logger.info("Ignoring restart of a closed guided selection")
            return self.state.step
        self._generation += 1
        self.state = GuidedSelectionState()
        logger.info(f"Guided selection for '{self.context}' restarted")
        return self.state.step

    # ------------------------------------------------------------------ #

    def _is_stale(self, generation: int) -> bool:
        if generation != self._generation:
            logger.info("Discarding provider response for a closed or restarted session")
            return True
        return False

    def _fail(self, message: str) -> QuizStep:
        self.state.step = QuizStep.ERROR
        self.state.error = message
        logger.error(f"Guided selection for '{self.context}' failed: {message}")
        return self.state.step
