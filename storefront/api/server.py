"""
FastAPI server for the storefront.

Provides REST endpoints for catalog browsing, the cart and guided selection.

Usage:
    python -m storefront.api.server
    # or
    uvicorn storefront.api.server:app --reload --port 8000
"""
import traceback
from typing import Dict

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from dotenv import load_dotenv
load_dotenv()

from storefront.api.models import (
    AddOneRequest,
    AddToCartRequest,
    AnswerRequest,
    BrowseRequest,
    CartItemResponse,
    CartResponse,
    CatalogPageResponse,
    CategoryCount,
    CreateSessionRequest,
    FacetsResponse,
    FilterActionRequest,
    GuidedSelectionResponse,
    HealthResponse,
    NavigateRequest,
    SearchRequest,
    SessionResponse,
    UpdateQuantityRequest,
)
from storefront.core.config import get_config
from storefront.core.controller import StorefrontSession, create_session
from storefront.data.models import Filters, Product
from storefront.interview.guided_selection import GuidedSelectionEngine
from storefront.provider.content_provider import ContentProvider, create_content_provider
from storefront.utils.logger import get_logger

logger = get_logger("api.server")

VERSION = "1.0.0"

# Initialize FastAPI app
app = FastAPI(
    title="Storefront API",
    description="Catalog browsing, cart pricing and guided product selection",
    version=VERSION,
)

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Session storage: session_id -> StorefrontSession
sessions: Dict[str, StorefrontSession] = {}


def get_content_provider() -> ContentProvider:
    """Dependency: content provider for new sessions (overridden in tests)."""
    return create_content_provider(get_config())


def _get_session(session_id: str) -> StorefrontSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _get_engine(session: StorefrontSession) -> GuidedSelectionEngine:
    if session.guided_selection is None:
        raise HTTPException(status_code=404, detail="No guided selection open")
    return session.guided_selection


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------

def _session_response(session: StorefrontSession) -> SessionResponse:
    engine = session.guided_selection
    return SessionResponse(
        session_id=session.session_id,
        product_count=len(session.products),
        cart_item_count=session.cart.item_count,
        quiz_context=session.quiz_context,
        guided_selection_step=engine.step.value if engine else None,
    )


def _page_response(session: StorefrontSession) -> CatalogPageResponse:
    page = session.page()
    browse = session.browse
    return CatalogPageResponse(
        items=list(page.items),
        total_count=page.total_count,
        total_pages=page.total_pages,
        page_number=page.page_number,
        page_size=browse.page_size,
        sort=browse.sort_key,
        search_term=browse.search_term,
        filters=browse.filters,
        active_filter_count=browse.filters.active_count,
        facets=FacetsResponse(
            categories=[CategoryCount(name=name, count=count) for name, count in page.facets.categories],
            brands=list(page.facets.brands),
        ),
        quiz_context=session.quiz_context,
        quiz_prompt_visible=session.prompt_timer.visible,
    )


def _cart_response(session: StorefrontSession) -> CartResponse:
    cart = session.cart
    totals = cart.totals()
    return CartResponse(
        items=[
            CartItemResponse(product=item.product, quantity=item.quantity, line_total=item.line_total)
            for item in cart.items
        ],
        item_count=cart.item_count,
        subtotal=totals.subtotal,
        discount_rate=totals.discount_rate,
        discount_amount=totals.discount_amount,
        subtotal_after_discount=totals.subtotal_after_discount,
        shipping=totals.shipping,
        total=totals.total,
        free_shipping=totals.free_shipping,
    )


def _guided_selection_response(engine: GuidedSelectionEngine) -> GuidedSelectionResponse:
    state = engine.state
    quiz = state.quiz
    return GuidedSelectionResponse(
        step=state.step.value,
        context=engine.context,
        candidate_count=len(engine.candidates),
        title=quiz.title if quiz else None,
        question_index=state.question_index,
        question_count=len(quiz.questions) if quiz else 0,
        current_question=engine.current_question,
        answers=engine.answers,
        recommended=list(engine.recommended),
        error=state.error,
    )


# ---------------------------------------------------------------------------
# API Endpoints
# ---------------------------------------------------------------------------

@app.get("/", response_model=HealthResponse)
async def root():
    """Health check endpoint."""
    config = get_config()
    return HealthResponse(
        status="online",
        service="Storefront API",
        version=VERSION,
        config={
            "page_size_options": config.page_size_options,
            "free_shipping_threshold": str(config.free_shipping_threshold),
            "flat_shipping_rate": str(config.flat_shipping_rate),
            "bulk_discount_rate": str(config.bulk_discount_rate),
            "active_sessions": len(sessions),
        }
    )


@app.post("/sessions", response_model=SessionResponse)
async def create_storefront_session(
    request: CreateSessionRequest,
    provider: ContentProvider = Depends(get_content_provider),
):
    """Create a session (or return the existing one) and load its catalog."""
    if request.session_id and request.session_id in sessions:
        return _session_response(sessions[request.session_id])

    try:
        session = await create_session(session_id=request.session_id, provider=provider)
    except Exception as e:
        logger.error(f"Error creating session: {e}\n{traceback.format_exc()}")
        raise HTTPException(status_code=500, detail=str(e))

    sessions[session.session_id] = session
    logger.info(f"Created new session: {session.session_id} ({len(session.products)} products)")
    return _session_response(session)


@app.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_storefront_session(session_id: str):
    """Get current session summary."""
    return _session_response(_get_session(session_id))


@app.delete("/sessions/{session_id}")
async def delete_storefront_session(session_id: str):
    """End a session and clear its cache."""
    session = _get_session(session_id)
    session.end()
    del sessions[session_id]
    logger.info(f"Deleted session: {session_id}")
    return {"status": "deleted", "session_id": session_id}


# -- Catalog ---------------------------------------------------------------

@app.get("/sessions/{session_id}/products", response_model=CatalogPageResponse)
async def get_products(session_id: str):
    """Current page of products for the session's browse state."""
    return _page_response(_get_session(session_id))


@app.get("/sessions/{session_id}/products/{product_id}", response_model=Product)
async def get_product(session_id: str, product_id: str):
    """Product detail view."""
    product = _get_session(session_id).catalog.get(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@app.post("/sessions/{session_id}/browse", response_model=CatalogPageResponse)
async def browse(session_id: str, request: BrowseRequest):
    """
    Change sort, page size and/or page.

    Sort and page size changes go back to page 1 before any page request is
    applied; unknown page sizes and out-of-range pages are ignored.
    """
    session = _get_session(session_id)
    if request.sort is not None:
        session.set_sort(request.sort)
    if request.page_size is not None:
        session.set_page_size(request.page_size)
    if request.page is not None:
        session.go_to_page(request.page)
    return _page_response(session)


@app.post("/sessions/{session_id}/filters", response_model=CatalogPageResponse)
async def apply_filter_action(session_id: str, request: FilterActionRequest):
    """Apply one sidebar filter action."""
    session = _get_session(session_id)
    filters = session.browse.filters

    if request.action == "clear":
        new_filters = Filters()
    elif request.action == "category":
        if request.category is None:
            raise HTTPException(status_code=422, detail="category is required")
        new_filters = filters.with_category(request.category)
    elif request.action == "rating":
        if request.rating is None:
            raise HTTPException(status_code=422, detail="rating is required")
        new_filters = filters.with_rating_toggled(request.rating)
    else:
        if not request.brand:
            raise HTTPException(status_code=422, detail="brand is required")
        new_filters = filters.with_brand_toggled(request.brand)

    session.apply_filters(new_filters)
    return _page_response(session)


@app.post("/sessions/{session_id}/search", response_model=CatalogPageResponse)
async def search(session_id: str, request: SearchRequest):
    """New search across all categories; resets filters and the cart discount."""
    session = _get_session(session_id)
    session.search(request.term)
    return _page_response(session)


@app.post("/sessions/{session_id}/navigate", response_model=CatalogPageResponse)
async def navigate(session_id: str, request: NavigateRequest):
    """Home or category navigation; resets filters, search and the cart discount."""
    session = _get_session(session_id)
    if request.target == "home":
        session.go_home()
    else:
        if request.category is None:
            raise HTTPException(status_code=422, detail="category is required")
        session.browse_category(request.category)
    return _page_response(session)


# -- Cart ------------------------------------------------------------------

@app.get("/sessions/{session_id}/cart", response_model=CartResponse)
async def get_cart(session_id: str):
    return _cart_response(_get_session(session_id))


@app.post("/sessions/{session_id}/cart/items", response_model=CartResponse)
async def add_to_cart(session_id: str, request: AddToCartRequest):
    session = _get_session(session_id)
    product = session.catalog.get(request.product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    session.cart.add_item(product, request.quantity)
    return _cart_response(session)


@app.put("/sessions/{session_id}/cart/items/{product_id}", response_model=CartResponse)
async def update_cart_item(session_id: str, product_id: str, request: UpdateQuantityRequest):
    session = _get_session(session_id)
    session.cart.update_quantity(product_id, request.quantity)
    return _cart_response(session)


@app.delete("/sessions/{session_id}/cart/items/{product_id}", response_model=CartResponse)
async def remove_cart_item(session_id: str, product_id: str):
    session = _get_session(session_id)
    session.cart.remove_item(product_id)
    return _cart_response(session)


# -- Guided selection ------------------------------------------------------

@app.post("/sessions/{session_id}/guided-selection", response_model=GuidedSelectionResponse)
async def open_guided_selection(session_id: str):
    """Open a guided selection for the current search term or category."""
    session = _get_session(session_id)
    try:
        engine = session.open_guided_selection()
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _guided_selection_response(engine)


@app.get("/sessions/{session_id}/guided-selection", response_model=GuidedSelectionResponse)
async def get_guided_selection(session_id: str):
    return _guided_selection_response(_get_engine(_get_session(session_id)))


@app.delete("/sessions/{session_id}/guided-selection")
async def close_guided_selection(session_id: str):
    session = _get_session(session_id)
    _get_engine(session)
    session.close_guided_selection()
    return {"status": "closed", "session_id": session_id}


@app.post("/sessions/{session_id}/guided-selection/start", response_model=GuidedSelectionResponse)
async def start_guided_selection(session_id: str):
    """Request the quiz. Provider failures land the session in the error step."""
    engine = _get_engine(_get_session(session_id))
    try:
        await engine.start()
    except Exception as e:
        logger.error(f"Error in guided-selection start: {e}\n{traceback.format_exc()}")
        raise HTTPException(status_code=500, detail=str(e))
    return _guided_selection_response(engine)


@app.post("/sessions/{session_id}/guided-selection/answer", response_model=GuidedSelectionResponse)
async def answer_guided_selection(session_id: str, request: AnswerRequest):
    """Answer the current question; the last answer fetches recommendations."""
    engine = _get_engine(_get_session(session_id))
    try:
        await engine.answer(request.question, request.option)
    except Exception as e:
        logger.error(f"Error in guided-selection answer: {e}\n{traceback.format_exc()}")
        raise HTTPException(status_code=500, detail=str(e))
    return _guided_selection_response(engine)


@app.post("/sessions/{session_id}/guided-selection/add-one", response_model=CartResponse)
async def add_one_recommendation(session_id: str, request: AddOneRequest):
    session = _get_session(session_id)
    engine = _get_engine(session)
    product = session.catalog.get(request.product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    if not engine.add_one(product):
        raise HTTPException(status_code=409, detail="Product is not an available recommendation")
    return _cart_response(session)


@app.post("/sessions/{session_id}/guided-selection/add-all", response_model=CartResponse)
async def add_all_recommendations(session_id: str):
    """Add every recommendation with the bulk discount and close the guided selection."""
    session = _get_session(session_id)
    engine = _get_engine(session)
    if not engine.add_all():
        raise HTTPException(status_code=409, detail="No recommendations to add")
    return _cart_response(session)


@app.post("/sessions/{session_id}/guided-selection/restart", response_model=GuidedSelectionResponse)
async def restart_guided_selection(session_id: str):
    engine = _get_engine(_get_session(session_id))
    engine.restart()
    return _guided_selection_response(engine)


if __name__ == "__main__":
    import uvicorn

    print("=" * 60)
    print("Storefront API Server")
    print("=" * 60)
    print("API Documentation: http://localhost:8000/docs")
    print("")
    print("Environment variables:")
    print("  OPENAI_API_KEY   - enables generated catalog, quizzes and recommendations")
    print("  LOG_LEVEL        - DEBUG / INFO / WARNING")
    print("=" * 60)

    uvicorn.run(app, host="0.0.0.0", port=8000)
