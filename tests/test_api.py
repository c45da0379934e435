"""
Integration tests for the storefront REST API.

Tests verify:
- Session lifecycle (create / get / delete, 404 for unknown ids)
- Browsing: filters, search, navigation, sort and paging
- Cart endpoints and Decimal totals
- Guided selection end to end: open -> start -> answer -> add-all
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.api.server import app, get_content_provider, sessions
from storefront.data.fallback_catalog import fallback_products
from storefront.provider.errors import GenerationError


@pytest.fixture
def provider(fake_provider_cls, sample_quiz):
    return fake_provider_cls(catalog=fallback_products(), quiz=sample_quiz, recommendation_ids=["1", "2"])


@pytest.fixture
def client(provider):
    app.dependency_overrides[get_content_provider] = lambda: provider
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def session_id(client):
    response = client.post("/sessions", json={"session_id": "s1"})
    assert response.status_code == 200
    return response.json()["session_id"]


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

def test_health(client):
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "online"
    assert data["config"]["page_size_options"] == [12, 24, 36]


def test_create_and_get_session(client, session_id, provider):
    assert session_id == "s1"
    assert "s1" in sessions

    data = client.get("/sessions/s1").json()
    assert data["product_count"] == 7
    assert data["cart_item_count"] == 0
    assert data["quiz_context"] is None

    # Re-posting the same id returns the existing session
    client.post("/sessions", json={"session_id": "s1"})
    assert provider.calls["catalog"] == 1


def test_unknown_session_404(client):
    assert client.get("/sessions/nope").status_code == 404
    assert client.get("/sessions/nope/cart").status_code == 404


def test_delete_session(client, session_id):
    assert client.delete(f"/sessions/{session_id}").status_code == 200
    assert session_id not in sessions
    assert client.get(f"/sessions/{session_id}").status_code == 404


# ---------------------------------------------------------------------------
# Browsing
# ---------------------------------------------------------------------------

def test_products_page(client, session_id):
    data = client.get(f"/sessions/{session_id}/products").json()
    assert data["total_count"] == 7
    assert data["total_pages"] == 1
    assert data["page_size"] == 12
    assert data["items"][0]["id"] == "1"
    assert data["items"][0]["reviewCount"] == 12
    assert {c["name"] for c in data["facets"]["categories"]} == {
        "Food", "Health", "Body & Beauty", "Home & Lifestyle", "Baby & Kids",
    }


def test_filter_actions(client, session_id):
    url = f"/sessions/{session_id}/filters"

    data = client.post(url, json={"action": "category", "category": "Body & Beauty"}).json()
    assert data["total_count"] == 2
    assert data["quiz_context"] == "Body & Beauty"

    data = client.post(url, json={"action": "rating", "rating": 5}).json()
    assert [p["id"] for p in data["items"]] == ["3"]
    assert data["active_filter_count"] == 2

    data = client.post(url, json={"action": "rating", "rating": 5}).json()
    assert data["filters"]["rating"] == 0

    data = client.post(url, json={"action": "brand", "brand": "The Apothecary"}).json()
    assert [p["id"] for p in data["items"]] == ["7"]
    assert len(data["facets"]["brands"]) == 7

    data = client.post(url, json={"action": "clear"}).json()
    assert data["total_count"] == 7


def test_filter_action_missing_value(client, session_id):
    response = client.post(f"/sessions/{session_id}/filters", json={"action": "brand"})
    assert response.status_code == 422


def test_search_and_navigate(client, session_id):
    data = client.post(f"/sessions/{session_id}/search", json={"term": "magnesium"}).json()
    assert data["total_count"] == 4
    assert data["quiz_context"] == "magnesium"

    data = client.post(f"/sessions/{session_id}/navigate", json={"target": "category", "category": "Food"}).json()
    assert data["search_term"] == ""
    assert [p["id"] for p in data["items"]] == ["6"]

    data = client.post(f"/sessions/{session_id}/navigate", json={"target": "home"}).json()
    assert data["total_count"] == 7
    assert data["quiz_context"] is None


def test_browse_sort_and_invalid_page(client, session_id):
    url = f"/sessions/{session_id}/browse"

    data = client.post(url, json={"sort": "price_desc"}).json()
    assert data["items"][0]["id"] == "5"
    assert data["sort"] == "price_desc"

    data = client.post(url, json={"page": 3, "page_size": 10}).json()
    assert data["page_number"] == 1
    assert data["page_size"] == 12


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------

def test_cart_flow(client, session_id):
    url = f"/sessions/{session_id}/cart/items"

    client.post(url, json={"product_id": "1", "quantity": 1})
    data = client.post(url, json={"product_id": "2", "quantity": 2}).json()
    assert data["item_count"] == 3
    assert Decimal(data["subtotal"]) == Decimal("506.00")
    assert data["free_shipping"] is True

    data = client.put(f"{url}/2", json={"quantity": 0}).json()
    assert [i["product"]["id"] for i in data["items"]] == ["1"]
    assert Decimal(data["shipping"]) == Decimal("50")
    assert Decimal(data["total"]) == Decimal("258.00")

    data = client.delete(f"{url}/1").json()
    assert data["items"] == []


def test_add_unknown_product_404(client, session_id):
    response = client.post(f"/sessions/{session_id}/cart/items", json={"product_id": "999"})
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Guided selection
# ---------------------------------------------------------------------------

def test_guided_selection_needs_context(client, session_id):
    assert client.post(f"/sessions/{session_id}/guided-selection").status_code == 409
    assert client.get(f"/sessions/{session_id}/guided-selection").status_code == 404


def test_guided_selection_end_to_end(client, session_id):
    base = f"/sessions/{session_id}/guided-selection"
    client.post(f"/sessions/{session_id}/navigate", json={"target": "category", "category": "Health"})

    data = client.post(base).json()
    assert data["step"] == "intro"
    assert data["context"] == "Health"
    assert data["candidate_count"] == 2

    data = client.post(f"{base}/start").json()
    assert data["step"] == "questioning"
    assert data["question_count"] == 2
    assert data["current_question"]["question"] == "What is your main goal?"

    client.post(f"{base}/answer", json={"question": "What is your main goal?", "option": "Sleep"})
    data = client.post(f"{base}/answer", json={"question": "Which format do you prefer?", "option": "Spray"}).json()
    assert data["step"] == "results"
    assert [p["id"] for p in data["recommended"]] == ["1", "2"]

    cart = client.post(f"{base}/add-all").json()
    assert Decimal(cart["discount_rate"]) == Decimal("0.10")
    assert Decimal(cart["total"]) == Decimal("371.30")

    assert client.get(base).json()["step"] == "closed"


def test_add_one_and_restart(client, session_id):
    base = f"/sessions/{session_id}/guided-selection"
    client.post(f"/sessions/{session_id}/search", json={"term": "magnesium"})
    client.post(base)
    client.post(f"{base}/start")
    client.post(f"{base}/answer", json={"question": "What is your main goal?", "option": "Sleep"})
    client.post(f"{base}/answer", json={"question": "Which format do you prefer?", "option": "Bath"})

    cart = client.post(f"{base}/add-one", json={"product_id": "1"}).json()
    assert cart["item_count"] == 1
    assert Decimal(cart["discount_rate"]) == Decimal("0")

    assert client.post(f"{base}/add-one", json={"product_id": "7"}).status_code == 409

    data = client.post(f"{base}/restart").json()
    assert data["step"] == "intro"
    assert data["answers"] == {}


def test_quiz_failure_reported_as_error_step(client, session_id, provider):
    provider.quiz_error = GenerationError("Could not generate the quiz.")
    base = f"/sessions/{session_id}/guided-selection"
    client.post(f"/sessions/{session_id}/search", json={"term": "magnesium"})
    client.post(base)

    data = client.post(f"{base}/start").json()

    assert data["step"] == "error"
    assert data["error"] == "Could not generate the quiz."


def test_close_guided_selection(client, session_id):
    base = f"/sessions/{session_id}/guided-selection"
    client.post(f"/sessions/{session_id}/search", json={"term": "magnesium"})
    client.post(base)

    assert client.delete(base).status_code == 200
    assert client.get(base).status_code == 404


def test_product_detail(client, session_id):
    response = client.get(f"/sessions/{session_id}/products/7")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "All Natural Magnesium Body Butter"
    assert data["reviewCount"] == 23
    assert Decimal(data["price"]) == Decimal("154.95")

    assert client.get(f"/sessions/{session_id}/products/999").status_code == 404
