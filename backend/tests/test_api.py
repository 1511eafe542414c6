"""
End-to-end tests for the HTTP API over an in-memory database.
"""
import os
import sys
from datetime import date

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from expense_tracker.domain.exchange_rates import ExchangeRates  # noqa: E402
from expense_tracker.main import create_app  # noqa: E402
from expense_tracker.routes.dependencies import get_category_service  # noqa: E402
from expense_tracker.services.categories import CategoryService  # noqa: E402
from tests.support import (  # noqa: E402
    FakeFetcher,
    FlakyCategoryRepository,
    make_session_factory,
    make_settings,
)

DAY = date(2021, 7, 10)


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher({DAY: ExchangeRates(date=DAY, base_currency="USD", rates={"EUR": "2.0"})})


@pytest.fixture
def client(fetcher) -> TestClient:
    app = create_app(make_settings(), session_factory=make_session_factory(), rate_fetcher=fetcher)
    return TestClient(app)


def _create_category(client: TestClient, name: str, parent_id=None, headers=None) -> str:
    body = {"name": name}
    if parent_id:
        body["parentId"] = parent_id
    response = client.post("/api/categories", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["id"]


def _create_expense(client: TestClient, category_id: str, price: str, quantity: str = "1") -> str:
    response = client.post(
        "/api/expenses",
        json={
            "categoryId": category_id,
            "price": price,
            "currency": "EUR",
            "quantity": quantity,
            "date": DAY.isoformat(),
        },
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
    assert response.headers["x-request-id"]


def test_request_id_is_echoed(client: TestClient) -> None:
    response = client.get("/health", headers={"x-request-id": "req-123"})
    assert response.headers["x-request-id"] == "req-123"


def test_create_and_list_roots(client: TestClient) -> None:
    client.post("/api/users/signup", json={"username": "u1", "password": "p1"})

    response = client.post("/api/categories", json={"name": "Food", "level": 1, "path": "|new"})
    assert response.status_code == 201
    category_id = response.json()["id"]

    roots = client.get("/api/categories").json()
    assert len(roots) == 1
    assert roots[0]["id"] == category_id
    assert (roots[0]["name"], roots[0]["level"]) == ("Food", 1)
    assert "parent_id" not in roots[0]


def test_create_and_get_category_with_parents(client: TestClient) -> None:
    a = _create_category(client, "A")
    b = _create_category(client, "B", parent_id=a)

    response = client.get(f"/api/categories/{b}")

    assert response.status_code == 200
    body = response.json()
    assert body["path"] == f"|{a}|{b}"
    assert body["level"] == 2
    assert body["parent_id"] == a
    assert [parent["id"] for parent in body["parents"]] == [a]


def test_list_categories(client: TestClient) -> None:
    a = _create_category(client, "A")
    b = _create_category(client, "B", parent_id=a)
    c = _create_category(client, "C", parent_id=b)

    roots = client.get("/api/categories").json()
    assert [cat["id"] for cat in roots] == [a]

    children = client.get("/api/categories", params={"parentId": a}).json()
    assert [cat["id"] for cat in children] == [b]

    descendants = client.get("/api/categories", params={"parentId": a, "allChildren": "true"}).json()
    assert {cat["id"] for cat in descendants} == {b, c}

    everything = client.get("/api/categories", params={"allChildren": "true"}).json()
    assert len(everything) == 3

    usages = client.get(f"/api/categories/{a}/usages").json()
    assert [cat["id"] for cat in usages] == [b, c]


def test_update_category(client: TestClient) -> None:
    a = _create_category(client, "A")

    response = client.put(f"/api/categories/{a}", json={"name": "Groceries", "icon": "cart"})
    assert response.status_code == 204

    body = client.get(f"/api/categories/{a}").json()
    assert (body["name"], body["icon"]) == ("Groceries", "cart")

    missing = client.put("/api/categories/missing", json={"name": "X"})
    assert missing.status_code == 404
    assert missing.json()["status"] == "not-found"


def test_move_subtree_to_root(client: TestClient) -> None:
    a = _create_category(client, "A")
    b = _create_category(client, "B", parent_id=a)
    c = _create_category(client, "C", parent_id=b)

    response = client.put(f"/api/categories/{b}/move", params={"destinationId": "root"})

    assert response.status_code == 200
    assert response.json() == {"count": 2}
    moved = client.get(f"/api/categories/{c}").json()
    assert moved["path"] == f"|{b}|{c}"
    assert moved["level"] == 2
    assert [parent["id"] for parent in moved["parents"]] == [b]


def test_move_into_own_subtree_is_rejected(client: TestClient) -> None:
    a = _create_category(client, "A")
    b = _create_category(client, "B", parent_id=a)

    response = client.put(f"/api/categories/{a}/move", params={"destinationId": b})

    assert response.status_code == 400
    assert response.json()["status"] == "incorrect-input"
    assert client.get(f"/api/categories/{a}").json()["path"] == f"|{a}"


def test_interrupted_move_reports_written_count(fetcher: FakeFetcher) -> None:
    app = create_app(make_settings(), session_factory=make_session_factory(), rate_fetcher=fetcher)
    client = TestClient(app)
    a = _create_category(client, "A")
    b = _create_category(client, "B", parent_id=a)
    c = _create_category(client, "C", parent_id=b)
    app.dependency_overrides[get_category_service] = lambda: CategoryService(
        FlakyCategoryRepository(app.state.session_factory(), failures={c: 10}),
        sleep=lambda _: None,
    )

    response = client.put(f"/api/categories/{b}/move", params={"destinationId": "root"})

    assert response.status_code == 500
    assert response.json() == {"status": "dependency", "error": "internal server error", "count": 1}
    assert client.get(f"/api/categories/{b}").json()["path"] == f"|{b}"

    app.dependency_overrides.clear()
    retried = client.put(f"/api/categories/{b}/move", params={"destinationId": "root"})
    assert retried.json() == {"count": 1}
    assert client.get(f"/api/categories/{c}").json()["path"] == f"|{b}|{c}"


def test_delete_category(client: TestClient) -> None:
    a = _create_category(client, "A")
    _create_category(client, "B", parent_id=a)

    response = client.delete(f"/api/categories/{a}")
    assert response.status_code == 200
    assert response.json() == {"count": 2}

    missing = client.delete(f"/api/categories/{a}")
    assert missing.status_code == 404
    assert missing.json() == {"status": "not-found", "error": "Category not found"}


def test_report_aggregates_and_converts(client: TestClient, fetcher: FakeFetcher) -> None:
    r1 = _create_category(client, "Root1")
    c1 = _create_category(client, "Child1", parent_id=r1)
    r2 = _create_category(client, "Root2")
    _create_expense(client, c1, "10")
    _create_expense(client, c1, "20", quantity="2")
    _create_expense(client, r2, "100")

    response = client.get("/api/report", params={"from": DAY.isoformat(), "to": DAY.isoformat()})

    assert response.status_code == 200, response.text
    body = response.json()
    assert fetcher.calls == [DAY]
    (day,) = body["date_reports"]
    assert day["date"] == DAY.isoformat()
    assert day["exchange_rates"]["base_currency"] == "USD"
    assert [node["category"]["id"] for node in day["category_expenses"]] == [r1, r2]

    root1 = day["category_expenses"][0]
    assert "expenses" not in root1
    (child,) = root1["sub_categories"]
    assert len(child["expenses"]) == 2
    assert root1["grand_total"]["sub_totals"][0]["original"] == {"sum": "50.00", "currency": "EUR"}
    assert root1["grand_total"]["sub_totals"][0]["converted"] == {"sum": "25.00", "currency": "USD"}

    assert day["grand_total"]["total"] == {"sum": "75.00", "currency": "USD"}
    assert body["grand_total"]["total"] == {"sum": "75.00", "currency": "USD"}


def test_report_in_requested_base_currency(client: TestClient) -> None:
    r1 = _create_category(client, "Root1")
    _create_expense(client, r1, "10")

    response = client.get(
        "/api/report",
        params={"from": DAY.isoformat(), "to": DAY.isoformat(), "baseCurrency": "EUR"},
    )

    assert response.status_code == 200, response.text
    assert response.json()["grand_total"]["total"] == {"sum": "10.00", "currency": "EUR"}


def test_report_rejects_reversed_range(client: TestClient) -> None:
    response = client.get("/api/report", params={"from": "2021-07-12", "to": "2021-07-10"})
    assert response.status_code == 400
    assert response.json()["status"] == "incorrect-input"


def test_exchange_rates_are_fetched_once(client: TestClient, fetcher: FakeFetcher) -> None:
    params = {"from": DAY.isoformat(), "to": DAY.isoformat()}

    first = client.get("/api/exchange-rates", params=params)
    second = client.get("/api/exchange-rates", params=params)

    assert first.status_code == 200
    assert first.json() == second.json()
    assert first.json()[0]["rates"] == [{"currency": "EUR", "price": "2.0"}]
    assert fetcher.calls == [DAY]


def test_expense_validation_errors(client: TestClient) -> None:
    response = client.post(
        "/api/expenses",
        json={"categoryId": "x", "price": "-1", "currency": "EUR", "date": "2021-07-10"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "incorrect-input"
    assert [error["field"] for error in body["errors"]] == ["price"]


def test_expense_price_below_stored_precision_is_rejected(client: TestClient) -> None:
    category_id = _create_category(client, "A")

    response = client.post(
        "/api/expenses",
        json={"categoryId": category_id, "price": "0.00000000001", "currency": "EUR", "date": DAY.isoformat()},
    )

    assert response.status_code == 400
    assert response.json()["status"] == "incorrect-input"
    report = client.get("/api/report", params={"from": DAY.isoformat(), "to": DAY.isoformat()})
    assert report.status_code == 200, report.text


def test_expense_with_unknown_category(client: TestClient) -> None:
    response = client.post(
        "/api/expenses",
        json={"categoryId": "missing", "price": "1", "currency": "EUR", "date": "2021-07-10"},
    )
    assert response.status_code == 400
    assert response.json()["status"] == "incorrect-input"


def test_signup_login_and_refresh(client: TestClient) -> None:
    credentials = {"username": "alice", "password": "pw"}

    signup = client.post("/api/users/signup", json=credentials)
    assert signup.status_code == 200
    assert signup.json()["token"]

    duplicate = client.post("/api/users/signup", json=credentials)
    assert duplicate.status_code == 409
    assert duplicate.json()["status"] == "conflict"

    login = client.post("/api/users/login", json=credentials)
    assert login.status_code == 200
    tokens = login.json()

    refreshed = client.post("/api/users/refresh", json={"refreshToken": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    assert refreshed.json()["refresh_token"] != tokens["refresh_token"]


@pytest.mark.parametrize(
    "credentials",
    [{"username": "alice", "password": "wrong"}, {"username": "bob", "password": "pw"}],
)
def test_login_failures_share_one_message(client: TestClient, credentials) -> None:
    client.post("/api/users/signup", json={"username": "alice", "password": "pw"})

    response = client.post("/api/users/login", json=credentials)

    assert response.status_code == 401
    assert response.json() == {"status": "unauthorized", "error": "password or user is incorrect"}


def test_bearer_token_records_author(client: TestClient) -> None:
    token = client.post("/api/users/signup", json={"username": "alice", "password": "pw"}).json()["token"]

    category_id = _create_category(client, "A", headers={"Authorization": f"Bearer {token}"})

    assert client.get(f"/api/categories/{category_id}").json()["created_by"] == "alice"

    rejected = client.post("/api/categories", json={"name": "B"}, headers={"Authorization": "Bearer forged"})
    assert rejected.status_code == 401
    assert rejected.json()["status"] == "unauthorized"
