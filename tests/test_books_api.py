from dataclasses import replace
from typing import Any

from fastapi.testclient import TestClient

from practice_api.api.deps import Repositories, get_book_service, get_repositories
from practice_api.main import create_app
from practice_api.settings import Settings

BOOKS_URL = "/api/v1/books"


def _book(name: str, **fields: Any) -> dict[str, Any]:
    return {"name": name, "price": 10, "pages": 100, "author": "Ann", **fields}


def test_health_reports_environment(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["environment"] == "production"


def test_book_crud_flow(client: TestClient) -> None:
    created = client.post(BOOKS_URL, json=_book("Dune"))
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "success"
    book = body["data"]["book"]
    assert "version" not in book

    fetched = client.get(f"{BOOKS_URL}/{book['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["data"]["book"]["name"] == "Dune"

    updated = client.patch(f"{BOOKS_URL}/{book['id']}", json={"price": 12.5})
    assert updated.status_code == 200
    assert updated.json()["data"]["book"]["price"] == 12.5

    deleted = client.delete(f"{BOOKS_URL}/{book['id']}")
    assert deleted.status_code == 204
    assert deleted.content == b""

    missing = client.get(f"{BOOKS_URL}/{book['id']}")
    assert missing.status_code == 404
    assert missing.json() == {"status": "fail", "message": f"No book found with id '{book['id']}'"}


def test_missing_price_is_rejected_and_nothing_is_stored(client: TestClient) -> None:
    response = client.post(BOOKS_URL, json={"name": "Dune", "pages": 100, "author": "Ann"})

    assert response.status_code == 400
    assert response.json()["status"] == "fail"
    assert "Book should have a price" in response.json()["message"]
    assert client.get(BOOKS_URL).json()["results"] == 0


def test_duplicate_name_is_rejected(client: TestClient) -> None:
    client.post(BOOKS_URL, json=_book("Foo"))

    response = client.post(BOOKS_URL, json=_book("Foo"))

    assert response.status_code == 400
    assert "Foo" in response.json()["message"]


def test_list_supports_filters_sorting_fields_and_pages(client: TestClient) -> None:
    for name, price in [("A", 5), ("B", 15), ("C", 25), ("D", 35)]:
        client.post(BOOKS_URL, json=_book(name, price=price))

    response = client.get(BOOKS_URL, params={"price[gte]": "10", "sort": "-price", "fields": "name,price", "limit": "2"})

    body = response.json()
    assert response.status_code == 200
    assert body["results"] == 2
    assert body["requested_at"]
    assert [book["name"] for book in body["data"]["books"]] == ["D", "C"]
    assert set(body["data"]["books"][0]) == {"id", "name", "price"}

    second_page = client.get(BOOKS_URL, params={"sort": "price", "page": "2", "limit": "3"}).json()
    assert [book["name"] for book in second_page["data"]["books"]] == ["D"]


def test_default_order_is_newest_first(client: TestClient) -> None:
    for name in ["First", "Second", "Third"]:
        client.post(BOOKS_URL, json=_book(name))

    books = client.get(BOOKS_URL).json()["data"]["books"]

    assert [book["name"] for book in books] == ["Third", "Second", "First"]


def test_invalid_id_is_a_bad_request(client: TestClient) -> None:
    response = client.get(f"{BOOKS_URL}/abc")

    assert response.status_code == 400
    assert response.json() == {"status": "fail", "message": "Invalid id: abc"}


def test_bad_filter_value_is_a_bad_request(client: TestClient) -> None:
    response = client.get(BOOKS_URL, params={"price[gte]": "cheap"})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid price: cheap"


def test_non_object_body_is_a_bad_request(client: TestClient) -> None:
    response = client.post(BOOKS_URL, json=["not", "a", "book"])

    assert response.status_code == 400
    assert response.json()["status"] == "fail"


def test_unknown_route_is_not_found(client: TestClient) -> None:
    response = client.get("/api/v1/nothing-here")

    assert response.status_code == 404
    assert response.json() == {"status": "fail", "message": "/api/v1/nothing-here was not found on this server"}


def test_unexpected_failure_is_hidden_in_production(client: TestClient) -> None:
    def broken_service() -> None:
        raise RuntimeError("connection string leaked")

    client.app.dependency_overrides[get_book_service] = broken_service

    response = client.get(BOOKS_URL)

    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "Something went very wrong!"}


def test_development_mode_shows_raw_errors(settings: Settings, repositories: Repositories) -> None:
    app = create_app(replace(settings, environment="development"))
    app.dependency_overrides[get_repositories] = lambda: repositories

    with TestClient(app) as client:
        response = client.get(f"{BOOKS_URL}/abc")

    body = response.json()
    assert response.status_code == 500
    assert body["error"]["name"] == "CastError"
    assert "CastError" in body["stack"]


def test_development_mode_reports_validation_failures_raw(settings: Settings, repositories: Repositories) -> None:
    app = create_app(replace(settings, environment="development"))
    app.dependency_overrides[get_repositories] = lambda: repositories

    with TestClient(app) as client:
        response = client.post(BOOKS_URL, json={"name": "Dune", "pages": 100, "author": "Ann"})
        listed = client.get(BOOKS_URL).json()

    body = response.json()
    assert response.status_code == 500
    assert body["error"]["name"] == "DocumentValidationError"
    assert "Book should have a price" in body["message"]
    assert listed["results"] == 0
