from decimal import Decimal


def create_category(client, user, name="Science Fiction"):
    response = client.post("/categories", json={"name": name}, headers=user["headers"])
    assert response.status_code == 201
    return response.json()


def create_book(client, user, **fields):
    payload = {"title": "Dune", "author": "Frank Herbert", "price": "4.50", **fields}
    response = client.post("/books", json=payload, headers=user["headers"])
    assert response.status_code == 201, response.text
    return response.json()


def test_create_and_fetch_book_round_trip(client, alice):
    """
    Create a book, fetch it back, and compare.

    Verifies:
    - Every submitted field is returned unchanged
    - id, timestamps and owner are generated
    - status defaults to "available"
    """
    category = create_category(client, alice)
    payload = {
        "title": "Foundation",
        "author": "Isaac Asimov",
        "isbn": "9780553293357",
        "publication_year": 1951,
        "category_id": category["id"],
        "price": "12.50",
        "image_url": "https://img.example.com/foundation.jpg",
    }
    created = client.post("/books", json=payload, headers=alice["headers"])
    assert created.status_code == 201

    response = client.get(f"/books/{created.json()['id']}")
    assert response.status_code == 200
    data = response.json()
    for key in ("title", "author", "isbn", "publication_year", "category_id", "image_url"):
        assert data[key] == payload[key]
    assert Decimal(str(data["price"])) == Decimal("12.50")
    assert data["status"] == "available"
    assert data["owner_id"] == alice["user"]["id"]
    assert data["owner"]["first_name"] == "Alice"
    assert data["category"]["name"] == "Science Fiction"
    assert data["id"] == created.json()["id"]
    assert data["created_at"]
    assert data["updated_at"]


def test_create_book_requires_auth(client):
    response = client.post("/books", json={"title": "Dune"})
    assert response.status_code == 401


def test_create_book_unknown_category(client, alice):
    response = client.post(
        "/books", json={"title": "Dune", "category_id": 99999}, headers=alice["headers"]
    )
    assert response.status_code == 404
    assert "Category" in response.json()["error"]


def test_create_book_missing_title(client, alice):
    response = client.post("/books", json={"author": "Nobody"}, headers=alice["headers"])
    assert response.status_code == 422


def test_create_book_negative_price(client, alice):
    response = client.post(
        "/books", json={"title": "Dune", "price": -1}, headers=alice["headers"]
    )
    assert response.status_code == 422


def test_create_book_as_rented_rejected(client, alice):
    response = client.post(
        "/books", json={"title": "Dune", "status": "rented"}, headers=alice["headers"]
    )
    assert response.status_code == 400


def test_get_book_not_found(client):
    response = client.get("/books/99999")
    assert response.status_code == 404
    assert response.json() == {"error": "Book with id 99999 not found"}


def test_list_books_filters(client, alice, bob):
    """
    Test the list filters.

    title and author are case-insensitive substrings; owner_id and
    category_id are exact.
    """
    category = create_category(client, alice, "Classics")
    create_book(client, alice, title="Dune", author="Frank Herbert")
    create_book(client, alice, title="Emma", author="Jane Austen", category_id=category["id"])
    create_book(client, bob, title="Dune Messiah", author="Frank Herbert")

    by_title = client.get("/books?title=dune").json()
    assert {b["title"] for b in by_title["books"]} == {"Dune", "Dune Messiah"}

    by_author = client.get("/books?author=austen").json()
    assert [b["title"] for b in by_author["books"]] == ["Emma"]

    by_owner = client.get(f"/books?owner_id={bob['user']['id']}").json()
    assert [b["title"] for b in by_owner["books"]] == ["Dune Messiah"]

    by_category = client.get(f"/books?category_id={category['id']}").json()
    assert [b["title"] for b in by_category["books"]] == ["Emma"]

    unavailable = client.get("/books?status=unavailable").json()
    assert unavailable["books"] == []


def test_anonymous_listing_hides_owner_email(client, alice):
    """
    Test that the public book list and detail show owner names only.
    """
    book = create_book(client, alice)

    listing = client.get("/books")
    assert listing.status_code == 200
    owner = listing.json()["books"][0]["owner"]
    assert owner == {"id": alice["user"]["id"], "first_name": "Alice", "last_name": "Martin"}

    detail = client.get(f"/books/{book['id']}").json()
    assert "email" not in detail["owner"]


def test_list_books_pagination(client, alice):
    for i in range(5):
        create_book(client, alice, title=f"Book {i}")

    first = client.get("/books?page=1&limit=2").json()
    assert len(first["books"]) == 2
    assert first["books"][0]["title"] == "Book 4"
    assert first["pagination"] == {
        "current_page": 1,
        "total_pages": 3,
        "total_books": 5,
        "limit": 2,
        "has_next_page": True,
        "has_previous_page": False,
    }

    last = client.get("/books?page=3&limit=2").json()
    assert [b["title"] for b in last["books"]] == ["Book 0"]
    assert last["pagination"]["has_next_page"] is False
    assert last["pagination"]["has_previous_page"] is True


def test_update_book(client, alice):
    """
    Test partial update: only provided fields change.
    """
    book = create_book(client, alice)
    response = client.put(
        f"/books/{book['id']}",
        json={"title": "Dune (Deluxe)", "status": "unavailable"},
        headers=alice["headers"],
    )
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Dune (Deluxe)"
    assert data["status"] == "unavailable"
    assert data["author"] == "Frank Herbert"


def test_update_book_null_required_fields_rejected(client, alice):
    """
    Test that title and status cannot be cleared.

    Verifies:
    - 400 with an error body, not a 409 from the database
    - The book is left unchanged
    """
    book = create_book(client, alice)
    for field in ("title", "status"):
        response = client.put(
            f"/books/{book['id']}", json={field: None}, headers=alice["headers"]
        )
        assert response.status_code == 400
        assert response.json()["error"] == f"{field} cannot be null"

    data = client.get(f"/books/{book['id']}").json()
    assert data["title"] == "Dune"
    assert data["status"] == "available"


def test_update_book_not_owner(client, alice, bob):
    book = create_book(client, alice)
    response = client.put(
        f"/books/{book['id']}", json={"title": "Mine now"}, headers=bob["headers"]
    )
    assert response.status_code == 403


def test_update_book_cannot_set_rented(client, alice):
    book = create_book(client, alice)
    response = client.put(
        f"/books/{book['id']}", json={"status": "rented"}, headers=alice["headers"]
    )
    assert response.status_code == 400


def test_update_rented_book_status_conflict(client, alice, bob):
    book = create_book(client, alice)
    client.post(
        "/rentals",
        json={"book_id": book["id"], "rental_date": "2026-02-01", "duration_days": 3},
        headers=bob["headers"],
    )
    response = client.put(
        f"/books/{book['id']}", json={"status": "available"}, headers=alice["headers"]
    )
    assert response.status_code == 409


def test_delete_book(client, alice):
    book = create_book(client, alice)
    response = client.delete(f"/books/{book['id']}", headers=alice["headers"])
    assert response.status_code == 200
    assert client.get(f"/books/{book['id']}").status_code == 404


def test_delete_book_not_owner(client, alice, bob):
    book = create_book(client, alice)
    response = client.delete(f"/books/{book['id']}", headers=bob["headers"])
    assert response.status_code == 403


def test_delete_rented_book_conflict(client, alice, bob):
    book = create_book(client, alice)
    client.post(
        "/rentals",
        json={"book_id": book["id"], "rental_date": "2026-02-01"},
        headers=bob["headers"],
    )
    response = client.delete(f"/books/{book['id']}", headers=alice["headers"])
    assert response.status_code == 409
