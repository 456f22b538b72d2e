def test_create_category(client, alice):
    response = client.post("/categories", json={"name": "Poetry"}, headers=alice["headers"])
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Poetry"
    assert "id" in data


def test_create_category_requires_auth(client):
    response = client.post("/categories", json={"name": "Poetry"})
    assert response.status_code == 401


def test_create_category_duplicate_name(client, alice):
    """
    Category names are unique: the second creation fails with 409.
    """
    client.post("/categories", json={"name": "Poetry"}, headers=alice["headers"])
    response = client.post("/categories", json={"name": "Poetry"}, headers=alice["headers"])
    assert response.status_code == 409
    assert "already exists" in response.json()["error"]


def test_list_categories_sorted_by_name(client, alice):
    for name in ("Thriller", "Biography", "Manga"):
        client.post("/categories", json={"name": name}, headers=alice["headers"])

    response = client.get("/categories")
    assert response.status_code == 200
    assert [c["name"] for c in response.json()] == ["Biography", "Manga", "Thriller"]


def test_get_category_not_found(client):
    assert client.get("/categories/99999").status_code == 404


def test_update_category(client, alice):
    category = client.post(
        "/categories", json={"name": "Sci-fi"}, headers=alice["headers"]
    ).json()
    response = client.put(
        f"/categories/{category['id']}",
        json={"name": "Science Fiction"},
        headers=alice["headers"],
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Science Fiction"


def test_update_category_to_existing_name(client, alice):
    client.post("/categories", json={"name": "Poetry"}, headers=alice["headers"])
    other = client.post(
        "/categories", json={"name": "Drama"}, headers=alice["headers"]
    ).json()
    response = client.put(
        f"/categories/{other['id']}", json={"name": "Poetry"}, headers=alice["headers"]
    )
    assert response.status_code == 409


def test_delete_category_keeps_books(client, alice):
    """
    Deleting a category detaches its books instead of deleting them.
    """
    category = client.post(
        "/categories", json={"name": "Poetry"}, headers=alice["headers"]
    ).json()
    book = client.post(
        "/books",
        json={"title": "Leaves of Grass", "category_id": category["id"]},
        headers=alice["headers"],
    ).json()

    response = client.delete(f"/categories/{category['id']}", headers=alice["headers"])
    assert response.status_code == 200

    fetched = client.get(f"/books/{book['id']}").json()
    assert fetched["category_id"] is None
    assert fetched["category"] is None
