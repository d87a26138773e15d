import pytest


@pytest.fixture
def staff_headers(staff):
    return staff["headers"]


def category_path(action, category):
    return f"/api/categories/{action}/{category['slug']}/{category['_id']}"


def product_path(action, product):
    return f"/api/products/{action}/{product['slug']}/{product['_id']}/"


def test_create_category(client, staff_headers):
    response = client.post(
        "/api/categories/createcategory/", json={"name": "  Fresh   Fruit "}, headers=staff_headers
    )
    assert response.status_code == 201
    body = response.get_json()
    assert body["name"] == "Fresh Fruit"
    assert body["slug"] == "fresh-fruit"
    assert body["isActive"] is True

    duplicate = client.post(
        "/api/categories/createcategory/", json={"name": "Fresh Fruit"}, headers=staff_headers
    )
    assert duplicate.status_code == 409
    assert duplicate.get_json() == {"error": "Category already exists"}


def test_list_categories_hides_inactive(client, services, category):
    hidden = services.catalog.create_category("Old Stock")
    services.catalog.set_category_active(hidden["_id"], False)

    response = client.get("/api/categories/listcategories/")
    assert [entry["name"] for entry in response.get_json()] == ["Fresh Fruit"]


def test_retrieve_category_with_active_products(client, make_account, services, category, product):
    retired = services.catalog.create_product(
        {
            "name": "Old Pear",
            "price": 1.0,
            "stock_quantity": 1,
            "category_id": category["_id"],
        }
    )
    services.catalog.set_product_active(retired["_id"], False)
    account = make_account()

    response = client.get("/api/categories/retrievecategory/fresh-fruit", headers=account["headers"])
    assert response.status_code == 200
    assert [entry["name"] for entry in response.get_json()["products"]] == ["Green Apple"]

    missing = client.get("/api/categories/retrievecategory/nope", headers=account["headers"])
    assert missing.status_code == 404


def test_update_category_regenerates_slug(client, staff_headers, services, category):
    services.catalog.create_category("Vegetables")

    conflict = client.put(
        category_path("updatecategory", category), json={"name": "Vegetables"}, headers=staff_headers
    )
    assert conflict.status_code == 409
    assert conflict.get_json() == {"error": "Category name already in use"}

    response = client.put(
        category_path("updatecategory", category),
        json={"name": "Tropical Fruit", "is_active": False},
        headers=staff_headers,
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body["slug"] == "tropical-fruit"
    assert body["isActive"] is True


def test_update_category_slug_must_match(client, staff_headers, category):
    response = client.put(
        f"/api/categories/updatecategory/wrong-slug/{category['_id']}",
        json={"name": "Anything"},
        headers=staff_headers,
    )
    assert response.status_code == 404
    assert response.get_json() == {"error": "Category not found"}


def test_category_soft_delete_and_reactivate(client, staff_headers, services, category):
    response = client.delete(category_path("deletecategory", category), headers=staff_headers)
    assert response.status_code == 200
    assert response.get_json() == {"message": "Category deactivated successfully"}
    assert services.catalog.get_category(category["_id"]) is None

    again = client.patch(category_path("deletecategory", category), headers=staff_headers)
    assert again.status_code == 404
    assert again.get_json() == {"error": "Active category not found"}

    activated = client.patch(category_path("activatecategory", category), headers=staff_headers)
    assert activated.status_code == 200
    assert services.catalog.get_category(category["_id"])["is_active"] is True

    twice = client.patch(category_path("activatecategory", category), headers=staff_headers)
    assert twice.status_code == 404


def test_create_product(client, staff_headers, category):
    payload = {
        "name": "Red Apple",
        "description": "Sweet",
        "price": 3.456,
        "stock_quantity": 4,
        "category_id": str(category["_id"]),
    }
    response = client.post("/api/products/createproduct/", json=payload, headers=staff_headers)
    assert response.status_code == 201
    body = response.get_json()
    assert body["slug"] == "red-apple"
    assert body["price"] == 3.46
    assert body["category"] == "Fresh Fruit"

    duplicate = client.post("/api/products/createproduct/", json=payload, headers=staff_headers)
    assert duplicate.status_code == 409


def test_create_product_needs_active_category(client, staff_headers, services, category):
    services.catalog.set_category_active(category["_id"], False)
    response = client.post(
        "/api/products/createproduct/",
        json={"name": "Kiwi", "price": 1, "stock_quantity": 1, "category_id": str(category["_id"])},
        headers=staff_headers,
    )
    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid category ID or category is inactive"}


def test_create_product_rejects_negative_stock(client, staff_headers, category):
    response = client.post(
        "/api/products/createproduct/",
        json={"name": "Kiwi", "price": 1, "stock_quantity": -1, "category_id": str(category["_id"])},
        headers=staff_headers,
    )
    assert response.status_code == 400
    assert response.get_json()["errors"][0]["field"] == "stock_quantity"


def test_public_product_listings(client, services, category, product):
    other = services.catalog.create_category("Bakery")
    services.catalog.create_product(
        {"name": "Rye Bread", "price": 2.0, "stock_quantity": 3, "category_id": other["_id"]}
    )
    services.catalog.set_category_active(other["_id"], False)

    listed = client.get("/api/products/listproducts/").get_json()
    assert {entry["name"] for entry in listed} == {"Green Apple", "Rye Bread"}

    grouped = client.get("/api/products/productscategories/").get_json()
    assert [(entry["name"], len(entry["products"])) for entry in grouped] == [("Fresh Fruit", 1)]

    by_category = client.get("/api/products/productscategory/fresh-fruit/").get_json()
    assert [entry["name"] for entry in by_category] == ["Green Apple"]
    assert client.get("/api/products/productscategory/bakery/").status_code == 404

    detail = client.get("/api/products/retrieveproduct/green-apple/")
    assert detail.status_code == 200
    assert detail.get_json()["category"] == "Fresh Fruit"

    hidden = client.get("/api/products/retrieveproduct/rye-bread/")
    assert hidden.status_code == 404
    assert hidden.get_json() == {"error": "Product not found or inactive"}


def test_partial_and_full_product_update(client, staff_headers, services, category, product):
    patched = client.patch(
        product_path("updateproduct", product), json={"price": 9.99}, headers=staff_headers
    )
    assert patched.status_code == 200
    assert patched.get_json()["price"] == 9.99
    assert patched.get_json()["name"] == "Green Apple"

    incomplete = client.put(
        product_path("updateproduct", product), json={"price": 9.99}, headers=staff_headers
    )
    assert incomplete.status_code == 400

    renamed = client.put(
        product_path("updateproduct", product),
        json={
            "name": "Granny Smith",
            "description": "Tart",
            "price": 4,
            "stock_quantity": 20,
            "category_id": str(category["_id"]),
        },
        headers=staff_headers,
    )
    assert renamed.status_code == 200
    assert renamed.get_json()["slug"] == "granny-smith"

    stale = client.patch(
        product_path("updateproduct", product), json={"price": 1}, headers=staff_headers
    )
    assert stale.status_code == 404


def test_product_update_conflicts(client, staff_headers, services, category, product):
    services.catalog.create_product(
        {"name": "Banana", "price": 1.0, "stock_quantity": 1, "category_id": category["_id"]}
    )
    response = client.patch(
        product_path("updateproduct", product), json={"name": "Banana"}, headers=staff_headers
    )
    assert response.status_code == 409
    assert response.get_json() == {"error": "Product name already in use"}

    bad_category = client.patch(
        product_path("updateproduct", product),
        json={"category_id": "64b7f0c2a1b2c3d4e5f60718"},
        headers=staff_headers,
    )
    assert bad_category.status_code == 400


def test_product_soft_delete_and_toggle(client, staff_headers, services, product):
    deleted = client.delete(product_path("deleteproduct", product), headers=staff_headers)
    assert deleted.status_code == 200
    assert services.catalog.get_product(product["_id"]) is None
    assert services.database.products.count_documents({}) == 1

    deactivate = client.patch(product_path("deactivateproduct", product), headers=staff_headers)
    assert deactivate.status_code == 404
    assert deactivate.get_json() == {"error": "Active product not found"}

    activate = client.patch(product_path("activateproduct", product), headers=staff_headers)
    assert activate.status_code == 200
    assert activate.get_json() == {"message": "Product activated successfully"}

    deactivate = client.patch(product_path("deactivateproduct", product), headers=staff_headers)
    assert deactivate.status_code == 200


def test_admin_counts_as_staff(client, admin, category):
    response = client.post(
        "/api/products/createproduct/",
        json={"name": "Plum", "price": 1, "stock_quantity": 1, "category_id": str(category["_id"])},
        headers=admin["headers"],
    )
    assert response.status_code == 201
