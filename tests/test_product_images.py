import pytest

IMAGE_URL = "https://cdn.example.com/products/green-apple.png"


@pytest.fixture
def image(services, product):
    return services.catalog.create_image(product["_id"], IMAGE_URL)


def test_create_product_image(client, staff, product):
    response = client.post(
        "/api/productimages/createproductimage/",
        json={"image_url": IMAGE_URL, "product_id": str(product["_id"])},
        headers=staff["headers"],
    )
    assert response.status_code == 201
    body = response.get_json()
    assert body["image_url"] == IMAGE_URL
    assert body["product_id"] == str(product["_id"])

    duplicate = client.post(
        "/api/productimages/createproductimage/",
        json={"image_url": IMAGE_URL, "product_id": str(product["_id"])},
        headers=staff["headers"],
    )
    assert duplicate.status_code == 409
    assert duplicate.get_json() == {"error": "Image URL already exists for this product"}


def test_create_image_for_inactive_product(client, staff, services, product):
    services.catalog.set_product_active(product["_id"], False)
    response = client.post(
        "/api/productimages/createproductimage/",
        json={"image_url": IMAGE_URL, "product_id": str(product["_id"])},
        headers=staff["headers"],
    )
    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid product ID or product is inactive"}


def test_create_image_rejects_bad_url(client, staff, product):
    response = client.post(
        "/api/productimages/createproductimage/",
        json={"image_url": "not a url", "product_id": str(product["_id"])},
        headers=staff["headers"],
    )
    assert response.status_code == 400
    assert response.get_json()["errors"][0]["field"] == "image_url"


def test_read_images(client, services, product, image):
    listed = client.get(f"/api/productimages/productimages/{product['_id']}")
    assert [entry["image_url"] for entry in listed.get_json()] == [IMAGE_URL]

    single = client.get(f"/api/productimages/productimage/{image['_id']}")
    assert single.status_code == 200

    services.catalog.set_product_active(product["_id"], False)
    assert client.get(f"/api/productimages/productimages/{product['_id']}").status_code == 404
    hidden = client.get(f"/api/productimages/productimage/{image['_id']}")
    assert hidden.status_code == 404
    assert hidden.get_json() == {"error": "Image not found or product is inactive"}


def test_update_image(client, staff, services, product, image):
    other_url = "https://cdn.example.com/products/green-apple-2.png"
    services.catalog.create_image(product["_id"], other_url)

    conflict = client.put(
        f"/api/productimages/updateproductimage/{image['_id']}",
        json={"image_url": other_url, "product_id": str(product["_id"])},
        headers=staff["headers"],
    )
    assert conflict.status_code == 409

    new_url = "https://cdn.example.com/products/green-apple-3.png"
    response = client.put(
        f"/api/productimages/updateproductimage/{image['_id']}",
        json={"image_url": new_url, "product_id": str(product["_id"])},
        headers=staff["headers"],
    )
    assert response.status_code == 200
    assert response.get_json()["image_url"] == new_url


def test_delete_image(client, staff, services, image):
    response = client.delete(
        f"/api/productimages/deleteproductimage/{image['_id']}", headers=staff["headers"]
    )
    assert response.status_code == 204
    assert services.catalog.get_image(image["_id"]) is None

    missing = client.delete(
        f"/api/productimages/deleteproductimage/{image['_id']}", headers=staff["headers"]
    )
    assert missing.status_code == 404
