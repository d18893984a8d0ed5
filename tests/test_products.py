# tests/test_products.py

"""
Integration tests for the /products endpoints.
Requests go through the FastAPI application with a TestClient; the database
is inspected directly through a separate session.
"""

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import shop_service.catalog
import shop_service.main
import shop_service.product_writer
from shop_service.errors import PersistenceError
from shop_service.models import Product, ProductAttribute, ProductImage
from shop_service.uploads import UPLOAD_DIR


def _row_counts(db: Session):
    return (
        db.query(Product).count(),
        db.query(ProductAttribute).count(),
        db.query(ProductImage).count(),
    )


def _create(client: TestClient, files=None, **fields):
    return client.post("/products", data=fields, files=files)


def test_list_products_empty(client: TestClient):
    response = client.get("/products")
    assert response.status_code == 200
    assert response.json() == {"success": True, "data": []}


def test_create_product_success(client: TestClient, db_session_for_test: Session):
    response = _create(
        client,
        name="Geometry Box",
        slug="geometry-box",
        shortDescription="Compass and dividers",
        description="A full geometry set for school",
        price="149.99",
        stockQuantity="25",
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Product added successfully"
    product_id = body["data"]["productId"]
    assert isinstance(product_id, int)

    product = db_session_for_test.get(Product, product_id)
    assert product is not None
    assert product.slug == "geometry-box"
    assert product.stock_quantity == 25


def test_create_without_attributes_or_images(client: TestClient, db_session_for_test: Session):
    response = _create(client, name="Plain Product")
    assert response.status_code == 201
    assert _row_counts(db_session_for_test) == (1, 0, 0)


def test_create_with_mixed_attributes(client: TestClient, db_session_for_test: Session, attribute_ids):
    response = _create(client, name="Backpack", selectedAttributes="Green, Teal, Large")
    assert response.status_code == 201

    product_id = response.json()["data"]["productId"]
    linked = sorted(
        row.attribute_id
        for row in db_session_for_test.query(ProductAttribute).filter(ProductAttribute.product_id == product_id)
    )
    assert linked == sorted([attribute_ids["Green"], attribute_ids["Large"]])


def test_create_with_malformed_attribute_json(client: TestClient, db_session_for_test: Session):
    response = _create(client, name="Bad Attrs", selectedAttributes='["Green",')
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["message"] == "Invalid selectedAttributes"
    assert _row_counts(db_session_for_test) == (0, 0, 0)


def test_create_with_negative_price(client: TestClient, db_session_for_test: Session):
    response = _create(client, name="Bad Price", price="-5")
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid product data"
    assert "price" in response.json()["error"]
    assert _row_counts(db_session_for_test) == (0, 0, 0)


def test_create_with_uploaded_images(client: TestClient):
    files = [
        ("images", ("front.png", b"\x89PNG-front", "image/png")),
        ("images", ("back.JPG", b"\xff\xd8-back", "image/jpeg")),
    ]
    response = _create(client, files=files, name="Lunch Box")
    assert response.status_code == 201
    product_id = response.json()["data"]["productId"]

    images = client.get(f"/products/{product_id}").json()["data"]["images"]
    assert len(images) == 2
    assert images[0].endswith(".png")
    assert images[1].endswith(".jpg")
    assert all(os.path.exists(path) for path in images)


def test_create_rolls_back_when_image_insert_fails(
    client: TestClient, db_session_for_test: Session, attribute_ids, monkeypatch
):
    monkeypatch.setattr(shop_service.main, "save_uploads", lambda files: ["uploads/ok.png", None])

    response = _create(client, name="Doomed", selectedAttributes='["Green","Large"]')

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Error adding product"
    assert body["error"]
    assert _row_counts(db_session_for_test) == (0, 0, 0)


def test_list_products_with_data(client: TestClient, category):
    _create(client, name="Crayons", price="3.5", categoryId=str(category.id))
    _create(client, name="Markers")

    response = client.get("/products")
    assert response.status_code == 200
    data = response.json()["data"]
    assert [p["name"] for p in data] == ["Crayons", "Markers"]
    assert data[0]["category_name"] == "Stationery"
    assert data[1]["category_name"] is None
    assert data[0]["images"] == []
    assert data[0]["price"] == 3.5


def test_get_product_success(client: TestClient, category):
    product_id = _create(client, name="Scissors", price="12", categoryId=str(category.id)).json()["data"]["productId"]

    response = client.get(f"/products/{product_id}")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == product_id
    assert data["name"] == "Scissors"
    assert data["category_name"] == "Stationery"
    assert data["images"] == []
    assert isinstance(data["price"], float)
    assert data["price"] == 12.0


def test_get_product_invalid_id(client: TestClient):
    response = client.get("/products/abc")
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid product ID"}


def test_get_product_not_found(client: TestClient):
    response = client.get("/products/999999")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Product not found"}


def test_update_product_partial(client: TestClient, attribute_ids):
    product_id = _create(client, name="Original", price="10", selectedAttributes="Green").json()["data"]["productId"]

    response = client.put(f"/products/{product_id}", data={"name": "Renamed", "selectedAttributes": "Red,Small"})
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Product updated successfully",
        "data": {"productId": product_id},
    }

    data = client.get(f"/products/{product_id}").json()["data"]
    assert data["name"] == "Renamed"
    assert data["price"] == 10.0
    assert data["attribute"] == "Red,Small"


def test_update_product_not_found(client: TestClient):
    response = client.put("/products/999999", data={"name": "Nobody"})
    assert response.status_code == 404
    assert response.json()["message"] == "Product not found"


def test_update_product_invalid_id(client: TestClient):
    response = client.put("/products/abc", data={"name": "Nobody"})
    assert response.status_code == 400


def test_delete_product_success(client: TestClient, db_session_for_test: Session, attribute_ids):
    product_id = _create(client, name="Temporary", selectedAttributes="Green").json()["data"]["productId"]

    response = client.delete(f"/products/{product_id}")
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Product deleted successfully"}

    assert client.get(f"/products/{product_id}").status_code == 404
    assert _row_counts(db_session_for_test) == (0, 0, 0)


def test_delete_product_not_found(client: TestClient):
    response = client.delete("/products/999999")
    assert response.status_code == 404


def test_get_product_id_beyond_integer_range(client: TestClient):
    response = client.get("/products/99999999999999999999")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Product not found"}


@pytest.mark.parametrize("raw_id", ["1_0", "-1", "+5", "٣", "1e3"])
def test_get_product_rejects_non_decimal_ids(client: TestClient, raw_id):
    response = client.get(f"/products/{raw_id}")
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid product ID"}


def test_create_with_oversized_category_id(client: TestClient, db_session_for_test: Session):
    response = _create(client, name="Huge Category", categoryId="99999999999999999999")
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid product data"
    assert "category_id" in response.json()["error"]
    assert _row_counts(db_session_for_test) == (0, 0, 0)


def test_update_with_oversized_stock_quantity(client: TestClient):
    product_id = _create(client, name="Folder").json()["data"]["productId"]
    response = client.put(f"/products/{product_id}", data={"stockQuantity": "99999999999999999999"})
    assert response.status_code == 400
    assert "stock_quantity" in response.json()["error"]


def test_unexpected_error_returns_json_envelope(monkeypatch):
    def broken_listing(db):
        raise RuntimeError("listing exploded")

    monkeypatch.setattr(shop_service.catalog, "list_products", broken_listing)
    with TestClient(shop_service.main.app, raise_server_exceptions=False) as test_client:
        response = test_client.get("/products")

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error"}


def test_failed_create_discards_uploaded_files(client: TestClient, monkeypatch):
    before = set(os.listdir(UPLOAD_DIR))

    def failing_create(db, product, selected_attributes=None, image_paths=()):
        assert image_paths and all(os.path.exists(path) for path in image_paths)
        raise PersistenceError("Error adding product", error="simulated failure")

    monkeypatch.setattr(shop_service.product_writer, "create_product", failing_create)
    files = [("images", ("cover.png", b"\x89PNG-cover", "image/png"))]
    response = _create(client, files=files, name="Never Stored")

    assert response.status_code == 500
    assert response.json()["message"] == "Error adding product"
    assert set(os.listdir(UPLOAD_DIR)) == before


def test_failed_update_discards_uploaded_files(client: TestClient):
    before = set(os.listdir(UPLOAD_DIR))

    files = [("images", ("extra.png", b"\x89PNG-extra", "image/png"))]
    response = client.put("/products/999999", data={"name": "Nobody"}, files=files)

    assert response.status_code == 404
    assert set(os.listdir(UPLOAD_DIR)) == before
