"""Admin catalog route tests — products, bulk publishing, categories and add-ons."""

import uuid


async def test_create_product_derives_handle(client, admin_headers):
    response = await client.post(
        "/api/v1/admin/products",
        json={
            "title": "Jalapeño Cheddar Sausage",
            "description": "<p>Smoked <b>daily</b></p>",
            "variants": [{"title": "Link", "sku": "JCS-1", "price_cents": 650, "inventory_quantity": 40}],
        },
        headers=admin_headers,
    )
    assert response.status_code == 201
    product = response.json()["product"]
    assert product["handle"] == "jalapeno-cheddar-sausage"
    assert product["status"] == "draft"
    assert product["variants"][0]["sku"] == "JCS-1"


async def test_duplicate_handle_is_conflict(client, admin_headers, seed_product):
    response = await client.post(
        "/api/v1/admin/products",
        json={"title": "Brisket Plate"},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "RESOURCE_CONFLICT"


async def test_bulk_publish_makes_products_visible(client, admin_headers):
    created = await client.post(
        "/api/v1/admin/products", json={"title": "Pulled Pork"}, headers=admin_headers,
    )
    product_id = created.json()["product"]["id"]
    assert (await client.get("/api/v1/store/products/pulled-pork")).status_code == 404

    missing = str(uuid.uuid4())
    response = await client.post(
        "/api/v1/admin/products/bulk",
        json={"action": "publish", "product_ids": [product_id, missing]},
        headers=admin_headers,
    )
    assert response.json()["processed"] == 1
    assert response.json()["failed"] == 1
    assert (await client.get("/api/v1/store/products/pulled-pork")).status_code == 200


async def test_category_tree(client, admin_headers):
    parent = await client.post(
        "/api/v1/admin/categories", json={"name": "Meats"}, headers=admin_headers,
    )
    parent_id = parent.json()["category"]["id"]
    await client.post(
        "/api/v1/admin/categories",
        json={"name": "Beef", "parent_id": parent_id},
        headers=admin_headers,
    )

    response = await client.get("/api/v1/store/categories")
    tree = response.json()["tree"]
    assert [node["handle"] for node in tree] == ["meats"]
    assert [child["handle"] for child in tree[0]["children"]] == ["beef"]


async def test_deleting_category_keeps_its_products(client, admin_headers):
    category = await client.post(
        "/api/v1/admin/categories", json={"name": "Sauces"}, headers=admin_headers,
    )
    category_id = category.json()["category"]["id"]
    created = await client.post(
        "/api/v1/admin/products",
        json={"title": "Carolina Gold", "category_ids": [category_id]},
        headers=admin_headers,
    )
    product_id = created.json()["product"]["id"]
    assert [c["id"] for c in created.json()["product"]["categories"]] == [category_id]

    deleted = await client.delete(f"/api/v1/admin/categories/{category_id}", headers=admin_headers)
    assert deleted.status_code == 200
    product = await client.get(f"/api/v1/admin/products/{product_id}", headers=admin_headers)
    assert product.status_code == 200
    assert product.json()["product"]["categories"] == []


async def test_addon_management(client, admin_headers):
    created = await client.post(
        "/api/v1/admin/addons",
        json={"name": "Extra Sauce Gallon", "price_cents": 1200, "category": "sauces"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    addon_id = created.json()["addon"]["id"]

    await client.patch(
        f"/api/v1/admin/addons/{addon_id}", json={"is_active": False}, headers=admin_headers,
    )
    public = await client.get("/api/v1/catering/addons")
    assert public.json()["addons"] == []
    admin = await client.get("/api/v1/admin/addons", headers=admin_headers)
    assert [a["name"] for a in admin.json()["addons"]] == ["Extra Sauce Gallon"]
