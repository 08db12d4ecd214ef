"""Tests for toggling products in a shopper's wishlist."""

import pytest
from bson import ObjectId


@pytest.mark.asyncio
async def test_wishlist_toggle_adds_then_removes(client, shopper, product_factory, mongo_db):
    user_id, headers = shopper
    product_id = str(product_factory())

    added = await client.put("/products/wishlist", json={"prodId": product_id}, headers=headers)

    assert added.status_code == 200
    assert added.json()["id"] == user_id
    assert added.json()["wishlist"] == [product_id]

    removed = await client.put(
        "/products/wishlist", json={"prodId": product_id}, headers=headers
    )

    assert removed.status_code == 200
    assert removed.json()["wishlist"] == []
    assert mongo_db["users"].find_one({"_id": ObjectId(user_id)})["wishlist"] == []


@pytest.mark.asyncio
async def test_wishlist_keeps_other_products(client, shopper, product_factory):
    _, headers = shopper
    first = str(product_factory(slug="first"))
    second = str(product_factory(slug="second"))

    await client.put("/products/wishlist", json={"prodId": first}, headers=headers)
    response = await client.put("/products/wishlist", json={"prodId": second}, headers=headers)

    assert response.json()["wishlist"] == [first, second]


@pytest.mark.asyncio
async def test_wishlist_unknown_user_returns_404(client, make_headers):
    response = await client.put(
        "/products/wishlist",
        json={"prodId": str(ObjectId())},
        headers=make_headers(str(ObjectId())),
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_wishlist_rejects_malformed_product_id(client, shopper):
    _, headers = shopper

    response = await client.put("/products/wishlist", json={"prodId": "xyz"}, headers=headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_wishlist_requires_authentication(client):
    response = await client.put("/products/wishlist", json={"prodId": str(ObjectId())})

    assert response.status_code == 401
