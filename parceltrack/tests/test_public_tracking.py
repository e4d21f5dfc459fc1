"""
Tests for the public tracking lookup.
"""

import pytest

from parceltrack.app.services import parcel_lifecycle
from parceltrack.app.services.public_tracking import lookup_tracking_number

PUBLIC_FIELDS = {"tracking_number", "status", "weight", "dimensions", "created_at", "updated_at"}


@pytest.fixture
async def parcel(db_session, parcel_payload, customer):
    return await parcel_lifecycle.create_parcel(db_session, dict(parcel_payload, customer_id=customer.id))


async def test_track_parcel_without_authentication(client, parcel):
    response = await client.get(f"/track-parcel/{parcel.tracking_number}")

    assert response.status_code == 200
    data = response.json()
    assert set(data) == PUBLIC_FIELDS
    assert data["tracking_number"] == parcel.tracking_number
    assert data["status"] == "pending"


async def test_track_parcel_hides_personal_data(client, parcel):
    body = (await client.get(f"/track-parcel/{parcel.tracking_number}")).text

    for secret in ("Bob Receiver", "42 Elm St", "555-0199", "Fragile", "Acme Ltd"):
        assert secret not in body


async def test_track_parcel_reflects_status(client, db_session, parcel):
    await parcel_lifecycle.update_status(db_session, parcel, "out_for_delivery", None)

    response = await client.get(f"/track-parcel/{parcel.tracking_number}")

    assert response.json()["status"] == "out_for_delivery"


async def test_unknown_tracking_number(client):
    response = await client.get("/track-parcel/PCL0NOPE0")

    assert response.status_code == 404
    body = response.json()
    assert body["error_code"] == "ERR_NOT_FOUND_001"
    assert body["message"] == "Parcel not found"


async def test_lookup_blank_tracking_number(db_session):
    assert await lookup_tracking_number(db_session, "   ") is None


async def test_lookup_matches_exactly(db_session, parcel):
    assert await lookup_tracking_number(db_session, parcel.tracking_number.lower()) is None
    found = await lookup_tracking_number(db_session, f" {parcel.tracking_number} ")
    assert found.tracking_number == parcel.tracking_number


async def test_overlong_tracking_number_is_not_found(client):
    response = await client.get("/track-parcel/" + "X" * 65)

    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"
