"""
Service-level tests for the parcel lifecycle manager.

Covers history recording rules, no-op detection, courier assignment notes
and field/reference validation.
"""

import pytest
from decimal import Decimal
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError

from parceltrack.app.core.exceptions import FieldValidationError, ReferencedEntityNotFoundError
from parceltrack.app.models.parcel import Parcel
from parceltrack.app.models.parcel_enums import ParcelStatus
from parceltrack.app.models.parcel_history import ParcelHistory
from parceltrack.app.services import parcel_lifecycle, entity_store


async def history_rows(db, parcel_id):
    result = await db.execute(
        select(ParcelHistory)
        .where(ParcelHistory.parcel_id == parcel_id)
        .order_by(ParcelHistory.id)
    )
    return list(result.scalars().all())


async def history_count(db, parcel_id):
    result = await db.execute(
        select(func.count()).select_from(ParcelHistory).where(ParcelHistory.parcel_id == parcel_id)
    )
    return result.scalar_one()


def update_fields(parcel, **overrides):
    fields = {
        "sender_name": parcel.sender_name,
        "sender_address": parcel.sender_address,
        "recipient_name": parcel.recipient_name,
        "recipient_address": parcel.recipient_address,
        "recipient_phone": parcel.recipient_phone,
        "weight": parcel.weight,
        "dimensions": parcel.dimensions,
        "notes": parcel.notes,
        "courier_id": parcel.courier_id,
        "customer_id": parcel.customer_id,
        "status": parcel.status,
    }
    fields.update(overrides)
    return fields


@pytest.fixture
async def parcel(db_session, parcel_payload, warehouse_user):
    return await parcel_lifecycle.create_parcel(db_session, parcel_payload, warehouse_user.id)


async def test_create_defaults_to_pending_without_history(db_session, parcel):
    assert parcel.status == ParcelStatus.PENDING
    assert parcel.tracking_number.startswith("PCL")
    assert parcel.weight == Decimal("2.50")
    assert await history_count(db_session, parcel.id) == 0


async def test_create_rejects_missing_required_fields(db_session, parcel_payload):
    payload = dict(parcel_payload, recipient_name="   ", sender_address=None)

    with pytest.raises(FieldValidationError) as exc_info:
        await parcel_lifecycle.create_parcel(db_session, payload)

    assert "recipient_name" in exc_info.value.field_errors
    assert "sender_address" in exc_info.value.field_errors


async def test_create_rejects_unknown_courier(db_session, parcel_payload):
    with pytest.raises(ReferencedEntityNotFoundError) as exc_info:
        await parcel_lifecycle.create_parcel(db_session, dict(parcel_payload, courier_id=9999))

    assert exc_info.value.field == "courier_id"


async def test_create_rejects_unknown_customer(db_session, parcel_payload):
    with pytest.raises(ReferencedEntityNotFoundError) as exc_info:
        await parcel_lifecycle.create_parcel(db_session, dict(parcel_payload, customer_id=9999))

    assert exc_info.value.field == "customer_id"


async def test_status_progression_records_each_transition(db_session, parcel, warehouse_user, courier_user):
    first = await parcel_lifecycle.update_status(
        db_session, parcel, ParcelStatus.IN_TRANSIT, warehouse_user.id, note="Left depot"
    )
    second = await parcel_lifecycle.update_status(
        db_session, parcel, "delivered", courier_user.id
    )

    assert first.changed and second.changed
    rows = await history_rows(db_session, parcel.id)
    assert [(r.old_status, r.new_status) for r in rows] == [
        (ParcelStatus.PENDING, ParcelStatus.IN_TRANSIT),
        (ParcelStatus.IN_TRANSIT, ParcelStatus.DELIVERED),
    ]
    assert rows[0].user_id == warehouse_user.id
    assert rows[0].notes == "Left depot"
    assert rows[1].user_id == courier_user.id
    assert parcel.status == ParcelStatus.DELIVERED


async def test_unchanged_status_is_noop(db_session, parcel, warehouse_user):
    result = await parcel_lifecycle.update_status(db_session, parcel, ParcelStatus.PENDING, warehouse_user.id)

    assert result.changed is False
    assert result.history_entry is None
    assert await history_count(db_session, parcel.id) == 0


async def test_any_status_may_follow_any_other(db_session, parcel, warehouse_user):
    await parcel_lifecycle.update_status(db_session, parcel, ParcelStatus.DELIVERED, warehouse_user.id)
    result = await parcel_lifecycle.update_status(db_session, parcel, ParcelStatus.PENDING, warehouse_user.id)

    assert result.changed
    assert parcel.status == ParcelStatus.PENDING


async def test_invalid_status_raises_field_error(db_session, parcel, warehouse_user):
    with pytest.raises(FieldValidationError) as exc_info:
        await parcel_lifecycle.update_status(db_session, parcel, "lost_in_space", warehouse_user.id)

    assert "status" in exc_info.value.field_errors


async def test_update_without_status_change_writes_no_history(db_session, parcel, warehouse_user):
    result = await parcel_lifecycle.update_parcel(
        db_session, parcel, update_fields(parcel, notes="Leave at the door", weight="3.10"), warehouse_user.id
    )

    assert result.changed is False
    assert parcel.notes == "Leave at the door"
    assert parcel.weight == Decimal("3.10")
    assert await history_count(db_session, parcel.id) == 0


async def test_update_with_status_change_writes_one_row(db_session, parcel, warehouse_user):
    tracking_number = parcel.tracking_number

    result = await parcel_lifecycle.update_parcel(
        db_session,
        parcel,
        update_fields(parcel, status="out_for_delivery", history_note="Loaded on van"),
        warehouse_user.id,
    )

    assert result.changed
    rows = await history_rows(db_session, parcel.id)
    assert len(rows) == 1
    assert rows[0].old_status == ParcelStatus.PENDING
    assert rows[0].new_status == ParcelStatus.OUT_FOR_DELIVERY
    assert rows[0].notes == "Loaded on van"
    assert parcel.tracking_number == tracking_number


async def test_update_rejects_unknown_customer_and_leaves_parcel(db_session, parcel, warehouse_user):
    with pytest.raises(ReferencedEntityNotFoundError):
        await parcel_lifecycle.update_parcel(
            db_session, parcel, update_fields(parcel, customer_id=4242, status="in_transit"), warehouse_user.id
        )

    stored = await entity_store.get_parcel(db_session, parcel.id)
    assert stored.status == ParcelStatus.PENDING
    assert await history_count(db_session, parcel.id) == 0


async def test_assign_courier_records_note(db_session, parcel, courier_user, warehouse_user):
    result = await parcel_lifecycle.assign_courier(db_session, parcel, courier_user.id, warehouse_user.id)

    assert result.changed
    entry = result.history_entry
    assert entry.old_status == ParcelStatus.PENDING
    assert entry.new_status == ParcelStatus.PENDING
    assert entry.notes == "Courier changed from None to Carl Courier"
    assert entry.user_id == warehouse_user.id
    assert parcel.courier_id == courier_user.id


async def test_assign_same_courier_twice_writes_one_row(db_session, parcel, courier_user, warehouse_user):
    await parcel_lifecycle.assign_courier(db_session, parcel, courier_user.id, warehouse_user.id)
    second = await parcel_lifecycle.assign_courier(db_session, parcel, courier_user.id, warehouse_user.id)

    assert second.changed is False
    assert await history_count(db_session, parcel.id) == 1


async def test_unassign_courier_names_none(db_session, parcel, courier_user, warehouse_user):
    await parcel_lifecycle.assign_courier(db_session, parcel, courier_user.id, warehouse_user.id)
    result = await parcel_lifecycle.assign_courier(db_session, parcel, None, warehouse_user.id)

    assert result.history_entry.notes == "Courier changed from Carl Courier to None"
    assert parcel.courier_id is None


async def test_assign_unknown_courier_raises(db_session, parcel, warehouse_user):
    with pytest.raises(ReferencedEntityNotFoundError) as exc_info:
        await parcel_lifecycle.assign_courier(db_session, parcel, 9999, warehouse_user.id)

    assert exc_info.value.field == "courier_id"
    assert await history_count(db_session, parcel.id) == 0


async def test_create_rounds_weight_to_column_precision(db_session, parcel_payload):
    parcel = await parcel_lifecycle.create_parcel(db_session, dict(parcel_payload, weight="0.125"))

    assert parcel.weight == Decimal("0.13")


async def test_create_rejects_weight_above_column_range(db_session, parcel_payload):
    with pytest.raises(FieldValidationError) as exc_info:
        await parcel_lifecycle.create_parcel(db_session, dict(parcel_payload, weight="1000000"))

    assert "weight" in exc_info.value.field_errors


async def test_create_reports_taken_tracking_number(db_session, parcel, parcel_payload, monkeypatch):
    async def taken_number(db):
        return parcel.tracking_number

    monkeypatch.setattr(parcel_lifecycle, "generate_tracking_number", taken_number)

    with pytest.raises(FieldValidationError) as exc_info:
        await parcel_lifecycle.create_parcel(db_session, parcel_payload)

    assert "tracking_number" in exc_info.value.field_errors
    count = await db_session.execute(select(func.count()).select_from(Parcel))
    assert count.scalar_one() == 1


async def test_failed_commit_keeps_status_and_history_together(db_session, parcel, warehouse_user, monkeypatch):
    async def failing_commit():
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with pytest.raises(SQLAlchemyError):
        await parcel_lifecycle.update_status(db_session, parcel, ParcelStatus.IN_TRANSIT, warehouse_user.id)

    monkeypatch.undo()
    stored = await entity_store.get_parcel(db_session, parcel.id)
    assert stored.status == ParcelStatus.PENDING
    assert await history_count(db_session, parcel.id) == 0
