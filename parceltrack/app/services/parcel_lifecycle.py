"""
Parcel lifecycle manager.

The single path through which parcels are created and their mutable fields
changed, and the only writer of ParcelHistory. Every operation stages the
parcel change and its optional history row in one session and commits
once, so either both are stored or neither is.

No transition graph is enforced: any status may follow any other.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Type, TypeVar, Union
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from parceltrack.app.core.exceptions import FieldValidationError, ReferencedEntityNotFoundError
from parceltrack.app.models.parcel import Parcel
from parceltrack.app.models.parcel_enums import ParcelStatus
from parceltrack.app.models.parcel_history import ParcelHistory
from parceltrack.app.schemas.parcel import ParcelCreate, ParcelUpdate
from parceltrack.app.services import entity_store
from parceltrack.app.services.tracking import generate_tracking_number

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

NO_COURIER = "None"


@dataclass
class LifecycleResult:
    """Outcome of a lifecycle operation."""
    parcel: Parcel
    changed: bool
    history_entry: Optional[ParcelHistory] = None


def validate_fields(schema: Type[SchemaT], fields: Union[SchemaT, Mapping[str, Any]]) -> SchemaT:
    """
    Validate raw fields against a parcel schema.
    
    Raises:
        FieldValidationError listing every failing field
    """
    if isinstance(fields, schema):
        return fields
    try:
        return schema.model_validate(fields)
    except ValidationError as exc:
        errors = {}
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"]) or "__root__"
            errors.setdefault(field, error["msg"])
        raise FieldValidationError(errors)


def parse_status(value: Union[ParcelStatus, str]) -> ParcelStatus:
    """
    Coerce a status value to ParcelStatus.
    
    Raises:
        FieldValidationError on the status field for unknown values
    """
    try:
        return ParcelStatus(value)
    except ValueError:
        raise FieldValidationError.single("status", "The selected status is invalid.")


async def _commit(db: AsyncSession, *instances) -> None:
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    for instance in instances:
        await db.refresh(instance)


async def create_parcel(
    db: AsyncSession,
    fields: Union[ParcelCreate, Mapping[str, Any]],
    acting_user_id: Optional[int] = None
) -> Parcel:
    """
    Create a parcel with a freshly generated tracking number.
    
    Status defaults to pending. No history row is written on creation.
    
    Raises:
        FieldValidationError: invalid fields, or the tracking number was taken
            by a concurrent insert
        ReferencedEntityNotFoundError: unknown courier or customer
    """
    data = validate_fields(ParcelCreate, fields)
    await entity_store.ensure_references(db, data.courier_id, data.customer_id)
    
    tracking_number = await generate_tracking_number(db)
    parcel = Parcel(tracking_number=tracking_number, **data.model_dump())
    db.add(parcel)
    
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning("Tracking number %s collided on insert", tracking_number)
        raise FieldValidationError.single("tracking_number", "The tracking number has already been taken.")
    except SQLAlchemyError:
        await db.rollback()
        raise
    await db.refresh(parcel)
    
    logger.info("Parcel %s created by user %s", parcel.tracking_number, acting_user_id)
    return parcel


async def update_parcel(
    db: AsyncSession,
    parcel: Parcel,
    new_fields: Union[ParcelUpdate, Mapping[str, Any]],
    acting_user_id: Optional[int],
    history_note: Optional[str] = None
) -> LifecycleResult:
    """
    Replace a parcel's editable fields.
    
    A history row is appended only when the status differs from the stored
    one; other field changes are not recorded. The tracking number is never
    touched.
    
    Args:
        history_note: Note for the history row; falls back to
            new_fields.history_note
    """
    data = validate_fields(ParcelUpdate, new_fields)
    note = history_note if history_note is not None else data.history_note
    await entity_store.ensure_references(db, data.courier_id, data.customer_id)
    
    old_status = parcel.status
    for field, value in data.model_dump(exclude={"history_note"}).items():
        setattr(parcel, field, value)
    
    entry = None
    if old_status != data.status:
        entry = ParcelHistory(
            parcel_id=parcel.id,
            old_status=old_status,
            new_status=data.status,
            user_id=acting_user_id,
            notes=note,
        )
        db.add(entry)
    
    await _commit(db, *(obj for obj in (parcel, entry) if obj is not None))
    
    if entry is not None:
        logger.info(
            "Parcel %s status %s -> %s by user %s",
            parcel.tracking_number, old_status.value, data.status.value, acting_user_id
        )
    return LifecycleResult(parcel=parcel, changed=entry is not None, history_entry=entry)


async def update_status(
    db: AsyncSession,
    parcel: Parcel,
    new_status: Union[ParcelStatus, str],
    acting_user_id: Optional[int],
    note: Optional[str] = None
) -> LifecycleResult:
    """
    Change only the status.
    
    Unchanged status is a no-op: nothing is written and the result reports
    changed=False.
    """
    status = parse_status(new_status)
    old_status = parcel.status
    
    if status == old_status:
        return LifecycleResult(parcel=parcel, changed=False)
    
    parcel.status = status
    entry = ParcelHistory(
        parcel_id=parcel.id,
        old_status=old_status,
        new_status=status,
        user_id=acting_user_id,
        notes=note,
    )
    db.add(entry)
    await _commit(db, parcel, entry)
    
    logger.info(
        "Parcel %s status %s -> %s by user %s",
        parcel.tracking_number, old_status.value, status.value, acting_user_id
    )
    return LifecycleResult(parcel=parcel, changed=True, history_entry=entry)


async def assign_courier(
    db: AsyncSession,
    parcel: Parcel,
    courier_id: Optional[int],
    acting_user_id: Optional[int]
) -> LifecycleResult:
    """
    Assign, change or clear the parcel's courier.
    
    A change is recorded in the status history with old_status and
    new_status both set to the current status and a "Courier changed from X
    to Y" note. Assigning the current courier again is a no-op.
    
    Raises:
        ReferencedEntityNotFoundError: courier_id names no user
    """
    if courier_id == parcel.courier_id:
        return LifecycleResult(parcel=parcel, changed=False)
    
    new_courier = None
    if courier_id is not None:
        new_courier = await entity_store.get_user(db, courier_id)
        if new_courier is None:
            raise ReferencedEntityNotFoundError("courier_id", "courier", courier_id)
    
    old_courier = None
    if parcel.courier_id is not None:
        old_courier = await entity_store.get_user(db, parcel.courier_id)
    
    old_name = old_courier.name if old_courier else NO_COURIER
    new_name = new_courier.name if new_courier else NO_COURIER
    
    parcel.courier_id = courier_id
    entry = ParcelHistory(
        parcel_id=parcel.id,
        old_status=parcel.status,
        new_status=parcel.status,
        user_id=acting_user_id,
        notes=f"Courier changed from {old_name} to {new_name}",
    )
    db.add(entry)
    await _commit(db, parcel, entry)
    
    logger.info(
        "Parcel %s courier %s -> %s by user %s",
        parcel.tracking_number, old_name, new_name, acting_user_id
    )
    return LifecycleResult(parcel=parcel, changed=True, history_entry=entry)
