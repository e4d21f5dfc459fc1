"""
Parcel Management API Endpoints.

CRUD for parcels plus status changes, courier assignment and label
download. Every change to status or courier goes through the parcel
lifecycle manager, which records the history.
"""

from fastapi import APIRouter, Depends, Query, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from parceltrack.app.core.config import settings
from parceltrack.app.core.dependencies import get_current_user
from parceltrack.app.db.session import get_db
from parceltrack.app.schemas.parcel import (
    ParcelCreate, ParcelUpdate, ParcelStatusUpdate, CourierAssignment,
    ParcelListItem, ParcelListResponse, ParcelDetailResponse, ParcelChangeResponse,
    ParcelHistoryResponse, parcel_detail
)
from parceltrack.app.services import entity_store, parcel_lifecycle
from parceltrack.app.services.labels import render_label_pdf, label_filename

router = APIRouter(prefix="/parcels", tags=["Parcels"])


async def load_parcel_detail(db: AsyncSession, parcel_id: int) -> ParcelDetailResponse:
    """Parcel with courier, customer and its most recent history entries."""
    parcel = await entity_store.require_parcel(db, parcel_id)
    history = await entity_store.recent_history(db, parcel_id, settings.history_display_limit)
    return parcel_detail(parcel, history)


async def change_response(
    db: AsyncSession,
    result: parcel_lifecycle.LifecycleResult,
    changed_message: str,
    unchanged_message: str
) -> ParcelChangeResponse:
    entry = result.history_entry
    return ParcelChangeResponse(
        changed=result.changed,
        message=changed_message if result.changed else unchanged_message,
        parcel=await load_parcel_detail(db, result.parcel.id),
        history_entry=ParcelHistoryResponse.model_validate(entry) if entry is not None else None
    )


@router.get("", response_model=ParcelListResponse)
async def list_parcels(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List parcels, newest first, with courier and customer.
    """
    parcels, total = await entity_store.list_parcels(db, page, page_size)
    
    return ParcelListResponse(
        parcels=[ParcelListItem.model_validate(p) for p in parcels],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("", response_model=ParcelDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_parcel(
    parcel_data: ParcelCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a parcel.
    
    The tracking number is generated; status defaults to pending.
    
    Validates:
    - Required sender/recipient name and address
    - Referenced courier and customer exist
    """
    parcel = await parcel_lifecycle.create_parcel(db, parcel_data, acting_user_id=current_user["user_id"])
    return await load_parcel_detail(db, parcel.id)


@router.get("/{parcel_id}", response_model=ParcelDetailResponse)
async def get_parcel(
    parcel_id: int = Path(..., description="Parcel ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get a parcel with courier, customer and most recent history.
    """
    return await load_parcel_detail(db, parcel_id)


@router.put("/{parcel_id}", response_model=ParcelChangeResponse)
async def update_parcel(
    parcel_id: int = Path(..., description="Parcel ID"),
    parcel_data: ParcelUpdate = ...,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Update all editable parcel fields.
    
    A history entry is recorded only when the status changes.
    """
    parcel = await entity_store.require_parcel(db, parcel_id, with_relations=False)
    result = await parcel_lifecycle.update_parcel(
        db, parcel, parcel_data, acting_user_id=current_user["user_id"]
    )
    
    return await change_response(
        db, result,
        changed_message="Parcel updated successfully.",
        unchanged_message="Parcel updated successfully. Status unchanged."
    )


@router.put("/{parcel_id}/status", response_model=ParcelChangeResponse)
async def update_parcel_status(
    parcel_id: int = Path(..., description="Parcel ID"),
    status_data: ParcelStatusUpdate = ...,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Change only the parcel status.
    
    Submitting the current status changes nothing and reports changed=false.
    """
    parcel = await entity_store.require_parcel(db, parcel_id, with_relations=False)
    result = await parcel_lifecycle.update_status(
        db, parcel, status_data.status,
        acting_user_id=current_user["user_id"],
        note=status_data.history_note
    )
    
    return await change_response(
        db, result,
        changed_message="Parcel status updated successfully.",
        unchanged_message="Status unchanged."
    )


@router.put("/{parcel_id}/courier", response_model=ParcelChangeResponse)
async def assign_courier(
    parcel_id: int = Path(..., description="Parcel ID"),
    assignment: CourierAssignment = ...,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Assign, change or clear (courier_id=null) the parcel's courier.
    """
    parcel = await entity_store.require_parcel(db, parcel_id, with_relations=False)
    result = await parcel_lifecycle.assign_courier(
        db, parcel, assignment.courier_id, acting_user_id=current_user["user_id"]
    )
    
    return await change_response(
        db, result,
        changed_message="Courier assigned successfully.",
        unchanged_message="No courier change detected."
    )


@router.delete("/{parcel_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_parcel(
    parcel_id: int = Path(..., description="Parcel ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a parcel and its history.
    """
    parcel = await entity_store.require_parcel(db, parcel_id, with_relations=False, with_history=True)
    await entity_store.delete_parcel(db, parcel)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{parcel_id}/label", response_class=Response)
async def download_label(
    parcel_id: int = Path(..., description="Parcel ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Download the parcel's shipping label as a PDF.
    """
    parcel = await entity_store.require_parcel(db, parcel_id, with_relations=False)
    pdf = render_label_pdf(parcel)
    
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{label_filename(parcel)}"'}
    )
