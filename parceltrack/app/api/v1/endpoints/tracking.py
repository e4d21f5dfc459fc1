"""
Public Parcel Tracking Endpoint.

Unauthenticated lookup by tracking number returning only non-sensitive
fields.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession
from parceltrack.app.core.exceptions import ResourceNotFoundError
from parceltrack.app.db.session import get_db
from parceltrack.app.schemas.parcel import PublicTrackingResponse
from parceltrack.app.services.public_tracking import lookup_tracking_number

router = APIRouter(tags=["Public Tracking"])


@router.get("/track-parcel/{tracking_number}", response_model=PublicTrackingResponse)
async def track_parcel(
    tracking_number: str = Path(..., description="Parcel tracking number"),
    db: AsyncSession = Depends(get_db)
):
    """
    Public tracking lookup.
    
    Returns status, weight, dimensions and timestamps. Sender, recipient and
    history are never included.
    """
    result = await lookup_tracking_number(db, tracking_number)
    if result is None:
        raise ResourceNotFoundError("Parcel")
    return result
