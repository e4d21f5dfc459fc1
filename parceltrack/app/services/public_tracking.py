"""
Public tracking lookup.

Read-only projection of a parcel for unauthenticated callers. Sender and
recipient details and the history are never exposed.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from parceltrack.app.schemas.parcel import PublicTrackingResponse
from parceltrack.app.services.entity_store import get_parcel_by_tracking_number


async def lookup_tracking_number(db: AsyncSession, tracking_number: str) -> Optional[PublicTrackingResponse]:
    """
    Find a parcel by tracking number.
    
    Returns:
        The reduced public view, or None when no parcel matches
    """
    tracking_number = (tracking_number or "").strip()
    if not tracking_number:
        return None
    
    parcel = await get_parcel_by_tracking_number(db, tracking_number)
    if parcel is None:
        return None
    
    return PublicTrackingResponse.model_validate(parcel)
