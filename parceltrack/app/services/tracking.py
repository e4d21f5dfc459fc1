"""
Tracking number generation.

Tracking numbers look like PCL1717171717AB12C: the configured prefix, the
current unix time in seconds and a random uppercase alphanumeric suffix.
"""

import logging
import secrets
import string
import time
from typing import Awaitable, Callable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from parceltrack.app.core.config import settings
from parceltrack.app.services.entity_store import tracking_number_exists

logger = logging.getLogger(__name__)

SUFFIX_ALPHABET = string.ascii_uppercase + string.digits

ExistsCheck = Callable[[AsyncSession, str], Awaitable[bool]]


def random_suffix(length: Optional[int] = None) -> str:
    """Random uppercase alphanumeric string."""
    length = settings.tracking_suffix_length if length is None else length
    return "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(length))


def format_tracking_number(timestamp: Optional[int] = None, suffix: Optional[str] = None) -> str:
    """Build a candidate tracking number (not checked for uniqueness)."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    suffix = random_suffix() if suffix is None else suffix
    return f"{settings.tracking_prefix}{timestamp}{suffix}"


async def generate_tracking_number(
    db: AsyncSession,
    exists_check: ExistsCheck = tracking_number_exists
) -> str:
    """
    Generate a tracking number no existing parcel holds.
    
    Re-rolls until the store reports the candidate as unused. A concurrent
    insert can still take the same value between this check and the caller's
    insert; the unique constraint on parcels.tracking_number catches that.
    """
    while True:
        candidate = format_tracking_number()
        if not await exists_check(db, candidate):
            return candidate
        logger.warning("Tracking number %s already taken, re-rolling", candidate)
