"""
Entity store for customers, users, parcels and parcel history.

Read helpers eager-load related rows in a single read path; delete helpers
clear or cascade references explicitly inside the same transaction.
"""

import logging
from typing import List, Optional, Sequence, Tuple
from sqlalchemy import select, func, update, exists
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from parceltrack.app.core.exceptions import ResourceNotFoundError, ReferencedEntityNotFoundError
from parceltrack.app.models.customer import Customer
from parceltrack.app.models.enums import UserRole
from parceltrack.app.models.parcel import Parcel
from parceltrack.app.models.parcel_history import ParcelHistory
from parceltrack.app.models.user import User

logger = logging.getLogger(__name__)


def _offset(page: int, page_size: int) -> int:
    return (max(page, 1) - 1) * page_size


async def _count(db: AsyncSession, model) -> int:
    result = await db.execute(select(func.count(model.id)))
    return result.scalar() or 0


# Parcels

async def get_parcel(
    db: AsyncSession,
    parcel_id: int,
    with_relations: bool = True,
    with_history: bool = False
) -> Optional[Parcel]:
    """
    Load a parcel by ID.
    
    Args:
        with_relations: Eager-load courier and customer
        with_history: Eager-load the full history (with acting users)
    """
    query = select(Parcel).where(Parcel.id == parcel_id).execution_options(populate_existing=True)
    
    if with_relations:
        query = query.options(selectinload(Parcel.courier), selectinload(Parcel.customer))
    if with_history:
        query = query.options(selectinload(Parcel.history).selectinload(ParcelHistory.user))
    
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def require_parcel(
    db: AsyncSession,
    parcel_id: int,
    with_relations: bool = True,
    with_history: bool = False
) -> Parcel:
    """Like get_parcel, but raises ResourceNotFoundError when missing."""
    parcel = await get_parcel(db, parcel_id, with_relations=with_relations, with_history=with_history)
    if parcel is None:
        raise ResourceNotFoundError("Parcel", parcel_id)
    return parcel


async def list_parcels(db: AsyncSession, page: int, page_size: int) -> Tuple[List[Parcel], int]:
    """Newest parcels first, with courier and customer."""
    total = await _count(db, Parcel)
    
    query = (
        select(Parcel)
        .options(selectinload(Parcel.courier), selectinload(Parcel.customer))
        .order_by(Parcel.created_at.desc(), Parcel.id.desc())
        .offset(_offset(page, page_size))
        .limit(page_size)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def recent_history(db: AsyncSession, parcel_id: int, limit: int) -> List[ParcelHistory]:
    """The most recent history entries of a parcel, newest first."""
    query = (
        select(ParcelHistory)
        .options(selectinload(ParcelHistory.user))
        .where(ParcelHistory.parcel_id == parcel_id)
        .order_by(ParcelHistory.created_at.desc(), ParcelHistory.id.desc())
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def tracking_number_exists(db: AsyncSession, tracking_number: str) -> bool:
    result = await db.execute(select(exists().where(Parcel.tracking_number == tracking_number)))
    return bool(result.scalar())


async def get_parcel_by_tracking_number(db: AsyncSession, tracking_number: str) -> Optional[Parcel]:
    result = await db.execute(select(Parcel).where(Parcel.tracking_number == tracking_number))
    return result.scalar_one_or_none()


async def delete_parcel(db: AsyncSession, parcel: Parcel) -> None:
    """
    Delete a parcel together with its history.
    
    The parcel must have been loaded with with_history=True so the ORM
    cascade removes every history row.
    """
    parcel_id, tracking_number = parcel.id, parcel.tracking_number
    await db.delete(parcel)
    await db.commit()
    logger.info("Parcel %s (%s) deleted", parcel_id, tracking_number)


# Customers

async def get_customer(db: AsyncSession, customer_id: int, with_parcels: bool = False) -> Optional[Customer]:
    query = select(Customer).where(Customer.id == customer_id).execution_options(populate_existing=True)
    if with_parcels:
        query = query.options(selectinload(Customer.parcels))
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def require_customer(db: AsyncSession, customer_id: int, with_parcels: bool = False) -> Customer:
    customer = await get_customer(db, customer_id, with_parcels=with_parcels)
    if customer is None:
        raise ResourceNotFoundError("Customer", customer_id)
    return customer


async def list_customers(db: AsyncSession, page: int, page_size: int) -> Tuple[List[Customer], int]:
    total = await _count(db, Customer)
    query = (
        select(Customer)
        .order_by(Customer.created_at.desc(), Customer.id.desc())
        .offset(_offset(page, page_size))
        .limit(page_size)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def delete_customer(db: AsyncSession, customer: Customer) -> None:
    """Delete a customer; their parcels stay, with the customer reference cleared."""
    customer_id = customer.id
    await db.execute(
        update(Parcel).where(Parcel.customer_id == customer_id).values(customer_id=None)
    )
    await db.delete(customer)
    await db.commit()
    logger.info("Customer %s deleted, parcel references cleared", customer_id)


# Users

async def get_user(db: AsyncSession, user_id: int) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def require_user(db: AsyncSession, user_id: int) -> User:
    user = await get_user(db, user_id)
    if user is None:
        raise ResourceNotFoundError("User", user_id)
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


async def list_users(db: AsyncSession, page: int, page_size: int) -> Tuple[List[User], int]:
    total = await _count(db, User)
    query = (
        select(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset(_offset(page, page_size))
        .limit(page_size)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def list_couriers(db: AsyncSession) -> Sequence[User]:
    """Users eligible for parcel assignment."""
    result = await db.execute(
        select(User).where(User.role == UserRole.COURIER).order_by(User.name, User.id)
    )
    return result.scalars().all()


async def delete_user(db: AsyncSession, user: User) -> None:
    """
    Delete a user.
    
    Parcels assigned to the user lose their courier and history entries lose
    their acting user; neither is deleted.
    """
    user_id = user.id
    await db.execute(update(Parcel).where(Parcel.courier_id == user_id).values(courier_id=None))
    await db.execute(update(ParcelHistory).where(ParcelHistory.user_id == user_id).values(user_id=None))
    await db.delete(user)
    await db.commit()
    logger.info("User %s deleted, parcel and history references cleared", user_id)


# References

async def ensure_references(
    db: AsyncSession,
    courier_id: Optional[int] = None,
    customer_id: Optional[int] = None
) -> None:
    """
    Check that referenced courier and customer rows exist.
    
    Raises:
        ReferencedEntityNotFoundError naming the offending field
    """
    if courier_id is not None and await get_user(db, courier_id) is None:
        raise ReferencedEntityNotFoundError("courier_id", "courier", courier_id)
    
    if customer_id is not None and await get_customer(db, customer_id) is None:
        raise ReferencedEntityNotFoundError("customer_id", "customer", customer_id)
