"""
Parcel database model.

A parcel moves through the status enum; every status change (and every
courier change) is recorded in ParcelHistory.
"""

from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from parceltrack.app.db.session import Base
from parceltrack.app.models.parcel_enums import ParcelStatus


def parcel_status_enum() -> Enum:
    """Status column type, stored as the lowercase enum values."""
    return Enum(
        ParcelStatus,
        name="parcel_status",
        native_enum=False,
        length=32,
        values_callable=lambda enum_cls: [member.value for member in enum_cls],
    )


class Parcel(Base):
    """
    Parcel model.
    
    tracking_number is assigned once at creation and never changes.
    """
    __tablename__ = "parcels"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Parcel identification
    tracking_number = Column(String(64), unique=True, nullable=False, index=True)
    
    # Addresses
    sender_name = Column(String(255), nullable=False)
    sender_address = Column(Text, nullable=False)
    recipient_name = Column(String(255), nullable=False)
    recipient_address = Column(Text, nullable=False)
    recipient_phone = Column(String(50), nullable=True)
    
    # Status
    status = Column(
        parcel_status_enum(),
        default=ParcelStatus.PENDING,
        server_default=ParcelStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    
    # Physical properties
    weight = Column(Numeric(8, 2), nullable=True)  # kg
    dimensions = Column(String(100), nullable=True)  # "LxWxH" in cm
    notes = Column(Text, nullable=True)
    
    # Assignment
    courier_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    courier = relationship("User", foreign_keys=[courier_id])
    customer = relationship("Customer", back_populates="parcels")
    history = relationship(
        "ParcelHistory",
        back_populates="parcel",
        order_by="[ParcelHistory.created_at.desc(), ParcelHistory.id.desc()]",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    
    def __repr__(self):
        return f"<Parcel(id={self.id}, tracking='{self.tracking_number}', status='{self.status.value}')>"
