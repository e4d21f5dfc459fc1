"""
Parcel History database model.

Append-only audit trail of status and courier changes.
"""

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from parceltrack.app.db.session import Base
from parceltrack.app.models.parcel import parcel_status_enum


class ParcelHistory(Base):
    """
    One status (or courier) change of a parcel.
    
    Rows are only ever inserted. A courier change is recorded with
    old_status == new_status and a note describing the change.
    """
    __tablename__ = "parcel_histories"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    parcel_id = Column(Integer, ForeignKey("parcels.id", ondelete="CASCADE"), nullable=False, index=True)
    
    old_status = Column(parcel_status_enum(), nullable=True)
    new_status = Column(parcel_status_enum(), nullable=False)
    
    # Acting user (None for system actions)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    notes = Column(Text, nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    
    parcel = relationship("Parcel", back_populates="history")
    user = relationship("User")
    
    def __repr__(self):
        old = self.old_status.value if self.old_status else None
        return f"<ParcelHistory(id={self.id}, parcel_id={self.parcel_id}, {old} -> {self.new_status.value})>"
