"""
Customer database model.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from parceltrack.app.db.session import Base


class Customer(Base):
    """
    Customer model.
    
    Independent of users. Deleting a customer clears the reference on its
    parcels instead of deleting them.
    """
    __tablename__ = "customers"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    address = Column(Text, nullable=False)
    phone_number = Column(String(20), nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    parcels = relationship(
        "Parcel",
        back_populates="customer",
        order_by="[Parcel.created_at.desc(), Parcel.id.desc()]",
        passive_deletes=True,
    )
    
    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}')>"
