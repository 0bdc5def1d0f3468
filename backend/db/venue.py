from sqlalchemy import Column, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base


class Venue(Base):
    """A hospital (or other collection point). Shares its id with the owning user."""
    __tablename__ = "venues"

    id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    name = Column(String, nullable=False)
    address = Column(Text, nullable=True)
    kind = Column(Text, nullable=False, default="hospital")  # 'hospital' | 'blood_bank'
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    last_updated = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    stocks = relationship("VenueStock", back_populates="venue", cascade="all, delete-orphan")
