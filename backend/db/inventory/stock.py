import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database import Base


class VenueStock(Base):
    __tablename__ = "venue_stock"
    __table_args__ = (
        UniqueConstraint("venue_id", "blood_type", name="ux_venue_stock_venue_blood_type"),
        CheckConstraint("quantity >= 0", name="ck_venue_stock_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    venue_id = Column(
        UUID(as_uuid=True),
        ForeignKey("venues.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    blood_type = Column(String(3), nullable=False)  # 'A+' ... 'O-'
    quantity = Column(Integer, nullable=False, default=0)

    venue = relationship("Venue", back_populates="stocks")
