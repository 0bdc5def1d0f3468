from fastapi_users.db import SQLAlchemyBaseUserTableUUID
from sqlalchemy import Column, String
from .database import Base

ROLE_HOSPITAL = "hospital"
ROLE_ORGANIZER = "organizer"
ROLE_DONOR = "donor"


class User(SQLAlchemyBaseUserTableUUID, Base):
    __tablename__ = "users"

    display_name = Column(String, nullable=True)
    role = Column(String, nullable=False, default=ROLE_DONOR, index=True)

    @property
    def label(self) -> str:
        """Name shown on appointment cards."""
        return (self.display_name or "").strip() or self.email

    @property
    def to_profile(self):
        return {
            "id": self.id,
            "display_name": self.display_name,
            "role": self.role,
        }
