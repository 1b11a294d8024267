"""Resource Location ORM — the single true coordinate a resource owns.

Invariants:
    - One row per resource; obfuscated coordinates are never stored here
"""

from sqlalchemy import Float, String
from sqlalchemy.orm import Mapped, mapped_column

from trustgate.db.base import Base


class ResourceLocationRecord(Base):
    __tablename__ = "resource_locations"

    resource_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
