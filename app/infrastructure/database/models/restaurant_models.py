"""
Relational model for restaurant records.

Handles:
- Located restaurant records (nullable coordinates until geocoded)
- Categories stored as a JSON array in a text column
- Soft deletion via ``deleted_at``
"""

from sqlalchemy import Column, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.sql import func

from app.infrastructure.database.base import Base


class RestaurantRecord(Base):
    """
    Store row for one restaurant.

    Rows without coordinates or with ``deleted_at`` set are never returned
    by the spatial queries.
    """
    __tablename__ = 'restaurants'

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Descriptive fields
    name = Column(String(200), nullable=False)
    address = Column(String(500), nullable=False, default='')
    link = Column(String(500), nullable=False, default='')
    recommendation = Column(Text, nullable=False, default='')
    categories = Column(Text, nullable=False, default='[]')  # JSON array as text
    region = Column(String(100), nullable=True)

    # Position data (WGS84)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    # Indexes for viewport queries
    __table_args__ = (
        Index('idx_restaurants_lat_lng', 'lat', 'lng'),
        Index('idx_restaurants_deleted_at', 'deleted_at'),
        Index('idx_restaurants_name', 'name'),
    )
