"""Database models for persistence."""

from .restaurant_models import RestaurantRecord

__all__ = [
    "RestaurantRecord",
]
