"""Database repositories for data access."""

from .restaurant_repository_async import RestaurantRepositoryAsync

__all__ = [
    "RestaurantRepositoryAsync",
]
