"""SQLAlchemy declarative base and schema helpers for the restaurant store."""

import logging
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

# Create declarative base
Base = declarative_base()


async def create_tables(engine: AsyncEngine) -> None:
    """Create all database tables registered on ``Base``."""
    try:
        # Import models to register them
        from app.infrastructure.database.models.restaurant_models import RestaurantRecord  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

    except SQLAlchemyError as e:
        logger.error(f"Error creating database tables: {e}")
        raise


async def drop_tables(engine: AsyncEngine) -> None:
    """Drop all database tables registered on ``Base``."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("Database tables dropped successfully")
