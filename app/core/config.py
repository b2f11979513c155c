from dataclasses import dataclass
from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import List, Optional, Tuple
from pathlib import Path


class Settings(BaseSettings):
    APP_NAME: str = "Matjip Map Backend"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ALLOWED_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    DB_ENABLED: bool = True
    DATABASE_URL: Optional[str] = "sqlite+aiosqlite:///./restaurants.db"
    DB_POOL_PRE_PING: bool = True
    DATA_DIR: str = Field(default="./data", description="Directory holding region JSON files for the in-memory store.")

    CLUSTER_ZOOM_THRESHOLD: int = Field(default=16, ge=1, le=22, description="Zoom below which markers are grouped into clusters.")
    DEFAULT_ZOOM: int = Field(default=16, ge=0, le=22)
    DEFAULT_CENTER_LAT: float = Field(default=37.4979, ge=-90.0, le=90.0)  # 강남구
    DEFAULT_CENTER_LNG: float = Field(default=127.0276, ge=-180.0, le=180.0)

    BOUNDS_PADDING_RATIO: float = Field(default=0.3, ge=0.0, le=2.0, description="Halo fetched around the visible viewport.")
    LIST_PAGE_SIZE: int = Field(default=20, gt=0, le=200)
    SEARCH_RESULT_LIMIT: int = Field(default=20, gt=0, le=200)

    model_config = {
        "extra": "ignore",
        "env_file": ".env",
        "env_file_encoding": "utf-8"
    }

    @validator("LOG_LEVEL")
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level '{v}'. Must be one of: {valid_levels}")
        return v.upper()

    @property
    def resolved_data_dir(self) -> Path:
        return Path(self.DATA_DIR).resolve()

    @property
    def default_center(self) -> Tuple[float, float]:
        return (self.DEFAULT_CENTER_LAT, self.DEFAULT_CENTER_LNG)


@dataclass(frozen=True)
class MapViewConfig:
    """Map tuning values resolved once at startup and shared by the query layer and controllers."""

    cluster_zoom_threshold: int = 16
    default_zoom: int = 16
    default_center: Tuple[float, float] = (37.4979, 127.0276)
    padding_ratio: float = 0.3
    page_size: int = 20
    search_limit: int = 20

    @classmethod
    def from_settings(cls, source: "Settings") -> "MapViewConfig":
        return cls(
            cluster_zoom_threshold=source.CLUSTER_ZOOM_THRESHOLD,
            default_zoom=source.DEFAULT_ZOOM,
            default_center=source.default_center,
            padding_ratio=source.BOUNDS_PADDING_RATIO,
            page_size=source.LIST_PAGE_SIZE,
            search_limit=source.SEARCH_RESULT_LIMIT,
        )


settings = Settings()
