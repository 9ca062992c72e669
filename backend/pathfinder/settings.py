from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_out_dir() -> str:
    # Keep logs and reports in backend/out by default to avoid polluting source assets.
    return str(Path(__file__).resolve().parents[1] / "out")


class Settings(BaseSettings):
    """Validated settings (env-driven); every search bound is overridable per deployment."""

    model_config = SettingsConfigDict(
        # Support both "repo root/.env" and "backend/.env" (local dev)
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    out_dir: str = Field(default_factory=_default_out_dir, alias="OUT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    roads_path: str = Field(default="public/data/roads.geojson", alias="ROADS_PATH")

    # Network build
    build_progress_interval: int = Field(default=100, ge=1, alias="BUILD_PROGRESS_INTERVAL")

    # Nearest-vertex resolution (radii are in degrees, ~111 km per degree)
    nearest_initial_radius: float = Field(default=0.01, gt=0.0, alias="NEAREST_INITIAL_RADIUS")
    nearest_max_radius: float = Field(default=0.05, gt=0.0, alias="NEAREST_MAX_RADIUS")

    # A* bounds
    max_route_distance_km: float = Field(default=50.0, gt=0.0, alias="MAX_ROUTE_DISTANCE_KM")
    max_search_iterations: int = Field(default=50_000, ge=1, alias="MAX_SEARCH_ITERATIONS")
    divergence_factor: float = Field(default=2.0, ge=1.0, alias="DIVERGENCE_FACTOR")
    search_progress_interval: int = Field(default=1000, ge=1, alias="SEARCH_PROGRESS_INTERVAL")

    # Route metrics
    average_speed_kph: float = Field(default=5.0, gt=0.0, alias="AVERAGE_SPEED_KPH")

    # Legacy behaviour: treat 0.0 latitude/longitude as a missing coordinate.
    reject_zero_coordinates: bool = Field(default=False, alias="REJECT_ZERO_COORDINATES")

    @model_validator(mode="after")
    def _order_nearest_radii(self) -> "Settings":
        if self.nearest_max_radius < self.nearest_initial_radius:
            self.nearest_max_radius = self.nearest_initial_radius
        self.log_level = str(self.log_level or "INFO").strip().upper() or "INFO"
        return self


settings = Settings()
