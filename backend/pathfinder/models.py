from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .geo import is_real_number


class LatLng(BaseModel):
    lat: float = Field(..., strict=True, ge=-90, le=90)
    lng: float = Field(..., strict=True, ge=-180, le=180)

    @field_validator("lat", "lng", mode="before")
    @classmethod
    def reject_bool(cls, v: object) -> object:
        if isinstance(v, bool):
            raise ValueError("coordinate must be a number")
        return v


class BoundingRegion(BaseModel):
    """Circular constraint on permissible route endpoints."""

    center: LatLng
    radius_km: float = Field(..., gt=0, alias="radius")

    model_config = ConfigDict(populate_by_name=True)


class InitData(BaseModel):
    roads: dict[str, Any]


class SetAreaData(BaseModel):
    """Area exactly as the client sent it.

    Any shape is stored and echoed back. The area only constrains routing
    when :meth:`region` can read a valid centre and a positive radius out of it.
    """

    center: Any = None
    radius: Any = None

    @classmethod
    def from_payload(cls, data: object) -> "SetAreaData":
        if not isinstance(data, dict):
            return cls()
        return cls(center=data.get("center"), radius=data.get("radius"))

    def region(self) -> BoundingRegion | None:
        if self.center is None or not is_real_number(self.radius) or self.radius <= 0:
            return None
        try:
            center = LatLng.model_validate(self.center)
        except ValidationError:
            return None
        return BoundingRegion(center=center, radius=float(self.radius))


class FindRouteData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_lat: float = Field(..., strict=True, ge=-90, le=90, alias="startLat")
    start_lng: float = Field(..., strict=True, ge=-180, le=180, alias="startLng")
    end_lat: float = Field(..., strict=True, ge=-90, le=90, alias="endLat")
    end_lng: float = Field(..., strict=True, ge=-180, le=180, alias="endLng")

    @field_validator("start_lat", "start_lng", "end_lat", "end_lng", mode="before")
    @classmethod
    def reject_bool(cls, v: object) -> object:
        if isinstance(v, bool):
            raise ValueError("coordinate must be a number")
        return v

    def coordinates(self) -> tuple[float, float, float, float]:
        return (self.start_lat, self.start_lng, self.end_lat, self.end_lng)


class RoadsProgress(BaseModel):
    type: Literal["roads_progress"] = "roads_progress"
    progress: int


class InitComplete(BaseModel):
    type: Literal["init_complete"] = "init_complete"


class AreaSet(BaseModel):
    type: Literal["area_set"] = "area_set"
    center: Any = None
    radius: Any = None


class RouteProgress(BaseModel):
    type: Literal["route_progress"] = "route_progress"
    progress: int


class RouteDetailsOut(BaseModel):
    distance: float
    time: float


class RouteFound(BaseModel):
    type: Literal["route_found"] = "route_found"
    path: dict[str, Any]
    details: RouteDetailsOut


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    error: str
    reason_code: str = "internal_error"


TERMINAL_TYPES: frozenset[str] = frozenset({"init_complete", "area_set", "route_found", "error"})
