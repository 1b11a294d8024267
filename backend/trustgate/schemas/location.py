"""Location Schemas — coordinate input and map view output.

Invariants:
    - lat in [-90, 90], lng in [-180, 180]
    - MapViewResponse mirrors core MapView; nothing else about the resource is exposed
"""

from pydantic import BaseModel, Field

from trustgate.core.geo_privacy import GeoCoordinate, MapView


class CoordinateIn(BaseModel):
    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)

    def to_domain(self) -> GeoCoordinate:
        return GeoCoordinate(lat=self.lat, lng=self.lng)


class CoordinateOut(BaseModel):
    lat: float
    lng: float


class MapViewResponse(BaseModel):
    resource_id: str
    coordinate: CoordinateOut
    zoom_ceiling: int
    marker_visible: bool
    approximate: bool
    approximate_radius_m: int

    @classmethod
    def from_view(cls, resource_id: str, view: MapView) -> "MapViewResponse":
        return cls(resource_id=resource_id, **view.as_dict())
