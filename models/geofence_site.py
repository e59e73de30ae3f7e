from typing import Optional

from sqlmodel import Field, SQLModel

from utils.geofence import GeoPoint

# Defines the Structure of a Job Site an Employee Checks In Against

DEFAULT_RADIUS_METERS = 50.0


# Job Site w/ Circular Geofence; Owned by Site Administration, Read-Only Here
class GeofenceSite(SQLModel, table=True):
    __tablename__ = "geofence_sites"

    id: str = Field(primary_key=True, description="Unique site identifier")
    name: Optional[str] = Field(default=None, description="Human-friendly site name")
    center_lat: float = Field(..., description="Latitude of site center")
    center_lng: float = Field(..., description="Longitude of site center")
    radius_meters: Optional[float] = Field(
        default=DEFAULT_RADIUS_METERS, description="Allowed check-in radius in meters"
    )
    active: bool = Field(default=True, index=True)
    address: Optional[str] = Field(default=None)

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(latitude=self.center_lat, longitude=self.center_lng)
