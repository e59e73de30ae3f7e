from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from core.deps import PolicyDep, get_site_registry
from models.geofence_site import GeofenceSite
from services.site_registry import SiteRegistry

router = APIRouter()

# --- Pydantic Models for Response ---


class SiteGeofenceResponse(BaseModel):
    site_id: str
    name: Optional[str] = None
    center_lat: float
    center_lng: float
    radius_meters: float
    address: Optional[str] = None


def _to_response(site: GeofenceSite, default_radius: float) -> SiteGeofenceResponse:
    return SiteGeofenceResponse(
        site_id=site.id,
        name=site.name,
        center_lat=site.center_lat,
        center_lng=site.center_lng,
        radius_meters=site.radius_meters if site.radius_meters is not None else default_radius,
        address=site.address,
    )


# --- API Endpoints ---


@router.get("", response_model=List[SiteGeofenceResponse])
def list_active_sites(
    registry: Annotated[SiteRegistry, Depends(get_site_registry)],
    policy: PolicyDep,
):
    """
    Active sites a device can check in against, so the client can show the
    geofence before asking for a location fix.
    """
    return [_to_response(site, policy.default_radius_meters) for site in registry.list_active()]


@router.get("/{site_id}/geofence", response_model=SiteGeofenceResponse)
def get_site_geofence(
    site_id: str,
    registry: Annotated[SiteRegistry, Depends(get_site_registry)],
    policy: PolicyDep,
):
    """
    Retrieve the geofence information (latitude, longitude, radius) for a specific site.
    """
    return _to_response(registry.resolve(site_id), policy.default_radius_meters)
