from typing import List

from sqlmodel import Session, select

from core.errors import SiteInactive, SiteNotFound
from models.geofence_site import GeofenceSite


class SiteRegistry:
    """Read-only lookup of geofence definitions by site id."""

    def __init__(self, session: Session):
        self.session = session

    def resolve(self, site_id: str) -> GeofenceSite:
        site = self.session.get(GeofenceSite, site_id)
        if site is None:
            raise SiteNotFound(f"Site with ID {site_id} not found.", site_id=site_id)
        if not site.active:
            raise SiteInactive(f"Site with ID {site_id} is not active.", site_id=site_id)
        return site

    def list_active(self) -> List[GeofenceSite]:
        return list(
            self.session.exec(
                select(GeofenceSite)
                .where(GeofenceSite.active == True)  # noqa: E712
                .order_by(GeofenceSite.id)
            ).all()
        )
