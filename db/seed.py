# Insert Sample Sites + Shifts
from datetime import datetime, timedelta, timezone

from sqlmodel import Session, SQLModel, select

import models  # noqa: F401
from db.session import engine
from models.geofence_site import GeofenceSite
from models.scheduled_shift import ScheduledShift


def seed_sites(session: Session) -> None:
    sites = [
        GeofenceSite(
            id="YARD",
            name="Batch Plant Yard",
            center_lat=40.7128,
            center_lng=-74.0060,
            radius_meters=100.0,
        ),
        GeofenceSite(
            id="TOWER-B",
            name="Tower B Pour Site",
            center_lat=40.7306,
            center_lng=-73.9866,
            # Radius left unset; the 50 m default applies
        ),
    ]

    for site in sites:
        if session.get(GeofenceSite, site.id):
            print(f"{site.id} site already exists")
            continue
        session.add(site)
        print(f"Added {site.id} site")


def seed_shifts(session: Session) -> None:
    if session.exec(select(ScheduledShift)).first():
        print("Shifts already exist")
        return

    start = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)
    session.add(
        ScheduledShift(
            employee_id="demo-employee",
            employee_name="Demo Employee",
            site_id="YARD",
            scheduled_start=start,
            scheduled_end=start + timedelta(hours=8),
            created_by="seed",
        )
    )
    print("Added demo shift")


if __name__ == "__main__":
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        seed_sites(session)
        seed_shifts(session)
        session.commit()
