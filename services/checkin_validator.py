from math import isfinite
from typing import Optional

from core.errors import InvalidReading
from core.settings import CheckInPolicy
from models.check_in_record import AccuracyClass, CheckInVerdict, PositionReading
from models.geofence_site import GeofenceSite
from utils.geofence import distance_meters


class CheckInValidator:
    """
    Turns a position reading and a site geofence into a verdict.

    Low accuracy is classified, never rejected: whether an "unreliable" fix
    needs manager review is up to the caller.
    """

    def __init__(self, policy: Optional[CheckInPolicy] = None):
        self.policy = policy or CheckInPolicy()

    def classify_accuracy(self, accuracy_meters: float) -> AccuracyClass:
        # Each bucket includes its upper bound
        if accuracy_meters <= self.policy.precise_accuracy_meters:
            return AccuracyClass.PRECISE
        if accuracy_meters <= self.policy.degraded_accuracy_meters:
            return AccuracyClass.DEGRADED
        return AccuracyClass.UNRELIABLE

    def radius_for(self, site: GeofenceSite) -> float:
        if site.radius_meters is None:
            return self.policy.default_radius_meters
        return site.radius_meters

    def validate(self, reading: PositionReading, site: GeofenceSite) -> CheckInVerdict:
        accuracy = reading.accuracy_meters
        if accuracy is None or not isfinite(accuracy) or accuracy < 0:
            raise InvalidReading(
                f"GPS accuracy must be a finite, non-negative number of meters (got {accuracy})."
            )

        distance = distance_meters(reading.point, site.point)

        return CheckInVerdict(
            distance_meters=distance,
            within_geofence=distance <= self.radius_for(site),
            accuracy_class=self.classify_accuracy(accuracy),
        )
