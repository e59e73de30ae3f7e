import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# Load environment variables from .env file, if it exists
load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number, got '{raw}'")


# Tunable Check-In Thresholds; Defaults Match What Site Admins Expect
class CheckInPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    default_radius_meters: float = 50.0
    precise_accuracy_meters: float = 20.0
    degraded_accuracy_meters: float = 50.0
    max_travel_speed_kmh: float = 200.0
    violation_severity_meters: float = 500.0

    @property
    def max_travel_speed_mps(self) -> float:
        return self.max_travel_speed_kmh * 1000.0 / 3600.0

    @classmethod
    def from_env(cls) -> "CheckInPolicy":
        return cls(
            default_radius_meters=_env_float("GEOFENCE_DEFAULT_RADIUS_METERS", 50.0),
            precise_accuracy_meters=_env_float("GPS_PRECISE_ACCURACY_METERS", 20.0),
            degraded_accuracy_meters=_env_float("GPS_DEGRADED_ACCURACY_METERS", 50.0),
            max_travel_speed_kmh=_env_float("MAX_TRAVEL_SPEED_KMH", 200.0),
            violation_severity_meters=_env_float("VIOLATION_SEVERITY_METERS", 500.0),
        )
