"""Geofence verification service."""
import math
from dataclasses import dataclass
from typing import Dict, Optional

from attendguard.utils.exceptions import PolicyViolation

EARTH_RADIUS_METERS = 6371000

@dataclass(frozen=True)
class GeofenceResult:
    """Outcome of a radius check.
    
    ``applicable`` is False when the session has no anchor, in which case
    ``passed`` is True and the distance is unknown.
    """
    applicable: bool
    passed: bool
    distance: Optional[float] = None
    radius: Optional[float] = None
    
    def to_dict(self) -> Dict:
        return {
            'applicable': self.applicable,
            'passed': self.passed,
            'distance': round(self.distance, 2) if self.distance is not None else None,
            'radius': self.radius
        }

NOT_APPLICABLE = GeofenceResult(applicable=False, passed=True)

class GeofenceEvaluator:
    """Great-circle distance and radius checks."""
    
    @staticmethod
    def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Calculate distance between two GPS points in meters."""
        lat1_rad = math.radians(lat1)
        lat2_rad = math.radians(lat2)
        delta_lat = math.radians(lat2 - lat1)
        delta_lon = math.radians(lon2 - lon1)
        
        a = (math.sin(delta_lat/2) ** 2 + 
             math.cos(lat1_rad) * math.cos(lat2_rad) * 
             math.sin(delta_lon/2) ** 2)
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1-a))
        
        return EARTH_RADIUS_METERS * c
    
    @staticmethod
    def evaluate(
        anchor: Optional[Dict[str, float]],
        position: Optional[Dict[str, float]],
        radius_meters: float
    ) -> GeofenceResult:
        """Check a scan position against a session anchor.
        
        Returns NOT_APPLICABLE without an anchor. Raises PolicyViolation with
        the MISSING_LOCATION code when an anchor exists but no position was
        supplied. Otherwise the result passes iff distance <= radius.
        """
        if anchor is None:
            return NOT_APPLICABLE
        
        if position is None:
            raise PolicyViolation(
                "Location is required for this session",
                code=PolicyViolation.MISSING_LOCATION,
                radius=radius_meters
            )
        
        distance = GeofenceEvaluator.calculate_distance(
            anchor['latitude'], anchor['longitude'],
            position['latitude'], position['longitude']
        )
        
        return GeofenceResult(
            applicable=True,
            passed=distance <= radius_meters,
            distance=distance,
            radius=radius_meters
        )
    
    @staticmethod
    def enforce(
        anchor: Optional[Dict[str, float]],
        position: Optional[Dict[str, float]],
        radius_meters: float
    ) -> GeofenceResult:
        """Like evaluate(), but raise when the position is out of radius."""
        result = GeofenceEvaluator.evaluate(anchor, position, radius_meters)
        if not result.passed:
            raise PolicyViolation(
                f"You are too far from the class location "
                f"({result.distance:.0f}m away, {radius_meters:g}m allowed)",
                code=PolicyViolation.GEOFENCE,
                distance=round(result.distance, 2),
                radius=radius_meters
            )
        return result
