"""Validation utilities for request payloads."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from attendguard.utils.exceptions import ValidationError

class Validator:
    """Validation helper class."""
    
    @staticmethod
    def require_fields(data: Optional[Dict], required_fields: List[str]) -> Dict:
        """Raise if any required field is missing or empty."""
        if not isinstance(data, dict):
            raise ValidationError("Request body must be JSON")
        
        missing = [field for field in required_fields
                   if field not in data or data[field] in (None, '')]
        if missing:
            raise ValidationError(
                f"Missing required field: {', '.join(missing)}",
                {'missing': missing}
            )
        return data
    
    @staticmethod
    def parse_position(latitude: Any, longitude: Any) -> Optional[Dict[str, float]]:
        """Build a position dict, or None when neither coordinate is given."""
        if latitude in (None, '') and longitude in (None, ''):
            return None
        if latitude in (None, '') or longitude in (None, ''):
            raise ValidationError("Both latitude and longitude are required")
        
        try:
            lat = float(latitude)
            lon = float(longitude)
        except (TypeError, ValueError):
            raise ValidationError("Latitude and longitude must be numbers")
        
        if not -90 <= lat <= 90:
            raise ValidationError("Latitude must be between -90 and 90")
        if not -180 <= lon <= 180:
            raise ValidationError("Longitude must be between -180 and 180")
        
        return {'latitude': lat, 'longitude': lon}
    
    @staticmethod
    def parse_datetime(value: Any, field: str) -> datetime:
        """Parse an ISO 8601 timestamp into a naive UTC datetime."""
        if isinstance(value, datetime):
            return value
        try:
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except ValueError:
            raise ValidationError(f"{field} must be an ISO 8601 timestamp")
        if parsed.tzinfo is not None:
            parsed = (parsed - parsed.utcoffset()).replace(tzinfo=None)
        return parsed
    
    @staticmethod
    def parse_id_list(values: Any, field: str) -> List[int]:
        if not isinstance(values, list) or not values:
            raise ValidationError(f"{field} must be a non-empty list")
        try:
            return [int(v) for v in values]
        except (TypeError, ValueError):
            raise ValidationError(f"{field} must contain numeric ids")
    
    @staticmethod
    def parse_id(value: Any, field: str) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{field} must be a numeric id")
