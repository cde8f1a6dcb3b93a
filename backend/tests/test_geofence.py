"""Geofence distance and radius checks."""
import pytest

from attendguard.services.geofence_service import GeofenceEvaluator, NOT_APPLICABLE
from attendguard.utils.exceptions import PolicyViolation
from tests.conftest import ANCHOR, offset_north

def test_distance_between_same_point_is_zero():
    assert GeofenceEvaluator.calculate_distance(10.0, 20.0, 10.0, 20.0) == 0

def test_distance_along_meridian():
    target = offset_north(ANCHOR, 15)
    distance = GeofenceEvaluator.calculate_distance(
        ANCHOR['latitude'], ANCHOR['longitude'], target['latitude'], target['longitude']
    )
    assert distance == pytest.approx(15, abs=1e-6)

def test_distance_equal_to_radius_passes():
    position = offset_north(ANCHOR, 20)
    distance = GeofenceEvaluator.calculate_distance(
        ANCHOR['latitude'], ANCHOR['longitude'], position['latitude'], position['longitude']
    )
    
    result = GeofenceEvaluator.evaluate(ANCHOR, position, distance)
    
    assert result.applicable
    assert result.passed
    assert result.distance == distance

def test_distance_just_beyond_radius_fails():
    position = offset_north(ANCHOR, 20)
    distance = GeofenceEvaluator.calculate_distance(
        ANCHOR['latitude'], ANCHOR['longitude'], position['latitude'], position['longitude']
    )
    
    result = GeofenceEvaluator.evaluate(ANCHOR, position, distance - 1e-6)
    
    assert not result.passed

@pytest.mark.parametrize('position', [None, {'latitude': -45.0, 'longitude': 170.0}])
def test_no_anchor_is_not_applicable(position):
    result = GeofenceEvaluator.evaluate(None, position, 5)
    assert result is NOT_APPLICABLE
    assert result.passed
    assert result.distance is None

def test_anchor_without_position_is_missing_location():
    with pytest.raises(PolicyViolation) as exc:
        GeofenceEvaluator.evaluate(ANCHOR, None, 20)
    assert exc.value.code == PolicyViolation.MISSING_LOCATION

def test_enforce_reports_distance_and_radius():
    with pytest.raises(PolicyViolation) as exc:
        GeofenceEvaluator.enforce(ANCHOR, offset_north(ANCHOR, 35), 20)
    
    assert exc.value.code == PolicyViolation.GEOFENCE
    assert exc.value.distance == pytest.approx(35, abs=0.01)
    assert exc.value.radius == 20
    assert '35m away, 20m allowed' in exc.value.message
