"""
Threshold evaluation of a single reading.

Pure: no I/O, no clock. Candidates come out in a fixed order
(moisture, pH, temperature, battery).
"""
from typing import List

from soil_monitor.schemas.alert import AlertCandidate, AlertType
from soil_monitor.schemas.reading import ReadingIn

MOISTURE_CRITICAL = 25
MOISTURE_WARNING = 40
PH_MIN = 5.5
PH_MAX = 7.5
PH_RANGE_LABEL = "5.5-7.5"
TEMPERATURE_MAX = 35
BATTERY_MIN = 20


def _check_moisture(reading: ReadingIn) -> List[AlertCandidate]:
    moisture = reading.soil_moisture
    if moisture < MOISTURE_CRITICAL:
        return [AlertCandidate(
            type=AlertType.CRITICAL,
            title="Critical Soil Moisture",
            message=(
                f"Sensor {reading.sensor_id} has critically low soil moisture "
                f"({moisture}%). Irrigation needed."
            ),
            sensor_id=reading.sensor_id,
            value=moisture,
            threshold=MOISTURE_CRITICAL,
            location=reading.location.name,
        )]
    if moisture < MOISTURE_WARNING:
        return [AlertCandidate(
            type=AlertType.WARNING,
            title="Low Soil Moisture",
            message=(
                f"Sensor {reading.sensor_id} has low soil moisture "
                f"({moisture}%). Consider irrigation."
            ),
            sensor_id=reading.sensor_id,
            value=moisture,
            threshold=MOISTURE_WARNING,
            location=reading.location.name,
        )]
    return []


def _check_ph(reading: ReadingIn) -> List[AlertCandidate]:
    if PH_MIN <= reading.ph_level <= PH_MAX:
        return []
    return [AlertCandidate(
        type=AlertType.WARNING,
        title="pH Level Alert",
        message=(
            f"Sensor {reading.sensor_id} has abnormal pH level "
            f"({reading.ph_level}). Optimal range is {PH_RANGE_LABEL}."
        ),
        sensor_id=reading.sensor_id,
        value=reading.ph_level,
        threshold=PH_RANGE_LABEL,
        location=reading.location.name,
    )]


def _check_temperature(reading: ReadingIn) -> List[AlertCandidate]:
    if reading.temperature <= TEMPERATURE_MAX:
        return []
    return [AlertCandidate(
        type=AlertType.WARNING,
        title="High Temperature",
        message=(
            f"Sensor {reading.sensor_id} has high temperature "
            f"({reading.temperature}°C). Monitor for plant stress."
        ),
        sensor_id=reading.sensor_id,
        value=reading.temperature,
        threshold=TEMPERATURE_MAX,
        location=reading.location.name,
    )]


def _check_battery(reading: ReadingIn) -> List[AlertCandidate]:
    if reading.battery_level >= BATTERY_MIN:
        return []
    return [AlertCandidate(
        type=AlertType.WARNING,
        title="Low Battery",
        message=(
            f"Sensor {reading.sensor_id} has low battery "
            f"({reading.battery_level}%). Replacement needed soon."
        ),
        sensor_id=reading.sensor_id,
        value=reading.battery_level,
        threshold=BATTERY_MIN,
        location=reading.location.name,
    )]


_RULES = (_check_moisture, _check_ph, _check_temperature, _check_battery)


def evaluate(reading: ReadingIn) -> List[AlertCandidate]:
    candidates: List[AlertCandidate] = []
    for rule in _RULES:
        candidates.extend(rule(reading))
    return candidates
