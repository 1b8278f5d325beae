from typing import Optional

from ..schemas.measurements import Measurements, NormalizedMeasurements


CM_PER_INCH = 2.54
KG_PER_LB = 0.453592


def to_metric_length(value: float, unit: str) -> float:
    if unit == "imperial":
        return value * CM_PER_INCH
    return value


def to_metric_weight(value: Optional[float], unit: str) -> Optional[float]:
    if value is None:
        return None
    if unit == "imperial":
        return value * KG_PER_LB
    return value


def normalize(measurements: Measurements) -> NormalizedMeasurements:
    """Convert imperial input (inches, pounds) to centimetres and kilograms."""
    unit = measurements.unit
    height = measurements.height
    return NormalizedMeasurements(
        gender=measurements.gender,
        age=measurements.age,
        height=to_metric_length(height, unit) if height is not None else None,
        weight=to_metric_weight(measurements.weight, unit),
        bust=to_metric_length(measurements.bust, unit),
        waist=to_metric_length(measurements.waist, unit),
        hips=to_metric_length(measurements.hips, unit),
        shoulders=to_metric_length(measurements.shoulders, unit),
    )
