"""
Derived health metrics: BMI, BMI category, blood pressure category, and
the dashboard helpers built on them. Everything here is pure.
"""
import math
from datetime import timezone
from decimal import Decimal, ROUND_HALF_UP

from healthbuddy.models import parse_timestamp

NOT_AVAILABLE = 'N/A'

BMI_COLORS = {
    'Underweight': '#FF9800',
    'Normal': '#4CAF50',
    'Overweight': '#FF9800',
    'Obese': '#F44336',
    NOT_AVAILABLE: '#999',
}

BP_COLORS = {
    'Normal': '#4CAF50',
    'Elevated': '#FFC107',
    'High BP Stage 1': '#FF9800',
    'High BP Stage 2': '#F44336',
    'Hypertensive Crisis': '#D32F2F',
    NOT_AVAILABLE: '#999',
}

CHART_READINGS = 15
ROWS_PER_PAGE = 10


def _number(value):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return float(value)


def bmi(height_cm, weight_kg):
    """weight / (height in metres)^2, rounded half-up to one decimal on the
    exact binary value, so 99.8 kg at 200 cm gives 24.9.
    Returns None when either value is missing or not finite, or height is zero."""
    height = _number(height_cm)
    weight = _number(weight_kg)
    if height is None or weight is None or not height:
        return None
    height_m = height / 100
    value = weight / (height_m * height_m)
    if not all(map(math.isfinite, (height, weight, value))):
        return None
    return float(Decimal(value).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))


def bmi_category(value) -> str:
    if not value:
        return NOT_AVAILABLE
    value = float(value)
    if not math.isfinite(value):
        return NOT_AVAILABLE
    if value < 18.5:
        return 'Underweight'
    if value < 25:
        return 'Normal'
    if value < 30:
        return 'Overweight'
    return 'Obese'


def bp_category(systolic, diastolic) -> str:
    """
    Classify a reading. Rules are evaluated in order and the first match
    wins; Normal/Elevated require both values below the threshold while
    the two stage rules match on either value.
    """
    if not systolic or not diastolic:
        return NOT_AVAILABLE
    if systolic < 120 and diastolic < 80:
        return 'Normal'
    if systolic < 130 and diastolic < 80:
        return 'Elevated'
    if systolic < 140 or diastolic < 90:
        return 'High BP Stage 1'
    if systolic < 180 or diastolic < 120:
        return 'High BP Stage 2'
    return 'Hypertensive Crisis'


def bmi_color(value) -> str:
    return BMI_COLORS[bmi_category(value)]


def bp_color(systolic, diastolic) -> str:
    return BP_COLORS[bp_category(systolic, diastolic)]


def latest_reading(readings):
    """Readings are newest first, so the latest is the head of the list."""
    return readings[0] if readings else None


def health_summary(user, readings) -> dict:
    """Figures shown on the home dashboard."""
    value = bmi(user.height, user.weight) if user else None
    latest = latest_reading(readings)
    if latest is not None:
        category = bp_category(latest.systolic, latest.diastolic)
    else:
        category = NOT_AVAILABLE
    return {
        'bmi': value,
        'bmiCategory': bmi_category(value),
        'bmiColor': bmi_color(value),
        'latestReading': latest.to_dict() if latest else None,
        'bpCategory': category,
        'bpColor': BP_COLORS[category],
        'totalReadings': len(readings),
    }


def _chart_label(timestamp: str, tz) -> str:
    moment = parse_timestamp(timestamp).astimezone(tz)
    return f'{moment.month}/{moment.day}\n{moment.hour:02d}:{moment.minute:02d}'


def chart_series(readings, limit: int = CHART_READINGS, tz=timezone.utc) -> dict:
    """
    Trend data for the most recent ``limit`` readings, oldest first.

    With no readings a single placeholder point is returned so a chart
    can still be drawn.
    """
    if not readings:
        return {
            'labels': ['No Data'],
            'systolic': [120],
            'diastolic': [80],
            'heartRate': [70],
        }
    window = list(reversed(readings[:limit]))
    return {
        'labels': [_chart_label(r.timestamp, tz) for r in window],
        'systolic': [r.systolic for r in window],
        'diastolic': [r.diastolic for r in window],
        'heartRate': [r.heart_rate for r in window],
    }


def paginate(readings, page: int = 1, per_page: int = ROWS_PER_PAGE) -> dict:
    total_pages = math.ceil(len(readings) / per_page) if per_page > 0 else 0
    page = max(1, int(page))
    start = (page - 1) * per_page
    return {
        'items': readings[start:start + per_page],
        'page': page,
        'perPage': per_page,
        'totalPages': total_pages,
        'total': len(readings),
    }
