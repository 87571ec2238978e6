"""Small SQL helpers shared by the filter compilers."""

from typing import Optional

from sqlalchemy import and_, func
from sqlalchemy.sql.elements import ColumnElement

from .schemas import MinMax

METERS_PER_MINUTE_ON_FOOT = 80

LIKE_ESCAPE_CHAR = "\\"


def escape_like_pattern(value: str) -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains(column, value: str) -> ColumnElement:
    return column.like(f"%{escape_like_pattern(value)}%", escape=LIKE_ESCAPE_CHAR)


def range_filter(column, value: Optional[MinMax]) -> Optional[ColumnElement]:
    """``min <= column <= max`` with each bound applied only when present."""
    if value is None:
        return None
    parts = []
    if value.min is not None:
        parts.append(column >= value.min)
    if value.max is not None:
        parts.append(column <= value.max)
    if not parts:
        return None
    return and_(*parts)


def spherical_distance(lng_a, lat_a, lng_b, lat_b) -> ColumnElement:
    """Distance in metres between two points, as MySQL's ST_Distance_Sphere computes it."""
    return func.ST_Distance_Sphere(func.Point(lng_a, lat_a), func.Point(lng_b, lat_b))


def walking_radius(minutes: int) -> int:
    return minutes * METERS_PER_MINUTE_ON_FOOT
