"""
Age Bucketizer

Maps a component age in years to an ordinal bucket label. Boundaries are
system-specific: roof bands are coarse and run out to "30+", water
heater bands are fine and end at "13+".

An age falls in the first band whose upper bound it does not exceed, so
5.5 years is "6-10" for a roof.
"""

import math
from typing import Final

from core.models import SystemType


# (inclusive upper bound, label); the last label is open-ended
BUCKET_BOUNDS: Final[dict[SystemType, tuple[tuple[float, str], ...]]] = {
    SystemType.ROOF: (
        (5, "0-5"),
        (10, "6-10"),
        (15, "11-15"),
        (20, "16-20"),
        (25, "21-25"),
        (30, "26-30"),
    ),
    SystemType.HVAC: (
        (5, "0-5"),
        (10, "6-10"),
        (15, "11-15"),
        (20, "16-20"),
    ),
    SystemType.WATER_HEATER: (
        (3, "0-3"),
        (6, "4-6"),
        (9, "7-9"),
        (12, "10-12"),
    ),
}

OPEN_BUCKETS: Final[dict[SystemType, str]] = {
    SystemType.ROOF: "30+",
    SystemType.HVAC: "20+",
    SystemType.WATER_HEATER: "13+",
}


def bucket_labels(system_type: SystemType) -> tuple[str, ...]:
    """All labels for a system, youngest first."""
    return tuple(label for _, label in BUCKET_BOUNDS[system_type]) + (
        OPEN_BUCKETS[system_type],
    )


def bucketize(system_type: SystemType, age_years: float) -> str:
    """
    Map an age to its bucket label.

    Raises:
        ValueError: If age is negative, NaN or infinite
    """
    if age_years is None or isinstance(age_years, bool):
        raise ValueError(f"age must be a number: {age_years!r}")
    if not math.isfinite(age_years) or age_years < 0:
        raise ValueError(f"age must be a non-negative finite number: {age_years}")

    for upper, label in BUCKET_BOUNDS[system_type]:
        if age_years <= upper:
            return label
    return OPEN_BUCKETS[system_type]
