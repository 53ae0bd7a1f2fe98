"""
Formatting utilities.
"""

from typing import Optional


def format_percent(value: float, decimals: int = 1) -> str:
    """
    Format a number as a percentage.

    Args:
        value: The percentage value.
        decimals: Number of decimal places.

    Returns:
        Formatted percentage string.
    """
    return f"{value:.{decimals}f}%"


def format_confidence(confidence: float) -> str:
    """
    Format a 0-1 confidence as a whole percentage.

    Args:
        confidence: Confidence in [0, 1].

    Returns:
        e.g. "85%"
    """
    return format_percent(confidence * 100, decimals=0)


def format_field_name(field_name: str) -> str:
    """Human label for a prediction field ("hvac_age_bucket" -> "HVAC Age")."""
    label = field_name.replace("_bucket", "").replace("_", " ").title()
    return label.replace("Hvac", "HVAC")


def format_value(field_name: str, value: str) -> str:
    """Human rendering of a predicted value."""
    if field_name.endswith("_age_bucket"):
        return f"{value} years"
    if value in ("true", "false"):
        return "Yes" if value == "true" else "No"
    return value.replace("_", " ").title()


def format_years(years: Optional[float]) -> str:
    """Whole or one-decimal years, or "-" when unknown."""
    if years is None:
        return "-"
    if float(years).is_integer():
        return f"{int(years)} yrs"
    return f"{years:.1f} yrs"
