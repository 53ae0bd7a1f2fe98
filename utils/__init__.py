"""
Utility modules for the home systems engine.
"""

from .formatting import (
    format_confidence,
    format_field_name,
    format_percent,
    format_value,
    format_years,
)
from .config import Config

__all__ = [
    "format_confidence",
    "format_field_name",
    "format_percent",
    "format_value",
    "format_years",
    "Config",
]
