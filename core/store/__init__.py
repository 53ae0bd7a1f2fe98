"""
Prediction storage backends.
"""

from .base import PredictionStore, PropertyNotFoundError, StoreError
from .memory import InMemoryPredictionStore
from .supabase import SupabasePredictionStore
from .factory import create_store

__all__ = [
    "PredictionStore",
    "PropertyNotFoundError",
    "StoreError",
    "InMemoryPredictionStore",
    "SupabasePredictionStore",
    "create_store",
]
