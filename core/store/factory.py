"""
Store construction from configuration.
"""

import logging
import os

from .base import PredictionStore
from .memory import InMemoryPredictionStore
from .supabase import SupabasePredictionStore


logger = logging.getLogger(__name__)

STORE_FILENAME = "prediction_store.json"


def create_store(config) -> PredictionStore:
    """
    Build the store named by config.store_type.

    Args:
        config: Object with store_type, data_dir, supabase_url,
            supabase_service_role_key and request_timeout attributes

    Returns:
        PredictionStore instance

    Raises:
        ValueError: On an unknown store type or missing hosted credentials
    """
    store_type = (config.store_type or "memory").lower()

    if store_type == "memory":
        persist_path = os.path.join(config.data_dir, STORE_FILENAME) if config.data_dir else None
        logger.info("Using in-memory prediction store (persist_path=%s)", persist_path)
        return InMemoryPredictionStore(persist_path=persist_path)

    if store_type == "supabase":
        if not config.supabase_url or not config.supabase_service_role_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")
        logger.info("Using Supabase prediction store at %s", config.supabase_url)
        return SupabasePredictionStore(
            url=config.supabase_url,
            service_key=config.supabase_service_role_key,
            timeout=float(config.request_timeout),
        )

    raise ValueError(f"Unknown store type: {config.store_type}")
