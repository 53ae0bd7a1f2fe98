"""
Configuration management.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # Storage
    store_type: str = field(default_factory=lambda: os.getenv("STORE_TYPE", "memory").lower())
    data_dir: str = field(default_factory=lambda: os.getenv("DATA_DIR", "./data"))
    supabase_url: Optional[str] = field(default_factory=lambda: os.getenv("SUPABASE_URL"))
    supabase_service_role_key: Optional[str] = field(
        default_factory=lambda: os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    )
    request_timeout: int = field(default_factory=lambda: int(os.getenv("REQUEST_TIMEOUT", "15")))

    # Engine
    model_version: str = field(default_factory=lambda: os.getenv("MODEL_VERSION", "rules_v1.0"))
    rule_workers: int = field(default_factory=lambda: int(os.getenv("RULE_WORKERS", "1")))

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    def validate(self) -> None:
        """
        Raises:
            ValueError: On an unknown store type or missing hosted credentials
        """
        if self.store_type not in ("memory", "supabase"):
            raise ValueError(f"STORE_TYPE must be 'memory' or 'supabase': {self.store_type}")
        if self.store_type == "supabase" and not (
            self.supabase_url and self.supabase_service_role_key
        ):
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")
        if self.rule_workers < 1:
            raise ValueError("RULE_WORKERS must be at least 1")

    def to_dict(self) -> dict:
        """Convert config to dictionary (secrets omitted)."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "log_level": self.log_level,
            "store_type": self.store_type,
            "data_dir": self.data_dir,
            "supabase_url": self.supabase_url,
            "request_timeout": self.request_timeout,
            "model_version": self.model_version,
            "rule_workers": self.rule_workers,
        }
