"""
BrandAudit Configuration

Central settings loaded from environment variables.
Policy thresholds used by the validator and assessor live here so
they can be tuned per deployment without touching the engine.
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Immutable application settings."""

    # --- Versioning ---
    ENGINE_VERSION: str = "1.0.0"

    # --- Cross-source validation ---
    VARIANCE_THRESHOLD: float = float(
        os.getenv("BRANDAUDIT_VARIANCE_THRESHOLD", "0.10")
    )
    MINIMUM_SOURCES: int = int(os.getenv("BRANDAUDIT_MIN_SOURCES", "2"))
    Z_SCORE_THRESHOLD: float = float(
        os.getenv("BRANDAUDIT_ZSCORE_THRESHOLD", "2.0")
    )
    SIMILARITY_THRESHOLD: float = float(
        os.getenv("BRANDAUDIT_SIMILARITY_THRESHOLD", "0.8")
    )

    # --- Source assessment ---
    MAX_SOURCE_AGE_DAYS: int = int(
        os.getenv("BRANDAUDIT_MAX_SOURCE_AGE_DAYS", "730")
    )

    # --- Server ---
    HOST: str = os.getenv("BRANDAUDIT_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("BRANDAUDIT_PORT", "8000"))

    # --- CORS ---
    CORS_ORIGINS: str = os.getenv("BRANDAUDIT_CORS_ORIGINS", "*")


settings = Settings()
