"""
Configuration for the receipt reconciliation core.
"""

# Load environment variables FIRST
from dotenv import load_dotenv
load_dotenv()

import os
from typing import Optional


class Config:
    """Base configuration."""

    # Item matching
    MANUAL_ITEM_MATCH_THRESHOLD: float = float(os.getenv("MANUAL_ITEM_MATCH_THRESHOLD", "0.45"))

    # Allocation (rateio)
    # Receipts linked to a purchase order need both dimensions on every row,
    # the standalone receipt screen only the chart of accounts.
    ALLOCATION_REQUIRE_COST_CENTER: bool = os.getenv("ALLOCATION_REQUIRE_COST_CENTER", "false").lower() == "true"

    # Receipt modes
    MANUAL_RECEIPT_TYPE: str = "avulso"
    RECEIPT_TYPES = ("avulso", "purchase_order")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE: Optional[str] = os.getenv("LOG_FILE") or None

    # API Configuration
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))
    API_DEBUG: bool = os.getenv("API_DEBUG", "false").lower() == "true"

    @classmethod
    def validate(cls) -> None:
        """Validate configuration."""
        if not 0.0 <= cls.MANUAL_ITEM_MATCH_THRESHOLD <= 1.0:
            raise ValueError(
                f"MANUAL_ITEM_MATCH_THRESHOLD must be within [0, 1], got {cls.MANUAL_ITEM_MATCH_THRESHOLD}"
            )

        if cls.LOG_LEVEL.upper() not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError(f"Invalid LOG_LEVEL: {cls.LOG_LEVEL}")


class DevelopmentConfig(Config):
    """Development configuration."""
    LOG_LEVEL = "DEBUG"
    API_DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    LOG_LEVEL = "INFO"
    API_DEBUG = False


class TestConfig(Config):
    """Test configuration."""
    LOG_LEVEL = "DEBUG"
    LOG_FILE = None


def get_config(env: str = None) -> Config:
    """Get configuration based on environment."""
    if env is None:
        env = os.getenv("ENV", "development").lower()

    if env == "production":
        config = ProductionConfig()
    elif env == "test":
        config = TestConfig()
    else:
        config = DevelopmentConfig()

    # Validate configuration on creation
    config.validate()
    return config
