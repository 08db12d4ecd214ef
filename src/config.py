"""
Configuration settings for the application.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Document store
    MONGODB_URL: str = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "storefront")

    # Redis / payment settlement records
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    PAYMENT_EVENT_KEY_PREFIX: str = os.getenv(
        "PAYMENT_EVENT_KEY_PREFIX",
        "payments:intent:",
    )
    PAYMENT_EVENT_TTL_SECONDS: int = int(
        os.getenv("PAYMENT_EVENT_TTL_SECONDS", str(7 * 24 * 3600))
    )

    # Payment gateway
    STRIPE_SECRET_KEY: str | None = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET: str | None = os.getenv("STRIPE_WEBHOOK_SECRET")
    PAYMENT_CURRENCY: str = os.getenv("PAYMENT_CURRENCY", "pkr")

    # Bearer tokens issued by the identity provider
    JWT_SECRET: str = os.getenv("JWT_SECRET", "devsecret")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")

    # Catalog
    CATALOG_PAGE_LIMIT: int = int(os.getenv("CATALOG_PAGE_LIMIT", "10"))
    RECOMMENDATION_CANDIDATE_LIMIT: int = int(
        os.getenv("RECOMMENDATION_CANDIDATE_LIMIT", "12")
    )
    RECOMMENDATION_RESULT_LIMIT: int = int(
        os.getenv("RECOMMENDATION_RESULT_LIMIT", "8")
    )

    @property
    def is_production(self) -> bool:
        """
        Check if running in production environment.
        """
        return self.ENVIRONMENT.lower() == "production"

    @property
    def payments_enabled(self) -> bool:
        """Return True when a payment gateway client can be initialized."""
        return bool(self.STRIPE_SECRET_KEY)

    @property
    def webhooks_enabled(self) -> bool:
        """Return True when gateway webhook signatures can be verified."""
        return bool(self.STRIPE_SECRET_KEY and self.STRIPE_WEBHOOK_SECRET)

    def __init__(self):
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        logging.basicConfig(level=self.log_level)


# Create a global settings instance for import
settings = Settings()
