"""
Configuration management for the tagging service.

Loads environment variables and provides centralized config access.
"""

import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Application configuration"""

    # Flask settings
    FLASK_ENV: str = os.getenv("FLASK_ENV", "development")
    DEBUG: bool = FLASK_ENV == "development"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database settings
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")
    BASE_DIR: Path = Path(__file__).parent.parent
    SQLITE_PATH: Path = BASE_DIR / ".notetags.db"

    # Auth / CORS
    CLERK_DOMAIN: str = os.getenv("CLERK_DOMAIN", "clerk.your-domain.com")
    FRONTEND_URL: Optional[str] = os.getenv("FRONTEND_URL")

    # Tag engine settings
    TAG_SUGGESTION_LIMIT: int = int(os.getenv("TAG_SUGGESTION_LIMIT", "10"))
    TAG_SUGGESTION_MAX_LIMIT: int = int(os.getenv("TAG_SUGGESTION_MAX_LIMIT", "100"))
    TAG_INACTIVE_DAYS: int = int(os.getenv("TAG_INACTIVE_DAYS", "30"))
    TAG_STORE_TIMEOUT_SECONDS: float = float(os.getenv("TAG_STORE_TIMEOUT_SECONDS", "5.0"))

    @classmethod
    def validate(cls):
        """Validate required configuration"""
        errors = []

        if cls.FLASK_ENV == "production" and not cls.DATABASE_URL:
            errors.append("DATABASE_URL is not set")
        if cls.TAG_SUGGESTION_LIMIT < 1:
            errors.append("TAG_SUGGESTION_LIMIT must be >= 1")
        if cls.TAG_SUGGESTION_MAX_LIMIT < cls.TAG_SUGGESTION_LIMIT:
            errors.append("TAG_SUGGESTION_MAX_LIMIT must be >= TAG_SUGGESTION_LIMIT")
        if cls.TAG_STORE_TIMEOUT_SECONDS <= 0:
            errors.append("TAG_STORE_TIMEOUT_SECONDS must be > 0")

        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")


# Create config instance
config = Config()
