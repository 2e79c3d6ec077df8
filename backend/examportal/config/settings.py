"""
Configuration settings for the exam portal.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[3]
load_dotenv(ROOT_DIR / '.env')


DEFAULT_TERMS = (
    "1. No electronic devices allowed except the test device.\n"
    "2. No talking or communication with others during the exam.\n"
    "3. You may not leave the page once the exam has started.\n"
    "4. Attempting to cheat will result in automatic disqualification."
)


class Settings:
    """Application settings loaded from environment."""

    # Persistence
    STORE_BACKEND: str = os.environ.get("STORE_BACKEND", "mongo")  # mongo or memory
    MONGODB_URL: str = os.environ.get("MONGODB_URI", "mongodb://localhost:27017")
    DATABASE_NAME: str = os.environ.get("DB_NAME", "examportal")

    # Identity
    IDENTITY_BACKEND: str = os.environ.get("IDENTITY_BACKEND", "firebase")  # firebase or local
    FIREBASE_API_KEY: str = os.environ.get("FIREBASE_API_KEY", "")
    IDENTITY_TIMEOUT: float = float(os.environ.get("IDENTITY_TIMEOUT", 10))
    STUDENT_EMAIL_DOMAIN: str = os.environ.get("STUDENT_EMAIL_DOMAIN", "examportal.com")

    # Sessions
    SESSION_TTL_DAYS: int = int(os.environ.get("SESSION_TTL_DAYS", 7))
    SESSION_COOKIE_SECURE: bool = os.environ.get("SESSION_COOKIE_SECURE", "True").lower() == "true"

    # Exam engine
    TICK_SECONDS: float = float(os.environ.get("TICK_SECONDS", 1.0))
    ATTEMPT_IDLE_SECONDS: int = int(os.environ.get("ATTEMPT_IDLE_SECONDS", 30))  # 0 disables
    DEFAULT_TERMS: str = DEFAULT_TERMS

    # Server
    PORT: int = int(os.environ.get("PORT", 8001))
    HOST: str = os.environ.get("HOST", "0.0.0.0")
    DEBUG: bool = os.environ.get("DEBUG", "False").lower() == "true"
    CORS_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.environ.get("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]

    # Logging
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    def validate(self):
        """Validate critical settings."""
        if self.STORE_BACKEND not in ("mongo", "memory"):
            raise ValueError(f"Unknown STORE_BACKEND '{self.STORE_BACKEND}'")
        if self.STORE_BACKEND == "mongo" and not self.MONGODB_URL:
            raise ValueError("MONGODB_URI environment variable not set")
        if self.IDENTITY_BACKEND not in ("firebase", "local"):
            raise ValueError(f"Unknown IDENTITY_BACKEND '{self.IDENTITY_BACKEND}'")
        if self.IDENTITY_BACKEND == "firebase" and not self.FIREBASE_API_KEY:
            raise ValueError("FIREBASE_API_KEY environment variable not set")
        if self.TICK_SECONDS <= 0:
            raise ValueError("TICK_SECONDS must be positive")
        if self.ATTEMPT_IDLE_SECONDS < 0:
            raise ValueError("ATTEMPT_IDLE_SECONDS must not be negative")
        return True


# Global settings instance
settings = Settings()
