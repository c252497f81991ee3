"""Configuration management using environment variables"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings:
    """Application settings - only what the licensing service needs"""

    def __init__(self):
        # Environment
        self.environment = os.getenv("ENVIRONMENT", "development")

        # JWT/Session configuration
        if self.environment == "production":
            self.session_secret = self._get_required("SESSION_SECRET")
            self._using_ephemeral_secret = False
        else:
            session_secret_env = os.getenv("SESSION_SECRET", "")
            if session_secret_env:
                self.session_secret = session_secret_env
                self._using_ephemeral_secret = False
            else:
                # Generate a random secret on startup for development
                import secrets
                self.session_secret = secrets.token_urlsafe(32)
                self._using_ephemeral_secret = True
                import logging
                logging.getLogger(__name__).warning(
                    "⚠️  No SESSION_SECRET provided - generated random secret for this process. "
                    "Session tokens will not survive a restart. Set SESSION_SECRET in .env."
                )

        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.jwt_expiration_hours = int(os.getenv("JWT_EXPIRATION_HOURS", "24"))

        # Server configuration
        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = int(os.getenv("PORT", "8000"))

        # Database configuration (SQLite by default - any async SQLAlchemy URL works)
        self.database_url = os.getenv(
            "DATABASE_URL",
            "sqlite+aiosqlite:///./licensing.db"
        )

        # Frontend URL (the SPA that renders the forms)
        self.frontend_url = os.getenv("FRONTEND_URL", "http://localhost:5173")

        # CORS origins (comma-separated list)
        cors_origins_env = os.getenv("CORS_ORIGINS", "")
        if cors_origins_env:
            self.cors_origins = cors_origins_env
        elif self.frontend_url and self.frontend_url != "http://localhost:5173":
            self.cors_origins = self.frontend_url
        else:
            self.cors_origins = ""

        # License issuance
        self.license_validity_days = int(os.getenv("LICENSE_VALIDITY_DAYS", "365"))
        self.license_number_prefix = os.getenv("LICENSE_NUMBER_PREFIX", "LIC")

        # Logging
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    def _get_required(self, key: str) -> str:
        """Get required environment variable or raise error."""
        value = os.getenv(key, "").strip()
        if not value:
            raise ValueError(
                f"Missing required environment variable: {key}. "
                f"Required in production mode."
            )
        return value


# Global settings instance
settings = Settings()
