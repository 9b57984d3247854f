"""
Centralized application configuration
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings"""

    # API Settings
    API_TITLE: str = "Warehouse OMS API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Order management backend for warehouse picking and stock control"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_DEBUG: bool = False

    # Storage
    # postgres: transactional relational store (DATABASE_URL required)
    # memory: lock-protected in-process store, data is lost on restart
    STORAGE_BACKEND: str = "postgres"
    DATABASE_URL: Optional[str] = None

    # Connection and locking
    LOCK_TIMEOUT_MS: int = 5000
    DB_CONNECT_RETRIES: int = 3
    DB_RETRY_DELAY: float = 1.0

    # Logging
    LOG_LEVEL: str = "INFO"

    # CORS - Can be string (comma-separated) or JSON array
    # Example: "http://localhost:3000,https://yourdomain.com" or '["http://localhost:3000"]'
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:3000,http://localhost:3001"

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:3000"]

        # Try JSON parse first (for array format)
        import json
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        # Fall back to comma-separated string
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    @property
    def lock_timeout_seconds(self) -> float:
        return self.LOCK_TIMEOUT_MS / 1000.0

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
