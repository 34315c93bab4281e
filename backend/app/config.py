from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "campaigns-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "Campaigns")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/campaigns_dev")

    # Auth
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    access_ttl_min: int = int(os.getenv("ACCESS_TTL_MIN", "15"))

    # Competition rules
    max_ranked_positions: int = int(os.getenv("MAX_RANKED_POSITIONS", "3"))  # podium slots for custom and mini campaigns
    strict_window_order: bool = os.getenv("STRICT_WINDOW_ORDER", "1") == "1"  # submission may not open before registration closes

settings = Settings()
