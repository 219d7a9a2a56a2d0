# app/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file

class Settings(BaseModel):
    # General app settings
    APP_NAME: str = "Issue Tracker API"
    env: str = os.getenv("ENV", "dev")

    # Host & Port settings
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "5000"))

    # Frontend origin allowed by CORS
    client_url: str = os.getenv("CLIENT_URL", "http://localhost:3000")

    # JWT settings (secret is required, checked at startup)
    jwt_secret: str | None = os.getenv("JWT_SECRET") or None
    jwt_expires_in: str = os.getenv("JWT_EXPIRES_IN", "7d")

    # Rate limiting: RATE_LIMIT_MAX requests per RATE_LIMIT_WINDOW_SEC per source IP
    rate_limit_window_sec: int = int(os.getenv("RATE_LIMIT_WINDOW_SEC", str(15 * 60)))
    rate_limit_max: int = int(os.getenv("RATE_LIMIT_MAX", "100"))
    # Only enable behind a reverse proxy that sets X-Forwarded-For itself
    rate_limit_trust_proxy: bool = os.getenv("RATE_LIMIT_TRUST_PROXY", "").lower() in ("1", "true", "yes")

    # Default admin created at startup when no admin exists (password required)
    admin_username: str = os.getenv("ADMIN_USERNAME", "admin")
    admin_email: str = os.getenv("ADMIN_EMAIL", "admin@example.com")
    admin_password: str | None = os.getenv("ADMIN_PASSWORD") or None

    @property
    def CORS_ORIGINS(self) -> list[str]:
        return [self.client_url]

settings = Settings()  # Instantiate configuration
