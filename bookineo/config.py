import os
from dataclasses import dataclass, field
from typing import List, Optional
from dotenv import load_dotenv


load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """
    Runtime configuration read from the environment.

    Values are read once when the module is imported. A local .env file is
    loaded first, so development settings can live there.
    """

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./bookineo.db")

    # Tokens
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-bookineo-secret-change-me")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    access_token_expire_minutes: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "10080")
    )
    reset_token_expire_minutes: int = int(
        os.getenv("RESET_TOKEN_EXPIRE_MINUTES", "60")
    )

    # Password hashing
    bcrypt_rounds: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Email
    resend_api_key: Optional[str] = os.getenv("RESEND_API_KEY")
    resend_api_url: str = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
    email_from: str = os.getenv("EMAIL_FROM", "Bookineo <noreply@bookineo.app>")
    email_timeout: float = float(os.getenv("EMAIL_TIMEOUT", "10"))
    frontend_url: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # HTTP
    cors_origins: List[str] = field(
        default_factory=lambda: _split_csv(
            os.getenv("CORS_ORIGINS", "http://localhost:5173")
        )
    )

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
