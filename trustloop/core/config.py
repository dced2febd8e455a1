from typing import Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "TrustLoop API"
    DATABASE_URL: str = "sqlite:///./trustloop.db"
    SECRET_KEY: str = "supersecretkey_change_me_in_production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7 # 1 week

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None  # e.g. "logs/trustloop_{time:YYYY-MM-DD}.log"

    # Shopify app credentials
    SHOPIFY_CLIENT_ID: str = ""
    SHOPIFY_CLIENT_SECRET: str = ""
    SHOPIFY_API_VERSION: str = "2024-04"
    # When set, webhook bodies must carry a matching X-Shopify-Hmac-Sha256
    SHOPIFY_WEBHOOK_SECRET: Optional[str] = None

    # Public URLs
    FUNCTION_BASE_URL: str = "http://localhost:8000"
    FRONTEND_URL: str = "http://localhost:3000"

    # Gemini
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_MODEL: str = "gemini-pro"

    # SendGrid
    SENDGRID_API_URL: str = "https://api.sendgrid.com/v3/mail/send"

    # Review requests
    REVIEW_REQUEST_DELAY_DAYS: int = 7
    REVIEW_TOKEN_SIGNED: bool = False
    REVIEW_TOKEN_EXPIRE_DAYS: int = 60

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Outbound HTTP
    HTTP_TIMEOUT: float = 30.0

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
