from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "Horde"
    API_PREFIX: str = "/api/v1"
    ENVIRONMENT: str = Field(default="development")  # development | test | production
    DEBUG: bool = Field(default=False)
    API_HOST: str = Field(default="http://localhost:8000")
    CLIENT_BASE_URL: str = Field(default="http://localhost:3000")
    CORS_ORIGINS: List[str] = Field(default=["http://localhost:3000"])

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_ENDPOINT_URL: Optional[str] = Field(default=None)  # e.g. DynamoDB Local
    DYNAMO_CREATE_TABLES: bool = Field(default=False)
    DYNAMO_USERS_TABLE: str = Field(default="horde-users")
    DYNAMO_PENDING_USERS_TABLE: str = Field(default="horde-pending-users")
    DYNAMO_BUDGETS_TABLE: str = Field(default="horde-budgets")
    DYNAMO_EXPENSES_TABLE: str = Field(default="horde-expenses")
    DYNAMO_NOTIFICATIONS_TABLE: str = Field(default="horde-notifications")
    DYNAMO_TOKENS_TABLE: str = Field(default="horde-tokens")

    # AWS S3
    S3_BUCKET_NAME: str = Field(default="horde-budget-reports")
    S3_REGION: str = Field(default="eu-west-1")

    # JWT Authentication
    JWT_SECRET_KEY: str = Field(default="change-me-horde-jwt-secret")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    RESET_TOKEN_EXPIRE_SECONDS: int = 5 * 60
    AUTH_CODE_EXPIRE_SECONDS: int = 5 * 60
    PENDING_USER_EXPIRE_HOURS: int = 24
    NOTIFICATION_EXPIRE_DAYS: int = 30

    # Email (SMTP)
    EMAIL_ENABLED: bool = Field(default=False)
    SMTP_HOST: str = Field(default="smtp.gmail.com")
    SMTP_PORT: int = Field(default=587)
    SMTP_USERNAME: str = Field(default="")
    SMTP_PASSWORD: str = Field(default="")
    EMAIL_FROM: str = Field(default="no-reply@horde.app")

    # Google OAuth
    GOOGLE_CLIENT_ID: str = Field(default="")
    GOOGLE_CLIENT_SECRET: str = Field(default="")

    # Scheduler
    SCHEDULER_ENABLED: bool = Field(default=True)
    CLEANUP_INTERVAL_MINUTES: int = Field(default=60)

    # Analytics
    SPIKE_SIGMA: float = 2.5
    SPIKE_MINIMUM_AMOUNT: float = Field(default=250.0)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def google_callback_url(self) -> str:
        return f"{self.API_HOST}{self.API_PREFIX}/auth/google/callback"


settings = Settings()
