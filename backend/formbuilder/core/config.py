from dataclasses import dataclass
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class WebhookSettings:
    """Delivery policy handed to the webhook dispatcher at construction."""
    timeout_seconds: float = 10.0
    max_attempts: int = 3
    backoff_base_seconds: float = 1.0
    user_agent: str = "FormBuilder-Webhook/1.0"
    response_body_limit: int = 1000


class Settings(BaseSettings):
    PROJECT_NAME: str = "Form Builder API"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "API for form logic and webhook delivery"

    SUPABASE_URL: Optional[str] = None
    SUPABASE_KEY: Optional[str] = None

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Webhook delivery
    WEBHOOK_TIMEOUT_SECONDS: float = 10.0
    WEBHOOK_MAX_ATTEMPTS: int = 3
    WEBHOOK_BACKOFF_BASE_SECONDS: float = 1.0
    WEBHOOK_USER_AGENT: str = "FormBuilder-Webhook/1.0"
    WEBHOOK_RESPONSE_BODY_LIMIT: int = 1000

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    def webhook_settings(self) -> WebhookSettings:
        return WebhookSettings(
            timeout_seconds=self.WEBHOOK_TIMEOUT_SECONDS,
            max_attempts=self.WEBHOOK_MAX_ATTEMPTS,
            backoff_base_seconds=self.WEBHOOK_BACKOFF_BASE_SECONDS,
            user_agent=self.WEBHOOK_USER_AGENT,
            response_body_limit=self.WEBHOOK_RESPONSE_BODY_LIMIT,
        )


settings = Settings()
