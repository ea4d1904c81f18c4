from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    REDIS_URL: str = "redis://localhost:6379/0"

    LEAD_WEBHOOK_URL: str = "https://hooks.zapier.com/hooks/catch/lead/"
    ORDER_WEBHOOK_URL: str = "https://hooks.zapier.com/hooks/catch/order/"
    # Alternate form of the lead hook used for the single 502/503 retry
    LEAD_WEBHOOK_RETRY_URL: Optional[str] = None
    ATTRIBUTION_URL: str = "https://crm.example.com/api/crm/track-lead-source"
    ATTRIBUTION_TIMEOUT: int = 10

    WEBHOOK_TIMEOUT: int = 15
    WEBHOOK_RETRY_DELAY: float = 2.0
    WEBHOOK_USER_AGENT: str = "Auto-Transport-Quotes/1.0"
    DIAGNOSTICS_BUFFER_SIZE: int = 20

    RATE_LIMIT: int = 100
    RATE_LIMIT_WINDOW: int = 600  # 10 minutes

    PRICE_CACHE_TTL: int = 60   # 60 seconds
    DISTANCE_CACHE_TTL: int = 86400  # 24 hours

    MAPQUEST_API_KEY: Optional[str] = None
    MAPQUEST_URL: str = "https://www.mapquestapi.com/directions/v2/route"
    DISTANCE_TIMEOUT: int = 8

    LOCATION_DATA_PATH: str = "./data/city-data.json"
    LOCATION_CACHE_SIZE: int = 500

    API_TITLE: str = "Auto Transport Quote Service"
    API_DESCRIPTION: str = "Shipping quotes for vehicles and lead relay to CRM webhooks"
    API_VERSION: str = "1.0.0"

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    @property
    def lead_retry_url(self) -> str:
        return self.LEAD_WEBHOOK_RETRY_URL or self.LEAD_WEBHOOK_URL.rstrip("/")

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
