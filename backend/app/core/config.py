from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    APP_NAME: str = "HPM Patient Service"
    VERSION: str = "1.0.0"

    DATABASE_URL: str = "sqlite:///./hpm_patients.db"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # Audit identity comes from the X-User-ID header; this is used when it is absent
    DEFAULT_ACTOR: str = "SYSTEM"
    AUDIT_ENABLED: bool = True

    # Patient ID allocation
    ID_ALLOCATION_MAX_ATTEMPTS: int = 3
    ID_ALLOCATION_BACKOFF_SECONDS: float = 0.05  # doubled on each retry
    ID_ISOLATION_LEVEL: str = "SERIALIZABLE"

    # Search pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    class Config:
        env_file = ".env"


settings = Settings()
