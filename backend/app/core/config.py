from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    APP_NAME: str = "ClinicDesk"
    VERSION: str = "1.0.0"
    SECRET_KEY: str = "change-me-in-production-use-strong-random-key"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    DATABASE_URL: str = "sqlite:///./clinicdesk.db"

    # The admin account is environment-defined, not stored in the database
    ADMIN_EMAIL: str = "admin@clinicdesk.local"
    ADMIN_PASSWORD: str = "change-me"

    # Profile image uploads
    UPLOAD_DIR: Optional[str] = None  # defaults to backend/uploads
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    UPLOAD_URL_PREFIX: str = "/uploads"

    SEED_DEMO_DATA: bool = True
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        env_file = ".env"


settings = Settings()
