from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API Settings
    PROJECT_NAME: str = "Contract Farming API"
    API_PREFIX: str = "/api"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Contract farming marketplace between farmers and buyers"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # MongoDB (must be a replica set, lifecycle writes use transactions)
    MONGODB_URI: str = "mongodb://localhost:27017/?replicaSet=rs0"
    MONGODB_DB: str = "contract_farming"

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # JWT
    JWT_SECRET: str = "change-this-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    RESET_TOKEN_EXPIRE_MINUTES: int = 15

    # OTP
    OTP_EXPIRE_MINUTES: int = 10

    # File Upload
    MAX_FILE_SIZE: int = 5 * 1024 * 1024
    MAX_LISTING_IMAGES: int = 5
    UPLOAD_DIR: str = "uploads"

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
