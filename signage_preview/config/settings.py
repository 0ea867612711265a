# config/settings.py
from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Signage Template Preview"

    # Media assets are relative paths served by the content API
    API_URL: str = "http://localhost:3000"
    REQUEST_TIMEOUT: int = 30

    # Preview canvas
    PREVIEW_SCALE: float = 0.5
    DEFAULT_BACKGROUND_COLOR: str = "#ffffff"
    PREVIEW_FONT_PATH: Optional[str] = None
    SAVE_FORMAT: str = "png"

    # QR encoding runs off the event loop
    QR_MAX_WORKERS: int = 2

    # Env
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
