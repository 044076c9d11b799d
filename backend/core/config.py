from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Gemini API settings
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"
    gemini_temperature: float = 0.7
    generation_timeout: float = 60.0  # seconds

    # Presentation defaults
    default_theme: str = "light"
    default_slide_count: int = 6
    min_slides: int = 4
    max_slides: int = 10
    offline_mode: bool = False  # Use the built-in outline instead of Gemini

    # Image settings
    enable_images: bool = True
    image_download_timeout: int = 10
    
    # Export settings
    branding_label: str = "WebMind AI"
    
    # Server settings
    host: str = "0.0.0.0"
    port: int = 8001
    debug: bool = False
    
    # Session store
    session_ttl: int = 3600  # seconds of inactivity before a session is dropped
    max_sessions: int = 500

    # Other settings
    allowed_origins: str = "*"
    log_file: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = False  # Allow case-insensitive environment variables

settings = Settings()
