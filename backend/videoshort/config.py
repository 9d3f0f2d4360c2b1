from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # API Keys
    ELEVEN_API_KEY: str = ""

    # Rendering service, e.g. https://ffmpeg.example.com
    FFMPEG_SERVICE_URL: str = ""

    # Cloudflare R2 settings
    R2_ACCESS_KEY_ID: str = ""
    R2_SECRET_ACCESS_KEY: str = ""
    R2_BUCKET_NAME: str = "generated-videos"
    R2_ENDPOINT_URL: str = ""  # Format: https://<account_id>.r2.cloudflarestorage.com
    R2_REGION: str = "auto"

    # Content store
    DATABASE_PATH: str = "./content.db"

    # Base URLs and endpoints
    ELEVEN_BASE_URL: str = "https://api.elevenlabs.io"

    # Model settings
    ELEVEN_MODEL: str = "eleven_multilingual_v2"

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True
    )

    def missing(self) -> List[str]:
        """Names of required settings that are empty"""
        required = (
            "DATABASE_PATH",
            "ELEVEN_API_KEY",
            "FFMPEG_SERVICE_URL",
            "R2_ENDPOINT_URL",
            "R2_ACCESS_KEY_ID",
            "R2_SECRET_ACCESS_KEY",
            "R2_BUCKET_NAME",
        )
        return [name for name in required if not getattr(self, name)]


# Create global settings instance
settings = Settings()
