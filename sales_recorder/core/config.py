"""
Application configuration settings.
"""
from typing import List, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Settings(BaseSettings):
    # Application
    PROJECT_NAME: str = "Sales Call Recorder"
    PROJECT_VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    # CORS (comma separated)
    CORS_ORIGINS: str = "*"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./sales_platform.db"

    # File uploads
    UPLOAD_DIR: str = "./uploads"
    MAX_UPLOAD_SIZE_MB: int = 100

    # Twilio
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_API_KEY: Optional[str] = None
    TWILIO_API_SECRET: Optional[str] = None
    TWILIO_APP_SID: Optional[str] = None
    TWILIO_PHONE_NUMBER: Optional[str] = None
    TWILIO_CONFERENCE_NUMBER: str = "+1-555-RECORD"
    RECORDING_CALLBACK_URL: Optional[str] = None
    VOICE_TOKEN_TTL: int = 3600

    # OpenAI
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4"
    OPENAI_TRANSCRIPTION_MODEL: str = "whisper-1"

    # Monitoring
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("VOICE_TOKEN_TTL")
    @classmethod
    def validate_token_ttl(cls, v: int) -> int:
        if not 1 <= v <= 86400:
            raise ValueError("VOICE_TOKEN_TTL must be between 1 and 86400 seconds")
        return v

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    @property
    def openai_configured(self) -> bool:
        return bool(self.OPENAI_API_KEY)

    @property
    def twilio_configured(self) -> bool:
        """Account credentials plus a signing key pair are present."""
        return bool(
            self.TWILIO_ACCOUNT_SID
            and self.TWILIO_AUTH_TOKEN
            and self.TWILIO_API_KEY
            and self.TWILIO_API_SECRET
        )


# Create settings instance
settings = Settings()
