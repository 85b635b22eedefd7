"""Runtime configuration for the voice queue."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="VOICE_QUEUE_", env_file=".env", extra="ignore")

    app_name: str = "voice-queue"
    log_level: str = "INFO"
    language: str = Field(default="en_US", description="Locale selected once the speech engine is ready.")
    default_rate: float = 1.0
    default_pitch: float = 1.0
    default_volume: float = 0.5
    voice_id: str | None = None
    base_words_per_minute: int = Field(
        default=200,
        description="Words per minute that a rate multiplier of 1.0 maps to on pyttsx3.",
    )


settings = Settings()
