"""
Configuration management for the sitegen client
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    # Generation server
    api_base_url: str = "http://localhost:8000"
    generate_path: str = "/api/generate-website"
    update_path: str = "/api/update-website"

    # Timeouts (seconds)
    connect_timeout: float = 10.0
    request_timeout: float = 120.0
    # The stream has no heartbeat guarantee, so this bounds the wait per chunk
    stream_idle_timeout: float = 300.0

    # Input validation
    min_description_length: int = 10
    min_instruction_length: int = 5

    # Progress display
    progress_tick_interval: float = 0.1
    progress_increment: float = 0.5

    # Updates
    # When True, proposals carry the generated folder path and the server saves
    # the edited pages as part of the same call.
    autosave_on_propose: bool = True

    # Environment
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "SITEGEN_"
        case_sensitive = False
        extra = "ignore"

    @property
    def generate_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}{self.generate_path}"

    @property
    def update_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}{self.update_path}"


# Global settings instance
settings = Settings()
