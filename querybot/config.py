"""Configuration for QueryBot using Pydantic settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Ollama defaults
DEFAULT_OLLAMA_HOST = "localhost"
DEFAULT_OLLAMA_PORT = 11434
DEFAULT_MODEL = "mistral"


class InferenceSettings(BaseSettings):
    """Ollama inference service configuration."""

    model_config = SettingsConfigDict(env_prefix="OLLAMA_", env_file=".env", extra="ignore")

    host: str = Field(default=DEFAULT_OLLAMA_HOST, description="Host running the Ollama API")
    port: int = Field(default=DEFAULT_OLLAMA_PORT, ge=1, le=65535)
    model: str = Field(default=DEFAULT_MODEL, description="Model used for generation")
    timeout: float = Field(default=120.0, gt=0, description="Request timeout in seconds")

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def generate_url(self) -> str:
        return f"{self.base_url}/api/generate"


class BrowserSettings(BaseSettings):
    """Browser automation configuration."""

    model_config = SettingsConfigDict(env_prefix="QUERYBOT_BROWSER_", env_file=".env", extra="ignore")

    headless: bool = Field(default=False)
    window_width: int = Field(default=1280, gt=0)
    window_height: int = Field(default=800, gt=0)
    search_url: str = Field(default="https://www.google.com")
    search_timeout: float = Field(default=180.0, gt=0, description="Page timeout during search, seconds")
    page_timeout: float = Field(default=120.0, gt=0, description="Default page timeout, seconds")
    element_timeout: float = Field(default=30.0, gt=0, description="Wait for search box/results, seconds")


class ServerSettings(BaseSettings):
    """HTTP front end configuration."""

    model_config = SettingsConfigDict(env_prefix="QUERYBOT_", env_file=".env", extra="ignore")

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)
    log_level: str = Field(default="INFO")


class Settings(BaseModel):
    """All QueryBot settings."""

    inference: InferenceSettings = Field(default_factory=InferenceSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings, loaded once from the environment."""
    return Settings()
