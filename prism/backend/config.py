"""Application configuration using pydantic-settings."""

import json
from pathlib import Path

from pydantic_settings import BaseSettings


class ConfigurationError(RuntimeError):
    """Raised when a run cannot start because required settings are missing."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    ADO_PAT: str = ""
    APPSETTINGS_PATH: str = str(Path(__file__).parent / "appsettings.json")
    ADO_COLLECTION_URL: str = "https://dev.azure.com/contoso"
    ADO_PROJECT: str = "One"
    ADO_REPOSITORY: str = "EngSys-MDA-AMCS"

    ANTHROPIC_API_KEY: str = ""
    CLASSIFIER_MODEL: str = "haiku"
    CLASSIFIER_CONCURRENCY: int = 8

    DAYS_BACK: int = 7
    MAX_PRS: int = 15
    BATCH_SIZE: int = 10
    BATCH_DELAY_SECONDS: float = 5.0
    MIN_COMMENT_LENGTH: int = 20
    BOILERPLATE_MARKERS: list[str] = [
        "Ownership Enforcer",
        "Diff coverage",
        "AI feedback",
        "Coverage",
        "PR description",
        "AI description",
        "PRAssistant",
    ]

    OUTPUT_PATH: str = str(Path(__file__).parent / "important_comments.md")
    THREAD_LOG_DIR: str = ""
    STATIC_DIR: str = str(Path(__file__).parent / "static")

    REFRESH_DEBOUNCE_SECONDS: float = 300.0
    REFRESH_TIMEOUT_SECONDS: float = 120.0

    HOSTED: bool = False
    PORT: int = 5000

    model_config = {"env_file": str(Path(__file__).parent / ".env"), "env_file_encoding": "utf-8"}

    @property
    def host(self) -> str:
        return "0.0.0.0" if self.HOSTED else "127.0.0.1"


settings = Settings()


def load_personal_access_token() -> str:
    """Return the review API token from ADO_PAT, falling back to appsettings.json's AdoPat."""
    if settings.ADO_PAT:
        return settings.ADO_PAT

    path = Path(settings.APPSETTINGS_PATH)
    if path.is_file():
        try:
            token = json.loads(path.read_text()).get("AdoPat", "")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"{path} is not valid JSON: {e}") from e
        if token:
            return token

    raise ConfigurationError("ADO_PAT environment variable or appsettings.json AdoPat not set")
