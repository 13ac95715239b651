"""SchemaIR settings, read from ``SCHEMAIR_*`` environment variables and .env files."""

from pathlib import Path
from typing import Iterator, List, Optional
from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Directories searched upwards from each starting point
ENV_SEARCH_DEPTH = 4


def _env_candidates(starts: List[Path]) -> Iterator[Path]:
    for start in starts:
        directory = start.resolve()
        for _ in range(ENV_SEARCH_DEPTH):
            yield directory / ".env"
            if directory.parent == directory:
                break
            directory = directory.parent


def find_and_load_env_file() -> Optional[str]:
    """
    Load the nearest .env file into the process environment.

    The working directory is searched first, then the source checkout root.
    Variables already set in the environment are not overridden.

    Returns:
        Path of the loaded file, or None if there is none
    """
    checkout_root = Path(__file__).parent.parent.parent.parent.parent
    for env_path in _env_candidates([Path.cwd(), checkout_root]):
        if env_path.is_file():
            load_dotenv(env_path, override=False)
            return str(env_path)
    return None


class Settings(BaseSettings):
    """Configuration; every field maps to ``SCHEMAIR_<FIELD>``."""

    # Hosted OpenAI endpoint
    openai_api_key: Optional[str] = None
    model_name: Optional[str] = None
    # Self-hosted OpenAI-compatible endpoint, used when no API key is set
    llm_url: Optional[str] = None
    model: Optional[str] = None
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)

    # Transport
    llm_timeout: float = Field(default=600.0, gt=0)  # seconds per request
    llm_max_retries: int = Field(default=3, ge=1)
    llm_retry_delay: float = Field(default=5.0, ge=0)  # first backoff delay, doubles per retry

    # Schema generation
    agent_max_retries: int = Field(default=3, ge=1)  # malformed-reply re-prompts per proposal
    max_repair_attempts: int = Field(default=2, ge=0)  # violation-driven re-proposals per component
    max_workers: int = Field(default=4, ge=1)
    output_dir: Path = Path("output")

    log_level: str = "INFO"
    log_file: Optional[Path] = None

    model_config = SettingsConfigDict(
        env_prefix="SCHEMAIR_",
        case_sensitive=False,
        extra="ignore",
        protected_namespaces=(),
    )

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
        return level

    @model_validator(mode="after")
    def _prepare_log_directory(self) -> "Settings":
        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
        return self

    @property
    def uses_local_llm(self) -> bool:
        """True when requests go to ``llm_url`` rather than the OpenAI API."""
        return not (self.openai_api_key and self.model_name) and bool(self.llm_url and self.model)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Process-wide settings, built on first use after loading .env."""
    global _settings
    if _settings is None:
        find_and_load_env_file()
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget the cached settings; the next get_settings() rereads the environment."""
    global _settings
    _settings = None
