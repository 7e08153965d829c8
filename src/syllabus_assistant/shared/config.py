"""
Configuration Module - Load and validate application settings.
==============================================================

Loads configuration from:
1. config/settings.yaml (defaults)
2. Environment variables from .env file
3. Environment variables from system

Environment variables override YAML defaults. The resulting Settings
object is frozen: it is built once at startup and handed to the
assistant components, which never read configuration globally.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file early
load_dotenv()


# Find project root (where pyproject.toml is located)
def _find_project_root() -> Path:
    """Find the project root directory by looking for pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    # Fallback to current working directory
    return Path.cwd()


PROJECT_ROOT = _find_project_root()
CONFIG_DIR = PROJECT_ROOT / "config"
DEFAULT_CONFIG_FILE = CONFIG_DIR / "settings.yaml"

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_COURSE_PAGE = "https://westernu.brightspace.com/d2l/home/130641"
DEFAULT_ASSISTANT_URL = "https://example.edu/ebo-essay-assistant"
DEFAULT_CONTENT_FILE = "syllabus.md"
DEFAULT_LESSON_PATTERN = (
    r"https://westernu\.brightspace\.com/d2l/le/lessons/\d+/(?:lessons|units|topics)/\d+"
)


# ─────────────────────────────────────────────────────────────────────────────
# Nested Configuration Models
# ─────────────────────────────────────────────────────────────────────────────


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class LinksConfig(_FrozenModel):
    """Reference-link extraction settings."""

    lesson_pattern: str = DEFAULT_LESSON_PATTERN


class ClassificationConfig(_FrozenModel):
    """Intent classification settings."""

    # "due" routes only due/deadline/late/penalty questions to the extractor,
    # "logistics" also routes worth/weighting/availability questions.
    deterministic_intent: Literal["due", "logistics"] = "due"
    source_quality_cues: bool = True


class ExtractionConfig(_FrozenModel):
    """Deterministic due-block extraction limits."""

    max_paragraph_lines: int = Field(default=12, ge=1)
    max_continuation_lines: int = Field(default=8, ge=0)


class GenerationConfig(_FrozenModel):
    """Completion-service settings."""

    temperature: Optional[float] = None
    timeout: float = 60.0
    strip_inline_links: bool = True
    context_scope: Literal["sections", "document"] = "sections"


class AnalyticsConfig(_FrozenModel):
    """Analytics sink settings."""

    status_trailer: bool = True
    timeout: float = 10.0


class RedirectConfig(_FrozenModel):
    """Redirect message settings."""

    assistant_name: str = "EBO & Essay Assistant"


class ServerConfig(_FrozenModel):
    """HTTP server settings."""

    host: str = "0.0.0.0"
    port: int = 8000


class LoggingConfig(_FrozenModel):
    """Logging settings."""

    level: str = "INFO"
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    rich_console: bool = True
    file: str = ""


# ─────────────────────────────────────────────────────────────────────────────
# Main Settings Class
# ─────────────────────────────────────────────────────────────────────────────


class Settings(BaseSettings):
    """
    Main application settings.

    Loads from:
    1. config/settings.yaml (defaults)
    2. Environment variables

    Environment variables override YAML settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # Credentials (from environment only)
    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    qualtrics_api_token: str = Field(default="", validation_alias="QUALTRICS_API_TOKEN")
    qualtrics_survey_id: str = Field(default="", validation_alias="QUALTRICS_SURVEY_ID")
    qualtrics_datacenter: str = Field(default="", validation_alias="QUALTRICS_DATACENTER")

    # Top-level options
    openai_model: str = Field(default=DEFAULT_MODEL, validation_alias="OPENAI_MODEL")
    course_page: str = Field(default=DEFAULT_COURSE_PAGE, validation_alias="COURSE_PAGE")
    assistant_url: str = Field(default=DEFAULT_ASSISTANT_URL, validation_alias="ASSISTANT_URL")
    content_file: str = Field(default=DEFAULT_CONTENT_FILE, validation_alias="CONTENT_FILE")
    log_level: Optional[str] = Field(default=None, validation_alias="LOG_LEVEL")

    # Nested configurations (from YAML)
    links: LinksConfig = Field(default_factory=LinksConfig)
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    redirect: RedirectConfig = Field(default_factory=RedirectConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator(
        "openai_api_key",
        "qualtrics_api_token",
        "qualtrics_survey_id",
        "qualtrics_datacenter",
        mode="before",
    )
    @classmethod
    def validate_credential(cls, v: Any) -> str:
        """Allow missing credentials; the features they unlock stay disabled."""
        if v is None:
            return ""
        return str(v).strip()

    @property
    def project_root(self) -> Path:
        """Get the project root directory."""
        return PROJECT_ROOT

    @property
    def analytics_enabled(self) -> bool:
        """Analytics is only active when all three credentials are present."""
        return bool(
            self.qualtrics_api_token and self.qualtrics_survey_id and self.qualtrics_datacenter
        )

    @property
    def has_completion_credentials(self) -> bool:
        """Whether the generative fallback path can be served."""
        return bool(self.openai_api_key)

    def resolve_content_path(self) -> Path:
        """
        Resolve the source document path.

        Absolute paths are used as-is. Relative paths are tried against the
        working directory first, then the project root.
        """
        path = Path(self.content_file)
        if path.is_absolute() or path.exists():
            return path
        return PROJECT_ROOT / path

    def get_effective_log_level(self) -> str:
        """Get the effective log level (env override or config)."""
        if self.log_level:
            return self.log_level.upper()
        return self.logging.level.upper()


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
        return data if data else {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge override into base, recursing into nested dicts."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _create_settings(config_path: Optional[Path] = None) -> Settings:
    """Create settings instance by merging YAML defaults with environment."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    yaml_config = _load_yaml_config(config_path)

    # Only the values the environment actually supplied may override YAML
    from_env = Settings()
    env_values = from_env.model_dump(exclude_unset=True)

    return Settings(**_deep_merge(yaml_config, env_values))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the singleton settings instance.

    Returns:
        Settings instance with merged configuration

    Example:
        >>> settings = get_settings()
        >>> print(settings.openai_model)
        gpt-4o-mini
    """
    return _create_settings()


def reload_settings() -> Settings:
    """
    Force reload of settings (clears cache).

    Returns:
        Fresh Settings instance
    """
    get_settings.cache_clear()
    return get_settings()
