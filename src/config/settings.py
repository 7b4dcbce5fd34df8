from __future__ import annotations

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.constants import SECTION_SCOPE_MARKER, STATE_KEY_DELIMITER

# Load .env once at module import; all BaseSettings subclasses will see the env vars
load_dotenv()

_BANDS = {"base", "tool", "modal", "control", "highlight", "critical"}


class ResolverSettings(BaseSettings):
    """Precedence resolver settings. Env vars prefixed with RESOLVER_."""

    model_config = SettingsConfigDict(env_prefix="RESOLVER_")

    default_posture: str = "deny"
    # comma-separated tool ids; only honoured when default_posture == "allow"
    allow_by_default_tools: str = ""
    include_skipped_steps: bool = True

    @field_validator("default_posture")
    @classmethod
    def _validate_posture(cls, v: str) -> str:
        allowed = {"deny", "allow"}
        if v not in allowed:
            msg = f"RESOLVER_DEFAULT_POSTURE must be one of {allowed} (got '{v}')"
            raise ValueError(msg)
        return v

    @property
    def allow_by_default(self) -> frozenset[str]:
        if self.default_posture != "allow":
            return frozenset()
        return frozenset(
            part.strip() for part in self.allow_by_default_tools.split(",") if part.strip()
        )


class CatalogSettings(BaseSettings):
    """Tool catalog settings. Env vars prefixed with CATALOG_."""

    model_config = SettingsConfigDict(env_prefix="CATALOG_")

    register_builtins: bool = True
    freeze_after_builtins: bool = False


class RuntimeSettings(BaseSettings):
    """Runtime coordinator settings. Env vars prefixed with RUNTIME_."""

    model_config = SettingsConfigDict(env_prefix="RUNTIME_")

    default_band: str = "modal"
    tool_load_timeout_s: float = Field(30.0, gt=0)

    @field_validator("default_band")
    @classmethod
    def _validate_band(cls, v: str) -> str:
        if v not in _BANDS:
            msg = f"RUNTIME_DEFAULT_BAND must be one of {sorted(_BANDS)} (got '{v}')"
            raise ValueError(msg)
        return v


class StateSettings(BaseSettings):
    """Scoped state store settings. Env vars prefixed with STATE_."""

    model_config = SettingsConfigDict(env_prefix="STATE_")

    section_scope_marker: str = SECTION_SCOPE_MARKER

    @field_validator("section_scope_marker")
    @classmethod
    def _validate_marker(cls, v: str) -> str:
        if not v:
            raise ValueError("section_scope_marker must be non-empty")
        if STATE_KEY_DELIMITER in v:
            raise ValueError(
                f"section_scope_marker must not contain the key delimiter "
                f"'{STATE_KEY_DELIMITER}' (got '{v}')"
            )
        return v


class LoggingSettings(BaseSettings):
    """Logging settings. Env vars prefixed with LOG_."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    json_output: bool = True
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _validate_level(cls, v: str) -> str:
        v = v.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if v not in allowed:
            msg = f"LOG_LEVEL must be one of {sorted(allowed)} (got '{v}')"
            raise ValueError(msg)
        return v


class Settings(BaseSettings):
    """Root settings composing all sub-configurations."""

    model_config = SettingsConfigDict(extra="ignore")

    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)
    state: StateSettings = Field(default_factory=StateSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def get_settings() -> Settings:
    """Load and validate settings. Raises ValidationError on invalid values."""
    return Settings()
