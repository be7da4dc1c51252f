"""Configuration management using Pydantic for validation."""

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_theme_categories() -> Dict[str, List[str]]:
    # Order matters: the first category with a matching keyword wins.
    return {
        "Connection": ["connection", "relationship", "friend", "community", "together", "bond"],
        "Support": ["support", "help", "care", "assist", "service", "provide"],
        "Journey": ["journey", "experience", "path", "story", "life", "change"],
        "Dignity": ["dignity", "respect", "value", "worth", "human", "person"],
        "Hope": ["hope", "future", "positive", "opportunity", "better", "aspiration"],
        "Challenge": ["challenge", "difficult", "struggle", "hard", "problem", "issue"],
        "Impact": ["impact", "difference", "effect", "influence", "transform", "change"],
    }


class NormalizationConfig(BaseSettings):
    """Entity normalization configuration."""

    excerpt_length: int = Field(default=200, ge=1)
    ellipsis: str = "..."
    strip_bracketed: bool = False
    theme_name_max_length: int = Field(default=100, ge=1)
    theme_name_fallback_length: int = Field(default=50, ge=1)
    theme_name_connectives: List[str] = Field(
        default_factory=lambda: ["through", "by", "via", "with", "for"]
    )
    theme_categories: Dict[str, List[str]] = Field(default_factory=_default_theme_categories)
    default_category: str = "Other"
    project_filter: Optional[str] = None

    @field_validator("theme_name_connectives")
    @classmethod
    def validate_connectives(cls, v: List[str]) -> List[str]:
        """Require at least one connective word."""
        cleaned = [word.strip() for word in v if word and word.strip()]
        if not cleaned:
            raise ValueError("theme_name_connectives must contain at least one word")
        return cleaned


class PropagationOverrides(BaseSettings):
    """Optional per-rule overrides on top of the primary-entity defaults."""

    story_from_media: Optional[bool] = None
    story_from_storytellers: Optional[bool] = None
    storyteller_from_media: Optional[bool] = None
    storyteller_from_stories: Optional[bool] = None


class ResolutionConfig(BaseSettings):
    """Relationship resolution configuration."""

    primary_entity: Literal["media", "storyteller"] = "media"
    propagation: PropagationOverrides = Field(default_factory=PropagationOverrides)


class AnalyticsConfig(BaseSettings):
    """Analytics aggregation configuration."""

    top_themes: int = Field(default=10, ge=1)
    top_themes_by_storytellers: int = Field(default=20, ge=1)
    top_theme_pairs: int = Field(default=20, ge=1)


class OutputConfig(BaseSettings):
    """View output configuration."""

    output_dir: Path = Field(default=Path("public/data"))
    write_workers: int = Field(default=8, ge=1)
    indent: Optional[int] = 2


class PipelineConfig(BaseSettings):
    """Pipeline configuration."""

    version: str = "4.0"


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    level: str = "INFO"
    file: str = ""
    rotation: str = "10 MB"
    retention: str = "1 week"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level name."""
        upper = v.upper()
        valid = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        if upper not in valid:
            raise ValueError(f"Invalid log level '{v}'. Must be one of {sorted(valid)}.")
        return upper


class Config(BaseSettings):
    """Main configuration class."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STORYLEDGER_",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    # Configuration sections
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    resolution: ResolutionConfig = Field(default_factory=ResolutionConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Data paths
    raw_data_path: Path = Field(default=Path("public/data/raw-airtable-data.json"))

    @staticmethod
    def _deep_merge_dict(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Deep-merge two dicts (overrides win).

        This is used to apply environment-derived overrides on top of YAML defaults.
        """
        merged: Dict[str, Any] = dict(base)
        for key, value in overrides.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = Config._deep_merge_dict(merged[key], value)
            else:
                merged[key] = value
        return merged

    @classmethod
    def from_yaml(cls, yaml_path: str | Path = "config/config.yaml") -> "Config":
        """Load configuration from YAML file and environment variables.

        Precedence (highest to lowest):
        1) Environment variables / .env
        2) YAML file
        3) Model defaults

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML file is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(yaml_path) as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError(f"YAML config root must be a mapping/dict: {yaml_path}")

        # Only *non-default* env values are layered on top of the YAML file.
        env_overrides = cls().model_dump(exclude_defaults=True)
        merged = cls._deep_merge_dict(yaml_config, env_overrides)

        return cls(**merged)

    def validate_config(self) -> None:
        """Validate cross-section configuration settings.

        Raises:
            ValueError: If configuration is invalid
        """
        if not self.normalization.theme_categories:
            raise ValueError("normalization.theme_categories must define at least one category")

        for category, keywords in self.normalization.theme_categories.items():
            if not keywords:
                raise ValueError(f"Theme category '{category}' has no keywords")

        if self.normalization.theme_name_fallback_length > self.normalization.theme_name_max_length:
            raise ValueError(
                "normalization.theme_name_fallback_length cannot exceed theme_name_max_length"
            )


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        Global Config instance

    Raises:
        RuntimeError: If configuration hasn't been initialized
    """
    global _config
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call load_config() first.")
    return _config


def load_config(yaml_path: str | Path = "config/config.yaml") -> Config:
    """Load and validate configuration.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        Loaded and validated Config instance
    """
    global _config
    _config = Config.from_yaml(yaml_path)
    _config.validate_config()
    return _config


def reset_config() -> None:
    """Reset global configuration (mainly for testing)."""
    global _config
    _config = None
