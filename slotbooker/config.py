"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from .domain.slot_calculator import SlotCalculator


class SchedulingConfig(BaseModel):
    """Business rules for slot generation."""
    lead_time_minutes: int = 30
    slot_granularity_minutes: int = 15
    default_service_minutes: int = 30

    @field_validator("slot_granularity_minutes", "default_service_minutes")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure grid step and fallback duration are positive."""
        if value <= 0:
            raise ValueError(f"Value must be greater than zero, got {value}")
        return value

    @field_validator("lead_time_minutes")
    @classmethod
    def validate_lead_time(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"lead_time_minutes cannot be negative, got {value}")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/Madrid"
    data_file: Path = Path("bookings.json")
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        A relative ``data_file`` is resolved against the config file's
        directory.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)
        if not config.data_file.is_absolute():
            config.data_file = config_path.parent / config.data_file

        return config

    def build_slot_calculator(self) -> SlotCalculator:
        """Create a SlotCalculator with the configured rules."""
        return SlotCalculator(
            timezone=self.timezone,
            lead_time_minutes=self.scheduling.lead_time_minutes,
            slot_granularity_minutes=self.scheduling.slot_granularity_minutes,
            default_service_minutes=self.scheduling.default_service_minutes,
        )


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
