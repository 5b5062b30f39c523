"""
Configuration management using Pydantic models loaded from YAML.
"""

from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import SessionPolicy
from .domain.provider import ProviderKind, ProviderProfile, ProviderStatus
from .domain.schedule import (
    DEFAULT_TIMEZONE,
    WEEKDAY_NAMES,
    DateOverride,
    DaySchedule,
    WeeklySchedule,
    Window,
    parse_time_of_day,
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class WindowConfig(BaseModel):
    """A working window as ``HH:MM`` strings."""
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, value: str) -> str:
        parse_time_of_day(value)
        return value

    def to_window(self) -> Window:
        return Window.parse(self.start, self.end)


class DayConfig(BaseModel):
    """Working hours of one weekday."""
    available: bool = True
    windows: List[WindowConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_windows(self) -> "DayConfig":
        """Reject inverted or overlapping windows early."""
        self.to_day_schedule()
        return self

    def to_day_schedule(self) -> DaySchedule:
        return DaySchedule(
            available=self.available,
            windows=tuple(w.to_window() for w in self.windows),
        )


class OverrideConfig(BaseModel):
    """Custom availability for a single date."""
    date: date
    available: bool = True
    windows: List[WindowConfig] = Field(default_factory=list)
    reason: str = ""

    def to_override(self) -> DateOverride:
        return DateOverride(
            date=self.date,
            available=self.available,
            windows=tuple(w.to_window() for w in self.windows) if self.available else (),
            reason=self.reason,
        )


class DefaultsConfig(BaseModel):
    """Default session settings applied to every provider."""
    session_duration: int = 30
    buffer_time: int = 15
    min_duration: int = 15
    max_duration: int = 120
    max_buffer: int = 60
    lookahead_days: int = 7

    @field_validator("session_duration", "min_duration", "max_duration", "lookahead_days")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    @field_validator("buffer_time", "max_buffer")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("value must not be negative")
        return value

    @model_validator(mode="after")
    def validate_bounds(self) -> "DefaultsConfig":
        """Ensure the default policy itself is valid."""
        self.to_policy()
        return self

    def to_policy(
        self,
        session_duration: Optional[int] = None,
        buffer_time: Optional[int] = None,
    ) -> SessionPolicy:
        return SessionPolicy(
            session_duration=session_duration if session_duration is not None else self.session_duration,
            buffer_time=buffer_time if buffer_time is not None else self.buffer_time,
            min_duration=self.min_duration,
            max_duration=self.max_duration,
            max_buffer=self.max_buffer,
        )


class StoreConfig(BaseModel):
    """Where reservations come from."""
    base_url: Optional[str] = None
    api_token: Optional[str] = None
    timeout_seconds: float = 30
    fixture_path: Optional[Path] = None

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return value


class ProviderConfig(BaseModel):
    """Provider (astrologer or priest) configuration."""
    id: str
    name: str
    kind: ProviderKind = ProviderKind.ASTROLOGER
    is_available: bool = True
    status: ProviderStatus = ProviderStatus.ACTIVE
    timezone: Optional[str] = None
    working_hours: Dict[str, DayConfig] = Field(default_factory=dict)
    break_time: Optional[WindowConfig] = None
    overrides: List[OverrideConfig] = Field(default_factory=list)
    session_duration: Optional[int] = None
    buffer_time: Optional[int] = None

    @field_validator("working_hours")
    @classmethod
    def validate_weekdays(cls, value: Dict[str, DayConfig]) -> Dict[str, DayConfig]:
        """Weekday keys are English day names; missing days are closed."""
        normalized: Dict[str, DayConfig] = {}
        for day, config in value.items():
            key = day.strip().lower()
            if key not in WEEKDAY_NAMES:
                raise ValueError(f"Invalid day of week: {day}")
            if key in normalized:
                raise ValueError(f"Duplicate working hours for {key}")
            normalized[key] = config
        return normalized

    @field_validator("overrides")
    @classmethod
    def validate_overrides(cls, value: List[OverrideConfig]) -> List[OverrideConfig]:
        seen: set[date] = set()
        for override in value:
            if override.date in seen:
                raise ValueError(f"Duplicate override for {override.date}")
            seen.add(override.date)
        return value

    def build_schedule(self, default_timezone: str = DEFAULT_TIMEZONE) -> WeeklySchedule:
        days = tuple(
            self.working_hours[name].to_day_schedule() if name in self.working_hours else DaySchedule()
            for name in WEEKDAY_NAMES
        )
        return WeeklySchedule(
            days=days,
            timezone=self.timezone or default_timezone,
            overrides=tuple(o.to_override() for o in self.overrides),
            break_window=self.break_time.to_window() if self.break_time else None,
        )

    def to_profile(
        self,
        defaults: DefaultsConfig,
        default_timezone: str = DEFAULT_TIMEZONE,
    ) -> ProviderProfile:
        """
        Build the domain profile.

        Raises:
            InvalidInputError: If the schedule or session settings are invalid
        """
        return ProviderProfile(
            id=self.id,
            name=self.name,
            schedule=self.build_schedule(default_timezone),
            policy=defaults.to_policy(self.session_duration, self.buffer_time),
            kind=self.kind,
            is_available=self.is_available,
            status=self.status,
        )


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = DEFAULT_TIMEZONE
    log_level: str = "WARNING"
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    providers: List[ProviderConfig] = Field(default_factory=list)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value}")
        return level

    @field_validator("providers")
    @classmethod
    def validate_providers(cls, value: List[ProviderConfig]) -> List[ProviderConfig]:
        """Ensure provider ids are unique."""
        seen_ids: set[str] = set()
        for provider in value:
            key = provider.id.lower()
            if key in seen_ids:
                raise ValueError(f"Duplicate provider id detected: {provider.id}")
            seen_ids.add(key)
        return value

    @model_validator(mode="after")
    def validate_profiles(self) -> "AppConfig":
        """Build every profile once so schedule errors surface at load time."""
        self.build_profiles()
        return self

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

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

        return cls(**data)

    def find_provider(self, provider_id: str) -> Optional[ProviderConfig]:
        """Find a provider by id (case-insensitive)."""
        for provider in self.providers:
            if provider.id.lower() == provider_id.lower():
                return provider
        return None

    def build_profiles(self) -> List[ProviderProfile]:
        return [p.to_profile(self.defaults, self.timezone) for p in self.providers]


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
