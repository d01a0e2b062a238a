from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from magick_bridge.core.constants import (
    DEFAULT_CONVERSION_TIMEOUT_SECONDS,
    DEFAULT_DETECT_TIMEOUT_SECONDS,
    DEFAULT_MAX_INPUT_SIZE_BYTES,
    DEFAULT_MAX_PIXEL_DIMENSION,
    DEFAULT_PREFERENCES_DIR,
    DEFAULT_THREAD_LIMIT,
    PREFERENCES_FILENAME,
)


class Settings(BaseSettings):
    # Tool discovery
    executable_path: Optional[str] = Field(
        default=None,
        description="Absolute path to the magick executable (blank for auto-detection)",
    )
    detect_timeout_seconds: int = Field(
        default=DEFAULT_DETECT_TIMEOUT_SECONDS,
        description="Timeout for -version and -list format queries in seconds",
    )

    # Conversion
    conversion_timeout_seconds: int = Field(
        default=DEFAULT_CONVERSION_TIMEOUT_SECONDS,
        description="Seconds before a conversion process is forcibly killed",
    )
    max_input_size_bytes: int = Field(
        default=DEFAULT_MAX_INPUT_SIZE_BYTES,
        description="Maximum input file size in bytes (0 = unlimited)",
    )
    max_pixel_dimension: int = Field(
        default=DEFAULT_MAX_PIXEL_DIMENSION,
        description="Longest output edge in pixels; larger images are shrunk",
    )

    # ImageMagick resource limits (blank = leave to ImageMagick's policy)
    memory_limit: str = Field(default="", description="Value for -limit memory")
    map_limit: str = Field(default="", description="Value for -limit map")
    disk_limit: str = Field(default="", description="Value for -limit disk")
    thread_limit: int = Field(
        default=DEFAULT_THREAD_LIMIT, description="Value for -limit thread"
    )

    # Persistence
    preferences_dir: str = Field(
        default=DEFAULT_PREFERENCES_DIR,
        description="Directory holding the saved executable preference",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Render logs as JSON")
    log_file: Optional[str] = Field(
        default=None, description="Optional rotating log file path"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="MAGICK_BRIDGE_",
        extra="ignore",
    )

    @field_validator("executable_path", "log_file", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("memory_limit", "map_limit", "disk_limit", mode="before")
    @classmethod
    def strip_limit(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("detect_timeout_seconds", "conversion_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @field_validator("max_input_size_bytes")
    @classmethod
    def validate_max_input_size(cls, v):
        if v < 0:
            raise ValueError("max_input_size_bytes must be >= 0 (0 = unlimited)")
        return v

    @field_validator("thread_limit", "max_pixel_dimension")
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()

    @property
    def preferences_file(self) -> Path:
        """Location of the persisted executable preference."""
        return Path(self.preferences_dir).expanduser() / PREFERENCES_FILENAME


settings = Settings()
