"""
Configuration management for PlaceMiner using Pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Setup Logging ---
log = logging.getLogger(__name__)

# --- Nested Configuration Models ---


class OrchestratorSettings(BaseModel):
    """Timing and retry policy of the job orchestrator."""

    poll_interval: float = Field(default=1.0, gt=0, description="Seconds between readiness polls.")
    max_poll_attempts: int = Field(default=30, ge=1, description="Maximum readiness polls per job.")
    ready_timeout: float = Field(default=30.0, gt=0, description="Wall-clock bound on the readiness wait per job.")
    acquire_timeout: float = Field(default=30.0, gt=0, description="Bound on creating a render surface.")
    extract_timeout: float = Field(default=10.0, gt=0, description="Bound on a single extraction call.")
    politeness_delay: float = Field(default=1.5, ge=0, description="Pause between two jobs.")
    backoff: Literal["fixed", "exponential"] = Field(default="fixed", description="Poll interval policy.")
    max_poll_interval: float = Field(default=5.0, gt=0, description="Upper bound for exponential backoff.")
    query_separator: str = Field(default=", ", description="Separator used to join company, city and country.")

    @model_validator(mode="after")
    def check_interval_bounds(self) -> "OrchestratorSettings":
        if self.max_poll_interval < self.poll_interval:
            raise ValueError("max_poll_interval must be >= poll_interval")
        return self


class SourceConfig(BaseModel):
    """Headless browser content source configuration."""

    search_url: str = Field(
        default="https://www.google.com/maps/search/?api=1&query=",
        description="Prefix the URL-encoded query is appended to.",
    )
    headless: bool = Field(default=True, description="Run the browser without a window.")
    navigation_timeout: float = Field(default=30.0, gt=0, description="Page load timeout in seconds.")
    settle_delay: float = Field(default=1.2, ge=0, description="Wait after load for dynamic rendering.")
    locale: str = Field(default="en-US", description="Browser locale; affects label texts.")
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        description="User-Agent for the browser context.",
    )


class ExtractionSettings(BaseModel):
    """Configuration for field extraction heuristics."""

    excluded_domains: List[str] = Field(
        default=["google.com"], description="Hosts whose links never count as the entity website."
    )
    surface_path_prefix: str = Field(default="/maps", description="Path of the query surface itself.")
    min_phone_digits: int = Field(default=7, ge=1, description="Minimum digits for a phone number match.")
    snippet_length: int = Field(default=1500, ge=0, description="Characters of page text kept for diagnostics.")

    @field_validator("excluded_domains")
    @classmethod
    def normalize_domains(cls, v: List[str]) -> List[str]:
        return [d.strip().lower().lstrip(".") for d in v if d.strip()]


class ExportConfig(BaseModel):
    """Configuration for result exporting."""

    output_dir: Path = Field(default=Path("./results"), description="Directory exported files are written to.")
    filename_prefix: str = Field(default="pro_company_scraper_results", description="Export file name prefix.")
    delimiter: str = Field(default=",", min_length=1, max_length=1, description="CSV field delimiter.")
    encoding: str = Field(
        default="utf-8", description="Text encoding of the export (\"utf-8-sig\" adds a BOM for spreadsheet tools)."
    )


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: Optional[str] = Field(default=None, description="Path to log file. If None, logs to console.")
    prometheus_port: Optional[int] = Field(default=None, description="Port for the metrics exporter. None to disable.")

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "PlaceMiner"
    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)
    source: SourceConfig = Field(default_factory=SourceConfig)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    export: ExportConfig = Field(default_factory=ExportConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="PLACEMINER_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls()
        return cls(**yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for path in (current_dir / "placeminer.yaml", current_dir / "placeminer.yml"):
        if path.exists():
            return path
    return None


def load_config(path: Path | None = None) -> Config:
    """Load configuration from an explicit file, a discovered file, or defaults."""
    config_path = path or find_config_file()
    if config_path:
        log.info("Loading configuration from: %s", config_path)
        return Config.from_yaml(config_path)
    return Config()
