"""Configuration models and loaders."""

from .config import (
    Config,
    ExportConfig,
    ExtractionSettings,
    MonitoringConfig,
    OrchestratorSettings,
    SourceConfig,
    find_config_file,
    load_config,
)

__all__ = [
    "Config",
    "ExportConfig",
    "ExtractionSettings",
    "MonitoringConfig",
    "OrchestratorSettings",
    "SourceConfig",
    "find_config_file",
    "load_config",
]
