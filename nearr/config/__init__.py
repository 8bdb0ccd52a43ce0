"""Configuration management for the NEARR backend."""

from .loader import Config, default_config_path, load_config, save_config
from .models import CohortConfig, ConfigModel, PostgresConfig, ServerConfig, SupabaseConfig

__all__ = [
    "Config",
    "ConfigModel",
    "CohortConfig",
    "PostgresConfig",
    "ServerConfig",
    "SupabaseConfig",
    "default_config_path",
    "load_config",
    "save_config",
]
