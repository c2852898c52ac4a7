"""Configuration for docbudget.

Re-exports the top-level config class and its domain sections.

Usage:
    from docbudget.config import DocbudgetConfig

    config = DocbudgetConfig.from_env()
    config.setup_logging()
"""

from docbudget.config.domains import FallbackConfig, LibraryConfig, ProvidersConfig
from docbudget.config.settings import (
    CONFIG_FILE_ENV_VAR,
    DocbudgetConfig,
    get_config,
    set_config,
)

__all__ = [
    "DocbudgetConfig",
    "LibraryConfig",
    "FallbackConfig",
    "ProvidersConfig",
    "CONFIG_FILE_ENV_VAR",
    "get_config",
    "set_config",
]
