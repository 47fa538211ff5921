"""Configuration package for the DayStart content pipeline.

Domain-specific settings classes composed by ``PipelineConfig``.

Usage:
    from daystart.config import load_config

    config = load_config()
    config.sweeps.stuck_timeout_hours
    config.api_keys.llm_api_key
    config.paths.db_path

There is no module-level instance: build one per process (or request) and
pass it to the components that need it.
"""

from .base import PipelineConfig, load_config
from .paths import PathsConfig
from .api_keys import APIKeysConfig
from .storage import StorageConfig
from .sweeps import SweepConfig
from .synthesis import SynthesisConfig
from .producers import ProducerConfig

__all__ = [
    "load_config",
    "PipelineConfig",
    "PathsConfig",
    "APIKeysConfig",
    "StorageConfig",
    "SweepConfig",
    "SynthesisConfig",
    "ProducerConfig",
]
