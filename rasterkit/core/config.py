"""
Global configuration dataclasses for rasterkit.

This module defines the configuration objects read by the processing
operations: the parallel execution settings and the library-wide defaults
(border mode, interpolation, Canny smoothing). Configuration is immutable and
provided as Python objects, optionally loaded from a YAML file.
"""

import dataclasses
import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

import yaml

from rasterkit.constants.constants import (DEFAULT_BORDER_MODE,
                                           DEFAULT_CANNY_SIGMA,
                                           DEFAULT_INTERPOLATION,
                                           DEFAULT_LOG_LEVEL,
                                           DEFAULT_MIN_ROWS_PER_TASK,
                                           BorderMode, Interpolation)
from rasterkit.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParallelConfig:
    """Configuration for row-band parallel execution."""
    num_workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    """Number of worker threads for pixel-parallel stages."""

    min_rows_per_task: int = DEFAULT_MIN_ROWS_PER_TASK
    """Smallest band handed to a worker; smaller inputs run inline."""

    enabled: bool = field(default_factory=lambda: os.getenv('RASTERKIT_PARALLEL', 'true').lower() != 'false')
    """Use a thread pool at all. Reads from the RASTERKIT_PARALLEL environment variable."""

    def __post_init__(self):
        if self.num_workers < 1:
            raise ConfigurationError(f"num_workers must be >= 1, got {self.num_workers}")
        if self.min_rows_per_task < 1:
            raise ConfigurationError(f"min_rows_per_task must be >= 1, got {self.min_rows_per_task}")


@dataclass(frozen=True)
class GlobalProcessingConfig:
    """
    Root configuration object for rasterkit operations.
    Instantiate once at application startup and treat as immutable.
    """
    parallel: ParallelConfig = field(default_factory=ParallelConfig)
    """Configuration for the row-band thread pool."""

    default_border_mode: BorderMode = DEFAULT_BORDER_MODE
    """Border mode used by filters when the caller passes no border policy."""

    default_interpolation: Interpolation = DEFAULT_INTERPOLATION
    """Interpolation used by convenience warps when none is given."""

    canny_sigma: float = DEFAULT_CANNY_SIGMA
    """Gaussian smoothing applied before Canny gradients."""

    log_level: str = DEFAULT_LOG_LEVEL
    """Level applied to the ``rasterkit`` logger by :func:`apply_log_level`."""

    def __post_init__(self):
        if self.canny_sigma <= 0:
            raise ConfigurationError(f"canny_sigma must be positive, got {self.canny_sigma}")
        if logging.getLevelName(self.log_level.upper()) == f"Level {self.log_level.upper()}":
            raise ConfigurationError(f"Unknown log level: {self.log_level}")


def get_default_global_config() -> GlobalProcessingConfig:
    """Provides a default instance of GlobalProcessingConfig."""
    logger.debug("Initializing with default GlobalProcessingConfig.")
    return GlobalProcessingConfig()


# Thread-local storage for the current global config
_global_config_context = threading.local()


def set_current_global_config(config: Optional[GlobalProcessingConfig]) -> None:
    """Set the config used by operations on the calling thread (None resets to defaults)."""
    if config is not None and not isinstance(config, GlobalProcessingConfig):
        raise TypeError(f"Expected GlobalProcessingConfig, got {type(config)}")
    _global_config_context.value = config


def get_current_global_config() -> GlobalProcessingConfig:
    """Get the config for the calling thread, falling back to defaults."""
    config = getattr(_global_config_context, 'value', None)
    if config is None:
        config = get_default_global_config()
        _global_config_context.value = config
    return config


@contextmanager
def config_context(config: GlobalProcessingConfig) -> Iterator[GlobalProcessingConfig]:
    """Temporarily install ``config`` as the current config on this thread."""
    previous = getattr(_global_config_context, 'value', None)
    set_current_global_config(config)
    try:
        yield config
    finally:
        _global_config_context.value = previous


def apply_log_level(config: Optional[GlobalProcessingConfig] = None) -> None:
    """Set the ``rasterkit`` logger level from the configuration."""
    config = config or get_current_global_config()
    logging.getLogger("rasterkit").setLevel(config.log_level.upper())


def load_config_file(config_file: Union[str, Path]) -> GlobalProcessingConfig:
    """
    Load a GlobalProcessingConfig from a YAML file.

    Keys missing from the file keep their defaults. Enum-valued fields accept
    the enum value strings (e.g. ``default_border_mode: wrap``).

    Args:
        config_file: Path to the YAML file

    Returns:
        The loaded configuration

    Raises:
        ConfigurationError: If the file is not valid YAML, is not a mapping,
            or contains unknown keys or invalid values
    """
    config_file = Path(config_file)
    logger.info(f"Loading GlobalProcessingConfig from {config_file}")

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            loaded_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing YAML from {config_file}: {e}") from e

    if loaded_data is None:
        logger.warning(f"Config file {config_file} is empty. Using default config.")
        return get_default_global_config()
    if not isinstance(loaded_data, dict):
        raise ConfigurationError(f"Config file {config_file} must contain a mapping, got {type(loaded_data).__name__}")

    return _construct_config_from_data(loaded_data)


def _construct_config_from_data(loaded_data: Dict[str, Any]) -> GlobalProcessingConfig:
    """Construct configuration from loaded data."""
    loaded_data = dict(loaded_data)
    parallel_data = loaded_data.pop('parallel', None) or {}
    if not isinstance(parallel_data, dict):
        raise ConfigurationError("'parallel' section must be a mapping")

    _reject_unknown_keys(ParallelConfig, parallel_data, "parallel")
    _reject_unknown_keys(GlobalProcessingConfig, loaded_data, "root")

    try:
        if 'default_border_mode' in loaded_data:
            loaded_data['default_border_mode'] = BorderMode(loaded_data['default_border_mode'])
        if 'default_interpolation' in loaded_data:
            loaded_data['default_interpolation'] = Interpolation(loaded_data['default_interpolation'])
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    default_parallel = ParallelConfig()
    final_parallel_args = {**dataclasses.asdict(default_parallel), **parallel_data}

    config = GlobalProcessingConfig(parallel=ParallelConfig(**final_parallel_args), **loaded_data)
    logger.info("Successfully loaded user-defined GlobalProcessingConfig.")
    return config


def _reject_unknown_keys(config_type: type, data: Dict[str, Any], section: str) -> None:
    known = {f.name for f in dataclasses.fields(config_type)}
    unknown = set(data) - known
    if section == "root":
        unknown.discard('parallel')
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in '{section}' config section: {', '.join(sorted(unknown))}"
        )
