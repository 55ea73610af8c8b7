"""Global pytest configuration for rasterkit tests."""
import os

import numpy as np
import pytest

from rasterkit.core.config import (GlobalProcessingConfig, ParallelConfig,
                                   config_context, set_current_global_config)

# Execution modes exercised by tests that request the ``processing_config`` fixture.
# "threaded" uses single-row bands so even tiny buffers are split across workers.
EXECUTION_MODES = {
    "inline": ParallelConfig(num_workers=1, min_rows_per_task=1, enabled=False),
    "threaded": ParallelConfig(num_workers=4, min_rows_per_task=1, enabled=True),
}


def pytest_addoption(parser):
    """Add command-line options for execution mode selection."""

    # Helper function to get default from environment variable
    def env_default(env_var, default_value):
        return os.getenv(env_var, default_value)

    parser.addoption(
        "--exec-mode",
        action="store",
        default=env_default("RK_EXEC_MODE", "inline,threaded"),
        help="Comma-separated list of execution modes (default: inline,threaded). Use 'all' for full coverage."
    )


def pytest_configure(config):
    """Validate configuration options."""
    option_value = config.getoption("--exec-mode")
    if option_value == "all":
        return

    for value in (v.strip() for v in option_value.split(",")):
        if value not in EXECUTION_MODES:
            raise pytest.UsageError(
                f"Invalid value '{value}' for --exec-mode. "
                f"Valid choices: {', '.join(EXECUTION_MODES)} or 'all'"
            )


def _selected_modes(config):
    option_value = config.getoption("--exec-mode")
    if option_value == "all":
        return list(EXECUTION_MODES)
    selected = [v.strip() for v in option_value.split(",")]
    return [mode for mode in EXECUTION_MODES if mode in selected]


def pytest_generate_tests(metafunc):
    """Parametrize ``execution_mode`` from the --exec-mode option."""
    if "execution_mode" in metafunc.fixturenames:
        modes = _selected_modes(metafunc.config)
        metafunc.parametrize("execution_mode", modes, ids=modes)


@pytest.fixture(autouse=True)
def reset_global_config():
    """Every test starts and ends with the default configuration."""
    set_current_global_config(None)
    yield
    set_current_global_config(None)


@pytest.fixture
def processing_config(execution_mode):
    """Install a config running pixel-parallel stages in the selected mode."""
    config = GlobalProcessingConfig(parallel=EXECUTION_MODES[execution_mode])
    with config_context(config):
        yield config


@pytest.fixture
def rng():
    return np.random.default_rng(20240917)


@pytest.fixture
def uniform_image():
    """5x5 single-channel uint8 image where every pixel is 10."""
    return np.full((5, 5), 10, dtype=np.uint8)


@pytest.fixture
def square_image():
    """5x5 binary image holding one 3x3 square of ones at rows/cols 1..3."""
    image = np.zeros((5, 5), dtype=np.uint8)
    image[1:4, 1:4] = 1
    return image
