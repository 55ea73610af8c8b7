"""Core module for rasterkit."""

# These imports are re-exported through __all__
from rasterkit.core.config import (GlobalProcessingConfig, ParallelConfig,
                                   get_current_global_config)
from rasterkit.core.exceptions import (ConfigurationError,
                                       DimensionMismatchError,
                                       EmptyBufferError, InvalidKernelError,
                                       RasterKitError, SingularTransformError)

__all__ = [
    'GlobalProcessingConfig',
    'ParallelConfig',
    'get_current_global_config',
    'RasterKitError',
    'ConfigurationError',
    'DimensionMismatchError',
    'EmptyBufferError',
    'InvalidKernelError',
    'SingularTransformError',
]
