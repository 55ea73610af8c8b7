from rasterkit.constants.constants import (BorderMode, Connectivity,
                                           FunctionCategory, Interpolation)

__all__ = [
    'BorderMode',
    'Connectivity',
    'FunctionCategory',
    'Interpolation',
]
