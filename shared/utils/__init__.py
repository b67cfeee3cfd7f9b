from shared.utils.geometry import (
    bounds_center,
    bounds_close,
    clamp,
    padded_center,
)
from shared.utils.png import png_size

__all__ = [
    "bounds_center",
    "bounds_close",
    "clamp",
    "padded_center",
    "png_size",
]
