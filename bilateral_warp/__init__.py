import warp as wp

from .ops import (
    BilateralSlice,
    BilateralSlice_fwd,
    BilateralSlice_bwd,
    BilateralSlice_grid_bwd,
    BilateralSlice_guide_bwd,
    bilateral_slice,
    bilateral_slice_apply,
)
from .reference import bilateral_slice_reference
wp.init()


__all__ = [
    "BilateralSlice",
    "BilateralSlice_fwd",
    "BilateralSlice_bwd",
    "BilateralSlice_grid_bwd",
    "BilateralSlice_guide_bwd",
    "bilateral_slice",
    "bilateral_slice_apply",
    "bilateral_slice_reference",
]
