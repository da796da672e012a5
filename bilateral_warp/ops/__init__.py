from .Slice import (
    BilateralSlice,
    BilateralSlice_fwd,
    BilateralSlice_bwd,
    BilateralSlice_grid_bwd,
    BilateralSlice_guide_bwd,
    bilateral_slice,
)
from .SliceApply import BilateralSliceApply_fwd, bilateral_slice_apply
