from .kernel_utils import (
    # Kernel registry
    KernelRegistry,
    # Shape utilities
    SliceShape,
    check_same_kind,
    check_samplable,
    prepare_slice_shape,
    to_flat_warp,
    # Launch
    launch_kernel,
)
from .warp_functions import (
    # Interpolation weights
    lerp_weight,
    smoothed_lerp_weight,
    smoothed_lerp_weight_grad,
    # Boundary handling
    mirror_boundary,
    # Index helpers
    vec5i,
    unravel_index_3d,
    unravel_index_4d,
    unravel_index_5d,
    ravel_index_3d,
    ravel_index_4d,
    ravel_index_5d,
)
