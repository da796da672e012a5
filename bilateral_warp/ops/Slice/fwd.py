# pyright: reportInvalidTypeForm=false
# NOTE: warp language's type annotation spec does not match Pyright spec completely.

import torch
import warp as wp
import typing as T

from ...utils.warp_utils import wp_scalar_type
from ..common.kernel_utils import (
    KernelRegistry,
    check_same_kind,
    check_samplable,
    prepare_slice_shape,
    to_flat_warp,
    launch_kernel,
)
from ..common.warp_functions import (
    lerp_weight,
    smoothed_lerp_weight,
    unravel_index_4d,
    ravel_index_3d,
    ravel_index_5d,
)


# =============================================================================
# Forward kernel for BilateralSlice
#
# One thread per output element (c, x, y, b):
#   gxf = (x + 0.5) * GX / W,  gyf = (y + 0.5) * GY / H,  gzf = guide[x, y, b] * D
#   out = sum over the 2x2x2 cells around (gxf, gyf, gzf) of
#         wx * wy * wz * grid[c, gz, gx, gy, b]
# Samples are centred at index + 0.5 and out-of-range cells are clamped to the
# edge (repeating boundary) on all three axes.
# =============================================================================

def _make_kernel(dtype):
    weight_xy = lerp_weight(dtype)
    weight_z = smoothed_lerp_weight(dtype)

    @wp.kernel(enable_backward=False)
    def implement(
        grid: wp.array(dtype=T.Any),
        guide: wp.array(dtype=T.Any),
        out: wp.array(dtype=T.Any),
        grid_depth: int,
        grid_width: int,
        grid_height: int,
        guide_width: int,
        guide_height: int,
        batch: int,
    ):
        idx = wp.tid()
        coord = unravel_index_4d(idx, guide_width, guide_height, batch)
        c = coord[0]
        x = coord[1]
        y = coord[2]
        b = coord[3]

        half = dtype(0.5)
        scale_x = dtype(grid_width) / dtype(guide_width)
        scale_y = dtype(grid_height) / dtype(guide_height)

        gxf = (dtype(x) + half) * scale_x
        gyf = (dtype(y) + half) * scale_y
        gzf = guide[ravel_index_3d(x, y, b, guide_height, batch)] * dtype(grid_depth)

        gx0 = int(wp.floor(gxf - half))
        gy0 = int(wp.floor(gyf - half))
        gz0 = int(wp.floor(gzf - half))

        value = dtype(0.0)
        for gy in range(gy0, gy0 + 2):
            gyc = wp.clamp(gy, 0, grid_height - 1)
            wy = weight_xy(dtype(gy) + half, gyf)
            for gx in range(gx0, gx0 + 2):
                gxc = wp.clamp(gx, 0, grid_width - 1)
                wx = weight_xy(dtype(gx) + half, gxf)
                for gz in range(gz0, gz0 + 2):
                    gzc = wp.clamp(gz, 0, grid_depth - 1)
                    wz = weight_z(dtype(gz) + half, gzf)
                    value += wx * wy * wz * grid[ravel_index_5d(
                        c, gzc, gxc, gyc, b, grid_depth, grid_width, grid_height, batch
                    )]

        out[idx] = value
    return implement


# =============================================================================
# Main forward function
# =============================================================================

def BilateralSlice_fwd(grid: torch.Tensor, guide: torch.Tensor) -> torch.Tensor:
    """
    Sample the bilateral grid at every guide pixel.

    Args:
        grid: Tensor of shape (C, D, GX, GY, B) - coarse coefficient grid
        guide: Tensor of shape (W, H, B) - depth position in [0, 1] per pixel

    Returns:
        Sliced tensor of shape (C, W, H, B)
    """
    check_same_kind(grid, guide)
    shape = prepare_slice_shape(tuple(grid.shape), guide)

    dtype = grid.dtype
    out_tensor = torch.empty(shape.output_shape, dtype=dtype, device=grid.device)
    count = out_tensor.numel()
    if count == 0:
        return out_tensor
    check_samplable(shape)

    wp_scalar = wp_scalar_type(dtype)
    grid_wp = to_flat_warp(grid)
    guide_wp = to_flat_warp(guide)
    out_wp = wp.from_torch(out_tensor.view(-1), dtype=wp_scalar)

    kernel = KernelRegistry.get(_make_kernel, wp_scalar)
    ok = launch_kernel(
        kernel,
        count,
        inputs=[
            grid_wp, guide_wp, out_wp,
            shape.depth, shape.grid_width, shape.grid_height,
            shape.width, shape.height, shape.batch,
        ],
        device=out_wp.device,
    )
    if not ok:
        raise RuntimeError(f"BilateralSlice forward failed for {shape}")

    return out_tensor
