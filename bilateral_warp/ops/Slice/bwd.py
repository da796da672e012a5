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
    smoothed_lerp_weight_grad,
    mirror_boundary,
    unravel_index_3d,
    unravel_index_5d,
    ravel_index_3d,
    ravel_index_4d,
    ravel_index_5d,
)


# =============================================================================
# Backward kernel w.r.t. the grid
#
# One thread per grid cell (gc, gz, gx, gy, b). The forward pass reads this
# cell from every pixel whose 2x2x2 stencil covers it, so we invert the
# spatial mapping with a one cell margin:
#   x in [floor(sx * (gx - 0.5)), ceil(sx * (gx + 1.5))),  sx = W / GX
# and accumulate wx * wy * wz * grad_output over that window.
#
# Spatial axes use mirror boundary: a pixel mirrored about the image edge sits
# at the mirror image of gxf about the grid edge, which is where the clamped
# forward pass read the virtual cell -1 (or GX) from.
# Depth uses the clamp override: the first / last depth cell receives the full
# weight from every guide value that clamps onto it.
# =============================================================================

def _make_grid_grad_kernel(dtype):
    weight_xy = lerp_weight(dtype)
    weight_z = smoothed_lerp_weight(dtype)

    @wp.kernel(enable_backward=False)
    def implement(
        guide: wp.array(dtype=T.Any),
        grad_output: wp.array(dtype=T.Any),
        grad_grid: wp.array(dtype=T.Any),
        grid_depth: int,
        grid_width: int,
        grid_height: int,
        guide_width: int,
        guide_height: int,
        batch: int,
    ):
        idx = wp.tid()
        coord = unravel_index_5d(idx, grid_depth, grid_width, grid_height, batch)
        gc = coord[0]
        gz = coord[1]
        gx = coord[2]
        gy = coord[3]
        b = coord[4]

        half = dtype(0.5)
        one = dtype(1.0)
        scale_x = dtype(guide_width) / dtype(grid_width)
        scale_y = dtype(guide_height) / dtype(grid_height)

        x0 = int(wp.floor(scale_x * (dtype(gx) + half - one)))
        x1_exclusive = int(wp.ceil(scale_x * (dtype(gx) + half + one)))
        y0 = int(wp.floor(scale_y * (dtype(gy) + half - one)))
        y1_exclusive = int(wp.ceil(scale_y * (dtype(gy) + half + one)))

        gz_center = dtype(gz) + half
        depth_f = dtype(grid_depth)

        value = dtype(0.0)
        for y in range(y0, y1_exclusive):
            y_mirror = mirror_boundary(y, guide_height)
            gyf = (dtype(y) + half) / scale_y
            wy = weight_xy(dtype(gy) + half, gyf)

            for x in range(x0, x1_exclusive):
                x_mirror = mirror_boundary(x, guide_width)
                gxf = (dtype(x) + half) / scale_x
                wx = weight_xy(dtype(gx) + half, gxf)

                gzf = guide[ravel_index_3d(x_mirror, y_mirror, b, guide_height, batch)] * depth_f
                wz = weight_z(gz_center, gzf)
                if gz == 0 and gzf < half:
                    wz = one
                if gz == grid_depth - 1 and gzf > depth_f - half:
                    wz = one

                value += wz * wx * wy * grad_output[ravel_index_4d(
                    gc, x_mirror, y_mirror, b, guide_width, guide_height, batch
                )]

        grad_grid[idx] = value
    return implement


# =============================================================================
# Backward kernel w.r.t. the guide
#
# One thread per guide pixel (x, y, b). Differentiates the forward sample
# through gzf = guide * D using the same clamped 2x2x2 stencil as the forward
# kernel:
#   d out[c] / d guide = sum wx * wy * D * dwz/dgzf * grid[c, gz, gx, gy, b]
# then contracts over channels with grad_output.
# =============================================================================

def _make_guide_grad_kernel(dtype):
    weight_xy = lerp_weight(dtype)
    weight_z_grad = smoothed_lerp_weight_grad(dtype)

    @wp.kernel(enable_backward=False)
    def implement(
        grid: wp.array(dtype=T.Any),
        guide: wp.array(dtype=T.Any),
        grad_output: wp.array(dtype=T.Any),
        grad_guide: wp.array(dtype=T.Any),
        grid_channels: int,
        grid_depth: int,
        grid_width: int,
        grid_height: int,
        guide_width: int,
        guide_height: int,
        batch: int,
    ):
        idx = wp.tid()
        coord = unravel_index_3d(idx, guide_height, batch)
        x = coord[0]
        y = coord[1]
        b = coord[2]

        half = dtype(0.5)
        scale_x = dtype(grid_width) / dtype(guide_width)
        scale_y = dtype(grid_height) / dtype(guide_height)
        depth_f = dtype(grid_depth)

        gxf = (dtype(x) + half) * scale_x
        gyf = (dtype(y) + half) * scale_y
        gzf = guide[idx] * depth_f

        gx0 = int(wp.floor(gxf - half))
        gy0 = int(wp.floor(gyf - half))
        gz0 = int(wp.floor(gzf - half))

        value = dtype(0.0)
        for c in range(grid_channels):
            grid_sample = dtype(0.0)
            for gy in range(gy0, gy0 + 2):
                gyc = wp.clamp(gy, 0, grid_height - 1)
                wy = weight_xy(dtype(gy) + half, gyf)
                for gx in range(gx0, gx0 + 2):
                    gxc = wp.clamp(gx, 0, grid_width - 1)
                    wx = weight_xy(dtype(gx) + half, gxf)
                    for gz in range(gz0, gz0 + 2):
                        gzc = wp.clamp(gz, 0, grid_depth - 1)
                        dwz = depth_f * weight_z_grad(dtype(gz) + half, gzf)
                        grid_sample += wx * wy * dwz * grid[ravel_index_5d(
                            c, gzc, gxc, gyc, b, grid_depth, grid_width, grid_height, batch
                        )]
            value += grid_sample * grad_output[ravel_index_4d(
                c, x, y, b, guide_width, guide_height, batch
            )]

        grad_guide[idx] = value
    return implement


# =============================================================================
# Main backward functions
# =============================================================================

def BilateralSlice_grid_bwd(
    grid_shape: tuple,
    guide: torch.Tensor,
    grad_output: torch.Tensor,
) -> torch.Tensor:
    """
    Gradient of the sliced output w.r.t. the grid.

    Args:
        grid_shape: Shape of the grid, (C, D, GX, GY, B)
        guide: Tensor of shape (W, H, B)
        grad_output: Gradient w.r.t. the output, shape (C, W, H, B)

    Returns:
        grad_grid: Tensor of shape (C, D, GX, GY, B)
    """
    check_same_kind(guide, grad_output)
    shape = prepare_slice_shape(tuple(grid_shape), guide, grad_output)

    dtype = guide.dtype
    device = guide.device
    grad_grid_tensor = torch.empty(shape.grid_shape, dtype=dtype, device=device)
    count = grad_grid_tensor.numel()
    if count == 0:
        return grad_grid_tensor
    if guide.numel() == 0:
        # No pixel reads from the grid
        return grad_grid_tensor.zero_()

    wp_scalar = wp_scalar_type(dtype)
    guide_wp = to_flat_warp(guide)
    grad_output_wp = to_flat_warp(grad_output)
    grad_grid_wp = wp.from_torch(grad_grid_tensor.view(-1), dtype=wp_scalar)

    kernel = KernelRegistry.get(_make_grid_grad_kernel, wp_scalar)
    ok = launch_kernel(
        kernel,
        count,
        inputs=[
            guide_wp, grad_output_wp, grad_grid_wp,
            shape.depth, shape.grid_width, shape.grid_height,
            shape.width, shape.height, shape.batch,
        ],
        device=grad_grid_wp.device,
    )
    if not ok:
        raise RuntimeError(f"BilateralSlice grid gradient failed for {shape}")

    return grad_grid_tensor


def BilateralSlice_guide_bwd(
    grid: torch.Tensor,
    guide: torch.Tensor,
    grad_output: torch.Tensor,
) -> torch.Tensor:
    """
    Gradient of the sliced output w.r.t. the guide.

    Args:
        grid: Tensor of shape (C, D, GX, GY, B)
        guide: Tensor of shape (W, H, B)
        grad_output: Gradient w.r.t. the output, shape (C, W, H, B)

    Returns:
        grad_guide: Tensor of shape (W, H, B)
    """
    check_same_kind(grid, guide, grad_output)
    shape = prepare_slice_shape(tuple(grid.shape), guide, grad_output)

    dtype = guide.dtype
    device = guide.device
    grad_guide_tensor = torch.empty(shape.guide_shape, dtype=dtype, device=device)
    count = grad_guide_tensor.numel()
    if count == 0:
        return grad_guide_tensor
    if shape.channels == 0:
        # Zero channels: the output does not depend on the guide
        return grad_guide_tensor.zero_()
    check_samplable(shape)

    wp_scalar = wp_scalar_type(dtype)
    grid_wp = to_flat_warp(grid)
    guide_wp = to_flat_warp(guide)
    grad_output_wp = to_flat_warp(grad_output)
    grad_guide_wp = wp.from_torch(grad_guide_tensor.view(-1), dtype=wp_scalar)

    kernel = KernelRegistry.get(_make_guide_grad_kernel, wp_scalar)
    ok = launch_kernel(
        kernel,
        count,
        inputs=[
            grid_wp, guide_wp, grad_output_wp, grad_guide_wp,
            shape.channels, shape.depth, shape.grid_width, shape.grid_height,
            shape.width, shape.height, shape.batch,
        ],
        device=grad_guide_wp.device,
    )
    if not ok:
        raise RuntimeError(f"BilateralSlice guide gradient failed for {shape}")

    return grad_guide_tensor


def BilateralSlice_bwd(
    grid: torch.Tensor,
    guide: torch.Tensor,
    grad_output: torch.Tensor,
    needs_grid_grad: bool = True,
    needs_guide_grad: bool = True,
) -> tuple[torch.Tensor | None, torch.Tensor | None]:
    """
    Backward pass for BilateralSlice.

    The two gradients have disjoint outputs and only share read-only inputs.

    Args:
        grid: Tensor of shape (C, D, GX, GY, B) (saved from forward)
        guide: Tensor of shape (W, H, B) (saved from forward)
        grad_output: Gradient w.r.t. output, shape (C, W, H, B)

    Returns:
        grad_grid: Gradient w.r.t. grid, shape (C, D, GX, GY, B), or None
        grad_guide: Gradient w.r.t. guide, shape (W, H, B), or None
    """
    grad_grid = BilateralSlice_grid_bwd(grid.shape, guide, grad_output) if needs_grid_grad else None
    grad_guide = BilateralSlice_guide_bwd(grid, guide, grad_output) if needs_guide_grad else None
    return grad_grid, grad_guide
