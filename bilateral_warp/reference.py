"""
Vectorised PyTorch rendition of the bilateral slice.

Gathers the 2x2x2 clamped stencil with advanced indexing instead of launching
Warp kernels. Every step is a differentiable torch op, so PyTorch autograd
provides the grid and guide gradients. Used as the comparison target in tests
and benchmarks.
"""

import torch


def lerp_weight(center: torch.Tensor, query: torch.Tensor) -> torch.Tensor:
    return torch.clamp(1.0 - (query - center).abs(), min=0.0)


def smoothed_lerp_weight(center: torch.Tensor, query: torch.Tensor) -> torch.Tensor:
    t = (query - center).abs()
    return torch.where(t < 1.0, 1.0 - t * t * (3.0 - 2.0 * t), torch.zeros_like(t))


def smoothed_lerp_weight_grad(center: torch.Tensor, query: torch.Tensor) -> torch.Tensor:
    d = query - center
    t = d.abs()
    return torch.where(t < 1.0, 6.0 * (t - 1.0) * d, torch.zeros_like(t))


def mirror_boundary(x: torch.Tensor, extent: int) -> torch.Tensor:
    period = 2 * extent
    m = torch.remainder(x, period)
    return torch.where(m >= extent, period - 1 - m, m)


def bilateral_slice_reference(grid: torch.Tensor, guide: torch.Tensor) -> torch.Tensor:
    """
    Args:
        grid: Tensor of shape (C, D, GX, GY, B)
        guide: Tensor of shape (W, H, B)

    Returns:
        Tensor of shape (C, W, H, B)
    """
    channels, depth, grid_width, grid_height, batch = grid.shape
    width, height, _ = guide.shape
    dtype, device = grid.dtype, grid.device

    x = torch.arange(width, dtype=dtype, device=device)
    y = torch.arange(height, dtype=dtype, device=device)
    gxf = (x + 0.5) * (grid_width / width)
    gyf = (y + 0.5) * (grid_height / height)
    gzf = guide * depth

    gx0 = torch.floor(gxf - 0.5).long()
    gy0 = torch.floor(gyf - 0.5).long()
    gz0 = torch.floor(gzf - 0.5).long()

    b = torch.arange(batch, device=device).view(1, 1, batch).expand(width, height, batch)

    out = grid.new_zeros((channels, width, height, batch))
    for dy in range(2):
        gy = gy0 + dy
        wy = lerp_weight(gy.to(dtype) + 0.5, gyf).view(1, height, 1)
        gyc = gy.clamp(0, grid_height - 1).view(1, height, 1).expand(width, height, batch)
        for dx in range(2):
            gx = gx0 + dx
            wx = lerp_weight(gx.to(dtype) + 0.5, gxf).view(width, 1, 1)
            gxc = gx.clamp(0, grid_width - 1).view(width, 1, 1).expand(width, height, batch)
            for dz in range(2):
                gz = gz0 + dz
                wz = smoothed_lerp_weight(gz.to(dtype) + 0.5, gzf)
                gzc = gz.clamp(0, depth - 1)
                out = out + (wx * wy * wz) * grid[:, gzc, gxc, gyc, b]
    return out
