import torch
from .fwd import BilateralSlice_fwd
from .bwd import (
    BilateralSlice_bwd,
    BilateralSlice_grid_bwd,
    BilateralSlice_guide_bwd,
)


class BilateralSlice(torch.autograd.Function):
    @staticmethod
    def forward(grid, guide):
        return BilateralSlice_fwd(grid, guide)

    @staticmethod
    def setup_context(ctx, inputs, output):
        grid, guide = inputs
        ctx.save_for_backward(grid, guide)

    @staticmethod
    def backward(ctx, grad_output):
        grid, guide = ctx.saved_tensors
        needs_grid_grad, needs_guide_grad = ctx.needs_input_grad[:2]
        return BilateralSlice_bwd(
            grid, guide, grad_output,
            needs_grid_grad=needs_grid_grad,
            needs_guide_grad=needs_guide_grad,
        )


def bilateral_slice(grid: torch.Tensor, guide: torch.Tensor) -> torch.Tensor:
    """
    Differentiable bilateral slice.

    Args:
        grid: Tensor of shape (C, D, GX, GY, B)
        guide: Tensor of shape (W, H, B), values in [0, 1] select the depth

    Returns:
        Tensor of shape (C, W, H, B)
    """
    return BilateralSlice.apply(grid, guide)
