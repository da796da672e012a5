import torch

from ..Slice import BilateralSlice


# =============================================================================
# Bilateral slice + per-pixel affine apply
#
# The grid stores, for every output channel, one affine row over the input
# channels. Grid channel layout (has_offset=True):
#   [a(0,0) .. a(0,Cin-1), b(0), a(1,0) .. a(1,Cin-1), b(1), ...]
# Without offset the b(o) entries are dropped.
#   out[o, x, y, n] = sum_i a(o,i)[x, y, n] * input[i, x, y, n] + b(o)[x, y, n]
# =============================================================================

def BilateralSliceApply_fwd(
    grid: torch.Tensor,
    guide: torch.Tensor,
    input: torch.Tensor,
    has_offset: bool = True,
) -> torch.Tensor:
    """
    Slice affine coefficients from the grid and apply them to `input`.

    Gradients w.r.t. grid and guide go through BilateralSlice, the rest is
    handled by PyTorch autograd.

    Args:
        grid: Tensor of shape (Cout * (Cin + has_offset), D, GX, GY, B)
        guide: Tensor of shape (W, H, B)
        input: Tensor of shape (Cin, W, H, B)
        has_offset: Whether every affine row carries a trailing offset

    Returns:
        Tensor of shape (Cout, W, H, B)
    """
    if grid.dim() != 5:
        raise ValueError(f"Expected grid of shape (C, D, GX, GY, B), got {tuple(grid.shape)}")
    if input.dim() != 4:
        raise ValueError(f"Expected input of shape (Cin, W, H, B), got {tuple(input.shape)}")
    if input.shape[1:] != guide.shape:
        raise ValueError(
            f"Input spatial shape {tuple(input.shape[1:])} does not match guide {tuple(guide.shape)}."
        )

    input_channels = input.shape[0]
    row_length = input_channels + 1 if has_offset else input_channels
    grid_channels = grid.shape[0]
    if row_length == 0 or grid_channels % row_length != 0:
        raise ValueError(
            f"Grid channels ({grid_channels}) must be a multiple of "
            f"{'input channels + 1' if has_offset else 'input channels'} ({row_length})."
        )
    output_channels = grid_channels // row_length

    coeffs = BilateralSlice.apply(grid, guide)
    coeffs = coeffs.view(output_channels, row_length, *guide.shape)

    out = torch.einsum("oiwhb,iwhb->owhb", coeffs[:, :input_channels], input)
    if has_offset:
        out = out + coeffs[:, input_channels]
    return out


def bilateral_slice_apply(
    grid: torch.Tensor,
    guide: torch.Tensor,
    input: torch.Tensor,
    has_offset: bool = True,
) -> torch.Tensor:
    return BilateralSliceApply_fwd(grid, guide, input, has_offset=has_offset)
