# Initialize the paths
import sys
from pathlib import Path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


# Initialize the warp context
import warp as wp
wp.init()


# Fixtures and utilities
import pytest
import torch
from enum import Enum


# =============================================================================
# Operator Enum for Tolerance Registry
# =============================================================================

class Operator(Enum):
    """Enum of all operators for tolerance lookups."""
    BilateralSlice = "BilateralSlice"
    BilateralSliceApply = "BilateralSliceApply"


# =============================================================================
# Tolerance Registry
# =============================================================================

# Default forward tolerances
_FWD_DEFAULTS = {
    torch.float32: {"atol": 1e-5, "rtol": 1e-5},
    torch.float64: {"atol": 1e-10, "rtol": 1e-10},
}

# Default backward tolerances (looser due to different computational paths)
_BWD_DEFAULTS = {
    torch.float32: {"atol": 5e-3, "rtol": 5e-3},
    torch.float64: {"atol": 1e-10, "rtol": 1e-10},
}

# Operator-specific forward overrides
_FWD_OVERRIDES: dict[Operator, dict[torch.dtype, dict]] = {
    # Applying the sliced affine rows sums Cin + 1 products per pixel
    Operator.BilateralSliceApply: {torch.float32: {"atol": 1e-4, "rtol": 1e-4}},
}

# Operator-specific backward overrides
_BWD_OVERRIDES: dict[Operator, dict[torch.dtype, dict]] = {
    # Grid gradient accumulates every pixel of a (2 W/GX + 1) x (2 H/GY + 1) window
    Operator.BilateralSlice: {torch.float64: {"atol": 1e-9, "rtol": 1e-9}},
}


def get_fwd_tolerances(dtype: torch.dtype, operator: Operator = None) -> dict:
    """
    Get forward pass tolerances with optional operator-specific overrides.

    Args:
        dtype: The tensor dtype (float32, float64)
        operator: Optional operator for specific overrides

    Returns:
        Dict with 'atol' and 'rtol' keys for torch.testing.assert_close
    """
    if operator and operator in _FWD_OVERRIDES and dtype in _FWD_OVERRIDES[operator]:
        return _FWD_OVERRIDES[operator][dtype]
    return _FWD_DEFAULTS[dtype]


def get_bwd_tolerances(dtype: torch.dtype, operator: Operator = None) -> dict:
    """
    Get backward pass tolerances with optional operator-specific overrides.

    Backward tolerances are looser than forward because the Warp gradient
    kernels and PyTorch autograd through the reference compute the same
    derivative through different summation orders.

    Args:
        dtype: The tensor dtype (float32, float64)
        operator: Optional operator for specific overrides

    Returns:
        Dict with 'atol' and 'rtol' keys for torch.testing.assert_close
    """
    if operator and operator in _BWD_OVERRIDES and dtype in _BWD_OVERRIDES[operator]:
        return _BWD_OVERRIDES[operator][dtype]
    return _BWD_DEFAULTS[dtype]


# =============================================================================
# Random inputs
# =============================================================================

def make_inputs(
    channels: int, depth: int, grid_width: int, grid_height: int,
    width: int, height: int, batch: int,
    device="cpu", dtype=torch.float32, seed: int = 0,
) -> tuple[torch.Tensor, torch.Tensor]:
    """Random grid (C, D, GX, GY, B) and guide (W, H, B) with values in [0, 1)."""
    gen = torch.Generator().manual_seed(seed)
    grid = torch.randn(channels, depth, grid_width, grid_height, batch, generator=gen, dtype=dtype)
    guide = torch.rand(width, height, batch, generator=gen, dtype=dtype)
    return grid.to(device), guide.to(device)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(params=[torch.float32, torch.float64], ids=["fp32", "fp64"])
def dtype(request):
    """All supported dtypes."""
    return request.param


@pytest.fixture(params=["cuda", "cpu"], ids=["cuda", "cpu"])
def device(request):
    """Parametrize over supported devices."""
    device = request.param
    if device == "cuda" and not torch.cuda.is_available():
        pytest.skip("CUDA not available")
    return device
