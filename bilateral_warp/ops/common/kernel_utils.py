# pyright: reportInvalidTypeForm=false
"""
Centralized utilities for Warp kernel management.

This module provides:
- Kernel caching infrastructure
- Shape extraction and validation for the bilateral grid / guide tensors
- The single launch capability shared by every kernel
"""

import torch
import warp as wp
from typing import Any, Callable

from ...utils.log import LogWriter
from ...utils.warp_utils import wp_scalar_type


# =============================================================================
# Kernel Registry - Global cache for instantiated kernels
# =============================================================================

class KernelRegistry:
    """
    Global registry for caching instantiated Warp kernels.

    Kernels are cached by (factory_id, dtype) to avoid redundant
    compilation and ensure efficient kernel reuse.
    """

    _cache: dict[tuple[int, type], Any] = {}

    @classmethod
    def get(cls, factory: Callable, dtype: type) -> Any:
        """
        Get or create a kernel for the given factory and dtype.

        Args:
            factory: Kernel factory function taking a Warp scalar type
            dtype: Warp scalar type (wp.float32, wp.float64)

        Returns:
            Instantiated Warp kernel
        """
        key = (id(factory), dtype)
        if key not in cls._cache:
            LogWriter.debug(f"Instantiating {factory.__qualname__} for {dtype.__name__}")
            cls._cache[key] = factory(dtype)
        return cls._cache[key]

    @classmethod
    def clear(cls):
        """Clear the kernel cache (useful for testing)."""
        cls._cache.clear()


# =============================================================================
# Shape Handling Utilities
# =============================================================================

class SliceShape:
    """Extents shared by the grid (C, D, GX, GY, B) and guide (W, H, B) tensors."""
    __slots__ = ('channels', 'depth', 'grid_width', 'grid_height', 'width', 'height', 'batch')

    def __init__(self, channels: int, depth: int, grid_width: int, grid_height: int,
                 width: int, height: int, batch: int):
        self.channels = channels
        self.depth = depth
        self.grid_width = grid_width
        self.grid_height = grid_height
        self.width = width
        self.height = height
        self.batch = batch

    @property
    def grid_shape(self) -> tuple[int, int, int, int, int]:
        return (self.channels, self.depth, self.grid_width, self.grid_height, self.batch)

    @property
    def guide_shape(self) -> tuple[int, int, int]:
        return (self.width, self.height, self.batch)

    @property
    def output_shape(self) -> tuple[int, int, int, int]:
        return (self.channels, self.width, self.height, self.batch)

    def __repr__(self) -> str:
        return f"SliceShape(grid={self.grid_shape}, guide={self.guide_shape})"


def check_same_kind(*tensors: torch.Tensor):
    dtype, device = tensors[0].dtype, tensors[0].device
    for t in tensors[1:]:
        if t.dtype != dtype:
            raise ValueError(f"Expected all tensors to have dtype {dtype}, got {t.dtype}")
        if t.device != device:
            raise ValueError(f"Expected all tensors on device {device}, got {t.device}")
    # Raises NotImplementedError for unsupported dtypes
    wp_scalar_type(dtype)


def prepare_slice_shape(
    grid_shape: tuple,
    guide: torch.Tensor,
    codomain_tangent: torch.Tensor | None = None,
) -> SliceShape:
    """
    Validate the grid / guide / codomain tangent shapes against each other.

    Args:
        grid_shape: Shape of the grid, (C, D, GX, GY, B)
        guide: Guide tensor of shape (W, H, B)
        codomain_tangent: Optional gradient w.r.t. the output, shape (C, W, H, B)

    Returns:
        SliceShape holding every extent
    """
    if len(grid_shape) != 5:
        raise ValueError(f"Expected grid of shape (C, D, GX, GY, B), got {tuple(grid_shape)}")
    if guide.dim() != 3:
        raise ValueError(f"Expected guide of shape (W, H, B), got {tuple(guide.shape)}")

    channels, depth, grid_width, grid_height, batch = grid_shape
    width, height, guide_batch = guide.shape
    if guide_batch != batch:
        raise ValueError(
            f"Grid batch {batch} does not match guide batch {guide_batch}."
        )

    shape = SliceShape(channels, depth, grid_width, grid_height, width, height, batch)

    if codomain_tangent is not None and tuple(codomain_tangent.shape) != shape.output_shape:
        raise ValueError(
            f"Codomain tangent of shape {tuple(codomain_tangent.shape)} does not match "
            f"output shape {shape.output_shape}."
        )

    return shape


def check_samplable(shape: SliceShape):
    """
    Reject grids with an empty depth or spatial axis.

    Only called by kernels whose own output is non-empty and that sample the
    grid; a zero-element target is a no-op whatever the grid extents are.
    """
    if min(shape.depth, shape.grid_width, shape.grid_height) == 0:
        raise ValueError(f"Cannot sample from degenerate grid of shape {shape.grid_shape}")


def to_flat_warp(tensor: torch.Tensor) -> wp.array:
    """Zero-copy view of a contiguous copy of `tensor` as a 1D Warp array."""
    flat = tensor.detach().contiguous().view(-1)
    return wp.from_torch(flat, dtype=wp_scalar_type(tensor.dtype))


# =============================================================================
# Launch
# =============================================================================

def launch_kernel(kernel, count: int, inputs: list, device) -> bool:
    """
    Launch `count` independent tasks of `kernel`, one per flat output index.

    Args:
        kernel: Warp kernel taking the flat task id from wp.tid()
        count: Number of tasks (elements of the output)
        inputs: Kernel arguments, output array included
        device: Warp device to launch on

    Returns:
        True if Warp accepted the launch. An empty launch is a no-op and
        succeeds. Only errors raised at launch time (bad arguments, module
        compilation, device setup) are reported as False. On CUDA the kernel
        runs asynchronously on PyTorch's current stream, so a fault during
        execution surfaces as a CUDA error at the next synchronising call on
        that stream, not here.
    """
    if count == 0:
        return True
    # Enqueue on PyTorch's current stream so torch consumers see results in order
    stream = wp.stream_from_torch(wp.device_to_torch(device)) if device.is_cuda else None
    try:
        wp.launch(kernel=kernel, dim=count, inputs=inputs, device=device, stream=stream)
    except (RuntimeError, TypeError, ValueError) as e:
        LogWriter.error(f"Failed to launch {kernel.key} over {count} elements: {e}")
        return False
    return True
