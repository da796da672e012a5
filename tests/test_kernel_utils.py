"""Unit tests for kernel caching, shape validation and launching."""
import pytest
import torch
import warp as wp

from bilateral_warp.ops.common.kernel_utils import (
    KernelRegistry,
    SliceShape,
    check_samplable,
    prepare_slice_shape,
    to_flat_warp,
    launch_kernel,
)
from bilateral_warp.ops.Slice.fwd import _make_kernel as _make_slice_kernel


class TestKernelRegistry:
    """Test kernel caching by (factory, dtype)."""

    def test_same_key_is_cached(self):
        first = KernelRegistry.get(_make_slice_kernel, wp.float32)
        second = KernelRegistry.get(_make_slice_kernel, wp.float32)

        assert first is second

    def test_dtype_is_part_of_key(self):
        fp32 = KernelRegistry.get(_make_slice_kernel, wp.float32)
        fp64 = KernelRegistry.get(_make_slice_kernel, wp.float64)

        assert fp32 is not fp64

    def test_clear(self):
        first = KernelRegistry.get(_make_slice_kernel, wp.float32)
        KernelRegistry.clear()
        second = KernelRegistry.get(_make_slice_kernel, wp.float32)

        assert first is not second


class TestPrepareSliceShape:
    """Test extent extraction and validation."""

    def test_extents(self):
        guide = torch.rand(7, 5, 2)
        grad_output = torch.randn(3, 7, 5, 2)

        shape = prepare_slice_shape((3, 8, 4, 2, 2), guide, grad_output)

        assert isinstance(shape, SliceShape)
        assert shape.grid_shape == (3, 8, 4, 2, 2)
        assert shape.guide_shape == (7, 5, 2)
        assert shape.output_shape == (3, 7, 5, 2)

    def test_batch_mismatch(self):
        with pytest.raises(ValueError, match="does not match guide batch"):
            prepare_slice_shape((3, 8, 4, 2, 2), torch.rand(7, 5, 1))

    def test_tangent_mismatch(self):
        with pytest.raises(ValueError, match="Codomain tangent"):
            prepare_slice_shape((3, 8, 4, 2, 2), torch.rand(7, 5, 2), torch.randn(2, 7, 5, 2))

    def test_empty_output_allows_empty_grid_axes(self):
        shape = prepare_slice_shape((0, 0, 4, 2, 2), torch.rand(7, 5, 2))

        assert shape.output_shape == (0, 7, 5, 2)

    def test_degenerate_grid_is_left_to_the_caller(self):
        """Test that an empty grid axis only fails once a kernel needs to sample it."""
        shape = prepare_slice_shape((3, 0, 4, 2, 2), torch.rand(7, 5, 2))

        assert shape.grid_shape == (3, 0, 4, 2, 2)
        with pytest.raises(ValueError, match="degenerate grid"):
            check_samplable(shape)

    def test_samplable_grid(self):
        check_samplable(prepare_slice_shape((3, 8, 4, 2, 2), torch.rand(7, 5, 2)))


class TestLaunchKernel:
    """Test the shared launch capability."""

    def test_zero_count_is_noop(self):
        """Test that an empty launch succeeds without touching the kernel or inputs."""
        assert launch_kernel(None, 0, inputs=[], device="cpu") is True

    def test_successful_launch(self, device):
        grid = torch.full((1, 2, 1, 1, 1), 3.0, device=device)
        guide = torch.rand(4, 2, 1, device=device)
        out = torch.zeros(1, 4, 2, 1, device=device)
        out_wp = wp.from_torch(out.view(-1), dtype=wp.float32)
        kernel = KernelRegistry.get(_make_slice_kernel, wp.float32)

        ok = launch_kernel(
            kernel,
            out.numel(),
            inputs=[to_flat_warp(grid), to_flat_warp(guide), out_wp, 2, 1, 1, 4, 2, 1],
            device=out_wp.device,
        )
        wp.synchronize_device(out_wp.device)

        assert ok is True
        torch.testing.assert_close(out, torch.full_like(out, 3.0))

    def test_failed_launch_reports_false(self, device):
        """Test that a launch error is reported as False instead of raised."""
        out = torch.zeros(8, device=device)
        out_wp = wp.from_torch(out, dtype=wp.float32)
        kernel = KernelRegistry.get(_make_slice_kernel, wp.float32)

        # Missing every scalar argument
        ok = launch_kernel(kernel, out.numel(), inputs=[out_wp], device=out_wp.device)

        assert ok is False


class TestToFlatWarp:
    def test_flattens_row_major(self, device, dtype):
        tensor = torch.arange(24, device=device, dtype=dtype).view(2, 3, 4).transpose(1, 2)

        array = to_flat_warp(tensor)

        assert array.shape == (24,)
        torch.testing.assert_close(wp.to_torch(array), tensor.contiguous().view(-1))


class TestPackageLayout:
    """Test that every operator module resolves through the package."""

    def test_public_api(self):
        import bilateral_warp

        for name in bilateral_warp.__all__:
            assert hasattr(bilateral_warp, name)

    def test_operator_submodules(self):
        from bilateral_warp.ops.Slice import fwd, bwd, BilateralSlice
        from bilateral_warp.ops.SliceApply import BilateralSliceApply_fwd

        assert callable(fwd.BilateralSlice_fwd)
        assert callable(bwd.BilateralSlice_bwd)
        assert issubclass(BilateralSlice, torch.autograd.Function)
        assert callable(BilateralSliceApply_fwd)
