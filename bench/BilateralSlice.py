import argparse
import torch
import typing as T
import warp as wp

wp.init()

from bilateral_warp import bilateral_slice, bilateral_slice_reference
from torch.utils.benchmark import Timer


def make_inputs(size: int, grid_size: int, depth: int, device: T.Literal["cpu", "cuda"], dtype: torch.dtype,
                requires_grad: bool = False):
    grid = torch.randn(12, depth, grid_size, grid_size, 1, device=device, dtype=dtype, requires_grad=requires_grad)
    guide = torch.rand(size, size, 1, device=device, dtype=dtype, requires_grad=requires_grad)
    return grid, guide


def bench_forward(size: int, grid_size: int, depth: int, device: T.Literal["cpu", "cuda"], dtype: torch.dtype):
    grid, guide = make_inputs(size, grid_size, depth, device, dtype)

    ref_timer = Timer(stmt="f(grid, guide)", globals=dict(f=bilateral_slice_reference, grid=grid, guide=guide))
    wp_timer = Timer(stmt="f(grid, guide)", globals=dict(f=bilateral_slice, grid=grid, guide=guide))

    ref_bench = ref_timer.adaptive_autorange()
    wp_bench = wp_timer.adaptive_autorange()
    return ref_bench, wp_bench


def bench_backward(size: int, grid_size: int, depth: int, device: T.Literal["cpu", "cuda"], dtype: torch.dtype):
    grid, guide = make_inputs(size, grid_size, depth, device, dtype, requires_grad=True)

    # PyTorch autograd through the reference
    def ref_backward():
        grid.grad, guide.grad = None, None
        bilateral_slice_reference(grid, guide).sum().backward()

    # Warp gradient kernels
    def wp_backward():
        grid.grad, guide.grad = None, None
        bilateral_slice(grid, guide).sum().backward()

    ref_timer = Timer(stmt="ref_backward()", globals=dict(ref_backward=ref_backward))
    wp_timer = Timer(stmt="wp_backward()", globals=dict(wp_backward=wp_backward))

    ref_bench = ref_timer.adaptive_autorange()
    wp_bench = wp_timer.adaptive_autorange()
    return ref_bench, wp_bench


DTYPE_MAP = {
    "fp32": torch.float32,
    "fp64": torch.float64,
}


def main():
    parser = argparse.ArgumentParser(description="Benchmark BilateralSlice forward/backward")
    parser.add_argument("--mode", choices=["fwd", "bwd"], default="fwd", help="Benchmark forward or backward pass")
    parser.add_argument("--device", choices=["cpu", "cuda"], default="cuda", help="Device to run on")
    parser.add_argument("--dtype", choices=["fp32", "fp64"], default="fp32", help="Data type")
    parser.add_argument("--size", type=int, default=512, help="Guide width and height")
    parser.add_argument("--grid-size", type=int, default=16, help="Grid width and height")
    parser.add_argument("--depth", type=int, default=8, help="Grid depth")
    args = parser.parse_args()

    dtype = DTYPE_MAP[args.dtype]

    if args.device == "cuda" and not torch.cuda.is_available():
        print("CUDA not available, falling back to CPU")
        args.device = "cpu"

    print(f"Benchmarking BilateralSlice {args.mode} | device={args.device} | dtype={args.dtype} | "
          f"guide={args.size}x{args.size} | grid={args.grid_size}x{args.grid_size}x{args.depth}")
    print("-" * 80)

    if args.mode == "fwd":
        ref_bench, wp_bench = bench_forward(args.size, args.grid_size, args.depth, args.device, dtype)
    else:
        ref_bench, wp_bench = bench_backward(args.size, args.grid_size, args.depth, args.device, dtype)

    print(f"PyTorch: {ref_bench}")
    print(f"Warp:    {wp_bench}")
    print("-" * 80)

    speedup = ref_bench.median / wp_bench.median
    print(f"Speedup: {speedup:.2f}x {'(Warp faster)' if speedup > 1 else '(PyTorch faster)'}")


if __name__ == "__main__":
    main()
