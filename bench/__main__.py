"""
Automated benchmark runner for the bilateral slice operator.

Generates a PNG chart comparing the Warp kernels against the PyTorch
reference across:
- Devices: CPU and CUDA
- Guide sizes: 64, 128, 256, 512, 1024 (square)
- Dtypes: fp32, fp64
- Modes: forward and backward

Usage:
    python -m bench
"""
# Use non-interactive backend for headless environments
import matplotlib
matplotlib.use('Agg')

import torch
import warp as wp
import matplotlib.pyplot as plt
import matplotlib.patches as mpatches
from pathlib import Path
from dataclasses import dataclass
from typing import Optional
import warnings

warnings.filterwarnings('ignore', category=UserWarning)

wp.init()
wp.config.quiet = True

from . import BilateralSlice as slice_bench


SIZES = [64, 128, 256, 512, 1024]
DTYPES = ["fp32", "fp64"]
DEVICES = ["cpu", "cuda"]
MODES = ["fwd", "bwd"]

GRID_SIZE = 16
GRID_DEPTH = 8

WARP_COLOR = "#85b737"
TORCH_COLOR = "#ee4c2c"

OUTPUT_DIR = Path(__file__).parent


@dataclass
class BenchResult:
    """Result of a single benchmark run."""
    device: str
    dtype: str
    size: int
    mode: str
    ref_median: float  # PyTorch reference median time in seconds
    wp_median: float   # Warp median time in seconds
    error: Optional[str] = None


def run_benchmark(device: str, dtype_str: str, size: int, mode: str) -> BenchResult:
    dtype = slice_bench.DTYPE_MAP[dtype_str]

    if device == "cuda" and not torch.cuda.is_available():
        return BenchResult(device, dtype_str, size, mode, 0, 0, error="CUDA not available")

    bench = slice_bench.bench_forward if mode == "fwd" else slice_bench.bench_backward
    try:
        ref_bench, wp_bench = bench(size, GRID_SIZE, GRID_DEPTH, device, dtype)
    except (RuntimeError, ValueError) as e:
        return BenchResult(device, dtype_str, size, mode, 0, 0, error=str(e))

    return BenchResult(device, dtype_str, size, mode, ref_bench.median, wp_bench.median)


def run_all() -> list[BenchResult]:
    results = []
    total = len(DEVICES) * len(DTYPES) * len(SIZES) * len(MODES)
    count = 0

    for mode in MODES:
        for device in DEVICES:
            for dtype in DTYPES:
                for size in SIZES:
                    count += 1
                    print(f"  [{count}/{total}] {mode} | {device} | {dtype} | size={size}", end="", flush=True)
                    result = run_benchmark(device, dtype, size, mode)
                    if result.error:
                        print(f" - SKIPPED ({result.error})")
                    else:
                        speedup = result.ref_median / result.wp_median if result.wp_median > 0 else 0
                        print(f" - {speedup:.2f}x")
                    results.append(result)

    return results


def create_plot(results: list[BenchResult]):
    """Create a PNG plot with one subplot per (mode, device, dtype)."""
    n_rows = len(MODES)
    n_cols = len(DEVICES) * len(DTYPES)

    fig, axes = plt.subplots(n_rows, n_cols, figsize=(n_cols * 3.5, n_rows * 3.5), squeeze=False)
    plt.style.use('dark_background')
    fig.patch.set_facecolor('#0d1117')

    result_map = {(r.mode, r.device, r.dtype, r.size): r for r in results}
    bar_width = 0.35
    x_positions = range(len(SIZES))

    for row_idx, mode in enumerate(MODES):
        for col_idx, (device, dtype) in enumerate([(d, t) for d in DEVICES for t in DTYPES]):
            ax = axes[row_idx, col_idx]
            ax.set_facecolor('#161b22')

            wp_times, ref_times = [], []
            for size in SIZES:
                result = result_map.get((mode, device, dtype, size))
                if result is None or result.error:
                    wp_times.append(0)
                    ref_times.append(0)
                else:
                    wp_times.append(result.wp_median * 1000)
                    ref_times.append(result.ref_median * 1000)

            if not any(wp_times):
                ax.text(0.5, 0.5, 'N/A', ha='center', va='center',
                        color='#8b949e', fontsize=12, transform=ax.transAxes)
                ax.set_xticks([])
                ax.set_yticks([])
            else:
                ax.bar([i - bar_width / 2 for i in x_positions], wp_times,
                       width=bar_width, color=WARP_COLOR, edgecolor='none')
                ax.bar([i + bar_width / 2 for i in x_positions], ref_times,
                       width=bar_width, color=TORCH_COLOR, edgecolor='none')

                ax.set_xticks(list(x_positions))
                ax.set_xticklabels([str(s) for s in SIZES], fontsize=8, color='#8b949e')
                ax.set_xlabel('Guide Size', fontsize=9, color='#8b949e')
                ax.tick_params(axis='y', labelsize=7, colors='#8b949e')
                ax.set_ylabel('Time (ms)', fontsize=9, color='#8b949e')
                ax.yaxis.grid(True, linestyle='--', alpha=0.3, color='#30363d')
                ax.set_axisbelow(True)

            ax.set_title(f"{mode.upper()} | {device} | {dtype}", fontsize=10,
                         color='#c9d1d9', pad=6, fontweight='bold')
            for spine in ax.spines.values():
                spine.set_color('#30363d')
                spine.set_linewidth(0.5)

    fig.suptitle('BilateralSlice Benchmark: Warp vs PyTorch',
                 fontsize=18, color='#f0f6fc', fontweight='bold', y=0.98)
    fig.legend(
        handles=[
            mpatches.Patch(color=WARP_COLOR, label='Warp Kernels'),
            mpatches.Patch(color=TORCH_COLOR, label='PyTorch Reference'),
        ],
        loc='upper right', fontsize=10, framealpha=0.8,
        facecolor='#161b22', edgecolor='#30363d', labelcolor='#c9d1d9',
    )
    plt.tight_layout(rect=[0, 0, 1, 0.95])

    output_path = OUTPUT_DIR / "BilateralSlice.png"
    fig.savefig(output_path, dpi=150, facecolor=fig.get_facecolor(), edgecolor='none', bbox_inches='tight')
    plt.close(fig)
    print(f"  Saved: {output_path}")


def main_bench():
    print("=" * 80)
    print("BilateralSlice Benchmark Suite")
    print("=" * 80)
    print(f"Guide sizes: {SIZES}")
    print(f"Grid: {GRID_SIZE}x{GRID_SIZE}x{GRID_DEPTH}")
    print(f"Dtypes: {DTYPES}")
    print(f"Devices: {DEVICES}")
    print("=" * 80)

    results = run_all()
    create_plot(results)


if __name__ == "__main__":
    main_bench()
