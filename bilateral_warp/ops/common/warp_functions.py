import warp as wp
import typing as T

from ...utils.warp_utils import wp_index_vec_type


vec5i = wp_index_vec_type(5)


# =============================================================================
# Interpolation weights
#
# Grid samples sit at cell centres (index + 0.5). Every weight below is a
# function of the distance t = |query - center| with support t < 1, so that
# the two cells bracketing a query always carry weights summing to one.
#
#   lerp_weight                 w(t) = 1 - t                   (tent)
#   smoothed_lerp_weight        w(t) = 1 - 3 t^2 + 2 t^3       (C1 tent)
#   smoothed_lerp_weight_grad   dw/dquery = 6 (t - 1) (query - center)
#
# The smoothed pair is used on the depth axis only: its derivative vanishes
# at t = 0 and t = 1, so the guide gradient is continuous across cells.
# =============================================================================

def lerp_weight(dtype):
    @wp.func
    def lerp_weight_impl(center: T.Any, query: T.Any) -> T.Any:
        return wp.max(dtype(1.0) - wp.abs(query - center), dtype(0.0))
    return lerp_weight_impl


def smoothed_lerp_weight(dtype):
    @wp.func
    def smoothed_lerp_weight_impl(center: T.Any, query: T.Any) -> T.Any:
        t = wp.abs(query - center)
        w = dtype(0.0)
        if t < dtype(1.0):
            w = dtype(1.0) - t * t * (dtype(3.0) - dtype(2.0) * t)
        return w
    return smoothed_lerp_weight_impl


def smoothed_lerp_weight_grad(dtype):
    @wp.func
    def smoothed_lerp_weight_grad_impl(center: T.Any, query: T.Any) -> T.Any:
        d = query - center
        t = wp.abs(d)
        dw = dtype(0.0)
        if t < dtype(1.0):
            dw = dtype(6.0) * (t - dtype(1.0)) * d
        return dw
    return smoothed_lerp_weight_grad_impl


# =============================================================================
# Boundary handling
# =============================================================================

@wp.func
def mirror_boundary(x: int, extent: int) -> int:
    """Reflect x into [0, extent) about the array edges: -1 -> 0, extent -> extent - 1."""
    period = 2 * extent
    m = x % period
    if m < 0:
        m = m + period
    if m >= extent:
        m = period - 1 - m
    return m


# =============================================================================
# Flat (row-major) index <-> coordinates
#
# Every kernel is launched as a 1D map over the flat index of its output, and
# all tensors are passed as contiguous 1D arrays. The helpers below take the
# extents of all axes but the leading one.
# =============================================================================

@wp.func
def unravel_index_3d(idx: int, n1: int, n2: int) -> wp.vec3i:
    i2 = idx % n2
    i1 = (idx // n2) % n1
    i0 = idx // (n1 * n2)
    return wp.vec3i(i0, i1, i2)


@wp.func
def unravel_index_4d(idx: int, n1: int, n2: int, n3: int) -> wp.vec4i:
    i3 = idx % n3
    i2 = (idx // n3) % n2
    i1 = (idx // (n2 * n3)) % n1
    i0 = idx // (n1 * n2 * n3)
    return wp.vec4i(i0, i1, i2, i3)


@wp.func
def unravel_index_5d(idx: int, n1: int, n2: int, n3: int, n4: int) -> vec5i:
    i4 = idx % n4
    i3 = (idx // n4) % n3
    i2 = (idx // (n3 * n4)) % n2
    i1 = (idx // (n2 * n3 * n4)) % n1
    i0 = idx // (n1 * n2 * n3 * n4)
    return vec5i(i0, i1, i2, i3, i4)


@wp.func
def ravel_index_3d(i0: int, i1: int, i2: int, n1: int, n2: int) -> int:
    return (i0 * n1 + i1) * n2 + i2


@wp.func
def ravel_index_4d(i0: int, i1: int, i2: int, i3: int, n1: int, n2: int, n3: int) -> int:
    return ((i0 * n1 + i1) * n2 + i2) * n3 + i3


@wp.func
def ravel_index_5d(
    i0: int, i1: int, i2: int, i3: int, i4: int,
    n1: int, n2: int, n3: int, n4: int,
) -> int:
    return (((i0 * n1 + i1) * n2 + i2) * n3 + i3) * n4 + i4
