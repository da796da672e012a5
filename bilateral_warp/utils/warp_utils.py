import torch
import warp as wp


def wp_scalar_type(dtype: torch.dtype):
    match dtype:
        case torch.float64: return wp.float64
        case torch.float32: return wp.float32
        case _: raise NotImplementedError(f"bilateral slicing does not support {dtype}.")


def wp_index_vec_type(length: int):
    """Warp int32 vector type holding `length` array coordinates."""
    match length:
        case 3: return wp.vec3i
        case 4: return wp.vec4i
        case _: return wp.types.vector(length=length, dtype=wp.int32)
