from .log import LogWriter
from .warp_utils import wp_scalar_type, wp_index_vec_type
