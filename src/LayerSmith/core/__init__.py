"""Core utilities -- re-exports all public symbols for convenience."""

from .graph import (
    Node,
    as_node, const, vec, vec2, vec3, vec4,
    surface_input, uv, position_world, position_local,
    normal_world, normal_local, tangent_world, camera_position,
    texture, minimum, maximum, pow_, floor, fract, sqrt, sin, cos, abs_,
    clamp, saturate, mix, smoothstep, step, select,
    dot, cross, length, normalize, dfdx, dfdy,
    evaluate, count_nodes,
)
from .context import SurfaceContext
from .texture import Texture, ImageTexture, SolidTexture
from .hashing import hash1d, hash2d, hash3d, int_hash2d
from .mathutil import (
    quintic, remap, inverse_lerp, smooth_min, smooth_max, safe_divide,
    unpack_normal, pack_normal, flat_normal, safe_normalize,
)
from .records import SurfaceSample, SampleValues, CHANNELS
from .material import ExtractedMaterial
from .logging import setup_logging

__all__ = [
    "Node",
    "as_node", "const", "vec", "vec2", "vec3", "vec4",
    "surface_input", "uv", "position_world", "position_local",
    "normal_world", "normal_local", "tangent_world", "camera_position",
    "texture", "minimum", "maximum", "pow_", "floor", "fract", "sqrt",
    "sin", "cos", "abs_", "clamp", "saturate", "mix", "smoothstep", "step",
    "select", "dot", "cross", "length", "normalize", "dfdx", "dfdy",
    "evaluate", "count_nodes",
    "SurfaceContext",
    "Texture", "ImageTexture", "SolidTexture",
    "hash1d", "hash2d", "hash3d", "int_hash2d",
    "quintic", "remap", "inverse_lerp", "smooth_min", "smooth_max",
    "safe_divide", "unpack_normal", "pack_normal", "flat_normal",
    "safe_normalize",
    "SurfaceSample", "SampleValues", "CHANNELS",
    "ExtractedMaterial",
    "setup_logging",
]
