"""Hash functions: the single source of pseudo-randomness for all features.

Noise, texture bombing, and edge-wear variation all draw from these so that a
given coordinate always maps to the same value in every feature.
"""

from .graph import Node, as_node, const, dot, fract, vec3

_HASH_SCALE = const(0.1031, 0.1030, 0.0973)


def hash3d(p) -> Node:
    """Return a pseudo-random vec3 in [0, 1) from a vec3 coordinate."""
    p = as_node(p)
    p3 = fract(p * _HASH_SCALE)
    dp = dot(p3, p3.yzx + 33.33)
    return fract(vec3(dp) * (p3 + p3.yxz))


def hash2d(p) -> Node:
    """Return a pseudo-random vec3 in [0, 1) from a vec2 coordinate."""
    return hash3d(as_node(p).xyx)


def hash1d(n) -> Node:
    return fract(as_node(n).sin() * 43758.5453123)


def int_hash2d(p) -> Node:
    """Scalar hash that is constant across each integer grid cell."""
    cell = as_node(p).floor()
    return hash1d(cell.x + cell.y * 157.0)

