"""Small pure helpers shared by the feature modules."""

from .graph import (
    Node, as_node, clamp, const, length, maximum, select,
)

SAFE_DIVIDE_EPSILON = 1e-4
FLAT_NORMAL = (0.0, 0.0, 1.0)


def quintic(t) -> Node:
    """Perlin's fade curve `t^3 (t (6t - 15) + 10)`."""
    t = as_node(t)
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def remap(value, in_min: float, in_max: float, out_min: float, out_max: float) -> Node:
    span = in_max - in_min
    if abs(span) < 1e-12:
        raise ValueError("remap() input range must not be empty")
    t = (as_node(value) - in_min) / span
    return t * (out_max - out_min) + out_min


def inverse_lerp(a, b, value) -> Node:
    return safe_divide(as_node(value) - a, as_node(b) - a)


def smooth_min(a, b, k: float) -> Node:
    """Polynomial smooth minimum; `k` is the blend radius."""
    a, b = as_node(a), as_node(b)
    h = clamp(0.5 + 0.5 * (b - a) / k, 0.0, 1.0)
    return b * (1.0 - h) + a * h - k * h * (1.0 - h)


def smooth_max(a, b, k: float) -> Node:
    return -smooth_min(-as_node(a), -as_node(b), k)


def safe_divide(numerator, denominator) -> Node:
    """Divide with the denominator magnitude floored at 1e-4 (sign kept)."""
    denominator = as_node(denominator)
    floored = maximum(denominator.abs(), SAFE_DIVIDE_EPSILON)
    signed = select(denominator.less_than(0.0), -floored, floored)
    return as_node(numerator) / signed


def unpack_normal(sample) -> Node:
    """Map a [0, 1] texture sample to a [-1, 1] tangent-space vector."""
    return as_node(sample) * 2.0 - 1.0


def pack_normal(normal) -> Node:
    return as_node(normal) * 0.5 + 0.5


def flat_normal() -> Node:
    return const(*FLAT_NORMAL)


def safe_normalize(v, fallback=FLAT_NORMAL) -> Node:
    """Normalise `v`, substituting `fallback` where it is (near) zero."""
    v = as_node(v)
    n = length(v)
    return select(n.greater_than(1e-6), v / maximum(n, 1e-6), as_node(fallback))

