"""Deferred scalar/vector field expressions.

A `Node` describes a value that exists at every surface point without
computing it. Layers, masks, and blends are built by composing nodes; the
resulting graph is evaluated later against a `SurfaceContext` (see
`evaluate`). Nodes are immutable, so one graph can be evaluated any number
of times, on any context, without interference.

Every evaluated value is a float64 array whose last axis holds the
components (`dim`), so scalars broadcast against vectors the same way they
do in shading languages.
"""

import logging
import numbers

import numpy as np

from ..errors import GraphError

logger = logging.getLogger("layered_material.graph")

_SWIZZLE_INDEX = {
    "x": 0, "y": 1, "z": 2, "w": 3,
    "r": 0, "g": 1, "b": 2, "a": 3,
}

INPUT_DIMS = {
    "uv": 2,
    "position_world": 3,
    "position_local": 3,
    "normal_world": 3,
    "normal_local": 3,
    "tangent_world": 3,
    "camera_position": 3,
}

NORMALIZE_EPSILON = 1e-8


class Node:
    """One vertex of an expression graph."""

    __slots__ = ("op", "args", "dim", "params")

    # Keep numpy from broadcasting element-wise over a Node operand.
    __array_ufunc__ = None

    def __init__(self, op: str, args=(), dim: int = 1, params=None):
        if not 1 <= dim <= 4:
            raise GraphError(f"Node '{op}' has unsupported component count {dim}")
        self.op = op
        self.args = tuple(args)
        self.dim = dim
        self.params = params

    def __repr__(self):
        if self.op == "const":
            return f"Node(const {self.params.tolist()})"
        if self.op == "input":
            return f"Node(input {self.params})"
        return f"Node({self.op}, dim={self.dim}, args={len(self.args)})"

    def __bool__(self):
        raise GraphError(
            "Symbolic nodes have no truth value; branch with select() instead"
        )

    def __getattr__(self, name):
        if (
            name.startswith("_")
            or not 1 <= len(name) <= 4
            or any(c not in _SWIZZLE_INDEX for c in name)
        ):
            raise AttributeError(name)
        return self.swizzle(name)

    # -- arithmetic -------------------------------------------------------

    def __add__(self, other):
        return _binary("add", self, other)

    def __radd__(self, other):
        return _binary("add", other, self)

    def __sub__(self, other):
        return _binary("sub", self, other)

    def __rsub__(self, other):
        return _binary("sub", other, self)

    def __mul__(self, other):
        return _binary("mul", self, other)

    def __rmul__(self, other):
        return _binary("mul", other, self)

    def __truediv__(self, other):
        return _binary("div", self, other)

    def __rtruediv__(self, other):
        return _binary("div", other, self)

    def __neg__(self):
        return _unary("neg", self)

    def __abs__(self):
        return _unary("abs", self)

    add = __add__
    sub = __sub__
    mul = __mul__
    div = __truediv__

    def min(self, other):
        return _binary("min", self, other)

    def max(self, other):
        return _binary("max", self, other)

    def pow(self, other):
        return _binary("pow", self, other)

    def abs(self):
        return _unary("abs", self)

    def floor(self):
        return _unary("floor", self)

    def fract(self):
        return _unary("fract", self)

    def sqrt(self):
        return _unary("sqrt", self)

    def sin(self):
        return _unary("sin", self)

    def cos(self):
        return _unary("cos", self)

    def exp(self):
        return _unary("exp", self)

    def one_minus(self):
        return _binary("sub", 1.0, self)

    def clamp(self, low=0.0, high=1.0):
        return clamp(self, low, high)

    def saturate(self):
        return clamp(self, 0.0, 1.0)

    # -- vector -----------------------------------------------------------

    def dot(self, other):
        return dot(self, other)

    def cross(self, other):
        return cross(self, other)

    def length(self):
        return length(self)

    def normalize(self):
        return normalize(self)

    def swizzle(self, pattern: str):
        """Return a node selecting components by letter (`xyzw` or `rgba`)."""
        try:
            indices = tuple(_SWIZZLE_INDEX[c] for c in pattern)
        except KeyError:
            raise GraphError(f"Invalid swizzle '{pattern}'") from None
        if not indices or len(indices) > 4:
            raise GraphError(f"Invalid swizzle '{pattern}'")
        if max(indices) >= self.dim:
            raise GraphError(
                f"Swizzle '{pattern}' reads past a {self.dim}-component value"
            )
        if self.dim == 1 and indices == (0,):
            return self
        return Node("swizzle", (self,), len(indices), indices)

    # -- comparison -------------------------------------------------------

    def less_than(self, other):
        return _binary("lt", self, other)

    def less_equal(self, other):
        return _binary("le", self, other)

    def greater_than(self, other):
        return _binary("gt", self, other)

    def greater_equal(self, other):
        return _binary("ge", self, other)

    # -- screen-space derivatives ---------------------------------------

    def dfdx(self):
        return Node("dfdx", (self,), self.dim)

    def dfdy(self):
        return Node("dfdy", (self,), self.dim)


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------

def as_node(value) -> Node:
    """Coerce numbers, sequences, and arrays to constant nodes."""
    if isinstance(value, Node):
        return value
    if isinstance(value, numbers.Real):
        return const(float(value))
    arr = np.asarray(value, dtype=np.float64)
    if arr.ndim != 1:
        raise GraphError(f"Cannot build a constant from shape {arr.shape}")
    return const(*arr.tolist())


def const(*values) -> Node:
    """Return a constant node with one to four components."""
    arr = np.asarray(values, dtype=np.float64).reshape(-1)
    if not 1 <= arr.size <= 4:
        raise GraphError(f"Constants need 1-4 components, got {arr.size}")
    return Node("const", (), arr.size, arr)


def float_(value) -> Node:
    return const(float(value))


def vec(*components) -> Node:
    """Compose a vector from numbers and/or nodes."""
    if all(isinstance(c, numbers.Real) for c in components):
        return const(*components)
    nodes = [as_node(c) for c in components]
    dim = sum(n.dim for n in nodes)
    if dim > 4:
        raise GraphError(f"Composed vector has {dim} components")
    if len(nodes) == 1:
        return nodes[0]
    return Node("compose", nodes, dim)


def vec2(x, y=None) -> Node:
    if y is None:
        return vec(x, x)
    return vec(x, y)


def vec3(x, y=None, z=None) -> Node:
    if y is None and z is None:
        x = as_node(x)
        if x.dim == 3:
            return x
        return vec(x, x, x)
    return vec(*(c for c in (x, y, z) if c is not None))


def vec4(x, y=None, z=None, w=None) -> Node:
    return vec(*(c for c in (x, y, z, w) if c is not None))


def surface_input(name: str) -> Node:
    """Return a node reading one built-in per-point surface attribute."""
    if name not in INPUT_DIMS:
        raise GraphError(f"Unknown surface input '{name}'")
    return Node("input", (), INPUT_DIMS[name], name)


def uv() -> Node:
    return surface_input("uv")


def position_world() -> Node:
    return surface_input("position_world")


def position_local() -> Node:
    return surface_input("position_local")


def normal_world() -> Node:
    return surface_input("normal_world")


def normal_local() -> Node:
    return surface_input("normal_local")


def tangent_world() -> Node:
    return surface_input("tangent_world")


def camera_position() -> Node:
    return surface_input("camera_position")


def texture(tex, coords) -> Node:
    """Sample `tex` at `coords` (vec2); always yields an RGBA vec4."""
    coords = as_node(coords)
    if coords.dim != 2:
        raise GraphError(f"Texture coordinates must be vec2, got dim {coords.dim}")
    if not hasattr(tex, "sample_array"):
        raise GraphError(f"{type(tex).__name__} is not a samplable texture")
    return Node("texture", (coords,), 4, tex)


def _broadcast_dim(op: str, *nodes: Node) -> int:
    dims = {n.dim for n in nodes} - {1}
    if len(dims) > 1:
        raise GraphError(
            f"Operation '{op}' mixes incompatible component counts "
            f"{[n.dim for n in nodes]}"
        )
    return dims.pop() if dims else 1


def _binary(op: str, a, b) -> Node:
    a, b = as_node(a), as_node(b)
    return Node(op, (a, b), _broadcast_dim(op, a, b))


def _unary(op: str, a) -> Node:
    a = as_node(a)
    return Node(op, (a,), a.dim)


def minimum(a, b) -> Node:
    return _binary("min", a, b)


def maximum(a, b) -> Node:
    return _binary("max", a, b)


def pow_(a, b) -> Node:
    return _binary("pow", a, b)


def floor(a) -> Node:
    return _unary("floor", a)


def fract(a) -> Node:
    return _unary("fract", a)


def sqrt(a) -> Node:
    return _unary("sqrt", a)


def sin(a) -> Node:
    return _unary("sin", a)


def cos(a) -> Node:
    return _unary("cos", a)


def abs_(a) -> Node:
    return _unary("abs", a)


def clamp(value, low=0.0, high=1.0) -> Node:
    value, low, high = as_node(value), as_node(low), as_node(high)
    return Node("clamp", (value, low, high), _broadcast_dim("clamp", value, low, high))


def saturate(value) -> Node:
    return clamp(value, 0.0, 1.0)


def mix(a, b, t) -> Node:
    """Linear interpolation `a + (b - a) * t`."""
    a, b, t = as_node(a), as_node(b), as_node(t)
    return Node("mix", (a, b, t), _broadcast_dim("mix", a, b, t))


def smoothstep(edge0, edge1, x) -> Node:
    """Hermite step; reversed edges give a falling curve, equal edges a hard step."""
    edge0, edge1, x = as_node(edge0), as_node(edge1), as_node(x)
    return Node("smoothstep", (edge0, edge1, x), _broadcast_dim("smoothstep", edge0, edge1, x))


def step(edge, x) -> Node:
    return _binary("ge", x, edge)


def select(condition, if_true, if_false) -> Node:
    """Per-point choice: `if_true` where `condition` > 0.5."""
    condition = as_node(condition)
    if_true, if_false = as_node(if_true), as_node(if_false)
    if condition.dim != 1:
        raise GraphError("select() condition must be scalar")
    return Node(
        "select", (condition, if_true, if_false),
        _broadcast_dim("select", if_true, if_false),
    )


def dot(a, b) -> Node:
    a, b = as_node(a), as_node(b)
    if a.dim != b.dim:
        raise GraphError(f"dot() of dim {a.dim} and dim {b.dim}")
    return Node("dot", (a, b), 1)


def cross(a, b) -> Node:
    a, b = as_node(a), as_node(b)
    if a.dim != 3 or b.dim != 3:
        raise GraphError("cross() requires two vec3 values")
    return Node("cross", (a, b), 3)


def length(a) -> Node:
    return Node("length", (as_node(a),), 1)


def normalize(a) -> Node:
    a = as_node(a)
    return Node("normalize", (a,), a.dim)


def dfdx(a) -> Node:
    return as_node(a).dfdx()


def dfdy(a) -> Node:
    return as_node(a).dfdy()


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

def _fract(v):
    return v - np.floor(v)


_UNARY_OPS = {
    "neg": np.negative,
    "abs": np.abs,
    "floor": np.floor,
    "fract": _fract,
    "sqrt": lambda v: np.sqrt(np.maximum(v, 0.0)),
    "sin": np.sin,
    "cos": np.cos,
    "exp": np.exp,
}

_BINARY_OPS = {
    "add": np.add,
    "sub": np.subtract,
    "mul": np.multiply,
    "div": np.divide,
    "min": np.minimum,
    "max": np.maximum,
    # Shading-language pow is undefined for negative bases; floor at zero.
    "pow": lambda a, b: np.power(np.maximum(a, 0.0), b),
    "lt": lambda a, b: (a < b).astype(np.float64),
    "le": lambda a, b: (a <= b).astype(np.float64),
    "gt": lambda a, b: (a > b).astype(np.float64),
    "ge": lambda a, b: (a >= b).astype(np.float64),
}


def _compose(values, context):
    lead = np.broadcast_shapes(*(v.shape[:-1] for v in values))
    parts = [np.broadcast_to(v, lead + v.shape[-1:]) for v in values]
    return np.concatenate(parts, axis=-1)


def _smoothstep(e0, e1, x):
    span = e1 - e0
    degenerate = np.abs(span) < 1e-12
    t = (x - e0) / np.where(degenerate, 1.0, span)
    t = np.where(degenerate, (x >= e0).astype(np.float64), t)
    t = np.clip(t, 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def _length(v):
    return np.sqrt(np.sum(v * v, axis=-1, keepdims=True))


def _apply(node: Node, values, context):
    op = node.op
    if op == "const":
        return node.params
    if op == "input":
        return context.inputs[node.params]
    if op in _BINARY_OPS:
        return _BINARY_OPS[op](values[0], values[1])
    if op in _UNARY_OPS:
        return _UNARY_OPS[op](values[0])
    if op == "swizzle":
        return values[0][..., list(node.params)]
    if op == "compose":
        return _compose(values, context)
    if op == "mix":
        a, b, t = values
        return a + (b - a) * t
    if op == "clamp":
        return np.minimum(np.maximum(values[0], values[1]), values[2])
    if op == "smoothstep":
        return _smoothstep(*values)
    if op == "select":
        cond, a, b = values
        return np.where(cond > 0.5, a, b)
    if op == "dot":
        return np.sum(values[0] * values[1], axis=-1, keepdims=True)
    if op == "cross":
        a, b = np.broadcast_arrays(values[0], values[1])
        return np.cross(a, b)
    if op == "length":
        return _length(values[0])
    if op == "normalize":
        v = values[0]
        return v / np.maximum(_length(v), NORMALIZE_EPSILON)
    if op == "dfdx":
        return context.derivative(values[0], axis=1)
    if op == "dfdy":
        return context.derivative(values[0], axis=0)
    if op == "texture":
        coords = context.broadcast(values[0])
        return np.asarray(node.params.sample_array(coords), dtype=np.float64)
    raise GraphError(f"No evaluator registered for op '{op}'")


def evaluate(node, context) -> np.ndarray:
    """Evaluate `node` over every point of `context`.

    Shared sub-expressions are computed once per call. The walk is
    iterative, so deeply unrolled graphs (parallax marches, long layer
    stacks) do not hit the interpreter recursion limit.
    """
    node = as_node(node)
    memo = {}
    pending = [(node, False)]
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        while pending:
            current, expanded = pending.pop()
            key = id(current)
            if key in memo:
                continue
            if not expanded:
                pending.append((current, True))
                pending.extend(
                    (arg, False) for arg in current.args if id(arg) not in memo
                )
                continue
            memo[key] = _apply(current, [memo[id(a)] for a in current.args], context)
    return np.array(context.broadcast(memo[id(node)]), dtype=np.float64)


def count_nodes(node: Node) -> int:
    """Return the number of distinct nodes reachable from `node`."""
    seen = set()
    pending = [node]
    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        pending.extend(current.args)
    return len(seen)
