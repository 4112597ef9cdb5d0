"""Per-point surface attributes that expression graphs are evaluated against."""

import logging
from typing import Dict, Sequence, Tuple

import numpy as np

from ..errors import GraphError
from .graph import INPUT_DIMS

logger = logging.getLogger("layered_material.context")


class SurfaceContext:
    """A 2D grid of surface points and their built-in shading inputs.

    The grid stands in for the rasterised fragments of one screen tile:
    screen-space derivatives (`dfdx`/`dfdy`) are differences between
    neighbouring columns and rows respectively.
    """

    def __init__(self, inputs: Dict[str, np.ndarray], shape: Tuple[int, int]):
        if len(shape) != 2 or min(shape) < 1:
            raise GraphError(f"SurfaceContext needs a non-empty 2D grid, got {shape}")
        self.shape = tuple(int(s) for s in shape)
        missing = sorted(set(INPUT_DIMS) - set(inputs))
        if missing:
            raise GraphError(f"SurfaceContext is missing inputs: {', '.join(missing)}")
        self.inputs = {}
        for name, value in inputs.items():
            self.inputs[name] = self._coerce_input(name, value)

    def _coerce_input(self, name: str, value) -> np.ndarray:
        if name not in INPUT_DIMS:
            raise GraphError(f"Unknown surface input '{name}'")
        dim = INPUT_DIMS[name]
        arr = np.asarray(value, dtype=np.float64)
        if arr.shape == (dim,):
            arr = np.broadcast_to(arr, self.shape + (dim,))
        if arr.shape != self.shape + (dim,):
            raise GraphError(
                f"Input '{name}' must have shape {self.shape + (dim,)} or ({dim},), "
                f"got {arr.shape}"
            )
        return np.ascontiguousarray(arr)

    @classmethod
    def plane(
        cls,
        height: int = 32,
        width: int = 32,
        size: float = 1.0,
        elevation: float = 0.0,
        camera: Sequence[float] = (0.0, 5.0, 0.0),
        uv_range: Tuple[float, float] = (0.0, 1.0),
    ) -> "SurfaceContext":
        """Build an up-facing square patch centred on the origin.

        UVs run across `uv_range` on pixel centres, world X follows U and
        world Z follows V, the tangent is +X, and both normals are +Y.
        """
        lo, hi = uv_range
        u = lo + (np.arange(width) + 0.5) / width * (hi - lo)
        v = lo + (np.arange(height) + 0.5) / height * (hi - lo)
        uu, vv = np.meshgrid(u, v)
        uv = np.stack([uu, vv], axis=-1)
        span = max(hi - lo, 1e-12)
        px = ((uu - lo) / span - 0.5) * size
        pz = ((vv - lo) / span - 0.5) * size
        position = np.stack([px, np.full_like(px, elevation), pz], axis=-1)
        return cls(
            {
                "uv": uv,
                "position_world": position,
                "position_local": position.copy(),
                "normal_world": (0.0, 1.0, 0.0),
                "normal_local": (0.0, 1.0, 0.0),
                "tangent_world": (1.0, 0.0, 0.0),
                "camera_position": tuple(camera),
            },
            (height, width),
        )

    def with_inputs(self, **overrides) -> "SurfaceContext":
        """Return a copy with some inputs replaced (constants are broadcast)."""
        logger.debug("Overriding surface inputs: %s", ", ".join(sorted(overrides)))
        inputs = dict(self.inputs)
        inputs.update(overrides)
        return SurfaceContext(inputs, self.shape)

    def broadcast(self, value: np.ndarray) -> np.ndarray:
        """Expand a constant or partial value to the full grid."""
        value = np.asarray(value, dtype=np.float64)
        return np.broadcast_to(value, self.shape + value.shape[-1:])

    def derivative(self, value: np.ndarray, axis: int) -> np.ndarray:
        """Central-difference screen-space derivative along a grid axis."""
        full = self.broadcast(value)
        if full.shape[axis] < 2:
            return np.zeros(full.shape, dtype=np.float64)
        return np.gradient(full, axis=axis)

    def __repr__(self):
        return f"SurfaceContext(shape={self.shape})"

