"""Surface sample records passed between the compositing stages."""

from dataclasses import dataclass, fields, replace as _replace
from typing import Dict

import numpy as np

from ..errors import GraphError
from .graph import Node, as_node, const, evaluate

CHANNELS = ("color", "normal", "roughness", "metalness", "ao", "height")
CHANNEL_DIMS = {
    "color": 3, "normal": 3, "roughness": 1, "metalness": 1, "ao": 1, "height": 1,
}

DEFAULT_COLOR = (0.8, 0.8, 0.8)
DEFAULT_NORMAL = (0.0, 0.0, 1.0)
DEFAULT_ROUGHNESS = 0.5
DEFAULT_METALNESS = 0.0
DEFAULT_AO = 1.0
DEFAULT_HEIGHT = 0.5


@dataclass(frozen=True)
class SurfaceSample:
    """Six symbolic shading fields describing one (possibly blended) layer.

    `normal` is a unit tangent-space vector (or re-oriented world vector for
    triplanar layers). Scalars are nominally in [0, 1].
    """

    color: Node
    normal: Node
    roughness: Node
    metalness: Node
    ao: Node
    height: Node

    def __post_init__(self):
        for name in CHANNELS:
            value = as_node(getattr(self, name))
            if value.dim != CHANNEL_DIMS[name]:
                raise GraphError(
                    f"SurfaceSample.{name} must have {CHANNEL_DIMS[name]} "
                    f"component(s), got {value.dim}"
                )
            object.__setattr__(self, name, value)

    @classmethod
    def default(cls) -> "SurfaceSample":
        """Flat grey, up-facing sample used for an empty stack."""
        return cls(
            color=const(*DEFAULT_COLOR),
            normal=const(*DEFAULT_NORMAL),
            roughness=const(DEFAULT_ROUGHNESS),
            metalness=const(DEFAULT_METALNESS),
            ao=const(DEFAULT_AO),
            height=const(DEFAULT_HEIGHT),
        )

    def replace(self, **changes) -> "SurfaceSample":
        return _replace(self, **changes)

    def as_dict(self) -> Dict[str, Node]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def evaluate(self, context) -> "SampleValues":
        """Evaluate every channel over `context`."""
        return SampleValues(**{name: evaluate(node, context) for name, node in self.as_dict().items()})


@dataclass(frozen=True)
class SampleValues:
    """Numeric result of evaluating a `SurfaceSample` on a surface grid.

    Arrays are shaped `grid + (components,)`.
    """

    color: np.ndarray
    normal: np.ndarray
    roughness: np.ndarray
    metalness: np.ndarray
    ao: np.ndarray
    height: np.ndarray

    def channel(self, name: str) -> np.ndarray:
        if name not in CHANNELS:
            raise KeyError(f"Unknown channel '{name}'")
        return getattr(self, name)
