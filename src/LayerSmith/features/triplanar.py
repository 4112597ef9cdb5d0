"""Projection-based sampling for surfaces without usable UVs."""

import logging

from ..config import LayerSpec, TextureMaps
from ..core.graph import (
    Node, as_node, normal_local, normal_world, normalize, position_local,
    position_world, vec3,
)
from ..core.records import SurfaceSample
from ..errors import LayerResolutionError
from .bombing import TextureBomber
from .channels import assemble_sample, decode_normal

logger = logging.getLogger("layered_material.triplanar")

WEIGHT_EPSILON = 1e-6


def blend_weights(normal) -> Node:
    """Per-axis weights from the absolute normal; they sum to ~1."""
    w = normalize(as_node(normal).abs())
    return w / (w.x + w.y + w.z + WEIGHT_EPSILON)


class TriplanarSampler:
    """Sample a layer's maps from three axis-aligned projections."""

    @staticmethod
    def projections(layer: LayerSpec):
        """Return the X, Y, and Z projection coordinates and the projection normal."""
        world = layer.triplanar.use_world_position
        p = position_world() if world else position_local()
        n = normal_world() if world else normal_local()
        scale = layer.scale
        return (p.yz * scale, p.zx * scale, p.xy * scale), n

    @classmethod
    def sample(cls, layer: LayerSpec) -> SurfaceSample:
        if not layer.triplanar.enable:
            raise LayerResolutionError(layer.label, "triplanar.enable must be set for triplanar sampling")
        (uv_x, uv_y, uv_z), n = cls.projections(layer)
        weights = blend_weights(n)
        bombing = layer.texture_bombing
        logger.debug("Triplanar sampling for layer %s", layer.label)

        def fetch(tex):
            sx = TextureBomber.apply(tex, uv_x, bombing)
            sy = TextureBomber.apply(tex, uv_y, bombing)
            sz = TextureBomber.apply(tex, uv_z, bombing)
            return sx * weights.x + sy * weights.y + sz * weights.z

        def fetch_normal(tex):
            nx = decode_normal(TextureBomber.apply(tex, uv_x, bombing))
            ny = decode_normal(TextureBomber.apply(tex, uv_y, bombing))
            nz = decode_normal(TextureBomber.apply(tex, uv_z, bombing))
            # Re-orient each projection's tangent frame onto its axis.
            oriented_x = vec3(nx.z, nx.x, nx.y)
            oriented_y = vec3(ny.x, ny.z, ny.y)
            blended = oriented_x * weights.x + oriented_y * weights.y + nz * weights.z
            return normalize(blended)

        maps = layer.maps if layer.maps is not None else TextureMaps()
        return assemble_sample(layer, maps, fetch, fetch_normal)
