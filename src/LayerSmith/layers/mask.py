"""Per-layer opacity masks."""

import logging

from ..config import MaskSpec
from ..core.graph import (
    Node, const, normal_world, position_world, smoothstep, texture, uv,
)
from ..features.noise import NoiseGenerator

logger = logging.getLogger("layered_material.mask")

UP = (0.0, 1.0, 0.0)


class MaskGenerator:
    """Combine texture, slope, height, and noise conditions into one scalar."""

    @staticmethod
    def generate(spec: MaskSpec) -> Node:
        """Return the layer opacity node, saturated to [0, 1].

        Conditions multiply in a fixed order: texture channel, slope, world
        height, noise. `constant_opacity` then replaces the product and
        `opacity_multiplier` scales it; `invert` applies last.
        """
        spec = spec or MaskSpec()
        mask = const(1.0)
        if spec.texture is not None:
            # Masks read the unscaled mesh UVs, independent of layer tiling.
            mask = mask * texture(spec.texture, uv()).swizzle(spec.channel.value)
        if spec.use_slope:
            slope = normal_world().dot(const(*UP))
            mask = mask * smoothstep(spec.slope_min, spec.slope_max, slope)
        if spec.use_height:
            mask = mask * smoothstep(spec.height_min, spec.height_max, position_world().y)
        if spec.noise.use_noise:
            mask = mask * NoiseGenerator.generate(uv(), spec.noise)
        if spec.constant_opacity is not None:
            mask = const(spec.constant_opacity)
        if spec.opacity_multiplier is not None:
            mask = mask * spec.opacity_multiplier
        if spec.invert:
            mask = 1.0 - mask.saturate()
        return mask.saturate()
