"""Height-driven UV offsetting (simple, steep, and occlusion-mapped parallax).

Marches are unrolled at graph-build time: every step is a fixed set of
nodes, and per-point termination is expressed with `select`, so a point
that has already crossed the height surface keeps its UV through the
remaining steps.
"""

import logging
from typing import Callable, Union

from ..config import ParallaxMethod, ParallaxSpec, require_exhaustive
from ..core.graph import (
    Node, as_node, camera_position, clamp, cross, dot, maximum, mix,
    normal_world, normalize, position_world, select, tangent_world, texture,
    vec3,
)
from ..core.texture import Texture

logger = logging.getLogger("layered_material.parallax")

MIN_VIEW_Z = 0.1
POM_EPSILON = 1e-6

HeightField = Union[Texture, Callable[[Node], Node], Node, float]


def view_dir_tangent() -> Node:
    """Unit view direction expressed in the surface's tangent frame."""
    view = normalize(camera_position() - position_world())
    t = tangent_world()
    n = normal_world()
    b = cross(n, t)
    return normalize(vec3(dot(view, t), dot(view, b), dot(view, n)))


def height_sampler(height_field: HeightField) -> Callable[[Node], Node]:
    """Wrap a texture, callable, or constant as `uv -> scalar height`."""
    if isinstance(height_field, Texture):
        return lambda coord: texture(height_field, coord).x
    if callable(height_field) and not isinstance(height_field, Node):
        return height_field
    constant = as_node(height_field)
    if constant.dim != 1:
        constant = constant.x
    return lambda coord: constant


class ParallaxMapper:
    """Offset UV coordinates to fake depth from a height field."""

    @classmethod
    def offset(cls, coord, height_field: HeightField, spec: ParallaxSpec) -> Node:
        """Return the parallax-shifted UV; `coord` unchanged when disabled."""
        coord = as_node(coord)
        if spec is None or not spec.enable:
            return coord
        sample_height = height_sampler(height_field)
        logger.debug(
            "Parallax %s: scale=%s steps=%d",
            spec.method.value, spec.effective_scale, spec.effective_steps,
        )
        return _METHODS[spec.method](coord, sample_height, spec)

    @staticmethod
    def simple(coord, sample_height, spec: ParallaxSpec) -> Node:
        view = view_dir_tangent()
        view_z = maximum(view.z, MIN_VIEW_Z)
        h = sample_height(coord)
        shift = view.xy * ((1.0 - h) * spec.effective_scale) / view_z
        return coord - clamp(shift, -spec.max_offset, spec.max_offset)

    @staticmethod
    def _march(coord, sample_height, spec: ParallaxSpec):
        steps = spec.effective_steps
        layer_step = 1.0 / steps
        view = view_dir_tangent()
        delta = view.xy / maximum(view.z, MIN_VIEW_Z) * (spec.effective_scale / steps)

        current = coord
        layer_depth = as_node(0.0)
        depth = 1.0 - sample_height(current)
        for _ in range(steps):
            moving = layer_depth.less_than(depth)
            current = select(moving, current - delta, current)
            layer_depth = select(moving, layer_depth + layer_step, layer_depth)
            depth = select(moving, 1.0 - sample_height(current), depth)
        return current, delta, layer_depth, depth, layer_step

    @classmethod
    def steep(cls, coord, sample_height, spec: ParallaxSpec) -> Node:
        """Fixed-step march; accuracy depends on the step count."""
        current, _, _, _, _ = cls._march(coord, sample_height, spec)
        return current

    @classmethod
    def occlusion(cls, coord, sample_height, spec: ParallaxSpec) -> Node:
        """March, then interpolate between the crossing step and the one before."""
        current, delta, layer_depth, depth, layer_step = cls._march(coord, sample_height, spec)
        previous = current + delta
        after = depth - layer_depth
        before = (1.0 - sample_height(previous)) - layer_depth + layer_step
        denom = after - before
        safe_denom = select(denom.abs().greater_than(POM_EPSILON), denom, 1.0)
        weight = select(
            denom.abs().greater_than(POM_EPSILON),
            (after / safe_denom).saturate(),
            0.5,
        )
        return mix(current, previous, weight)


_METHODS = {
    ParallaxMethod.SIMPLE: ParallaxMapper.simple,
    ParallaxMethod.STEEP: ParallaxMapper.steep,
    ParallaxMethod.POM: ParallaxMapper.occlusion,
}

require_exhaustive(_METHODS, ParallaxMethod, "parallax method")
