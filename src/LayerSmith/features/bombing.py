"""Stochastic texture sampling that hides tiling repetition.

Each integer UV cell draws a hash that rotates and shifts its copy of the
texture; neighbouring cells are cross-faded so the seams stay soft.
"""

import logging
import math

from ..config import BombingMethod, BombingSpec
from ..core.graph import (
    Node, as_node, const, length, maximum, mix, select, smoothstep, texture,
    vec2,
)
from ..core.hashing import hash2d

logger = logging.getLogger("layered_material.bombing")

TWO_PI = 2.0 * math.pi
MAX_SAMPLES = 8
_MIN_WEIGHT = 1e-4

_MULTI_OFFSETS = (
    (0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (1.0, 1.0),
    (-1.0, 0.0), (0.0, -1.0), (-1.0, -1.0), (1.0, -1.0),
)


def transform_cell_uv(local, cell, rotation: bool = True, offset: bool = True) -> Node:
    """Rotate `local` about the cell centre and jitter it by the cell hash."""
    local = as_node(local)
    cell = as_node(cell)
    h = hash2d(cell)
    result = local
    if rotation:
        angle = h.z * TWO_PI
        cos_a, sin_a = angle.cos(), angle.sin()
        centred = local - 0.5
        result = vec2(
            centred.x * cos_a - centred.y * sin_a,
            centred.x * sin_a + centred.y * cos_a,
        ) + 0.5
    if offset:
        result = result + (h.xy * 2.0 - 1.0) * 0.5
    return result + cell


def uv_to_hex(coord) -> Node:
    """Skew UVs onto a hexagonal lattice."""
    p = as_node(coord)
    return vec2(p.x, p.y * 1.1547 - p.x * 0.5774)


class TextureBomber:
    """Build bombed texture lookups; every method returns an RGBA vec4 node."""

    @staticmethod
    def sample(tex, coord, blend: float = 0.5, rotation: bool = True, offset: bool = True) -> Node:
        """Cross-fade this cell's randomised copy with its +U neighbour's."""
        p = as_node(coord)
        cell = p.floor()
        local = p.fract()
        neighbour = cell + const(1.0, 0.0)
        first = texture(tex, transform_cell_uv(local, cell, rotation, offset))
        second = texture(tex, transform_cell_uv(local, neighbour, rotation, offset))
        factor = smoothstep(0.3, 0.7, local.x) * blend
        return mix(first, second, factor)

    @staticmethod
    def sample_multi(tex, coord, samples: int = 4, blend_radius: float = 0.5) -> Node:
        """Weighted average over up to eight neighbouring cells.

        Each cell's weight falls off with the distance from the point to that
        cell's centre, reaching zero `blend_radius` beyond the half-cell edge
        so adjacent cells overlap. Where no weight remains the point keeps its
        own cell's sample.
        """
        p = as_node(coord)
        cell = p.floor()
        local = p.fract()
        count = max(1, min(int(samples), MAX_SAMPLES))
        result = None
        total = None
        own = None
        for dx, dy in _MULTI_OFFSETS[:count]:
            shift = const(dx, dy)
            sample = texture(tex, transform_cell_uv(local, cell + shift))
            if own is None:
                own = sample
            weight = smoothstep(0.5 + blend_radius, 0.0, length(local - (shift + 0.5)))
            result = sample * weight if result is None else result + sample * weight
            total = weight if total is None else total + weight
        return select(total.greater_than(_MIN_WEIGHT), result / maximum(total, _MIN_WEIGHT), own)

    @staticmethod
    def sample_hex(tex, coord, rotation: bool = True, offset: bool = True) -> Node:
        hex_uv = uv_to_hex(coord)
        return texture(
            tex, transform_cell_uv(hex_uv.fract(), hex_uv.floor(), rotation, offset)
        )

    @classmethod
    def apply(cls, tex, coord, spec: BombingSpec) -> Node:
        """Sample `tex` the way `spec` asks; a plain lookup when disabled."""
        if spec is None or not spec.enable:
            return texture(tex, coord)
        logger.debug("Texture bombing (%s) on %r", spec.method.value, tex)
        if spec.method is BombingMethod.MULTI:
            return cls.sample_multi(tex, coord, spec.samples, spec.blend_radius)
        if spec.method is BombingMethod.HEX:
            return cls.sample_hex(tex, coord, spec.rotation, spec.offset)
        return cls.sample(tex, coord, spec.blend, spec.rotation, spec.offset)
