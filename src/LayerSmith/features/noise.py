"""Procedural noise fields built from the shared hash functions."""

import logging
from typing import Callable, Dict

from ..config import NoiseSpec, NoiseType, require_exhaustive
from ..core.graph import Node, as_node, const, minimum, mix, smoothstep, vec2
from ..core.hashing import hash2d
from ..core.mathutil import quintic

logger = logging.getLogger("layered_material.noise")

_CELL_NEIGHBOURS = [(dx, dy) for dy in (-1, 0, 1) for dx in (-1, 0, 1)]
_WARP_OFFSET = (5.2, 1.3)


class NoiseGenerator:
    """Build scalar noise nodes in [0, 1] for a 2D coordinate node."""

    @staticmethod
    def value_noise(coord) -> Node:
        """One octave of gradient-free lattice noise with quintic fade."""
        p = as_node(coord)
        cell = p.floor()
        f = p.fract()
        a = hash2d(cell).x
        b = hash2d(cell + const(1.0, 0.0)).x
        c = hash2d(cell + const(0.0, 1.0)).x
        d = hash2d(cell + const(1.0, 1.0)).x
        u = quintic(f)
        return mix(mix(a, b, u.x), mix(c, d, u.x), u.y)

    @classmethod
    def perlin(cls, coord, octaves: int = 1) -> Node:
        """Octave sum with a fixed 0.5 amplitude falloff, normalised to [0, 1]."""
        return cls.fbm(coord, octaves, 0.5)

    @classmethod
    def fbm(cls, coord, octaves: int = 4, persistence: float = 0.5) -> Node:
        p = as_node(coord)
        total = None
        amplitude = 1.0
        frequency = 1.0
        norm = 0.0
        for _ in range(max(1, int(octaves))):
            term = cls.value_noise(p * frequency) * amplitude
            total = term if total is None else total + term
            norm += amplitude
            amplitude *= persistence
            frequency *= 2.0
        return total / norm

    @classmethod
    def turbulence(cls, coord, octaves: int = 4, persistence: float = 0.5) -> Node:
        """Sum of folded octaves; produces sharp creases at the zero set."""
        p = as_node(coord)
        total = None
        amplitude = 1.0
        frequency = 1.0
        norm = 0.0
        for _ in range(max(1, int(octaves))):
            octave = (cls.value_noise(p * frequency) * 2.0 - 1.0).abs() * amplitude
            total = octave if total is None else total + octave
            norm += amplitude
            amplitude *= persistence
            frequency *= 2.0
        return total / norm

    @staticmethod
    def voronoi(coord) -> Node:
        """Cellular noise: one minus the distance to the nearest feature point."""
        p = as_node(coord)
        cell = p.floor()
        f = p.fract()
        min_dist = const(10.0)
        for dx, dy in _CELL_NEIGHBOURS:
            neighbour = const(float(dx), float(dy))
            point = hash2d(cell + neighbour).xy
            diff = neighbour + point - f
            min_dist = minimum(min_dist, diff.dot(diff))
        return (1.0 - min_dist.sqrt()).saturate()

    @classmethod
    def domain_warp(cls, coord, strength: float = 1.0) -> Node:
        """Offset `coord` by two decorrelated fbm fields."""
        p = as_node(coord)
        warp = vec2(
            cls.fbm(p, 3, 0.5),
            cls.fbm(p + const(*_WARP_OFFSET), 3, 0.5),
        )
        return p + warp * strength

    @classmethod
    def generate(cls, coord, spec: NoiseSpec) -> Node:
        """Return the noise field `spec` describes; 1.0 everywhere when disabled."""
        if spec is None or not spec.use_noise:
            return const(1.0)
        p = as_node(coord) * spec.scale
        octaves = spec.effective_octaves
        builder = _GENERATORS[spec.noise_type]
        value = builder(cls, p, octaves, spec.persistence)
        logger.debug(
            "Built %s noise (scale=%s, octaves=%d, threshold=%s)",
            spec.noise_type.value, spec.scale, octaves, spec.threshold,
        )
        if spec.threshold is not None:
            value = smoothstep(spec.threshold - 0.1, spec.threshold + 0.1, value)
        return value


_GENERATORS: Dict[NoiseType, Callable[..., Node]] = {
    NoiseType.PERLIN: lambda gen, p, octaves, persistence: gen.perlin(p, octaves),
    NoiseType.FBM: lambda gen, p, octaves, persistence: gen.fbm(p, octaves, persistence),
    NoiseType.VORONOI: lambda gen, p, octaves, persistence: gen.voronoi(p),
}

require_exhaustive(_GENERATORS, NoiseType, "noise generator")
