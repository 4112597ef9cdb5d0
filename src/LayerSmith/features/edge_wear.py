"""Procedural edge wear from surface curvature, occlusion, and exposure."""

import logging
import math

from ..config import CurvatureMethod, EdgeWearSpec, WearPattern, require_exhaustive
from ..core.graph import (
    Node, as_node, const, dot, mix, normal_world, normalize, position_world,
    saturate, smoothstep,
)
from ..core.hashing import hash2d
from ..core.records import SurfaceSample
from .noise import NoiseGenerator

logger = logging.getLogger("layered_material.edge_wear")

UP = (0.0, 1.0, 0.0)
WIND = (1.0, 0.0, 0.0)
AO_SAMPLES = 4
AO_RADIUS = 0.1


def _gradient_magnitude(value: Node) -> Node:
    dx = value.dfdx()
    dy = value.dfdy()
    return (dot(dx, dx) + dot(dy, dy)).sqrt()


def _normal_curvature(normal: Node) -> Node:
    return _gradient_magnitude(normal)


def _position_curvature(normal: Node) -> Node:
    p = position_world()
    d2x = p.dfdx().dfdx()
    d2y = p.dfdy().dfdy()
    return (dot(d2x, d2x) + dot(d2y, d2y)).sqrt() * 0.1


def _simplified_curvature(normal: Node) -> Node:
    # Only the Z component is differentiated.
    return _gradient_magnitude(normal.z) * 2.0


def _world_curvature(normal: Node) -> Node:
    return _gradient_magnitude(normal_world())


def _laplace_curvature(normal: Node) -> Node:
    p = position_world()
    dxx = p.dfdx().dfdx()
    dyy = p.dfdy().dfdy()
    return (dot(dxx, dxx) + dot(dyy, dyy)).sqrt() * 0.05


_CURVATURE = {
    CurvatureMethod.NORMAL: _normal_curvature,
    CurvatureMethod.POSITION: _position_curvature,
    CurvatureMethod.SIMPLIFIED: _simplified_curvature,
    CurvatureMethod.WORLD: _world_curvature,
    CurvatureMethod.LAPLACE: _laplace_curvature,
}

require_exhaustive(_CURVATURE, CurvatureMethod, "curvature estimator")


def approximate_height(point: Node) -> Node:
    """Cheap terrain-like height at a world position."""
    ground = point.xz
    return NoiseGenerator.fbm(ground * 0.1, 2, 0.5) + hash2d(ground * 2.0).x * 0.05


class EdgeWearCalculator:
    """Build wear masks and apply them to a surface sample."""

    @staticmethod
    def curvature(normal, method: CurvatureMethod = CurvatureMethod.NORMAL) -> Node:
        return _CURVATURE[method](as_node(normal))

    @staticmethod
    def ambient_occlusion() -> Node:
        """Four-tap occlusion estimate around each point in its tangent plane."""
        p = position_world()
        tangent = normalize(p.dfdx())
        bitangent = normalize(p.dfdy())
        occlusion = None
        for i in range(AO_SAMPLES):
            angle = i / AO_SAMPLES * 2.0 * math.pi
            direction = (
                tangent * (math.cos(angle) * AO_RADIUS)
                + bitangent * (math.sin(angle) * AO_RADIUS)
            )
            diff = p.y - approximate_height(p + direction)
            term = saturate(diff * 10.0)
            occlusion = term if occlusion is None else occlusion + term
        return saturate(occlusion / AO_SAMPLES)

    @staticmethod
    def world_space() -> Node:
        """Exposure from facing away from +Y plus a fixed +X weathering axis."""
        n = normal_world()
        up_wear = 1.0 - dot(n, const(*UP))
        wind_wear = dot(n, const(*WIND)).abs()
        return up_wear * 0.7 + wind_wear * 0.3

    @classmethod
    def raw_wear(cls, normal, spec: EdgeWearSpec) -> Node:
        pattern = spec.wear_pattern
        if pattern is WearPattern.AMBIENT_OCCLUSION:
            return cls.ambient_occlusion()
        if pattern is WearPattern.WORLD_SPACE:
            return cls.world_space()
        curvature = cls.curvature(normal, spec.curvature_method)
        if pattern is WearPattern.COMBINED:
            return curvature * 0.5 + cls.ambient_occlusion() * 0.3 + cls.world_space() * 0.2
        return curvature

    @classmethod
    def wear_mask(cls, normal, spec: EdgeWearSpec) -> Node:
        """Return the shaped wear mask in [0, 1]."""
        raw = cls.raw_wear(normal, spec)
        mask = smoothstep(spec.threshold, spec.threshold + spec.falloff, raw * spec.intensity)
        mask = mask.pow(spec.sharpness)
        if spec.use_noise:
            ground = position_world().xz
            mask = mask * (NoiseGenerator.fbm(ground * 10.0, 3, 0.5) * 0.4 + 0.6)
            mask = mask * (hash2d(ground * 50.0).x * 0.1 + 0.95)
        return saturate(mask)

    @classmethod
    def apply(cls, sample: SurfaceSample, spec: EdgeWearSpec) -> SurfaceSample:
        """Blend the exposed-material look into `sample` where the mask is high."""
        if spec is None or not spec.enable:
            return sample
        logger.debug(
            "Edge wear: pattern=%s curvature=%s",
            spec.wear_pattern.value, spec.curvature_method.value,
        )
        mask = cls.wear_mask(sample.normal, spec)
        changes = {"color": mix(sample.color, const(*spec.color), mask)}
        if spec.affects_material:
            changes["roughness"] = mix(sample.roughness, spec.roughness, mask)
            changes["metalness"] = mix(sample.metalness, spec.metalness, mask)
        return sample.replace(**changes)

    @staticmethod
    def wear_intensity(roughness, metalness, ao) -> Node:
        """Susceptibility to wear: rough, non-metallic, unoccluded surfaces wear most."""
        return saturate(as_node(roughness) * 1.5 * (1.0 - as_node(metalness)) * as_node(ao))
