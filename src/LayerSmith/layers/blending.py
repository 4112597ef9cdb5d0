"""Blend-mode algebra for colors, normals, and scalar material channels.

Every blender takes `(base, top, factor)` nodes and returns a node; factor 0
yields `base`, factor 1 yields the full effect of the mode. Modes are looked
up in dispatch tables keyed by the mode enums.
"""

import logging
from typing import Callable, Dict, Optional

from ..config import (
    BlendModeSpec, ColorBlendMode, HeightBlendSpec, LayerSpec, NormalBlendMode,
    ScalarBlendMode, require_exhaustive,
)
from ..core.graph import (
    Node, as_node, const, dot, length, maximum, minimum, mix, saturate, vec3,
)
from ..core.mathutil import FLAT_NORMAL, safe_divide, safe_normalize
from ..core.records import SurfaceSample

logger = logging.getLogger("layered_material.blending")

GUARD = 0.001

ModeFn = Callable[[Node, Node], Node]


# ---------------------------------------------------------------------------
# Shared formulas
# ---------------------------------------------------------------------------

def _multiply2(base: Node, top: Node) -> Node:
    return base * top * 2.0


def _screen2(base: Node, top: Node) -> Node:
    return 1.0 - (1.0 - base) * (1.0 - top) * 2.0


def overlay(base, top) -> Node:
    """Multiply where the base is dark, screen where it is light."""
    base, top = as_node(base), as_node(top)
    return mix(_screen2(base, top), _multiply2(base, top), base.less_than(0.5))


def hard_light(base, top) -> Node:
    base, top = as_node(base), as_node(top)
    return mix(_screen2(base, top), _multiply2(base, top), top.less_than(0.5))


def soft_light(base, top) -> Node:
    base, top = as_node(base), as_node(top)
    darker = base - (1.0 - top * 2.0) * base * (1.0 - base)
    lighter = base + (top * 2.0 - 1.0) * (base.sqrt() - base)
    return mix(lighter, darker, top.less_than(0.5))


def _reconstruct_z(xy: Node) -> Node:
    return vec3(xy.x, xy.y, maximum(1.0 - dot(xy, xy), 0.0).sqrt())


# ---------------------------------------------------------------------------
# Color
# ---------------------------------------------------------------------------

_COLOR_MODES: Dict[ColorBlendMode, ModeFn] = {
    ColorBlendMode.NORMAL: lambda b, t: t,
    ColorBlendMode.MULTIPLY: lambda b, t: b * t,
    ColorBlendMode.SCREEN: lambda b, t: 1.0 - (1.0 - b) * (1.0 - t),
    ColorBlendMode.OVERLAY: overlay,
    ColorBlendMode.ADD: lambda b, t: saturate(b + t),
    ColorBlendMode.SUBTRACT: lambda b, t: saturate(b - t),
    ColorBlendMode.DIVIDE: lambda b, t: saturate(b / maximum(t, GUARD)),
    ColorBlendMode.DARKEN: minimum,
    ColorBlendMode.LIGHTEN: maximum,
    ColorBlendMode.COLOR_BURN: lambda b, t: saturate(1.0 - (1.0 - b) / maximum(t, GUARD)),
    ColorBlendMode.COLOR_DODGE: lambda b, t: saturate(b / maximum(1.0 - t, GUARD)),
    ColorBlendMode.SOFT_LIGHT: soft_light,
    ColorBlendMode.HARD_LIGHT: hard_light,
}

require_exhaustive(_COLOR_MODES, ColorBlendMode, "color blend mode")


class ColorBlender:
    @staticmethod
    def blend(base, top, factor, mode: ColorBlendMode = ColorBlendMode.NORMAL) -> Node:
        base, top = as_node(base), as_node(top)
        factor = saturate(factor)
        return mix(base, _COLOR_MODES[mode](base, top), factor)


# ---------------------------------------------------------------------------
# Scalar
# ---------------------------------------------------------------------------

_SCALAR_MODES: Dict[ScalarBlendMode, ModeFn] = {
    ScalarBlendMode.NORMAL: lambda b, t: t,
    ScalarBlendMode.MIN: minimum,
    ScalarBlendMode.MAX: maximum,
    ScalarBlendMode.MULTIPLY: lambda b, t: b * t,
    ScalarBlendMode.AVERAGE: lambda b, t: (b + t) * 0.5,
    ScalarBlendMode.OVERLAY: overlay,
    ScalarBlendMode.ADD: lambda b, t: b + t,
    ScalarBlendMode.SUBTRACT: lambda b, t: b - t,
}

require_exhaustive(_SCALAR_MODES, ScalarBlendMode, "scalar blend mode")


class ScalarBlender:
    @staticmethod
    def blend(base, top, factor, mode: ScalarBlendMode = ScalarBlendMode.NORMAL) -> Node:
        """Blend roughness/metalness/AO; non-linear modes are clamped to [0, 1]."""
        base, top = as_node(base), as_node(top)
        factor = saturate(factor)
        result = mix(base, _SCALAR_MODES[mode](base, top), factor)
        if mode is ScalarBlendMode.NORMAL:
            return result
        return saturate(result)


# ---------------------------------------------------------------------------
# Normal
# ---------------------------------------------------------------------------

def _rnb(base: Node, top: Node, factor: Node) -> Node:
    """Reoriented normal blending: rotate `top` into the frame of `base`."""
    t = base + const(0.0, 0.0, 1.0)
    u = top * const(-1.0, -1.0, 1.0)
    r = t * safe_divide(dot(t, u), t.z) - u
    return mix(base, r, factor)


def _linear(base: Node, top: Node, factor: Node) -> Node:
    return mix(base, top, factor)


def _whiteout(base: Node, top: Node, factor: Node) -> Node:
    return mix(base, base + top - const(0.0, 0.0, 1.0), factor)


def _udn(base: Node, top: Node, factor: Node) -> Node:
    return _reconstruct_z(mix(base.xy, top.xy, factor))


def _partial_derivative(base: Node, top: Node, factor: Node) -> Node:
    """Keep more of the base where it carries more screen-space detail."""
    base_detail = length(base.dfdx() + base.dfdy())
    top_detail = length(top.dfdx() + top.dfdy())
    weight = base_detail / (base_detail + top_detail + GUARD)
    return mix(base, top, factor * (1.0 - weight))


def _normal_overlay(base: Node, top: Node, factor: Node) -> Node:
    return _reconstruct_z(mix(base.xy, overlay(base.xy, top.xy), factor))


_NORMAL_MODES: Dict[NormalBlendMode, Callable[[Node, Node, Node], Node]] = {
    NormalBlendMode.RNB: _rnb,
    NormalBlendMode.LINEAR: _linear,
    NormalBlendMode.WHITEOUT: _whiteout,
    NormalBlendMode.UDN: _udn,
    NormalBlendMode.PARTIAL_DERIVATIVE: _partial_derivative,
    NormalBlendMode.OVERLAY: _normal_overlay,
}

require_exhaustive(_NORMAL_MODES, NormalBlendMode, "normal blend mode")


class NormalBlender:
    @staticmethod
    def blend(base, top, factor, mode: NormalBlendMode = NormalBlendMode.RNB) -> Node:
        """Blend unit normals; the result is always unit length."""
        base, top = as_node(base), as_node(top)
        factor = saturate(factor)
        return safe_normalize(_NORMAL_MODES[mode](base, top, factor), FLAT_NORMAL)


# ---------------------------------------------------------------------------
# Layer blending
# ---------------------------------------------------------------------------

def height_blend_factor(
    base_height,
    top_height,
    mask,
    spec: HeightBlendSpec,
    default_sharpness: float = 8.0,
) -> Node:
    """Shift the mask toward whichever layer is taller, then sharpen it.

    The shift vanishes where the mask is exactly 0 or 1, and the contrast
    curve `f^k / (f^k + (1-f)^k)` maps 0, 0.5 and 1 onto themselves, so
    fully hidden and fully shown regions are untouched.
    """
    mask = saturate(mask)
    shift = (as_node(top_height) - as_node(base_height)) * (spec.strength * 4.0)
    f = saturate(mask + shift * mask * (1.0 - mask))
    k = spec.sharpness if spec.sharpness is not None else default_sharpness
    # Same curve as 1 / (1 + ((1-f)/f)^k); stays finite for large k.
    # The ratio is inf at f = 0, which maps to 0.
    ratio = (1.0 - f) / f
    return saturate(1.0 / (1.0 + ratio.pow(k)))


class LayerBlender:
    """Blend a resolved layer sample onto the accumulated stack sample."""

    def __init__(self, default_sharpness: float = 8.0):
        self.default_sharpness = default_sharpness

    def factor(self, base: SurfaceSample, top: SurfaceSample, mask, layer: LayerSpec) -> Node:
        spec = layer.height_blend
        if spec is not None and spec.enable:
            return height_blend_factor(
                base.height, top.height, mask, spec, self.default_sharpness
            )
        return saturate(mask)

    def blend(
        self,
        base: SurfaceSample,
        top: SurfaceSample,
        mask,
        layer: LayerSpec,
        modes: Optional[BlendModeSpec] = None,
    ) -> SurfaceSample:
        modes = modes or layer.blend_mode or BlendModeSpec()
        f = self.factor(base, top, mask, layer)
        logger.debug(
            "Blending layer %s (color=%s normal=%s height_blend=%s)",
            layer.label, modes.color.value, modes.normal.value, layer.height_blend.enable,
        )
        return SurfaceSample(
            color=ColorBlender.blend(base.color, top.color, f, modes.color),
            normal=NormalBlender.blend(base.normal, top.normal, f, modes.normal),
            roughness=ScalarBlender.blend(base.roughness, top.roughness, f, modes.roughness),
            metalness=ScalarBlender.blend(base.metalness, top.metalness, f, modes.metalness),
            ao=ScalarBlender.blend(base.ao, top.ao, f, modes.ao),
            height=mix(base.height, top.height, f),
        )
