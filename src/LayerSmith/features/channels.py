"""Turn a texture bundle into a surface sample, independent of projection.

Planar and triplanar sampling differ only in how one texture is fetched;
both hand a fetch function to `assemble_sample`, which applies the shared
per-channel rules: ARM priority, scalar fallbacks, tint, and edge wear.
"""

from typing import Callable, Optional

from ..config import LayerSpec, TextureMaps
from ..core.graph import Node, const
from ..core.mathutil import safe_normalize, unpack_normal
from ..core.records import (
    DEFAULT_AO, DEFAULT_COLOR, DEFAULT_HEIGHT, DEFAULT_METALNESS,
    DEFAULT_NORMAL, DEFAULT_ROUGHNESS, SurfaceSample,
)
from ..core.texture import Texture
from .edge_wear import EdgeWearCalculator

Fetch = Callable[[Texture], Node]


def solid_color(layer: LayerSpec) -> Node:
    if layer.color is not None:
        return const(*layer.color)
    maps = layer.maps
    if maps is not None and maps.color is not None and not isinstance(maps.color, Texture):
        return const(*maps.color)
    return const(*DEFAULT_COLOR)


def fallback_roughness(layer: LayerSpec) -> Node:
    return const(DEFAULT_ROUGHNESS if layer.roughness is None else layer.roughness)


def fallback_metalness(layer: LayerSpec) -> Node:
    return const(DEFAULT_METALNESS if layer.metalness is None else layer.metalness)


def decode_normal(rgba: Node) -> Node:
    """Unpack a normal-map texel to a unit tangent-space vector."""
    return safe_normalize(unpack_normal(rgba.xyz))


def apply_tint(color: Node, layer: LayerSpec) -> Node:
    if layer.color_tint is None:
        return color
    return color * const(*layer.color_tint)


def finish_sample(sample: SurfaceSample, layer: LayerSpec) -> SurfaceSample:
    """Tint, then edge wear: the last steps of every source path."""
    sample = sample.replace(color=apply_tint(sample.color, layer))
    return EdgeWearCalculator.apply(sample, layer.edge_wear)


def assemble_sample(
    layer: LayerSpec,
    maps: TextureMaps,
    fetch: Fetch,
    fetch_normal: Optional[Fetch] = None,
) -> SurfaceSample:
    """Resolve every channel of `maps` through `fetch`.

    `fetch` returns the RGBA lookup of a texture at the layer's (already
    offset) coordinates. `fetch_normal` returns a decoded unit normal; it
    defaults to decoding `fetch`.
    """
    if fetch_normal is None:
        def fetch_normal(tex):
            return decode_normal(fetch(tex))

    if isinstance(maps.color, Texture):
        color = fetch(maps.color).xyz
    else:
        color = solid_color(layer)

    normal = fetch_normal(maps.normal) if maps.normal is not None else const(*DEFAULT_NORMAL)

    if maps.arm is not None:
        arm = fetch(maps.arm)
        ao, roughness, metalness = arm.x, arm.y, arm.z
    else:
        roughness = fetch(maps.roughness).x if maps.roughness is not None else fallback_roughness(layer)
        metalness = fetch(maps.metalness).x if maps.metalness is not None else fallback_metalness(layer)
        ao = fetch(maps.ao).x if maps.ao is not None else const(DEFAULT_AO)

    height = fetch(maps.height).x if maps.height is not None else const(DEFAULT_HEIGHT)

    sample = SurfaceSample(
        color=color, normal=normal, roughness=roughness,
        metalness=metalness, ao=ao, height=height,
    )
    return finish_sample(sample, layer)
