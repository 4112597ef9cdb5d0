"""Resolve one layer specification into a surface sample.

Source priority is: extracted material input, triplanar projection, planar
texture maps, then solid values. Each path falls back per channel to the
same defaults as an empty layer.
"""

import logging

from ..config import LayerSpec, TextureMaps
from ..core.graph import const, uv
from ..core.material import ExtractedMaterial
from ..core.records import (
    DEFAULT_AO, DEFAULT_HEIGHT, DEFAULT_METALNESS, DEFAULT_NORMAL,
    DEFAULT_ROUGHNESS, SurfaceSample,
)
from ..core.texture import Texture
from ..errors import LayerResolutionError
from ..features.bombing import TextureBomber
from ..features.channels import (
    assemble_sample, fallback_metalness, fallback_roughness, finish_sample,
    solid_color,
)
from ..features.parallax import ParallaxMapper
from ..features.triplanar import TriplanarSampler

logger = logging.getLogger("layered_material.sampler")

EXTRACTED_COLOR = (1.0, 1.0, 1.0)
_MAP_KEYS = ("color", "normal", "roughness", "metalness", "ao", "height", "arm")


class TextureSampler:
    """Planar sampling of a layer's texture bundle."""

    @staticmethod
    def layer_uv(layer: LayerSpec):
        """Tiled UVs, offset by parallax when the layer has a height map."""
        coord = uv() * layer.scale
        maps = layer.maps
        if maps is not None and maps.height is not None and layer.parallax.enable:
            coord = ParallaxMapper.offset(coord, maps.height, layer.parallax)
        return coord

    @classmethod
    def sample(cls, layer: LayerSpec) -> SurfaceSample:
        if layer.maps is None:
            raise LayerResolutionError(layer.label, "texture sampling needs a 'maps' bundle")
        coord = cls.layer_uv(layer)
        bombing = layer.texture_bombing

        def fetch(tex):
            return TextureBomber.apply(tex, coord, bombing)

        logger.debug(
            "Planar sampling for layer %s (scale=%s, parallax=%s, bombing=%s)",
            layer.label, layer.scale, layer.parallax.enable, bombing.enable,
        )
        return assemble_sample(layer, layer.maps, fetch)


class MaterialExtractor:
    """Build a sample from an `ExtractedMaterial` input."""

    @classmethod
    def extract(cls, layer: LayerSpec) -> SurfaceSample:
        material = layer.material_input
        if material is None:
            raise LayerResolutionError(layer.label, "no material input to extract from")
        transform = layer.material_transform
        if transform.extract_textures and material.has_textures():
            return cls._resample_textures(layer, material)
        if transform.extract_textures:
            logger.debug(
                "Material %s exposes no textures; using its shading terms", material.name,
            )
        sample = SurfaceSample(
            color=material.term("color", EXTRACTED_COLOR),
            normal=material.term("normal", DEFAULT_NORMAL),
            roughness=cls._scalar(layer, material, "roughness", DEFAULT_ROUGHNESS),
            metalness=cls._scalar(layer, material, "metalness", DEFAULT_METALNESS),
            ao=material.term("ao", DEFAULT_AO),
            height=material.term("height", DEFAULT_HEIGHT),
        )
        return finish_sample(sample, layer)

    @staticmethod
    def _scalar(layer: LayerSpec, material: ExtractedMaterial, name: str, default: float):
        override = getattr(layer, name)
        if override is not None and not layer.material_transform.respect_material_settings:
            return const(override)
        if material.has_term(name):
            return material.term(name, default)
        return const(default if override is None else override)

    @staticmethod
    def _resample_textures(layer: LayerSpec, material: ExtractedMaterial) -> SurfaceSample:
        maps = TextureMaps(**{k: material.maps.get(k) for k in _MAP_KEYS})
        scale = layer.scale if layer.material_transform.override_scale else 1.0
        logger.debug("Re-sampling textures of material %s at scale %s", material.name, scale)
        planar = layer.replace(maps=maps, material_input=None, scale=scale)
        return TextureSampler.sample(planar)


class DefaultLayerFactory:
    """Solid-value layers and a few presets."""

    @staticmethod
    def create(layer: LayerSpec) -> SurfaceSample:
        sample = SurfaceSample(
            color=solid_color(layer),
            normal=const(*DEFAULT_NORMAL),
            roughness=fallback_roughness(layer),
            metalness=fallback_metalness(layer),
            ao=const(DEFAULT_AO),
            height=const(DEFAULT_HEIGHT),
        )
        return finish_sample(sample, layer)

    @staticmethod
    def from_color(r: float, g: float, b: float) -> SurfaceSample:
        return SurfaceSample.default().replace(color=const(r, g, b))

    @staticmethod
    def metallic(r: float, g: float, b: float, roughness: float = 0.2) -> SurfaceSample:
        return SurfaceSample.default().replace(
            color=const(r, g, b), roughness=const(roughness), metalness=const(1.0),
        )

    @staticmethod
    def dielectric(r: float, g: float, b: float, roughness: float = 0.8) -> SurfaceSample:
        return SurfaceSample.default().replace(
            color=const(r, g, b), roughness=const(roughness), metalness=const(0.0),
        )


class SourceResolver:
    """Pick the source path for a layer and sample it."""

    @staticmethod
    def source_kind(layer: LayerSpec) -> str:
        if layer.material_input is not None:
            return "material"
        if layer.triplanar.enable:
            return "triplanar"
        if layer.maps is not None and _has_textures(layer.maps):
            return "texture"
        return "solid"

    @classmethod
    def resolve(cls, layer: LayerSpec) -> SurfaceSample:
        kind = cls.source_kind(layer)
        logger.debug("Resolving layer %s via %s source", layer.label, kind)
        if kind == "material":
            return MaterialExtractor.extract(layer)
        if kind == "triplanar":
            return TriplanarSampler.sample(layer)
        if kind == "texture":
            return TextureSampler.sample(layer)
        return DefaultLayerFactory.create(layer)


def _has_textures(maps: TextureMaps) -> bool:
    return any(isinstance(getattr(maps, k), Texture) for k in _MAP_KEYS)
