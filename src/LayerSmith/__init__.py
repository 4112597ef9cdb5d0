"""Provide package metadata and the public API for `LayerSmith`."""

from .config import (
    BlendModeSpec, BombingMethod, BombingSpec, ColorBlendMode, CompositorConfig,
    CurvatureMethod, EdgeWearSpec, HeightBlendSpec, LayerSpec, MaskChannel,
    MaskSpec, MaterialTransformSpec, NoiseSpec, NoiseType, NormalBlendMode,
    ParallaxMethod, ParallaxQuality, ParallaxSpec, ScalarBlendMode,
    TextureMaps, TriplanarSpec, WearPattern, load_layer_stack,
)
from .core import (
    ExtractedMaterial, ImageTexture, SampleValues, SolidTexture, SurfaceContext,
    SurfaceSample, Texture, evaluate, setup_logging,
)
from .errors import (
    CompositionError, ConfigError, GraphError, LayerResolutionError,
    LayerSmithError,
)
from .layers.compositor import (
    LayerCompositor, LayeredMaterial, LayerStack, MaterialChanged,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "BlendModeSpec", "BombingMethod", "BombingSpec", "ColorBlendMode",
    "CompositorConfig", "CurvatureMethod", "EdgeWearSpec", "HeightBlendSpec",
    "LayerSpec", "MaskChannel", "MaskSpec", "MaterialTransformSpec",
    "NoiseSpec", "NoiseType", "NormalBlendMode", "ParallaxMethod",
    "ParallaxQuality", "ParallaxSpec", "ScalarBlendMode", "TextureMaps",
    "TriplanarSpec", "WearPattern", "load_layer_stack",
    "ExtractedMaterial", "ImageTexture", "SampleValues", "SolidTexture",
    "SurfaceContext", "SurfaceSample", "Texture", "evaluate", "setup_logging",
    "CompositionError", "ConfigError", "GraphError", "LayerResolutionError",
    "LayerSmithError",
    "LayerCompositor", "LayeredMaterial", "LayerStack", "MaterialChanged",
]
