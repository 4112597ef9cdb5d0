"""Define typed specifications for layers and the compositor.

Layer specs are frozen dataclasses: one compositing pass reads an immutable
snapshot of them. Every spec validates itself on construction and raises
`ConfigError` listing all problems at once. `from_dict` builds specs from
plain mappings (e.g. parsed YAML); texture references in such mappings are
names looked up in a caller-supplied registry.
"""

import dataclasses
import logging
import math
import numbers
import os
import types
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any, Dict, List, Mapping, Optional, Tuple, Union, get_args, get_origin,
    get_type_hints,
)

import yaml

from .core.material import ExtractedMaterial
from .core.texture import Texture
from .errors import ConfigError

logger = logging.getLogger("layered_material.config")

RGB = Tuple[float, float, float]


class NoiseType(str, Enum):
    """Enumerate procedural noise functions."""

    PERLIN = "perlin"
    VORONOI = "voronoi"
    FBM = "fbm"


class ColorBlendMode(str, Enum):
    """Enumerate Photoshop-style color blend modes."""

    NORMAL = "normal"
    MULTIPLY = "multiply"
    SCREEN = "screen"
    OVERLAY = "overlay"
    ADD = "add"
    SUBTRACT = "subtract"
    DIVIDE = "divide"
    DARKEN = "darken"
    LIGHTEN = "lighten"
    COLOR_BURN = "color-burn"
    COLOR_DODGE = "color-dodge"
    SOFT_LIGHT = "soft-light"
    HARD_LIGHT = "hard-light"


class NormalBlendMode(str, Enum):
    """Enumerate tangent-space normal blending techniques."""

    RNB = "rnb"
    LINEAR = "linear"
    WHITEOUT = "whiteout"
    UDN = "udn"
    PARTIAL_DERIVATIVE = "partial_derivative"
    OVERLAY = "overlay"


class ScalarBlendMode(str, Enum):
    """Enumerate blend modes for roughness, metalness, and AO."""

    NORMAL = "normal"
    MIN = "min"
    MAX = "max"
    MULTIPLY = "multiply"
    AVERAGE = "average"
    OVERLAY = "overlay"
    ADD = "add"
    SUBTRACT = "subtract"


class WearPattern(str, Enum):
    CURVATURE = "curvature"
    AMBIENT_OCCLUSION = "ambient_occlusion"
    WORLD_SPACE = "world_space"
    COMBINED = "combined"


class CurvatureMethod(str, Enum):
    NORMAL = "normal"
    POSITION = "position"
    SIMPLIFIED = "simplified"
    WORLD = "world"
    LAPLACE = "laplace"


class ParallaxMethod(str, Enum):
    SIMPLE = "simple"
    STEEP = "steep"
    POM = "pom"


class ParallaxQuality(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BombingMethod(str, Enum):
    DUAL = "dual"
    MULTI = "multi"
    HEX = "hex"


class MaskChannel(str, Enum):
    """Texture component a mask reads (`xyzw` aliases `rgba`)."""

    R = "r"
    G = "g"
    B = "b"
    A = "a"
    X = "x"
    Y = "y"
    Z = "z"
    W = "w"


PARALLAX_QUALITY_STEPS: Dict[ParallaxQuality, int] = {
    ParallaxQuality.LOW: 4,
    ParallaxQuality.MEDIUM: 8,
    ParallaxQuality.HIGH: 12,
}

PARALLAX_DEFAULT_SCALE: Dict[ParallaxMethod, float] = {
    ParallaxMethod.SIMPLE: 0.05,
    ParallaxMethod.STEEP: 0.08,
    ParallaxMethod.POM: 0.1,
}


def parse_enum(enum_cls, value):
    """Accept enum members, values, names, and `-`/`_` spelling variants."""
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        raise ConfigError(f"{enum_cls.__name__} expects a string, got {value!r}")
    text = _snake_case(value.strip())
    for candidate in (text, text.replace("_", "-"), text.replace("-", "_")):
        try:
            return enum_cls(candidate)
        except ValueError:
            continue
    try:
        return enum_cls[text.upper().replace("-", "_")]
    except KeyError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ConfigError(
            f"Unknown {enum_cls.__name__} '{value}' (expected one of: {allowed})"
        ) from None


def require_exhaustive(table: Mapping, enum_cls, label: str):
    """Fail at import time when a dispatch table misses an enum member."""
    missing = [m.value for m in enum_cls if m not in table]
    if missing:
        raise RuntimeError(f"No {label} registered for: {', '.join(missing)}")


class _Errors(list):
    """Collect validation messages and raise them together."""

    def check(self, ok: bool, message: str):
        if not ok:
            self.append(message)

    def raise_if_any(self, owner: str):
        if self:
            raise ConfigError(
                f"{owner} validation failed:\n" + "\n".join(f"  - {e}" for e in self)
            )


def _finite(value) -> bool:
    return value is not None and math.isfinite(value)


def _check_rgb(errors: _Errors, name: str, value):
    if value is None:
        return
    errors.check(
        isinstance(value, tuple) and len(value) == 3 and all(_finite(c) for c in value),
        f"{name} must be three finite numbers, got {value!r}",
    )


class _SpecMixin:
    """`from_dict` support shared by every spec dataclass."""

    _ALIASES: Dict[str, str] = {}

    def __post_init__(self):
        # Accept plain strings for enum-typed fields.
        for name, enum_cls in _enum_fields(type(self)).items():
            value = getattr(self, name)
            if value is not None and not isinstance(value, enum_cls):
                object.__setattr__(self, name, parse_enum(enum_cls, value))

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]], textures=None, _path: str = ""):
        """Build a spec from a mapping, warning about unknown or mistyped keys."""
        if data is None:
            return cls()
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping):
            raise ConfigError(
                f"'{_path or cls.__name__}' must be a mapping, got {type(data).__name__}"
            )
        textures = textures or {}
        data = cls._normalize_keys(dict(data))
        hints = get_type_hints(cls)
        names = {f.name: f for f in dataclasses.fields(cls)}
        kwargs = {}
        for key, value in data.items():
            full_key = f"{_path}{key}"
            if key not in names:
                logger.warning("Unknown config key ignored: '%s'", full_key)
                continue
            try:
                kwargs[key] = _coerce(hints[key], value, textures, full_key)
            except _TypeMismatch as exc:
                logger.warning(
                    "Config type mismatch for '%s': %s. Using default value.",
                    full_key, exc,
                )
        return cls(**kwargs)

    @classmethod
    def _normalize_keys(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        out = {}
        for key, value in data.items():
            key = _snake_case(str(key))
            out[cls._ALIASES.get(key, key)] = value
        return out


_ENUM_FIELDS_CACHE: Dict[type, Dict[str, type]] = {}


def _enum_fields(cls) -> Dict[str, type]:
    cached = _ENUM_FIELDS_CACHE.get(cls)
    if cached is None:
        hints = get_type_hints(cls)
        cached = {}
        for f in dataclasses.fields(cls):
            hint = hints[f.name]
            options = get_args(hint) if get_origin(hint) in (Union, types.UnionType) else (hint,)
            for option in options:
                if isinstance(option, type) and issubclass(option, Enum):
                    cached[f.name] = option
        _ENUM_FIELDS_CACHE[cls] = cached
    return cached


def _snake_case(key: str) -> str:
    chars = []
    for i, ch in enumerate(key):
        if ch.isupper() and i > 0 and (key[i - 1].islower() or key[i - 1].isdigit()):
            chars.append("_")
        chars.append(ch.lower())
    return "".join(chars)


class _TypeMismatch(Exception):
    pass


def _coerce(hint, value, textures, path: str):
    origin = get_origin(hint)
    if origin is Union or origin is types.UnionType:
        candidates = [a for a in get_args(hint) if a is not type(None)]
        if value is None:
            return None
    else:
        candidates = [hint]
    if value is None:
        raise _TypeMismatch("null is not allowed")
    last_error = None
    for candidate in candidates:
        try:
            return _coerce_one(candidate, value, textures, path)
        except _TypeMismatch as exc:
            last_error = exc
    raise last_error or _TypeMismatch(f"unsupported value {value!r}")


def _coerce_one(candidate, value, textures, path: str):
    if isinstance(candidate, type) and issubclass(candidate, Enum):
        return parse_enum(candidate, value)
    if isinstance(candidate, type) and issubclass(candidate, Texture):
        if isinstance(value, Texture):
            return value
        if isinstance(value, str):
            if value not in textures:
                raise ConfigError(f"'{path}' references unknown texture '{value}'")
            return textures[value]
        raise _TypeMismatch(f"expected texture or texture name, got {value!r}")
    if isinstance(candidate, type) and issubclass(candidate, _SpecMixin):
        if isinstance(value, candidate):
            return value
        if isinstance(value, Mapping):
            return candidate.from_dict(value, textures, f"{path}.")
        raise _TypeMismatch(f"expected mapping, got {type(value).__name__}")
    if candidate is ExtractedMaterial:
        if isinstance(value, ExtractedMaterial):
            return value
        raise _TypeMismatch("material inputs must be ExtractedMaterial instances")
    if get_origin(candidate) is tuple:
        size = len(get_args(candidate))
        if (
            isinstance(value, (list, tuple))
            and len(value) == size
            and all(isinstance(v, numbers.Real) and not isinstance(v, bool) for v in value)
        ):
            return tuple(float(v) for v in value)
        raise _TypeMismatch(f"expected {size} numbers, got {value!r}")
    if candidate is bool:
        if isinstance(value, bool):
            return value
        raise _TypeMismatch(f"expected bool, got {type(value).__name__} ({value!r})")
    if candidate is float:
        if isinstance(value, numbers.Real) and not isinstance(value, bool):
            return float(value)
        raise _TypeMismatch(f"expected float, got {type(value).__name__} ({value!r})")
    if candidate is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # Promote exact-integer floats (e.g. YAML 4.0 -> 4).
        if isinstance(value, float) and value.is_integer():
            return int(value)
        raise _TypeMismatch(f"expected int, got {type(value).__name__} ({value!r})")
    if candidate is str:
        if isinstance(value, str):
            return value
        raise _TypeMismatch(f"expected str, got {type(value).__name__} ({value!r})")
    raise _TypeMismatch(f"unsupported field type {candidate!r}")


# ---------------------------------------------------------------------------
# Feature specs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NoiseSpec(_SpecMixin):
    """Store settings for procedural noise."""

    use_noise: bool = False
    noise_type: NoiseType = NoiseType.PERLIN
    scale: float = 1.0
    octaves: Optional[int] = None
    persistence: float = 0.5
    threshold: Optional[float] = None

    _ALIASES = {
        "noise_scale": "scale",
        "noise_octaves": "octaves",
        "noise_persistence": "persistence",
        "noise_threshold": "threshold",
        "type": "noise_type",
    }

    def __post_init__(self):
        super().__post_init__()
        errors = _Errors()
        errors.check(_finite(self.scale) and self.scale > 0,
                     f"noise scale must be > 0, got {self.scale}")
        errors.check(self.octaves is None or 1 <= self.octaves <= 16,
                     f"noise octaves must be in [1, 16], got {self.octaves}")
        errors.check(_finite(self.persistence) and 0 < self.persistence <= 1,
                     f"noise persistence must be in (0, 1], got {self.persistence}")
        errors.check(self.threshold is None or _finite(self.threshold),
                     f"noise threshold must be finite, got {self.threshold}")
        errors.raise_if_any("NoiseSpec")

    @property
    def effective_octaves(self) -> int:
        if self.octaves is not None:
            return self.octaves
        return 4 if self.noise_type is NoiseType.FBM else 1


@dataclass(frozen=True)
class MaskSpec(_SpecMixin):
    """Store the conditions that shape a layer's opacity."""

    texture: Optional[Texture] = None
    channel: MaskChannel = MaskChannel.R
    invert: bool = False
    use_slope: bool = False
    slope_min: float = 0.0
    slope_max: float = 1.0
    use_height: bool = False
    height_min: float = 0.0
    height_max: float = 10.0
    noise: NoiseSpec = field(default_factory=NoiseSpec)
    opacity_multiplier: Optional[float] = None
    constant_opacity: Optional[float] = None

    _ALIASES = {"map": "texture"}
    _NOISE_KEYS = {
        "use_noise": "use_noise",
        "noise_type": "noise_type",
        "noise_scale": "scale",
        "noise_octaves": "octaves",
        "noise_persistence": "persistence",
        "noise_threshold": "threshold",
    }

    def __post_init__(self):
        super().__post_init__()
        errors = _Errors()
        errors.check(self.slope_min <= self.slope_max,
                     f"slope_min ({self.slope_min}) must not exceed slope_max ({self.slope_max})")
        errors.check(self.height_min <= self.height_max,
                     f"height_min ({self.height_min}) must not exceed height_max ({self.height_max})")
        errors.check(self.opacity_multiplier is None or _finite(self.opacity_multiplier),
                     "opacity_multiplier must be finite")
        errors.check(self.constant_opacity is None or _finite(self.constant_opacity),
                     "constant_opacity must be finite")
        errors.raise_if_any("MaskSpec")

    @classmethod
    def _normalize_keys(cls, data):
        data = super()._normalize_keys(data)
        # Flat noise keys (useNoise, noiseScale, ...) fold into the nested spec.
        flat = {k: data.pop(k) for k in list(data) if k in cls._NOISE_KEYS}
        if flat:
            nested = dict(data.get("noise") or {})
            for key, value in flat.items():
                nested.setdefault(cls._NOISE_KEYS[key], value)
            data["noise"] = nested
        return data


@dataclass(frozen=True)
class BlendModeSpec(_SpecMixin):
    """Select one blend algorithm per channel family."""

    color: ColorBlendMode = ColorBlendMode.NORMAL
    normal: NormalBlendMode = NormalBlendMode.RNB
    roughness: ScalarBlendMode = ScalarBlendMode.NORMAL
    metalness: ScalarBlendMode = ScalarBlendMode.NORMAL
    ao: ScalarBlendMode = ScalarBlendMode.NORMAL

    @classmethod
    def physical(cls, **overrides) -> "BlendModeSpec":
        """Roughness max, metalness linear, AO multiply."""
        values = dict(
            roughness=ScalarBlendMode.MAX,
            metalness=ScalarBlendMode.NORMAL,
            ao=ScalarBlendMode.MULTIPLY,
        )
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True)
class EdgeWearSpec(_SpecMixin):
    """Store settings for curvature/AO/world-space edge wear."""

    enable: bool = False
    intensity: float = 1.0
    threshold: float = 0.1
    falloff: float = 0.3
    sharpness: float = 2.0
    use_noise: bool = False
    color: RGB = (0.7, 0.6, 0.5)
    affects_material: bool = False
    roughness: float = 0.3
    metalness: float = 0.8
    wear_pattern: WearPattern = WearPattern.CURVATURE
    curvature_method: CurvatureMethod = CurvatureMethod.NORMAL

    def __post_init__(self):
        super().__post_init__()
        errors = _Errors()
        errors.check(_finite(self.intensity) and self.intensity >= 0,
                     f"edge wear intensity must be >= 0, got {self.intensity}")
        errors.check(_finite(self.falloff) and self.falloff >= 0,
                     f"edge wear falloff must be >= 0, got {self.falloff}")
        errors.check(_finite(self.sharpness) and self.sharpness > 0,
                     f"edge wear sharpness must be > 0, got {self.sharpness}")
        errors.check(0 <= self.roughness <= 1, f"worn roughness must be in [0, 1], got {self.roughness}")
        errors.check(0 <= self.metalness <= 1, f"worn metalness must be in [0, 1], got {self.metalness}")
        _check_rgb(errors, "edge wear color", self.color)
        errors.raise_if_any("EdgeWearSpec")


@dataclass(frozen=True)
class TriplanarSpec(_SpecMixin):
    enable: bool = False
    use_world_position: bool = True


@dataclass(frozen=True)
class BombingSpec(_SpecMixin):
    """Store settings for stochastic texture bombing."""

    enable: bool = False
    blend: float = 0.5
    rotation: bool = True
    offset: bool = True
    method: BombingMethod = BombingMethod.DUAL
    samples: int = 4
    blend_radius: float = 0.5

    def __post_init__(self):
        super().__post_init__()
        errors = _Errors()
        errors.check(0 <= self.blend <= 1, f"bombing blend must be in [0, 1], got {self.blend}")
        errors.check(1 <= self.samples <= 8, f"bombing samples must be in [1, 8], got {self.samples}")
        errors.check(self.blend_radius > 0, f"bombing blend_radius must be > 0, got {self.blend_radius}")
        errors.raise_if_any("BombingSpec")


@dataclass(frozen=True)
class HeightBlendSpec(_SpecMixin):
    """Store settings for height-driven blend transitions."""

    enable: bool = False
    strength: float = 1.0
    sharpness: Optional[float] = None

    def __post_init__(self):
        super().__post_init__()
        errors = _Errors()
        errors.check(_finite(self.strength) and self.strength >= 0,
                     f"height blend strength must be >= 0, got {self.strength}")
        errors.check(self.sharpness is None or (_finite(self.sharpness) and self.sharpness > 0),
                     f"height blend sharpness must be > 0, got {self.sharpness}")
        errors.raise_if_any("HeightBlendSpec")


@dataclass(frozen=True)
class ParallaxSpec(_SpecMixin):
    """Store settings for height-driven UV offsetting."""

    enable: bool = False
    method: ParallaxMethod = ParallaxMethod.SIMPLE
    scale: Optional[float] = None
    steps: Optional[int] = None
    max_offset: float = 0.1
    quality: ParallaxQuality = ParallaxQuality.MEDIUM

    def __post_init__(self):
        super().__post_init__()
        errors = _Errors()
        errors.check(self.scale is None or (_finite(self.scale) and self.scale >= 0),
                     f"parallax scale must be >= 0, got {self.scale}")
        errors.check(self.steps is None or 1 <= self.steps <= 64,
                     f"parallax steps must be in [1, 64], got {self.steps}")
        errors.check(_finite(self.max_offset) and self.max_offset >= 0,
                     f"parallax max_offset must be >= 0, got {self.max_offset}")
        errors.raise_if_any("ParallaxSpec")

    @property
    def effective_scale(self) -> float:
        if self.scale is not None:
            return self.scale
        return PARALLAX_DEFAULT_SCALE[self.method]

    @property
    def effective_steps(self) -> int:
        if self.steps is not None:
            return self.steps
        return PARALLAX_QUALITY_STEPS[self.quality]


@dataclass(frozen=True)
class MaterialTransformSpec(_SpecMixin):
    """Control how an extracted material input is re-used."""

    extract_textures: bool = False
    override_scale: bool = False
    respect_material_settings: bool = True


@dataclass(frozen=True)
class TextureMaps(_SpecMixin):
    """Planar texture bundle; every channel is optional.

    `color` may also be a solid RGB triple. `arm` packs AO, roughness, and
    metalness into R, G, B and overrides the separate maps.
    """

    color: Union[Texture, RGB, None] = None
    normal: Optional[Texture] = None
    roughness: Optional[Texture] = None
    metalness: Optional[Texture] = None
    ao: Optional[Texture] = None
    height: Optional[Texture] = None
    arm: Optional[Texture] = None

    _ALIASES = {"orm": "arm"}

    def __post_init__(self):
        super().__post_init__()
        errors = _Errors()
        if not isinstance(self.color, Texture):
            _check_rgb(errors, "maps.color", self.color)
        errors.raise_if_any("TextureMaps")


@dataclass(frozen=True)
class LayerSpec(_SpecMixin):
    """One entry of the layer stack.

    Source priority: `material_input` > `triplanar.enable` > `maps` > solid
    `color`.
    """

    name: Optional[str] = None
    material_input: Optional[ExtractedMaterial] = None
    maps: Optional[TextureMaps] = None
    color: Optional[RGB] = None
    color_tint: Optional[RGB] = None
    roughness: Optional[float] = None
    metalness: Optional[float] = None
    scale: float = 1.0
    material_transform: MaterialTransformSpec = field(default_factory=MaterialTransformSpec)
    triplanar: TriplanarSpec = field(default_factory=TriplanarSpec)
    texture_bombing: BombingSpec = field(default_factory=BombingSpec)
    parallax: ParallaxSpec = field(default_factory=ParallaxSpec)
    edge_wear: EdgeWearSpec = field(default_factory=EdgeWearSpec)
    mask: MaskSpec = field(default_factory=MaskSpec)
    height_blend: HeightBlendSpec = field(default_factory=HeightBlendSpec)
    blend_mode: BlendModeSpec = field(default_factory=BlendModeSpec)

    _ALIASES = {"map": "maps", "tint": "color_tint"}

    def __post_init__(self):
        super().__post_init__()
        # None selects the feature defaults.
        for f in dataclasses.fields(self):
            if getattr(self, f.name) is None and f.default_factory is not dataclasses.MISSING:
                object.__setattr__(self, f.name, f.default_factory())
        errors = _Errors()
        errors.check(_finite(self.scale) and self.scale > 0,
                     f"layer scale must be > 0, got {self.scale}")
        errors.check(self.roughness is None or 0 <= self.roughness <= 1,
                     f"layer roughness must be in [0, 1], got {self.roughness}")
        errors.check(self.metalness is None or 0 <= self.metalness <= 1,
                     f"layer metalness must be in [0, 1], got {self.metalness}")
        _check_rgb(errors, "layer color", self.color)
        _check_rgb(errors, "layer color_tint", self.color_tint)
        errors.raise_if_any(f"LayerSpec '{self.name or '<unnamed>'}'")

    @property
    def label(self) -> str:
        return self.name or "<unnamed>"

    def replace(self, **changes) -> "LayerSpec":
        return dataclasses.replace(self, **changes)


# ---------------------------------------------------------------------------
# Compositor configuration
# ---------------------------------------------------------------------------

_SUPPORTED_CONFIG_VERSION = 1
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class CompositorConfig:
    """Global compositor settings."""

    config_version: int = 1
    # Default sharpness for height-based blend transitions.
    blend_sharpness: float = 8.0
    # Propagate upper-layer resolution errors instead of skipping the layer.
    strict_layers: bool = True
    log_level: str = "INFO"

    def validate(self):
        """Raise ConfigError describing every invalid setting."""
        errors = _Errors()
        errors.check(isinstance(self.config_version, int) and self.config_version >= 1,
                     f"config_version must be a positive int, got {self.config_version!r}")
        errors.check(
            isinstance(self.blend_sharpness, (int, float)) and _finite(self.blend_sharpness)
            and self.blend_sharpness > 0,
            f"blend_sharpness must be > 0, got {self.blend_sharpness!r}",
        )
        errors.check(isinstance(self.strict_layers, bool),
                     f"strict_layers must be a bool, got {self.strict_layers!r}")
        errors.check(str(self.log_level).upper() in _LOG_LEVELS,
                     f"log_level must be one of {_LOG_LEVELS}, got {self.log_level!r}")
        errors.raise_if_any("Configuration")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "CompositorConfig":
        config = cls()
        _merge_dict_to_dataclass(config, data or {})
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, path: str) -> "CompositorConfig":
        """Load compositor configuration from YAML or return defaults."""
        if not os.path.exists(path):
            logger.info("Config file '%s' not found. Using defaults.", path)
            config = cls()
            config.validate()
            return config
        data = _read_yaml_mapping(path)
        section = data.get("compositor", data)
        try:
            return cls.from_dict(section)
        except ConfigError as exc:
            raise ConfigError(f"{path}: {exc}") from exc

    def to_yaml(self, path: str):
        """Write compositor configuration to a YAML file."""
        data = {"compositor": dataclasses.asdict(self)}
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        tmp_path = f"{path}.tmp.{os.getpid()}"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
            os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)


def _read_yaml_mapping(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse YAML config '{path}': {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file '{path}' must contain a YAML mapping, got {type(data).__name__}"
        )
    yaml_version = data.get("config_version", 1)
    if isinstance(yaml_version, int) and yaml_version > _SUPPORTED_CONFIG_VERSION:
        logger.warning(
            "Config file '%s' has config_version=%d, but this build only "
            "supports up to version %d. Some settings may be ignored.",
            path, yaml_version, _SUPPORTED_CONFIG_VERSION,
        )
    return data


def _merge_dict_to_dataclass(obj, data: Mapping[str, Any], _path: str = ""):
    for key, value in data.items():
        full_key = f"{_path}{key}"
        if not hasattr(obj, key):
            logger.warning("Unknown config key ignored: '%s'", full_key)
            continue
        field_val = getattr(obj, key)
        if value is None:
            logger.warning(
                "Config key '%s' is null but field default is %s. Using default value.",
                full_key, type(field_val).__name__,
            )
            continue
        expected_type = type(field_val)
        if (
            not isinstance(value, expected_type)
            or (isinstance(value, bool) and expected_type is not bool)
        ) and not (expected_type is float and isinstance(value, int) and not isinstance(value, bool)):
            logger.warning(
                "Config type mismatch for '%s': expected %s, got %s (%r). Using default value.",
                full_key, expected_type.__name__, type(value).__name__, value,
            )
            continue
        if expected_type is float:
            value = float(value)
        setattr(obj, key, value)


def parse_layer_stack(
    entries: Optional[List[Mapping[str, Any]]],
    textures: Optional[Mapping[str, Texture]] = None,
) -> Tuple[LayerSpec, ...]:
    """Build an ordered layer stack from a list of mappings (bottom first)."""
    if entries is None:
        return ()
    if not isinstance(entries, list):
        raise ConfigError(f"'layers' must be a list, got {type(entries).__name__}")
    layers = []
    for index, entry in enumerate(entries):
        layers.append(LayerSpec.from_dict(entry, textures, f"layers[{index}]."))
    return tuple(layers)


def load_layer_stack(
    path: str,
    textures: Optional[Mapping[str, Texture]] = None,
) -> Tuple[CompositorConfig, Tuple[LayerSpec, ...]]:
    """Read a YAML document with optional `compositor` and `layers` sections."""
    data = _read_yaml_mapping(path)
    try:
        config = CompositorConfig.from_dict(data.get("compositor") or {})
        layers = parse_layer_stack(data.get("layers"), textures)
    except ConfigError as exc:
        raise ConfigError(f"{path}: {exc}") from exc
    logger.info("Loaded %d layer(s) from %s", len(layers), path)
    return config, layers
