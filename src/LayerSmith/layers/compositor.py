"""Fold an ordered layer stack into one surface sample."""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..config import CompositorConfig, LayerSpec, load_layer_stack
from ..core.graph import count_nodes
from ..core.logging import setup_logging
from ..core.records import CHANNELS, SurfaceSample
from ..core.texture import Texture
from ..errors import CompositionError, LayerSmithError
from .blending import LayerBlender
from .mask import MaskGenerator
from .sampler import SourceResolver

logger = logging.getLogger("layered_material.compositor")


class LayerCompositor:
    """Sample layer 0 as the base, then blend each later layer through its mask."""

    def __init__(self, config: Optional[CompositorConfig] = None):
        self.config = config or CompositorConfig()
        self.config.validate()
        self.blender = LayerBlender(self.config.blend_sharpness)

    def composite(self, layers: Sequence[LayerSpec]) -> SurfaceSample:
        layers = tuple(layers)
        if not layers:
            logger.debug("Empty layer stack; using the default surface sample")
            return SurfaceSample.default()

        try:
            result = SourceResolver.resolve(layers[0])
        except LayerSmithError as exc:
            raise CompositionError(
                f"Base layer '{layers[0].label}' failed to resolve: {exc}"
            ) from exc

        for index, layer in enumerate(layers[1:], start=1):
            try:
                top = SourceResolver.resolve(layer)
                mask = MaskGenerator.generate(layer.mask)
            except LayerSmithError:
                if self.config.strict_layers:
                    raise
                logger.error(
                    "Skipping layer %d (%s): it could not be resolved",
                    index, layer.label, exc_info=True,
                )
                continue
            result = self.blender.blend(result, top, mask, layer)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Composited %d layer(s); graph sizes: %s",
                len(layers),
                ", ".join(f"{c}={count_nodes(getattr(result, c))}" for c in CHANNELS),
            )
        return result


class LayerStack:
    """Immutable, ordered snapshot of layer specs (index 0 is the base).

    Every edit returns a new stack; the original is never modified.
    """

    __slots__ = ("_layers",)

    def __init__(self, layers: Iterable[LayerSpec] = ()):
        self._layers: Tuple[LayerSpec, ...] = tuple(layers)

    def __len__(self):
        return len(self._layers)

    def __iter__(self):
        return iter(self._layers)

    def __getitem__(self, index):
        return self._layers[index]

    def __eq__(self, other):
        if not isinstance(other, LayerStack):
            return NotImplemented
        return self._layers == other._layers

    def __hash__(self):
        return hash(self._layers)

    def __repr__(self):
        return f"LayerStack([{', '.join(layer.label for layer in self._layers)}])"

    @property
    def layers(self) -> Tuple[LayerSpec, ...]:
        return self._layers

    def _checked_index(self, index: int, allow_end: bool = False) -> int:
        size = len(self._layers)
        limit = size + 1 if allow_end else size
        if index < 0:
            index += size
        if not 0 <= index < limit:
            raise IndexError(f"Layer index {index} out of range for a stack of {size}")
        return index

    def add(self, layer: LayerSpec) -> "LayerStack":
        return LayerStack(self._layers + (layer,))

    def insert(self, index: int, layer: LayerSpec) -> "LayerStack":
        index = self._checked_index(index, allow_end=True)
        return LayerStack(self._layers[:index] + (layer,) + self._layers[index:])

    def remove(self, index: int) -> "LayerStack":
        index = self._checked_index(index)
        return LayerStack(self._layers[:index] + self._layers[index + 1:])

    def move(self, source: int, target: int) -> "LayerStack":
        source = self._checked_index(source)
        target = self._checked_index(target)
        layers = list(self._layers)
        layers.insert(target, layers.pop(source))
        return LayerStack(layers)

    def update(self, index: int, **changes) -> "LayerStack":
        """Replace fields of one layer; `changes` may also be a full `layer=`."""
        index = self._checked_index(index)
        if "layer" in changes:
            replacement = changes.pop("layer")
            if changes:
                raise TypeError("update() takes either layer= or field changes, not both")
        else:
            replacement = self._layers[index].replace(**changes)
        layers = list(self._layers)
        layers[index] = replacement
        return LayerStack(layers)


@dataclass(frozen=True)
class MaterialChanged:
    """Published after every rebuild."""

    version: int
    stack: LayerStack
    sample: SurfaceSample
    reason: str


Subscriber = Callable[[MaterialChanged], None]


class LayeredMaterial:
    """Own a layer stack and keep its composited sample current.

    Each mutation swaps in a new `LayerStack` snapshot, rebuilds the whole
    sample, bumps `version`, and notifies subscribers with a
    `MaterialChanged` event.
    """

    def __init__(
        self,
        layers: Iterable[LayerSpec] = (),
        config: Optional[CompositorConfig] = None,
    ):
        self.compositor = LayerCompositor(config)
        if config is not None:
            setup_logging(self.compositor.config.log_level)
        self._lock = threading.RLock()
        self._subscribers: List[Subscriber] = []
        self._stack = LayerStack(layers)
        self._version = 0
        self._sample = self.compositor.composite(self._stack)

    @classmethod
    def from_yaml(cls, path: str, textures: Optional[Mapping[str, Texture]] = None) -> "LayeredMaterial":
        """Build a material from a YAML document with `compositor` and `layers`."""
        config, layers = load_layer_stack(path, textures)
        return cls(layers, config)

    @property
    def stack(self) -> LayerStack:
        return self._stack

    @property
    def layers(self) -> Tuple[LayerSpec, ...]:
        return self._stack.layers

    @property
    def sample(self) -> SurfaceSample:
        return self._sample

    @property
    def version(self) -> int:
        return self._version

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register `callback`; returns a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def add_layer(self, layer: LayerSpec) -> SurfaceSample:
        return self._apply(self._stack.add(layer), f"add {layer.label}")

    def insert_layer(self, index: int, layer: LayerSpec) -> SurfaceSample:
        return self._apply(self._stack.insert(index, layer), f"insert {layer.label} at {index}")

    def remove_layer(self, index: int) -> SurfaceSample:
        return self._apply(self._stack.remove(index), f"remove {index}")

    def move_layer(self, source: int, target: int) -> SurfaceSample:
        return self._apply(self._stack.move(source, target), f"move {source} -> {target}")

    def update_layer(self, index: int, **changes) -> SurfaceSample:
        return self._apply(self._stack.update(index, **changes), f"update {index}")

    def set_layers(self, layers: Iterable[LayerSpec]) -> SurfaceSample:
        return self._apply(LayerStack(layers), "replace stack")

    def rebuild(self) -> SurfaceSample:
        return self._apply(self._stack, "rebuild")

    def _apply(self, stack: LayerStack, reason: str) -> SurfaceSample:
        with self._lock:
            # Build first so a failed edit leaves the previous state intact.
            sample = self.compositor.composite(stack)
            self._stack = stack
            self._sample = sample
            self._version += 1
            event = MaterialChanged(self._version, stack, sample, reason)
            subscribers = list(self._subscribers)
        logger.info(
            "Rebuilt layered material v%d (%d layer(s)): %s",
            event.version, len(stack), reason,
        )
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("Material change subscriber %r failed", callback)
        return sample
