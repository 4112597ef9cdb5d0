"""Pre-existing shading descriptions that a layer can be extracted from."""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from .graph import Node, as_node
from .texture import Texture

logger = logging.getLogger("layered_material.material")

TermValue = Union[Node, float, tuple]


@dataclass(frozen=True)
class ExtractedMaterial:
    """A host material reduced to the terms the compositor can consume.

    Terms are optional nodes or plain values; `maps` optionally exposes the
    raw textures the material was built from (keys `color`, `normal`,
    `roughness`, `metalness`, `ao`, `height`) so they can be re-sampled.
    """

    color: Optional[TermValue] = None
    normal: Optional[TermValue] = None
    roughness: Optional[TermValue] = None
    metalness: Optional[TermValue] = None
    ao: Optional[TermValue] = None
    height: Optional[TermValue] = None
    maps: Dict[str, Texture] = field(default_factory=dict)
    name: Optional[str] = None

    def __hash__(self):
        return id(self)

    def term(self, name: str, default) -> Node:
        """Return the named term as a node, or `default` when absent."""
        value = getattr(self, name, None)
        if value is None:
            logger.debug("Material %s has no '%s' term; using default.", self.name, name)
            return as_node(default)
        return as_node(value)

    def has_term(self, name: str) -> bool:
        return getattr(self, name, None) is not None

    def has_textures(self) -> bool:
        return any(tex is not None for tex in self.maps.values())
